"""
Shop Ledger - Source Package

Customer payment tracking for a small shop, with partial payments and
outstanding dues.

DESIGN PRINCIPLES:
1. Due balances are derived, never stored or typed in
2. Validate before every write
3. Fail visibly: errors reach the UI as typed exceptions
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Shop Ledger Team"
