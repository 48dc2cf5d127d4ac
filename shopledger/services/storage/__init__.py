"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Payments live in Google Sheets in production and in memory for tests.
"""

from shopledger.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    PaymentStorageInterface,
    PersistenceError,
    StoreConnectionError,
)
from shopledger.services.storage.memory import InMemoryPaymentStorage
from shopledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPaymentStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "PaymentStorageInterface",
    # Exceptions
    "NotFoundError",
    "PersistenceError",
    "StoreConnectionError",
    # Implementations
    "InMemoryPaymentStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsPaymentStorage",
]
