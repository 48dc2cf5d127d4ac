"""Due-balance computations."""

from shopledger.ledger.calculator import (
    customer_due_amount,
    customers_with_due,
    due_amount_summary,
    group_by_customer,
    latest_payment,
    monthly_payment_totals,
    payment_totals,
    summarize_customer,
    summarize_customers,
)

__all__ = [
    "customer_due_amount",
    "customers_with_due",
    "due_amount_summary",
    "group_by_customer",
    "latest_payment",
    "monthly_payment_totals",
    "payment_totals",
    "summarize_customer",
    "summarize_customers",
]
