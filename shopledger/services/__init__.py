"""Services package."""

from shopledger.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsPaymentStorage,
    InMemoryPaymentStorage,
    NotFoundError,
    PaymentStorageInterface,
    PersistenceError,
    StoreConnectionError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsPaymentStorage",
    "InMemoryPaymentStorage",
    "NotFoundError",
    "PaymentStorageInterface",
    "PersistenceError",
    "StoreConnectionError",
]
