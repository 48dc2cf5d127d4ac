"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the durable backend because:
1. The shop owner can view their payments directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for one shop)
- No transactions (every ledger operation is a single row write)
- Limited query capabilities (we filter by owner in Python)

All owners share one worksheet; the owner_id column scopes the rows.
Blank cells are read back as None, never as empty strings.
"""

import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import Retrying, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from shopledger.config import GoogleSheetsSettings, get_settings
from shopledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from shopledger.models.payment import NewPayment, PaymentMethod, PaymentRecord
from shopledger.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    PaymentStorageInterface,
    PersistenceError,
    StoreConnectionError,
)


# Column mappings for the payments sheet
PAYMENT_COLUMNS = [
    "id",
    "owner_id",
    "created_at",
    "updated_at",
    "customer_name",
    "amount",
    "total_amount",
    "due_amount",
    "is_partial_payment",
    "payment_method",
    "description",
    "payment_date",
    "parent_payment_id",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "owner_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
    "is_user_action",
]

logger = structlog.get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and retries the initial authorization.
    Row reads and writes are not retried here.
    """

    SCOPES = [
        "https://www.googleapis.com/auth/spreadsheets",
        "https://www.googleapis.com/auth/drive",
    ]

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    def _authorize(self) -> gspread.Client:
        credentials = Credentials.from_service_account_file(
            self._settings.credentials_path,
            scopes=self.SCOPES,
        )
        return gspread.authorize(credentials)

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                for attempt in Retrying(
                    stop=stop_after_attempt(self._settings.connect_attempts),
                    wait=wait_exponential(multiplier=1, min=2, max=10),
                    retry=retry_if_not_exception_type(FileNotFoundError),
                    reraise=True,
                ):
                    with attempt:
                        self._client = self._authorize()
            except FileNotFoundError as e:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound as e:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_payments_sheet(self) -> gspread.Worksheet:
        """Get or create the payments worksheet."""
        return self._get_or_create_sheet(
            self._settings.payments_sheet_name, PAYMENT_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _optional_decimal(value: str) -> Optional[Decimal]:
    return Decimal(value) if value else None


class GoogleSheetsPaymentStorage(PaymentStorageInterface):
    """
    Google Sheets implementation of payment storage.

    Payments are stored as rows in a worksheet with one payment per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._last_created_at: Optional[datetime] = None

    def _next_created_at(self) -> datetime:
        now = datetime.utcnow()
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    def _record_to_row(self, record: PaymentRecord) -> list:
        """Convert a PaymentRecord to a spreadsheet row."""
        return [
            str(record.id),
            record.owner_id,
            record.created_at.isoformat(),
            record.updated_at.isoformat(),
            record.customer_name,
            str(record.amount),
            str(record.total_amount) if record.total_amount is not None else "",
            str(record.due_amount) if record.due_amount is not None else "",
            str(record.is_partial_payment),
            record.payment_method.value,
            record.description or "",
            record.payment_date.isoformat(),
            str(record.parent_payment_id) if record.parent_payment_id else "",
        ]

    def _row_to_record(self, row: list) -> PaymentRecord:
        """Convert a spreadsheet row to a PaymentRecord."""
        # Handle missing columns gracefully
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return PaymentRecord(
            id=UUID(safe_get(0)),
            owner_id=safe_get(1),
            created_at=datetime.fromisoformat(safe_get(2)),
            updated_at=datetime.fromisoformat(safe_get(3) or safe_get(2)),
            # Taken verbatim: trailing spaces are part of the customer identity
            customer_name=row[4] if len(row) > 4 else "",
            amount=Decimal(safe_get(5)),
            total_amount=_optional_decimal(safe_get(6)),
            due_amount=_optional_decimal(safe_get(7)),
            is_partial_payment=safe_get(8).lower() == "true",
            payment_method=PaymentMethod(safe_get(9, "other")),
            description=safe_get(10) or None,
            payment_date=date.fromisoformat(safe_get(11)),
            parent_payment_id=UUID(safe_get(12)) if safe_get(12) else None,
        )

    def _find_row(self, sheet: gspread.Worksheet, payment_id: UUID) -> tuple[int, list]:
        """Return (sheet row number, row values) for a payment."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == str(payment_id):
                return idx, row
        raise NotFoundError(f"Payment not found: {payment_id}")

    async def create(self, owner_id: str, payment: NewPayment) -> PaymentRecord:
        """Append a payment row."""
        created_at = self._next_created_at()
        record = PaymentRecord(
            id=uuid4(),
            owner_id=owner_id,
            created_at=created_at,
            updated_at=created_at,
            **payment.model_dump(),
        )
        try:
            sheet = self._client.get_payments_sheet()
            sheet.append_row(self._record_to_row(record), value_input_option="RAW")
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save payment: {e}") from e
        return record

    async def list_by_owner(self, owner_id: str) -> list[PaymentRecord]:
        """List an owner's payments, newest first."""
        try:
            sheet = self._client.get_payments_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to list payments: {e}") from e

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            if len(row) < 2 or row[1] != owner_id:
                continue
            try:
                records.append(self._row_to_record(row))
            except (ValueError, ArithmeticError) as e:
                logger.warning("payment_row_malformed", payment_id=row[0], error=str(e))

        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    async def get(self, payment_id: UUID) -> Optional[PaymentRecord]:
        """Retrieve a payment by its ID."""
        try:
            sheet = self._client.get_payments_sheet()
            _, row = self._find_row(sheet, payment_id)
            return self._row_to_record(row)
        except NotFoundError:
            return None
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to get payment: {e}") from e

    async def update(self, payment_id: UUID, payment: NewPayment) -> PaymentRecord:
        """Rewrite a payment row in place."""
        try:
            sheet = self._client.get_payments_sheet()
            idx, row = self._find_row(sheet, payment_id)
            existing = self._row_to_record(row)
            updated = existing.model_copy(
                update={**payment.model_dump(), "updated_at": datetime.utcnow()}
            )
            sheet.update(
                range_name=f"A{idx}:{rowcol_to_a1(idx, len(PAYMENT_COLUMNS))}",
                values=[self._record_to_row(updated)],
                value_input_option="RAW",
            )
            return updated
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to update payment: {e}") from e

    async def delete(self, payment_id: UUID) -> None:
        """Delete a payment row."""
        try:
            sheet = self._client.get_payments_sheet()
            idx, _ = self._find_row(sheet, payment_id)
            sheet.delete_rows(idx)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to delete payment: {e}") from e


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            owner_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_code=safe_get(10) or None,
            error_message=safe_get(11) or None,
            is_user_action=safe_get(12).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise PersistenceError(f"Failed to write audit event: {e}") from e

    async def _read_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to get audit events: {e}") from e

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, KeyError) as e:
                logger.warning("audit_row_malformed", event_id=row[0], error=str(e))
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        events = [
            e for e in await self._read_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

