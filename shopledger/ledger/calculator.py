"""
Due-Balance Calculator

DESIGN DECISION: Due balances are DERIVED, never stored.
Every call recomputes from the full list of an owner's payments, so a
deleted or edited payment is reflected on the very next read.

A customer's due is carried forward by their most recently CREATED
payment. Each follow-up partial payment supersedes the previous record's
due figure, so older records never add to the balance. Ordering is by
created_at, not by the payment date the user typed in.

Everything here is pure and never raises on well-formed records:
a missing due_amount counts as zero.
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from shopledger.models.payment import (
    CustomerDueSummary,
    DueAmountSummary,
    MonthlyPaymentTotal,
    PaymentMethod,
    PaymentRecord,
    PaymentTotals,
)

ZERO = Decimal("0")


def _newest_first(records: Iterable[PaymentRecord]) -> list[PaymentRecord]:
    # id breaks created_at ties so the winner never depends on input order
    return sorted(records, key=lambda r: (r.created_at, str(r.id)), reverse=True)


def latest_payment(records: Iterable[PaymentRecord]) -> Optional[PaymentRecord]:
    """The record that is authoritative for a customer's due balance."""
    ordered = _newest_first(records)
    return ordered[0] if ordered else None


def group_by_customer(
    records: Iterable[PaymentRecord],
) -> dict[str, list[PaymentRecord]]:
    """
    Group payments by exact customer name, newest first within a group.

    Groups are ordered by their newest payment.
    """
    groups: dict[str, list[PaymentRecord]] = defaultdict(list)
    for record in _newest_first(records):
        groups[record.customer_name].append(record)
    return dict(groups)


def summarize_customer(
    customer_name: str,
    records: list[PaymentRecord],
) -> CustomerDueSummary:
    """Build the due summary of one customer's payment group."""
    latest = latest_payment(records)
    due = latest.due_amount if latest is not None else None
    return CustomerDueSummary(
        customer_name=customer_name,
        payment_count=len(records),
        last_payment_date=max(r.payment_date for r in records),
        total_due=due if due is not None and due > ZERO else ZERO,
    )


def summarize_customers(
    records: Iterable[PaymentRecord],
) -> list[CustomerDueSummary]:
    """Due summary for every customer, settled or not."""
    return [
        summarize_customer(name, group)
        for name, group in group_by_customer(records).items()
    ]


def customers_with_due(
    records: Iterable[PaymentRecord],
) -> list[CustomerDueSummary]:
    """
    Customers that still owe money, largest due first.

    Customers with equal dues keep the order of their newest payment.
    """
    owing = [s for s in summarize_customers(records) if s.total_due > ZERO]
    # sort() is stable, so ties keep newest-payment order
    owing.sort(key=lambda s: s.total_due, reverse=True)
    return owing


def customer_due_amount(
    records: Iterable[PaymentRecord],
    customer_name: str,
) -> Decimal:
    """Outstanding due of one customer; zero when settled or unknown."""
    for summary in customers_with_due(records):
        if summary.customer_name == customer_name:
            return summary.total_due
    return ZERO


def due_amount_summary(
    summaries: list[CustomerDueSummary],
) -> DueAmountSummary:
    """Aggregate the output of customers_with_due()."""
    total = sum((s.total_due for s in summaries), ZERO)
    count = len(summaries)
    return DueAmountSummary(
        total_due_amount=total,
        customers_with_due=count,
        average_due_per_customer=total / count if count else ZERO,
    )


def payment_totals(records: Iterable[PaymentRecord]) -> PaymentTotals:
    """Money received, overall and per payment method."""
    by_method: dict[PaymentMethod, Decimal] = {}
    total = ZERO
    count = 0
    for record in records:
        total += record.amount
        count += 1
        by_method[record.payment_method] = (
            by_method.get(record.payment_method, ZERO) + record.amount
        )
    return PaymentTotals(
        total_received=total,
        payment_count=count,
        by_method=by_method,
    )


def monthly_payment_totals(
    records: Iterable[PaymentRecord],
    months: int = 12,
    today: Optional[date] = None,
) -> list[MonthlyPaymentTotal]:
    """
    Money received per calendar month, oldest month first.

    Covers payments dated within the last `months` * 30 days. Months
    without payments are left out.
    """
    today = today or date.today()
    cutoff = today - timedelta(days=months * 30)

    buckets: dict[str, list[Decimal]] = defaultdict(list)
    for record in records:
        if record.payment_date >= cutoff:
            buckets[record.payment_date.strftime("%Y-%m")].append(record.amount)

    return [
        MonthlyPaymentTotal(
            month=month,
            total_received=sum(amounts, ZERO),
            payment_count=len(amounts),
        )
        for month, amounts in sorted(buckets.items())
    ]
