"""
Streamlit Frontend for Shop Ledger

The screen a shop owner uses to record customer payments and see who
still owes money.

DESIGN PRINCIPLES:
1. The page holds no business rules; the ledger service decides
2. The due amount is shown, never typed in
3. Every failure is reported with a toast in simple language
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from shopledger.audit import create_correlation_id
from shopledger.config import get_settings, validate_all_settings
from shopledger.models.payment import PaymentMethod, PaymentPatch
from shopledger.orchestrator import LedgerService, create_app_components
from shopledger.services.storage import PersistenceError
from shopledger.session import IdleSession
from shopledger.validation import PaymentValidationError, get_user_friendly_message


# Page configuration
st.set_page_config(
    page_title="Shop Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

METHOD_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.CARD: "Card",
    PaymentMethod.UPI: "UPI",
    PaymentMethod.NET_BANKING: "Net banking",
    PaymentMethod.WALLET: "Wallet",
    PaymentMethod.CHEQUE: "Cheque",
    PaymentMethod.OTHER: "Other",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_ledger() -> LedgerService:
    """Get or create the ledger service (cached)."""
    return create_app_components()


def money(value) -> str:
    symbol = get_settings().ledger.currency_symbol
    return f"{symbol}{Decimal(value or 0):,.2f}"


def sign_out():
    st.session_state.pop("owner_id", None)
    st.session_state.pop("idle_session", None)


def call_ledger(coro, success: str = ""):
    """Run a ledger call, reporting typed errors as toasts."""
    try:
        result = run_async(coro)
    except (PaymentValidationError, PersistenceError) as e:
        st.toast(get_user_friendly_message(e), icon="⚠️")
        return None
    if success:
        st.toast(success, icon="✅")
    return result


def main():
    """Main application entry point."""
    ledger = get_ledger()

    st.sidebar.title("💰 Shop Ledger")
    owner_id = st.sidebar.text_input("Shop account", value=st.session_state.get("owner_id", ""))
    if not owner_id:
        st.info("Enter your shop account to begin.")
        return

    if st.session_state.get("owner_id") != owner_id:
        st.session_state.owner_id = owner_id
        st.session_state.idle_session = IdleSession(on_teardown=sign_out)

    session: IdleSession = st.session_state.idle_session
    # A rerun means the page is in front of the user again
    session.on_visibility_change(hidden=False)
    if not session.is_active:
        st.warning("You were signed out after a period of inactivity.")
        return
    session.touch()

    page = st.sidebar.radio(
        "Navigate to:",
        ["Payments", "Customers with dues", "Settings"],
        index=0,
    )
    if st.sidebar.button("Sign out"):
        session.end()
        st.rerun()

    if page == "Payments":
        render_payments_page(ledger, owner_id)
    elif page == "Customers with dues":
        render_dues_page(ledger, owner_id)
    else:
        render_settings_page()


def render_payment_form(ledger: LedgerService, owner_id: str):
    """New payment form with a live due preview."""
    st.subheader("Add Payment")
    col1, col2 = st.columns(2)
    with col1:
        customer_name = st.text_input("Customer name")
        amount = st.text_input("Amount paid")
        is_partial = st.checkbox("Partial payment")
        total_amount = st.text_input("Total amount", disabled=not is_partial)
    with col2:
        method = st.selectbox(
            "Payment method", list(PaymentMethod), format_func=METHOD_LABELS.get
        )
        payment_date = st.date_input("Date", value=date.today())
        description = st.text_input("Description")

    form = {
        "customer_name": customer_name,
        "amount": amount or None,
        "total_amount": (total_amount or None) if is_partial else None,
        "is_partial_payment": is_partial,
        "payment_method": method,
        "description": description or None,
        "payment_date": payment_date,
    }

    check = ledger.validator.check(form)
    if is_partial:
        st.text_input(
            "Due amount",
            value=money(check.due_amount) if check.due_amount is not None else "",
            disabled=True,
        )
    for warning in check.warnings:
        st.caption(f"⚠️ {warning}")

    if st.button("Save payment", type="primary", disabled=not check.is_valid):
        record = call_ledger(
            ledger.create_payment(owner_id, form, correlation_id=create_correlation_id()),
            success="Payment added successfully",
        )
        if record is not None:
            st.rerun()


def render_payments_page(ledger: LedgerService, owner_id: str):
    """List, edit and delete payments."""
    st.title("Customer Payments")
    render_payment_form(ledger, owner_id)
    st.markdown("---")

    method_filter = st.selectbox(
        "Filter by method",
        [None] + list(PaymentMethod),
        format_func=lambda m: "All" if m is None else METHOD_LABELS[m],
    )
    payments = call_ledger(ledger.list_payments(owner_id, payment_method=method_filter)) or []
    totals = call_ledger(ledger.get_payment_totals(owner_id))
    if totals is not None:
        received = (
            totals.total_received if method_filter is None
            else totals.by_method.get(method_filter, Decimal("0"))
        )
        st.markdown(f"**Total:** {money(received)}")

    for payment in payments:
        with st.expander(
            f"{payment.customer_name} · {money(payment.amount)} · {payment.payment_date}"
        ):
            if payment.due_amount:
                st.markdown(f"Due after this payment: **{money(payment.due_amount)}**")
            new_amount = st.text_input(
                "Amount", value=str(payment.amount), key=f"amount-{payment.id}"
            )
            new_description = st.text_input(
                "Description", value=payment.description or "", key=f"desc-{payment.id}"
            )
            col1, col2 = st.columns(2)
            if col1.button("Update", key=f"update-{payment.id}"):
                patch = {"amount": new_amount, "description": new_description or None}
                try:
                    patch = PaymentPatch.model_validate(patch)
                except ValueError:
                    st.toast("Please enter a valid amount", icon="⚠️")
                else:
                    if call_ledger(
                        ledger.update_payment(payment.id, patch),
                        success="Payment updated successfully",
                    ) is not None:
                        st.rerun()
            if col2.button("Delete", key=f"delete-{payment.id}"):
                call_ledger(
                    ledger.delete_payment(payment.id),
                    success="Payment deleted successfully",
                )
                st.rerun()
            if st.checkbox("Show history", key=f"history-{payment.id}"):
                render_audit_trail(ledger, payment.id)


def render_audit_trail(ledger: LedgerService, payment_id):
    """Audit events of one payment."""
    events = call_ledger(ledger.get_payment_audit_trail(payment_id))
    if not events:
        st.caption("No stored history for this payment.")
        return
    for event in events:
        st.caption(f"{event.timestamp:%Y-%m-%d %H:%M} · {event.description}")


def render_dues_page(ledger: LedgerService, owner_id: str):
    """Customers that still owe money."""
    st.title("Customers with dues")

    summary = call_ledger(ledger.get_due_amount_summary(owner_id))
    if summary is not None:
        col1, col2, col3 = st.columns(3)
        col1.metric("Total due", money(summary.total_due_amount))
        col2.metric("Customers", summary.customers_with_due)
        col3.metric("Average due", money(summary.average_due_per_customer))

    trends = call_ledger(ledger.get_monthly_payment_trends(owner_id)) or []
    if trends:
        st.markdown("### Received per month")
        st.table([
            {"Month": t.month, "Received": money(t.total_received), "Payments": t.payment_count}
            for t in trends
        ])

    customers = call_ledger(ledger.list_customers_with_due(owner_id)) or []
    if not customers:
        st.info("No customer owes you anything right now.")
        return

    for customer in customers:
        with st.expander(f"{customer.customer_name} · {money(customer.total_due)}"):
            st.caption(
                f"{customer.payment_count} payments · last on {customer.last_payment_date}"
            )
            history = call_ledger(
                ledger.get_customer_history(owner_id, customer.customer_name)
            ) or []
            for past in history:
                due = f" · due {money(past.due_amount)}" if past.due_amount is not None else ""
                st.caption(f"{past.payment_date} · paid {money(past.amount)}{due}")
            amount = st.text_input("Amount received", key=f"follow-{customer.customer_name}")
            if st.button("Add Payment", key=f"add-{customer.customer_name}"):
                preview = ledger.validator.preview_due_amount(amount, customer.total_due)
                if preview is None:
                    st.toast("Please enter a valid amount", icon="⚠️")
                elif call_ledger(
                    ledger.record_follow_up_payment(owner_id, customer.customer_name, Decimal(amount.strip())),
                    success="Payment added successfully",
                ) is not None:
                    st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    status = validate_all_settings()
    for key in ("ledger", "session", "app", "google_sheets"):
        if key not in status:
            continue
        if status[key]:
            st.success(f"✅ {key}")
        else:
            st.error(f"❌ {key} - {status.get(f'{key}_error', 'Not configured')}")

    session_settings = get_settings().session
    st.markdown("### Auto-logout")
    if session_settings.idle_timeout_minutes:
        st.markdown(f"Idle timeout: {session_settings.idle_timeout_minutes} minutes")
    else:
        st.markdown("Idle timeout is disabled")


if __name__ == "__main__":
    main()
