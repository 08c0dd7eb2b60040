"""
Streamlit Frontend for the Personal Finance Tracker

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. No hidden actions: everything added automatically (card and loan
   EMIs, recurring expenses) is reported on the dashboard

All state lives on the Ledger held by the cached AppComponents. Pages
only call managers; they never change the Ledger directly.
"""

import asyncio
import time
from datetime import date
from decimal import Decimal

import streamlit as st

from src.ai import AIProviderError, AllProvidersFailedError, ProviderNotConfiguredError
from src.calculations.loans import amortization_schedule
from src.config import validate_all_settings
from src.managers import DuplicateRecordError, InvalidInputError, LedgerError
from src.models.card import CardType
from src.models.expense import EXPENSE_CATEGORIES, RecurringFrequency
from src.models.investment import Currency, DateFilter, DuplicateAction, InvestmentGoal, InvestmentType
from src.models.ledger import SUPPORTED_PROVIDERS
from src.orchestrator import AppComponents, create_app_components
from src.security import BackupDecryptionError
from src.utils.dates import month_label
from src.utils.formatters import format_category, format_currency, format_recurring_schedule


# Page configuration
st.set_page_config(
    page_title="Personal Finance Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)

PAGES = [
    "📊 Dashboard",
    "🧾 Expenses",
    "🏦 Loans",
    "💼 Income",
    "📈 Investments",
    "💳 Cards",
    "🔐 Credentials",
    "❓ Assistant",
    "⚙️ Settings",
]
SECURE_PAGES = {"💳 Cards", "🔐 Credentials"}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    return asyncio.run(coro)


def to_amount(value: float) -> Decimal:
    return Decimal(str(value))


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    components = create_app_components()
    st.session_state["startup_report"] = components.run_startup_automation()
    return components


def main():
    """Main application entry point."""
    app = get_components()

    if app.pin.is_setup and not st.session_state.get("unlocked"):
        render_lock_screen(app)
        return

    st.sidebar.title("💰 Finance Tracker")
    st.sidebar.markdown("---")
    page = st.sidebar.radio("Navigate to:", PAGES, index=0)

    previous = st.session_state.get("page")
    if previous in SECURE_PAGES and page != previous:
        app.session.leave_page(time.monotonic())
    st.session_state["page"] = page

    if page in SECURE_PAGES and app.pin.is_setup:
        if not app.session.is_session_valid(page, time.monotonic()):
            render_lock_screen(app, page)
            return
        app.session.enter_page(page, time.monotonic())

    renderers = {
        "📊 Dashboard": render_dashboard_page,
        "🧾 Expenses": render_expenses_page,
        "🏦 Loans": render_loans_page,
        "💼 Income": render_income_page,
        "📈 Investments": render_investments_page,
        "💳 Cards": render_cards_page,
        "🔐 Credentials": render_credentials_page,
        "❓ Assistant": render_assistant_page,
        "⚙️ Settings": render_settings_page,
    }
    try:
        renderers[page](app)
    except LedgerError as e:
        st.error(str(e))


def show_error(e: Exception):
    if isinstance(e, InvalidInputError) and e.field_errors:
        st.error("\n".join(f"- {msg}" for msg in e.field_errors.values()))
    else:
        st.error(str(e))


def render_lock_screen(app: AppComponents, page: str = ""):
    st.title("🔒 Locked")
    pin = st.text_input("Enter your PIN", type="password", max_chars=6)
    if st.button("Unlock", type="primary"):
        if app.pin.verify_pin(pin):
            st.session_state["unlocked"] = True
            app.session.authenticated(time.monotonic())
            if page:
                app.session.enter_page(page, time.monotonic())
            st.rerun()
        else:
            st.error("Incorrect PIN")


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard_page(app: AppComponents):
    st.title("📊 Dashboard")

    report = st.session_state.get("startup_report")
    if report and report.total_added:
        st.markdown(f"""
        <div class="info-box">
            <p>Added automatically on startup: {report.card_emis_added} card EMI(s),
            {report.emis_added} loan EMI(s)
            and {report.recurring_added} recurring expense(s).</p>
        </div>
        """, unsafe_allow_html=True)

    today = date.today()
    this_month = app.expenses.get_filtered(today, today)
    groups = app.expenses.group_by_month(this_month)
    spent = groups[0].total if groups else Decimal("0")
    portfolio = app.investments.portfolio_summary()
    lent = app.money_lent.totals()
    active_loans, _ = app.loans.split_active_closed(today)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric(f"Spent in {month_label(today.year, today.month)}", format_currency(spent))
    col2.metric("Portfolio value", format_currency(portfolio.total_value))
    col3.metric("Money lent outstanding", format_currency(lent.total_outstanding))
    col4.metric("Active loans", len(active_loans))

    view = app.expenses.get_recurring_view(today)
    st.markdown("### Upcoming this month")
    if not view.upcoming:
        st.caption("Nothing else due this month.")
    for item in view.upcoming:
        col1, col2 = st.columns([4, 1])
        col1.write(f"{item.title} · {format_currency(item.amount)} · due {item.due_date.strftime('%d %b')}")
        if col2.button("Paid", key=f"paid-{item.title}-{item.due_date}"):
            try:
                app.expenses.add_recurring_manually(
                    item.title, item.amount, item.category, item.due_date,
                    item.description, item.recurring_id,
                )
                st.rerun()
            except LedgerError as e:
                show_error(e)

    if view.completed:
        with st.expander(f"✅ Completed this month ({len(view.completed)})"):
            for item in view.completed:
                st.write(f"{item.title} · {format_currency(item.amount)} · {item.due_date.strftime('%d %b')}")


# =============================================================================
# EXPENSES
# =============================================================================

def render_expenses_page(app: AppComponents):
    st.title("🧾 Expenses")
    tab_list, tab_add, tab_recurring, tab_events = st.tabs(
        ["Expenses", "Add expense", "Recurring", "Events"]
    )

    with tab_add:
        with st.form("add_expense", clear_on_submit=True):
            title = st.text_input("Title *")
            amount = st.number_input("Amount (₹) *", min_value=0.0, step=1.0, format="%.2f")
            category = st.selectbox("Category *", EXPENSE_CATEGORIES)
            expense_date = st.date_input("Date *", value=date.today())
            description = st.text_area("Description")
            event = st.text_input("Event (optional)")
            if st.form_submit_button("Add expense", type="primary"):
                try:
                    app.expenses.add(
                        title, to_amount(amount) if amount else None, category,
                        expense_date, description, event=event or None,
                    )
                    st.success("Expense added")
                except LedgerError as e:
                    show_error(e)

    with tab_list:
        col1, col2, col3 = st.columns(3)
        start = col1.date_input("From month", value=date.today().replace(day=1))
        end = col2.date_input("To month", value=date.today())
        search = col3.text_input("Search")
        include_loans = st.checkbox("Include loan EMIs in totals")

        expenses = app.expenses.get_filtered(start, end, search)
        for group in app.expenses.group_by_month(expenses, include_loans):
            st.markdown(f"### {group.label} · {format_currency(group.total)}")
            for expense in group.expenses:
                col1, col2 = st.columns([5, 1])
                col1.write(
                    f"{expense.expense_date.strftime('%d %b')} · {expense.title} · "
                    f"{format_category(expense.category)} · {format_currency(expense.amount)}"
                )
                if col2.button("Delete", key=f"del-exp-{expense.id}"):
                    app.expenses.delete(expense.id)
                    st.rerun()

    with tab_recurring:
        render_recurring_section(app)

    with tab_events:
        summaries = app.expenses.get_event_summary()
        if not summaries:
            st.info("Tag expenses with an event to see totals per trip or occasion.")
        for event in summaries:
            with st.expander(f"{event.name} · {format_currency(event.total)} · {event.date_range}"):
                for row in event.by_title:
                    st.write(f"{row.title}: {format_currency(row.total)} ({row.count})")


def render_recurring_section(app: AppComponents):
    with st.form("add_recurring", clear_on_submit=True):
        name = st.text_input("Name *")
        amount = st.number_input("Amount (₹) *", min_value=0.0, step=1.0, format="%.2f")
        frequency = st.selectbox("Frequency *", [f.value for f in RecurringFrequency])
        day = st.number_input("Day of month *", min_value=1, max_value=31, value=1)
        months = st.multiselect(
            "Months (yearly / custom)", list(range(1, 13)),
            format_func=lambda m: date(2000, m, 1).strftime("%B"),
        )
        description = st.text_input("Description")
        if st.form_submit_button("Add recurring expense", type="primary"):
            try:
                app.recurring.add(
                    name, to_amount(amount) if amount else None, frequency, int(day), months, description,
                )
                st.success("Recurring expense added")
            except LedgerError as e:
                show_error(e)

    for recurring in app.recurring.get_all():
        col1, col2 = st.columns([5, 1])
        col1.write(
            f"{recurring.name} · {format_currency(recurring.amount)} · "
            f"{format_recurring_schedule(recurring)}"
        )
        if col2.button("Delete", key=f"del-rec-{recurring.id}"):
            app.recurring.delete(recurring.id)
            st.rerun()


# =============================================================================
# LOANS & MONEY LENT
# =============================================================================

def render_loans_page(app: AppComponents):
    st.title("🏦 Loans")
    tab_loans, tab_add, tab_lent = st.tabs(["Loans", "Add loan", "Money lent"])

    with tab_add:
        with st.form("add_loan", clear_on_submit=True):
            bank = st.text_input("Bank *")
            loan_type = st.text_input("Loan type *", placeholder="Home, Car, Personal...")
            reason = st.text_input("Reason")
            amount = st.number_input("Principal (₹) *", min_value=0.0, step=1000.0)
            rate = st.number_input("Interest rate (% per year) *", min_value=0.0, step=0.1)
            tenure = st.number_input("Tenure (months) *", min_value=1, value=12)
            first_emi = st.date_input("First EMI date *", value=date.today())
            if st.form_submit_button("Add loan", type="primary"):
                try:
                    app.loans.add(
                        bank, loan_type, reason, to_amount(amount) if amount else None,
                        to_amount(rate), int(tenure), first_emi,
                    )
                    st.success("Loan added")
                except LedgerError as e:
                    show_error(e)

    with tab_loans:
        active, closed = app.loans.split_active_closed()
        for title, summaries in (("Active", active), ("Closed", closed)):
            st.markdown(f"### {title} ({len(summaries)})")
            for summary in summaries:
                loan = summary.loan
                with st.expander(f"{loan.emi_title} · EMI {format_currency(summary.emi)}"):
                    col1, col2, col3 = st.columns(3)
                    col1.metric("Remaining balance", format_currency(summary.remaining.remaining_balance))
                    col2.metric("EMIs left", summary.remaining.emis_remaining)
                    col3.metric("Closes", summary.closure_date.strftime("%b %Y"))
                    st.caption(
                        f"Total {format_currency(summary.total_amount)}, "
                        f"interest {format_currency(summary.total_interest)}"
                    )
                    if st.checkbox("Show amortization schedule", key=f"sched-{loan.id}"):
                        rows = amortization_schedule(loan.amount, loan.interest_rate, loan.tenure)
                        st.dataframe([row.model_dump() for row in rows])
                    impact = app.loans.deletion_impact(loan.id)
                    if st.button(
                        f"Delete loan ({impact.linked_expense_count} linked expenses stay)",
                        key=f"del-loan-{loan.id}",
                    ):
                        app.loans.delete(loan.id)
                        st.rerun()

    with tab_lent:
        render_money_lent_section(app)


def render_money_lent_section(app: AppComponents):
    totals = app.money_lent.totals()
    col1, col2, col3 = st.columns(3)
    col1.metric("Lent", format_currency(totals.total_lent))
    col2.metric("Returned", format_currency(totals.total_returned))
    col3.metric("Outstanding", format_currency(totals.total_outstanding))

    with st.form("add_lent", clear_on_submit=True):
        person = st.text_input("Person *")
        amount = st.number_input("Amount (₹) *", min_value=0.0, step=100.0)
        given = st.date_input("Date given *", value=date.today())
        purpose = st.text_input("Purpose *")
        notes = st.text_input("Notes")
        if st.form_submit_button("Add", type="primary"):
            try:
                app.money_lent.add(person, to_amount(amount) if amount else None, given, purpose, notes=notes)
                st.success("Recorded")
            except LedgerError as e:
                show_error(e)

    active, closed = app.money_lent.split_active_closed()
    for record in active + closed:
        status = app.money_lent.status(record)
        with st.expander(f"{record.person_name} · {format_currency(record.amount)} · {status.value}"):
            st.write(f"Outstanding: {format_currency(app.money_lent.outstanding(record))}")
            returned = st.number_input("Returned amount", min_value=0.0, key=f"ret-{record.id}")
            if st.button("Record return", key=f"ret-btn-{record.id}"):
                try:
                    app.money_lent.record_return(record.id, date.today(), to_amount(returned))
                    st.rerun()
                except LedgerError as e:
                    show_error(e)


# =============================================================================
# INCOME
# =============================================================================

def render_income_page(app: AppComponents):
    st.title("💼 Income")
    settings = app.income.settings
    tab_tax, tab_payslips, tab_salaries, tab_setup = st.tabs(
        ["Tax", "Payslips", "Salaries", "Salary structure"]
    )

    with tab_setup:
        with st.form("income_settings"):
            ctc = st.number_input("CTC (₹ per year)", min_value=0.0, value=float(settings.ctc), step=10000.0)
            bonus = st.number_input("Bonus %", 0.0, 100.0, float(settings.bonus_percent))
            espp1 = st.number_input("ESPP % (Dec-May)", 0.0, 100.0, float(settings.espp_percent_cycle1))
            espp2 = st.number_input("ESPP % (Jun-Nov)", 0.0, 100.0, float(settings.espp_percent_cycle2))
            pf = st.number_input("PF %", 0.0, 100.0, float(settings.pf_percent))
            leave = st.number_input("Leave days to encash", 0.0, 365.0, float(settings.leave_days))
            if st.form_submit_button("Save", type="primary"):
                try:
                    app.income.save_settings(
                        ctc=to_amount(ctc), bonus_percent=to_amount(bonus),
                        espp_percent_cycle1=to_amount(espp1), espp_percent_cycle2=to_amount(espp2),
                        pf_percent=to_amount(pf), leave_days=to_amount(leave),
                    )
                    st.success("Saved")
                except LedgerError as e:
                    show_error(e)

    if not settings.ctc:
        st.info("Enter your CTC under 'Salary structure' to see tax and payslips.")
        return

    with tab_tax:
        tax = app.income.income_tax()
        col1, col2, col3 = st.columns(3)
        col1.metric("Taxable income", format_currency(tax.taxable_income))
        col2.metric("Total tax", format_currency(tax.total_tax))
        col3.metric("Effective rate", f"{tax.tax_percent}%")
        st.dataframe([slab.model_dump() for slab in tax.slabs])

    with tab_payslips:
        payslip = app.income.payslip()
        st.metric("Monthly net pay", format_currency(payslip.net_pay))
        bonus = app.income.bonus()
        st.caption(
            f"Bonus before tax {format_currency(bonus.total_bonus_before_tax)}, "
            f"after tax {format_currency(bonus.total_bonus_after_tax)}"
        )
        st.dataframe([
            {
                "Month": p.month,
                "Gross": p.gross_earnings,
                "Deductions": p.gross_deductions,
                "Bonus": p.bonus,
                "Leave": p.leave_encashment,
                "Net": p.total_net_pay,
            }
            for p in app.income.yearly_payslips()
        ])

    with tab_salaries:
        with st.form("add_salary", clear_on_submit=True):
            col1, col2, col3 = st.columns(3)
            month = col1.selectbox("Month", list(range(1, 13)), format_func=lambda m: date(2000, m, 1).strftime("%B"))
            year = col2.number_input("Year", 2000, 2100, date.today().year)
            amount = col3.number_input("Amount (₹)", min_value=0.0, step=1000.0)
            if st.form_submit_button("Record salary", type="primary"):
                try:
                    app.income.add_salary(month, int(year), to_amount(amount) if amount else None)
                    st.success("Salary recorded")
                except LedgerError as e:
                    show_error(e)
        for salary in app.income.get_all_salaries():
            st.write(f"{month_label(salary.year, salary.month)} · {format_currency(salary.amount)}")


# =============================================================================
# INVESTMENTS
# =============================================================================

def render_investments_page(app: AppComponents):
    st.title("📈 Investments")
    tab_portfolio, tab_add, tab_monthly, tab_rates = st.tabs(
        ["Portfolio", "Add investment", "Monthly log", "Rates"]
    )

    with tab_portfolio:
        summary = app.investments.portfolio_summary()
        st.markdown(f'<div class="big-number">{format_currency(summary.total_value)}</div>', unsafe_allow_html=True)
        cols = st.columns(max(len(summary.by_type), 1))
        for col, (inv_type, value) in zip(cols, summary.by_type.items()):
            col.metric(inv_type, format_currency(value))
        for holding in summary.holdings:
            inv = holding.investment
            col1, col2 = st.columns([5, 1])
            col1.write(f"{inv.name} · {inv.type.value} · {inv.goal.value} · {format_currency(holding.value_inr)}")
            if col2.button("Delete", key=f"del-inv-{inv.id}"):
                app.investments.delete(inv.id)
                st.rerun()

    with tab_add:
        render_add_investment(app)

    with tab_monthly:
        date_filter = st.selectbox("Period", list(DateFilter), format_func=lambda f: f.value.replace("_", " ").title())
        entries = app.investments.filtered_monthly(date_filter)
        st.metric("Invested", format_currency(app.investments.monthly_total(entries)))
        for year, months in app.investments.monthly_groups(entries).items():
            for month, items in months.items():
                st.markdown(f"**{month_label(year, month)}**")
                for inv in items:
                    st.write(f"{inv.investment_date} · {inv.name} · {inv.type.value}")

    with tab_rates:
        ledger = app.ledger
        updated = ledger.exchange_rate.last_updated
        st.write(f"USD → INR: ₹{ledger.exchange_rate.rate} (updated {updated:%d %b %Y %H:%M})" if updated
                 else f"USD → INR: ₹{ledger.exchange_rate.rate} (default)")
        if st.button("Refresh exchange rate and share prices"):
            app.investments.refresh_exchange_rate()
            count = app.investments.refresh_share_prices()
            st.success(f"Updated {count} share price(s)")
        gold = st.number_input("Gold rate (₹ per gram)", min_value=0.0, value=float(ledger.gold_rate_per_gram))
        if st.button("Save gold rate"):
            app.investments.set_gold_rate(to_amount(gold))
            st.success("Gold rate saved")
        for price in app.investments.get_share_prices():
            st.write(f"{price.name}: {price.price} {price.currency.value}{'' if price.active else ' (inactive)'}")


def render_add_investment(app: AppComponents):
    inv_type = st.selectbox("Type", list(InvestmentType), format_func=lambda t: t.value)
    monthly = st.checkbox("This is a monthly purchase (adds to the log and the portfolio)")
    with st.form("add_investment", clear_on_submit=True):
        name = st.text_input("Name *")
        goal = st.selectbox("Goal", list(InvestmentGoal), format_func=lambda g: g.value.replace("_", " ").title())
        fields = {}
        if inv_type in (InvestmentType.SHARES, InvestmentType.GOLD):
            fields["quantity"] = st.number_input("Quantity", min_value=0.0, step=1.0)
            fields["price"] = st.number_input("Price per unit", min_value=0.0)
            if inv_type == InvestmentType.SHARES:
                fields["currency"] = st.selectbox("Currency", list(Currency), format_func=lambda c: c.value)
        else:
            fields["amount"] = st.number_input("Amount (₹)", min_value=0.0, step=1000.0)
            if inv_type == InvestmentType.FD:
                fields["tenure"] = int(st.number_input("Tenure (months)", min_value=1, value=12))
                fields["interest_rate"] = st.number_input("Interest rate %", min_value=0.0)
                fields["end_date"] = st.date_input("End date")
        purchase_date = st.date_input("Purchase date", value=date.today()) if monthly else None
        on_duplicate = st.radio(
            "If it already exists", [None, DuplicateAction.ADD, DuplicateAction.OVERRIDE],
            format_func=lambda a: "Ask" if a is None else a.value.title(), horizontal=True,
        )
        if st.form_submit_button("Save", type="primary"):
            values = {k: to_amount(v) if isinstance(v, float) else v for k, v in fields.items()}
            try:
                if monthly:
                    app.investments.add_monthly(name, inv_type, purchase_date, goal, **values)
                else:
                    app.investments.add_to_portfolio(name, inv_type, goal, on_duplicate=on_duplicate, **values)
                st.success("Investment saved")
            except DuplicateRecordError as e:
                st.warning(str(e))
            except LedgerError as e:
                show_error(e)


# =============================================================================
# CREDENTIALS
# =============================================================================

def render_cards_page(app: AppComponents):
    st.title("💳 Cards")

    with st.expander("➕ Add card"):
        with st.form("add_card", clear_on_submit=True):
            name = st.text_input("Card name *", placeholder="HDFC Regalia")
            card_type = st.radio("Type", [t.value for t in CardType], horizontal=True,
                                 format_func=str.title)
            number = st.text_input("Card number *", type="password")
            col1, col2 = st.columns(2)
            expiry = col1.text_input("Expiry *", placeholder="MM/YY")
            cvv = col2.text_input("CVV *", type="password", max_chars=4)
            limit = st.number_input("Credit limit (₹)", min_value=0.0, step=1000.0)
            notes = st.text_area("Notes")
            if st.form_submit_button("Save card", type="primary"):
                try:
                    app.cards.add(
                        name, number, expiry, cvv, notes,
                        to_amount(limit) if limit else None, card_type,
                    )
                    st.success("Card saved")
                except LedgerError as e:
                    show_error(e)

    for card_type in CardType:
        cards = app.cards.get_all(card_type)
        st.markdown(f"### {card_type.value.title()} cards ({len(cards)})")
        for card in cards:
            with st.expander(f"{card.name} · {app.cards.masked_number(card)} · {card.network}"):
                if card_type == CardType.CREDIT:
                    render_card_emis(app, card)
                if card.additional_data:
                    st.caption(card.additional_data)
                if st.button("Delete card", key=f"del-card-{card.id}"):
                    app.cards.delete(card.id)
                    st.rerun()


def render_card_emis(app: AppComponents, card):
    if card.credit_limit:
        col1, col2 = st.columns(2)
        col1.metric("Limit used", format_currency(app.cards.used_limit(card)))
        col2.metric("Available", format_currency(app.cards.available_limit(card)))

    summary = app.cards.emi_summary(card)
    if summary:
        st.progress(summary.progress / 100, text=f"{summary.active_count} EMI(s), {summary.progress}% paid")
        st.caption(
            f"Pending {format_currency(summary.total_pending)} of {format_currency(summary.total_emi_amount)}"
            + (f", next on {summary.next_emi_date:%d %b %Y}" if summary.next_emi_date else "")
        )

    for emi in card.emis:
        cols = st.columns([3, 1, 1])
        amount = format_currency(emi.emi_amount) if emi.emi_amount else "-"
        status = "✅ " if emi.completed else ""
        cols[0].write(f"{status}{emi.reason}: {amount} × {emi.paid_count}/{emi.total_count}")
        if not emi.completed and cols[1].button("Complete", key=f"done-emi-{emi.id}"):
            app.cards.mark_emi_complete(card.id, emi.id)
            st.rerun()
        if cols[2].button("Delete", key=f"del-emi-{emi.id}"):
            app.cards.delete_emi(card.id, emi.id)
            st.rerun()

    with st.form(f"add_emi_{card.id}", clear_on_submit=True):
        st.markdown("**Add EMI**")
        reason = st.text_input("Reason *", placeholder="Phone")
        col1, col2, col3 = st.columns(3)
        emi_amount = col1.number_input("EMI amount (₹)", min_value=0.0, step=100.0)
        total = col2.number_input("Total EMIs *", min_value=1, value=12)
        paid = col3.number_input("Already paid", min_value=0, value=0)
        first = st.date_input("First EMI date *", value=date.today())
        if st.form_submit_button("Add EMI"):
            try:
                app.cards.add_emi(
                    card.id, reason, first, int(total),
                    to_amount(emi_amount) if emi_amount else None, int(paid),
                )
                st.success("EMI added")
            except LedgerError as e:
                show_error(e)

    if card.benefits:
        st.markdown(card.benefits)
    if st.button("Fetch benefits", key=f"benefits-{card.id}"):
        with st.spinner("Looking up card benefits..."):
            try:
                run_async(app.cards.fetch_benefits(card.id, app.router))
                st.rerun()
            except ProviderNotConfiguredError as e:
                st.warning(e.message)
            except (AIProviderError, AllProvidersFailedError) as e:
                st.error(str(e))


def render_credentials_page(app: AppComponents):
    st.title("🔐 Credentials")

    with st.expander("➕ Add credential"):
        with st.form("add_credential", clear_on_submit=True):
            service = st.text_input("Service *")
            username = st.text_input("Username *")
            password = st.text_input("Password *", type="password")
            tag = st.text_input("Tag")
            description = st.text_input("Description")
            if st.form_submit_button("Save", type="primary"):
                try:
                    app.credentials.add(service, username, password, description, tag=tag)
                    st.success("Credential saved")
                except LedgerError as e:
                    show_error(e)

    col1, col2 = st.columns(2)
    query = col1.text_input("Search")
    tag = col2.selectbox("Tag", [""] + app.credentials.get_tags(), format_func=lambda t: t or "All")
    for credential in app.credentials.search(query, tag):
        with st.expander(f"{credential.service} · {credential.username}"):
            if st.checkbox("Show password", key=f"show-{credential.id}"):
                st.code(credential.password.get_secret_value())
            if credential.description:
                st.caption(credential.description)
            if st.button("Delete", key=f"del-cred-{credential.id}"):
                app.credentials.delete(credential.id)
                st.rerun()


# =============================================================================
# ASSISTANT
# =============================================================================

def render_assistant_page(app: AppComponents):
    st.title("❓ Assistant")
    mode = st.radio("Topic", ["expenses", "investments", "default"], horizontal=True,
                    format_func=lambda m: "General" if m == "default" else m.title())

    with st.expander("📝 Example Questions"):
        st.markdown("""
        - "How much did I spend on groceries last month?"
        - "Break down my expenses by category this year"
        - "What is my gold worth?"
        - "Should I move some short-term investments into an FD?"
        """)

    if not app.router.is_configured():
        st.info("No AI key configured. Questions about your records still work; advice needs a key in Settings.")

    for message in app.ledger.chat_history[-20:]:
        with st.chat_message(message.role):
            st.write(message.content)

    question = st.chat_input("Ask about your money")
    advice = st.toggle("Ask for advice instead of figures")
    if question:
        with st.spinner("Looking up your records..."):
            try:
                if advice:
                    run_async(app.assistant.advise(question, mode))
                else:
                    reply = run_async(app.assistant.ask(question, mode))
                    st.session_state["last_query"] = reply
            except ProviderNotConfiguredError as e:
                st.warning(e.message)
            except (AIProviderError, AllProvidersFailedError) as e:
                st.error(str(e))
        st.rerun()

    reply = st.session_state.get("last_query")
    if reply and reply.result:
        with st.expander("🔍 Query Details"):
            st.markdown(f"**Description:** {reply.result.query_description}")
            st.markdown(f"**Records Found:** {reply.result.result_count}")
            for item in reply.result.results[:5]:
                st.json(item)

    if st.button("Clear chat"):
        app.assistant.clear_history()
        st.rerun()


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(app: AppComponents):
    st.title("⚙️ Settings")

    st.markdown("### AI providers")
    for provider in ("gemini", "groq"):
        col1, col2 = st.columns([4, 1])
        key = col1.text_input(
            f"{provider.title()} API key",
            type="password",
            placeholder="Saved" if app.ai_settings.settings.api_key_for(provider) else "",
            key=f"key-{provider}",
        )
        if col2.button("Save", key=f"save-key-{provider}"):
            app.ai_settings.set_api_key(provider, key)
            st.success(f"{provider.title()} key saved")
    order = st.multiselect(
        "Priority order", SUPPORTED_PROVIDERS, default=app.ai_settings.settings.priority_order,
    )
    if st.button("Save priority order"):
        try:
            app.ai_settings.set_priority_order(order)
            st.success("Saved")
        except LedgerError as e:
            show_error(e)

    st.markdown("---")
    st.markdown("### Backup")
    password = st.text_input("Backup password", type="password")
    if password:
        st.download_button(
            "⬇️ Export encrypted backup",
            data=app.backup.export_backup(password),
            file_name=f"finance-backup-{date.today().isoformat()}.txt",
        )
    upload = st.file_uploader("Import backup", type=["txt"])
    if upload and password and st.button("Import"):
        try:
            app.backup.import_backup(upload.read().decode("utf-8"), password)
            st.success("Backup imported")
        except BackupDecryptionError as e:
            st.error(str(e))

    st.markdown("---")
    st.markdown("### App lock")
    if app.pin.is_setup:
        current = st.text_input("Current PIN", type="password", max_chars=6)
        new = st.text_input("New PIN", type="password", max_chars=6)
        col1, col2 = st.columns(2)
        if col1.button("Change PIN"):
            try:
                app.pin.change_pin(current, new)
                st.success("PIN changed")
            except LedgerError as e:
                show_error(e)
        if col2.button("Remove PIN") and app.pin.verify_pin(current):
            app.pin.disable()
            st.rerun()
    else:
        new = st.text_input("Choose a 4-6 digit PIN", type="password", max_chars=6)
        if st.button("Set PIN"):
            try:
                app.pin.setup_pin(new)
                st.session_state["unlocked"] = True
                st.success("PIN set")
            except LedgerError as e:
                show_error(e)

    st.markdown("---")
    st.markdown("### Connection Status")
    status = validate_all_settings()
    for name, key in (("Storage", "storage"), ("Google Sheets", "google_sheets"),
                      ("Gemini (env)", "gemini"), ("Groq (env)", "groq")):
        if status.get(key, False):
            st.success(f"✅ {name}")
        else:
            st.warning(f"⚠️ {name} - {status.get(f'{key}_error', 'Not configured')}")


if __name__ == "__main__":
    main()
