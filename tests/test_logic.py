# tests/test_logic.py
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from fracestate.errors import InsufficientFunds, ServiceError
from fracestate.models import AppreciationRecord, LedgerEntry, RentalPayment
from fracestate.services import appreciation, clock, ledger, rental

from conftest import T0

# --- Game clock ---
def test_logic_game_time_runs_at_multiplier():
    """One real minute is one game day."""
    assert clock.to_game_time(T0 + timedelta(minutes=1), T0, T0, 1440) == T0 + timedelta(days=1)
    assert clock.to_game_time(T0 + timedelta(minutes=90), T0, T0, 1440) == T0 + timedelta(days=90)

def test_logic_game_time_never_runs_backwards():
    """Real time before the anchor maps to the anchor."""
    assert clock.to_game_time(T0 - timedelta(minutes=5), T0, T0, 1440) == T0

def test_logic_quarter_boundaries():
    """Quarter starts strictly after start and up to end inclusive."""
    starts = list(clock.quarter_starts_between(datetime(2025, 1, 15), datetime(2025, 7, 1)))
    assert starts == [datetime(2025, 4, 1), datetime(2025, 7, 1)]
    assert list(clock.quarter_starts_between(datetime(2025, 4, 1), datetime(2025, 6, 30))) == []
    assert clock.quarter_label(datetime(2025, 11, 3)) == '2025-Q4'

def test_logic_game_months_between(db_session):
    assert clock.game_months_between(T0, T0 + timedelta(days=95)) == 3
    assert clock.game_months_between(T0, T0 + timedelta(days=29)) == 0
    assert clock.game_months_between(T0, T0 - timedelta(days=40)) == 0

def test_logic_clock_created_once(db_session, make_user):
    """A second lookup returns the existing clock untouched."""
    user = make_user()
    clk = clock.get_or_create_clock(user, T0 + timedelta(hours=1))
    assert clk.game_start_time == T0
    assert clk.current_game_time == T0

def test_logic_game_time_at_unsynced_instant(db_session, make_user):
    """Game time of an instant the clock has not been synced to yet."""
    user = make_user()
    clk = clock.get_or_create_clock(user, T0)
    assert clock.game_time_at(clk, T0 + timedelta(minutes=3)) == T0 + timedelta(days=3)

# --- Ledger ---
def test_logic_ledger_debit_rejects_overdraft(db_session, make_user):
    """A debit larger than the balance raises and leaves the balance alone."""
    user = make_user(balance_cents=1000)
    with pytest.raises(InsufficientFunds):
        ledger.debit(user, 1001, 'purchase')
    assert user.balance_cents == 1000
    assert LedgerEntry.query.filter_by(user_id=user.id).count() == 1

def test_logic_ledger_tracks_running_balance(db_session, make_user):
    user = make_user(balance_cents=1000)
    ledger.debit(user, 400, 'purchase')
    entry = ledger.credit(user, 150, 'rent')
    db_session.commit()
    assert user.balance_cents == 750
    assert entry.balance_after_cents == 750
    amounts = [e.amount_cents for e in ledger.entries_for(user)]
    assert amounts == [150, -400, 1000]
    assert len(ledger.entries_for(user, kind='rent')) == 1

@pytest.mark.parametrize("amount", [0, -5, 10.5, True])
def test_logic_ledger_rejects_bad_amounts(db_session, make_user, amount):
    user = make_user()
    with pytest.raises(ServiceError):
        ledger.credit(user, amount, 'rent')

# --- Rental income ---
@pytest.mark.parametrize("price_cents,expected", [
    (10_000_500, Decimal('0')),
    (10_000_000, Decimal('-0.05')),
    (10_001_000, Decimal('0.05')),
])
def test_logic_lease_variation(price_cents, expected):
    """The adjustment depends only on the last two digits of the dollar price."""
    assert rental.lease_variation(price_cents) == expected

def test_logic_monthly_rent(db_session, make_user, make_property):
    """$100,005 at 6% is $500.025 per share per month; 10 shares round to $50.00."""
    user = make_user()
    prop = make_property(user)
    assert rental.monthly_rent_cents(prop, 10) == 5000
    assert rental.monthly_rent_cents(prop, 100) == 50003

def test_logic_accrue_rent_pays_each_month_once(db_session, make_user, make_property, make_investment):
    """95 game days after purchase three months are due; accruing again pays nothing."""
    user = make_user()
    prop = make_property(user)
    inv = make_investment(user, prop, shares=10)

    payments = rental.accrue_rent(inv, T0 + timedelta(days=95))
    db_session.commit()
    assert [p.month for p in payments] == [1, 2, 3]
    assert [p.game_time for p in payments] == [T0 + timedelta(days=d) for d in (30, 60, 90)]
    assert inv.months_paid == 3
    assert user.balance_cents == 2_000_000 + 3 * 5000

    assert rental.accrue_rent(inv, T0 + timedelta(days=95)) == []
    assert RentalPayment.query.count() == 3
    assert len(ledger.entries_for(user, kind='rent')) == 3
    assert rental.rental_income_total(user) == 15000

def test_logic_rent_months_in_order(db_session, make_user, make_property, make_investment):
    user = make_user()
    prop = make_property(user)
    inv = make_investment(user, prop)
    with pytest.raises(ValueError):
        rental.pay_rent(inv, 3, T0 + timedelta(days=90))
    assert rental.pay_rent(inv, 1, T0 + timedelta(days=30)) is not None
    # already paid
    assert rental.pay_rent(inv, 1, T0 + timedelta(days=30)) is None
    assert inv.months_paid == 1

def test_logic_rental_history_filters_by_property(db_session, make_user, make_property, make_investment):
    user = make_user()
    first = make_property(user)
    second = make_property(user, price_cents=20_001_000)
    inv1 = make_investment(user, first, shares=5)
    inv2 = make_investment(user, second, shares=5)
    rental.accrue_rent(inv1, T0 + timedelta(days=31))
    rental.accrue_rent(inv2, T0 + timedelta(days=61))
    db_session.commit()
    assert len(rental.rental_history(user)) == 3
    assert len(rental.rental_history(user, property_id=second.id)) == 2

# --- Appreciation ---
def test_logic_quarterly_rate(db_session, app):
    assert appreciation.quarterly_rate(0.08) == pytest.approx(1.08 ** 0.25 - 1)
    app.config['APPRECIATION_COMPOUND_QUARTERLY'] = False
    assert appreciation.quarterly_rate(0.08) == pytest.approx(0.02)

def test_logic_appreciation_rate_clamped(db_session, app):
    """Rates stay inside the configured bounds."""
    app.config['APPRECIATION_USE_FLAT_RATE'] = False
    app.config['APPRECIATION_CLASS_RATES'] = {'A': 0.5, 'B': 0.08, 'C': 0.001}
    assert appreciation.appreciation_rate_for('A') == 0.15
    assert appreciation.appreciation_rate_for('B') == 0.08
    assert appreciation.appreciation_rate_for('C') == 0.01

def test_logic_appreciation_same_quarter_is_noop(db_session, make_user, make_property):
    user = make_user()
    prop = make_property(user)
    assert appreciation.apply_appreciation(prop, datetime(2025, 3, 31)) == 0
    assert prop.current_value_cents == 10_000_500
    assert AppreciationRecord.query.count() == 0

def test_logic_appreciation_two_quarters(db_session, make_user, make_property, make_investment):
    """Crossing two quarter starts compounds twice and revalues holdings."""
    user = make_user()
    prop = make_property(user, now=datetime(2025, 1, 15))
    inv = make_investment(user, prop, shares=10)

    gain = appreciation.apply_appreciation(prop, datetime(2025, 7, 2))
    db_session.commit()
    assert prop.current_value_cents == pytest.approx(10_000_500 * 1.08 ** 0.5, abs=2)
    assert gain == prop.current_value_cents - 10_000_500
    assert [r['quarter'] for r in appreciation.appreciation_summary(prop)['quarterly_history']] \
        == ['2025-Q2', '2025-Q3']
    assert prop.last_appreciation_at == datetime(2025, 7, 2)
    assert inv.current_value_cents == pytest.approx(prop.current_value_cents / 10, abs=1)

def test_logic_appreciation_capped(db_session, make_user, make_property):
    """Twenty elapsed quarters are capped at twelve."""
    user = make_user()
    prop = make_property(user, now=datetime(2020, 1, 1))
    appreciation.apply_appreciation(prop, datetime(2025, 1, 1))
    db_session.commit()
    assert prop.appreciation_records.count() == 12
    assert prop.current_value_cents == pytest.approx(10_000_500 * 1.08 ** 3, abs=12)

def test_logic_appreciation_history_trimmed(db_session, make_user, make_property):
    """Only the most recent twenty quarters are kept."""
    user = make_user()
    prop = make_property(user, now=datetime(2020, 1, 1))
    appreciation.apply_appreciation(prop, datetime(2023, 1, 1))
    appreciation.apply_appreciation(prop, datetime(2026, 1, 1))
    db_session.commit()
    history = appreciation.appreciation_summary(prop)['quarterly_history']
    assert len(history) == 20
    assert history[0]['quarter'] == '2021-Q2'
    assert history[-1]['quarter'] == '2026-Q1'

def test_logic_portfolio_appreciation(db_session, make_user, make_property, make_investment):
    user = make_user()
    prop = make_property(user, now=datetime(2025, 1, 15))
    make_investment(user, prop, shares=10)
    appreciation.apply_appreciation(prop, datetime(2025, 4, 2))
    db_session.commit()
    summary = appreciation.portfolio_appreciation(user)
    assert summary['total_original_value_cents'] == 1_000_050
    assert summary['total_appreciation_cents'] > 0
    assert summary['total_appreciation_percent'] == pytest.approx((1.08 ** 0.25 - 1) * 100, abs=0.01)
