# tests/test_escrow.py
import random
import pytest
from datetime import timedelta
from fracestate.errors import InsufficientFunds, InvalidPurchase
from fracestate.models import EscrowProcess, Investment
from fracestate.services import escrow, progress, purchases

from conftest import T0


@pytest.fixture
def sure_escrow(app):
    """Escrow steps always succeed."""
    app.config['ESCROW_INSPECTION_FAILURE_RATE'] = 0.0
    app.config['ESCROW_LENDER_REJECTION_RATE'] = 0.0
    return app


def mock_share_total(prop):
    return sum(i.shares for i in prop.mock_investors.all())


def test_escrow_cash_purchase_completes(db_session, sure_escrow, make_user, make_property):
    """Class C is cash-only: inspection passes and the purchase settles."""
    user = make_user()
    prop = make_property(user, property_class='C')
    process = escrow.initiate_escrow(user, prop, 10, T0, random.Random(1))
    db_session.commit()

    assert process.status == 'inspection'
    assert process.lender_status == 'not_required'
    assert process.amount_cents == 1_000_050
    assert user.balance_cents == 2_000_000 - 1_000_050
    assert prop.available_shares == 90

    # inspection takes at least one real minute
    assert escrow.advance_escrow(process, T0 + timedelta(seconds=30)) is False
    assert escrow.advance_escrow(process, T0 + timedelta(minutes=5), random.Random(2)) is True
    db_session.commit()

    assert process.status == 'completed'
    assert process.inspection_status == 'passed'
    assert process.completed_at == process.inspection_due_at
    inv = Investment.query.filter_by(user_id=user.id, property_id=prop.id).one()
    assert inv.shares == 10
    assert inv.purchase_price_cents == 1_000_050
    # the rest of the listing went to mock investors
    assert prop.available_shares == 0
    assert prop.status == 'sold_out'
    assert mock_share_total(prop) + inv.shares == 100


def test_escrow_financed_purchase_goes_through_lender(db_session, sure_escrow, make_user, make_property):
    user = make_user(balance_cents=50_000_000)
    prop = make_property(user, property_class='A', price_cents=300_000_000)
    process = escrow.initiate_escrow(user, prop, 5, T0, random.Random(3))
    assert process.requires_financing is True
    assert process.lender_status == 'pending'

    escrow.advance_escrow(process, process.inspection_due_at)
    assert process.status == 'lender_approval'
    assert process.lender_status == 'in_progress'
    assert process.lender_started_at == process.inspection_due_at
    assert timedelta(minutes=2) <= process.lender_due_at - process.lender_started_at <= timedelta(minutes=4)

    escrow.advance_escrow(process, T0 + timedelta(minutes=10))
    db_session.commit()
    assert process.status == 'completed'
    assert process.lender_status == 'approved'
    assert process.completed_at == process.lender_due_at


def test_escrow_long_gap_resolves_every_step(db_session, sure_escrow, make_user, make_property):
    """One late call runs inspection and lender approval back to back."""
    user = make_user(balance_cents=50_000_000)
    prop = make_property(user, property_class='A', price_cents=300_000_000)
    process = escrow.initiate_escrow(user, prop, 5, T0, random.Random(4))
    escrow.advance_escrow(process, T0 + timedelta(hours=3))
    assert process.status == 'completed'


def test_escrow_lender_rejection_refunds_with_interest(db_session, app, make_user, make_property):
    app.config['ESCROW_INSPECTION_FAILURE_RATE'] = 0.0
    app.config['ESCROW_LENDER_REJECTION_RATE'] = 1.0
    user = make_user(balance_cents=50_000_000)
    prop = make_property(user, property_class='A', price_cents=300_000_000)
    process = escrow.initiate_escrow(user, prop, 5, T0, random.Random(5))
    assert user.balance_cents == 50_000_000 - 15_000_000

    escrow.advance_escrow(process, T0 + timedelta(minutes=10), random.Random(6))
    db_session.commit()
    assert process.status == 'rejected'
    assert process.lender_status == 'rejected'
    assert process.rejection_reason in escrow.LENDER_REJECTION_REASONS
    assert process.interest_cents > 0
    assert process.interest_cents == escrow.escrow_interest_cents(process, process.completed_at)
    assert user.balance_cents == 50_000_000 + process.interest_cents
    assert prop.available_shares == 100
    assert Investment.query.count() == 0


def test_escrow_inspection_failure(db_session, app, make_user, make_property):
    app.config['ESCROW_INSPECTION_FAILURE_RATE'] = 1.0
    user = make_user()
    prop = make_property(user, property_class='C')
    process = escrow.initiate_escrow(user, prop, 10, T0, random.Random(7))
    escrow.advance_escrow(process, T0 + timedelta(minutes=5), random.Random(8))
    db_session.commit()
    assert process.status == 'rejected'
    assert process.inspection_status == 'failed'
    assert process.rejection_reason in escrow.INSPECTION_FAILURE_REASONS

    # terminal processes are left alone
    balance = user.balance_cents
    assert escrow.advance_escrow(process, T0 + timedelta(hours=5)) is False
    assert user.balance_cents == balance


def test_escrow_refund_on_closed_listing_goes_to_market(db_session, app, make_user, make_property):
    """Shares released after the listing closed are absorbed by mock investors."""
    app.config['ESCROW_INSPECTION_FAILURE_RATE'] = 1.0
    user = make_user()
    prop = make_property(user, property_class='C')
    process = escrow.initiate_escrow(user, prop, 10, T0, random.Random(9))
    # the other 90 shares sold while the purchase was in escrow
    prop.available_shares = 0
    prop.status = 'sold_out'
    escrow.advance_escrow(process, T0 + timedelta(minutes=5))
    db_session.commit()
    assert prop.available_shares == 0
    assert mock_share_total(prop) == 10


def test_escrow_interest_uses_game_time(db_session, make_user, make_property):
    """Two real minutes are two game days of 2% annual interest."""
    user = make_user()
    prop = make_property(user)
    process = escrow.initiate_escrow(user, prop, 10, T0, random.Random(10))
    # 1_000_050 * 0.02 * 2 / 365 = 109.59
    assert escrow.escrow_interest_cents(process, T0 + timedelta(minutes=2)) == 110


def test_escrow_insufficient_funds(db_session, make_user, make_property):
    user = make_user(balance_cents=1000)
    prop = make_property(user)
    with pytest.raises(InsufficientFunds):
        escrow.initiate_escrow(user, prop, 10, T0)
    assert EscrowProcess.query.count() == 0
    assert prop.available_shares == 100
    assert user.balance_cents == 1000


@pytest.mark.parametrize("shares", [0, -1, 101, 'ten'])
def test_escrow_invalid_share_counts(db_session, make_user, make_property, shares):
    user = make_user()
    prop = make_property(user)
    with pytest.raises(InvalidPurchase):
        escrow.initiate_escrow(user, prop, shares, T0)


def test_escrow_more_than_available(db_session, make_user, make_property):
    user = make_user()
    prop = make_property(user, available_shares=5)
    with pytest.raises(InvalidPurchase):
        escrow.initiate_escrow(user, prop, 6, T0)


def test_escrow_requires_listed_property(db_session, make_user, make_property):
    user = make_user()
    prop = make_property(user, status='pending')
    with pytest.raises(InvalidPurchase):
        escrow.initiate_escrow(user, prop, 1, T0)


def test_escrow_other_users_market(db_session, make_user, make_property):
    alice = make_user('alice')
    bob = make_user('bob')
    prop = make_property(bob)
    with pytest.raises(InvalidPurchase):
        escrow.initiate_escrow(alice, prop, 1, T0)


@pytest.mark.parametrize("property_class,roll,expected", [
    ('C', 0.0, False),
    ('A', 0.99, True),
    ('B', 0.5, True),
    ('B', 0.8, False),
])
def test_escrow_financing_rules(db_session, property_class, roll, expected):
    class FixedRoll:
        def random(self):
            return roll
    assert escrow.requires_financing(property_class, FixedRoll()) is expected


def test_escrow_stats(db_session, app, make_user, make_property):
    app.config['ESCROW_INSPECTION_FAILURE_RATE'] = 0.0
    user = make_user()
    ok = make_property(user)
    bad = make_property(user)
    first = escrow.initiate_escrow(user, ok, 5, T0, random.Random(11))
    escrow.advance_escrow(first, T0 + timedelta(minutes=5))
    app.config['ESCROW_INSPECTION_FAILURE_RATE'] = 1.0
    second = escrow.initiate_escrow(user, bad, 5, T0, random.Random(12))
    escrow.advance_escrow(second, T0 + timedelta(minutes=5))
    escrow.initiate_escrow(user, bad, 5, T0 + timedelta(minutes=6), random.Random(13))
    db_session.commit()

    stats = escrow.escrow_stats(user)
    assert stats['total'] == 3
    assert stats['active'] == 1
    assert stats['completed'] == 1
    assert stats['rejected'] == 1
    assert stats['success_rate'] == 50.0
    assert stats['inspection_failure_rate'] == 50.0
    assert 1 <= stats['average_completion_minutes'] <= 3


def test_purchase_without_escrow_settles_immediately(db_session, app, make_user, make_property):
    app.config['ESCROW_ENABLED'] = False
    app.config['MOCK_INVESTOR_FILL'] = False
    user = make_user()
    prop = make_property(user)
    inv = purchases.buy_shares(user, prop, 10, T0)
    db_session.commit()
    assert isinstance(inv, Investment)
    assert inv.purchase_game_time == T0
    assert user.balance_cents == 2_000_000 - 1_000_050
    assert prop.available_shares == 90
    assert prop.status == 'available'

    # a second buy extends the same holding
    purchases.buy_shares(user, prop, 5, T0 + timedelta(minutes=1))
    db_session.commit()
    assert Investment.query.count() == 1
    assert inv.shares == 15
    assert inv.purchase_price_cents == 15 * 100_005


def test_purchase_extension_applies_appreciation_before_rent(db_session, app, make_user, make_property,
                                                             make_investment):
    """
    Adding shares 95 game days in pays the old holding's rent first, with the
    Apr 1 appreciation landing before the third month.
    """
    app.config['ESCROW_ENABLED'] = False
    app.config['MOCK_INVESTOR_FILL'] = False
    user = make_user()
    prop = make_property(user)
    inv = make_investment(user, prop, shares=10)

    purchases.buy_shares(user, prop, 5, T0 + timedelta(minutes=95))
    db_session.commit()
    amounts = [p.amount_cents for p in inv.rental_payments.all()]
    assert amounts[:2] == [5000, 5000]
    assert amounts[2] > 5000
    assert [p.shares for p in inv.rental_payments.all()] == [10, 10, 10]
    assert prop.appreciation_records.count() == 1
    assert inv.shares == 15
    assert inv.months_paid == 3

    # a sync at the same instant has nothing left to pay
    summary = progress.synchronize(user, T0 + timedelta(minutes=95), random.Random(14))
    db_session.commit()
    assert summary['rental_payments'] == 0
    assert summary['appreciation_cents'] == 0
    assert [p.amount_cents for p in inv.rental_payments.all()] == amounts


def test_escrow_rejection_fill_uses_given_rng(db_session, app, make_user, make_property):
    """Two refunds replayed with the same seed hand shares to the same investors."""
    app.config['ESCROW_INSPECTION_FAILURE_RATE'] = 1.0
    results = []
    for name in ('alice', 'bob'):
        user = make_user(name)
        prop = make_property(user)
        process = escrow.initiate_escrow(user, prop, 10, T0, random.Random(15))
        prop.available_shares = 0
        prop.status = 'sold_out'
        escrow.advance_escrow(process, T0 + timedelta(minutes=5), random.Random(16))
        db_session.commit()
        results.append([(i.username, i.shares) for i in prop.mock_investors.all()])
    assert results[0] == results[1]
