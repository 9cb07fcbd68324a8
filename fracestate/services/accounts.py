# fracestate/services/accounts.py
"""
Starting a player's game over. A reset removes everything the player built
up (holdings, rent history, escrows, watchlist, ledger and their market)
and hands back a fresh world: starting balance, a new clock and a newly
stocked pool.
"""
import logging
import random

from flask import current_app

from .. import db
from ..models import (AppreciationRecord, EscrowProcess, Investment, LedgerEntry, MockInvestor,
                      Property, RentalPayment, WatchlistItem)
from . import clock, ledger, pool

logger = logging.getLogger(__name__)


def user_data_counts(user):
    """Rows still owned by a user, by kind."""
    investment_ids = db.select(Investment.id).where(Investment.user_id == user.id)
    property_ids = db.select(Property.id).where(Property.user_id == user.id)
    return {
        'investments': Investment.query.filter_by(user_id=user.id).count(),
        'rental_payments': RentalPayment.query.filter(
            RentalPayment.investment_id.in_(investment_ids)).count(),
        'escrows': EscrowProcess.query.filter_by(user_id=user.id).count(),
        'watchlist': WatchlistItem.query.filter_by(user_id=user.id).count(),
        'ledger_entries': LedgerEntry.query.filter_by(user_id=user.id).count(),
        'properties': Property.query.filter_by(user_id=user.id).count(),
        'mock_investors': MockInvestor.query.filter(
            MockInvestor.property_id.in_(property_ids)).count(),
        'appreciation_records': AppreciationRecord.query.filter(
            AppreciationRecord.property_id.in_(property_ids)).count()
    }


def clear_user_data(user):
    """Deletes every row a user owns except the user and its clock. Returns the counts removed."""
    db.session.flush()
    removed = user_data_counts(user)

    investment_ids = [i for (i,) in db.session.query(Investment.id).filter_by(user_id=user.id)]
    property_ids = [p for (p,) in db.session.query(Property.id).filter_by(user_id=user.id)]

    if investment_ids:
        RentalPayment.query.filter(RentalPayment.investment_id.in_(investment_ids)) \
            .delete(synchronize_session='fetch')
    Investment.query.filter_by(user_id=user.id).delete(synchronize_session='fetch')
    EscrowProcess.query.filter_by(user_id=user.id).delete(synchronize_session='fetch')
    WatchlistItem.query.filter_by(user_id=user.id).delete(synchronize_session='fetch')
    LedgerEntry.query.filter_by(user_id=user.id).delete(synchronize_session='fetch')
    if property_ids:
        MockInvestor.query.filter(MockInvestor.property_id.in_(property_ids)) \
            .delete(synchronize_session='fetch')
        AppreciationRecord.query.filter(AppreciationRecord.property_id.in_(property_ids)) \
            .delete(synchronize_session='fetch')
        WatchlistItem.query.filter(WatchlistItem.property_id.in_(property_ids)) \
            .delete(synchronize_session='fetch')
    Property.query.filter_by(user_id=user.id).delete(synchronize_session='fetch')
    db.session.flush()
    return removed


def reset_user(user, now, rng=random):
    """
    Clears a user's game and starts it again at real time ``now``. Returns
    the counts removed and the number of new listings.
    """
    removed = clear_user_data(user)

    clk = clock.get_or_create_clock(user, now)
    clk.game_start_time = now
    clk.current_game_time = now
    clk.last_real_time = now

    user.balance_cents = 0
    starting = current_app.config['STARTING_BALANCE_CENTS']
    if starting > 0:
        ledger.credit(user, starting, 'deposit', game_time=now)
    listings = pool.initialize_pool(user, now, rng)
    db.session.flush()

    logger.info("Reset user %s: removed %s", user.id, removed)
    return {
        'removed': removed,
        'new_properties': len(listings),
        'balance_cents': user.balance_cents,
        'clock': clk.to_dict()
    }
