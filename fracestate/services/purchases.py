# fracestate/services/purchases.py
import logging
import random
from decimal import Decimal

from flask import current_app

from .. import db
from ..config import ValidationConfig
from ..errors import InvalidPurchase
from ..models import Investment
from . import clock, income, ledger, mock_investors, rental
from .rental import to_cents

logger = logging.getLogger(__name__)


def quote(prop, shares):
    return prop.share_price_cents * shares


def validate_purchase(user, prop, shares):
    if prop.user_id != user.id:
        raise InvalidPurchase("Property is not listed in this user's market")
    if not isinstance(shares, int) or isinstance(shares, bool) or shares <= 0:
        raise InvalidPurchase('Shares must be a positive integer')
    max_shares = ValidationConfig.MAX_SHARES_PER_PURCHASE
    if shares > max_shares:
        raise InvalidPurchase(f'Cannot buy more than {max_shares} shares at once')
    if not prop.is_listed:
        raise InvalidPurchase(f'Property is {prop.status} and no longer accepting investments')
    if shares > prop.available_shares:
        raise InvalidPurchase(f'Only {prop.available_shares} shares available')


def buy_shares(user, prop, shares, now, rng=random):
    """
    Buys shares of a listing. With escrow enabled this opens an
    EscrowProcess; otherwise the purchase settles at once and the
    Investment is returned.
    """
    if current_app.config['ESCROW_ENABLED']:
        from .escrow import initiate_escrow
        return initiate_escrow(user, prop, shares, now, rng)

    validate_purchase(user, prop, shares)
    amount = quote(prop, shares)
    game_time = clock.game_time_at(clock.get_or_create_clock(user, now), now)
    ledger.debit(user, amount, 'purchase', reference=('property', prop.id), game_time=game_time)
    prop.available_shares -= shares
    return settle_purchase(user, prop, shares, amount, game_time, now, rng)


def settle_purchase(user, prop, shares, amount_cents, game_time, now, rng=random):
    """
    Turns paid-for shares into an Investment. The shares must already be
    out of ``prop.available_shares``.

    A first investment starts the rent schedule and the appreciation clock
    at ``game_time``. Extra shares in a held property join the existing
    schedule after the old holding has been brought up to ``game_time``:
    rent owed so far is paid, with any quarterly appreciation due by then
    applied first.
    """
    inv = Investment.query.filter_by(user_id=user.id, property_id=prop.id).first()
    if inv is None:
        if prop.investments.count() == 0:
            prop.last_appreciation_at = game_time
        inv = Investment(
            user_id=user.id,
            property_id=prop.id,
            shares=shares,
            purchase_price_cents=amount_cents,
            current_value_cents=0,
            purchase_game_time=game_time,
            months_paid=0,
            created_at=now
        )
        db.session.add(inv)
    else:
        income.accrue_income([inv], game_time)
        inv.shares += shares
        inv.purchase_price_cents += amount_cents
    inv.current_value_cents = to_cents(
        Decimal(prop.current_value_cents) * inv.shares / Decimal(prop.total_shares))

    if current_app.config['MOCK_INVESTOR_FILL']:
        mock_investors.fill_remaining_shares(prop, now, rng)
    if prop.available_shares == 0 and prop.status != 'sold_out':
        prop.status = 'sold_out'
        prop.sold_at = now
    db.session.flush()

    logger.info("User %s now holds %s shares of property %s", user.id, inv.shares, prop.id)
    return inv


def user_investments(user):
    return user.investments.order_by(Investment.id).all()


def portfolio_value(user):
    investments = user_investments(user)
    invested = sum(i.purchase_price_cents for i in investments)
    current = sum(i.current_value_cents for i in investments)
    rent = rental.rental_income_total(user)
    return {
        'user_id': user.id,
        'balance_cents': user.balance_cents,
        'investment_count': len(investments),
        'total_shares': sum(i.shares for i in investments),
        'total_invested_cents': invested,
        'current_value_cents': current,
        'unrealized_gain_cents': current - invested,
        'rental_income_cents': rent,
        'net_worth_cents': user.balance_cents + current,
        'investments': [i.to_dict() for i in investments]
    }
