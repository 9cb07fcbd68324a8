# fracestate/services/rental.py
import logging
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from .. import db
from ..models import Investment, RentalPayment
from . import clock, ledger

logger = logging.getLogger(__name__)


def to_cents(amount):
    return int(Decimal(amount).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def lease_variation(price_cents):
    """
    Deterministic -5%..+5% lease adjustment taken from the last two digits
    of the listing price in dollars, so a property always rents for the same
    "real lease" amount.
    """
    dollars = price_cents // 100
    seed = dollars % 100
    return Decimal(seed % 11 - 5) / Decimal(100)


def monthly_rent_cents(prop, shares):
    annual = (Decimal(prop.current_value_cents)
              * Decimal(str(prop.rental_yield))
              * (1 + lease_variation(prop.price_cents)))
    per_share = annual / 12 / Decimal(prop.total_shares)
    return to_cents(per_share * shares)


def next_rent_due(investment):
    return investment.month_due_date(investment.months_paid + 1,
                                     current_app.config['GAME_MONTH_DAYS'])


def pay_rent(investment, month, game_time):
    """
    Pays rent for one game month of an investment. Months are paid strictly
    in order; a month that is already paid is skipped.
    """
    if month <= investment.months_paid:
        return None
    if month != investment.months_paid + 1:
        raise ValueError(f'Rent month {month} paid out of order for investment {investment.id}')
    existing = RentalPayment.query.filter_by(investment_id=investment.id, month=month).first()
    if existing:
        investment.months_paid = month
        return None

    amount = monthly_rent_cents(investment.property, investment.shares)
    payment = RentalPayment(
        investment_id=investment.id,
        month=month,
        shares=investment.shares,
        amount_cents=amount,
        game_time=game_time,
        created_at=clock.utcnow()
    )
    db.session.add(payment)
    db.session.flush()
    investment.months_paid = month
    if amount > 0:
        ledger.credit(investment.user, amount, 'rent',
                      reference=('rental_payment', payment.id), game_time=game_time)
    return payment


def accrue_rent(investment, up_to_game_time):
    """Pays every month that fell due on or before ``up_to_game_time``."""
    payments = []
    due = next_rent_due(investment)
    while due <= up_to_game_time:
        payment = pay_rent(investment, investment.months_paid + 1, due)
        if payment:
            payments.append(payment)
        due = next_rent_due(investment)
    return payments


def rental_history(user, property_id=None):
    q = RentalPayment.query.join(Investment).filter(Investment.user_id == user.id)
    if property_id is not None:
        q = q.filter(Investment.property_id == property_id)
    return q.order_by(RentalPayment.game_time, RentalPayment.id).all()


def rental_income_total(user):
    total = db.session.query(db.func.coalesce(db.func.sum(RentalPayment.amount_cents), 0)) \
        .join(Investment).filter(Investment.user_id == user.id).scalar()
    return int(total or 0)
