# fracestate/services/income.py
import logging

from flask import current_app

from . import appreciation, clock, rental

logger = logging.getLogger(__name__)

APPRECIATION, RENT = 0, 1


def accrue_income(investments, end_game):
    """
    Pays rent and applies quarterly appreciation for ``investments`` up to
    ``end_game`` in game time order. At the same instant appreciation goes
    first so that rent is computed on the new value.

    Returns (rent_cents, payment_count, appreciation_cents).
    """
    cfg = current_app.config
    month = clock.game_month_length()

    events = []
    for inv in investments:
        due = rental.next_rent_due(inv)
        while due <= end_game:
            events.append((due, RENT, inv.id, inv))
            due += month

    capped = []
    for prop in {inv.property for inv in investments}:
        boundaries = list(clock.quarter_starts_between(prop.last_appreciation_at, end_game))
        if len(boundaries) > cfg['APPRECIATION_MAX_QUARTERS']:
            logger.warning("Property %s: %s quarters elapsed, applying the first %s",
                           prop.id, len(boundaries), cfg['APPRECIATION_MAX_QUARTERS'])
            boundaries = boundaries[:cfg['APPRECIATION_MAX_QUARTERS']]
            capped.append(prop)
        for boundary in boundaries:
            events.append((boundary, APPRECIATION, prop.id, prop))

    rent_cents, payments, appreciation_cents = 0, 0, 0
    for at, kind, _, obj in sorted(events, key=lambda e: e[:3]):
        if kind == APPRECIATION:
            appreciation_cents += appreciation.apply_appreciation(obj, at)
        else:
            payment = rental.pay_rent(obj, obj.months_paid + 1, at)
            if payment:
                rent_cents += payment.amount_cents
                payments += 1

    for prop in capped:
        prop.last_appreciation_at = end_game
    return rent_cents, payments, appreciation_cents
