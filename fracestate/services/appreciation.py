# fracestate/services/appreciation.py
import logging
import random
from decimal import Decimal

from flask import current_app

from .. import db
from ..models import AppreciationRecord, Investment
from . import clock
from .rental import to_cents

logger = logging.getLogger(__name__)


def appreciation_rate_for(property_class, rng=random):
    """Annual appreciation rate for a property class, within the configured bounds."""
    cfg = current_app.config
    if cfg['APPRECIATION_USE_FLAT_RATE']:
        rate = cfg['APPRECIATION_FLAT_RATE']
    else:
        rate = cfg['APPRECIATION_CLASS_RATES'][property_class]
    if cfg['APPRECIATION_VARIATION_ENABLED']:
        variation = (rng.random() - 0.5) * 2 * cfg['APPRECIATION_VARIATION']
        rate = rate * (1 + variation)
    return max(cfg['APPRECIATION_MIN_RATE'], min(cfg['APPRECIATION_MAX_RATE'], rate))


def quarterly_rate(annual_rate):
    if current_app.config['APPRECIATION_COMPOUND_QUARTERLY']:
        return (1 + annual_rate) ** 0.25 - 1
    return annual_rate / 4


def quarters_between(last, current):
    return clock.quarter_index(current) - clock.quarter_index(last)


def revalue_investments(prop):
    for inv in prop.investments.all():
        inv.current_value_cents = to_cents(
            Decimal(prop.current_value_cents) * inv.shares / Decimal(prop.total_shares))


def apply_appreciation(prop, game_time):
    """
    Applies every calendar quarter that started since the property was last
    appreciated, up to APPRECIATION_MAX_QUARTERS. Returns the value change in
    cents (0 when still inside the same quarter).
    """
    cfg = current_app.config
    quarters = quarters_between(prop.last_appreciation_at, game_time)
    if quarters <= 0:
        return 0
    if quarters > cfg['APPRECIATION_MAX_QUARTERS']:
        logger.warning("Property %s: capping %s quarters of appreciation at %s",
                       prop.id, quarters, cfg['APPRECIATION_MAX_QUARTERS'])
        quarters = cfg['APPRECIATION_MAX_QUARTERS']

    rate = quarterly_rate(prop.appreciation_rate)
    start_value = prop.current_value_cents
    first_idx = clock.quarter_index(game_time) - quarters + 1
    for i in range(quarters):
        year, q = divmod(first_idx + i, 4)
        old_value = prop.current_value_cents
        new_value = to_cents(Decimal(old_value) * (1 + Decimal(str(rate))))
        prop.current_value_cents = new_value
        db.session.add(AppreciationRecord(
            property_id=prop.id,
            quarter=f"{year}-Q{q + 1}",
            gain_percent=rate * 100,
            old_value_cents=old_value,
            new_value_cents=new_value,
            game_time=game_time
        ))
    prop.last_appreciation_at = game_time
    db.session.flush()
    _trim_history(prop, cfg['APPRECIATION_HISTORY_LIMIT'])
    revalue_investments(prop)

    logger.info("Applied %s quarter(s) of appreciation to property %s: %s -> %s cents",
                quarters, prop.id, start_value, prop.current_value_cents)
    return prop.current_value_cents - start_value


def _trim_history(prop, limit):
    keep = [r.id for r in AppreciationRecord.query.filter_by(property_id=prop.id)
            .order_by(AppreciationRecord.id.desc()).limit(limit)]
    if keep:
        AppreciationRecord.query.filter(
            AppreciationRecord.property_id == prop.id,
            AppreciationRecord.id.notin_(keep)
        ).delete(synchronize_session=False)


def appreciation_summary(prop):
    current = prop.current_value_cents
    original = prop.original_value_cents
    total = current - original
    return {
        'property_id': prop.id,
        'current_value_cents': current,
        'original_value_cents': original,
        'total_appreciation_cents': total,
        'total_appreciation_percent': round(total / original * 100, 4) if original > 0 else 0.0,
        'annual_appreciation_rate_percent': round(prop.appreciation_rate * 100, 4),
        'quarterly_history': [r.to_dict() for r in prop.appreciation_records.all()]
    }


def portfolio_appreciation(user):
    invs = Investment.query.filter_by(user_id=user.id).all()
    original = sum(i.purchase_price_cents for i in invs)
    current = sum(i.current_value_cents for i in invs)
    total = current - original
    return {
        'total_appreciation_cents': total,
        'total_appreciation_percent': round(total / original * 100, 4) if original > 0 else 0.0,
        'total_original_value_cents': original,
        'total_current_value_cents': current
    }
