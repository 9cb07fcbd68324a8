# fracestate/services/pool.py
"""
Keeps each user's market of listings stocked and moves listings through
available -> ending_soon -> pending -> sold_out as their contract timers
run out.
"""
import logging
import math
import random
from datetime import timedelta

from flask import current_app

from .. import db
from ..models import (AppreciationRecord, EscrowProcess, Investment, MockInvestor, Property,
                      WatchlistItem)
from . import generator, mock_investors

logger = logging.getLogger(__name__)

LISTED = ('available', 'ending_soon')


def listed_properties(user):
    return user.properties.filter(Property.status.in_(LISTED)).order_by(Property.id).all()


def initialize_pool(user, now, rng=random):
    """Generates listings until the user's market holds POOL_MIN_SIZE of them."""
    needed = current_app.config['POOL_MIN_SIZE'] - len(listed_properties(user))
    if needed <= 0:
        return []
    props = generator.generate_batch(user, needed, now, rng)
    logger.info("Initialized pool for user %s with %s properties", user.id, len(props))
    return props


def update_property_statuses(user, now, rng=random):
    """
    Applies contract timers as of ``now``. Returns the (contracted, sold)
    listings that changed status during this call.
    """
    cfg = current_app.config
    ending_soon = timedelta(minutes=cfg['POOL_ENDING_SOON_MINUTES'])
    pending_for = timedelta(minutes=cfg['POOL_PENDING_MINUTES'])
    contracted, sold = [], []

    active = user.properties.filter(Property.status.in_(LISTED + ('pending',))) \
        .order_by(Property.id).all()
    for prop in active:
        if prop.is_listed:
            if now >= prop.contract_time:
                prop.status = 'pending'
                prop.pending_since = prop.contract_time
                contracted.append(prop)
            elif prop.status == 'available' and now >= prop.contract_time - ending_soon:
                prop.status = 'ending_soon'

        if prop.status == 'pending' and now >= prop.pending_since + pending_for:
            prop.status = 'sold_out'
            prop.sold_at = prop.pending_since + pending_for
            mock_investors.fill_remaining_shares(prop, prop.sold_at, rng)
            sold.append(prop)

    if contracted or sold:
        logger.info("User %s: %s listings went under contract, %s sold out",
                    user.id, len(contracted), len(sold))
    return contracted, sold


def replenish_pool(user, now, rng=random):
    cfg = current_app.config
    needed = cfg['POOL_MIN_SIZE'] - len(listed_properties(user))
    if needed <= 0:
        return []
    return generator.generate_batch(user, min(needed, cfg['POOL_MAX_BATCH']), now, rng)


def cleanup_sold_properties(user, now):
    """
    Deletes sold-out listings past the retention window that no investment
    or escrow refers to. Returns the number removed.
    """
    cutoff = now - timedelta(days=current_app.config['POOL_CLEANUP_RETENTION_DAYS'])
    candidates = user.properties.filter(Property.status == 'sold_out',
                                        Property.sold_at < cutoff).all()
    removed = 0
    for prop in candidates:
        if Investment.query.filter_by(property_id=prop.id).count():
            continue
        if EscrowProcess.query.filter_by(property_id=prop.id).count():
            continue
        MockInvestor.query.filter_by(property_id=prop.id).delete(synchronize_session=False)
        AppreciationRecord.query.filter_by(property_id=prop.id).delete(synchronize_session=False)
        WatchlistItem.query.filter_by(property_id=prop.id).delete(synchronize_session=False)
        db.session.delete(prop)
        removed += 1
    if removed:
        db.session.flush()
        logger.info("Cleaned up %s sold-out properties for user %s", removed, user.id)
    return removed


def validate_class_distribution(properties):
    tolerance = current_app.config['POOL_CLASS_TOLERANCE']
    total = len(properties)
    counts = {cls: 0 for cls in generator.CLASS_WEIGHTS}
    for prop in properties:
        counts[prop.property_class] += 1

    percentages = {cls: (counts[cls] / total if total else 0.0) for cls in counts}
    under = [cls for cls, target in generator.CLASS_WEIGHTS.items()
             if total and percentages[cls] < target - tolerance]
    over = [cls for cls, target in generator.CLASS_WEIGHTS.items()
            if total and percentages[cls] > target + tolerance]
    return {
        'valid': not under and not over,
        'total': total,
        'counts': counts,
        'percentages': {cls: round(p * 100, 2) for cls, p in percentages.items()},
        'under_represented': under,
        'over_represented': over
    }


def correct_distribution(user, now, rng=random):
    """Generates listings of under-represented classes, at most POOL_CORRECTIVE_BATCH."""
    listed = listed_properties(user)
    result = validate_class_distribution(listed)
    if result['valid']:
        return []

    budget = current_app.config['POOL_CORRECTIVE_BATCH']
    created = []
    for cls in result['under_represented']:
        target = generator.CLASS_WEIGHTS[cls] * result['total']
        missing = math.ceil(target - result['counts'][cls])
        for _ in range(min(missing, budget - len(created))):
            created.append(generator.generate_property(user, now, rng, property_class=cls))
    if created:
        logger.info("Added %s listings to rebalance classes for user %s", len(created), user.id)
    return created


def run_maintenance(user, now, rng=random):
    contracted, sold = update_property_statuses(user, now, rng)
    removed = cleanup_sold_properties(user, now)
    added = replenish_pool(user, now, rng)
    corrected = correct_distribution(user, now, rng)
    summary = {
        'contracted': len(contracted),
        'sold': len(sold),
        'removed': removed,
        'generated': len(added),
        'rebalanced': len(corrected),
        'listed': len(listed_properties(user))
    }
    logger.info("Pool maintenance for user %s: %s", user.id, summary)
    return summary


def pool_stats(user):
    props = user.properties.all()
    by_status = {'available': 0, 'ending_soon': 0, 'pending': 0, 'sold_out': 0}
    for prop in props:
        by_status[prop.status] += 1
    listed = [p for p in props if p.is_listed]
    distribution = validate_class_distribution(listed)
    return {
        'user_id': user.id,
        'total': len(props),
        'listed': len(listed),
        'by_status': by_status,
        'by_class': distribution['counts'],
        'class_distribution_valid': distribution['valid'],
        'min_size': current_app.config['POOL_MIN_SIZE'],
        'needs_replenishment': len(listed) < current_app.config['POOL_MIN_SIZE']
    }
