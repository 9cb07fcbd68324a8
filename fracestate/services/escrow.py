# fracestate/services/escrow.py
"""
Escrow state machine gating share purchases.

A process moves inspection -> (lender_approval) -> completed, or to
rejected from either step. Due times are real time; ``advance_escrow``
runs every step whose due time has passed, so one call can resolve an
escrow that was left alone for hours. Funds are held in the ledger from
initiation and the reserved shares are taken out of the listing until
the process settles or is refunded.
"""
import logging
import random
from datetime import timedelta
from decimal import Decimal

from flask import current_app

from .. import db
from ..models import EscrowProcess
from . import clock, ledger, mock_investors, purchases
from .rental import to_cents

logger = logging.getLogger(__name__)

INSPECTION_FAILURE_REASONS = [
    'Foundation issues discovered',
    'Electrical system not up to code',
    'Plumbing problems identified',
    'Roof damage requiring immediate repair',
    'HVAC system failure',
    'Structural damage found',
    'Mold or water damage detected',
    'Pest infestation discovered',
]

LENDER_REJECTION_REASONS = [
    'Insufficient debt-to-income ratio',
    'Property appraisal came in below purchase price',
    'Credit score below lender requirements',
    'Employment verification failed',
    'Property type not eligible for financing',
    'Loan-to-value ratio exceeds limits',
]


def _minutes(bounds, rng):
    return timedelta(minutes=rng.uniform(*bounds))


def requires_financing(property_class, rng=random):
    if property_class == 'C':
        return False
    if property_class == 'A':
        return True
    return rng.random() < current_app.config['ESCROW_FINANCING_PROBABILITY']


def initiate_escrow(user, prop, shares, now, rng=random):
    """Holds the purchase amount, reserves the shares and starts inspection."""
    cfg = current_app.config
    purchases.validate_purchase(user, prop, shares)
    amount = purchases.quote(prop, shares)
    ledger.ensure_funds(user, amount)
    game_time = clock.game_time_at(clock.get_or_create_clock(user, now), now)

    financed = requires_financing(prop.property_class, rng)
    inspection_due = now + _minutes(cfg['ESCROW_INSPECTION_MINUTES'], rng)
    estimate = inspection_due
    if financed:
        estimate += timedelta(minutes=cfg['ESCROW_LENDER_MINUTES'][1])

    process = EscrowProcess(
        user_id=user.id,
        property_id=prop.id,
        shares=shares,
        amount_cents=amount,
        status='inspection',
        requires_financing=financed,
        inspection_status='in_progress',
        inspection_started_at=now,
        inspection_due_at=inspection_due,
        lender_status='pending' if financed else 'not_required',
        created_at=now,
        estimated_completion_at=estimate
    )
    db.session.add(process)
    db.session.flush()

    ledger.debit(user, amount, 'escrow_hold', reference=('escrow', process.id), game_time=game_time)
    prop.available_shares -= shares
    logger.info("Escrow %s opened: user %s, property %s, %s shares, %s cents, financing=%s",
                process.id, user.id, prop.id, shares, amount, financed)
    return process


def advance_escrow(process, now, rng=random):
    """
    Resolves every step of ``process`` that fell due on or before ``now``.
    Returns True when the process changed.
    """
    if process.is_terminal:
        return False
    cfg = current_app.config
    changed = False

    if process.status == 'inspection' and process.inspection_due_at <= now:
        at = process.inspection_due_at
        process.inspection_completed_at = at
        changed = True
        if rng.random() < cfg['ESCROW_INSPECTION_FAILURE_RATE']:
            process.inspection_status = 'failed'
            _reject(process, rng.choice(INSPECTION_FAILURE_REASONS), at, rng)
            return True
        process.inspection_status = 'passed'
        if not process.requires_financing:
            _complete(process, at, rng)
            return True
        process.status = 'lender_approval'
        process.lender_status = 'in_progress'
        process.lender_started_at = at
        process.lender_due_at = at + _minutes(cfg['ESCROW_LENDER_MINUTES'], rng)
        process.estimated_completion_at = process.lender_due_at

    if process.status == 'lender_approval' and process.lender_due_at <= now:
        at = process.lender_due_at
        process.lender_completed_at = at
        if rng.random() < cfg['ESCROW_LENDER_REJECTION_RATE']:
            process.lender_status = 'rejected'
            _reject(process, rng.choice(LENDER_REJECTION_REASONS), at, rng)
        else:
            process.lender_status = 'approved'
            _complete(process, at, rng)
        changed = True

    return changed


def escrow_interest_cents(process, at):
    """Annual escrow interest accrued over the process' duration in game time."""
    cfg = current_app.config
    real = at - process.created_at
    game_days = Decimal(real.total_seconds() * cfg['TIME_MULTIPLIER']) / Decimal(86400)
    rate = Decimal(str(cfg['ESCROW_INTEREST_RATE']))
    return to_cents(Decimal(process.amount_cents) * rate * game_days / Decimal(365))


def _game_time(process, at):
    return clock.game_time_at(clock.get_or_create_clock(process.user, at), at)


def _reject(process, reason, at, rng=random):
    process.status = 'rejected'
    process.rejection_reason = reason
    process.completed_at = at
    process.interest_cents = escrow_interest_cents(process, at)

    ledger.credit(process.user, process.amount_cents + process.interest_cents, 'escrow_refund',
                  reference=('escrow', process.id), game_time=_game_time(process, at))

    prop = process.property
    prop.available_shares += process.shares
    if prop.status == 'sold_out':
        # the listing has closed; the market absorbs the released shares
        mock_investors.fill_remaining_shares(prop, at, rng)
    logger.info("Escrow %s rejected (%s); refunded %s cents plus %s cents interest",
                process.id, reason, process.amount_cents, process.interest_cents)


def _complete(process, at, rng):
    process.status = 'completed'
    process.completed_at = at
    purchases.settle_purchase(process.user, process.property, process.shares,
                              process.amount_cents, _game_time(process, at), at, rng)
    logger.info("Escrow %s completed: %s shares of property %s", process.id,
                process.shares, process.property_id)


def open_escrows(user):
    return (EscrowProcess.query
            .filter_by(user_id=user.id)
            .filter(EscrowProcess.status.in_(['inspection', 'lender_approval']))
            .order_by(EscrowProcess.id)
            .all())


def advance_user_escrows(user, now, rng=random):
    """Advances all of a user's open escrows; returns those that finished."""
    finished = []
    for process in open_escrows(user):
        if advance_escrow(process, now, rng) and process.is_terminal:
            finished.append(process)
    return finished


def escrow_stats(user=None):
    q = EscrowProcess.query
    if user is not None:
        q = q.filter_by(user_id=user.id)
    processes = q.all()

    completed = [p for p in processes if p.status == 'completed']
    rejected = [p for p in processes if p.status == 'rejected']
    finished = len(completed) + len(rejected)
    inspected = [p for p in processes if p.inspection_status in ('passed', 'failed')]
    lender_decided = [p for p in processes if p.lender_status in ('approved', 'rejected')]

    durations = [(p.completed_at - p.created_at).total_seconds() / 60 for p in completed]

    def pct(part, whole):
        return round(part / whole * 100, 2) if whole else 0.0

    return {
        'total': len(processes),
        'active': len(processes) - finished,
        'completed': len(completed),
        'rejected': len(rejected),
        'success_rate': pct(len(completed), finished),
        'average_completion_minutes': round(sum(durations) / len(durations), 2) if durations else 0.0,
        'inspection_failure_rate': pct(
            len([p for p in inspected if p.inspection_status == 'failed']), len(inspected)),
        'lender_rejection_rate': pct(
            len([p for p in lender_decided if p.lender_status == 'rejected']), len(lender_decided))
    }
