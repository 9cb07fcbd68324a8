# fracestate/services/ledger.py
import logging

from .. import db
from ..errors import InsufficientFunds, NotFound, ServiceError
from ..models import User, LedgerEntry
from . import clock

logger = logging.getLogger(__name__)


def locked_user(user_id):
    """Loads a user row for a balance change (row lock where the backend supports it)."""
    user = db.session.get(User, user_id, with_for_update=True)
    if not user:
        raise NotFound('User not found')
    return user


def _post(user, amount_cents, kind, reference=None, game_time=None):
    ref_type, ref_id = reference if reference else (None, None)
    user.balance_cents += amount_cents
    entry = LedgerEntry(
        user_id=user.id,
        kind=kind,
        amount_cents=amount_cents,
        balance_after_cents=user.balance_cents,
        reference_type=ref_type,
        reference_id=ref_id,
        game_time=game_time,
        created_at=clock.utcnow()
    )
    db.session.add(entry)
    return entry


def _check_amount(amount_cents):
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool):
        raise ServiceError('Ledger amounts must be integer cents')
    if amount_cents <= 0:
        raise ServiceError('Ledger amounts must be positive')


def credit(user, amount_cents, kind, reference=None, game_time=None):
    _check_amount(amount_cents)
    entry = _post(user, amount_cents, kind, reference, game_time)
    logger.info("Credited %s cents to user %s (%s)", amount_cents, user.id, kind)
    return entry


def ensure_funds(user, amount_cents):
    if user.balance_cents < amount_cents:
        raise InsufficientFunds(
            f'Insufficient balance. Need {amount_cents} cents but have {user.balance_cents} cents')


def debit(user, amount_cents, kind, reference=None, game_time=None):
    _check_amount(amount_cents)
    ensure_funds(user, amount_cents)
    entry = _post(user, -amount_cents, kind, reference, game_time)
    logger.info("Debited %s cents from user %s (%s)", amount_cents, user.id, kind)
    return entry


def entries_for(user, kind=None, limit=None):
    q = LedgerEntry.query.filter_by(user_id=user.id)
    if kind:
        q = q.filter_by(kind=kind)
    q = q.order_by(LedgerEntry.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()
