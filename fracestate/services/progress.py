# fracestate/services/progress.py
import logging
import random
from datetime import timedelta

from flask import current_app

from . import clock, escrow, income, pool

logger = logging.getLogger(__name__)


def _dollars(cents):
    return f"${cents / 100:,.2f}"


def synchronize(user, now, rng=random):
    """
    Brings a user's world up to real time ``now``: resolves due escrows,
    pays rent and appreciation for the game time that passed, moves the
    clock and refreshes the property pool. Safe to repeat; a second call
    with the same ``now`` finds nothing to do.
    """
    cfg = current_app.config
    clk = clock.get_or_create_clock(user, now)
    last_real = clk.last_real_time
    start_game = clk.current_game_time
    now = max(now, last_real)
    end_game = clock.game_time_at(clk, now)

    # escrows resolve against the clock as it stood before this sync
    finished = escrow.advance_user_escrows(user, now, rng)
    completed = [p for p in finished if p.status == 'completed']
    rejected = [p for p in finished if p.status == 'rejected']

    rent_cents, payments, appreciation_cents = income.accrue_income(user.investments.all(), end_game)

    clk.current_game_time = end_game
    clk.last_real_time = now

    contracted, sold = pool.update_property_statuses(user, now, rng)
    new_props = pool.replenish_pool(user, now, rng)

    offline = now - last_real
    game_elapsed = end_game - start_game
    summary = {
        'was_offline': offline > timedelta(minutes=cfg['OFFLINE_THRESHOLD_MINUTES']),
        'offline_seconds': int(offline.total_seconds()),
        'game_seconds_elapsed': int(game_elapsed.total_seconds()),
        'game_months_elapsed': clock.game_months_between(start_game, end_game),
        'rental_income_cents': rent_cents,
        'rental_payments': payments,
        'appreciation_cents': appreciation_cents,
        'escrows_completed': len(completed),
        'escrows_rejected': len(rejected),
        'properties_contracted': len(contracted),
        'properties_sold': len(sold),
        'new_properties': len(new_props),
        'game_time': end_game.isoformat(),
        'balance_cents': user.balance_cents
    }
    summary['message'] = away_message(summary)
    logger.info("Synchronized user %s: %s", user.id, summary['message'])
    return summary


def away_message(summary):
    parts = []
    if summary['game_months_elapsed']:
        parts.append(f"{summary['game_months_elapsed']} game months passed")
    if summary['rental_income_cents']:
        parts.append(f"earned {_dollars(summary['rental_income_cents'])} in rent")
    if summary['appreciation_cents']:
        parts.append(f"portfolio value changed by {_dollars(summary['appreciation_cents'])}")
    if summary['escrows_completed']:
        parts.append(f"{summary['escrows_completed']} purchases closed")
    if summary['escrows_rejected']:
        parts.append(f"{summary['escrows_rejected']} purchases fell through")
    if summary['properties_sold']:
        parts.append(f"{summary['properties_sold']} listings sold out")
    if summary['new_properties']:
        parts.append(f"{summary['new_properties']} new listings arrived")
    if not parts:
        return "While away: nothing changed"
    return "While away: " + ", ".join(parts)
