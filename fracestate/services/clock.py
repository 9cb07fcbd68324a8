# fracestate/services/clock.py
import logging
from datetime import datetime, timedelta, timezone

from flask import current_app

from .. import db
from ..models import GameClock

logger = logging.getLogger(__name__)


def utcnow():
    """Real wall-clock time as naive UTC. Tests monkeypatch this."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_game_time(real_time, base_game_time, base_real_time, multiplier=None):
    """
    Maps a real instant onto the accelerated game clock anchored at
    (base_real_time, base_game_time). Real time before the anchor maps to the
    anchor itself so the game clock never runs backwards.
    """
    if multiplier is None:
        multiplier = current_app.config['TIME_MULTIPLIER']
    real_elapsed = real_time - base_real_time
    if real_elapsed < timedelta(0):
        real_elapsed = timedelta(0)
    return base_game_time + real_elapsed * multiplier


def get_or_create_clock(user, now):
    clock = GameClock.query.filter_by(user_id=user.id).first()
    if clock:
        return clock
    # New player: game time starts at real time
    clock = GameClock(user_id=user.id, game_start_time=now,
                      current_game_time=now, last_real_time=now)
    db.session.add(clock)
    db.session.flush()
    logger.info("Initialized game clock for user %s at %s", user.id, now.isoformat())
    return clock


def game_time_at(clock, real_time):
    """Game time of a real instant inside the clock's not-yet-synced window."""
    return to_game_time(real_time, clock.current_game_time, clock.last_real_time)


def game_month_length():
    return timedelta(days=current_app.config['GAME_MONTH_DAYS'])


def game_months_between(start, end):
    """Whole game months between two game times."""
    if end <= start:
        return 0
    return int((end - start) / game_month_length())


def quarter_of(game_time):
    return (game_time.month - 1) // 3 + 1


def quarter_label(game_time):
    return f"{game_time.year}-Q{quarter_of(game_time)}"


def quarter_index(game_time):
    return game_time.year * 4 + quarter_of(game_time) - 1


def quarter_starts_between(start, end):
    """
    Yields the first instant of every calendar quarter q such that
    start < q <= end.
    """
    idx = quarter_index(start) + 1
    while True:
        year, q = divmod(idx, 4)
        boundary = datetime(year, q * 3 + 1, 1)
        if boundary > end:
            return
        yield boundary
        idx += 1
