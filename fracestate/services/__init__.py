# services package

from .progress import synchronize
from .purchases import buy_shares, portfolio_value
from .pool import run_maintenance, pool_stats

__all__ = ["synchronize", "buy_shares", "portfolio_value", "run_maintenance", "pool_stats"]
