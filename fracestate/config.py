import os
# Define the base directory for the database file (the project root)
BASEDIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
DB_PATH = os.path.join(BASEDIR, 'fracestate.db')


def _env_float(name, default):
    return float(os.environ.get(name, default))


def _env_flag(name, default):
    return os.environ.get(name, '1' if default else '0') == '1'


class ValidationConfig:
    USERNAME_REGEX = os.environ.get('USERNAME_REGEX', r'^[A-Za-z0-9_.\-]+$')
    USERNAME_MAX_LENGTH = int(os.environ.get('USERNAME_MAX_LENGTH', 40))
    ENFORCE_UNIQUE_USERNAME_CASE_INSENSITIVE = os.environ.get('ENFORCE_UNIQUE_USERNAME_CASE_INSENSITIVE', '1') == '1'
    MAX_SHARES_PER_PURCHASE = int(os.environ.get('MAX_SHARES_PER_PURCHASE', 100))


class GameConfig:
    # 1 real minute = 1 game day, 30 real minutes = 1 game month
    TIME_MULTIPLIER = _env_float('TIME_MULTIPLIER', 1440)
    GAME_MONTH_DAYS = int(os.environ.get('GAME_MONTH_DAYS', 30))
    OFFLINE_THRESHOLD_MINUTES = _env_float('OFFLINE_THRESHOLD_MINUTES', 5)
    STARTING_BALANCE_CENTS = int(os.environ.get('STARTING_BALANCE_CENTS', 2_000_000))
    TOTAL_SHARES = 100

    # Appreciation
    APPRECIATION_FLAT_RATE = _env_float('APPRECIATION_FLAT_RATE', 0.08)
    APPRECIATION_USE_FLAT_RATE = _env_flag('APPRECIATION_USE_FLAT_RATE', True)
    APPRECIATION_CLASS_RATES = {'A': 0.08, 'B': 0.08, 'C': 0.08}
    APPRECIATION_VARIATION_ENABLED = _env_flag('APPRECIATION_VARIATION_ENABLED', False)
    APPRECIATION_VARIATION = _env_float('APPRECIATION_VARIATION', 0.2)
    APPRECIATION_MIN_RATE = 0.01
    APPRECIATION_MAX_RATE = 0.15
    APPRECIATION_COMPOUND_QUARTERLY = _env_flag('APPRECIATION_COMPOUND_QUARTERLY', True)
    APPRECIATION_MAX_QUARTERS = 12
    APPRECIATION_HISTORY_LIMIT = 20

    # Escrow
    ESCROW_ENABLED = _env_flag('ESCROW_ENABLED', True)
    ESCROW_INSPECTION_FAILURE_RATE = _env_float('ESCROW_INSPECTION_FAILURE_RATE', 0.1)
    ESCROW_LENDER_REJECTION_RATE = _env_float('ESCROW_LENDER_REJECTION_RATE', 0.1)
    ESCROW_INTEREST_RATE = _env_float('ESCROW_INTEREST_RATE', 0.02)
    ESCROW_FINANCING_PROBABILITY = _env_float('ESCROW_FINANCING_PROBABILITY', 0.7)
    ESCROW_INSPECTION_MINUTES = (1, 3)
    ESCROW_LENDER_MINUTES = (2, 4)
    MOCK_INVESTOR_FILL = _env_flag('MOCK_INVESTOR_FILL', True)

    # Property pool
    POOL_MIN_SIZE = int(os.environ.get('POOL_MIN_SIZE', 50))
    POOL_MAX_BATCH = int(os.environ.get('POOL_MAX_BATCH', 10))
    POOL_ENDING_SOON_MINUTES = _env_float('POOL_ENDING_SOON_MINUTES', 30)
    POOL_PENDING_MINUTES = _env_float('POOL_PENDING_MINUTES', 10)
    POOL_CLEANUP_RETENTION_DAYS = int(os.environ.get('POOL_CLEANUP_RETENTION_DAYS', 7))
    POOL_CLASS_TOLERANCE = 0.05
    POOL_CORRECTIVE_BATCH = 5
    # Real hours from listing until a property goes under contract
    CONTRACT_HOURS = {'A': (24, 36), 'B': (12, 24), 'C': (6, 6)}


class Config(GameConfig):
    """Base configuration class."""
    # Defaulting to a file-based SQLite database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///' + DB_PATH
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Secret Key is required by Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'a-very-secret-and-hard-to-guess-string'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class TestingConfig(Config):
    """Configuration used specifically for running Pytest."""
    TESTING = True
    # Use an in-memory SQLite database for fast, isolated testing
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ECHO = False
    LOG_LEVEL = 'WARNING'
    POOL_MIN_SIZE = 5
    POOL_MAX_BATCH = 5
