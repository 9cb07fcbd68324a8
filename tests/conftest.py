import random
from datetime import datetime, timedelta

import pytest
from fracestate import create_app, db
from fracestate.config import TestingConfig
from fracestate.models import Investment, Property, User
from fracestate.services import clock, ledger

# Real time every test world starts at. With the default multiplier one real
# minute is one game day, so T0 + 90 minutes is game time T0 + 90 days.
T0 = datetime(2025, 1, 1, 12, 0, 0)


@pytest.fixture(scope='function')
def app():
    """
    A fresh app per test. The in-memory SQLite database lives as long as the
    app's engine, so every test starts from empty tables.
    """
    app = create_app(config_class=TestingConfig)
    yield app


@pytest.fixture(scope='function')
def db_session(app):
    """The Flask-SQLAlchemy session inside an app context."""
    with app.app_context():
        yield db.session
        db.session.remove()


@pytest.fixture(scope='function')
def client(app):
    """A Flask test client to make HTTP requests during integration tests."""
    return app.test_client()


@pytest.fixture
def rng():
    return random.Random(1234)


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def frozen_clock(monkeypatch):
    """Pins clock.utcnow() (used by routes and services) to a movable instant."""
    fc = FrozenClock(T0)
    monkeypatch.setattr(clock, 'utcnow', lambda: fc.now)
    return fc


@pytest.fixture
def make_user(db_session):
    def _make_user(username='alice', balance_cents=2_000_000, now=T0):
        user = User(username=username, balance_cents=0, created_at=now)
        db_session.add(user)
        db_session.flush()
        clock.get_or_create_clock(user, now)
        if balance_cents:
            ledger.credit(user, balance_cents, 'deposit', game_time=now)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture
def make_property(db_session):
    # $100,005 listing: the lease variation for a price ending in 05 is zero
    def _make_property(user, property_class='C', price_cents=10_000_500, rental_yield=0.06,
                       available_shares=100, now=T0, contract_hours=12, status='available'):
        prop = Property(
            user_id=user.id,
            property_class=property_class,
            address='100 Main St',
            city='Austin',
            state='TX',
            region='southwest',
            property_type='Starter home',
            amenities=['Parking'],
            price_cents=price_cents,
            original_value_cents=price_cents,
            current_value_cents=price_cents,
            rental_yield=rental_yield,
            appreciation_rate=0.08,
            last_appreciation_at=now,
            total_shares=100,
            available_shares=available_shares,
            share_price_cents=price_cents // 100,
            status=status,
            created_at=now,
            contract_time=now + timedelta(hours=contract_hours)
        )
        db_session.add(prop)
        db_session.commit()
        return prop
    return _make_property


@pytest.fixture
def make_investment(db_session):
    def _make_investment(user, prop, shares=10, game_time=T0):
        inv = Investment(
            user_id=user.id,
            property_id=prop.id,
            shares=shares,
            purchase_price_cents=prop.share_price_cents * shares,
            current_value_cents=prop.current_value_cents * shares // prop.total_shares,
            purchase_game_time=game_time,
            months_paid=0,
            created_at=game_time
        )
        prop.available_shares -= shares
        db_session.add(inv)
        db_session.commit()
        return inv
    return _make_investment
