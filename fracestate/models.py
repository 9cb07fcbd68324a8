# fracestate/models.py
from . import db
from datetime import timedelta


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(40), unique=True, nullable=False)
    balance_cents = db.Column(db.BigInteger, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False)

    clock = db.relationship('GameClock', back_populates='user', uselist=False)
    properties = db.relationship('Property', back_populates='user', lazy='dynamic')
    investments = db.relationship('Investment', back_populates='user', lazy='dynamic')
    escrow_processes = db.relationship('EscrowProcess', back_populates='user', lazy='dynamic')
    ledger_entries = db.relationship('LedgerEntry', back_populates='user', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'balance_cents': self.balance_cents,
            'created_at': _iso(self.created_at)
        }


class GameClock(db.Model):
    """Authoritative accelerated clock, one per user."""
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    game_start_time = db.Column(db.DateTime, nullable=False)
    current_game_time = db.Column(db.DateTime, nullable=False)
    last_real_time = db.Column(db.DateTime, nullable=False)

    user = db.relationship('User', back_populates='clock')

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'game_start_time': _iso(self.game_start_time),
            'current_game_time': _iso(self.current_game_time),
            'last_real_time': _iso(self.last_real_time)
        }


class Property(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    property_class = db.Column(db.String(1), nullable=False)  # 'A' | 'B' | 'C'
    address = db.Column(db.String(120), nullable=False)
    city = db.Column(db.String(80), nullable=False)
    state = db.Column(db.String(2), nullable=False)
    region = db.Column(db.String(20), nullable=False)
    property_type = db.Column(db.String(80))
    description = db.Column(db.Text)
    amenities = db.Column(db.JSON)
    sqft = db.Column(db.Integer)
    bedrooms = db.Column(db.Integer)
    bathrooms = db.Column(db.Integer)
    year_built = db.Column(db.Integer)

    price_cents = db.Column(db.BigInteger, nullable=False)
    original_value_cents = db.Column(db.BigInteger, nullable=False)
    current_value_cents = db.Column(db.BigInteger, nullable=False)
    rental_yield = db.Column(db.Float, nullable=False)
    appreciation_rate = db.Column(db.Float, nullable=False)
    last_appreciation_at = db.Column(db.DateTime, nullable=False)  # game time

    total_shares = db.Column(db.Integer, nullable=False, default=100)
    available_shares = db.Column(db.Integer, nullable=False)
    share_price_cents = db.Column(db.BigInteger, nullable=False)

    # 'available' | 'ending_soon' | 'pending' | 'sold_out'
    status = db.Column(db.String(20), nullable=False, default='available')
    created_at = db.Column(db.DateTime, nullable=False)
    contract_time = db.Column(db.DateTime, nullable=False)
    pending_since = db.Column(db.DateTime)
    sold_at = db.Column(db.DateTime)

    user = db.relationship('User', back_populates='properties')
    investments = db.relationship('Investment', back_populates='property', lazy='dynamic')
    mock_investors = db.relationship('MockInvestor', back_populates='property', lazy='dynamic')
    appreciation_records = db.relationship('AppreciationRecord', back_populates='property',
                                           order_by='AppreciationRecord.id', lazy='dynamic')

    @property
    def is_listed(self):
        return self.status in ('available', 'ending_soon')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'class': self.property_class,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'region': self.region,
            'property_type': self.property_type,
            'description': self.description,
            'amenities': self.amenities or [],
            'sqft': self.sqft,
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'year_built': self.year_built,
            'price_cents': self.price_cents,
            'current_value_cents': self.current_value_cents,
            'rental_yield': self.rental_yield,
            'appreciation_rate': self.appreciation_rate,
            'total_shares': self.total_shares,
            'available_shares': self.available_shares,
            'share_price_cents': self.share_price_cents,
            'status': self.status,
            'created_at': _iso(self.created_at),
            'contract_time': _iso(self.contract_time),
            'pending_since': _iso(self.pending_since),
            'sold_at': _iso(self.sold_at)
        }


class AppreciationRecord(db.Model):
    """One quarter of appreciation applied to a property."""
    id = db.Column(db.Integer, primary_key=True)
    property_id = db.Column(db.Integer, db.ForeignKey('property.id'), nullable=False)
    quarter = db.Column(db.String(7), nullable=False)  # "2025-Q1"
    gain_percent = db.Column(db.Float, nullable=False)
    old_value_cents = db.Column(db.BigInteger, nullable=False)
    new_value_cents = db.Column(db.BigInteger, nullable=False)
    game_time = db.Column(db.DateTime, nullable=False)

    property = db.relationship('Property', back_populates='appreciation_records')

    def to_dict(self):
        return {
            'quarter': self.quarter,
            'gain_percent': round(self.gain_percent, 6),
            'old_value_cents': self.old_value_cents,
            'new_value_cents': self.new_value_cents,
            'game_time': _iso(self.game_time)
        }


class Investment(db.Model):
    __table_args__ = (db.UniqueConstraint('user_id', 'property_id'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    property_id = db.Column(db.Integer, db.ForeignKey('property.id'), nullable=False)
    shares = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.BigInteger, nullable=False)
    current_value_cents = db.Column(db.BigInteger, nullable=False)
    purchase_game_time = db.Column(db.DateTime, nullable=False)
    months_paid = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False)

    user = db.relationship('User', back_populates='investments')
    property = db.relationship('Property', back_populates='investments')
    rental_payments = db.relationship('RentalPayment', back_populates='investment',
                                      order_by='RentalPayment.month', lazy='dynamic')

    def month_due_date(self, month, month_days):
        """Game time at which rent for ``month`` (1-based) falls due."""
        return self.purchase_game_time + timedelta(days=month * month_days)

    def to_dict(self):
        prop = self.property
        return {
            'id': self.id,
            'user_id': self.user_id,
            'property_id': self.property_id,
            'property_address': prop.address if prop else None,
            'property_class': prop.property_class if prop else None,
            'shares': self.shares,
            'purchase_price_cents': self.purchase_price_cents,
            'current_value_cents': self.current_value_cents,
            'purchase_game_time': _iso(self.purchase_game_time),
            'months_paid': self.months_paid
        }


class RentalPayment(db.Model):
    __table_args__ = (db.UniqueConstraint('investment_id', 'month'),)

    id = db.Column(db.Integer, primary_key=True)
    investment_id = db.Column(db.Integer, db.ForeignKey('investment.id'), nullable=False)
    month = db.Column(db.Integer, nullable=False)
    shares = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False)
    game_time = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)

    investment = db.relationship('Investment', back_populates='rental_payments')

    def to_dict(self):
        return {
            'id': self.id,
            'investment_id': self.investment_id,
            'property_id': self.investment.property_id,
            'month': self.month,
            'shares': self.shares,
            'amount_cents': self.amount_cents,
            'game_time': _iso(self.game_time)
        }


class EscrowProcess(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    property_id = db.Column(db.Integer, db.ForeignKey('property.id'), nullable=False)
    shares = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False)
    # 'inspection' | 'lender_approval' | 'completed' | 'rejected'
    status = db.Column(db.String(20), nullable=False)
    requires_financing = db.Column(db.Boolean, nullable=False, default=False)

    # 'in_progress' | 'passed' | 'failed'
    inspection_status = db.Column(db.String(20), nullable=False)
    inspection_started_at = db.Column(db.DateTime)
    inspection_due_at = db.Column(db.DateTime)
    inspection_completed_at = db.Column(db.DateTime)
    # 'not_required' | 'pending' | 'in_progress' | 'approved' | 'rejected'
    lender_status = db.Column(db.String(20), nullable=False)
    lender_started_at = db.Column(db.DateTime)
    lender_due_at = db.Column(db.DateTime)
    lender_completed_at = db.Column(db.DateTime)

    rejection_reason = db.Column(db.String(200))
    interest_cents = db.Column(db.BigInteger, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False)
    estimated_completion_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)

    @property
    def is_terminal(self):
        return self.status in ('completed', 'rejected')

    user = db.relationship('User', back_populates='escrow_processes')
    property = db.relationship('Property')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'property_id': self.property_id,
            'shares': self.shares,
            'amount_cents': self.amount_cents,
            'status': self.status,
            'requires_financing': self.requires_financing,
            'approval_steps': {
                'inspection': {
                    'status': self.inspection_status,
                    'start_time': _iso(self.inspection_started_at),
                    'due_time': _iso(self.inspection_due_at),
                    'completion_time': _iso(self.inspection_completed_at)
                },
                'lender_approval': {
                    'status': self.lender_status,
                    'start_time': _iso(self.lender_started_at),
                    'due_time': _iso(self.lender_due_at),
                    'completion_time': _iso(self.lender_completed_at)
                }
            },
            'rejection_reason': self.rejection_reason,
            'interest_cents': self.interest_cents,
            'created_at': _iso(self.created_at),
            'estimated_completion_at': _iso(self.estimated_completion_at),
            'completed_at': _iso(self.completed_at)
        }


class MockInvestor(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    property_id = db.Column(db.Integer, db.ForeignKey('property.id'), nullable=False)
    username = db.Column(db.String(60), nullable=False)
    location = db.Column(db.String(60), nullable=False)
    investor_type = db.Column(db.String(20), nullable=False)
    shares = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)

    property = db.relationship('Property', back_populates='mock_investors')

    def to_dict(self):
        return {
            'id': self.id,
            'property_id': self.property_id,
            'username': self.username,
            'location': self.location,
            'investor_type': self.investor_type,
            'shares': self.shares,
            'amount_cents': self.amount_cents,
            'created_at': _iso(self.created_at)
        }


class LedgerEntry(db.Model):
    """Append-only record of every balance movement."""
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    kind = db.Column(db.String(20), nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False)  # signed
    balance_after_cents = db.Column(db.BigInteger, nullable=False)
    reference_type = db.Column(db.String(20))
    reference_id = db.Column(db.Integer)
    game_time = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False)

    user = db.relationship('User', back_populates='ledger_entries')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'kind': self.kind,
            'amount_cents': self.amount_cents,
            'balance_after_cents': self.balance_after_cents,
            'reference_type': self.reference_type,
            'reference_id': self.reference_id,
            'game_time': _iso(self.game_time),
            'created_at': _iso(self.created_at)
        }


class WatchlistItem(db.Model):
    __table_args__ = (db.UniqueConstraint('user_id', 'property_id'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    property_id = db.Column(db.Integer, db.ForeignKey('property.id'), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)

    property = db.relationship('Property')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'property_id': self.property_id,
            'added_at': _iso(self.created_at)
        }
