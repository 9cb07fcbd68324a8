from flask import Blueprint, request, jsonify, current_app
from ..models import User
from ..config import ValidationConfig
from ..services import accounts, clock, ledger, pool, progress
from .. import db
import re

users_bp = Blueprint('users', __name__)


@users_bp.route('/users', methods=['POST'])
def create_user():
    data = request.json
    if not data or not data.get('username') or not str(data['username']).strip():
        return jsonify({'error': 'username is required'}), 400
    username = str(data['username']).strip()
    if not re.match(ValidationConfig.USERNAME_REGEX, username):
        return jsonify({'error': f'username must match pattern {ValidationConfig.USERNAME_REGEX}'}), 400
    if len(username) > ValidationConfig.USERNAME_MAX_LENGTH:
        return jsonify({'error': f'username max length is {ValidationConfig.USERNAME_MAX_LENGTH}'}), 400

    q = User.query
    if ValidationConfig.ENFORCE_UNIQUE_USERNAME_CASE_INSENSITIVE:
        q = q.filter(db.func.lower(User.username) == username.lower())
    else:
        q = q.filter_by(username=username)
    if q.first():
        return jsonify({'error': 'username is already taken'}), 400

    now = clock.utcnow()
    user = User(username=username, balance_cents=0, created_at=now)
    db.session.add(user)
    db.session.flush()
    clk = clock.get_or_create_clock(user, now)
    starting = current_app.config['STARTING_BALANCE_CENTS']
    if starting > 0:
        ledger.credit(user, starting, 'deposit', game_time=clk.current_game_time)
    pool.initialize_pool(user, now)
    db.session.commit()

    data = user.to_dict()
    data['clock'] = clk.to_dict()
    return jsonify(data), 201


@users_bp.route('/users/<int:id>', methods=['GET'])
def get_user(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify(user.to_dict()), 200


@users_bp.route('/users/<int:id>/ledger', methods=['GET'])
def get_ledger(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    limit = request.args.get('limit')
    if limit is not None:
        try:
            limit = int(limit)
        except ValueError:
            return jsonify({'error': 'limit must be an integer'}), 400
    entries = ledger.entries_for(user, kind=request.args.get('kind'), limit=limit)
    return jsonify([e.to_dict() for e in entries]), 200


@users_bp.route('/users/<int:id>/clock', methods=['GET'])
def get_clock(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    now = clock.utcnow()
    clk = clock.get_or_create_clock(user, now)
    db.session.commit()
    data = clk.to_dict()
    # where the clock would be if synchronized right now
    data['game_time_now'] = clock.game_time_at(clk, now).isoformat()
    data['unsynced_seconds'] = max(0, int((now - clk.last_real_time).total_seconds()))
    data['time_multiplier'] = current_app.config['TIME_MULTIPLIER']
    return jsonify(data), 200


@users_bp.route('/users/<int:id>/sync', methods=['POST'])
def sync_user(id):
    user = ledger.locked_user(id)
    summary = progress.synchronize(user, clock.utcnow())
    db.session.commit()
    return jsonify(summary), 200


@users_bp.route('/users/<int:id>/reset', methods=['POST'])
def reset_user(id):
    user = ledger.locked_user(id)
    result = accounts.reset_user(user, clock.utcnow())
    db.session.commit()
    return jsonify(result), 200
