from flask import Blueprint, jsonify
from ..services import clock, ledger, pool
from ..models import User
from .. import db

pool_bp = Blueprint('pool', __name__)


@pool_bp.route('/users/<int:id>/pool', methods=['GET'])
def get_pool(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify(pool.pool_stats(user)), 200


@pool_bp.route('/users/<int:id>/pool/maintenance', methods=['POST'])
def maintain_pool(id):
    user = ledger.locked_user(id)
    summary = pool.run_maintenance(user, clock.utcnow())
    db.session.commit()
    return jsonify(summary), 200
