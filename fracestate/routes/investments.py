from flask import Blueprint, request, jsonify
from ..models import EscrowProcess, Property, User
from ..services import appreciation, clock, ledger, purchases
from .. import db

investments_bp = Blueprint('investments', __name__)


@investments_bp.route('/users/<int:id>/purchases', methods=['POST'])
def create_purchase(id):
    data = request.json
    if not data or 'property_id' not in data or 'shares' not in data:
        return jsonify({'error': 'property_id and shares are required'}), 400
    if not all(isinstance(data[k], int) and not isinstance(data[k], bool)
               for k in ('property_id', 'shares')):
        return jsonify({'error': 'property_id and shares must be integers'}), 400

    user = ledger.locked_user(id)
    prop = db.session.get(Property, data['property_id'])
    if not prop:
        return jsonify({'error': 'Property not found'}), 404

    result = purchases.buy_shares(user, prop, data['shares'], clock.utcnow())
    db.session.commit()
    if isinstance(result, EscrowProcess):
        return jsonify({'escrow': result.to_dict(), 'balance_cents': user.balance_cents}), 201
    return jsonify({'investment': result.to_dict(), 'balance_cents': user.balance_cents}), 201


@investments_bp.route('/users/<int:id>/investments', methods=['GET'])
def list_investments(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify([i.to_dict() for i in purchases.user_investments(user)]), 200


@investments_bp.route('/users/<int:id>/portfolio', methods=['GET'])
def get_portfolio(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    data = purchases.portfolio_value(user)
    data['appreciation'] = appreciation.portfolio_appreciation(user)
    return jsonify(data), 200
