from flask import Blueprint, request, jsonify
from ..models import Property, User, WatchlistItem
from ..services import clock
from .. import db

watchlist_bp = Blueprint('watchlist', __name__)


@watchlist_bp.route('/users/<int:id>/watchlist', methods=['GET'])
def get_watchlist(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    items = WatchlistItem.query.filter_by(user_id=user.id).order_by(WatchlistItem.id).all()
    result = []
    for item in items:
        data = item.to_dict()
        data['property'] = item.property.to_dict()
        result.append(data)
    return jsonify(result), 200


@watchlist_bp.route('/users/<int:id>/watchlist', methods=['POST'])
def add_to_watchlist(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    data = request.json
    if not data or not isinstance(data.get('property_id'), int) \
            or isinstance(data['property_id'], bool):
        return jsonify({'error': 'property_id is required'}), 400
    prop = db.session.get(Property, data['property_id'])
    if not prop or prop.user_id != user.id:
        return jsonify({'error': 'Property not found'}), 404
    if WatchlistItem.query.filter_by(user_id=user.id, property_id=prop.id).first():
        return jsonify({'error': 'Property is already on the watchlist'}), 400
    item = WatchlistItem(user_id=user.id, property_id=prop.id, created_at=clock.utcnow())
    db.session.add(item)
    db.session.commit()
    return jsonify(item.to_dict()), 201


@watchlist_bp.route('/users/<int:id>/watchlist/<int:property_id>', methods=['DELETE'])
def remove_from_watchlist(id, property_id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    item = WatchlistItem.query.filter_by(user_id=user.id, property_id=property_id).first()
    if not item:
        return jsonify({'error': 'Property is not on the watchlist'}), 404
    db.session.delete(item)
    db.session.commit()
    return jsonify({'message': 'Removed from watchlist'}), 200
