from flask import request, jsonify, Blueprint
from .. import db
from ..models import MockInvestor, Property, User
from ..services import appreciation, mock_investors

properties_bp = Blueprint('properties', __name__)

SORT_FIELDS = {
    'price': Property.price_cents,
    'value': Property.current_value_cents,
    'yield': Property.rental_yield,
    'share_price': Property.share_price_cents,
    'available_shares': Property.available_shares,
    'contract_time': Property.contract_time,
    'created': Property.created_at,
}


def _int_arg(name):
    value = request.args.get(name)
    return int(value) if value not in (None, '') else None


def _float_arg(name):
    value = request.args.get(name)
    return float(value) if value not in (None, '') else None


@properties_bp.route('/users/<int:id>/properties', methods=['GET'])
def list_properties(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    q = Property.query.filter_by(user_id=user.id)
    status = request.args.get('status')
    if status == 'all':
        pass
    elif status:
        q = q.filter(Property.status == status)
    else:
        q = q.filter(Property.status.in_(['available', 'ending_soon']))

    prop_class = request.args.get('class')
    if prop_class:
        if prop_class.upper() not in ('A', 'B', 'C'):
            return jsonify({'error': 'class must be one of A, B, C'}), 400
        q = q.filter(Property.property_class == prop_class.upper())
    region = request.args.get('region')
    if region:
        q = q.filter(Property.region == region.lower())

    try:
        min_price, max_price = _int_arg('min_price'), _int_arg('max_price')
        min_yield, max_yield = _float_arg('min_yield'), _float_arg('max_yield')
    except ValueError:
        return jsonify({'error': 'price filters must be integer cents and yield filters decimals'}), 400
    if min_price is not None:
        q = q.filter(Property.price_cents >= min_price)
    if max_price is not None:
        q = q.filter(Property.price_cents <= max_price)
    if min_yield is not None:
        q = q.filter(Property.rental_yield >= min_yield)
    if max_yield is not None:
        q = q.filter(Property.rental_yield <= max_yield)

    search = request.args.get('search')
    if search:
        term = f"%{search.strip().lower()}%"
        q = q.filter(db.or_(
            db.func.lower(Property.address).like(term),
            db.func.lower(Property.city).like(term),
            db.func.lower(Property.state).like(term),
            db.func.lower(Property.property_type).like(term)
        ))

    sort = request.args.get('sort', 'created')
    if sort not in SORT_FIELDS:
        return jsonify({'error': f"sort must be one of {', '.join(sorted(SORT_FIELDS))}"}), 400
    column = SORT_FIELDS[sort]
    order = request.args.get('order', 'asc')
    if order not in ('asc', 'desc'):
        return jsonify({'error': 'order must be asc or desc'}), 400
    q = q.order_by(column.desc() if order == 'desc' else column.asc(), Property.id)

    return jsonify([p.to_dict() for p in q.all()]), 200


@properties_bp.route('/properties/<int:id>', methods=['GET'])
def get_property(id):
    prop = db.session.get(Property, id)
    if not prop:
        return jsonify({'error': 'Property not found'}), 404
    return jsonify(prop.to_dict()), 200


@properties_bp.route('/properties/<int:id>/appreciation', methods=['GET'])
def get_property_appreciation(id):
    prop = db.session.get(Property, id)
    if not prop:
        return jsonify({'error': 'Property not found'}), 404
    return jsonify(appreciation.appreciation_summary(prop)), 200


@properties_bp.route('/properties/<int:id>/investors', methods=['GET'])
def get_property_investors(id):
    prop = db.session.get(Property, id)
    if not prop:
        return jsonify({'error': 'Property not found'}), 404
    data = mock_investors.investor_stats(prop)
    data['investors'] = [i.to_dict() for i in prop.mock_investors.order_by(MockInvestor.id).all()]
    return jsonify(data), 200
