from flask import Blueprint, request, jsonify, Response
from ..models import User
from ..services.rental import rental_history
from .. import db
import csv
import io

reports_bp = Blueprint('reports', __name__)


@reports_bp.route('/reports/rental-income', methods=['GET'])
def get_rental_income():
    user_id = request.args.get('user_id')
    if not user_id:
        return jsonify({'error': 'user_id is required'}), 400
    property_id = request.args.get('property_id')
    try:
        uid = int(user_id)
        prop_id = int(property_id) if property_id else None
    except (ValueError, TypeError):
        return jsonify({'error': 'user_id and property_id must be integers'}), 400
    user = db.session.get(User, uid)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    rows = []
    for payment in rental_history(user, prop_id):
        prop = payment.investment.property
        rows.append({
            'payment_id': payment.id,
            'property_id': prop.id,
            'address': f"{prop.address}, {prop.city}, {prop.state}",
            'month': payment.month,
            'shares': payment.shares,
            'amount_cents': payment.amount_cents,
            'game_time': payment.game_time.isoformat()
        })

    fmt = request.args.get('format')
    if fmt == 'csv':
        output = io.StringIO()
        writer = None
        for row in rows:
            if writer is None:
                writer = csv.DictWriter(output, fieldnames=list(row.keys()))
                writer.writeheader()
            writer.writerow(row)
        csv_data = output.getvalue()
        output.close()
        headers = {
            'Content-Type': 'text/csv',
            'Content-Disposition': f'attachment; filename="rental_income_{uid}.csv"'
        }
        return Response(csv_data, headers=headers)
    return jsonify({
        'user_id': uid,
        'total_cents': sum(r['amount_cents'] for r in rows),
        'payments': rows
    }), 200
