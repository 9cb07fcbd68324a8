from flask import Blueprint, request, jsonify
from ..models import EscrowProcess, User
from ..services import clock, escrow
from .. import db

escrow_bp = Blueprint('escrow', __name__)


# Reading an escrow advances it to the current time first
@escrow_bp.route('/escrow/<int:id>', methods=['GET'])
def get_escrow(id):
    process = db.session.get(EscrowProcess, id)
    if not process:
        return jsonify({'error': 'Escrow process not found'}), 404
    escrow.advance_escrow(process, clock.utcnow())
    db.session.commit()
    return jsonify(process.to_dict()), 200


@escrow_bp.route('/users/<int:id>/escrow', methods=['GET'])
def list_user_escrows(id):
    user = db.session.get(User, id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    escrow.advance_user_escrows(user, clock.utcnow())
    db.session.commit()
    q = user.escrow_processes
    status = request.args.get('status')
    if status == 'active':
        q = q.filter(EscrowProcess.status.in_(['inspection', 'lender_approval']))
    elif status:
        q = q.filter(EscrowProcess.status == status)
    return jsonify([p.to_dict() for p in q.order_by(EscrowProcess.id).all()]), 200


@escrow_bp.route('/escrow/stats', methods=['GET'])
def get_escrow_stats():
    user = None
    user_id = request.args.get('user_id')
    if user_id:
        try:
            user = db.session.get(User, int(user_id))
        except ValueError:
            return jsonify({'error': 'user_id must be an integer'}), 400
        if not user:
            return jsonify({'error': 'User not found'}), 404
    return jsonify(escrow.escrow_stats(user)), 200
