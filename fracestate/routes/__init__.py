import logging

from flask import jsonify

from .. import db
from ..errors import ServiceError

logger = logging.getLogger(__name__)


# Register all blueprints here
def register_blueprints(app):
    from .users import users_bp
    from .properties import properties_bp
    from .investments import investments_bp
    from .escrow import escrow_bp
    from .pool import pool_bp
    from .watchlist import watchlist_bp
    from .reports import reports_bp

    app.register_blueprint(users_bp)
    app.register_blueprint(properties_bp)
    app.register_blueprint(investments_bp)
    app.register_blueprint(escrow_bp)
    app.register_blueprint(pool_bp)
    app.register_blueprint(watchlist_bp)
    app.register_blueprint(reports_bp)

    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        db.session.rollback()
        logger.warning("Request failed: %s", e.message)
        return jsonify({'error': e.message}), e.status_code
