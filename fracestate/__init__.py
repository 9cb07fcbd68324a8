import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from .config import Config, TestingConfig

# Initialize SQLAlchemy outside the create_app function
db = SQLAlchemy()


def create_app(config_class=Config, config_name=None):
    # map friendly names to classes
    if config_name:
        if config_name == 'testing':
            config_class = TestingConfig
        else:
            config_class = config_name   # allow import path string fallback

    # 1. Application Setup
    app = Flask(__name__)
    app.config.from_object(config_class)
    logging.getLogger('fracestate').setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # 2. Database Initialization
    db.init_app(app)

    # 3. Register Blueprints (Routes) and error handlers
    from .routes import register_blueprints
    register_blueprints(app)

    # 4. CLI jobs (clock sync, pool maintenance)
    from .cli import register_commands
    register_commands(app)

    # 5. Import Models so SQLAlchemy knows about every table
    from . import models

    with app.app_context():
        db.create_all()

    return app
