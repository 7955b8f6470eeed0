import logging

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

db = SQLAlchemy()
migrate = Migrate()

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    from .errors import AuctionError

    @app.errorhandler(AuctionError)
    def handle_auction_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code is None or error.code < 400:
            return error
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception("Unhandled error")
        return jsonify({"error": "Server error"}), 500


def create_app(config_object='config.Config', start_background_jobs=True):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'), format='%(asctime)s - %(message)s')

    # Initialize SQLAlchemy and Migrate
    db.init_app(app)
    migrate.init_app(app, db)

    # Imported here to avoid circular imports, the models need ``db``
    from .storage import build_store
    app.extensions['auction_store'] = build_store(app, db)
    if app.config.get('STORAGE_BACKEND') == 'sql' and app.config.get('SQLALCHEMY_CREATE_ALL'):
        with app.app_context():
            db.create_all()

    from .routes import main
    app.register_blueprint(main)
    register_error_handlers(app)

    if start_background_jobs and app.config.get('AUCTION_SWEEP_MINUTES') and not app.testing:
        from .scheduler_worker import start_scheduler
        app.extensions['auction_scheduler'] = start_scheduler(app)

    return app
