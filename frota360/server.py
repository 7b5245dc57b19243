import logging
import os
from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_limiter.errors import RateLimitExceeded
from flask_security import SQLAlchemyUserDatastore

from frota360.config import CONFIG_BY_NAME, DevConfig
from frota360.extensions import db, limiter, security
from frota360.utils.request_logger import RequestLogger

# Load environment variables from .env file
load_dotenv()

BASEDIR = os.path.dirname(os.path.abspath(__file__))
LOGS_DIR = os.path.join(BASEDIR, 'logs')

logger = logging.getLogger(__name__)

# (module name under frota360.api, url prefix)
BLUEPRINTS = [
    ('driver', '/api'),
    ('imports', '/api'),
    ('weekly', '/api'),
    ('payment', '/api'),
    ('financing', '/api'),
    ('settings', '/api'),
    ('commission', '/api'),
    ('referral', '/api'),
    ('goals', '/api'),
    ('dashboard', '/api'),
    ('painel', '/api'),
    ('contracts', '/api'),
    ('requests', '/api'),
]


def configure_logging():
    os.makedirs(LOGS_DIR, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(LOGS_DIR, 'app.log')),
            logging.StreamHandler()
        ]
    )


def import_models():
    """Import every model so relationships resolve before create_all."""
    from frota360.models.role import Role
    from frota360.models.user import User
    from frota360.models.driver import Driver  # noqa: F401
    from frota360.models.week import Week, WeeklyDataSource  # noqa: F401
    from frota360.models.audit_log import AuditLog  # noqa: F401
    from frota360.models.system_settings import SystemSettings  # noqa: F401
    from frota360.models.raw_file_archive import RawFileArchive  # noqa: F401
    from frota360.models.weekly_normalized_data import WeeklyNormalizedData  # noqa: F401
    from frota360.models.financing import Financing  # noqa: F401
    from frota360.models.driver_payment import DriverPayment  # noqa: F401
    from frota360.models.commission_rule import CommissionRule  # noqa: F401
    from frota360.models.referral_rule import ReferralRule  # noqa: F401
    from frota360.models.goal_reward import GoalReward  # noqa: F401
    from frota360.models.referral_invite import ReferralInvite  # noqa: F401
    from frota360.models.affiliate_bonus import AffiliateBonus  # noqa: F401
    from frota360.models.bonus_history import BonusHistory  # noqa: F401
    from frota360.models.contract_template import ContractTemplate  # noqa: F401
    from frota360.models.driver_request import DriverRequest  # noqa: F401
    return User, Role


def register_blueprints(app):
    for blueprint_name, prefix in BLUEPRINTS:
        module = __import__(f'frota360.api.{blueprint_name}', fromlist=[f'{blueprint_name}_bp'])
        blueprint = getattr(module, f'{blueprint_name}_bp')
        app.register_blueprint(blueprint, url_prefix=prefix)
        logger.info(f"Registered blueprint: {blueprint_name} with prefix: {prefix}")


def register_error_handlers(app):
    @app.errorhandler(400)
    def bad_request(error):
        logger.error(f"400 Bad Request for {request.method} {request.url}")
        return jsonify({'error': 'Bad Request', 'message': str(error), 'path': request.path}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        logger.error(f"401 Unauthorized for {request.method} {request.url}")
        return jsonify({'error': 'Authentication required'}), 401

    @app.errorhandler(403)
    def forbidden(error):
        logger.error(f"403 Forbidden for {request.method} {request.url}")
        return jsonify({'error': 'Access forbidden'}), 403

    @app.errorhandler(404)
    def not_found(error):
        logger.error(f"404 error for path: {request.path}")
        if request.path.startswith('/api/'):
            return jsonify({'error': 'API endpoint not found', 'path': request.path}), 404
        return jsonify({'error': 'Page not found', 'path': request.path}), 404

    @app.errorhandler(RateLimitExceeded)
    def ratelimit_handler(e):
        logger.warning(f"Rate limit exceeded for {request.method} {request.url}")
        return jsonify({'error': 'Rate limit exceeded. Please try again later.'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled exception for {request.method} {request.url}: {error}", exc_info=True)
        return jsonify({'error': 'Internal server error'}), 500


def create_app(config_object=DevConfig):
    app = Flask(__name__)
    app.config.from_object(config_object)

    if not app.config.get('TESTING'):
        configure_logging()
        storage_path = app.config.get('STORAGE_PATH')
        if storage_path:
            os.makedirs(storage_path, exist_ok=True)

    db.init_app(app)
    limiter.init_app(app)
    CORS(app, supports_credentials=True, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})

    User, Role = import_models()
    security.init_app(app, SQLAlchemyUserDatastore(db, User, Role))

    app.before_request(RequestLogger.before_request)
    app.after_request(RequestLogger.after_request)

    register_blueprints(app)
    register_error_handlers(app)

    @app.route('/')
    def root():
        return {'status': 'ok', 'message': 'Frota360 backend is running. Available endpoints: /api/*'}

    @app.route('/api/health-check')
    def health_check():
        healthy = db.health_check()
        body = {
            'status': 'ok' if healthy else 'degraded',
            'database': 'connected' if healthy else 'unavailable',
            'pool': db.get_pool_stats(),
        }
        return jsonify(body), 200 if healthy else 503

    with app.app_context():
        db.create_all()
        logger.info("Database connected: %s", "sqlite" if "sqlite" in app.config.get("SQLALCHEMY_DATABASE_URI", "") else "non-sqlite")

    return app


def _config_from_env():
    return CONFIG_BY_NAME.get(os.environ.get('FLASK_ENV', 'development'), DevConfig)


if __name__ == '__main__':
    config = _config_from_env()
    app = create_app(config)
    app.run(host=getattr(config, 'FLASK_HOST', '0.0.0.0'), port=getattr(config, 'FLASK_PORT', 5000),
            debug=app.config.get('DEBUG', False))
