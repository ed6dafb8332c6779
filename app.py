import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy.engine import URL

from models import db
from app_core.errors import install_json_error_handlers
from app_core.ids import MillisIdGenerator
from app_core.api import api_bp
from app_core.metrics import metrics_bp
from app_core.web import web_bp

load_dotenv()

# Logging configuration
handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(logging.Formatter(
    "[%(asctime)s.%(msecs)03d] %(levelname)s (%(module)s) %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
))
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper(), handlers=[handler])

logger = logging.getLogger("binged")


def _database_uri(instance_path):
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    host = os.getenv("DB_HOST")
    if host:
        return URL.create(
            "mysql+pymysql",
            username=os.getenv("DB_USER", "root"),
            password=os.getenv("DB_PASSWORD") or None,
            host=host,
            port=int(os.getenv("DB_PORT", 3306)),
            database=os.getenv("DB_NAME", "binged"),
        ).render_as_string(hide_password=False)

    instance_db = Path(instance_path) / "binged.db"
    instance_db.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{instance_db}"


def create_app(test_config=None):
    app = Flask(__name__, static_folder="static", template_folder="templates")

    # Load env config
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["CORS_ORIGIN"] = os.getenv("CORS_ORIGIN", "http://localhost:5173")
    app.config["ID_GENERATOR"] = MillisIdGenerator()
    if test_config is None or "SQLALCHEMY_DATABASE_URI" not in test_config:
        app.config["SQLALCHEMY_DATABASE_URI"] = _database_uri(app.instance_path)
    if test_config:
        app.config.update(test_config)

    safe_dest = str(app.config["SQLALCHEMY_DATABASE_URI"]).split("@", 1)[-1]
    logger.info("Using database -> %s", safe_dest)

    # Installing JSON error handlers & SQLAlchemy
    install_json_error_handlers(app)
    db.init_app(app)

    # A store that is down at startup is logged; data routes answer 500 until it is back
    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            logger.error("DB connection failed: %s", e)

    @app.after_request
    def _cors(response):
        response.headers["Access-Control-Allow-Origin"] = app.config["CORS_ORIGIN"]
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, PUT"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers.add("Vary", "Origin")
        return response

    # Register blueprints
    app.register_blueprint(metrics_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(web_bp)

    return app


app = create_app()

# Development only
if __name__ == "__main__":
    port = int(os.getenv("PORT", 3001))
    logger.info("Backend running at http://localhost:%s", port)
    logger.info("Health check: http://localhost:%s/health", port)
    app.run(host="0.0.0.0", port=port, debug=True)
