from flask import Flask

from gmvote.config import Config
from gmvote.extensions import db, migrate
from gmvote.logging_config import setup_logging
from gmvote.routes import register_routes


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(app)
    db.init_app(app)
    migrate.init_app(app, db)

    register_routes(app)
    return app


__all__ = ["create_app", "db", "migrate"]
