import logging

from flask import Flask
from flask_jwt_extended import JWTManager

from postmedia.config import Config
from postmedia.db import db
from postmedia.extensions.media_store import MediaStore


def create_app(config_overrides=None, media_store=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    JWTManager(app)
    if media_store is None:
        media_store = MediaStore.from_config(app.config)
    app.extensions["media_store"] = media_store

    from postmedia.routes.auth_routes import auth_bp
    from postmedia.routes.main_routes import main_bp
    from postmedia.routes.post_routes import post_bp

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(post_bp, url_prefix="/api")
    app.register_blueprint(main_bp)

    with app.app_context():
        from postmedia import models  # noqa: F401
        db.create_all()

    return app
