from typing import Mapping

from flask import Flask
from flask_cors import CORS

from .config import Config
from .extensions import db
from .notifications import MailTransport, Notifier
from .routes import register_routes


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)

    if isinstance(config_object, Mapping):
        app.config.from_mapping(config_object)
    elif config_object:
        app.config.from_object(config_object)
    else:
        app.config.from_envvar("APP_SETTINGS", silent=True)

    db.init_app(app)

    # Allow frontend to talk to backend
    CORS(app,
         origins=["*"],
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )

    app.extensions["notifier"] = Notifier(MailTransport.from_config(app.config))

    register_routes(app)

    return app
