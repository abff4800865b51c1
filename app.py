#!/usr/bin/env python3
"""
Multi-Calendar

Lets several people sign in with their Microsoft 365 accounts and serves the
events of all of them as one combined calendar.

- /auth/*      OAuth2 authorization-code flow with PKCE
- /calendar/*  merged events and the list of connected accounts
"""

import logging
import os
import secrets
import time
from typing import Optional

from flask import Flask, g, request

from config import AppConfig
from routes import create_auth_blueprint, create_calendar_blueprint
from services import EXTENSION_KEY, Services, build_services
from version import VERSION

# Configure logging
logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _session_secret(config: AppConfig) -> str:
    if config.session_secret:
        return config.session_secret

    logger.warning(
        "SESSION_SECRET not set - generating temporary secret. "
        "Sign-ins in progress will not survive a restart."
    )
    return secrets.token_hex(32)


def create_app(
    config: Optional[AppConfig] = None, services: Optional[Services] = None
) -> Flask:
    """
    Create the Flask application.

    Args:
        config: Settings (loaded from defaults.yaml and the environment if None)
        services: Pre-built services (built from config if None)
    """
    config = config or (services.config if services else AppConfig.from_env())
    for problem in config.validate():
        logger.warning(f"Configuration: {problem}")

    services = services or build_services(config)

    application = Flask(__name__, static_folder=None)
    application.secret_key = _session_secret(config)
    if config.response_mode == "form_post":
        # The provider posts the callback cross-site; Lax cookies would be withheld
        application.config.update(
            SESSION_COOKIE_SAMESITE="None",
            SESSION_COOKIE_SECURE=True,
        )

    application.extensions[EXTENSION_KEY] = services
    application.register_blueprint(create_auth_blueprint())
    application.register_blueprint(create_calendar_blueprint())

    @application.before_request
    def log_request():
        logger.info(f">>> {request.method} {request.path}")
        g.start_time = time.time()

    @application.after_request
    def log_response(response):
        elapsed_ms = (time.time() - g.get("start_time", time.time())) * 1000
        logger.info(f"<<< {response.status_code} {request.path} ({elapsed_ms:.0f}ms)")
        return response

    return application


if __name__ == "__main__":
    app_config = AppConfig.from_env()
    app = create_app(app_config)

    logger.info("=" * 60)
    logger.info(f"Multi-Calendar v{VERSION}")
    logger.info("=" * 60)
    logger.info(f"Server:        http://{app_config.host}:{app_config.port}")
    logger.info(f"Redirect URI:  {app_config.redirect_uri}")
    logger.info(f"Scopes:        {' '.join(app_config.scopes)}")
    logger.info(f"Accounts:      {app.extensions[EXTENSION_KEY].store.count()}")
    logger.info("=" * 60)

    app.run(
        host=app_config.host,
        port=app_config.port,
        debug=app_config.debug,
        threaded=True,
    )
