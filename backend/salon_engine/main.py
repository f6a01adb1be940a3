import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

# Only load from .env when DATABASE_URL is not already defined by the environment
if not os.getenv("DATABASE_URL"):
    load_dotenv()

from salon_engine.core.config import (  # noqa: E402
    ENABLE_NO_SHOW_SWEEP,
    EngineSettings,
    is_testing,
    log_engine_config,
)
from salon_engine.core.logging_config import setup_logging  # noqa: E402
from salon_engine.db.session import create_tables  # noqa: E402
from salon_engine.services.factory import init_engine_state  # noqa: E402

logger = logging.getLogger(__name__)


def create_app(settings: Optional[EngineSettings] = None) -> Flask:
    """Application factory.

    Args:
        settings: Engine settings override; defaults to the environment.
    """
    # Determine environment
    env = os.getenv("FLASK_ENV", "development")
    is_production = env == "production"

    app = Flask(__name__)

    if is_testing():
        app.config["TESTING"] = True

    setup_logging(
        app=app,  # Registers request/response hooks
        log_level=logging.INFO if is_production else logging.DEBUG,
        enable_sql_echo=not is_production and not app.config.get("TESTING"),
        log_to_file=os.getenv("LOG_TO_FILE", "1").lower() in ("1", "true", "yes"),
        use_json_format=is_production,  # JSON logs in production, colored in dev
    )
    logger.info(
        "Logging configured",
        extra={"context": {"environment": env, "json_format": is_production}},
    )
    log_engine_config()

    # Sentry is only initialized when a DSN is configured
    sentry_dsn = os.getenv("SENTRY_DSN")
    if sentry_dsn:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=env,
            release=os.getenv("GIT_SHA", "unknown"),
            integrations=[
                FlaskIntegration(),
                SqlalchemyIntegration(),
            ],
            traces_sample_rate=0.1,
            send_default_pii=False,
        )
        logger.info(
            "Sentry initialized",
            extra={"context": {"environment": env, "traces_sample_rate": 0.1}},
        )
    else:
        logger.info(
            "Sentry not initialized (SENTRY_DSN not set)",
            extra={"context": {"environment": env}},
        )

    create_tables()
    init_engine_state(app, settings)

    from salon_engine.controllers.booking_controller import booking_bp
    from salon_engine.controllers.health_controller import health_bp
    from salon_engine.controllers.payments_controller import payments_bp
    from salon_engine.controllers.reports_controller import reports_bp

    app.register_blueprint(booking_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(health_bp)

    # Background no-show sweep; never started under test
    if ENABLE_NO_SHOW_SWEEP and not app.config.get("TESTING"):
        from salon_engine.services.no_show_sweeper import start_no_show_scheduler

        # Store scheduler reference to prevent garbage collection
        app.config["SCHEDULER"] = start_no_show_scheduler(app)
    else:
        logger.info(
            "No-show sweep disabled",
            extra={"context": {"testing": bool(app.config.get("TESTING"))}},
        )

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
