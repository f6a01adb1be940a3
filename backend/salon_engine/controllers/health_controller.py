"""
Health controller - health check endpoint for monitoring.
"""

import logging

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from salon_engine.db.session import SessionLocal
from salon_engine.services.factory import get_engine_state

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/health")


@health_bp.route("", methods=["GET"])
def health_check():
    """
    Report database reachability and the size of the in-memory index.

    Status codes:
        200: database reachable
        503: database unreachable
    """
    state = get_engine_state()
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(
            "Health check: database unreachable",
            extra={"context": {"endpoint": "/health", "error": str(e)}},
        )
        database = "unavailable"
    finally:
        db.close()

    healthy = database == "ok"
    return (
        jsonify(
            {
                "status": "healthy" if healthy else "unhealthy",
                "database": database,
                "indexed_appointments": len(state.index),
                "staff_locks": len(state.locks),
            }
        ),
        200 if healthy else 503,
    )
