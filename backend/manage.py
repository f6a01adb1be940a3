"""Management commands for the salon engine backend."""

from __future__ import annotations

import logging
import os
from decimal import Decimal

import click

# Commands run one-shot; the periodic sweep is never needed here
os.environ.setdefault("ENABLE_NO_SHOW_SWEEP", "false")

from salon_engine.db import base as models  # noqa: E402
from salon_engine.db.session import SessionLocal, create_tables  # noqa: E402
from salon_engine.main import create_app  # noqa: E402
from salon_engine.services.no_show_sweeper import sweep_no_shows  # noqa: E402

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

# Create the Flask application once so commands can share configuration.
app = create_app()


@click.group()
def cli() -> None:
    """Entry point for management commands."""


@cli.command("init-db")
def init_db() -> None:
    """Create all tables."""
    create_tables()
    logging.info("Database tables created.")


@cli.command("sweep-no-shows")
def sweep_no_shows_command() -> None:
    """Mark overdue confirmed appointments as no-show once."""
    with app.app_context():
        count = sweep_no_shows(app)
    click.echo(f"Marked {count} appointment(s) as no-show.")


@cli.command("seed-demo")
@click.option("--salon-id", default="demo-salon", show_default=True)
def seed_demo(salon_id: str) -> None:
    """Insert a salon with one branch, one stylist and one service."""
    session = SessionLocal()
    try:
        if session.get(models.Salon, salon_id) is not None:
            logging.info("Salon %s already present; no changes made.", salon_id)
            return

        session.add(models.Salon(id=salon_id, name="Demo Salon", salon_type="hair"))
        session.add(
            models.Branch(
                id=f"{salon_id}-main", salon_id=salon_id, name="Main", is_main_branch=True
            )
        )
        session.add(
            models.Staff(
                id=f"{salon_id}-stylist",
                salon_id=salon_id,
                name="Demo Stylist",
                role="stylist",
                commission_percentage=Decimal("100"),
            )
        )
        session.add(
            models.Service(
                id=f"{salon_id}-haircut",
                salon_id=salon_id,
                name="Haircut",
                duration_minutes=30,
                price=Decimal("100.00"),
                commission_type="percentage",
                commission_value=Decimal("40"),
            )
        )
        session.commit()
        logging.info("Seeded demo salon %s.", salon_id)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    cli()
