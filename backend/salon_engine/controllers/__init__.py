# Controllers package initialization
# This file makes the controllers directory a Python package
# and allows importing controller modules

from . import (
    booking_controller,
    health_controller,
    payments_controller,
    reports_controller,
)

__all__ = [
    "booking_controller",
    "health_controller",
    "payments_controller",
    "reports_controller",
]
