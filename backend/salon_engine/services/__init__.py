# Services package initialization
# This file makes the services directory a Python package
# and allows importing service modules

from . import analytics_service
from . import availability_index
from . import booking_service
from . import commission_service
from . import payment_reconciler

__all__ = [
    "analytics_service",
    "availability_index",
    "booking_service",
    "commission_service",
    "payment_reconciler",
]
