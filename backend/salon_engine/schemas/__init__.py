"""
Schemas package - Data Transfer Objects and validation.
"""

from .dtos import (
    AppointmentResponse,
    BookingRequest,
    DashboardStats,
    DateWindow,
    ReconciliationResult,
    RescheduleRequest,
    RevenueData,
    ServicePerformance,
    SettlementCallback,
    StaffPerformance,
)

__all__ = [
    # Request DTOs
    "BookingRequest",
    "RescheduleRequest",
    "SettlementCallback",
    # Response DTOs
    "AppointmentResponse",
    "ReconciliationResult",
    # Analytics DTOs
    "DateWindow",
    "DashboardStats",
    "RevenueData",
    "ServicePerformance",
    "StaffPerformance",
]
