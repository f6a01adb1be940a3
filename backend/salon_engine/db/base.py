from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .session import Base


class Salon(Base):
    """Tenant record; commission_rate overrides the platform fee when set."""

    __tablename__ = "salons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    salon_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    branches = relationship("Branch", back_populates="salon")

    def __repr__(self):
        return f"<Salon(id={self.id}, name='{self.name}')>"


class Branch(Base):
    __tablename__ = "branches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    salon_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("salons.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_main_branch: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    salon = relationship("Salon", back_populates="branches")


class Staff(Base):
    __tablename__ = "staff"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    salon_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("salons.id"), nullable=False, index=True
    )
    # Null means the member works at every branch of the salon
    branch_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("branches.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="stylist"
    )  # 'stylist', 'receptionist', 'manager'
    commission_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("100")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    salon_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("salons.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class Service(Base):
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    salon_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("salons.id"), nullable=False, index=True
    )
    category_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("service_categories.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    commission_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="percentage"
    )  # 'percentage', 'fixed'
    commission_value: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Appointment(Base):
    """Booked slot; dates and times are naive local values in APP_TZ."""

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_staff_date", "staff_id", "appointment_date"),
        Index("ix_appointments_salon_date", "salon_id", "appointment_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    salon_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("salons.id"), nullable=False
    )
    branch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("branches.id"), nullable=False
    )
    staff_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("staff.id"), nullable=False
    )
    client_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    service_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("services.id"), nullable=False
    )
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    payments = relationship("Payment", back_populates="appointment")

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, staff_id={self.staff_id}, "
            f"date={self.appointment_date}, status='{self.status}')>"
        )


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    appointment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("appointments.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, nullable=True
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    amount_mismatch: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    appointment = relationship("Appointment", back_populates="payments")


class CommissionEntry(Base):
    """Append-only ledger row; one split and at most one reversal per appointment."""

    __tablename__ = "commission_entries"
    __table_args__ = (
        UniqueConstraint(
            "appointment_id", "entry_type", name="uq_commission_appointment_entry"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    appointment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("appointments.id"), nullable=False, index=True
    )
    entry_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="split"
    )  # 'split', 'reversal'
    staff_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    salon_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    staff_share: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    salon_share: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    platform_share: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class Rating(Base):
    __tablename__ = "ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    salon_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    staff_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    client_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    rated_on: Mapped[date] = mapped_column(Date, nullable=False)
