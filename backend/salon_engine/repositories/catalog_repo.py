"""
Read-only catalog repository: salons, branches, staff and services.
"""

from typing import Optional

from sqlalchemy.orm import Session

from salon_engine.db import base as db
from salon_engine.domain import entities
from salon_engine.domain.interfaces import ICatalogReader


class CatalogRepository(ICatalogReader):
    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_salon(self, salon_id: str) -> Optional[entities.Salon]:
        row = self.db.get(db.Salon, salon_id)
        if row is None:
            return None
        return entities.Salon(
            id=row.id,
            name=row.name,
            commission_rate=row.commission_rate,
            salon_type=row.salon_type,
            size=row.size,
            is_active=row.is_active,
        )

    def get_branch(self, branch_id: str) -> Optional[entities.Branch]:
        row = self.db.get(db.Branch, branch_id)
        if row is None:
            return None
        return entities.Branch(
            id=row.id,
            salon_id=row.salon_id,
            name=row.name,
            is_main_branch=row.is_main_branch,
            is_active=row.is_active,
        )

    def get_staff(self, staff_id: str) -> Optional[entities.Staff]:
        row = self.db.get(db.Staff, staff_id)
        if row is None:
            return None
        return entities.Staff(
            id=row.id,
            salon_id=row.salon_id,
            name=row.name,
            role=row.role,
            commission_percentage=row.commission_percentage,
            branch_id=row.branch_id,
            is_active=row.is_active,
        )

    def get_service(self, service_id: str) -> Optional[entities.Service]:
        row = self.db.get(db.Service, service_id)
        if row is None:
            return None
        return entities.Service(
            id=row.id,
            salon_id=row.salon_id,
            category_id=row.category_id,
            name=row.name,
            duration_minutes=row.duration_minutes,
            price=row.price,
            commission_type=row.commission_type,
            commission_value=row.commission_value,
            is_active=row.is_active,
        )
