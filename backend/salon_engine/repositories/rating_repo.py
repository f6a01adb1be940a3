from datetime import date
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from salon_engine.db.base import Rating as DbRating
from salon_engine.domain.entities import Rating
from salon_engine.domain.interfaces import IRatingSource


class RatingRepository(IRatingSource):
    """Ratings stored locally in the ``ratings`` table."""

    def __init__(self, db: Session):
        self.db = db

    def ratings_for(self, salon_id: str, start_date: date, end_date: date) -> List[Rating]:
        stmt = select(DbRating).where(
            DbRating.salon_id == salon_id,
            DbRating.rated_on >= start_date,
            DbRating.rated_on <= end_date,
        )
        return [
            Rating(
                salon_id=row.salon_id,
                staff_id=row.staff_id,
                value=row.value,
                rated_on=row.rated_on,
                client_id=row.client_id,
            )
            for row in self.db.execute(stmt).scalars()
        ]
