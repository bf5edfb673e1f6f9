"""Beat repository extending base repository."""
import json
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import String, cast, or_, update
from sqlalchemy.orm import Session

from beatmarket.models.beat import Beat
from beatmarket.repositories.base import BaseRepository


def _json_list_contains(column, value: str):
    """Portable membership test for a JSON list of strings."""
    return cast(column, String).like(f"%{json.dumps(value)}%")


class BeatRepository(BaseRepository[Beat]):
    """Repository for catalog queries and counter updates."""

    def __init__(self, db: Session):
        super().__init__(Beat, db)

    def _filtered(
        self,
        is_active: Optional[bool] = None,
        genre: Optional[str] = None,
        mood: Optional[str] = None,
        search: Optional[str] = None,
    ):
        query = self.db.query(Beat)
        if is_active is not None:
            query = query.filter(Beat.is_active.is_(is_active))
        if genre:
            query = query.filter(_json_list_contains(Beat.genres, genre))
        if mood:
            query = query.filter(_json_list_contains(Beat.moods, mood))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Beat.title.ilike(pattern),
                    cast(Beat.tags, String).ilike(pattern),
                )
            )
        return query

    def list_catalog(
        self,
        skip: int = 0,
        limit: int = 12,
        genre: Optional[str] = None,
        mood: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Beat], int]:
        """Storefront listing: active beats only, newest first."""
        query = self._filtered(is_active=True, genre=genre, mood=mood, search=search)
        return self._paginate(query, skip, limit)

    def list_admin(
        self,
        skip: int = 0,
        limit: int = 10,
        status: str = 'all',
        genre: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Beat], int]:
        """
        Back-office listing.

        Args:
            status: 'active', 'inactive' or 'all'
        """
        is_active = {'active': True, 'inactive': False}.get(status)
        query = self._filtered(is_active=is_active, genre=genre, search=search)
        return self._paginate(query, skip, limit)

    def get_active(self, beat_id: UUID) -> Optional[Beat]:
        return self.db.query(Beat).filter(Beat.id == beat_id, Beat.is_active.is_(True)).first()

    def increment_play_count(self, beat_id: UUID) -> None:
        self.db.execute(
            update(Beat).where(Beat.id == beat_id).values(play_count=Beat.play_count + 1)
        )
        self.db.commit()

    def record_sale(self, beat_id: UUID, deactivate: bool = False) -> None:
        """Atomically bump the sales counter, optionally taking the beat off sale."""
        values = {"sales_count": Beat.sales_count + 1}
        if deactivate:
            values["is_active"] = False
        self.db.execute(update(Beat).where(Beat.id == beat_id).values(**values))
        self.db.commit()

    def deactivate(self, beat_id: UUID) -> bool:
        result = self.db.execute(update(Beat).where(Beat.id == beat_id).values(is_active=False))
        self.db.commit()
        return result.rowcount > 0

    def top_sellers(self, limit: int = 5) -> List[Beat]:
        return (
            self.db.query(Beat)
            .filter(Beat.sales_count > 0)
            .order_by(Beat.sales_count.desc())
            .limit(limit)
            .all()
        )
