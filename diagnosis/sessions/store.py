"""In-memory registry of live diagnostic sessions for the HTTP layer."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import uuid4

from pydantic import BaseModel, Field

from diagnosis.config import settings
from diagnosis.flow.errors import SessionNotFoundError
from diagnosis.flow.models import ServiceCategory, Session

logger = logging.getLogger("diagnosis.sessions")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionRecord(BaseModel):
    """A session together with the flow it walks."""

    model_config = {"populate_by_name": True}

    id: str = Field(default_factory=lambda: uuid4().hex)
    service_category: ServiceCategory = Field(alias="serviceCategory")
    problem_name: str = Field(alias="problemName")
    session: Session
    created_at: datetime = Field(alias="createdAt", default_factory=_utcnow)
    updated_at: datetime = Field(alias="updatedAt", default_factory=_utcnow)


class SessionStore:
    """Sessions expire after ttl_seconds without activity; the stalest is evicted when full."""

    def __init__(
        self,
        ttl_seconds: int | None = None,
        max_sessions: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = timedelta(
            seconds=settings.session_ttl_seconds if ttl_seconds is None else ttl_seconds
        )
        self._max = settings.max_sessions if max_sessions is None else max_sessions
        self._clock = clock
        self._records: dict[str, SessionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def active_count(self) -> int:
        """Number of live sessions, dropping any that have expired."""
        self.purge_expired()
        return len(self._records)

    def create(
        self,
        service_category: ServiceCategory,
        problem_name: str,
        session: Session,
    ) -> SessionRecord:
        self.purge_expired()
        if self._records and len(self._records) >= self._max:
            stalest = min(self._records.values(), key=lambda r: r.updated_at)
            del self._records[stalest.id]
            logger.warning("Session limit %d reached, evicted %s", self._max, stalest.id)

        now = self._clock()
        record = SessionRecord(
            service_category=service_category,
            problem_name=problem_name,
            session=session,
            created_at=now,
            updated_at=now,
        )
        self._records[record.id] = record
        logger.info("Session %s created for %s/%s", record.id, service_category.value, problem_name)
        return record

    def get(self, session_id: str) -> SessionRecord:
        record = self._records.get(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        if self._expired(record):
            del self._records[session_id]
            logger.info("Session %s expired", session_id)
            raise SessionNotFoundError(session_id)
        return record

    def touch(self, record: SessionRecord) -> None:
        record.updated_at = self._clock()

    def discard(self, session_id: str) -> bool:
        return self._records.pop(session_id, None) is not None

    def purge_expired(self) -> int:
        expired = [sid for sid, r in self._records.items() if self._expired(r)]
        for sid in expired:
            del self._records[sid]
        if expired:
            logger.info("Purged %d expired sessions", len(expired))
        return len(expired)

    def _expired(self, record: SessionRecord) -> bool:
        return self._clock() - record.updated_at > self._ttl
