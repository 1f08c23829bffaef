# storefront/db.py
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base

PageBase = declarative_base()


def _utcnow() -> datetime:
   # naive UTC, the way sqlite hands DateTime columns back
   return datetime.now(timezone.utc).replace(tzinfo=None)


class CachedPageRow(PageBase):
   __tablename__ = "cached_pages"

   id = Column(Integer, primary_key=True)
   url = Column(String(1024), nullable=False, unique=True, index=True)
   status = Column(Integer, nullable=False, default=0)
   content = Column(Text, nullable=False)
   fetched_at = Column(DateTime(timezone=False), nullable=False, default=_utcnow)


@dataclass(slots=True)
class CachedPage:
   url: str
   status: int
   content: str
   fetched_at: datetime


def cache_url(target: str) -> str:
   """A bare path names a sqlite file."""
   return target if "://" in target else f"sqlite:///{target}"


@lru_cache(maxsize=None)
def cache_engine(url: str) -> Engine:
   connect_args = {"timeout": 30, "check_same_thread": False} if url.startswith("sqlite") else {}
   engine = create_engine(url, connect_args=connect_args)
   PageBase.metadata.create_all(engine)
   return engine


def make_session(target: str = "page-cache.db") -> Session:
   return Session(cache_engine(cache_url(target)), expire_on_commit=False)


class PageCache:
   """Raw product pages keyed by URL, reused while younger than *ttl* seconds."""

   LOCK_RETRIES = 5

   def __init__(self, session: Session, *, ttl: int = 6 * 3600):
      self._session = session
      self.ttl = timedelta(seconds=max(0, ttl))

   def _row(self, url: str) -> Optional[CachedPageRow]:
      return self._session.scalars(select(CachedPageRow).where(CachedPageRow.url == url)).first()

   def get(self, url: str, *, now: Optional[datetime] = None) -> Optional[CachedPage]:
      row = self._row(url)
      if row is None or (now or _utcnow()) - row.fetched_at > self.ttl:
         return None
      return CachedPage(url=row.url, status=row.status, content=row.content, fetched_at=row.fetched_at)

   def put(self, url: str, status: int, content: str, *, now: Optional[datetime] = None) -> None:
      fetched_at = now or _utcnow()

      def apply() -> None:
         row = self._row(url)
         if row is None:
            row = CachedPageRow(url=url)
            self._session.add(row)
         row.status = status
         row.content = content
         row.fetched_at = fetched_at

      self.commit(apply)

   def purge_expired(self, *, now: Optional[datetime] = None) -> int:
      cutoff = (now or _utcnow()) - self.ttl
      stmt = delete(CachedPageRow).where(CachedPageRow.fetched_at < cutoff)
      return self.commit(lambda: self._session.execute(stmt).rowcount or 0) or 0

   def commit(self, apply: Optional[Callable[[], Any]] = None) -> Any:
      """
      Run *apply* and commit, backing off while another process holds the
      sqlite write lock. A rollback discards pending changes, so *apply* is
      re-run on every attempt. Returns whatever *apply* returned.
      """
      delay = 0.1
      for attempt in range(1, self.LOCK_RETRIES + 1):
         try:
            result = apply() if apply is not None else None
            self._session.commit()
            return result
         except OperationalError as exc:
            self._session.rollback()
            if "database is locked" not in str(exc).lower() or attempt == self.LOCK_RETRIES:
               raise
            time.sleep(delay)
            delay *= 2
      return None

   def close(self) -> None:
      try:
         self.commit()
      finally:
         self._session.close()
