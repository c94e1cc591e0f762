# local/store.py
# Durable storage for local build records (what BuildRecord.save() writes).
from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from ..model import Badge, Result, Summary

if TYPE_CHECKING:
    from .build import LocalBuild

DEFAULT_DATABASE_URL = "sqlite:///.postbuild/builds.db"


class Base(DeclarativeBase):
    pass


class BuildRow(Base):
    __tablename__ = "builds"
    __table_args__ = (sa.UniqueConstraint("job_name", "number"),)

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    number: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    result: Mapped[str] = mapped_column(sa.Text, nullable=False)
    actions_json: Mapped[list] = mapped_column(sa.JSON, nullable=False, default=list)
    saved_at: Mapped[datetime] = mapped_column(
        sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )


Action = Union[Badge, Summary]


@dataclass
class StoredBuild:
    job_name: str
    number: int
    result: Result
    actions: List[Action]

    @property
    def badges(self) -> List[Badge]:
        return [a for a in self.actions if isinstance(a, Badge)]

    @property
    def summaries(self) -> List[Summary]:
        return [a for a in self.actions if isinstance(a, Summary)]


def _dump_actions(actions: list) -> list[dict]:
    # Only our own annotations are stored; other host actions are not ours to persist.
    return [a.to_dict() for a in actions if isinstance(a, (Badge, Summary))]


def _load_actions(rows: list[dict]) -> List[Action]:
    out: List[Action] = []
    for data in rows:
        if data.get("kind") == "summary":
            out.append(Summary.from_dict(data))
        else:
            out.append(Badge.from_dict(data))
    return out


def database_url_from_env() -> str:
    return os.environ.get("POSTBUILD_DATABASE_URL", DEFAULT_DATABASE_URL)


class BuildStore:
    """SQLAlchemy-backed persistence of build results and annotations."""

    def __init__(self, url: str | None = None):
        self.url = url or database_url_from_env()
        kwargs: dict = {}
        if self.url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every thread sees its own empty database
            kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        elif self.url.startswith("sqlite:///"):
            Path(self.url[len("sqlite:///"):]).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self.engine = sa.create_engine(self.url, **kwargs)
        self.SessionLocal = sessionmaker(self.engine, expire_on_commit=False)
        self._lock = threading.Lock()
        Base.metadata.create_all(self.engine)

    def save(self, build: "LocalBuild") -> None:
        job_name = build.project.name
        actions = _dump_actions(build.actions)
        with self._lock, self.SessionLocal() as s, s.begin():
            row = s.scalars(
                sa.select(BuildRow).where(BuildRow.job_name == job_name, BuildRow.number == build.number)
            ).one_or_none()
            if row is None:
                s.add(BuildRow(job_name=job_name, number=build.number, result=build.result.name, actions_json=actions))
            else:
                row.result = build.result.name
                row.actions_json = actions

    def load(self, job_name: str, number: int) -> Optional[StoredBuild]:
        with self._lock, self.SessionLocal() as s:
            row = s.scalars(
                sa.select(BuildRow).where(BuildRow.job_name == job_name, BuildRow.number == number)
            ).one_or_none()
            if row is None:
                return None
            return StoredBuild(
                job_name=row.job_name,
                number=row.number,
                result=Result[row.result],
                actions=_load_actions(row.actions_json or []),
            )

    def last_number(self, job_name: str) -> int:
        with self._lock, self.SessionLocal() as s:
            n = s.scalar(sa.select(sa.func.max(BuildRow.number)).where(BuildRow.job_name == job_name))
            return int(n or 0)

    def job_names(self) -> List[str]:
        with self._lock, self.SessionLocal() as s:
            return list(s.scalars(sa.select(BuildRow.job_name).distinct().order_by(BuildRow.job_name)))
