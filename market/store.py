"""
market/store.py -- SQLAlchemy-backed persistence for pitches and investor interest.

Uses SQLAlchemy Core (not ORM) so the dataclasses in market/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. PitchStore is the repository; _row_to_pitch
is the mapper. Route handlers never touch SQL directly.

Interest is a (investor_id, pitch_id) relation with a UNIQUE constraint.
mark_interest() is append-if-absent: marking the same pitch twice leaves a
single row, and a concurrent duplicate insert is reported as "already
present" rather than an error.

Usage:
    store = PitchStore()                          # SQLite default
    pitch_id = store.create_pitch(pitch)
    store.mark_interest(investor_id, pitch_id)    # True
    store.mark_interest(investor_id, pitch_id)    # False, still one row
    store.close()
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from market.models import Pitch

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'pitchmatch_market.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_pitches = Table(
    "pitches",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("industry", String(100), nullable=False),
    Column("stage", String(20), nullable=False),
    Column("founder_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)

_interests = Table(
    "pitch_interests",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("investor_id", Integer, nullable=False, index=True),
    Column("pitch_id", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("investor_id", "pitch_id", name="uq_investor_pitch"),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PitchStore:
    """Repository for Pitch records and the investor interest relation."""

    def __init__(self, db_url: str = "") -> None:
        db_url = db_url or _DEFAULT_DB_URL
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Pitches
    # ------------------------------------------------------------------

    def create_pitch(self, pitch: Pitch) -> int:
        """Insert a pitch and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _pitches.insert().values(
                    name=pitch.name,
                    description=pitch.description,
                    industry=pitch.industry,
                    stage=pitch.stage,
                    founder_id=pitch.founder_id,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_pitch(self, pitch_id: int) -> Optional[Pitch]:
        with self.engine.connect() as conn:
            row = conn.execute(_pitches.select().where(_pitches.c.id == pitch_id)).fetchone()
        return _row_to_pitch(row) if row is not None else None

    def list_pitches(self) -> list[Pitch]:
        """Return every pitch, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _pitches.select().order_by(_pitches.c.created_at.desc(), _pitches.c.id.desc())
            ).fetchall()
        return [_row_to_pitch(r) for r in rows]

    def list_pitches_by_founder(self, founder_id: int) -> list[Pitch]:
        """Return one founder's pitches, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _pitches.select()
                .where(_pitches.c.founder_id == founder_id)
                .order_by(_pitches.c.created_at.desc(), _pitches.c.id.desc())
            ).fetchall()
        return [_row_to_pitch(r) for r in rows]

    # ------------------------------------------------------------------
    # Interest
    # ------------------------------------------------------------------

    def mark_interest(self, investor_id: int, pitch_id: int) -> bool:
        """Record that an investor is interested in a pitch.

        Returns True when the interest was newly added, False when it was
        already present. The caller verifies the pitch exists.
        """
        with self.engine.connect() as conn:
            existing = conn.execute(
                select(_interests.c.id).where(
                    (_interests.c.investor_id == investor_id) & (_interests.c.pitch_id == pitch_id)
                )
            ).fetchone()
            if existing is not None:
                return False
            try:
                conn.execute(
                    _interests.insert().values(investor_id=investor_id, pitch_id=pitch_id, created_at=_now_iso())
                )
                conn.commit()
            except IntegrityError:
                # Lost a race with an identical request; the row exists.
                conn.rollback()
                return False
        return True

    def get_interested_pitch_ids(self, investor_id: int) -> list[int]:
        """Return the investor's interested pitch IDs in the order they were marked."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(_interests.c.pitch_id)
                .where(_interests.c.investor_id == investor_id)
                .order_by(_interests.c.id)
            ).fetchall()
        return [r.pitch_id for r in rows]

    def list_interested_pitches(self, investor_id: int) -> list[Pitch]:
        """Return the pitches an investor marked, in the order they were marked."""
        stmt = (
            select(_pitches)
            .join(_interests, _interests.c.pitch_id == _pitches.c.id)
            .where(_interests.c.investor_id == investor_id)
            .order_by(_interests.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_pitch(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


def _row_to_pitch(row) -> Pitch:
    return Pitch(
        id=row.id,
        name=row.name,
        description=row.description,
        industry=row.industry,
        stage=row.stage,
        founder_id=row.founder_id,
        created_at=row.created_at,
    )
