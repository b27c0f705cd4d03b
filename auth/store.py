"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as market/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(oauth_provider, oauth_subject) is enforced in code rather than SQL
  because SQLite treats two NULL values as distinct in UNIQUE constraints.

DB path: auth/pitchmatch_auth.db unless AUTH_DB_URL is set.

Layer rule: no imports from api/ or market/.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import ROLES, InvestmentPreferences, User

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'pitchmatch_auth.db'}"

# Columns that update_profile() accepts. Everything else (email, password,
# OAuth identity, flags) has its own dedicated method.
PROFILE_FIELDS: frozenset[str] = frozenset(
    {"name", "role", "avatar", "bio", "location", "website", "linkedin", "twitter", "investment_preferences"}
)


class DuplicateEmailError(Exception):
    """Raised by create_user() when the email is already registered."""


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text),  # NULL for OAuth-only users
    Column("role", String(20), nullable=False, server_default="founder"),
    Column("oauth_provider", String(30)),
    Column("oauth_subject", Text),
    Column("avatar", Text),
    Column("bio", String(500)),
    Column("location", String(255)),
    Column("website", String(255)),
    Column("linkedin", String(255)),
    Column("twitter", String(255)),
    Column("investment_preferences", Text),  # JSON object serialized as text
    Column("is_verified", Integer, nullable=False, server_default="0"),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("last_login", String(32)),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        uid = store.create_user(User(name="Ada", email="ada@example.com", hashed_password=hash_password("secret")))
        user = store.get_by_email("ada@example.com")
        store.close()
    """

    def __init__(self, db_url: str = "") -> None:
        db_url = db_url or _DEFAULT_DB_URL
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        A new account must carry exactly one credential: a password hash for
        local signups, or an OAuth identity for provider signups.

        Raises:
            DuplicateEmailError: the email is already registered.
            ValueError: unknown role or credential invariant violated.
        """
        if user.role not in ROLES:
            raise ValueError(f"Unknown role: {user.role!r}")
        has_password = user.hashed_password is not None
        has_oauth = user.oauth_subject is not None
        if has_password == has_oauth:
            raise ValueError("A new account needs exactly one of password hash or OAuth identity.")

        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=user.name.strip(),
                        email=normalize_email(user.email),
                        hashed_password=user.hashed_password,
                        role=user.role,
                        oauth_provider=user.oauth_provider,
                        oauth_subject=user.oauth_subject,
                        avatar=user.avatar,
                        bio=user.bio,
                        location=user.location,
                        website=user.website,
                        linkedin=user.linkedin,
                        twitter=user.twitter,
                        investment_preferences=json.dumps(asdict(user.investment_preferences)),
                        is_verified=1 if user.is_verified else 0,
                        is_active=1 if user.is_active else 0,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(user.email) from exc
        return result.inserted_primary_key[0]

    def update_profile(self, user_id: int, **fields) -> User | None:
        """Update profile fields and return the refreshed user (None if missing).

        investment_preferences may be passed as an InvestmentPreferences
        instance or a plain dict.
        """
        unknown = set(fields) - PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)!r}")
        if "role" in fields and fields["role"] not in ROLES:
            raise ValueError(f"Unknown role: {fields['role']!r}")
        if "investment_preferences" in fields:
            prefs = fields["investment_preferences"]
            if isinstance(prefs, InvestmentPreferences):
                prefs = asdict(prefs)
            fields["investment_preferences"] = json.dumps(prefs)
        fields["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_by_id(user_id)

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login for the given user."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_oauth(self, provider: str, subject: str) -> User | None:
        """Look up a user by (oauth_provider, oauth_subject) pair."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.oauth_provider == provider) & (_users.c.oauth_subject == subject))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_many(self, user_ids: list[int]) -> dict[int, User]:
        """Return {id: User} for every id that exists. Used to attach founders to pitches."""
        if not user_ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().where(_users.c.id.in_(set(user_ids)))).fetchall()
        return {row.id: _row_to_user(row) for row in rows}

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    prefs = json.loads(row.investment_preferences) if row.investment_preferences else {}
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        role=row.role,
        oauth_provider=row.oauth_provider,
        oauth_subject=row.oauth_subject,
        avatar=row.avatar,
        bio=row.bio,
        location=row.location,
        website=row.website,
        linkedin=row.linkedin,
        twitter=row.twitter,
        investment_preferences=InvestmentPreferences(**prefs),
        is_verified=bool(row.is_verified),
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_login=row.last_login,
    )
