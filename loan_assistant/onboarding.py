# loan_assistant/onboarding.py
"""
Persisted onboarding state: privacy agreement, then the guided tour.

    PRIVACY_PENDING -> TOUR_PENDING -> COMPLETED

The stage is derived from the two timestamps stored per user, so a record can
never claim a later stage than its timestamps support.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import aiosqlite
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Each entry upgrades the schema by one version (PRAGMA user_version)
MIGRATIONS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS onboarding (
        user_id TEXT PRIMARY KEY,
        agreed_at TEXT,
        tour_completed_at TEXT
    )
    """,
    "ALTER TABLE onboarding ADD COLUMN updated_at TEXT",
)


class OnboardingStage(Enum):
    PRIVACY_PENDING = "privacy_pending"
    TOUR_PENDING = "tour_pending"
    COMPLETED = "completed"


class OnboardingTransitionError(RuntimeError):
    """Raised when an onboarding step is taken out of order."""


class OnboardingRecord(BaseModel):
    user_id: str
    agreed_at: datetime | None = None
    tour_completed_at: datetime | None = None

    @property
    def stage(self) -> OnboardingStage:
        if self.agreed_at is None:
            return OnboardingStage.PRIVACY_PENDING
        if self.tour_completed_at is None:
            return OnboardingStage.TOUR_PENDING
        return OnboardingStage.COMPLETED

    @property
    def show_privacy_modal(self) -> bool:
        return self.stage is OnboardingStage.PRIVACY_PENDING

    @property
    def show_tour(self) -> bool:
        return self.stage is OnboardingStage.TOUR_PENDING


class LegacyOnboardingState(BaseModel):
    """The JSON blob the web client kept in browser storage."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    has_agreed_to_privacy: bool = False
    has_completed_tour: bool = False
    agreed_at: datetime | None = None
    tour_completed_at: datetime | None = None


def _now() -> datetime:
    return datetime.now(UTC)


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _format_ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class OnboardingRepo:
    """
    SQLite store of onboarding progress, one row per user.
    Unknown users start at PRIVACY_PENDING without a row being written.
    """

    def __init__(self, db_path: str | Path = "onboarding.db"):
        self.db_path = str(db_path)
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._connection_lock = asyncio.Lock()  # Serialize database access
        self._connection: aiosqlite.Connection | None = None

    async def _initialize(self) -> None:
        """Open the connection and apply pending migrations on first use."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return

            self._connection = await aiosqlite.connect(self.db_path)
            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA busy_timeout=30000")

            cursor = await self._connection.execute("PRAGMA user_version")
            row = await cursor.fetchone()
            version = row[0] if row else 0

            for target, statement in enumerate(MIGRATIONS[version:], start=version + 1):
                await self._connection.execute(statement)
                # PRAGMA does not accept bound parameters
                await self._connection.execute(f"PRAGMA user_version = {target}")
                logger.info(f"Onboarding schema migrated to version {target}")
            await self._connection.commit()

            self._initialized = True

    async def _conn(self) -> aiosqlite.Connection:
        await self._initialize()
        if not self._connection:
            raise RuntimeError("Database connection not available")
        return self._connection

    async def schema_version(self) -> int:
        conn = await self._conn()
        async with self._connection_lock:
            cursor = await conn.execute("PRAGMA user_version")
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def get(self, user_id: str) -> OnboardingRecord:
        conn = await self._conn()
        async with self._connection_lock:
            cursor = await conn.execute(
                "SELECT agreed_at, tour_completed_at FROM onboarding WHERE user_id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()

        if row is None:
            return OnboardingRecord(user_id=user_id)
        return OnboardingRecord(
            user_id=user_id,
            agreed_at=_parse_ts(row[0]),
            tour_completed_at=_parse_ts(row[1]),
        )

    async def _save(self, record: OnboardingRecord) -> OnboardingRecord:
        conn = await self._conn()
        async with self._connection_lock:
            await conn.execute(
                """
                INSERT INTO onboarding (user_id, agreed_at, tour_completed_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    agreed_at = excluded.agreed_at,
                    tour_completed_at = excluded.tour_completed_at,
                    updated_at = excluded.updated_at
                """,
                (
                    record.user_id,
                    _format_ts(record.agreed_at),
                    _format_ts(record.tour_completed_at),
                    _now().isoformat(),
                ),
            )
            await conn.commit()
        return record

    async def agree_to_privacy(self, user_id: str) -> OnboardingRecord:
        record = await self.get(user_id)
        if record.agreed_at is not None:
            return record
        logger.info(f"User {user_id} agreed to the privacy policy")
        return await self._save(record.model_copy(update={"agreed_at": _now()}))

    async def complete_tour(self, user_id: str) -> OnboardingRecord:
        record = await self.get(user_id)
        if record.stage is OnboardingStage.PRIVACY_PENDING:
            raise OnboardingTransitionError(
                f"User {user_id} must agree to the privacy policy before the tour"
            )
        if record.stage is OnboardingStage.COMPLETED:
            return record
        logger.info(f"User {user_id} completed the guided tour")
        return await self._save(record.model_copy(update={"tour_completed_at": _now()}))

    async def skip_tour(self, user_id: str) -> OnboardingRecord:
        """Skipping the tour counts as completing it."""
        return await self.complete_tour(user_id)

    async def import_legacy(
        self, user_id: str, payload: str | dict[str, Any]
    ) -> OnboardingRecord:
        """
        Adopt a browser-storage onboarding blob for a user with no stored row.
        An existing row is never overwritten.
        """
        data = json.loads(payload) if isinstance(payload, str) else payload
        legacy = LegacyOnboardingState.model_validate(data)

        conn = await self._conn()
        async with self._connection_lock:
            cursor = await conn.execute(
                "SELECT 1 FROM onboarding WHERE user_id = ?", (user_id,)
            )
            exists = await cursor.fetchone() is not None
        if exists:
            logger.info(f"Skipping legacy onboarding import for {user_id}: already stored")
            return await self.get(user_id)

        record = OnboardingRecord(
            user_id=user_id,
            agreed_at=(legacy.agreed_at or _now()) if legacy.has_agreed_to_privacy else None,
            tour_completed_at=(
                (legacy.tour_completed_at or _now()) if legacy.has_completed_tour else None
            ),
        )
        logger.info(f"Imported legacy onboarding state for {user_id}: {record.stage.value}")
        return await self._save(record)

    async def reset(self, user_id: str) -> OnboardingRecord:
        conn = await self._conn()
        async with self._connection_lock:
            await conn.execute("DELETE FROM onboarding WHERE user_id = ?", (user_id,))
            await conn.commit()
        return OnboardingRecord(user_id=user_id)

    async def close(self) -> None:
        """Close the persistent database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            self._initialized = False

    async def __aenter__(self) -> OnboardingRepo:
        await self._initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
