# src/storage/catalog_db.py

"""SQLite-backed plan catalog store."""

import json
import logging
import re
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Protocol, cast

from src.config.settings import Settings
from src.models.catalog_entry import CatalogEntry

logger = logging.getLogger("plan_sync.catalog")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS providers (
    id         TEXT PRIMARY KEY,
    name       TEXT NOT NULL,
    slug       TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plans (
    id                     TEXT    PRIMARY KEY,
    provider_id            TEXT    NOT NULL
                           REFERENCES providers(id),
    plan_name              TEXT    NOT NULL,
    plan_type              TEXT    NOT NULL DEFAULT 'Fixed',
    contract_length_months INTEGER NOT NULL DEFAULT 0,
    renewable_percentage   REAL    NOT NULL DEFAULT 0,
    rate_500kwh            REAL    NOT NULL,
    rate_1000kwh           REAL    NOT NULL,
    rate_2000kwh           REAL    NOT NULL,
    base_charge            REAL    NOT NULL DEFAULT 0,
    early_termination_fee  REAL,
    features               TEXT    NOT NULL DEFAULT '[]',
    efl_url                TEXT,
    tos_url                TEXT,
    yrac_url               TEXT,
    is_active              INTEGER NOT NULL DEFAULT 1,
    created_at             TEXT    NOT NULL,
    updated_at             TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_plans_active
    ON plans(is_active);
"""

_ENTRY_COLUMNS = (
    "p.id, p.provider_id, v.name, p.plan_name, "
    "p.rate_500kwh, p.rate_1000kwh, p.rate_2000kwh, "
    "p.is_active, p.updated_at"
)


def slugify(name: str) -> str:
    """Turn a provider name into its catalog slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
    return slug.strip("-")


class CatalogStore(Protocol):
    """The store surface the sync pipeline reads and writes."""

    def read_active_entries(self) -> list[CatalogEntry]: ...

    def deactivate(self, entry_id: str) -> None: ...

    def patch_rate(
        self,
        entry_id: str,
        new_rate: float,
        timestamp: str,
        tier: int = ...,
    ) -> None: ...

    def resolve_provider_id(self, provider_name: str) -> str | None: ...


class CatalogDB:
    """SQLite-backed store for providers and their plans."""

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.CATALOG_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("CatalogDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @staticmethod
    def _row_to_entry(row: tuple[object, ...]) -> CatalogEntry:
        return CatalogEntry(
            entry_id=str(row[0]),
            provider_id=str(row[1]),
            provider_name=str(row[2]),
            plan_name=str(row[3]),
            rate_500kwh=float(cast(float, row[4])),
            rate_1000kwh=float(cast(float, row[5])),
            rate_2000kwh=float(cast(float, row[6])),
            active=bool(row[7]),
            updated_at=str(row[8]),
        )

    # ── Sync surface ─────────────────────────────────────

    def read_active_entries(self) -> list[CatalogEntry]:
        """Return every active plan joined with its provider name."""
        rows = self._conn.execute(
            f"SELECT {_ENTRY_COLUMNS} "
            "FROM plans p JOIN providers v ON v.id = p.provider_id "
            "WHERE p.is_active = 1 "
            "ORDER BY v.name, p.plan_name",
        ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def deactivate(self, entry_id: str) -> None:
        """Soft-delete a plan. Rates are left untouched."""
        cur = self._conn.execute(
            "UPDATE plans SET is_active = 0 WHERE id = ?",
            (entry_id,),
        )
        self._conn.commit()
        if cur.rowcount == 0:
            msg = f"No catalog plan with id {entry_id}"
            raise LookupError(msg)
        logger.debug("Deactivated plan %s", entry_id)

    def patch_rate(
        self,
        entry_id: str,
        new_rate: float,
        timestamp: str,
        tier: int = Settings.REPRESENTATIVE_TIER,
    ) -> None:
        """Overwrite one tier's rate and refresh ``updated_at``."""
        if tier not in Settings.RATE_TIERS:
            msg = f"Unknown rate tier: {tier}"
            raise ValueError(msg)
        cur = self._conn.execute(
            f"UPDATE plans SET rate_{tier}kwh = ?, updated_at = ? "
            "WHERE id = ?",
            (new_rate, timestamp, entry_id),
        )
        self._conn.commit()
        if cur.rowcount == 0:
            msg = f"No catalog plan with id {entry_id}"
            raise LookupError(msg)
        logger.debug(
            "Patched plan %s rate_%dkwh=%.2f", entry_id, tier, new_rate,
        )

    def resolve_provider_id(self, provider_name: str) -> str | None:
        """Look a provider up by exact name or slug."""
        row = self._conn.execute(
            "SELECT id FROM providers WHERE name = ? OR slug = ? "
            "LIMIT 1",
            (provider_name, provider_name),
        ).fetchone()
        return str(row[0]) if row else None

    # ── Catalog maintenance ──────────────────────────────

    def add_provider(
        self, name: str, slug: str | None = None,
    ) -> str:
        """Insert a provider (or return the existing id for its slug)."""
        provider_slug = slug or slugify(name)
        row = self._conn.execute(
            "SELECT id FROM providers WHERE slug = ?",
            (provider_slug,),
        ).fetchone()
        if row is not None:
            return str(row[0])
        provider_id = uuid.uuid4().hex
        self._conn.execute(
            "INSERT INTO providers (id, name, slug, created_at) "
            "VALUES (?, ?, ?, ?)",
            (provider_id, name, provider_slug, datetime.now().isoformat()),
        )
        self._conn.commit()
        return provider_id

    def add_plan(
        self,
        provider_id: str,
        plan_name: str,
        rate_500kwh: float,
        rate_1000kwh: float,
        rate_2000kwh: float,
        active: bool = True,
        **details: object,
    ) -> str:
        """Insert a plan row and return its id.

        This is the operator path for adding reviewed plans; the sync
        pipeline itself never calls it.
        """
        plan_id = uuid.uuid4().hex
        now = datetime.now().isoformat()
        features = details.get("features") or []
        self._conn.execute(
            "INSERT INTO plans (id, provider_id, plan_name, plan_type, "
            "contract_length_months, renewable_percentage, "
            "rate_500kwh, rate_1000kwh, rate_2000kwh, base_charge, "
            "early_termination_fee, features, efl_url, tos_url, "
            "yrac_url, is_active, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                plan_id,
                provider_id,
                plan_name,
                str(details.get("plan_type", "Fixed")),
                int(cast(int, details.get("contract_length_months", 0))),
                float(cast(float, details.get("renewable_percentage", 0))),
                rate_500kwh,
                rate_1000kwh,
                rate_2000kwh,
                float(cast(float, details.get("base_charge", 0))),
                details.get("early_termination_fee"),
                json.dumps(features),
                details.get("efl_url"),
                details.get("tos_url"),
                details.get("yrac_url"),
                1 if active else 0,
                now,
                now,
            ),
        )
        self._conn.commit()
        return plan_id

    def get_entry(self, entry_id: str) -> CatalogEntry | None:
        """Return a plan regardless of its active flag."""
        row = self._conn.execute(
            f"SELECT {_ENTRY_COLUMNS} "
            "FROM plans p JOIN providers v ON v.id = p.provider_id "
            "WHERE p.id = ?",
            (entry_id,),
        ).fetchone()
        return self._row_to_entry(row) if row else None

    def list_entries(
        self, active: bool | None = None,
    ) -> list[CatalogEntry]:
        """Return plans, optionally filtered by the active flag."""
        sql = (
            f"SELECT {_ENTRY_COLUMNS} "
            "FROM plans p JOIN providers v ON v.id = p.provider_id"
        )
        params: tuple[object, ...] = ()
        if active is not None:
            sql += " WHERE p.is_active = ?"
            params = (1 if active else 0,)
        rows = self._conn.execute(
            sql + " ORDER BY v.name, p.plan_name", params,
        ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def count_entries(self, active: bool | None = None) -> int:
        """Count plan rows, optionally filtered by the active flag."""
        if active is None:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM plans"
            ).fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM plans WHERE is_active = ?",
                (1 if active else 0,),
            ).fetchone()
        return int(row[0])

    def _plan_exists(self, provider_id: str, plan_name: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM plans WHERE provider_id = ? AND plan_name = ?",
            (provider_id, plan_name),
        ).fetchone()
        return row is not None

    # ── Operator import ──────────────────────────────────

    def import_catalog_file(self, filepath: Path) -> int:
        """Import reviewed plans from a JSON file.

        The file holds a list of objects with ``provider``, optional
        ``provider_slug``, ``plan_name`` and the three ``rate_*kwh``
        figures, plus optional plan details. Plans whose identity
        already exists are skipped. Returns the count inserted.
        """
        try:
            with open(filepath, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning(
                "Failed to read %s: %s", filepath.name, exc,
            )
            return 0

        if not isinstance(data, list):
            logger.warning(
                "Catalog file %s is not a JSON list", filepath.name,
            )
            return 0

        items: list[object] = cast(list[object], data)
        entries: list[dict[str, object]] = [
            e for e in items if isinstance(e, dict)
        ]
        count = 0
        for row in entries:
            provider = str(row.get("provider", "")).strip()
            plan_name = str(row.get("plan_name", "")).strip()
            if not provider or not plan_name:
                continue
            try:
                rates = [
                    float(str(row[f"rate_{tier}kwh"]))
                    for tier in Settings.RATE_TIERS
                ]
            except (KeyError, ValueError):
                logger.warning(
                    "Skipping %s - %s: missing or bad rates",
                    provider,
                    plan_name,
                )
                continue

            slug = row.get("provider_slug")
            provider_id = self.add_provider(
                provider, str(slug) if slug else None,
            )
            if self._plan_exists(provider_id, plan_name):
                logger.debug(
                    "Skipping existing plan %s - %s", provider, plan_name,
                )
                continue

            details = {
                k: v for k, v in row.items()
                if k not in (
                    "provider", "provider_slug", "plan_name",
                    "rate_500kwh", "rate_1000kwh", "rate_2000kwh",
                )
            }
            self.add_plan(provider_id, plan_name, *rates, **details)
            count += 1

        logger.info(
            "Catalog import from %s: %d plans added",
            filepath.name,
            count,
        )
        return count
