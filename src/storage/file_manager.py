# src/storage/file_manager.py

"""Handles writing sync sessions to disk."""

import json
import logging
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings
from src.models.change_record import ChangeRecord
from src.models.sync_session import STATUS_COMPLETED, SyncSession

logger = logging.getLogger("plan_sync.storage")

_RULE = "=" * 80


def _fmt_rate(rate: float | None) -> str:
    return f"{rate:.1f}¢" if rate is not None else "?"


def format_session_lines(session: SyncSession) -> list[str]:
    """Render a session as the human-readable lines of the run log."""
    lines: list[str] = [
        "SYNC RESULTS:",
        f"Session ID: {session.session_id}",
        f"Mode: {'AUTO-APPLY' if session.auto_apply else 'PREVIEW'}",
        f"Status: {session.status}",
        f"Start Time: {session.start_time}",
        f"End Time: {session.end_time or 'N/A'}",
        f"Data Source: {session.provenance}",
        f"Regions Processed: {len(session.regions_processed)}",
        f"  - {', '.join(session.regions_processed)}",
        f"Plans Found: {session.total_plans_found}",
        f"Unique Plans: {session.unique_plans}",
        "CHANGES DETECTED:",
        f"  New Plans: {len(session.new_plans)}",
        f"  Updated Plans: {len(session.updated_plans)}",
        f"  Removed Plans: {len(session.removed_plans)}",
    ]

    if session.new_plans:
        lines.append("NEW PLANS:")
        lines.extend(
            f"  {i}. {c.provider_name} - {c.plan_name} "
            f"({_fmt_rate(c.new_rate)})"
            for i, c in enumerate(session.new_plans, 1)
        )

    if session.updated_plans:
        lines.append("UPDATED PLANS:")
        lines.extend(
            _format_update(i, c)
            for i, c in enumerate(session.updated_plans, 1)
        )

    if session.removed_plans:
        lines.append("REMOVED PLANS:")
        lines.extend(
            f"  {i}. {c.provider_name} - {c.plan_name} "
            f"(was {_fmt_rate(c.old_rate)})"
            for i, c in enumerate(session.removed_plans, 1)
        )

    if session.warnings:
        lines.append("WARNINGS:")
        lines.extend(
            f"  {i}. {w}" for i, w in enumerate(session.warnings, 1)
        )

    if session.errors:
        lines.append("ERRORS:")
        lines.extend(
            f"  {i}. {e}" for i, e in enumerate(session.errors, 1)
        )

    if session.status == STATUS_COMPLETED:
        lines.append("SYNC JOB COMPLETED SUCCESSFULLY")
        if session.auto_apply:
            lines.append(
                f"Applied {len(session.updated_plans)} updates and marked "
                f"{len(session.removed_plans)} plans as inactive"
            )
            lines.append(
                f"{len(session.new_plans)} new plans found "
                "(not auto-inserted, add manually after review)"
            )
        else:
            lines.append(
                "Preview mode - no changes were applied to the catalog"
            )
    else:
        lines.append("SYNC JOB FAILED")
    return lines


def _format_update(index: int, change: ChangeRecord) -> str:
    old = change.old_rate or 0.0
    new = change.new_rate or 0.0
    delta = new - old
    arrow = "↑" if delta > 0 else "↓"
    sign = "+" if delta > 0 else ""
    return (
        f"  {index}. {change.provider_name} - {change.plan_name}: "
        f"{old:.1f}¢ {arrow} {new:.1f}¢ ({sign}{delta:.1f}¢)"
    )


class FileManager:
    """Handles the append-only run log and session JSON files."""

    def __init__(
        self,
        logs_dir: Path | None = None,
        results_dir: Path | None = None,
    ) -> None:
        self.logs_dir: Path = logs_dir or Settings.LOGS_DIR
        self.results_dir: Path = results_dir or Settings.RESULTS_DIR
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self.results_dir.mkdir(parents=True, exist_ok=True)
        self.log_file: Path = (
            self.logs_dir
            / f"sync_{datetime.now().strftime('%Y-%m-%d')}.log"
        )
        logger.debug(
            "FileManager initialised, log_file=%s", self.log_file,
        )

    def append_log(self, message: str) -> None:
        """Append one timestamped line to the daily run log."""
        stamp = datetime.now().isoformat(timespec="seconds")
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(f"[{stamp}] {message}\n")

    def write_session_log(self, session: SyncSession) -> Path:
        """Append the full session summary to the daily run log."""
        self.append_log(_RULE)
        for line in format_session_lines(session):
            self.append_log(line)
        self.append_log(_RULE)
        return self.log_file

    def save_session(self, session: SyncSession) -> Path:
        """Save the session artifact to a JSON file named by its id."""
        filepath = self.results_dir / f"{session.session_id}.json"
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, ensure_ascii=False, indent=2)
        logger.info(
            "Saved session %s to %s", session.session_id, filepath,
        )
        return filepath
