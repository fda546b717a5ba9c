# src/cli/runner.py

"""Headless runners behind the command-line entry point."""

import json
import logging
import os
import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.models.change_record import ChangeRecord
from src.models.sync_session import STATUS_FAILED, SyncSession
from src.services.errors import SyncAlreadyRunningError
from src.services.sync_orchestrator import SyncOrchestrator
from src.storage.catalog_db import CatalogDB
from src.storage.file_manager import FileManager

logger = logging.getLogger("plan_sync.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _holder_alive(lock_path: Path) -> bool:
    """True unless the lock file names a process that no longer exists."""
    try:
        pid = int(lock_path.read_text().strip())
    except FileNotFoundError:
        return False
    except ValueError:
        # Unreadable pid: the holder may still be writing it
        return True
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Running under another user
        return True
    return True


def _create_lock(lock_path: Path) -> int:
    return os.open(
        str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY,
    )


@contextmanager
def run_lock(lock_path: Path) -> Generator[None, None, None]:
    """Hold an exclusive lock file for the duration of a run.

    The file records the holder's pid. A lock left behind by a process
    that has since died is reclaimed.

    Raises ``SyncAlreadyRunningError`` if a live process holds it.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = _create_lock(lock_path)
    except FileExistsError as exc:
        msg = f"Lock file {lock_path} exists; another sync is running"
        if _holder_alive(lock_path):
            raise SyncAlreadyRunningError(msg) from exc
        logger.warning("Removing stale lock file %s", lock_path)
        lock_path.unlink(missing_ok=True)
        try:
            fd = _create_lock(lock_path)
        except FileExistsError as retry_exc:
            raise SyncAlreadyRunningError(msg) from retry_exc
    try:
        os.write(fd, str(os.getpid()).encode())
        os.close(fd)
        yield
    finally:
        lock_path.unlink(missing_ok=True)


def _change_table(
    title: str,
    changes: list[ChangeRecord],
    style: str,
) -> Table:
    """Render one change list as a Rich table."""
    table = Table(
        title=f"{title} ({len(changes)})",
        show_lines=False,
        title_style=f"bold {style}",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Provider", style="magenta")
    table.add_column("Plan", max_width=50)
    table.add_column("Old", justify="right")
    table.add_column("New", justify="right", style="green")

    for idx, c in enumerate(changes, 1):
        table.add_row(
            str(idx),
            c.provider_name,
            c.plan_name,
            f"{c.old_rate:.1f}¢" if c.old_rate is not None else "—",
            f"{c.new_rate:.1f}¢" if c.new_rate is not None else "—",
        )
    return table


def _print_tables(session: SyncSession) -> None:
    """Render the three change lists to stdout."""
    console = Console()
    console.print(_change_table("New Plans", session.new_plans, "cyan"))
    console.print(
        _change_table("Updated Plans", session.updated_plans, "yellow")
    )
    console.print(
        _change_table("Removed Plans", session.removed_plans, "red")
    )


def _print_summary(session: SyncSession) -> None:
    """Status summary to stderr."""
    for warning in session.warnings:
        _err.print(f"[yellow]Warning: {warning}[/yellow]")
    for error_msg in session.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")

    colour = "red" if session.status == STATUS_FAILED else "green"
    _err.print(
        f"[{colour}]{session.status}: "
        f"{session.unique_plans} unique of {session.total_plans_found} "
        f"plans from {len(session.regions_processed)} regions "
        f"({session.provenance}); "
        f"{len(session.new_plans)} new, "
        f"{len(session.updated_plans)} updated, "
        f"{len(session.removed_plans)} removed[/{colour}]"
    )


def run_sync(
    auto_apply: bool,
    output_format: str = "json",
    timeout: float | None = None,
    seed: int | None = None,
    db_path: str | None = None,
) -> int:
    """Run one sync and return an exit code (0=ok, 1=failed)."""
    file_manager = FileManager()
    mode = "AUTO-APPLY" if auto_apply else "PREVIEW"
    file_manager.append_log("=" * 80)
    file_manager.append_log(f"AUTOMATED SYNC JOB STARTED (mode: {mode})")
    _err.print(f"[bold]Plan sync[/bold] [dim]mode={mode}[/dim]")

    try:
        with run_lock(Settings.LOCK_FILE):
            store = CatalogDB(Path(db_path) if db_path else None)
            try:
                orchestrator = SyncOrchestrator(
                    store,
                    timeout=(
                        timeout if timeout is not None
                        else Settings.RUN_TIMEOUT
                    ),
                    seed=seed if seed is not None
                    else Settings.ESTIMATOR_SEED,
                )
                session = orchestrator.run(auto_apply=auto_apply)
            finally:
                store.close()
    except SyncAlreadyRunningError as exc:
        logger.error("%s", exc)
        file_manager.append_log(f"SYNC SKIPPED: {exc}")
        _err.print(f"[red]{exc}[/red]")
        return 1
    except Exception as exc:
        logger.critical("Fatal error during sync", exc_info=True)
        file_manager.append_log(f"FATAL ERROR: {exc}")
        _err.print(f"[red]Fatal error: {exc}[/red]")
        return 1

    file_manager.write_session_log(session)
    try:
        path = file_manager.save_session(session)
        _err.print(f"[dim]Saved session → {path}[/dim]")
    except OSError as exc:
        logger.error("Save failed: %s", exc, exc_info=True)
        _err.print(f"[red]Save failed: {exc}[/red]")

    _print_summary(session)

    if output_format == "table":
        _print_tables(session)
    else:
        json.dump(
            session.to_dict(),
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")

    return 1 if session.status == STATUS_FAILED else 0


def run_import_catalog(
    catalog_file: str, db_path: str | None = None,
) -> int:
    """Import reviewed plans from JSON files into the catalog."""
    from rich.progress import Progress

    source = Path(catalog_file)
    if not source.exists():
        _err.print(f"[red]Not found: {source}[/red]")
        return 1

    files = (
        sorted(source.glob("*.json")) if source.is_dir() else [source]
    )
    if not files:
        _err.print("[yellow]No JSON files to import.[/yellow]")
        return 0

    _err.print("[bold]Importing plans into the catalog...[/bold]")
    db = CatalogDB(Path(db_path) if db_path else None)
    total = 0
    try:
        with Progress(console=_err) as progress:
            task = progress.add_task("Importing...", total=len(files))
            for filepath in files:
                total += db.import_catalog_file(filepath)
                progress.advance(task)
    finally:
        db.close()

    _err.print(
        f"[green]✓ Imported {total:,} plans"
        f" from {len(files)} files[/green]"
    )
    return 0


async def run_health_check() -> int:
    """Run connectivity health check on the plan source."""
    from src.services.health_checker import HealthChecker

    _err.print("[bold]Running source health check...[/bold]")
    checker = HealthChecker()
    results = await checker.check_all()

    table = Table(
        title="Source Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Endpoint", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]OK[/green]"
        elif r.status == "slow":
            status = "[yellow]SLOW[/yellow]"
        else:
            status = "[red]DOWN[/red]"
            any_down = True

        latency = (
            f"{r.latency_ms:.0f}ms"
            if r.latency_ms > 0
            else "—"
        )
        table.add_row(
            r.source_id, status, latency, r.message,
        )

    Console().print(table)
    return 1 if any_down else 0
