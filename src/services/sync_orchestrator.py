# src/services/sync_orchestrator.py

"""Drives one plan sync run: collect, dedupe, diff and apply."""

import importlib
import logging
import random
import threading
import time
from collections.abc import Callable
from typing import Any

from src.collectors.base_collector import BaseCollector, Live, Unavailable
from src.collectors.estimator import PlanEstimator
from src.config.settings import Settings
from src.filters.deduplicator import RecordDeduplicator
from src.filters.record_validator import RecordValidator
from src.models.region import RegionTarget
from src.models.source_record import (
    PROVENANCE_ESTIMATED,
    PROVENANCE_LIVE,
    SourceRecord,
)
from src.models.sync_session import SyncSession
from src.services.applier import ChangeApplier
from src.services.differ import PlanDiffer
from src.services.errors import SyncAlreadyRunningError, SyncTimeoutError
from src.services.session_recorder import SessionRecorder
from src.storage.catalog_db import CatalogStore
from src.storage.provider_directory import CatalogProviderDirectory

logger = logging.getLogger("plan_sync.orchestrator")

ESTIMATE_WARNINGS: tuple[str, ...] = (
    "Using estimated market rates based on current Texas "
    "electricity market conditions",
    "Please verify rates at powertochoose.org before publishing "
    "to users",
)


def _load_collector_class(dotted_path: str) -> type[Any]:
    """Dynamically import a collector class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


class SyncOrchestrator:
    """Coordinates collection, fallback estimation, diffing and applying.

    Regions are visited strictly in order with ``request_delay`` seconds
    between calls. The catalog snapshot is read once, at the start of
    the run, and every fresh record is compared against it.

    Only one run may be in flight per orchestrator; callers that share a
    catalog across processes must also serialise runs (the CLI holds a
    lock file for that).
    """

    def __init__(
        self,
        store: CatalogStore,
        collector: BaseCollector | None = None,
        estimator: PlanEstimator | None = None,
        regions: list[RegionTarget] | None = None,
        request_delay: float | None = None,
        provider_aliases: dict[str, str] | None = None,
        threshold: float = Settings.RATE_CHANGE_THRESHOLD,
        tier: int = Settings.REPRESENTATIVE_TIER,
        timeout: float | None = None,
        seed: int | None = Settings.ESTIMATOR_SEED,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.collector = collector or _load_collector_class(
            Settings.PRIMARY_COLLECTOR
        )()
        self._estimator = estimator
        self.seed = seed
        self.regions = (
            regions
            if regions is not None
            else [
                RegionTarget.from_config(r)
                for r in Settings.REGION_TARGETS
            ]
        )
        self.request_delay = (
            request_delay
            if request_delay is not None
            else Settings.REQUEST_DELAY
        )
        self.provider_aliases = (
            provider_aliases
            if provider_aliases is not None
            else dict(Settings.PROVIDER_ALIASES)
        )
        self.threshold = threshold
        self.tier = tier
        self.timeout = timeout
        self._clock = clock
        self._run_lock = threading.Lock()

    # ── Public entry points ──────────────────────────────

    def preview(self) -> SyncSession:
        """Run through the differ without touching the catalog."""
        return self.run(auto_apply=False)

    def run(self, auto_apply: bool = False) -> SyncSession:
        """Run the full pipeline and return the session record.

        Raises :class:`SyncAlreadyRunningError` if a run is already in
        progress. Every other fault ends the run with ``status=failed``.
        """
        if not self._run_lock.acquire(blocking=False):
            msg = "A sync run is already in progress"
            raise SyncAlreadyRunningError(msg)
        try:
            return self._run(auto_apply)
        finally:
            self._run_lock.release()

    # ── Private helpers ──────────────────────────────────

    def _run(self, auto_apply: bool) -> SyncSession:
        recorder = SessionRecorder(auto_apply=auto_apply)
        deadline = (
            self._clock() + self.timeout
            if self.timeout is not None
            else None
        )
        logger.info(
            "Starting sync session %s (%s)",
            recorder.session.session_id,
            "auto-apply" if auto_apply else "preview",
        )

        try:
            snapshot = self.store.read_active_entries()
            logger.info(
                "Catalog snapshot: %d active plans", len(snapshot),
            )

            raw = self._collect_all(recorder, deadline)
            valid, invalid = RecordValidator.validate(raw, self.tier)
            unique, _removed = RecordDeduplicator.deduplicate(valid)
            recorder.set_unique_count(len(unique), invalid)
            logger.info(
                "Found %d total plans, %d unique",
                recorder.session.total_plans_found,
                len(unique),
            )

            self._check_deadline(deadline, "diff")
            directory = CatalogProviderDirectory(
                self.store, self.provider_aliases,
            )
            differ = PlanDiffer(directory, self.threshold, self.tier)
            changes = differ.diff(unique, snapshot)
            recorder.set_changes(changes)

            if auto_apply:
                self._check_deadline(deadline, "apply")
                report = ChangeApplier(self.store, self.tier).apply(
                    changes
                )
                for failure in report.failures:
                    recorder.add_warning(failure)

            return recorder.complete()
        except Exception as exc:
            logger.error(
                "Sync session %s aborted: %s",
                recorder.session.session_id,
                exc,
                exc_info=True,
            )
            return recorder.fail(str(exc) or type(exc).__name__)

    def _check_deadline(
        self, deadline: float | None, stage: str,
    ) -> None:
        if deadline is not None and self._clock() > deadline:
            msg = (
                f"Sync run exceeded {self.timeout:.0f}s timeout "
                f"before {stage}"
            )
            raise SyncTimeoutError(msg)

    def _new_estimator(self) -> PlanEstimator:
        if self._estimator is not None:
            return self._estimator
        return PlanEstimator(random.Random(self.seed))

    def _collect_all(
        self,
        recorder: SessionRecorder,
        deadline: float | None,
    ) -> list[SourceRecord]:
        """Visit every region in order, isolating per-region faults."""
        estimator = self._new_estimator()
        records: list[SourceRecord] = []

        for index, region in enumerate(self.regions):
            self._check_deadline(deadline, f"region {region.region_id}")
            if index > 0 and self.request_delay > 0:
                time.sleep(self.request_delay)

            logger.info(
                "Collecting %s (%s)",
                region.display_name,
                region.region_id,
            )
            try:
                batch = self._collect_region(
                    region, estimator, recorder,
                )
            except Exception as exc:
                logger.error(
                    "Region %s failed: %s",
                    region.region_id,
                    exc,
                    exc_info=True,
                )
                recorder.add_error(f"{region.region_id}: {exc}")
                continue
            if batch is None:
                continue

            region_records, provenance = batch
            recorder.record_region(
                region.region_id, provenance, len(region_records),
            )
            records.extend(region_records)

        return records

    def _collect_region(
        self,
        region: RegionTarget,
        estimator: PlanEstimator,
        recorder: SessionRecorder,
    ) -> tuple[list[SourceRecord], str] | None:
        """Return a region's records and provenance, or None if empty."""
        try:
            outcome = self.collector.collect(region)
        except Exception as exc:
            outcome = Unavailable(str(exc) or type(exc).__name__)

        if isinstance(outcome, Live):
            return outcome.records, PROVENANCE_LIVE

        logger.warning(
            "Primary source unavailable for %s: %s",
            region.region_id,
            outcome.reason,
        )
        recorder.add_warning(
            f"Primary source unavailable for region "
            f"{region.region_id} ({region.display_name}); "
            "using estimated data"
        )

        try:
            estimated = estimator.estimate(region.region_id)
        except Exception as exc:
            logger.error(
                "Estimation failed for %s: %s",
                region.region_id,
                exc,
                exc_info=True,
            )
            recorder.add_error(
                f"{region.region_id}: Failed to generate "
                f"estimated data: {exc}"
            )
            return None

        for record in estimated:
            record.provenance = PROVENANCE_ESTIMATED
            record.requires_verification = True
            record.region_id = region.region_id
        for warning in ESTIMATE_WARNINGS:
            recorder.add_warning(warning)
        return estimated, PROVENANCE_ESTIMATED
