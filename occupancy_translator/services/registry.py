"""
services/registry.py
──────────────────────────────────────────────────────────────────────────────
Master Code Registry: the authoritative set of valid occupancy codes.

Responsibilities:
  1. Answer "give me the whole list" (prompt building) and "is this code
     valid?" (response validation).
  2. Seed the store from the master-list source on first start-up.
  3. Force a reseed on demand.

Seeding is idempotent: every code is inserted individually and a uniqueness
collision is counted as "skipped", never raised.  Running initialize() or
reload() concurrently or repeatedly can therefore never duplicate a code or
shrink the registry.

A source that cannot be read is logged and leaves the registry as it was
(possibly empty).  Classification still runs against an empty list; every
suggestion then fails validation and the result is empty.
"""
from __future__ import annotations

import logging
from typing import Callable

from occupancy_translator.domain.exceptions import InitializationError, StorageError
from occupancy_translator.domain.models import OccupancyCode, ReloadSummary
from occupancy_translator.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)

MasterListSource = Callable[[], list[str]]


class MasterCodeRegistry:
    """Read/seed facade over the occupancy_codes part of the store.

    Args:
        storage: Any object satisfying StoragePort.
        source:  Zero-argument callable returning the master list in order.
    """

    def __init__(self, storage: StoragePort, source: MasterListSource) -> None:
        self._storage = storage
        self._source = source

    # ── Queries ────────────────────────────────────────────────────────────

    def list_codes(self) -> list[str]:
        """Every valid code string, in insertion order."""
        return [c.code for c in self._storage.list_occupancy_codes()]

    def list_records(self) -> list[OccupancyCode]:
        return self._storage.list_occupancy_codes()

    def is_valid(self, code: str) -> bool:
        """Exact, case-sensitive membership test."""
        return code in set(self.list_codes())

    # ── Seeding ────────────────────────────────────────────────────────────

    def initialize(self) -> ReloadSummary:
        """Seed the registry if it is empty.  Never raises.

        Returns:
            ReloadSummary describing what happened.
        """
        try:
            existing = len(self._storage.list_occupancy_codes())
        except StorageError:
            logger.exception("Registry initialisation failed: store unavailable")
            return ReloadSummary(message="Occupancy master unavailable", total_codes=0)

        if existing > 0:
            logger.info("Found %d existing occupancy codes", existing)
            return ReloadSummary(
                message="Occupancy master already loaded", total_codes=existing
            )

        try:
            return self._seed("Occupancy master initialised")
        except (InitializationError, StorageError):
            logger.exception("Failed to initialise occupancy codes")
            return ReloadSummary(
                message="Occupancy master failed to load",
                total_codes=len(self._safe_codes()),
            )

    def reload(self) -> ReloadSummary:
        """Force a reseed from the source, skipping codes already present.

        Raises:
            InitializationError: If the source cannot be read.
            StorageError: If the store is unavailable.
        """
        return self._seed("Occupancy master reloaded")

    # ── Private helpers ────────────────────────────────────────────────────

    def _seed(self, message: str) -> ReloadSummary:
        codes = self._source()
        logger.info("Seeding %d occupancy codes", len(codes))

        inserted = skipped = 0
        for code in codes:
            if self._storage.insert_occupancy_code(code=code, description=code):
                inserted += 1
            else:
                skipped += 1

        total = len(self._storage.list_occupancy_codes())
        logger.info(
            "Occupancy codes seeded | inserted=%d skipped=%d total=%d",
            inserted, skipped, total,
        )
        return ReloadSummary(
            message=message, total_codes=total, inserted=inserted, skipped=skipped
        )

    def _safe_codes(self) -> list[OccupancyCode]:
        try:
            return self._storage.list_occupancy_codes()
        except StorageError:
            return []
