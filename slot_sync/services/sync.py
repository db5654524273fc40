"""
Batch sync: for each configured product, for each date in order, fetch the provider snapshot
and merge it. A failure for one (product, date) is logged and skipped; the batch never aborts.

Products may run in parallel (SYNC_MAX_WORKERS > 1); dates within a product stay sequential.
Outbound calls all go through the shared, serialized rate limiter, so parallel products cannot
exceed the provider ceiling.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from slot_sync.config import settings
from slot_sync.core.dates import format_api_date, parse_date
from slot_sync.core.errors import AppError
from slot_sync.db.upsert import insert_ignore_conflict
from slot_sync.models.product import Product
from slot_sync.services.inventory import InventoryClient
from slot_sync.services.reconciliation import MergeResult, ReconciliationEngine

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    succeeded: list[tuple[int, str]] = field(default_factory=list)
    failed: list[tuple[int, str, str]] = field(default_factory=list)  # (product_id, date, error)

    def extend(self, other: "BatchResult") -> None:
        self.succeeded.extend(other.succeeded)
        self.failed.extend(other.failed)


def ensure_products(db: Session, product_ids: Iterable[int]) -> None:
    """Create Product rows for the configured ids (idempotent)."""
    for product_id in product_ids:
        insert_ignore_conflict(db, Product, ["id"], id=product_id)
    db.commit()


class SyncOrchestrator:
    """Runs fetch -> merge over products x dates with per-(product, date) failure isolation."""

    def __init__(
        self,
        client: InventoryClient | None = None,
        engine: ReconciliationEngine | None = None,
        product_ids: Sequence[int] | None = None,
        *,
        max_workers: int | None = None,
    ) -> None:
        self._client = client or InventoryClient()
        self._engine = engine or ReconciliationEngine()
        self.product_ids = list(product_ids if product_ids is not None else settings.product_ids)
        self._max_workers = max(1, max_workers or settings.sync_max_workers)

    def sync_one(self, product_id: int, day: date | str) -> MergeResult:
        """Fetch then merge one (product, date). Errors propagate to the caller."""
        snapshot = self._client.fetch(product_id, day)
        return self._engine.merge(product_id, day, snapshot)

    def _run_product(self, product_id: int, dates: Sequence[date | str]) -> BatchResult:
        result = BatchResult()
        for day in dates:
            try:
                label = format_api_date(parse_date(day))
            except AppError:
                label = str(day)
            try:
                self.sync_one(product_id, day)
                result.succeeded.append((product_id, label))
            except AppError as e:
                logger.error("Failed processing product %s for date %s: %s", product_id, label, e.message)
                result.failed.append((product_id, label, e.message))
            except Exception as e:
                # Keep going with the next date even on unexpected errors
                logger.exception("Failed processing product %s for date %s", product_id, label)
                result.failed.append((product_id, label, str(e)))
        return result

    def run_batch(self, dates: Sequence[date | str]) -> BatchResult:
        dates = list(dates)
        result = BatchResult()
        if not dates or not self.product_ids:
            return result
        if self._max_workers == 1 or len(self.product_ids) == 1:
            for product_id in self.product_ids:
                result.extend(self._run_product(product_id, dates))
        else:
            workers = min(self._max_workers, len(self.product_ids))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="inventory_sync") as pool:
                futures = [pool.submit(self._run_product, pid, dates) for pid in self.product_ids]
                for future in futures:
                    result.extend(future.result())
        logger.info(
            "Inventory batch done: %s dates x %s products, %s ok, %s failed",
            len(dates),
            len(self.product_ids),
            len(result.succeeded),
            len(result.failed),
        )
        return result
