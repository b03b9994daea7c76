"""Drains the outbound sync queue against the remote service."""

import asyncio
import weakref

from ..core.types import SyncTask, SyncTaskKind, SyncTaskStatus
from ..store.db import DeckStore
from ..utils.error_handler import SyncDispatchFailure
from ..utils.log import LoggerMixin
from .client import SyncClient

_drain_locks: "weakref.WeakKeyDictionary[DeckStore, asyncio.Lock]" = weakref.WeakKeyDictionary()


def drain_lock(store: DeckStore) -> asyncio.Lock:
    """One drain lock per store, shared by every processor draining it."""
    lock = _drain_locks.get(store)
    if lock is None:
        lock = _drain_locks[store] = asyncio.Lock()
    return lock


class SyncQueueProcessor(LoggerMixin):
    """Dispatches pending sync tasks in enqueue order, stopping at the first failure.

    Driven by an external trigger (timer, connectivity event, CLI). A drain
    requested while another drain of the same store is running returns 0
    without touching the queue, even from a different processor.
    """

    def __init__(self, store: DeckStore, client: SyncClient):
        self.store = store
        self.client = client
        self._lock = drain_lock(store)

    async def drain(self) -> int:
        """Process pending tasks; returns how many were marked Done."""
        if self._lock.locked():
            self.logger.info("Drain already in progress, skipping")
            return 0

        async with self._lock:
            context = self.log_start("drain")
            processed = 0
            pending = self.store.list_pending_sync_tasks()

            for task in pending:
                current = self.store.get_sync_task(task.id)
                if current is None or current.status is SyncTaskStatus.DONE:
                    continue

                try:
                    await self._dispatch(task)
                except Exception as e:
                    failure = e if isinstance(e, SyncDispatchFailure) else SyncDispatchFailure(
                        "Sync dispatch failed", details={"task_id": task.id, "error": str(e)}
                    )
                    self.log_error(
                        context, failure, task_id=task.id, kind=task.kind.value, processed=processed
                    )
                    break

                if self.store.mark_sync_task_done(task.id):
                    processed += 1

            self.log_success(
                context, processed=processed, pending=len(self.store.list_pending_sync_tasks())
            )
            return processed

    async def _dispatch(self, task: SyncTask) -> None:
        if task.kind is SyncTaskKind.PRICING_REFRESH:
            await self._refresh_pricing(task)
        elif task.kind is SyncTaskKind.HISTORY_UPLOAD:
            await self._upload_history(task)
        else:
            raise SyncDispatchFailure("Unknown sync task kind", details={"kind": str(task.kind)})

    async def _refresh_pricing(self, task: SyncTask) -> None:
        catalog_id = task.payload_key
        record = await self.client.refresh_pricing(catalog_id)
        if record.catalog_id != catalog_id:
            raise SyncDispatchFailure(
                "Remote pricing is for a different deck",
                details={"expected": catalog_id, "received": record.catalog_id},
            )

        # Replace in place so the one-record-per-deck constraint holds
        existing = self.store.get_pricing_by_catalog_id(catalog_id)
        if existing is not None and existing.id != record.id:
            record.id = existing.id
        self.store.upsert_pricing(record)
        self.logger.debug("Pricing refreshed", catalog_id=catalog_id, task_id=task.id)

    async def _upload_history(self, task: SyncTask) -> None:
        record = self.store.get_scan_record(task.payload_key)
        if record is None:
            self.logger.warning(
                "Scan record no longer exists, nothing to upload",
                scan_id=task.payload_key,
                task_id=task.id,
            )
            return

        ok = await self.client.upload_history(record.id, record.to_dict())
        if not ok:
            raise SyncDispatchFailure(
                "Remote rejected history upload", details={"scan_id": record.id, "task_id": task.id}
            )
        self.logger.debug("History uploaded", scan_id=record.id, task_id=task.id)
