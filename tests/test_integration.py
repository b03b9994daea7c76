"""End-to-end flow: catalog import, scan session, export and sync."""

import csv
import io
from datetime import timedelta

import pytest

from deck_scanner.core.types import SyncTaskKind
from deck_scanner.recognize.engine import RecognitionEngine
from deck_scanner.session.aggregator import ScanSession
from deck_scanner.store.catalog import load_initial_data
from deck_scanner.store.db import DeckStore
from deck_scanner.store.export import export_csv
from deck_scanner.sync.processor import SyncQueueProcessor


class RecordingClient:
    def __init__(self):
        self.uploaded = {}

    async def refresh_pricing(self, catalog_id):
        raise AssertionError("no pricing should be stale")

    async def upload_history(self, scan_record_id, payload):
        self.uploaded[scan_record_id] = payload
        return True


class TestEndToEnd:
    """Offline scan followed by a sync once connectivity returns."""

    @pytest.mark.asyncio
    async def test_offline_scan_then_sync(self, temp_dirs, labels, sample_initial_data, frame, fixed_now,
                                          stub_backends):
        StubClassifier, StubTextRecognizer = stub_backends
        store = DeckStore(temp_dirs["cache_dir"] / "e2e.db")
        load_initial_data(store, sample_initial_data)
        ticks = iter([fixed_now + timedelta(seconds=i) for i in range(3)])
        classifier = StubClassifier([0.91, 0.05, 0.04])
        engine = RecognitionEngine(
            classifier, StubTextRecognizer("bee bellagio"), labels, store, clock=lambda: next(ticks)
        )
        session = ScanSession(engine, store, id_factory=lambda: "session-1")

        session.start()
        session.submit_frame(frame)
        classifier.probabilities = [0.1, 0.5, 0.4]
        session.submit_frame(frame)
        classifier.probabilities = [0.05, 0.9, 0.05]
        session.submit_frame(frame)
        summary = session.stop()

        assert summary.total_decks == 2
        assert summary.total_sell_value == "15.00"
        rows = list(csv.DictReader(io.StringIO(export_csv(summary).decode("utf-8"))))
        assert [row["Deck Name"] for row in rows] == ["Bellagio Red", "Bicycle Standard"]

        pending = store.list_pending_sync_tasks()
        assert [t.kind for t in pending] == [SyncTaskKind.HISTORY_UPLOAD] * 2

        client = RecordingClient()
        assert await SyncQueueProcessor(store, client).drain() == 2
        assert store.list_pending_sync_tasks() == []
        assert {p["sessionId"] for p in client.uploaded.values()} == {"session-1"}
