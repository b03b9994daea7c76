"""Tests for the deck-scanner command-line interface."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from deck_scanner.cli import app
from deck_scanner.core.types import DeckLabel, PricingSnapshot, ScanRecord, SyncTaskKind
from deck_scanner.recognize.engine import RecognitionEngine

runner = CliRunner()


@pytest.fixture
def db_path(seeded_store):
    return str(seeded_store.db_path)


class TestLoadCatalog:
    """Test the load-catalog command."""

    def test_imports_file(self, store, tmp_path, sample_initial_data):
        path = tmp_path / "initial_data.json"
        path.write_text(json.dumps(sample_initial_data))

        result = runner.invoke(app, ["load-catalog", str(path), "--db", str(store.db_path)])

        assert result.exit_code == 0
        assert "Imported 2 decks and 2 pricing records" in result.output
        assert store.get_catalog_entry("bellagio-88") is not None

    def test_missing_file_exits_nonzero(self, store, tmp_path):
        result = runner.invoke(app, ["load-catalog", str(tmp_path / "nope.json"), "--db", str(store.db_path)])

        assert result.exit_code == 1
        assert "Catalog import failed" in result.output


class TestPendingAndHistory:
    """Test read-only commands."""

    def test_pending_lists_tasks(self, seeded_store, db_path):
        seeded_store.enqueue_sync_task(SyncTaskKind.PRICING_REFRESH, "aria-12")

        result = runner.invoke(app, ["pending", "--db", db_path])

        assert result.exit_code == 0
        assert "PricingRefresh" in result.output
        assert "aria-12" in result.output

    def test_history_replays_session(self, seeded_store, db_path, fixed_now):
        for idx, (catalog_id, buy, sell) in enumerate([("bellagio-88", 2.0, 12.0), ("bicycle-std", 1.5, 3.0)]):
            seeded_store.add_scan_record(ScanRecord(
                id=f"scan-{idx}",
                session_id="session-1",
                catalog_id=catalog_id,
                observed_at=fixed_now + timedelta(seconds=idx),
                classification_confidence=0.9,
                pricing=PricingSnapshot(buy, sell),
            ))

        result = runner.invoke(app, ["history", "session-1", "--db", db_path])

        assert result.exit_code == 0
        assert "15.00" in result.output
        assert "11.50" in result.output

    def test_history_unknown_session(self, db_path):
        result = runner.invoke(app, ["history", "missing", "--db", db_path])

        assert result.exit_code == 1
        assert "No scan records" in result.output


class TestSync:
    """Test the sync command."""

    def test_requires_api_url(self, db_path):
        with patch('deck_scanner.cli.settings') as mock_settings:
            mock_settings.SYNC_API_URL = None

            result = runner.invoke(app, ["sync", "--db", db_path])

        assert result.exit_code == 1
        assert "SYNC_API_URL" in result.output

    def test_drains_queue_and_prunes(self, seeded_store, db_path):
        task_id = seeded_store.enqueue_sync_task(SyncTaskKind.HISTORY_UPLOAD, "scan-1")
        seeded_store.mark_sync_task_done(task_id)
        processor = MagicMock()
        processor.drain = AsyncMock(return_value=2)

        with patch('deck_scanner.cli.settings') as mock_settings, \
             patch('deck_scanner.cli.HttpSyncClient') as mock_client, \
             patch('deck_scanner.cli.SyncQueueProcessor', return_value=processor):
            mock_settings.SYNC_API_URL = "https://sync.example.com"
            mock_settings.SYNC_API_KEY = None

            result = runner.invoke(app, ["sync", "--db", db_path, "--prune"])

        assert result.exit_code == 0
        assert "Synced 2 tasks" in result.output
        assert "Removed 1 completed tasks" in result.output
        mock_client.assert_called_once_with("https://sync.example.com", None)
        processor.drain.assert_awaited_once()


class TestScan:
    """Test the scan command with camera and model mocked."""

    def test_scan_accepts_and_exports(self, seeded_store, db_path, make_engine, frame, temp_dirs, mock_cv2):
        camera = MagicMock()
        camera.read_frame.return_value = frame

        with patch('deck_scanner.cli.RecognitionEngine.from_settings', return_value=make_engine()), \
             patch('deck_scanner.cli.CameraCapture', return_value=camera):
            result = runner.invoke(app, [
                "scan", "--db", db_path, "--export", "csv",
                "--output", str(temp_dirs['output_dir']), "--interval", "1",
            ])

        assert result.exit_code == 0
        assert "Bellagio Red" in result.output
        assert "500.0%" in result.output
        camera.initialize.assert_called_once()
        camera.release.assert_called_once()
        mock_cv2['destroyAllWindows'].assert_called_once()
        exports = list(temp_dirs['output_dir'].glob("deck-scan-results-*.csv"))
        assert len(exports) == 1
        assert "Bellagio Red" in exports[0].read_text()

    def test_scan_survives_frame_that_cannot_be_recorded(
        self, seeded_store, db_path, stub_backends, frame, temp_dirs, fixed_now, mock_cv2
    ):
        classifier_cls, recognizer_cls = stub_backends
        engine = RecognitionEngine(
            classifier_cls([0.95]),
            recognizer_cls("gemaco"),
            [DeckLabel(id="not-in-catalog", name="Ghost Deck", manufacturer="Gemaco")],
            seeded_store,
            clock=lambda: fixed_now,
        )
        camera = MagicMock()
        camera.read_frame.return_value = frame

        with patch('deck_scanner.cli.RecognitionEngine.from_settings', return_value=engine), \
             patch('deck_scanner.cli.CameraCapture', return_value=camera):
            result = runner.invoke(app, [
                "scan", "--db", db_path, "--export", "csv",
                "--output", str(temp_dirs['output_dir']), "--interval", "1",
            ])

        assert result.exit_code == 0
        assert "add_scan_record rejected" in result.output
        assert "Scan Summary" in result.output
        camera.release.assert_called_once()
        assert len(list(temp_dirs['output_dir'].glob("deck-scan-results-*.csv"))) == 1

    def test_scan_rejects_unknown_export_format(self, db_path):
        result = runner.invoke(app, ["scan", "--db", db_path, "--export", "xml"])

        assert result.exit_code == 1
