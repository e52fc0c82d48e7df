"""
Ingestion cycle, refresh worker, trends service and seed loading tests.

Everything runs against temporary SQLite files and stub scrapers.

Run: python -m unittest test_refresh
"""

import json
import os
import shutil
import sys
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import main
from refresh_status import RefreshStatus
from refresh_worker import RefreshWorker
from scrapers import BaseScraper, ScrapedItem, SourceUnavailable
from seed_loader import ConfigurationMissing, PolitenessPolicy, load_seeds
from storage.blob import BlobBackend
from storage.snapshot_store import TIER_SAMPLE, TieredSnapshotStore
from storage.sqlite_backend import SqliteBackend
from trends_api import TrendsService

SAMPLE_SEEDS = Path(__file__).parent / "seeds.sample.json"


class _StubScraper(BaseScraper):

    def __init__(self, source, items=None, fail=False):
        self.SOURCE_ID = source
        self.items = items or []
        self.fail = fail

    def fetch(self, policy, seeds):
        if self.fail:
            raise SourceUnavailable(f"{self.SOURCE_ID} is down")
        return self.items


def _items(*pairs):
    return [ScrapedItem(text=t, tag_text=t, weight=w) for t, w in pairs]


class TestSeedLoader(unittest.TestCase):

    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _write(self, name, data):
        path = self.tmp / name
        path.write_text(data if isinstance(data, str) else json.dumps(data))
        return path

    def _valid(self, **overrides):
        data = {
            "seed_hashtags": ["#ai"],
            "target_keywords": ["LoRA"],
            "seed_accounts": ["@OpenAI"],
            "time_window": "PT6H",
        }
        data.update(overrides)
        return data

    def test_sample_seed_file_loads(self):
        seeds = load_seeds(SAMPLE_SEEDS)
        self.assertIn("#ai", seeds.seed_hashtags)
        self.assertEqual(seeds.time_window, "P1D")
        self.assertTrue(all(len(pair) == 2 for pair in seeds.cooccurrence))

    def test_yaml_seed_file_loads(self):
        path = self._write("seeds.yaml", (
            "seed_hashtags: ['#llm']\n"
            "target_keywords: [agents]\n"
            "seed_accounts: ['@huggingface']\n"
            "time_window: P1W\n"
        ))
        seeds = load_seeds(path)
        self.assertEqual(seeds.relevance_terms(), ["llm", "agents"])
        self.assertEqual(seeds.content_type, [])

    def test_missing_file_is_configuration_missing(self):
        with self.assertRaises(ConfigurationMissing):
            load_seeds(self.tmp / "nope.json")

    def test_invalid_seed_files(self):
        bad = [
            "",
            "[1, 2]",
            self._valid(seed_hashtags=[]),
            self._valid(seed_hashtags=["ai"]),
            self._valid(seed_accounts=["OpenAI"]),
            self._valid(time_window="1 day"),
            self._valid(time_window="P"),
            self._valid(time_window="PT"),
            self._valid(content_type=["audio"]),
            self._valid(cooccurrence=[["#ai"]]),
            self._valid(target_keywords="LoRA"),
        ]
        for i, data in enumerate(bad):
            with self.assertRaises(ConfigurationMissing, msg=repr(data)):
                load_seeds(self._write(f"bad{i}.json", data))

    def test_politeness_policy_validation(self):
        with self.assertRaises(ConfigurationMissing):
            PolitenessPolicy(user_agent="  ", request_delay_ms=100)
        with self.assertRaises(ConfigurationMissing):
            PolitenessPolicy(user_agent="ua", request_delay_ms=-1)
        self.assertEqual(PolitenessPolicy("ua", 2500).delay_seconds, 2.5)


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.seeds = load_seeds(SAMPLE_SEEDS)
        self.policy = PolitenessPolicy(user_agent="TrendRadarTest/1.0", request_delay_ms=0)
        self.store = TieredSnapshotStore(
            SqliteBackend(db_path=self.tmp / "trends.db"),
            local_path=self.tmp / "latest_trends.json",
        )
        self.status_path = self.tmp / "refresh_status.json"
        sleep_patch = patch("time.sleep")
        sleep_patch.start()
        self.addCleanup(sleep_patch.stop)

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def run_cycle(self, scrapers, keep_count=24):
        return main.run_pipeline(
            seeds=self.seeds, policy=self.policy, store=self.store,
            scrapers=scrapers, keep_count=keep_count,
            _status=RefreshStatus(self.status_path),
        )


class TestIngestionCycle(PipelineTestCase):

    def test_end_to_end_merge_and_velocity(self):
        first = self.run_cycle([
            _StubScraper("s1", _items(("AI", 50), ("##AI!!", 20), ("python", 10))),
            _StubScraper("s2", _items(("#ai", 30))),
        ])
        self.assertNotIn("error", first)
        self.assertEqual(first["signals"], 4)

        snapshot, _ = self.store.load_latest()
        self.assertEqual(snapshot.surface[0].to_dict(),
                         {"tag": "#AI", "count": 100, "velocity": 0})

        self.run_cycle([_StubScraper("s1", _items(("#AI", 130), ("#LoRA", 7)))])

        snapshot, tier = self.store.load_latest()
        self.assertEqual(tier, "primary")
        by_tag = {t.tag: t for t in snapshot.all_trends()}
        self.assertEqual(by_tag["#AI"].velocity, 30)
        self.assertEqual(by_tag["#LORA"].velocity, 0)

        status = json.loads(self.status_path.read_text())
        self.assertEqual(status["status"], "completed")

    def test_failed_source_does_not_abort_cycle(self):
        result = self.run_cycle([
            _StubScraper("down", fail=True),
            _StubScraper("up", _items(("#llm", 5))),
        ])
        self.assertEqual(result["failed_sources"], ["down"])
        self.assertEqual(result["surface"], 1)

    def test_all_sources_empty_yields_empty_snapshot(self):
        result = self.run_cycle([_StubScraper("down", fail=True)])
        self.assertNotIn("error", result)
        snapshot, tier = self.store.load_latest()
        self.assertEqual(tier, "primary")
        self.assertEqual(snapshot.surface, [])

    def test_retention_runs_after_each_cycle(self):
        for _ in range(4):
            self.run_cycle([_StubScraper("s", _items(("#ai", 1)))], keep_count=2)
        keys = [o.key for o in self.store.backend.list("trends/")]
        self.assertEqual(len(keys), 3)
        self.assertIn("trends/latest_trends.json", keys)

    def test_overlapping_cycle_is_skipped(self):
        self.assertTrue(main._cycle_lock.acquire(blocking=False))
        try:
            result = self.run_cycle([_StubScraper("s", _items(("#ai", 1)))])
        finally:
            main._cycle_lock.release()

        self.assertEqual(result, {"error": main.CYCLE_BUSY})
        self.assertFalse(self.status_path.exists())

    def test_unexpected_exception_is_recorded(self):
        broken = MagicMock()
        broken.save.side_effect = RuntimeError("disk on fire")
        broken.load_previous.return_value = None
        result = main.run_pipeline(
            seeds=self.seeds, policy=self.policy, store=broken,
            scrapers=[_StubScraper("s", _items(("#ai", 1)))],
            _status=RefreshStatus(self.status_path),
        )
        self.assertEqual(result, {"error": "disk on fire"})
        self.assertEqual(json.loads(self.status_path.read_text())["status"], "error")
        self.assertFalse(main._cycle_lock.locked())


class TestBuildRuntime(unittest.TestCase):

    def test_simulate_with_sqlite_backend(self):
        args = main.parse_args(["--simulate", "--backend", "sqlite",
                                "--seeds", str(SAMPLE_SEEDS), "--delay-ms", "0"])
        runtime = main.build_runtime(args)
        self.assertEqual([s.SOURCE_ID for s in runtime["scrapers"]], ["simulated"])
        self.assertEqual(runtime["policy"].request_delay_ms, 0)

    def test_blob_backend_without_token_is_fatal(self):
        args = main.parse_args(["--backend", "blob", "--seeds", str(SAMPLE_SEEDS)])
        with patch.dict(os.environ, {"BLOB_READ_WRITE_TOKEN": ""}):
            with self.assertRaises(ConfigurationMissing):
                main.build_runtime(args)

    def test_main_returns_config_error_code(self):
        with patch("main.setup_logging"):
            code = main.main(["--seeds", "/nonexistent/seeds.json", "--backend", "sqlite"])
        self.assertEqual(code, 2)


class TestRefreshWorker(unittest.TestCase):

    def test_single_slot_queue_and_serial_execution(self):
        started = threading.Event()
        release = threading.Event()
        runs = []
        active = []

        def cycle():
            active.append(1)
            self.assertEqual(len(active), 1, "cycles must not overlap")
            runs.append(len(runs) + 1)
            started.set()
            release.wait(5)
            active.pop()
            return {"ok": True}

        worker = RefreshWorker(cycle)
        self.assertTrue(worker.submit())
        self.assertTrue(started.wait(5))

        self.assertTrue(worker.submit())       # fills the single slot
        self.assertFalse(worker.submit())      # slot taken

        release.set()
        worker.wait_idle()
        worker.stop(timeout=5)

        self.assertEqual(runs, [1, 2])
        self.assertEqual(worker.last_result, {"ok": True})

    def test_cycle_exception_does_not_kill_worker(self):
        calls = []

        def cycle():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return {}

        worker = RefreshWorker(cycle)
        worker.submit()
        worker.wait_idle()
        worker.submit()
        worker.wait_idle()
        worker.stop(timeout=5)
        self.assertEqual(len(calls), 2)


class TestTrendsService(unittest.TestCase):

    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_no_data_serves_sample_not_error(self):
        store = TieredSnapshotStore(None, local_path=self.tmp / "none.json")
        payload, status = TrendsService(store).get_trends()
        self.assertEqual(status, 200)
        self.assertEqual(set(payload), {"generated_at", "surface", "deep"})
        self.assertEqual(store.load_latest()[1], TIER_SAMPLE)

    def test_non_json_blob_listing_serves_sample(self):
        response = MagicMock(status_code=200)
        response.json.side_effect = ValueError("Expecting value")
        store = TieredSnapshotStore(BlobBackend(token="tok", api_url="https://blob.test"),
                                    local_path=self.tmp / "none.json")

        with patch("requests.get", return_value=response):
            payload, status = TrendsService(store).get_trends()

        self.assertEqual(status, 200)
        self.assertEqual(payload["generated_at"], "1970-01-01T00:00:00+00:00")

    def test_serialization_failure_is_structured_500(self):
        snapshot = MagicMock()
        snapshot.to_dict.side_effect = TypeError("not serializable")
        store = MagicMock()
        store.load_latest.return_value = (snapshot, "primary")

        payload, status = TrendsService(store).get_trends()
        self.assertEqual(status, 500)
        self.assertIn("error", payload)

    def test_refresh_is_fire_and_forget(self):
        worker = MagicMock()
        worker.submit.return_value = True
        payload, status = TrendsService(MagicMock(), worker).request_refresh()
        self.assertEqual(status, 202)
        self.assertTrue(payload["queued"])
        self.assertEqual(payload["message"], "Manual refresh initiated")

        worker.submit.return_value = False
        payload, _ = TrendsService(MagicMock(), worker).request_refresh()
        self.assertEqual(payload["message"], "Refresh already pending")

    def test_refresh_without_worker(self):
        payload, status = TrendsService(MagicMock()).request_refresh()
        self.assertEqual(status, 503)
        self.assertFalse(payload["success"])


if __name__ == "__main__":
    unittest.main()
