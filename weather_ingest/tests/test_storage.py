import datetime as dt
import os
import tempfile
import unittest

from sqlalchemy import create_engine

from weather_ingest.errors import PayloadNotFoundError, StorageUnavailableError
from weather_ingest.ingestion.models import IngestionRecord, create_tables
from weather_ingest.ingestion.storage import FilesystemPayloadStore, SqlRecordStore

T0 = dt.datetime(2025, 3, 1, 10, 0, 0, tzinfo=dt.timezone.utc)


def _record(minutes: int, ok: bool = True, partition: str = "WeatherInfo", rid: str = None) -> IngestionRecord:
    return IngestionRecord(
        partition_key=partition,
        id=rid or f"rec-{partition}-{minutes}",
        timestamp=T0 + dt.timedelta(minutes=minutes),
        fetch_succeeded=ok,
    )


class TestSqlRecordStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        url = f"sqlite:///{os.path.join(self._tmpdir.name, 'test.db')}"
        self.engine = create_engine(url, future=True)
        create_tables(self.engine)
        self.store = SqlRecordStore(self.engine, partition_key="WeatherInfo")

    def tearDown(self) -> None:
        self.engine.dispose()
        self._tmpdir.cleanup()

    def test_query_range_is_inclusive_and_newest_first(self) -> None:
        for m in [0, 1, 2, 3, 4]:
            self.store.write(_record(m, ok=(m % 2 == 0)))

        out = self.store.query_range(T0 + dt.timedelta(minutes=1), T0 + dt.timedelta(minutes=3))

        self.assertEqual([r.id for r in out], ["rec-WeatherInfo-3", "rec-WeatherInfo-2", "rec-WeatherInfo-1"])
        self.assertEqual([r.fetch_succeeded for r in out], [False, True, False])
        for r in out:
            self.assertEqual(r.timestamp.tzinfo, dt.timezone.utc)

    def test_round_trip_preserves_fields(self) -> None:
        rec = _record(7, ok=True, rid="abc-123")
        self.store.write(rec)

        (out,) = self.store.query_range(rec.timestamp, rec.timestamp)
        self.assertEqual(out, rec)

    def test_non_utc_bounds_are_normalised(self) -> None:
        self.store.write(_record(0))
        plus_two = dt.timezone(dt.timedelta(hours=2))
        start = (T0 - dt.timedelta(seconds=1)).astimezone(plus_two)
        end = (T0 + dt.timedelta(seconds=1)).astimezone(plus_two)

        self.assertEqual(len(self.store.query_range(start, end)), 1)

    def test_query_is_scoped_to_partition(self) -> None:
        self.store.write(_record(0))
        self.store.write(_record(0, partition="Other"))

        out = self.store.query_range(T0 - dt.timedelta(hours=1), T0 + dt.timedelta(hours=1))
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].partition_key, "WeatherInfo")

    def test_latest_timestamp(self) -> None:
        self.assertIsNone(self.store.latest_timestamp())
        self.store.write(_record(5))
        self.store.write(_record(2))
        self.assertEqual(self.store.latest_timestamp(), T0 + dt.timedelta(minutes=5))

    def test_duplicate_id_is_a_storage_error(self) -> None:
        self.store.write(_record(0, rid="same"))
        with self.assertRaises(StorageUnavailableError) as ctx:
            self.store.write(_record(1, rid="same"))
        self.assertEqual(ctx.exception.operation, "write")

    def test_missing_table_is_a_storage_error(self) -> None:
        url = f"sqlite:///{os.path.join(self._tmpdir.name, 'empty.db')}"
        engine = create_engine(url, future=True)
        try:
            store = SqlRecordStore(engine)
            with self.assertRaises(StorageUnavailableError):
                store.query_range(T0, T0)
        finally:
            engine.dispose()


class TestFilesystemPayloadStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.root = os.path.join(self._tmpdir.name, "weatherdata")
        self.store = FilesystemPayloadStore(self.root)

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def test_container_is_created(self) -> None:
        self.assertTrue(os.path.isdir(self.root))

    def test_write_exists_read(self) -> None:
        body = '{"coord":{"lon":-0.13}, "name":"Łódź"}\r\n'
        self.assertFalse(self.store.exists("id-1"))
        self.store.write("id-1", body)

        self.assertTrue(self.store.exists("id-1"))
        self.assertEqual(self.store.read("id-1"), body)
        # no temp files left behind
        self.assertEqual(os.listdir(self.root), ["id-1"])

    def test_overwrite_is_safe(self) -> None:
        self.store.write("id-1", "first")
        self.store.write("id-1", "second")
        self.assertEqual(self.store.read("id-1"), "second")

    def test_missing_id_raises_not_found(self) -> None:
        with self.assertRaises(PayloadNotFoundError):
            self.store.read("nope")

    def test_unsafe_ids_never_exist(self) -> None:
        for bad in ["", "..", "../secret", "a/b", ".tmp-x", "a\\b"]:
            self.assertFalse(self.store.exists(bad), bad)
            with self.assertRaises(PayloadNotFoundError):
                self.store.read(bad)
        with self.assertRaises(ValueError):
            self.store.write("../escape", "x")


if __name__ == "__main__":
    unittest.main()
