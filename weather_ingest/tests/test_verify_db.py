import datetime as dt

from weather_ingest.ingestion.models import IngestionRecord
from weather_ingest.ingestion.verify_db import fetch_store_stats, main

T0 = dt.datetime(2025, 3, 1, 10, 0, 0, tzinfo=dt.timezone.utc)


def test_stats_count_outcomes(record_store, sqlite_engine):
    for m, ok in [(0, True), (1, False), (2, True)]:
        record_store.write(IngestionRecord("WeatherInfo", f"id-{m}", T0 + dt.timedelta(minutes=m), ok))

    total, stats = fetch_store_stats(sqlite_engine)

    assert total == 3
    row = stats.iloc[0]
    assert row["partition_key"] == "WeatherInfo"
    assert row["records"] == 3
    assert row["succeeded"] == 2
    assert row["failed"] == 1


def test_cli_reports_empty_store(tmp_path, capsys):
    main(["--db-url", f"sqlite:///{tmp_path / 'empty.db'}"])
    out = capsys.readouterr().out
    assert "Total ingestion records: 0" in out
    assert "No ingestion records found." in out
