from __future__ import annotations

import argparse
from typing import Optional, Tuple

import pandas as pd
from sqlalchemy import case, create_engine, func, select
from sqlalchemy.orm import Session

from .models import IngestionRecordRow, create_tables


def fetch_store_stats(engine, partition_key: Optional[str] = None) -> Tuple[int, pd.DataFrame]:
    """Return total record count and per-partition ingestion stats."""
    create_tables(engine)

    succeeded = func.sum(case((IngestionRecordRow.fetch_succeeded.is_(True), 1), else_=0))
    with Session(engine) as session:
        total_stmt = select(func.count()).select_from(IngestionRecordRow)
        stats_stmt = select(
            IngestionRecordRow.partition_key.label("partition_key"),
            func.count().label("records"),
            succeeded.label("succeeded"),
            func.min(IngestionRecordRow.timestamp).label("first_ts_utc"),
            func.max(IngestionRecordRow.timestamp).label("last_ts_utc"),
        )
        if partition_key is not None:
            total_stmt = total_stmt.where(IngestionRecordRow.partition_key == partition_key)
            stats_stmt = stats_stmt.where(IngestionRecordRow.partition_key == partition_key)
        stats_stmt = stats_stmt.group_by(IngestionRecordRow.partition_key).order_by(
            IngestionRecordRow.partition_key
        )

        total = int(session.execute(total_stmt).scalar_one())
        rows = session.execute(stats_stmt).all()

    df = pd.DataFrame(rows, columns=["partition_key", "records", "succeeded", "first_ts_utc", "last_ts_utc"])
    df["succeeded"] = df["succeeded"].fillna(0).astype(int)
    df.insert(3, "failed", df["records"] - df["succeeded"])
    return total, df


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Summarise ingestion records (counts, outcomes and time span)")
    p.add_argument("--db-url", required=True, help="SQLAlchemy URL, e.g., sqlite:///weather_ingest.db")
    p.add_argument("--partition-key", default=None, help="Only inspect this partition (default: all)")
    return p.parse_args(argv)


def main(argv=None) -> None:
    args = _parse_args(argv)
    engine = create_engine(args.db_url, future=True)
    try:
        total, stats = fetch_store_stats(engine, args.partition_key)
    finally:
        engine.dispose()

    print(f"Total ingestion records: {total}")
    if stats.empty:
        print("No ingestion records found.")
        return

    with pd.option_context("display.max_rows", None, "display.width", 120):
        print(stats.to_string(index=False))


if __name__ == "__main__":
    main()
