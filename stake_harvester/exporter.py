"""append-only csv export of stake operations, with optional parquet copy"""

from __future__ import annotations

import csv
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .operations import CSV_COLUMNS, Operation

logger = logging.getLogger(__name__)

# written in place of missing values
EMPTY_VALUE = " "


def default_output_path(started_at: Optional[datetime] = None, output_dir: str | Path = ".") -> Path:
    """build stake_operations_<iso timestamp>.csv for the run start time"""
    started_at = started_at or datetime.now(timezone.utc)
    stamp = started_at.astimezone(timezone.utc).isoformat(
        timespec="milliseconds").replace("+00:00", "Z")
    return Path(output_dir).resolve() / f"stake_operations_{stamp}.csv"


class OperationCSVExporter:
    """csv file shared by the stake and unstake streams"""

    def __init__(self, output_path: str | Path):
        self.output_path = Path(output_path)
        self.rows_written = 0

    def create(self) -> Path:
        """create or truncate the file and write the header row"""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_path, 'w', newline='', encoding='utf-8') as csvfile:
            writer = csv.writer(csvfile, lineterminator="\n")
            writer.writerow(CSV_COLUMNS)
        logger.info(f"Created {self.output_path}")
        return self.output_path

    def append(self, operations: Sequence[Operation]) -> int:
        """append operations in one write; empty input leaves the file untouched"""
        if not operations:
            return 0

        last = operations[-1]
        logger.info(
            f"Writing {len(operations)} {last.type} operations up to block {last.block_number}")

        with open(self.output_path, 'a', newline='', encoding='utf-8') as csvfile:
            writer = csv.writer(csvfile, lineterminator="\n")
            writer.writerows(self._format_row(op) for op in operations)

        self.rows_written += len(operations)
        return len(operations)

    @staticmethod
    def _format_row(operation: Operation) -> list:
        row = operation.to_csv_row()
        return [EMPTY_VALUE if row[col] is None else str(row[col]) for col in CSV_COLUMNS]

    def export_to_parquet(self, parquet_path: Optional[str | Path] = None) -> Path:
        """convert the finished csv to parquet next to it"""
        parquet_path = Path(parquet_path) if parquet_path else self.output_path.with_suffix('.parquet')
        parquet_path.parent.mkdir(parents=True, exist_ok=True)

        export_start = time.time()
        # uint256 amounts do not fit int64; keep everything as text
        df = pd.read_csv(self.output_path, dtype=str, keep_default_na=False)
        df = df.apply(lambda col: col.str.strip())
        df = df.mask(df == "")
        df["blockNumber"] = pd.to_numeric(df["blockNumber"]).astype("Int64")
        df["tokenDecimals"] = pd.to_numeric(df["tokenDecimals"]).astype("Int64")
        df.to_parquet(parquet_path, index=False, engine='pyarrow')

        export_time = time.time() - export_start
        logger.info(
            f"Exported {len(df)} operations to {parquet_path} ({export_time:.1f}s)")
        return parquet_path
