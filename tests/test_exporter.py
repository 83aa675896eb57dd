import csv
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from stake_harvester.exporter import OperationCSVExporter, default_output_path
from stake_harvester.operations import CSV_COLUMNS, Operation

DEPOSIT = Operation(
    account="0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
    amount=10 ** 24,
    block_number=100,
    block_timestamp="2023-11-14T22:15:00.000Z",
    token_address="0x4200000000000000000000000000000000000006",
    transaction_hash="0x" + "1" * 64,
    type="deposit",
    token_decimals=18,
    token_symbol="WETH",
)
WITHDRAWAL = Operation(
    account="0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
    amount=5,
    block_number=101,
    block_timestamp="2023-11-14T22:15:01.000Z",
    token_address="0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
    transaction_hash="0x" + "2" * 64,
    type="withdrawal",
)


def test_output_path_uses_run_start():
    started = datetime(2024, 5, 1, 12, 30, 0, 250000, tzinfo=timezone.utc)
    path = default_output_path(started, "/tmp/out")
    assert path.name == "stake_operations_2024-05-01T12:30:00.250Z.csv"
    assert path.parent == Path("/tmp/out").resolve()


def test_create_writes_header_once(tmp_path):
    exporter = OperationCSVExporter(tmp_path / "ops.csv")
    exporter.create()
    assert (tmp_path / "ops.csv").read_text(encoding="utf-8") == ",".join(CSV_COLUMNS) + "\n"


def test_append_rows(tmp_path):
    exporter = OperationCSVExporter(tmp_path / "ops.csv")
    exporter.create()
    assert exporter.append([DEPOSIT]) == 1
    assert exporter.append([WITHDRAWAL]) == 1
    lines = (tmp_path / "ops.csv").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert lines[1] == (
        "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed,1000000000000000000000000,100,"
        "2023-11-14T22:15:00.000Z,0x4200000000000000000000000000000000000006,18,WETH,"
        "0x" + "1" * 64 + ",deposit")
    # missing token metadata becomes a single space
    row = lines[2].split(",")
    assert row[5] == " " and row[6] == " "
    assert row[8] == "withdrawal"
    assert exporter.rows_written == 2


def test_append_nothing_is_a_noop(tmp_path, caplog):
    exporter = OperationCSVExporter(tmp_path / "ops.csv")
    exporter.create()
    before = (tmp_path / "ops.csv").read_bytes()
    caplog.clear()
    with caplog.at_level("INFO"):
        assert exporter.append([]) == 0
    assert (tmp_path / "ops.csv").read_bytes() == before
    assert not caplog.records


def test_append_nothing_does_not_create_file(tmp_path):
    exporter = OperationCSVExporter(tmp_path / "missing.csv")
    exporter.append([])
    assert not (tmp_path / "missing.csv").exists()


def test_rows_parse_back_with_csv_module(tmp_path):
    exporter = OperationCSVExporter(tmp_path / "ops.csv")
    exporter.create()
    exporter.append([DEPOSIT, WITHDRAWAL])
    with open(tmp_path / "ops.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["type"] for r in rows] == ["deposit", "withdrawal"]
    assert rows[0]["amount"] == str(10 ** 24)


def test_export_to_parquet(tmp_path):
    exporter = OperationCSVExporter(tmp_path / "ops.csv")
    exporter.create()
    exporter.append([DEPOSIT, WITHDRAWAL])
    parquet_path = exporter.export_to_parquet()
    assert parquet_path == tmp_path / "ops.parquet"
    df = pd.read_parquet(parquet_path)
    assert list(df.columns) == CSV_COLUMNS
    assert df["amount"].tolist() == [str(10 ** 24), "5"]
    assert df["blockNumber"].tolist() == [100, 101]
    assert df["tokenDecimals"].iloc[0] == 18
    assert pd.isna(df["tokenDecimals"].iloc[1])
    assert pd.isna(df["tokenSymbol"].iloc[1])
