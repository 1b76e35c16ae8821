"""Unit tests for upload row normalization."""

from __future__ import annotations

from datetime import date, datetime, timezone

from ingest.row_normalizer import normalize_row, normalize_rows

DATA_DATE = date(2024, 3, 1)
BATCH_INSTANT = datetime(2024, 3, 1, 10, 30, tzinfo=timezone.utc)
RICH_ROW = [
    "https://img.example.com/l9.png",
    "Antminer L9",
    "16,000 GH/s",
    "Algo: Scrypt",
    "$9,800",
    "$30.10/day",
]


def _normalize(row, power_table=None):
    return normalize_row(row, DATA_DATE, BATCH_INSTANT, 0, power_table or {})


def test_normalize_row_reads_flat_numeric_cells() -> None:
    """Flat rows should map positional cells onto record fields."""
    record = _normalize(["Whatsminer M60S", "186", "4200", "11.0", "3441", "18.5"])

    assert (record.hashrate, record.price, record.efficiency) == (186.0, 4200.0, 18.5)


def test_normalize_row_converts_gigahash_to_terahash() -> None:
    """Rich rows quoting GH/s should be stored in TH/s."""
    record = _normalize(RICH_ROW)

    assert record.hashrate == 16.0


def test_normalize_row_strips_thousands_separators_from_price() -> None:
    """Rich price text with commas should parse as one number."""
    record = _normalize(RICH_ROW)

    assert record.price == 9800.0


def test_normalize_row_strips_algorithm_label() -> None:
    """The ``Algo:`` prefix should be removed from the algorithm."""
    record = _normalize(RICH_ROW)

    assert record.algorithm == "Scrypt" and record.image_url.endswith("l9.png")


def test_normalize_row_fills_power_from_reference_table() -> None:
    """Missing power should come from the table and derive efficiency."""
    record = _normalize(
        ["Antminer S21 - 200 TH/s", "200", "5000", "12.5", "", ""],
        power_table={"Antminer S21 - 200 TH/s": 3500},
    )

    assert record.power_consumption == 3500 and record.efficiency == 17.5


def test_normalize_row_derives_efficiency_when_reported_zero() -> None:
    """A zero efficiency cell should be replaced by power over hashrate."""
    record = _normalize(["Avalon A1466", "150", "2500", "8", "3000", "0"])

    assert record.efficiency == 20.0


def test_normalize_row_drops_zero_hashrate() -> None:
    """Rows without a positive hashrate should be dropped."""
    record = _normalize(["Sold Out Unit", "0", "1999"])

    assert record is None


def test_normalize_row_drops_short_rows() -> None:
    """Rows with fewer than two cells should be dropped."""
    record = _normalize(["Antminer S21"])

    assert record is None


def test_normalize_rows_skips_header_row() -> None:
    """Header text should not produce a record."""
    rows = [["name", "hashrate", "price"], ["Antminer S21", "200", "5000"]]

    records = normalize_rows(rows, DATA_DATE, BATCH_INSTANT, power_table={})

    assert [record.name for record in records] == ["Antminer S21"]


def test_normalize_rows_assigns_distinct_upload_ids() -> None:
    """Identical rows in one batch should receive distinct upload ids."""
    rows = [["Antminer S21", "200", "5000"], ["Antminer S21", "200", "5000"]]

    records = normalize_rows(rows, DATA_DATE, BATCH_INSTANT, power_table={})

    assert records[0].upload_id != records[1].upload_id


def test_normalize_rows_stamps_batch_instant_and_date() -> None:
    """Every record should carry the batch date and instant."""
    records = normalize_rows([["Antminer S21", "200", "5000"]], DATA_DATE, BATCH_INSTANT)

    assert records[0].date == DATA_DATE and records[0].upload_timestamp == BATCH_INSTANT


def test_normalize_rows_reads_naive_batch_instant_as_utc() -> None:
    """A batch instant without an offset should be stamped as UTC."""
    naive_instant = BATCH_INSTANT.replace(tzinfo=None)

    records = normalize_rows([["Antminer S21", "200", "5000"]], DATA_DATE, naive_instant)

    assert records[0].upload_timestamp == BATCH_INSTANT


def test_normalize_row_treats_any_http_first_cell_as_rich() -> None:
    """A first cell mentioning http without a scheme separator is a rich row."""
    record = _normalize(["img http-cdn/l9.png", *RICH_ROW[1:]])

    assert (record.name, record.hashrate, record.image_url) == (
        "Antminer L9",
        16.0,
        "img http-cdn/l9.png",
    )
