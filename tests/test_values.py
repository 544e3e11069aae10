"""Tests for result value text normalization."""

import json
import uuid
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from ipaddress import IPv4Address

import pytest

from unidb.core.values import row_to_text, value_to_text


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("hello", "hello"),
        ("NULL", "NULL"),
        (42, "42"),
        (1.5, "1.5"),
        (Decimal("10.20"), "10.20"),
        (True, "true"),
        (False, "false"),
        (b"\x00\xff", "\\x00ff"),
        (date(2024, 1, 31), "2024-01-31"),
        (time(12, 30), "12:30:00"),
        (datetime(2024, 1, 31, 8, 0, tzinfo=UTC), "2024-01-31T08:00:00+00:00"),
        (timedelta(hours=1), "1:00:00"),
        (uuid.UUID(int=1), "00000000-0000-0000-0000-000000000001"),
        (IPv4Address("10.0.0.1"), "10.0.0.1"),
    ],
)
def test_scalar_to_text(value, expected):
    assert value_to_text(value) == expected


@pytest.mark.unit
def test_null_stays_none():
    assert value_to_text(None) is None


@pytest.mark.unit
def test_json_document_to_json_text():
    text = value_to_text({"a": [1, 2], "b": None, "c": "é"})
    assert json.loads(text) == {"a": [1, 2], "b": None, "c": "é"}
    assert "é" in text


@pytest.mark.unit
def test_array_with_nested_values():
    text = value_to_text([Decimal("1.5"), date(2024, 1, 1), None])
    assert json.loads(text) == ["1.5", "2024-01-01", None]


@pytest.mark.unit
def test_row_to_text():
    row = row_to_text(["id", "name", "note"], (1, "alice", None))
    assert row == {"id": "1", "name": "alice", "note": None}
