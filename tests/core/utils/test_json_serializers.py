"""Tests for core.utils.json_serializers."""

import json
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from core.utils.json_serializers import dumps, json_serializer


class Color(Enum):
    RED = "red"


class Lead(BaseModel):
    id: int
    email: str


class TestJsonSerializer:
    def test_datetime(self):
        dt = datetime(2026, 3, 1, 12, 30, tzinfo=UTC)
        assert json_serializer(dt) == "2026-03-01T12:30:00+00:00"

    def test_date(self):
        assert json_serializer(date(2026, 3, 1)) == "2026-03-01"

    def test_decimal_becomes_float(self):
        assert json_serializer(Decimal("1.5")) == 1.5

    def test_path(self):
        assert json_serializer(Path("/tmp/x")) == "/tmp/x"

    def test_set_becomes_list(self):
        assert sorted(json_serializer({2, 1})) == [1, 2]

    def test_pydantic_model(self):
        assert json_serializer(Lead(id=1, email="a@example.com")) == {
            "id": 1,
            "email": "a@example.com",
        }

    def test_enum(self):
        assert json_serializer(Color.RED) == "red"

    def test_fallback_to_string(self):
        assert json_serializer(object()).startswith("<object object")


class TestDumps:
    def test_compact_output(self):
        assert dumps({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_round_trips_through_json(self):
        value = {"result": [{"id": 1, "updatedAt": datetime(2026, 1, 1, tzinfo=UTC)}]}
        assert json.loads(dumps(value)) == {
            "result": [{"id": 1, "updatedAt": "2026-01-01T00:00:00+00:00"}]
        }
