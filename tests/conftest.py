"""Fixture comuni: driver finti che registrano SQL e parametri senza database."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

import pytest

from sitestats.query_service.columnar import ClickHouseDriver
from sitestats.query_service.relational import RelationalDriver

WEBSITE_ID = "a5a2cbb1-3b4c-4f2e-9d0e-6f7d4e1c2b3a"


class RecordingRelationalDriver(RelationalDriver):
    def __init__(self, rows: List[Dict[str, Any]]):
        super().__init__()
        self.rows = rows
        self.calls = []

    async def raw_query(self, sql: str, params: Mapping[str, Any]):
        self.calls.append((sql, dict(params)))
        return self.rows


class RecordingClickHouseDriver(ClickHouseDriver):
    def __init__(self, rows: List[Dict[str, Any]]):
        super().__init__()
        self.rows = rows
        self.calls = []

    async def raw_query(self, sql: str, params: Mapping[str, Any]):
        self.calls.append((sql, dict(params)))
        return self.rows


@pytest.fixture
def date_range() -> Dict[str, datetime]:
    return {
        "start_date": datetime(2024, 3, 1, tzinfo=timezone.utc),
        "end_date": datetime(2024, 3, 31, 23, 59, 59, tzinfo=timezone.utc),
    }


@pytest.fixture
def relational_driver() -> RecordingRelationalDriver:
    return RecordingRelationalDriver([{
        "pageviews": 10, "visitors": 4, "visits": 5,
        "bounces": 2, "totaltime": 320, "conversions": 1,
    }])


@pytest.fixture
def clickhouse_driver() -> RecordingClickHouseDriver:
    return RecordingClickHouseDriver([{
        "pageviews": 10, "visitors": 4, "visits": 5,
        "bounces": 2, "totaltime": 320,
    }])


@pytest.fixture
def website_id() -> str:
    return WEBSITE_ID
