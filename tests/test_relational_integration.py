"""
Statistiche end-to-end su PostgreSQL reale.
Richiede TEST_POSTGRES_DSN; ogni test lavora in uno schema temporaneo.
"""
import os
import uuid
from datetime import datetime, timedelta, timezone

import asyncpg
import pytest

from sitestats.query_service.constants import EventType
from sitestats.query_service.relational import RelationalDriver
from sitestats.query_service.website_stats import relational_query

DSN = os.getenv("TEST_POSTGRES_DSN")

pytestmark = [
    pytest.mark.requires_db,
    pytest.mark.skipif(not DSN, reason="TEST_POSTGRES_DSN non impostata"),
]

SCHEMA_SQL = """
create table session (
  session_id uuid primary key,
  website_id uuid not null,
  browser varchar(20),
  os varchar(20),
  device varchar(20),
  screen varchar(11),
  language varchar(35),
  country char(2),
  region varchar(20),
  city varchar(50)
);
create table website_event (
  event_id uuid primary key,
  website_id uuid not null,
  session_id uuid not null,
  visit_id uuid not null,
  created_at timestamptz not null,
  url_path varchar(500) not null default '/',
  url_query varchar(500),
  referrer_domain varchar(500),
  page_title varchar(500),
  hostname varchar(100),
  event_type integer not null default 1,
  event_name varchar(50),
  tag varchar(50)
);
"""

T0 = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
RANGE = {
    "start_date": datetime(2024, 3, 1, tzinfo=timezone.utc),
    "end_date": datetime(2024, 3, 31, tzinfo=timezone.utc),
}


@pytest.fixture
async def driver():
    schema = f"test_{uuid.uuid4().hex[:12]}"
    admin = await asyncpg.connect(DSN)
    await admin.execute(f"create schema {schema}")
    pool = await asyncpg.create_pool(
        DSN, min_size=1, max_size=2, server_settings={"search_path": schema}
    )
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA_SQL)
    drv = RelationalDriver(pool=pool)
    try:
        yield drv
    finally:
        await drv.close()
        await admin.execute(f"drop schema {schema} cascade")
        await admin.close()


async def add_session(driver, website_id, country="IT"):
    session_id = uuid.uuid4()
    pool = await driver.get_pg_pool()
    await pool.execute(
        "insert into session (session_id, website_id, country) values ($1, $2, $3)",
        session_id, website_id, country,
    )
    return session_id


async def add_event(driver, website_id, session_id, visit_id, created_at,
                    event_type=EventType.PAGE_VIEW, event_name=None, url_path="/"):
    pool = await driver.get_pg_pool()
    await pool.execute(
        """
        insert into website_event
          (event_id, website_id, session_id, visit_id, created_at, event_type, event_name, url_path)
        values ($1, $2, $3, $4, $5, $6, $7, $8)
        """,
        uuid.uuid4(), website_id, session_id, visit_id, created_at,
        int(event_type), event_name, url_path,
    )


async def test_three_single_pageview_sessions(driver):
    website_id = uuid.uuid4()
    for i in range(3):
        session_id = await add_session(driver, website_id)
        await add_event(driver, website_id, session_id, uuid.uuid4(), T0 + timedelta(minutes=i))

    [row] = await relational_query(str(website_id), RANGE, driver)

    assert row["pageviews"] == 3
    assert row["visits"] == 3
    assert row["visitors"] == 3
    assert row["bounces"] == 3
    assert row["totaltime"] == 0
    assert row["conversions"] == 0


async def test_conversion_without_pageviews(driver):
    website_id = uuid.uuid4()
    session_id = await add_session(driver, website_id)
    await add_event(
        driver, website_id, session_id, uuid.uuid4(), T0,
        event_type=EventType.CUSTOM_EVENT, event_name="alert_submit",
    )

    [row] = await relational_query(str(website_id), RANGE, driver)

    assert row["conversions"] == 1
    assert row["pageviews"] == 0
    assert row["visits"] == 0


async def test_bounces_visits_pageviews_ordering_and_totaltime(driver):
    website_id = uuid.uuid4()
    session_a = await add_session(driver, website_id)
    visit_a = uuid.uuid4()
    await add_event(driver, website_id, session_a, visit_a, T0)
    await add_event(driver, website_id, session_a, visit_a, T0 + timedelta(seconds=90))
    await add_event(driver, website_id, session_a, visit_a, T0 + timedelta(seconds=150))
    session_b = await add_session(driver, website_id)
    await add_event(driver, website_id, session_b, uuid.uuid4(), T0)

    [row] = await relational_query(str(website_id), RANGE, driver)

    assert row["pageviews"] == 4
    assert row["visits"] == 2
    assert row["bounces"] == 1
    assert row["bounces"] <= row["visits"] <= row["pageviews"]
    assert row["totaltime"] == 150


async def test_caller_event_type_is_overridden(driver):
    website_id = uuid.uuid4()
    session_id = await add_session(driver, website_id)
    await add_event(driver, website_id, session_id, uuid.uuid4(), T0)
    await add_event(
        driver, website_id, session_id, uuid.uuid4(), T0,
        event_type=EventType.CUSTOM_EVENT, event_name="signup",
    )

    [row] = await relational_query(
        str(website_id), {**RANGE, "event_type": EventType.CUSTOM_EVENT}, driver
    )

    assert row["pageviews"] == 1
    assert row["visits"] == 1


async def test_date_range_is_inclusive_and_session_filter_joins(driver):
    website_id = uuid.uuid4()
    italian = await add_session(driver, website_id, country="IT")
    french = await add_session(driver, website_id, country="FR")
    await add_event(driver, website_id, italian, uuid.uuid4(), RANGE["start_date"])
    await add_event(driver, website_id, italian, uuid.uuid4(), RANGE["end_date"])
    await add_event(driver, website_id, french, uuid.uuid4(), T0)
    await add_event(driver, website_id, italian, uuid.uuid4(), RANGE["end_date"] + timedelta(seconds=1))

    [everything] = await relational_query(str(website_id), RANGE, driver)
    [only_it] = await relational_query(str(website_id), {**RANGE, "country": "IT"}, driver)

    assert everything["pageviews"] == 3
    assert only_it["pageviews"] == 2
    assert only_it["visitors"] == 1
