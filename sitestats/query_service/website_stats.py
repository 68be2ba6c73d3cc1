"""
Statistiche aggregate di un sito (pageviews, visitatori, visite, bounce,
tempo totale, conversioni) sul backend relazionale o colonnare.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from .columnar import ClickHouseDriver
from .constants import (
    CONVERSION_EVENT_NAME, EVENT_COLUMNS, HOURLY_STATS_TABLE, EventType,
)
from .db import Backend, run_query
from .filters import QueryFilters
from .relational import RelationalDriver

logger = logging.getLogger(__name__)

TimestampDiffSQL = Callable[[str, str], str]


def has_event_column_filter(filters: QueryFilters) -> bool:
    """True se almeno un filtro richiede gli eventi grezzi."""
    return any(filters.get(column) is not None for column in EVENT_COLUMNS)


def build_relational_stats_sql(
    filter_query: str,
    join_session: str,
    get_timestamp_diff_sql: TimestampDiffSQL,
) -> str:
    """Query in quattro passi: filtro, metriche per visita, conversioni, totali."""
    return f"""
    -- Passo 1: eventi filtrati
    with filtered_events as (
      select website_event.* from website_event
        {join_session}
      where website_event.website_id = {{{{website_id::uuid}}}}
        and website_event.created_at between {{{{start_date}}}} and {{{{end_date}}}}
        {filter_query}
    ),
    -- Passo 2: metriche per sessione/visita, solo pageview
    metrics as (
      select
        filtered_events.session_id as "session_id",
        filtered_events.visit_id as "visit_id",
        count(*) as "c",
        min(filtered_events.created_at) as "min_time",
        max(filtered_events.created_at) as "max_time"
      from filtered_events
      where filtered_events.event_type = {{{{event_type}}}}
      group by filtered_events.session_id, filtered_events.visit_id
    ),
    -- Passo 3: conversioni su tutti gli eventi filtrati
    conversions as (
      select
        count(distinct filtered_events.event_id) as "conversions"
      from filtered_events
      where filtered_events.event_name = '{CONVERSION_EVENT_NAME}'
    )
    -- Passo 4: totali
    select
      sum(metrics.c) as "pageviews",
      count(distinct metrics.session_id) as "visitors",
      count(distinct metrics.visit_id) as "visits",
      sum(case when metrics.c = 1 then 1 else 0 end) as "bounces",
      sum({get_timestamp_diff_sql('metrics.min_time', 'metrics.max_time')}) as "totaltime",
      (select conversions.conversions from conversions) as "conversions"
    from metrics
    """


def build_clickhouse_stats_sql(filter_query: str, raw_events: bool) -> str:
    """
    Query colonnare: eventi grezzi se richiesti dai filtri,
    altrimenti la tabella oraria pre-aggregata.
    """
    if raw_events:
        inner = f"""
        select
          session_id,
          visit_id,
          count(*) c,
          min(created_at) min_time,
          max(created_at) max_time
        from website_event
        where website_id = %(website_id)s
          and created_at between %(start_date)s and %(end_date)s
          and event_type = %(event_type)s
          {filter_query}
        group by session_id, visit_id
        """
    else:
        inner = f"""
        select
          session_id,
          visit_id,
          sum(views) c,
          min(min_time) min_time,
          max(max_time) max_time
        from {HOURLY_STATS_TABLE} "website_event"
        where website_id = %(website_id)s
          and created_at between %(start_date)s and %(end_date)s
          and event_type = %(event_type)s
          {filter_query}
        group by session_id, visit_id
        """

    return f"""
    select
      sum(t.c) as "pageviews",
      uniq(t.session_id) as "visitors",
      uniq(t.visit_id) as "visits",
      sumIf(1, t.c = 1) as "bounces",
      sum(t.max_time - t.min_time) as "totaltime"
    from ({inner}) as t
    """


def _pageview_filters(filters: QueryFilters) -> Dict[str, Any]:
    # Il tipo evento forzato sovrascrive quello eventualmente passato
    return {**filters, "event_type": EventType.PAGE_VIEW}


async def relational_query(
    website_id: str,
    filters: QueryFilters,
    driver: RelationalDriver,
) -> List[Dict[str, Any]]:
    parsed = await driver.parse_filters(website_id, _pageview_filters(filters))
    sql = build_relational_stats_sql(
        parsed.filter_query,
        parsed.join_session,
        driver.get_timestamp_diff_sql,
    )
    rows = await driver.raw_query(sql, parsed.params)
    return rows[:1]


async def clickhouse_query(
    website_id: str,
    filters: QueryFilters,
    driver: ClickHouseDriver,
) -> List[Dict[str, Any]]:
    parsed = await driver.parse_filters(website_id, _pageview_filters(filters))
    raw_events = has_event_column_filter(filters)
    logger.debug(
        "Stats ClickHouse da %s",
        "website_event" if raw_events else HOURLY_STATS_TABLE,
    )
    sql = build_clickhouse_stats_sql(parsed.filter_query, raw_events)
    rows = await driver.raw_query(sql, parsed.params)
    return rows[:1]


class WebsiteStatsService:
    """Punto d'ingresso per le statistiche sito sul backend configurato."""

    def __init__(
        self,
        relational: Optional[RelationalDriver] = None,
        clickhouse: Optional[ClickHouseDriver] = None,
        backend: Optional[Backend] = None,
    ):
        self.relational = relational or RelationalDriver()
        self.clickhouse = clickhouse or ClickHouseDriver()
        self.backend = backend

    async def get_website_stats(
        self,
        website_id: str,
        filters: QueryFilters,
    ) -> List[Dict[str, Any]]:
        """
        Restituisce una lista con una sola riga di statistiche aggregate.
        Gli errori del backend vengono propagati al chiamante.
        """
        return await run_query(
            relational=lambda: relational_query(website_id, filters, self.relational),
            clickhouse=lambda: clickhouse_query(website_id, filters, self.clickhouse),
            backend=self.backend,
        )

    async def close(self):
        """Chiudi connessioni."""
        await self.relational.close()
        self.clickhouse.close()
