"""
Driver colonnare (ClickHouse via clickhouse_driver): parser filtri ed esecuzione query.
"""
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from clickhouse_driver import Client as CHClient

from sitestats.configg import get_clickhouse_config
from .constants import OPERATORS
from .db import normalize_row
from .filters import (
    ParsedFilters, QueryFilters, active_filters, base_params, filter_param_value,
)

logger = logging.getLogger(__name__)

_SQL_OPERATORS = {
    OPERATORS["equals"]: "=",
    OPERATORS["notEquals"]: "!=",
    OPERATORS["contains"]: "ilike",
    OPERATORS["doesNotContain"]: "not ilike",
}


class ClickHouseDriver:
    """Accesso a ClickHouse per le query statistiche."""

    def __init__(self, client: Optional[CHClient] = None):
        self._client = client
        # Un solo client = una sola connessione: le query vanno serializzate
        self._lock = asyncio.Lock()

    @property
    def ch_client(self) -> CHClient:
        """Lazy init del client ClickHouse."""
        if self._client is None:
            self._client = CHClient(**get_clickhouse_config())
        return self._client

    def close(self):
        if self._client is not None:
            self._client.disconnect()
            self._client = None

    async def parse_filters(self, website_id: str, filters: QueryFilters) -> ParsedFilters:
        """
        Costruisce il frammento WHERE per i filtri dimensionali.
        In ClickHouse le colonne di sessione sono denormalizzate sugli eventi:
        nessun join necessario.
        """
        params = base_params(website_id, filters)
        clauses = []

        for name, column, operator, value in active_filters(filters):
            clauses.append(f"and {column} {_SQL_OPERATORS[operator]} %({name})s")
            params[name] = filter_param_value(operator, value)

        return ParsedFilters(filter_query="\n".join(clauses), params=params)

    def _execute(self, sql: str, params: Mapping[str, Any]) -> List[Dict[str, Any]]:
        rows, columns = self.ch_client.execute(sql, dict(params), with_column_types=True)
        names = [col[0] for col in columns]
        return [normalize_row(dict(zip(names, row))) for row in rows]

    async def raw_query(self, sql: str, params: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """
        Esegue la query in un thread per non bloccare l'event loop.
        Il lock copre anche la creazione lazy del client.
        """
        async with self._lock:
            return await asyncio.to_thread(self._execute, sql, params)
