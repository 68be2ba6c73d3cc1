"""
Driver relazionale (PostgreSQL via asyncpg): parser filtri ed esecuzione query.
"""
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

import asyncpg

from sitestats.configg import (
    get_postgres_uri, POSTGRES_POOL_MIN, POSTGRES_POOL_MAX,
)
from .constants import OPERATORS, SESSION_COLUMNS
from .db import normalize_row
from .filters import (
    ParsedFilters, QueryFilters, active_filters, base_params, filter_param_value,
)

logger = logging.getLogger(__name__)

# {{nome}} oppure {{nome::tipo}}
PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)(?:::(\w+))?\s*\}\}")

JOIN_SESSION_SQL = "inner join session on session.session_id = website_event.session_id"

_SQL_OPERATORS = {
    OPERATORS["equals"]: "=",
    OPERATORS["notEquals"]: "!=",
    OPERATORS["contains"]: "ilike",
    OPERATORS["doesNotContain"]: "not ilike",
}


def get_timestamp_diff_sql(start: str, end: str) -> str:
    """Differenza in secondi tra due espressioni timestamp (PostgreSQL)."""
    return f"floor(extract(epoch from ({end} - {start})))"


def compile_placeholders(sql: str, params: Mapping[str, Any]) -> Tuple[str, List[Any]]:
    """
    Converte i placeholder {{nome}} nei parametri posizionali di asyncpg.
    Lo stesso nome usato più volte riusa lo stesso indice.
    Solleva KeyError se un placeholder non ha il parametro corrispondente.
    """
    positions: Dict[str, int] = {}
    values: List[Any] = []

    def _replace(match: re.Match) -> str:
        name, cast = match.group(1), match.group(2)
        if name not in positions:
            values.append(params[name])
            positions[name] = len(values)
        ref = f"${positions[name]}"
        return f"{ref}::{cast}" if cast else ref

    return PLACEHOLDER_RE.sub(_replace, sql), values


class RelationalDriver:
    """Accesso al database relazionale per le query statistiche."""

    def __init__(self, pool: Optional[asyncpg.Pool] = None):
        self._pg_pool = pool

    async def get_pg_pool(self) -> asyncpg.Pool:
        """Lazy init PostgreSQL pool."""
        if self._pg_pool is None:
            self._pg_pool = await asyncpg.create_pool(
                get_postgres_uri(),
                min_size=POSTGRES_POOL_MIN, max_size=POSTGRES_POOL_MAX
            )
        return self._pg_pool

    async def close(self):
        """Chiudi connessioni."""
        if self._pg_pool:
            await self._pg_pool.close()
            self._pg_pool = None

    def get_timestamp_diff_sql(self, start: str, end: str) -> str:
        return get_timestamp_diff_sql(start, end)

    async def parse_filters(self, website_id: str, filters: QueryFilters) -> ParsedFilters:
        """
        Costruisce il frammento WHERE per i filtri dimensionali.
        Le colonne di sessione richiedono il join con la tabella session.
        """
        params = base_params(website_id, filters)
        clauses = []
        needs_session = False

        for name, column, operator, value in active_filters(filters):
            if name in SESSION_COLUMNS:
                needs_session = True
                qualified = f"session.{column}"
            else:
                qualified = f"website_event.{column}"
            clauses.append(f"and {qualified} {_SQL_OPERATORS[operator]} {{{{{name}}}}}")
            params[name] = filter_param_value(operator, value)

        return ParsedFilters(
            filter_query="\n".join(clauses),
            join_session=JOIN_SESSION_SQL if needs_session else "",
            params=params,
        )

    async def raw_query(self, sql: str, params: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """Esegue la query parametrizzata e restituisce le righe come dict."""
        query, args = compile_placeholders(sql, params)
        pool = await self.get_pg_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
        return [normalize_row(dict(row)) for row in rows]
