"""
Selezione del backend e utility comuni per l'esecuzione delle query.
"""
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

from sitestats.configg import get_database_backend

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Backend(str, Enum):
    """Backend di storage supportati."""
    RELATIONAL = "postgresql"
    COLUMNAR = "clickhouse"


def get_backend(value: Optional[str] = None) -> Backend:
    """
    Risolve il backend attivo dalla configurazione (o dal valore passato).
    Solleva ValueError se il valore non corrisponde a nessun backend.
    """
    raw = (value if value is not None else get_database_backend()).strip().lower()
    try:
        return Backend(raw)
    except ValueError:
        raise ValueError(f"Backend non supportato: {raw!r}") from None


async def run_query(
    relational: Callable[[], Awaitable[T]],
    clickhouse: Callable[[], Awaitable[T]],
    backend: Optional[Backend] = None,
) -> T:
    """
    Esegue esattamente una delle due query in base al backend attivo.
    Il percorso non selezionato non viene mai invocato.
    """
    backend = backend or get_backend()

    if backend is Backend.RELATIONAL:
        logger.debug("Query su backend relazionale")
        return await relational()
    if backend is Backend.COLUMNAR:
        logger.debug("Query su backend colonnare")
        return await clickhouse()

    raise ValueError(f"Backend non gestito: {backend!r}")


def _to_number(value: Any) -> Any:
    if value is None:
        return 0
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def normalize_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Converte NULL e Decimal restituiti dagli aggregati SQL in numeri Python."""
    return {key: _to_number(value) for key, value in row.items()}
