"""
Strutture comuni ai parser dei filtri dei due backend.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Tuple

from .constants import FILTER_COLUMNS, OPERATORS

QueryFilters = Mapping[str, Any]


@dataclass
class ParsedFilters:
    """Risultato di parse_filters: frammento SQL, join opzionale e parametri."""
    filter_query: str = ""
    join_session: str = ""
    params: Dict[str, Any] = field(default_factory=dict)


def split_filter_value(value: Any) -> Tuple[str, Any]:
    """
    Normalizza un valore filtro in (operatore, valore).
    Un valore semplice equivale a un filtro di uguaglianza.
    """
    if isinstance(value, Mapping):
        operator = value.get("operator", OPERATORS["equals"])
        if operator not in OPERATORS.values():
            raise ValueError(f"Operatore filtro non supportato: {operator!r}")
        return operator, value.get("value")
    return OPERATORS["equals"], value


def active_filters(filters: QueryFilters) -> Iterator[Tuple[str, str, str, Any]]:
    """
    Itera sui filtri dimensionali riconosciuti e valorizzati.

    Yields:
        (nome filtro, colonna, operatore, valore)
    """
    for name, raw in filters.items():
        column = FILTER_COLUMNS.get(name)
        if column is None or raw is None:
            continue
        operator, value = split_filter_value(raw)
        if value is None:
            continue
        yield name, column, operator, value


def base_params(website_id: str, filters: QueryFilters) -> Dict[str, Any]:
    """Parametri sempre presenti: sito, intervallo date e tipo evento."""
    return {
        "website_id": website_id,
        "start_date": filters.get("start_date"),
        "end_date": filters.get("end_date"),
        "event_type": int(filters["event_type"]) if filters.get("event_type") is not None else None,
    }


def filter_param_value(operator: str, value: Any) -> Any:
    """I filtri "contiene" vengono passati come pattern LIKE."""
    if operator in (OPERATORS["contains"], OPERATORS["doesNotContain"]):
        return f"%{value}%"
    return value
