"""
Costanti condivise dalle query statistiche: tipi evento, vocabolario filtri.
"""
from enum import IntEnum
from typing import Dict


class EventType(IntEnum):
    """Tipi di evento registrati in website_event.event_type."""
    PAGE_VIEW = 1
    CUSTOM_EVENT = 2


# Chiave filtro -> colonna della tabella eventi/sessioni
FILTER_COLUMNS: Dict[str, str] = {
    "url": "url_path",
    "entry": "url_path",
    "exit": "url_path",
    "referrer": "referrer_domain",
    "host": "hostname",
    "title": "page_title",
    "query": "url_query",
    "event": "event_name",
    "tag": "tag",
    "os": "os",
    "browser": "browser",
    "device": "device",
    "screen": "screen",
    "language": "language",
    "country": "country",
    "region": "region",
    "city": "city",
}

# Colonne presenti solo sugli eventi grezzi (non nella tabella oraria aggregata)
EVENT_COLUMNS = ("url", "entry", "exit", "referrer", "title", "query", "event", "tag", "host")

# Colonne che nel backend relazionale vivono sulla tabella session
SESSION_COLUMNS = ("browser", "os", "device", "screen", "language", "country", "region", "city")

# Operatori supportati nei filtri
OPERATORS = {
    "equals": "eq",
    "notEquals": "neq",
    "contains": "c",
    "doesNotContain": "dnc",
}

# Evento custom conteggiato come conversione
CONVERSION_EVENT_NAME = "alert_submit"

# Tabella oraria pre-aggregata nel backend colonnare
HOURLY_STATS_TABLE = "website_event_stats_hourly"
