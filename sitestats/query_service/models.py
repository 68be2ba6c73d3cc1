"""Modelli per il servizio statistiche."""
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from .constants import FILTER_COLUMNS, OPERATORS

# Request Models
class StatsQuery(BaseModel):
    start_at: datetime = Field(..., description="Inizio intervallo (incluso)")
    end_at: datetime = Field(..., description="Fine intervallo (incluso)")
    filters: Dict[str, str] = Field(default_factory=dict, description="Filtri dimensionali")
    operators: Dict[str, str] = Field(default_factory=dict, description="Operatore per filtro (eq, neq, c, dnc)")

    def to_filters(self) -> Dict[str, Any]:
        """
        Converte la richiesta nel dizionario filtri usato dalle query.
        I valori sono sempre letterali; l'operatore arriva separato:
        filters={"referrer": "google"}, operators={"referrer": "c"} diventa
        {"referrer": {"operator": "c", "value": "google"}}.
        Solleva ValueError per operatori sconosciuti o senza valore.
        """
        filters: Dict[str, Any] = {
            "start_date": self.start_at,
            "end_date": self.end_at,
        }
        for name, operator in self.operators.items():
            if operator not in OPERATORS.values():
                raise ValueError(f"Operatore non supportato per {name}: {operator!r}")
            if not self.filters.get(name):
                raise ValueError(f"Operatore {operator!r} senza valore per {name}")

        for name, value in self.filters.items():
            if name not in FILTER_COLUMNS or value == "":
                continue
            operator = self.operators.get(name)
            if operator is None:
                filters[name] = value
            else:
                filters[name] = {"operator": operator, "value": value}
        return filters

# Response Models
class WebsiteStats(BaseModel):
    pageviews: int = 0
    visitors: int = 0
    visits: int = 0
    bounces: int = 0
    totaltime: float = 0
    conversions: Optional[int] = None

class WebsiteStatsResponse(BaseModel):
    data: List[WebsiteStats]
    backend: str = Field(..., description="postgresql o clickhouse")
