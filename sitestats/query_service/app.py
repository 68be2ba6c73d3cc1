"""
Stats Service - API HTTP per le statistiche aggregate dei siti.
"""
import logging
from datetime import datetime

import uvicorn
from fastapi import FastAPI, Query, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware

from sitestats.configg import SERVICE_HOST, SERVICE_PORT
from sitestats.utils.logger_config import setup_logging
from sitestats.utils.monitoring.fastapi_metrics import setup_metrics
from .constants import FILTER_COLUMNS
from .db import get_backend
from .models import StatsQuery, WebsiteStatsResponse
from .website_stats import WebsiteStatsService

# Setup
setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Sitestats Query Service",
    description="Statistiche aggregate dei siti su PostgreSQL o ClickHouse",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

OPERATOR_SUFFIX = "_op"

# Dependencies
stats_service = WebsiteStatsService()

def get_stats_service() -> WebsiteStatsService:
    return stats_service

@app.on_event("startup")
async def startup():
    """Inizializzazioni all'avvio."""
    logger.info("Stats Service avviato (backend: %s)", get_backend().value)

@app.on_event("shutdown")
async def shutdown():
    """Cleanup alla chiusura."""
    await stats_service.close()

@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "sitestats"}

@app.get(
    "/websites/{website_id}/stats",
    response_model=WebsiteStatsResponse,
    response_model_exclude_none=True,
)
async def website_stats(
    website_id: str,
    request: Request,
    start_at: datetime = Query(..., description="Inizio intervallo (ISO 8601)"),
    end_at: datetime = Query(..., description="Fine intervallo (ISO 8601)"),
    service: WebsiteStatsService = Depends(get_stats_service),
):
    """
    Statistiche aggregate del sito nell'intervallo richiesto.

    I filtri dimensionali (url, referrer, country, ...) arrivano come query
    string e il loro valore è sempre letterale. L'operatore si passa in un
    parametro separato <nome>_op (eq, neq, c, dnc), ad esempio
    ?referrer=google&referrer_op=c. Senza _op il filtro è di uguaglianza.
    """
    if end_at < start_at:
        raise HTTPException(status_code=400, detail="end_at deve essere successivo a start_at")

    query = StatsQuery(
        start_at=start_at,
        end_at=end_at,
        filters={
            name: value
            for name, value in request.query_params.items()
            if name in FILTER_COLUMNS
        },
        operators={
            name[:-len(OPERATOR_SUFFIX)]: value
            for name, value in request.query_params.items()
            if name.endswith(OPERATOR_SUFFIX) and name[:-len(OPERATOR_SUFFIX)] in FILTER_COLUMNS
        },
    )

    try:
        filters = query.to_filters()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        backend = service.backend or get_backend()
        rows = await service.get_website_stats(website_id, filters)
    except Exception as e:
        logger.error("Errore query stats sito %s: %s", website_id, e)
        raise HTTPException(status_code=500, detail=str(e))

    return WebsiteStatsResponse(data=rows, backend=backend.value)

# Configurazione metriche Prometheus
setup_metrics(app, app_name="sitestats")

def main():
    """Avvia il servizio con uvicorn."""
    uvicorn.run(app, host=SERVICE_HOST, port=SERVICE_PORT)

if __name__ == "__main__":
    main()
