"""
Utility per aggiungere metriche Prometheus al servizio statistiche.
Uso:
    from sitestats.utils.monitoring.fastapi_metrics import setup_metrics

    app = FastAPI()
    setup_metrics(app)
"""
import logging
from typing import Optional

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator, metrics

logger = logging.getLogger(__name__)

LATENCY_BUCKETS = (0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0)

def setup_metrics(app: FastAPI, app_name: Optional[str] = None) -> Instrumentator:
    """
    Configura l'instrumentazione Prometheus per l'app FastAPI ed espone /metrics.

    Args:
        app: FastAPI application instance
        app_name: Nome dell'applicazione per il namespace delle metriche
    """
    service_name = app_name or app.title.lower().replace(" ", "_")

    instrumentator = (
        Instrumentator(excluded_handlers=["/metrics", "/health"])
        .add(metrics.latency(
            metric_namespace=service_name,
            buckets=LATENCY_BUCKETS,
        ))
        .add(metrics.requests(metric_namespace=service_name))
    )

    instrumentator.instrument(app)
    instrumentator.expose(app, include_in_schema=False)

    logger.info("Metriche Prometheus esposte per %s su /metrics", service_name)
    return instrumentator
