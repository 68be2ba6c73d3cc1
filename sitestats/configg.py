# sitestats/configg.py
import os
import logging
from typing import Dict, Any
from urllib.parse import quote
from dotenv import load_dotenv

# Carica variabili d'ambiente
load_dotenv()

# Configura logger
logger = logging.getLogger(__name__)

# Identifica l'ambiente
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

# -------------------- CONFIGURAZIONI ------------------

# Backend per le statistiche: "postgresql" (relazionale) o "clickhouse" (colonnare)
DATABASE_BACKEND = os.getenv("DATABASE_BACKEND", "postgresql").strip().lower()

# Configurazione ClickHouse
CLICKHOUSE_HOST = os.getenv("CLICKHOUSE_HOST", "clickhouse-server")
CLICKHOUSE_USER = os.getenv("CLICKHOUSE_USER", "default")
CLICKHOUSE_PASSWORD = os.getenv("CLICKHOUSE_PASSWORD", "")
CLICKHOUSE_PORT = int(os.getenv("CLICKHOUSE_PORT", "9000"))
CLICKHOUSE_DATABASE = os.getenv("CLICKHOUSE_DATABASE", "umami")

# Configurazione Postgres
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "postgres")
POSTGRES_USER = os.getenv("POSTGRES_USER", "sitestats")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "sitestats")
POSTGRES_DB = os.getenv("POSTGRES_DB", "sitestats")
POSTGRES_PORT = int(os.getenv("POSTGRES_PORT", "5432"))
POSTGRES_POOL_MIN = int(os.getenv("POSTGRES_POOL_MIN", "2"))
POSTGRES_POOL_MAX = int(os.getenv("POSTGRES_POOL_MAX", "10"))

# HTTP server
SERVICE_HOST = os.getenv("SERVICE_HOST", "0.0.0.0")
SERVICE_PORT = int(os.getenv("SERVICE_PORT", "8004"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "text").lower()
SERVICE_NAME = os.getenv("SERVICE_NAME", "sitestats")

# -------------------- FUNZIONI HELPER ------------------

def get_clickhouse_config() -> Dict[str, Any]:
    """
    Ottiene configurazione per ClickHouse in formato adatto al client.
    """
    return {
        "host": CLICKHOUSE_HOST,
        "port": CLICKHOUSE_PORT,
        "user": CLICKHOUSE_USER,
        "password": CLICKHOUSE_PASSWORD,
        "database": CLICKHOUSE_DATABASE,
    }

def get_postgres_uri() -> str:
    """Restituisce URI di connessione PostgreSQL."""
    return f"postgresql://{quote(POSTGRES_USER, safe='')}:{quote(POSTGRES_PASSWORD, safe='')}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}"

def get_database_backend() -> str:
    """Restituisce il backend configurato per le query statistiche."""
    return DATABASE_BACKEND

def validate_critical_configs() -> None:
    """Valida configurazioni critiche e registra avvisi."""
    if DATABASE_BACKEND not in ("postgresql", "clickhouse"):
        logger.error("DATABASE_BACKEND non valido: %s", DATABASE_BACKEND)

    # Verifica configurazione del backend attivo
    if DATABASE_BACKEND == "clickhouse" and not CLICKHOUSE_HOST:
        logger.error("Manca configurazione CLICKHOUSE_HOST!")

    if DATABASE_BACKEND == "postgresql" and not POSTGRES_HOST:
        logger.error("Manca configurazione POSTGRES_HOST!")

    if ENVIRONMENT == "production" and POSTGRES_PASSWORD == "sitestats":
        logger.warning(" SECURITY RISK: POSTGRES_PASSWORD è impostata sul valore predefinito in produzione!")

# Esegui validazione in produzione e staging
if ENVIRONMENT in ["production", "staging"]:
    validate_critical_configs()
