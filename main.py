"""
Main entrypoint: FastAPI server in the main thread; the periodic alert runner
(retention cleanup, optional generation sweep) runs in a daemon thread started
by the app lifespan.

Env: DB_PATH or DATABASE_URL, API_HOST, API_PORT, LOG_LEVEL, CLEANUP_INTERVAL_SEC,
GENERATE_ON_TICK, PERIODIC_RUNNER_ENABLED.

Equivalent: uvicorn pantry_alerts.api_server.app:app --host 0.0.0.0 --port 8000
"""

# Configure structured JSON logging before other imports that may log
from pantry_alerts.logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Ensure the store schema, then run the FastAPI server in the main thread."""
    from pantry_alerts.config import get_settings
    from pantry_alerts.database import get_database

    settings = get_settings()
    get_database()
    logger.info(
        "main_store_ready",
        backend="sqlalchemy" if settings.database_url else "sqlite",
        db_path=str(settings.db_path),
    )

    from pantry_alerts.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
