"""Run the table store REST server: ``python -m tabular_store``.

Configuration comes from ``TABULAR_STORE_*`` environment variables.
"""

from __future__ import annotations

from tabular_store.adapters.inbound.rest_api import run_server
from tabular_store.application import Database
from tabular_store.infrastructure import get_config, setup_logging, setup_metrics, setup_tracing
from tabular_store.infrastructure.logging import get_logger


def main() -> None:
    config = get_config()
    setup_logging(
        level=config.observability.log_level,
        log_format=config.observability.log_format,
        database_name=config.storage.database_name,
    )
    setup_tracing(config.observability)
    metrics = setup_metrics(port=config.server.metrics_port)

    logger = get_logger(__name__)
    db = Database.from_config(config, metrics=metrics)
    try:
        run_server(
            db,
            host=config.server.host,
            port=config.server.port,
            cors_origins=config.server.cors_origins,
        )
    finally:
        db.close(timeout=config.persistence.shutdown_timeout_seconds)
        logger.info("server_stopped", database=db.name)


if __name__ == "__main__":
    main()
