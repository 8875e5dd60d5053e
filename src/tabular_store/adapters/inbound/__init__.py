"""Inbound adapters for the table store.

Exports:
    REST API:
        - create_app: Create a FastAPI application
        - run_server: Run the REST API server
        - equality_predicate: Translate a ``where`` object into a predicate
"""

from tabular_store.adapters.inbound.rest_api import (
    create_app,
    equality_predicate,
    loose_equality_predicate,
    run_server,
)

__all__ = [
    "create_app",
    "run_server",
    "equality_predicate",
    "loose_equality_predicate",
]
