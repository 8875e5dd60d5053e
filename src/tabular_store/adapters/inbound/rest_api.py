"""REST API adapter for the table store.

This module provides a FastAPI-based REST API over a database. Table routes
are mounted under ``/api/db``; health and stats live at the root.

Endpoints:
    POST   /api/db/tables                      - Create a table
    GET    /api/db/tables                      - List tables
    GET    /api/db/tables/{table}              - Table schema
    POST   /api/db/tables/{table}/rows         - Insert a row
    POST   /api/db/tables/{table}/bulk         - Insert many rows
    GET    /api/db/tables/{table}/rows         - Select (``?where=<json>``)
    GET    /api/db/tables/{table}/data         - Paginated rows
    PUT    /api/db/tables/{table}/rows         - Update ``{updates, where}``
    DELETE /api/db/tables/{table}/rows         - Delete ``{where}``
    DELETE /api/db/tables/{table}/rows/{id}    - Delete by primary key
    DELETE /api/db/tables/{table}/clear        - Delete all rows
    DELETE /api/db/tables/{table}              - Drop a table
    GET    /api/db/info                        - Database summary
    GET    /api/db/debug/{table}               - Schema and all rows
    GET    /health                             - Health check
    GET    /stats                              - Persistence queue and storage

Filters are equality objects (``{"column": value, ...}``). They are turned
into predicates here; the table itself knows no filter grammar.

Usage:
    from tabular_store.adapters.inbound.rest_api import create_app

    app = create_app(db)
    # Run with uvicorn: uvicorn app:app --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

import json
import math
import time
from datetime import datetime, timezone
from typing import Any, Mapping

from fastapi import APIRouter, Body, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from tabular_store import __version__
from tabular_store.domain.entities import Predicate, SchemaError, Table, format_timestamp
from tabular_store.domain.value_objects import ValidationError
from tabular_store.infrastructure.logging import get_logger
from tabular_store.ports.inbound.database_port import (
    DatabasePort,
    DuplicateTableError,
    TableNotFoundError,
)


logger = get_logger(__name__)


class CreateTableRequest(BaseModel):
    """Request model for table creation."""

    name: str = Field(..., min_length=1, description="Table name")
    columns: list[dict[str, Any]] = Field(
        ..., description="Column definitions: {name, type, primaryKey?, unique?}"
    )


class UpdateRequest(BaseModel):
    """Request model for row updates."""

    updates: dict[str, Any] = Field(..., description="Column values to set")
    where: dict[str, Any] | None = Field(None, description="Equality filter")


class DeleteRequest(BaseModel):
    """Request model for filtered deletes."""

    where: dict[str, Any] | None = Field(None, description="Equality filter")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    database: str = Field(..., description="Database name")
    uptime: float = Field(..., description="Seconds since the app was created")
    timestamp: str = Field(..., description="Current time (UTC)")


# =========================================================================
# Filter translation
# =========================================================================


def _same_value(left: Any, right: Any) -> bool:
    """Equality that does not conflate booleans with 0 and 1."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    return left == right


def _loose_string(value: Any) -> str:
    """String form used by loose filters: ``true``, ``null``, ``3`` for 3.0."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def equality_predicate(where: Mapping[str, Any] | None) -> Predicate | None:
    """Predicate matching rows whose columns equal every value in where."""
    if not where:
        return None
    conditions = dict(where)

    def predicate(row: Mapping[str, Any]) -> bool:
        return all(
            key in row and _same_value(row[key], value)
            for key, value in conditions.items()
        )

    return predicate


def loose_equality_predicate(table: Table, where: Mapping[str, Any] | None) -> Predicate | None:
    """Like equality_predicate, but compares string forms.

    Keys naming no column of the table match nothing.
    """
    if not where:
        return None
    conditions = {key: _loose_string(value) for key, value in where.items()}
    known = all(table.get_column(key) is not None for key in conditions)

    def predicate(row: Mapping[str, Any]) -> bool:
        if not known:
            return False
        return all(_loose_string(row.get(key)) == value for key, value in conditions.items())

    return predicate


def _parse_where(raw: str | None) -> dict[str, Any] | None:
    if raw is None or raw == "":
        return None
    try:
        where = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid where filter: {e}") from e
    if not isinstance(where, dict):
        raise ValueError("Where filter must be a JSON object")
    return where


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


# =========================================================================
# Application
# =========================================================================


def create_app(db: DatabasePort, cors_origins: list[str] | None = None) -> FastAPI:
    """Create a FastAPI application for a database.

    Args:
        db: The database to serve.
        cors_origins: Allowed CORS origins (default: all).

    Returns:
        A configured FastAPI application.
    """
    app = FastAPI(
        title="Tabular Store API",
        description="REST API for an embedded in-memory table store",
        version=__version__,
    )
    started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TableNotFoundError)
    async def table_not_found(request: Request, exc: TableNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(DuplicateTableError)
    async def duplicate_table(request: Request, exc: DuplicateTableError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(SchemaError)
    async def schema_error(request: Request, exc: SchemaError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, "Validation failed", errors=exc.errors)

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request", errors=errors)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="ok",
            version=__version__,
            database=db.name,
            uptime=round(time.monotonic() - started_at, 3),
            timestamp=format_timestamp(datetime.now(timezone.utc)),
        )

    @app.get("/stats", tags=["Stats"])
    def get_stats() -> dict[str, Any]:
        """Persistence queue and storage statistics."""
        return {
            "success": True,
            "queue": db.get_queue_status(),
            "storage": db.get_storage_info(),
        }

    app.include_router(_create_router(db), prefix="/api/db")
    return app


def _create_router(db: DatabasePort) -> APIRouter:
    router = APIRouter(tags=["Tables"])

    @router.post("/tables")
    def create_table(request: CreateTableRequest) -> dict[str, Any]:
        """Create a table."""
        table = db.create_table(request.name, request.columns)
        return {
            "success": True,
            "message": f"Table '{request.name}' created successfully",
            "schema": table.get_schema(),
        }

    @router.get("/tables")
    def list_tables() -> dict[str, Any]:
        return {"success": True, "tables": db.list_tables()}

    @router.get("/tables/{table_name}")
    def get_schema(table_name: str) -> dict[str, Any]:
        return {"success": True, "schema": db.require_table(table_name).get_schema()}

    @router.post("/tables/{table_name}/rows")
    def insert_row(table_name: str, row: dict[str, Any] = Body(...)) -> dict[str, Any]:
        """Insert one row; 400 with the validation errors on failure."""
        table = db.require_table(table_name)
        inserted = table.insert(row).raise_for_errors()
        return {"success": True, "message": "Row inserted successfully", "row": inserted}

    @router.post("/tables/{table_name}/bulk")
    def insert_rows(table_name: str, rows: list[dict[str, Any]] = Body(...)) -> dict[str, Any]:
        """Insert rows one by one; failures do not stop the batch."""
        table = db.require_table(table_name)
        success_count = 0
        errors: list[str] = []
        for number, row in enumerate(rows, start=1):
            result = table.insert(row)
            if result.success:
                success_count += 1
            else:
                errors.append(f"Row {number}: {', '.join(result.errors)}")

        return {
            "success": not errors,
            "message": f"Inserted {success_count} rows, {len(errors)} failed",
            "successCount": success_count,
            "errorCount": len(errors),
            "errors": errors,
        }

    @router.get("/tables/{table_name}/rows")
    def select_rows(table_name: str, where: str | None = Query(None)) -> Any:
        table = db.require_table(table_name)
        try:
            conditions = _parse_where(where)
        except ValueError as e:
            return _error(status.HTTP_400_BAD_REQUEST, str(e))
        return {"success": True, "data": table.select(equality_predicate(conditions))}

    @router.get("/tables/{table_name}/data")
    def page_rows(
        table_name: str,
        limit: int | None = Query(None, ge=0),
        offset: int = Query(0, ge=0),
    ) -> dict[str, Any]:
        table = db.require_table(table_name)
        rows = table.select()
        total = len(rows)
        rows = rows[offset:]
        if limit:
            rows = rows[:limit]
        return {"success": True, "data": rows, "total": total, "limit": limit, "offset": offset}

    @router.put("/tables/{table_name}/rows")
    def update_rows(table_name: str, request: UpdateRequest) -> JSONResponse:
        table = db.require_table(table_name)
        result = table.update(request.updates, loose_equality_predicate(table, request.where))
        if not result.success:
            return _error(
                status.HTTP_400_BAD_REQUEST,
                "Update failed",
                errors=result.errors,
                rowsAffected=result.rows_affected,
            )
        return JSONResponse(
            content={
                "success": True,
                "message": f"{result.rows_affected} row(s) updated successfully",
                "rowsAffected": result.rows_affected,
            }
        )

    @router.delete("/tables/{table_name}/rows")
    def delete_rows(table_name: str, request: DeleteRequest | None = None) -> dict[str, Any]:
        table = db.require_table(table_name)
        where = request.where if request is not None else None
        result = table.delete(equality_predicate(where))
        return {
            "success": True,
            "message": f"{result.rows_affected} row(s) deleted",
            "rowsAffected": result.rows_affected,
        }

    @router.delete("/tables/{table_name}/rows/{row_id}")
    def delete_row(table_name: str, row_id: str) -> Any:
        """Delete the row(s) whose primary key renders as row_id."""
        table = db.require_table(table_name)
        primary_key = table.primary_key
        if primary_key is None:
            return _error(status.HTTP_400_BAD_REQUEST, "Table has no primary key defined")

        result = table.delete(lambda row: _loose_string(row.get(primary_key)) == row_id)
        return {
            "success": True,
            "message": f"{result.rows_affected} row(s) deleted",
            "rowsAffected": result.rows_affected,
        }

    @router.delete("/tables/{table_name}/clear")
    def clear_table(table_name: str) -> dict[str, Any]:
        result = db.require_table(table_name).delete()
        return {
            "success": True,
            "message": f"Cleared {result.rows_affected} rows from table",
            "rowsAffected": result.rows_affected,
        }

    @router.delete("/tables/{table_name}")
    def drop_table(table_name: str) -> dict[str, Any]:
        if not db.drop_table(table_name):
            raise TableNotFoundError(table_name)
        return {"success": True, "message": f"Table '{table_name}' dropped successfully"}

    @router.get("/info")
    def get_info() -> dict[str, Any]:
        return {"success": True, "info": db.get_info()}

    @router.get("/debug/{table_name}")
    def debug_table(table_name: str) -> dict[str, Any]:
        table = db.require_table(table_name)
        rows = table.select()
        return {
            "success": True,
            "table": table_name,
            "schema": table.get_schema(),
            "rows": rows,
            "rowCount": len(rows),
        }

    return router


def run_server(
    db: DatabasePort,
    host: str = "0.0.0.0",
    port: int = 3000,
    cors_origins: list[str] | None = None,
) -> None:
    """Run the REST API server.

    Args:
        db: The database.
        host: Host to bind to.
        port: Port to bind to.
        cors_origins: Allowed CORS origins.
    """
    import uvicorn

    app = create_app(db, cors_origins=cors_origins)
    logger.info("server_starting", host=host, port=port, database=db.name)
    uvicorn.run(app, host=host, port=port, log_config=None)
