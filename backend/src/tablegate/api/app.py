"""FastAPI application."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Callable

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from tablegate.api.errors import register_error_handlers
from tablegate.auth import (
    AuthMiddleware,
    Authenticator,
    Authorizer,
    Identity,
    JWTService,
    MembershipStore,
    OwnershipChecker,
    PasswordService,
    PermissionResolver,
    require_identity,
)
from tablegate.persistence import DatabaseConfig, PersistenceAdapter, create_adapter
from tablegate.registry import TableRegistry
from tablegate.registry.validator import validate_metadata_dir
from tablegate.services.context import Deadline
from tablegate.services.tables import TableService
from tablegate.settings import Settings

logger = logging.getLogger(__name__)

ANONYMOUS = Identity(user_id="guest", group_id="anonymous")

# Global instances (initialized on startup)
settings: Settings | None = None
registry: TableRegistry | None = None
db: PersistenceAdapter | None = None
membership_store: MembershipStore | None = None
authenticator: Authenticator | None = None
table_service: TableService | None = None


def _base_path() -> Path:
    """Repository root, whether started from it or from ``backend/``."""
    cwd = Path.cwd()
    return cwd.parent if cwd.name == "backend" else cwd


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize on startup, cleanup on shutdown."""
    global settings, registry, db, membership_store, authenticator, table_service

    base_path = _base_path()
    settings = Settings.from_env(base_path)
    logging.getLogger().setLevel(settings.log_level)

    # Schema problems are reported but only loader errors block startup
    schema_issues = validate_metadata_dir(settings.metadata_path)
    for issue in schema_issues:
        if issue.severity == "error":
            logger.error("Table config schema error: %s", issue)
        else:
            logger.warning("Table config schema warning: %s", issue)
    if schema_issues:
        logger.warning(
            "Table config validation: %d issue(s). Run 'tablegate tables validate' for details.",
            len(schema_issues),
        )

    registry = TableRegistry(settings.metadata_path)
    registry.load_all()
    logger.info("Loaded %d table configurations", len(registry.tables))

    db_config = DatabaseConfig.from_env(base_path)
    if db_config.is_sqlite and db_config.sqlite_path != ":memory:":
        Path(db_config.sqlite_path).parent.mkdir(parents=True, exist_ok=True)

    db = create_adapter(db_config)
    db.connect()
    logger.info("Connected to %s", db_config.display_url)

    membership_store = MembershipStore(db_config.sqlalchemy_url)
    snapshot = membership_store.load_permission_snapshot()

    authorizer = Authorizer(PermissionResolver(snapshot), OwnershipChecker(db))
    table_service = TableService(
        registry,
        db,
        authorizer,
        load_snapshot=membership_store.load_permission_snapshot,
        admin_group=settings.admin_group,
        strict_params=settings.strict_params,
        strict_types=settings.strict_types,
        default_limit=settings.default_limit,
        max_limit=settings.max_limit,
    )

    # Auth can be disabled via environment variable for testing
    if settings.disable_auth:
        logger.warning("Authentication disabled; requests run as %s", ANONYMOUS.user_id)
        authenticator = None
    else:
        authenticator = Authenticator(
            JWTService(
                settings.secret_key,
                issuer=settings.jwt_issuer,
                audience=settings.jwt_audience,
                leeway=settings.jwt_leeway,
            ),
            PasswordService(),
            membership_store.get_member,
        )

    yield

    # Cleanup
    if db:
        db.close()
    if membership_store:
        membership_store.dispose()
    authenticator = None
    table_service = None


app = FastAPI(title="TableGate API", lifespan=lifespan)
register_error_handlers(app)

app.add_middleware(
    AuthMiddleware,
    get_authenticator=lambda: authenticator,
    anonymous_identity=ANONYMOUS,
)

# CORS for browser clients (added last so it wraps auth)
app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings.from_env(_base_path()).cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _service() -> TableService:
    if not table_service or not settings:
        raise RuntimeError("Table service not initialized")
    return table_service


async def _run(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run a blocking service call with a fresh request deadline.

    If the request task is cancelled (client went away), the deadline is
    cancelled too so the worker stops before its next query.
    """
    deadline = Deadline.after(settings.request_timeout if settings else None)
    try:
        return await run_in_threadpool(fn, *args, deadline=deadline, **kwargs)
    except asyncio.CancelledError:
        deadline.cancel()
        raise


class RecordRequest(BaseModel):
    """Request body for create and update operations."""

    data: dict[str, Any]


# --- Table Endpoints ---


@app.get("/api/tables")
async def list_tables(identity: Identity = Depends(require_identity)) -> dict[str, Any]:
    """List the configured tables the caller can view."""
    return {"tables": _service().list_tables(identity)}


@app.get("/api/tables/{table}")
async def list_records(
    table: str,
    limit: str | None = None,
    offset: str | None = None,
    order: str | None = None,
    filters: str | None = None,
    q: str | None = None,
    identity: Identity = Depends(require_identity),
) -> dict[str, Any]:
    """List one page of records with filtering, sorting, and search."""
    page = await _run(
        _service().list_records,
        identity,
        table,
        limit=limit,
        offset=offset,
        order=order,
        filters=filters,
        q=q,
    )
    return page.to_dict()


@app.get("/api/tables/{table}/{id}")
async def get_record(
    table: str, id: str, identity: Identity = Depends(require_identity)
) -> dict[str, Any]:
    record = await _run(_service().get_record, identity, table, id)
    return {"data": record}


@app.post("/api/tables/{table}", status_code=201)
async def create_record(
    table: str, request: RecordRequest, identity: Identity = Depends(require_identity)
) -> dict[str, Any]:
    """Create a record. The owner field is set to the caller."""
    record = await _run(_service().create_record, identity, table, request.data)
    return {"data": record}


@app.patch("/api/tables/{table}/{id}")
async def update_record(
    table: str,
    id: str,
    request: RecordRequest,
    identity: Identity = Depends(require_identity),
) -> dict[str, Any]:
    record = await _run(_service().update_record, identity, table, id, request.data)
    return {"data": record}


@app.delete("/api/tables/{table}/{id}")
async def delete_record(
    table: str, id: str, identity: Identity = Depends(require_identity)
) -> dict[str, Any]:
    await _run(_service().delete_record, identity, table, id)
    return {"success": True}


# --- Admin Endpoints ---


@app.post("/api/admin/permissions/reload")
async def reload_permissions(identity: Identity = Depends(require_identity)) -> dict[str, Any]:
    """Re-read membership_grouppermissions (admin group only)."""
    rows = await run_in_threadpool(_service().reload_permissions, identity)
    return {"success": True, "rows": rows}
