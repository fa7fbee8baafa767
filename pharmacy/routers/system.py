import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from pharmacy.core.constants import BACKUP_FORMATS, PASSWORD_MASK
from pharmacy.core.dates import utc_now
from pharmacy.database.session import Store, check_connection
from pharmacy.dependencies import get_db, get_store, require_database
from pharmacy.schemas.system import ConnectionResult, DatabaseConfig, DatabaseStatus, ImportResult
from pharmacy.services import backup_service, db_config_service
from pharmacy.services.catalog_service import seed_admin
from pharmacy.services.import_service import import_medicines

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["System"])


# ==============================
# Backup / restore
# ==============================

@router.get("/backup")
def backup(
    backup_format: str = Query("sql", alias="format", description="sql | json"),
    db: Session = Depends(get_db),
):
    backup_format = backup_format.strip().lower()
    if backup_format not in BACKUP_FORMATS:
        raise HTTPException(status_code=400, detail="format must be sql or json")

    filename = "pharmacy_backup_{}.{}".format(utc_now().strftime("%Y%m%d_%H%M%S"), backup_format)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if backup_format == "json":
        return JSONResponse(content=backup_service.dump_json(db), headers=headers)
    return Response(content=backup_service.dump_sql(db), media_type="application/sql", headers=headers)


@router.post("/restore")
async def restore(request: Request, store: Store = Depends(require_database)):
    body = await request.body()
    try:
        content = body.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="Backup must be UTF-8 text") from exc
    if not content.strip():
        raise HTTPException(status_code=400, detail="Backup content is empty")

    content_type = request.headers.get("content-type", "")
    if "json" in content_type or content.lstrip().startswith("{"):
        counts = await run_in_threadpool(backup_service.restore_json, store, content)
        return {"message": "Database restored", "tables": counts}
    executed = await run_in_threadpool(backup_service.restore_sql, store, content)
    return {"message": "Database restored", "statements": executed}


@router.post("/import/medicines", response_model=ImportResult)
def import_medicine_workbook(
    file: UploadFile = File(...),
    sheet: Optional[str] = Query(None),
    dry_run: bool = Query(False),
    db: Session = Depends(get_db),
):
    if file.filename and not file.filename.lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail="Only .xlsx files are supported.")
    try:
        return import_medicines(db, file.file.read(), sheet=sheet, dry_run=dry_run)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# ==============================
# Database connection
# ==============================

@router.get("/database/status", response_model=DatabaseStatus)
def database_status(store: Store = Depends(get_store)):
    return DatabaseStatus(connected=store.connected)


def _saved_config() -> Optional[DatabaseConfig]:
    try:
        return db_config_service.load_config()
    except (OSError, ValueError) as exc:
        logger.warning("Could not read database config: %s", exc)
        return None


@router.get("/database")
def get_database_config():
    config = _saved_config() or db_config_service.default_config()
    return db_config_service.masked(config)


def _with_saved_password(payload: DatabaseConfig) -> DatabaseConfig:
    # The settings form echoes the mask back when the password was not edited.
    if payload.password != PASSWORD_MASK:
        return payload
    saved = _saved_config() or db_config_service.default_config()
    return payload.model_copy(update={"password": saved.password})


@router.post("/database/test", response_model=ConnectionResult)
def check_database_config(payload: DatabaseConfig):
    url = db_config_service.build_database_url(_with_saved_password(payload))
    error = check_connection(url)
    if error:
        return JSONResponse(status_code=400, content={"success": False, "error": error})
    return ConnectionResult(success=True, message="Connection successful")


@router.post("/database", response_model=ConnectionResult)
def update_database_config(payload: DatabaseConfig, store: Store = Depends(get_store)):
    config = _with_saved_password(payload)
    try:
        store.reconnect(db_config_service.build_database_url(config))
    except SQLAlchemyError as exc:
        detail = getattr(exc, "orig", None) or exc
        logger.warning("Reconnect to %s:%s failed: %s", config.host, config.port, detail)
        return JSONResponse(status_code=400, content={"success": False, "error": f"Failed to connect: {detail}"})

    try:
        db_config_service.save_config(config)
    except OSError as exc:
        logger.exception("Connected but could not save database config")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": f"Connected but failed to save config: {exc}"},
        )

    db = store.session()
    try:
        seed_admin(db)
    finally:
        db.close()
    return ConnectionResult(success=True, message="Database configuration updated and connected")


__all__ = ["router"]
