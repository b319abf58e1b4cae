"""
Maintenance validation service FastAPI application.

This module exposes REST endpoints for registering equipment maintenance
events and reading them back.  Every submission goes through the rule
engine (``rule_engine.py``) before it is stored; rejected submissions are
answered with a validation-problem body listing every broken rule, and
accepted ones are returned together with any advisory warnings.

Run locally with ``python app.py`` or ``uvicorn app:app``.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

import config
from db import fetch_maintenance, fetch_maintenance_by_id, init_db
from models import MaintenanceRecord, MaintenanceSubmission, ValidationVerdict
from rule_engine import RuleSettings
from service import submit_maintenance

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Resolved once; an unknown locale stops start-up
    app.state.rule_settings = RuleSettings.from_config()
    init_db(config.DB_PATH)
    logger.info("Using maintenance database %s", config.DB_PATH)
    yield


app = FastAPI(title="Maintenance Validation Service", lifespan=lifespan)


def get_db_path() -> str:
    return config.DB_PATH


def get_rule_settings(request: Request) -> RuleSettings:
    settings = getattr(request.app.state, "rule_settings", None)
    return settings or RuleSettings.from_config()


def validation_problem(verdict: ValidationVerdict) -> JSONResponse:
    """Render a rejected verdict as a 400 validation-problem response."""
    errors = {f"error{index}": [message] for index, message in enumerate(verdict.errors)}
    return JSONResponse(
        status_code=400,
        content={
            "title": "One or more validation errors occurred.",
            "status": 400,
            "errors": errors,
            "warnings": verdict.warnings,
        },
    )


@app.get("/health")
def health_check() -> Dict[str, str]:
    """Return a simple health status."""
    return {"status": "ok"}


@app.post("/api/maintenance", status_code=201)
def create_maintenance(
    payload: MaintenanceSubmission,
    response: Response,
    db_path: str = Depends(get_db_path),
    settings: RuleSettings = Depends(get_rule_settings),
) -> Any:
    verdict, record = submit_maintenance(payload, db_path, settings=settings)
    if not verdict.is_valid:
        return validation_problem(verdict)

    response.headers["Location"] = f"/api/maintenance/{record.id}"
    return {"maintenance": record.model_dump(mode="json"), "warnings": verdict.warnings}


@app.get("/api/maintenance", response_model=List[MaintenanceRecord])
def list_maintenance(
    equipment_id: Optional[uuid.UUID] = None,
    maintenance_type: Optional[str] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    db_path: str = Depends(get_db_path),
) -> List[MaintenanceRecord]:
    return fetch_maintenance(
        db_path,
        equipment_id=equipment_id,
        maintenance_type=maintenance_type,
        on_date=on_date,
    )


@app.get("/api/maintenance/{record_id}", response_model=MaintenanceRecord)
def get_maintenance(record_id: uuid.UUID, db_path: str = Depends(get_db_path)) -> MaintenanceRecord:
    record = fetch_maintenance_by_id(record_id, db_path)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Maintenance {record_id} not found")
    return record


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
