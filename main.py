"""Incident webhook service.

This file handles two concerns:

1. Intake: receives Alertmanager webhooks, validates them, and runs the
   pipeline as a background task so Alertmanager gets its 202 immediately.

2. Results API: read endpoints for the latest analysis and for
   postmortems written so far.

Flow after a webhook arrives:
    POST /webhooks/alertmanager
        → parse AlertManagerPayload
        → start background task
        → return 202 with the alert count

    background task:
        → IncidentRuntime.handle_payload()
        → firing alerts   → AnalysisResult → store
        → resolved alerts → Postmortem     → store

Run locally:
    uvicorn main:app --reload
"""

import json
import logging
import logging.handlers
import os
import pathlib

import uvicorn
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from core.config import ConfigError, load_settings
from core.runtime import IncidentRuntime, build_runtime
from schemas.alert import AlertManagerPayload
from schemas.result import AnalysisResult, Postmortem

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FILE = pathlib.Path(__file__).parent / "rca_pilot.log"
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_file_handler = logging.handlers.RotatingFileHandler(
    LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8",
)
_file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

_root_logger = logging.getLogger()
_root_logger.setLevel(logging.INFO)
_root_logger.addHandler(_file_handler)

logger = logging.getLogger(__name__)

app = FastAPI(title="RCA Pilot")

# ALLOWED_ORIGINS overrides the default for dashboards served elsewhere.
_origins = os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Runtime setup
# ---------------------------------------------------------------------------

# Built on first use so the app imports without credentials. Tests assign
# their own runtime here.
_runtime: IncidentRuntime | None = None


def get_runtime() -> IncidentRuntime:
    """Return the shared runtime, building it from the environment once.

    Raises:
        ConfigError: If the settings cannot produce a working runtime.
    """
    global _runtime
    if _runtime is None:
        settings = load_settings()
        _root_logger.setLevel(settings.log_level)
        _runtime = build_runtime(settings)
    return _runtime


# ---------------------------------------------------------------------------
# Result store
# ---------------------------------------------------------------------------

# In-memory only: lost on restart.
_analyses: dict[str, AnalysisResult] = {}
_postmortems: dict[str, Postmortem] = {}
_latest_analysis_id: str | None = None


def _save(result: AnalysisResult | Postmortem) -> None:
    global _latest_analysis_id
    if isinstance(result, Postmortem):
        _postmortems[result.id] = result
    else:
        _analyses[result.id] = result
        _latest_analysis_id = result.id


def reset_store() -> None:
    global _latest_analysis_id
    _analyses.clear()
    _postmortems.clear()
    _latest_analysis_id = None


# ---------------------------------------------------------------------------
# Background processing
# ---------------------------------------------------------------------------

async def _process_payload(runtime: IncidentRuntime, payload: AlertManagerPayload) -> None:
    """Run the pipeline for a webhook envelope and store what it produced.

    Runs after the handler has already answered Alertmanager. Per-alert
    failures are logged by the runtime and never reach here.
    """
    results = await runtime.handle_payload(payload)
    for result in results:
        _save(result)
    logger.info(
        "Stored %d result(s) for group '%s'.", len(results), payload.group_key
    )


# ---------------------------------------------------------------------------
# Health checks
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ready")
def ready():
    """Ready once the runtime can be built from the current configuration."""
    try:
        get_runtime()
    except ConfigError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return {"status": "ready"}


# ---------------------------------------------------------------------------
# Alertmanager webhook
# ---------------------------------------------------------------------------

@app.post("/webhooks/alertmanager", status_code=202)
async def alertmanager_webhook(request: Request, background_tasks: BackgroundTasks):
    """Accept an Alertmanager envelope and process it in the background."""
    body = await request.body()

    try:
        payload = AlertManagerPayload.model_validate(json.loads(body))
    except (ValueError, ValidationError) as exc:
        logger.error("Failed to parse Alertmanager payload: %s", exc)
        raise HTTPException(status_code=400, detail=f"Malformed payload: {exc}")

    try:
        runtime = get_runtime()
    except ConfigError as exc:
        logger.error("Runtime unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc))

    logger.info(
        "Accepted %d alert(s) from group '%s' (%s).",
        len(payload.alerts),
        payload.group_key,
        payload.status,
    )
    background_tasks.add_task(_process_payload, runtime, payload)

    return {"status": "accepted", "alerts": len(payload.alerts)}


# ---------------------------------------------------------------------------
# Results API
# ---------------------------------------------------------------------------

@app.get("/analyses/latest", response_model=AnalysisResult)
def get_latest_analysis():
    """Return the most recent analysis. 404 if none has run yet."""
    if _latest_analysis_id is None:
        raise HTTPException(status_code=404, detail="No analyses yet.")
    return _analyses[_latest_analysis_id]


@app.get("/postmortems", response_model=list[Postmortem])
def list_postmortems():
    return list(_postmortems.values())


@app.get("/postmortems/{postmortem_id}", response_model=Postmortem)
def get_postmortem(postmortem_id: str):
    if postmortem_id not in _postmortems:
        raise HTTPException(status_code=404, detail=f"Postmortem '{postmortem_id}' not found.")
    return _postmortems[postmortem_id]


if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
