"""
api.py - FastAPI HTTP layer for the statement pricing engine.

Endpoints:
  - GET  /health
  - POST /normalize          raw snapshot -> normalized statement
  - POST /analyze-response   AI reply text -> normalized statement
  - POST /project            statement + model + params -> projection report
  - POST /compare            statement + params per model -> projections
  - POST /revenue            MRR + customers -> ARR / ARPU

No pricing logic is implemented here and nothing is stored; every request
is answered from its own body.
"""

from __future__ import annotations

import os
from typing import Any

import uvicorn
from dotenv import load_dotenv
from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from explain import format_projection_json
from extract import ExtractionError, parse_extraction_response
from logging_config import ENV_DEBUG, env_flag, get_logger, setup_logging_from_env
from models import PricingModel
from normalize import normalize_statement
from pricing import parse_model_type, project, project_all
from rates import current_effective_rate, weighted_rate
from report import build_report, revenue_metrics

logger = get_logger("pricing-api")

try:
    load_dotenv()
except UnicodeDecodeError:
    # Fallback for legacy Windows-encoded .env files.
    load_dotenv(encoding="cp1252")

app = FastAPI(
    title="Statement Pricing Engine API",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _statement_view(raw: Any) -> dict[str, Any]:
    statement = normalize_statement(raw)
    return {
        "statement": statement.model_dump(by_alias=True, mode="json"),
        "weightedRatePercent": round(weighted_rate(statement), 4),
        "currentEffectiveRatePercent": round(current_effective_rate(statement), 4),
    }


def _require_object(payload: Any, field: str) -> dict[str, Any]:
    value = payload.get(field) if isinstance(payload, dict) else None
    if not isinstance(value, dict):
        raise HTTPException(status_code=400, detail=f"'{field}' must be a JSON object.")
    return value


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.post("/normalize")
def normalize_endpoint(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """Normalize a raw extraction snapshot."""
    return _statement_view(payload)


@app.post("/analyze-response")
def analyze_response_endpoint(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """Parse the extraction service's reply text and normalize it."""
    text = payload.get("text")
    if not isinstance(text, str):
        raise HTTPException(status_code=400, detail="'text' must be a string.")
    try:
        snapshot = parse_extraction_response(text)
    except ExtractionError as exc:
        logger.warning("api_extraction_failed | error=%s", exc)
        raise HTTPException(status_code=422, detail=f"Failed to analyze statement: {exc}") from exc
    return _statement_view(snapshot)


@app.post("/project")
def project_endpoint(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """Project one pricing model for a statement."""
    raw_statement = _require_object(payload, "statement")
    model = payload.get("model")
    params = payload.get("params") or {}
    if not isinstance(params, dict):
        raise HTTPException(status_code=400, detail="'params' must be a JSON object.")

    try:
        statement = normalize_statement(raw_statement)
        projection = project(statement, model, params)
        if projection is None:
            raise HTTPException(
                status_code=400,
                detail=(
                    f"Unknown pricing model: {model!r}. "
                    f"Choose one of: {', '.join(item.value for item in PricingModel)}"
                ),
            )
        result = format_projection_json(build_report(statement, projection))
        if env_flag(ENV_DEBUG):
            result["debugTrace"] = {
                "model": projection.model.value,
                "paramsReceived": sorted(params),
                "cardRows": len(statement.card_breakdown),
            }
        return result
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(
            "api_project_error | error_type=%s | error=%s",
            type(exc).__name__,
            exc,
            exc_info=True,
        )
        raise HTTPException(
            status_code=500,
            detail="Unexpected server error while projecting costs.",
        ) from exc


@app.post("/compare")
def compare_endpoint(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """Project several pricing models side by side."""
    raw_statement = _require_object(payload, "statement")
    params_by_model = _require_object(payload, "params")

    statement = normalize_statement(raw_statement)
    results = project_all(statement, params_by_model)
    skipped = sorted(str(key) for key in params_by_model if parse_model_type(key) is None)
    if skipped:
        logger.info("api_compare | skipped_models=%s", skipped)

    return {
        "currentCost": round(statement.total_fees, 2),
        "projections": {
            model.value: result.model_dump(by_alias=True, mode="json")
            for model, result in results.items()
        },
        "skipped": skipped,
    }


@app.post("/revenue")
def revenue_endpoint(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """Annualize a monthly recurring revenue figure."""
    metrics = revenue_metrics(payload.get("monthlyRevenue"), payload.get("customers"))
    return metrics.model_dump(by_alias=True)


if __name__ == "__main__":
    setup_logging_from_env()
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("api:app", host=os.getenv("HOST", "0.0.0.0"), port=port, reload=False)
