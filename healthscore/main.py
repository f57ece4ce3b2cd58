"""
Baseline Health Score - FastAPI Application

API endpoints for:
- Service health
- The biomarker catalog (tiers, weights, composites)
- Scoring an upstream health-data payload
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from healthscore.config import settings
from healthscore.core.ingestion import bmi_from_pii
from healthscore.core.scoring import CATALOG, BaselineScoreEngine
from healthscore.models import (
    BaselineScoreRequest,
    BaselineScoreResponse,
    CatalogEntry,
    HealthResponse,
)
from healthscore.utils import HealthDataError, get_logger, setup_logging

setup_logging(settings.log_level, settings.log_file)
logger = get_logger(__name__)

START_TIME = datetime.now()

# ---- Engine (read-only reference data, shared across requests) ----
_engine = BaselineScoreEngine()


# ---- Application Lifespan ----

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Baseline score API v{settings.service_version} ready "
        f"({len(CATALOG)} tier definitions, BMI fallback={settings.bmi_fallback})"
    )
    yield
    logger.info("Baseline score API shut down.")


# ---- FastAPI Application ----

app = FastAPI(
    title="Baseline Health Score API",
    description="Normalized baseline health score from pre-rated biomarker panels",
    version=settings.service_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=settings.service_version,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
        catalog_size=len(CATALOG),
    )


# ---- API Endpoints ----

@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """API root - health check."""
    return _health()


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return _health()


@app.get("/api/v1/catalog", tags=["Catalog"])
async def get_catalog() -> Dict[str, Any]:
    """Tier definitions and the fixed per-tier denominators."""
    entries = [
        CatalogEntry(
            name=d.name,
            tier=d.tier.value,
            target_score=d.target_score,
            metric_id=d.metric_id or None,
            related_metric_ids=list(d.related_metric_ids),
            composition=d.composition.value,
        ).model_dump()
        for d in CATALOG
    ]
    return {
        "original_totals": {t.value: v for t, v in CATALOG.original_totals.items()},
        "total_original_score": CATALOG.total_original_score,
        "definitions": entries,
    }


@app.post("/api/v1/baseline-score", response_model=BaselineScoreResponse, tags=["Scoring"])
async def calculate_baseline_score(request: BaselineScoreRequest):
    """
    Score one user's upstream health-data payload.

    BMI comes from ``bmi`` when given, otherwise from height and weight.
    """
    bmi = request.bmi
    if bmi is None:
        bmi = bmi_from_pii(request.height_cm, request.weight_kg)

    try:
        result = _engine.calculate_from_payload(request.health_data, bmi=bmi)
    except HealthDataError as e:
        logger.warning(f"Rejected health data payload: {e.message}")
        raise HTTPException(status_code=400, detail=e.to_dict())

    if result is None:
        raise HTTPException(status_code=422, detail="Biomarker data not available")

    return BaselineScoreResponse(
        pre_capped_percentage=result.pre_capped_percentage,
        final_percentage=result.final_percentage,
        is_capped_overall=result.is_capped_overall,
        summary=BaselineScoreEngine.summarise(result),
        result=result.to_dict(),
    )


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
