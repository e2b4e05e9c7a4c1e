from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import (
    API_DESCRIPTION,
    API_TITLE,
    API_VERSION,
    CORS_CREDENTIALS,
    CORS_HEADERS,
    CORS_METHODS,
    CORS_ORIGINS,
    LOG_FORMAT,
    LOG_LEVEL,
)
from database import ResultsStore
from models import ProjectionRequest, ProjectionSummary
from wealth_projection import ProjectionPipeline, SimulationTimeoutError

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# ============================
# Dependencies
# ============================
_store: Optional[ResultsStore] = None
_pipeline: Optional[ProjectionPipeline] = None


def get_store() -> ResultsStore:
    global _store
    if _store is None:
        _store = ResultsStore()
    return _store


def get_pipeline() -> ProjectionPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = ProjectionPipeline()
    return _pipeline


def _run(request: ProjectionRequest, pipeline: ProjectionPipeline,
         store: ResultsStore) -> ProjectionSummary:
    # Stored bracket applies only when the request carries no explicit terms
    bracket = store.load_estate_bracket(request.user_id)
    try:
        return pipeline.project(request, bracket)
    except SimulationTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ============================
# FastAPI app
# ============================
app = FastAPI(title=API_TITLE, description=API_DESCRIPTION, version=API_VERSION)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_CREDENTIALS,
    allow_methods=CORS_METHODS,
    allow_headers=CORS_HEADERS,
)


@app.get("/")
def root():
    return {"message": API_TITLE, "docs": "Visit /docs for API documentation"}


@app.get("/api/default_request")
def default_request() -> ProjectionRequest:
    return ProjectionRequest(
        user_id="example",
        starting_wealth=2_500_000,
        years=40,
        annual_withdrawal=120_000,
        growth_asset_ratio=0.6,
        current_age=60,
        health_multiplier=1.0,
    )


@app.post("/api/project")
def project(request: ProjectionRequest,
            pipeline: ProjectionPipeline = Depends(get_pipeline),
            store: ResultsStore = Depends(get_store)) -> ProjectionSummary:
    return _run(request, pipeline, store)


@app.post("/api/runs")
def create_run(request: ProjectionRequest,
               pipeline: ProjectionPipeline = Depends(get_pipeline),
               store: ResultsStore = Depends(get_store)) -> ProjectionSummary:
    summary = _run(request, pipeline, store)
    store.save_summary(summary)
    logger.info("Stored projection for %s", request.user_id)
    return summary


@app.get("/api/runs/{user_id}")
def list_runs(user_id: str, store: ResultsStore = Depends(get_store)) -> List[Dict]:
    return store.list_runs(user_id)


@app.get("/api/runs/{user_id}/latest")
def latest_run(user_id: str, store: ResultsStore = Depends(get_store)) -> ProjectionSummary:
    summary = store.latest_summary(user_id)
    if summary is None:
        raise HTTPException(404, "Not found")
    return summary
