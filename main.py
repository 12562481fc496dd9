"""
FastAPI wrapper for Pipeline Health - Cloud Run deployment
"""

import os
import logging
from typing import List, Optional
from datetime import datetime
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Query, status
import uvicorn

from pipeline_health.calculator import PipelineHealthCalculator, build_calculator
from pipeline_health.config import get_settings
from pipeline_health.errors import PipelineHealthError
from pipeline_health.logging_config import configure_logging
from pipeline_health.schemas import HealthSummary, PipelineHealthScore
from pipeline_health.scoring import summarize_scores
from pipeline_health.storage import JsonDirectoryDataSource

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Pipeline Health API",
    description="Account health scoring from qualification notes, transcripts and next-best-actions",
    version="1.0.0"
)


@lru_cache(maxsize=1)
def get_calculator() -> PipelineHealthCalculator:
    settings = get_settings()
    return build_calculator(JsonDirectoryDataSource(settings.data_dir), settings=settings)


def _split_ids(values: Optional[List[str]]) -> List[str]:
    """Accept repeated ?accountIds=a&accountIds=b as well as ?accountIds=a,b"""
    ids = []
    for value in values or []:
        ids.extend(part.strip() for part in value.split(",") if part.strip())
    return ids


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Cloud Run"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": "pipeline-health-api",
        "environment": os.getenv("ENVIRONMENT", "development")
    }


@app.get("/api/pipeline-health", response_model=PipelineHealthScore, tags=["Pipeline Health"])
async def pipeline_health(
    account_id: Optional[str] = Query(None, alias="accountId"),
    calculator: PipelineHealthCalculator = Depends(get_calculator)
):
    """
    Health score for a single account
    """
    if not account_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="accountId is required"
        )

    try:
        return await calculator.compute_health(account_id)
    except PipelineHealthError as e:
        logger.error(f"Error calculating pipeline health: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to calculate pipeline health"
        )


@app.get("/api/pipeline-health/bulk", response_model=List[PipelineHealthScore], tags=["Pipeline Health"])
async def bulk_pipeline_health(
    account_ids: Optional[List[str]] = Query(None, alias="accountIds"),
    calculator: PipelineHealthCalculator = Depends(get_calculator)
):
    """
    Health scores for many accounts, in request order. Accounts that fail are reported as At Risk.
    """
    ids = _split_ids(account_ids)
    if not ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="accountIds is required"
        )

    return await calculator.compute_bulk_health(ids)


@app.get("/api/pipeline-health/summary", response_model=HealthSummary, tags=["Pipeline Health"])
async def pipeline_health_summary(
    account_ids: Optional[List[str]] = Query(None, alias="accountIds"),
    calculator: PipelineHealthCalculator = Depends(get_calculator)
):
    """
    Dashboard rollup: average health and label distribution
    """
    ids = _split_ids(account_ids)
    if not ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="accountIds is required"
        )

    scores = await calculator.compute_bulk_health(ids)
    return summarize_scores(scores)


if __name__ == "__main__":
    # For local development
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        log_level="info"
    )
