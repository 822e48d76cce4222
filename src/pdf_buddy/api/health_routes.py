from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import get_llm_client
from .models import HealthResponse, ModelProbeResponse
from .. import __version__
from ..llm.client import LLMClient

router = APIRouter(tags=["health"])


@router.get("/")
def index():
    return {
        "status": "PDF Buddy API is running",
        "version": __version__,
        "endpoints": [
            "/upload/pdf",
            "/jobs/{job_id}",
            "/pdfs",
            "/pdf/{id}",
            "/chat",
            "/search",
            "/recent",
            "/health",
            "/health/models",
        ],
    }


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())


@router.get("/health/models", response_model=ModelProbeResponse)
async def probe_models(
    llm: Annotated[LLMClient, Depends(get_llm_client)],
) -> ModelProbeResponse:
    """Check which configured generative model currently answers."""
    results = await llm.probe_models()
    return ModelProbeResponse(
        success=any(r["status"] == "working" for r in results),
        results=results,
    )
