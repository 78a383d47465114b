"""
FastAPI Application for SHL Recommender System

Provides REST API endpoints for assessment recommendations.

Endpoints:
    GET  /          - Root endpoint with API information
    GET  /health    - Health check endpoint
    POST /recommend - Get assessment recommendations for a query
    POST /evaluate  - Recall@10 of the pipeline on labeled queries
    GET  /stats     - Request statistics
"""

import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import config
from .catalogue import load_labeled_set
from .evaluator import aevaluate
from .logging_config import get_logger
from .models import CANONICAL_SCHEMA_VERSION, format_recommendation
from .workflow_graph import get_orchestrator

logger = get_logger(__name__)

# ============================================================================
# Pydantic Models for Request/Response Validation
# ============================================================================

class RecommendationRequest(BaseModel):
    """Request model for recommendation endpoint."""
    query: str = Field(
        ...,
        description="Job description or hiring query",
        min_length=1,
        max_length=5000,
        examples=["I need a Java developer with strong communication skills"],
    )
    top_k: int = Field(
        default=config.DEFAULT_TOP_K,
        description="Number of recommendations to return",
        ge=1,
        le=config.MAX_TOP_K,
    )
    schema_version: int = Field(
        default=CANONICAL_SCHEMA_VERSION,
        description="1 for legacy assessment_name/assessment_url fields, 2 for name/url",
        ge=1,
        le=2,
    )


class RequirementsModel(BaseModel):
    """Structured requirement signal the balancer acted on."""
    needsTechnical: bool
    needsBehavioral: bool
    needsCognitive: bool
    level: str


class RecommendationResponse(BaseModel):
    """Response model for recommendation endpoint."""
    query: str = Field(..., description="The query as received")
    recommended_assessments: List[Dict[str, Any]] = Field(..., description="Ranked assessments")
    requirements: RequirementsModel = Field(..., description="Requirement signal of the query")
    narrative: Optional[str] = Field(default=None, description="Optional LLM summary, display only")


class LabeledItem(BaseModel):
    query: str
    ground_truth_urls: List[str] = Field(default_factory=list)


class EvaluationRequest(BaseModel):
    """Request model for evaluation endpoint."""
    items: Optional[List[LabeledItem]] = Field(
        default=None,
        description="Labeled queries; the configured training set is used when omitted",
    )
    k: int = Field(default=config.EVALUATION_K, ge=1, le=config.MAX_TOP_K)


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    timestamp: str = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")


class StatsResponse(BaseModel):
    """Response model for statistics endpoint."""
    total_requests: int = Field(..., description="Total requests processed")
    total_assessments: int = Field(..., description="Total assessments in the store")
    avg_processing_time_ms: float = Field(..., description="Average processing time")
    uptime_seconds: float = Field(..., description="Service uptime")
    timestamp: str = Field(..., description="Current timestamp")


# ============================================================================
# FastAPI Application Setup
# ============================================================================

app = FastAPI(
    title=config.SERVICE_NAME,
    description="Assessment recommendation system: embedding retrieval with test-type balancing",
    version=config.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

_cors_origins = os.getenv("API_ALLOW_ORIGINS", "*")
if _cors_origins.strip() == "*":
    _allowed_origins = ["*"]
else:
    _allowed_origins = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]

# CORS middleware for cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# Application State & Statistics
# ============================================================================

class AppState:
    """Global application state for statistics tracking."""
    def __init__(self):
        self.start_time = time.time()
        self.total_requests = 0
        self.processing_times = []
        self.orchestrator = None

    def record_request(self, processing_time_ms: float):
        """Record a completed request."""
        self.total_requests += 1
        self.processing_times.append(processing_time_ms)
        # Keep only last 100 processing times
        if len(self.processing_times) > 100:
            self.processing_times = self.processing_times[-100:]

    @property
    def avg_processing_time(self) -> float:
        """Calculate average processing time."""
        if not self.processing_times:
            return 0.0
        return sum(self.processing_times) / len(self.processing_times)

    @property
    def uptime(self) -> float:
        """Calculate service uptime in seconds."""
        return time.time() - self.start_time


# Global app state
app_state = AppState()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# Startup & Shutdown Events
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize system on startup."""
    logger.info("=" * 70)
    logger.info("Starting %s", config.SERVICE_NAME)
    logger.info("=" * 70)

    try:
        if app_state.orchestrator is None:
            logger.info("Loading workflow orchestrator...")
            app_state.orchestrator = get_orchestrator()

        # Load the snapshot (or encode the catalogue) before the first request
        await app_state.orchestrator.ensure_ready()

        store = app_state.orchestrator.store
        logger.info("Loaded %s assessments (encoder=%s)", len(store), store.encoder.backend)
        logger.info("API ready to accept requests")

    except Exception as e:
        logger.error("Failed to initialize system: %s", e, exc_info=True)
        raise

    logger.info("=" * 70)


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down %s", config.SERVICE_NAME)


def _require_orchestrator():
    if app_state.orchestrator is None:
        logger.error("Orchestrator not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not fully initialized. Please try again."
        )
    return app_state.orchestrator


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/", tags=["Info"])
async def root():
    """
    Root endpoint with API information.

    Returns:
        Basic API information and available endpoints
    """
    return {
        "name": config.SERVICE_NAME,
        "version": config.API_VERSION,
        "description": "Assessment recommendation system with test-type balancing",
        "endpoints": {
            "health": "/health",
            "recommend": "/recommend (POST)",
            "evaluate": "/evaluate (POST)",
            "stats": "/stats",
            "docs": "/docs"
        },
        "status": "operational",
        "uptime_seconds": app_state.uptime
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Health check endpoint",
    description="Check if the API service is healthy and operational"
)
async def health_check():
    """
    Health check endpoint.

    Returns:
        HealthResponse with status "healthy" if service is operational
    """
    return HealthResponse(
        status="healthy",
        service=config.SERVICE_NAME,
        timestamp=_now(),
        version=config.API_VERSION,
        uptime_seconds=app_state.uptime
    )


@app.post(
    "/recommend",
    response_model=RecommendationResponse,
    tags=["Recommendations"],
    summary="Get assessment recommendations",
    description="Provide a job description or query to get balanced assessment recommendations"
)
async def recommend(request: RecommendationRequest):
    """
    Assessment recommendation endpoint.

    Runs the query through the LangGraph workflow:
    1. Requirement signal extraction (plus optional narrative)
    2. Embedding retrieval of 2 × top_k candidates
    3. Test type balancing and truncation to top_k

    Raises:
        HTTPException: 503 before startup completed, 500 if processing fails
    """
    start_time = time.time()

    logger.info("=" * 70)
    logger.info("Received recommendation request")
    logger.info("Query: %s...", request.query[:100])
    logger.info("Requested top_k: %s (schema v%s)", request.top_k, request.schema_version)

    orchestrator = _require_orchestrator()

    try:
        result = await orchestrator.run(query=request.query, top_k=request.top_k)

        assessments = [
            format_recommendation(r, request.schema_version) for r in result["results"]
        ]

        processing_time_ms = (time.time() - start_time) * 1000
        app_state.record_request(processing_time_ms)

        logger.info("Returned %s recommendations", len(assessments))
        logger.info("Processing time: %.2fms", processing_time_ms)
        logger.info("=" * 70)

        return RecommendationResponse(
            query=request.query,
            recommended_assessments=assessments,
            requirements=RequirementsModel(**result["requirements"].to_dict()),
            narrative=result.get("narrative"),
        )

    except Exception as e:
        logger.error("Recommendation failed: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate recommendations: {str(e)}"
        )


@app.post(
    "/evaluate",
    tags=["Evaluation"],
    summary="Evaluate recall@k",
    description="Mean recall@k of the pipeline on inline labeled queries or the configured training set"
)
async def evaluate(request: Optional[EvaluationRequest] = None):
    """
    Evaluation endpoint.

    Returns:
        ``{"mean_recall_at_<k>": float, "detailed_results": [...]}``

    Raises:
        HTTPException: 404 when no labeled data is available, 500 on failure
    """
    request = request or EvaluationRequest()
    orchestrator = _require_orchestrator()

    if request.items is not None:
        labeled = [item.model_dump() for item in request.items]
    elif config.TRAIN_DATA_PATH.exists():
        try:
            labeled = load_labeled_set(config.TRAIN_DATA_PATH)
        except (OSError, ValueError, KeyError) as e:
            logger.error("Could not read training data: %s", e, exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to read training data: {str(e)}"
            )
    else:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No labeled data provided and {config.TRAIN_DATA_PATH.name} not found"
        )

    logger.info("Evaluating %s labeled queries at k=%s", len(labeled), request.k)

    async def recommender_fn(query: str) -> List[str]:
        return await orchestrator.recommend_urls(query, request.k)

    try:
        report = await aevaluate(recommender_fn, labeled, k=request.k)
    except Exception as e:
        logger.error("Evaluation failed: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Evaluation failed: {str(e)}"
        )
    return report.to_dict()


@app.get(
    "/stats",
    response_model=StatsResponse,
    tags=["Statistics"],
    summary="Get system statistics",
    description="Get statistics about API usage and performance"
)
async def get_stats():
    """System statistics endpoint."""
    total_assessments = 0
    if app_state.orchestrator is not None:
        total_assessments = len(app_state.orchestrator.store)

    return StatsResponse(
        total_requests=app_state.total_requests,
        total_assessments=total_assessments,
        avg_processing_time_ms=app_state.avg_processing_time,
        uptime_seconds=app_state.uptime,
        timestamp=_now()
    )


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred"},
    )


if __name__ == "__main__":
    # This won't be called when using uvicorn, but useful for debugging
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
