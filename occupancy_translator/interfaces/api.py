"""
interfaces/api.py
──────────────────────────────────────────────────────────────────────────────
FastAPI HTTP surface for the occupancy translator.

Endpoints (JSON in / JSON out, camelCase keys):
  POST /api/analyze                   classify a business description
  POST /api/feedback                  record an agent verdict on a suggestion
  GET  /api/occupancy-codes           the master list
  GET  /api/recent-corrections        latest negative feedback (sidebar)
  GET  /api/stats                     header counters
  GET  /api/analytics                 dashboard aggregates
  POST /api/reload-occupancy-master   force a master-list reseed
  GET  /api/analyses/{analysis_id}    one stored analysis

Error mapping:
  request validation     → 400 {"error": "Invalid request", "details": [...]}
  UpstreamModelError     → 500 {"error": "Failed to analyze business description"}
  unknown analysis id    → 404
  anything else          → 500 with a per-route message; traces stay in the log

Run locally:
  occupancy-api                      # uses API_HOST / API_PORT
  uvicorn occupancy_translator.interfaces.api:create_app --factory
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from occupancy_translator import __version__
from occupancy_translator.domain.exceptions import (
    AnalysisNotFoundError,
    UpstreamModelError,
)
from occupancy_translator.domain.models import (
    Analysis,
    AnalysisRequest,
    Analytics,
    AnalyzeResponse,
    Feedback,
    FeedbackRequest,
    FeedbackResponse,
    OccupancyCode,
    ReloadSummary,
    Stats,
)
from occupancy_translator.services.container import ServiceContainer, get_container

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def get_services(request: Request) -> ServiceContainer:
    """Route dependency: the container attached to the running app."""
    return request.app.state.container


# ── Classification ─────────────────────────────────────────────────────────

@router.post("/analyze", response_model=AnalyzeResponse, tags=["Classification"])
def analyze(body: AnalysisRequest, services: ServiceContainer = Depends(get_services)):
    """Suggest occupancy codes for a business description and store the analysis."""
    try:
        analysis = services.classifier.classify(body.business_description)
    except UpstreamModelError as exc:
        logger.error("Analysis failed: %s", exc)
        return _error(500, "Failed to analyze business description")
    except Exception:
        logger.exception("Unexpected error during analysis")
        return _error(500, "Failed to analyze business description")
    return AnalyzeResponse.from_analysis(analysis)


@router.get("/analyses/{analysis_id}", response_model=Analysis, tags=["Classification"])
def get_analysis(analysis_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        analysis = services.classifier.get_analysis(analysis_id)
    except AnalysisNotFoundError:
        return _error(404, f"Analysis {analysis_id} not found")
    except Exception:
        logger.exception("Failed to fetch analysis %s", analysis_id)
        return _error(500, "Failed to fetch analysis")
    return analysis


# ── Feedback ───────────────────────────────────────────────────────────────

@router.post("/feedback", response_model=FeedbackResponse, tags=["Feedback"])
def submit_feedback(body: FeedbackRequest, services: ServiceContainer = Depends(get_services)):
    """Append one feedback row; the message is the acknowledgment text."""
    try:
        receipt = services.recorder.record_feedback(body)
    except Exception:
        logger.exception("Failed to record feedback")
        return _error(500, "Failed to record feedback")
    return FeedbackResponse(
        success=True,
        message=receipt.acknowledgment,
        feedback_id=receipt.feedback_id,
    )


@router.get("/recent-corrections", response_model=list[Feedback], tags=["Feedback"])
def recent_corrections(services: ServiceContainer = Depends(get_services)):
    try:
        return services.corrections.recent_corrections(
            services.settings.sidebar_corrections
        )
    except Exception:
        logger.exception("Failed to fetch recent corrections")
        return _error(500, "Failed to fetch recent corrections")


# ── Master list ────────────────────────────────────────────────────────────

@router.get("/occupancy-codes", response_model=list[OccupancyCode], tags=["Master list"])
def occupancy_codes(services: ServiceContainer = Depends(get_services)):
    try:
        return services.registry.list_records()
    except Exception:
        logger.exception("Failed to fetch occupancy codes")
        return _error(500, "Failed to fetch occupancy codes")


@router.post("/reload-occupancy-master", response_model=ReloadSummary, tags=["Master list"])
def reload_occupancy_master(services: ServiceContainer = Depends(get_services)):
    """Reseed the master list; existing codes are skipped, never duplicated."""
    try:
        return services.registry.reload()
    except Exception:
        logger.exception("Failed to reload occupancy master")
        return _error(500, "Failed to reload occupancy master")


# ── Dashboards ─────────────────────────────────────────────────────────────

@router.get("/stats", response_model=Stats, tags=["Dashboards"])
def stats(services: ServiceContainer = Depends(get_services)):
    try:
        return services.analytics.stats()
    except Exception:
        logger.exception("Failed to compute stats")
        return _error(500, "Failed to fetch stats")


@router.get("/analytics", response_model=Analytics, tags=["Dashboards"])
def analytics(services: ServiceContainer = Depends(get_services)):
    try:
        return services.analytics.analytics()
    except Exception:
        logger.exception("Failed to compute analytics")
        return _error(500, "Failed to fetch analytics")


# ── Application factory ────────────────────────────────────────────────────

async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    logger.info("Rejected %s %s: %s", request.method, request.url.path, details)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": details},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        container: Pre-wired services (tests).  When omitted the process-wide
                   container is built on start-up.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "container", None) is None:
            app.state.container = get_container()
        logger.info("Occupancy translator API started (v%s)", __version__)
        yield
        logger.info("Occupancy translator API stopped")

    app = FastAPI(
        title="Occupancy Translator API",
        description="Suggests insurance occupancy codes for free-text business descriptions.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(router)
    return app


def main() -> None:
    """Entry point for the occupancy-api console script."""
    import uvicorn

    from occupancy_translator.config.settings import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )
    uvicorn.run(create_app(), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
