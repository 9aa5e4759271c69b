"""
Personality Inference Engine: API Server
========================================

HTTP surface over the inference pipeline. Snapshots are write-once:
the only write routes append signals or feedback, and PUT/DELETE on a
snapshot answer 409.

Endpoints:
- POST /api/v1/users/{user_id}/signals                -> run the pipeline
- GET  /api/v1/users/{user_id}/snapshots/latest       -> latest snapshot
- GET  /api/v1/users/{user_id}/snapshots?limit=       -> history, newest first
- GET  /api/v1/users/{user_id}/lineage                -> chain health
- GET  /api/v1/users/{user_id}/evolution?limit=       -> evolution timeline
- GET  /api/v1/snapshots/{snapshot_id}                -> one snapshot
- GET  /api/v1/snapshots/{snapshot_id}/lineage        -> snapshot + ancestors
- GET  /api/v1/snapshots/{older}/diff/{newer}         -> SnapshotDiff
- POST /api/v1/users/{user_id}/claims/{claim_id}/feedback
- GET  /api/v1/claims/{claim_id}/adjustment
- GET  /api/v1/users/{user_id}/audit

Usage:
    uvicorn inference.api.server:app
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..contracts.base import (
    AuditEventType, ImmutabilityViolationError, InferenceError, PersistenceError,
)
from ..domain.serialization import diff_to_dict, feedback_to_dict
from ..engine import InferencePipeline, PipelineConfig
from ..narrative import StructuredSummaryCollaborator
from .mapper import (
    FeedbackRequest, ProcessSignalsRequest, map_audit_event_to_dto,
    map_evolution_to_dto, map_lineage_report_to_dto, map_output_to_dto,
    map_snapshot_to_dto, signal_from_request,
)

logger = logging.getLogger(__name__)


# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

def build_default_pipeline() -> InferencePipeline:
    config = PipelineConfig.from_env()
    logger.info(
        "Initializing inference pipeline (storage=%s, dir=%s)",
        config.storage.backend_type, config.storage.storage_dir
    )
    return InferencePipeline(config, collaborators=[StructuredSummaryCollaborator()])


def get_pipeline(request: Request) -> InferencePipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return pipeline


def _error_body(error: InferenceError) -> dict:
    return {
        "code": error.error.code.name,
        "message": error.error.message,
        "context": dict(error.error.context),
    }


def create_app(pipeline: Optional[InferencePipeline] = None) -> FastAPI:
    """
    Build the FastAPI app.

    An injected pipeline is used as-is; otherwise one is built from the
    PIE_* environment on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.pipeline is None:
            app.state.pipeline = build_default_pipeline()
            logger.info("Pipeline initialized")
        yield
        logger.info("Shutting down pipeline")

    app = FastAPI(
        title="Personality Inference Engine API",
        version=__version__,
        description="Signals in, immutable lineage-tracked snapshots out",
        lifespan=lifespan
    )
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(ImmutabilityViolationError)
    async def immutability_handler(request: Request, exc: ImmutabilityViolationError):
        return JSONResponse(status_code=409, content={"detail": _error_body(exc)})

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError):
        logger.error("Persistence failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": _error_body(exc)})

    _register_routes(app)
    return app


# =============================================================================
# ENDPOINTS
# =============================================================================

def _register_routes(app: FastAPI) -> None:

    @app.get("/health")
    async def health_check(request: Request):
        """System status."""
        if getattr(request.app.state, "pipeline", None) is None:
            raise HTTPException(status_code=503, detail="Pipeline not initialized")
        return {"status": "online", "version": __version__}

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @app.post("/api/v1/users/{user_id}/signals", status_code=201)
    def process_signals(
        user_id: str,
        body: ProcessSignalsRequest,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        try:
            signals = [
                signal_from_request(user_id, position, signal)
                for position, signal in enumerate(body.signals)
            ]
            output = pipeline.process_signals(
                user_id,
                signals,
                body.source,
                signal_snapshot_id=body.signal_snapshot_id,
                trigger_event_id=body.trigger_event_id,
            )
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return map_output_to_dto(output)

    @app.get("/api/v1/users/{user_id}/snapshots/latest")
    def get_latest_snapshot(
        user_id: str,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        output = pipeline.get_latest_output(user_id)
        if output is None:
            raise HTTPException(status_code=404, detail=f"No snapshot for user {user_id}")
        return map_output_to_dto(output)

    @app.get("/api/v1/users/{user_id}/snapshots")
    def get_snapshot_history(
        user_id: str,
        limit: int = Query(10, ge=1, le=100),
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        history = pipeline.get_snapshot_history(user_id, limit)
        return {"user_id": user_id, "snapshots": [map_snapshot_to_dto(s) for s in history]}

    @app.get("/api/v1/users/{user_id}/lineage")
    def verify_lineage(
        user_id: str,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        report = pipeline.snapshot_store.verify_lineage(user_id)
        return map_lineage_report_to_dto(report)

    @app.get("/api/v1/users/{user_id}/evolution")
    def get_evolution_timeline(
        user_id: str,
        limit: int = Query(10, ge=1, le=100),
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        timeline = pipeline.get_evolution_timeline(user_id, limit)
        if timeline is None:
            raise HTTPException(status_code=404, detail=f"No snapshot for user {user_id}")
        return map_evolution_to_dto(timeline)

    @app.post("/api/v1/users/{user_id}/claims/{claim_id}/feedback", status_code=201)
    def record_claim_feedback(
        user_id: str,
        claim_id: str,
        body: FeedbackRequest,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        feedback = pipeline.record_claim_feedback(
            user_id, claim_id, body.resonance, body.context_tags
        )
        return feedback_to_dict(feedback)

    @app.get("/api/v1/users/{user_id}/audit")
    def get_user_audit(
        user_id: str,
        event_type: Optional[AuditEventType] = None,
        limit: int = Query(50, ge=1, le=500),
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        events = pipeline.audit_log.get_user_events(user_id)
        if event_type is not None:
            events = tuple(e for e in events if e.event_type == event_type)
        return {"user_id": user_id, "events": [map_audit_event_to_dto(e) for e in events[:limit]]}

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    @app.get("/api/v1/snapshots/{snapshot_id}")
    def get_snapshot(
        snapshot_id: str,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        snapshot = pipeline.snapshot_store.get_snapshot(snapshot_id)
        if snapshot is None:
            raise HTTPException(status_code=404, detail=f"Snapshot {snapshot_id} not found")
        return map_snapshot_to_dto(snapshot)

    @app.get("/api/v1/snapshots/{snapshot_id}/lineage")
    def get_snapshot_lineage(
        snapshot_id: str,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        lineage = pipeline.snapshot_store.get_lineage(snapshot_id)
        if not lineage:
            raise HTTPException(status_code=404, detail=f"Snapshot {snapshot_id} not found")
        return {
            "snapshot_id": snapshot_id,
            "lineage": [map_snapshot_to_dto(s) for s in lineage],
        }

    @app.get("/api/v1/snapshots/{older_id}/diff/{newer_id}")
    def compare_snapshots(
        older_id: str,
        newer_id: str,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        diff = pipeline.compare_snapshots(older_id, newer_id)
        if diff is None:
            raise HTTPException(status_code=404, detail="One or both snapshots not found")
        return diff_to_dict(diff)

    @app.put("/api/v1/snapshots/{snapshot_id}")
    def update_snapshot(
        snapshot_id: str,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        pipeline.snapshot_store.update_snapshot(snapshot_id)

    @app.delete("/api/v1/snapshots/{snapshot_id}")
    def delete_snapshot(
        snapshot_id: str,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        pipeline.snapshot_store.delete_snapshot(snapshot_id)

    # -------------------------------------------------------------------------
    # Claims
    # -------------------------------------------------------------------------

    @app.get("/api/v1/claims/{claim_id}/adjustment")
    def get_claim_adjustment(
        claim_id: str,
        pipeline: InferencePipeline = Depends(get_pipeline)
    ):
        store = pipeline.snapshot_store
        return {
            "claim_id": claim_id,
            "adjustment": store.get_claim_confidence_adjustment(claim_id),
            "feedback_count": len(store.get_claim_feedback(claim_id)),
        }


app = create_app()
