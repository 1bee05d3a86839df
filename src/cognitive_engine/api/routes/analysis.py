"""Bio-cognitive analysis routes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from cognitive_engine.api.schemas import AnalysisRequest
from cognitive_engine.cognitive.trend import is_optimal_learning_state
from cognitive_engine.errors import CognitiveEngineError, InvalidSample

router = APIRouter(tags=["analysis"])


@router.post("/bio-cognitive-analysis")
async def bio_cognitive_analysis(req: AnalysisRequest):
    """Classify one biometric bundle and return state, recommendations and trend."""
    from cognitive_engine.api.server import _analyser

    if _analyser is None:
        raise HTTPException(503, "Analyser not ready.")
    try:
        report = await _analyser.run(req.user_id, req.biometric_data)
    except InvalidSample as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except CognitiveEngineError as exc:
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return report.to_wire()


@router.get("/bio-cognitive-analysis/{user_id}/history")
async def classification_history(user_id: str, limit: int = Query(50, ge=1, le=500)):
    """Most recent classifications for a user, newest first."""
    from cognitive_engine.api.server import _analyser

    if _analyser is None:
        raise HTTPException(503, "Analyser not ready.")
    return [r.model_dump(mode="json") for r in _analyser.history.recent(user_id, limit=limit)]


@router.get("/bio-cognitive-analysis/{user_id}/trend")
async def load_trend(user_id: str):
    from cognitive_engine.api.server import _analyser

    if _analyser is None:
        raise HTTPException(503, "Analyser not ready.")
    tracker = _analyser.history.get_tracker(user_id)
    metrics = tracker.metrics() if tracker is not None else None
    latest = tracker.latest if tracker is not None else None
    return {
        "user_id": user_id,
        "load_trend": metrics.model_dump(mode="json") if metrics else None,
        "optimal_learning_state": is_optimal_learning_state(latest) if latest else False,
    }
