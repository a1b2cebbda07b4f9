"""FastAPI application -- AI study tool routes for the Prepwise platform."""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware

from server.config import Settings
from server.dependencies import get_provider, get_settings
from server.schemas import HealthResponse, InvalidRequestDetail, ProviderStatusResponse, ViolationSchema
from server.services.generation import doubt, productivity, quiz, recommendations, summary, syllabus
from server.services.generation.doubt import DoubtResponse
from server.services.generation.flow import GenerationFlow, InvalidRequestError
from server.services.generation.provider import ContentProvider
from server.services.generation.productivity import ProductivityResponse
from server.services.generation.quiz import QuizResponse
from server.services.generation.recommendations import RecommendationsResponse
from server.services.generation.summary import SummaryResponse
from server.services.generation.syllabus import SyllabusResponse

logger = logging.getLogger("prepwise")


@asynccontextmanager
async def lifespan(app: FastAPI):
    ts = datetime.utcnow().isoformat() + "Z"
    logger.info("[%s] Startup: generation %s", ts, "enabled" if get_settings().generation_enabled else "disabled")
    yield
    logger.info("[%s] Shutdown: complete", datetime.utcnow().isoformat() + "Z")


app = FastAPI(title="Prepwise", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _run_flow(flow: GenerationFlow, body: Any):
    """Run a feature flow. Malformed requests become 422; upstream trouble never does."""
    try:
        result = await flow.run_detailed(body)
    except InvalidRequestError as e:
        detail = InvalidRequestDetail(
            message=str(e),
            violations=[ViolationSchema(**v.to_dict()) for v in e.violations],
        )
        raise HTTPException(status_code=422, detail=jsonable_encoder(detail))
    if result.fallback:
        logger.info("%s resolved with fallback after %d attempt(s)", flow.name, len(result.attempts))
    return result.response


@app.get("/health", response_model=HealthResponse)
def health():
    """Minimal health check. No provider call. Always returns immediately."""
    return {"ok": True}


@app.get("/ai/status", response_model=ProviderStatusResponse)
async def ai_status(
    settings: Settings = Depends(get_settings),
    provider: Optional[ContentProvider] = Depends(get_provider),
):
    if provider is None:
        return {"enabled": False, "ok": False, "message": "Content generation is disabled"}
    ok, message = await provider.test_connection()
    return {"enabled": settings.generation_enabled, "ok": ok, "provider": provider.name, "message": message}


@app.post("/ai/recommendations", response_model=RecommendationsResponse)
async def ai_recommendations(
    body: Any = Body(...),
    settings: Settings = Depends(get_settings),
    provider: Optional[ContentProvider] = Depends(get_provider),
):
    return await _run_flow(recommendations.build_flow(provider, settings), body)


@app.post("/ai/quiz", response_model=QuizResponse)
async def ai_quiz(
    body: Any = Body(...),
    settings: Settings = Depends(get_settings),
    provider: Optional[ContentProvider] = Depends(get_provider),
):
    return await _run_flow(quiz.build_flow(provider, settings), body)


@app.post("/ai/summary", response_model=SummaryResponse)
async def ai_summary(
    body: Any = Body(...),
    settings: Settings = Depends(get_settings),
    provider: Optional[ContentProvider] = Depends(get_provider),
):
    return await _run_flow(summary.build_flow(provider, settings), body)


@app.post("/ai/syllabus", response_model=SyllabusResponse)
async def ai_syllabus(
    body: Any = Body(...),
    settings: Settings = Depends(get_settings),
    provider: Optional[ContentProvider] = Depends(get_provider),
):
    return await _run_flow(syllabus.build_flow(provider, settings), body)


@app.post("/ai/doubt", response_model=DoubtResponse)
async def ai_doubt(
    body: Any = Body(...),
    settings: Settings = Depends(get_settings),
    provider: Optional[ContentProvider] = Depends(get_provider),
):
    return await _run_flow(doubt.build_flow(provider, settings), body)


@app.post("/ai/productivity", response_model=ProductivityResponse)
async def ai_productivity(
    body: Any = Body(...),
    settings: Settings = Depends(get_settings),
    provider: Optional[ContentProvider] = Depends(get_provider),
):
    return await _run_flow(productivity.build_flow(provider, settings), body)
