"""Academic doubt solver: step-by-step explanation of a student's question."""

import asyncio
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from server.services.generation import prompts
from server.services.generation.fallback import StaticFallback
from server.services.generation.flow import GeneratedContent, GenerationFlow, provider_flow
from server.services.generation.provider import ContentProvider
from server.services.generation.retry import Sleep


class DoubtRequest(BaseModel):
    user_query: str = Field(..., min_length=5, max_length=500)
    user_name: Optional[str] = None
    exam_type: Optional[str] = None
    subject_context: Optional[str] = None
    preparation_level: Optional[str] = None


class DoubtResponse(GeneratedContent):
    explanation: str = Field(..., min_length=1)
    related_topics: Optional[List[str]] = None
    confidence_score: Optional[float] = Field(default=None, ge=0, le=1)


def _personalize(literal: Dict[str, Any], request: DoubtRequest) -> Dict[str, Any]:
    if request.subject_context:
        literal["related_topics"] = [request.subject_context]
    return literal


FALLBACK = StaticFallback(DoubtResponse, {
    "explanation": (
        "I'm sorry, I couldn't process that request at the moment. "
        "Please try rephrasing or ask another question."
    ),
    "related_topics": [],
    "confidence_score": 0.1,
}, personalize=_personalize)


def build_flow(
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> GenerationFlow[DoubtRequest, DoubtResponse]:
    return provider_flow(
        "solve_academic_doubt",
        DoubtRequest,
        DoubtResponse,
        prompts.solve_academic_doubt,
        FALLBACK,
        provider,
        settings,
        sleep=sleep,
    )


async def solve_academic_doubt(
    request,
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> DoubtResponse:
    return await build_flow(provider, settings, sleep=sleep).run(request)
