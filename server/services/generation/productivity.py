"""Productivity analyzer: insights and recommendations from a week of study data."""

import asyncio
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field

from server.services.generation import prompts
from server.services.generation.fallback import StaticFallback
from server.services.generation.flow import GeneratedContent, GenerationFlow, provider_flow
from server.services.generation.provider import ContentProvider
from server.services.generation.retry import Sleep

Hours = Annotated[float, Field(ge=0)]


class ProductivityRequest(BaseModel):
    study_hours: float = Field(..., ge=0, le=168)
    topics_completed: int = Field(..., ge=0)
    subject_wise_time_distribution: Dict[str, Hours] = Field(default_factory=dict)
    streak_length: int = Field(..., ge=0)
    weekly_goals_completed: int = Field(..., ge=0)


class ProductivityResponse(GeneratedContent):
    insights: List[str] = Field(..., min_length=1, max_length=6)
    overall_assessment: str = Field(..., min_length=1)
    recommendations: List[str] = Field(..., min_length=1, max_length=6)


def _data_insights(request: ProductivityRequest) -> List[str]:
    out = []
    hours = sorted(request.subject_wise_time_distribution.items())
    if hours:
        top = max(hours, key=lambda kv: kv[1])
        out.append(f"Most of your time this week went to {top[0]} ({top[1]:g}h).")
        if len(hours) > 1:
            low = min(hours, key=lambda kv: kv[1])
            out.append(f"{low[0]} received the least time ({low[1]:g}h). Check that this matches its weight in your exam.")
    if request.streak_length == 0:
        out.append("Your daily study streak is broken. A short session today restarts it.")
    return out


def _personalize(literal: Dict[str, Any], request: ProductivityRequest) -> Dict[str, Any]:
    insights = _data_insights(request)
    if insights:
        literal["insights"] = (insights + literal["insights"])[:6]
    literal["overall_assessment"] = (
        f"You logged {request.study_hours:g} study hours, completed {request.topics_completed} topic(s) "
        f"and met {request.weekly_goals_completed} weekly goal(s). A detailed analysis is unavailable right now."
    )
    return literal


FALLBACK = StaticFallback(ProductivityResponse, {
    "insights": [
        "Compare the time spent on each subject with how many topics you finished in it.",
        "Consistent daily sessions usually beat a few long ones.",
    ],
    "overall_assessment": "A detailed analysis of your week is unavailable right now. Please try again later.",
    "recommendations": [
        "Plan tomorrow's sessions around your weakest subject first.",
        "Use 25-minute Pomodoro blocks with short breaks to protect focus.",
        "Set one small, measurable goal for each study day.",
    ],
}, personalize=_personalize)


def build_flow(
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> GenerationFlow[ProductivityRequest, ProductivityResponse]:
    return provider_flow(
        "analyze_productivity",
        ProductivityRequest,
        ProductivityResponse,
        prompts.analyze_productivity,
        FALLBACK,
        provider,
        settings,
        sleep=sleep,
    )


async def analyze_productivity(
    request,
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> ProductivityResponse:
    return await build_flow(provider, settings, sleep=sleep).run(request)
