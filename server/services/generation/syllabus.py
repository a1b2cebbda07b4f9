"""Syllabus suggester: week-by-week topic plan per subject."""

import asyncio
from datetime import date
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from server.services.generation import prompts
from server.services.generation.fallback import StaticFallback
from server.services.generation.flow import GeneratedContent, GenerationFlow, provider_flow
from server.services.generation.provider import ContentProvider
from server.services.generation.retry import Sleep
from server.services.generation.validate import Violation

SubjectName = Annotated[str, Field(min_length=1)]
WeekTopics = Annotated[List[str], Field(min_length=1)]


class SyllabusRequest(BaseModel):
    exam_type: str = Field(..., min_length=1)
    subjects: List[SubjectName] = Field(..., min_length=1)
    time_available_per_day: float = Field(..., gt=0, le=24)
    target_date: date

    @field_validator("target_date", mode="before")
    @classmethod
    def _iso_date(cls, v: Any) -> Any:
        # JSON carries dates as strings; strict validation only takes date objects
        if isinstance(v, str):
            try:
                return date.fromisoformat(v)
            except ValueError:
                raise ValueError("must be an ISO date (YYYY-MM-DD)") from None
        return v


class SubjectSyllabus(BaseModel):
    subject: str = Field(..., min_length=1)
    schedule: Dict[str, WeekTopics] = Field(..., min_length=1)
    summary: Optional[str] = None


class SyllabusResponse(GeneratedContent):
    generated_syllabus: List[SubjectSyllabus] = Field(..., min_length=1)
    overall_feedback: Optional[str] = None


def _covers_subjects(request: SyllabusRequest, response: SyllabusResponse) -> List[Violation]:
    planned = {s.subject.strip().lower() for s in response.generated_syllabus}
    missing = [s for s in request.subjects if s.strip().lower() not in planned]
    if missing:
        return [Violation("generated_syllabus", "one plan per requested subject", missing)]
    return []


GENERIC_SUBJECT = "Core subject"

_GENERIC_SCHEDULE = {
    "Week 1": ["Review the official syllabus and list all units", "Foundational concepts of the first unit"],
    "Week 2": ["Continue core units in syllabus order", "Short self-test on Week 1 topics"],
    "Week 3": ["High-weightage units from past papers", "Revise notes from Weeks 1-2"],
    "Week 4": ["Timed practice set on covered units", "Analyse mistakes and revise weak areas"],
}


def _subject_plan(subject: str) -> Dict[str, Any]:
    return {
        "subject": subject,
        "schedule": {week: list(topics) for week, topics in _GENERIC_SCHEDULE.items()},
        "summary": "General four-week starter plan. Adjust the pace to your available hours.",
    }


def _personalize(literal: Dict[str, Any], request: SyllabusRequest) -> Dict[str, Any]:
    literal["generated_syllabus"] = [_subject_plan(s) for s in request.subjects]
    return literal


FALLBACK = StaticFallback(SyllabusResponse, {
    "generated_syllabus": [_subject_plan(GENERIC_SUBJECT)],
    "overall_feedback": (
        "The planner could not build a tailored syllabus right now, so this is a general starter plan. "
        "Please try again later for a schedule matched to your exam and target date."
    ),
}, personalize=_personalize)


def build_flow(
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
    today: Optional[date] = None,
) -> GenerationFlow[SyllabusRequest, SyllabusResponse]:
    return provider_flow(
        "suggest_syllabus",
        SyllabusRequest,
        SyllabusResponse,
        lambda req: prompts.suggest_syllabus(req, today=today),
        FALLBACK,
        provider,
        settings,
        sleep=sleep,
        output_rule=_covers_subjects,
    )


async def suggest_syllabus(
    request,
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> SyllabusResponse:
    return await build_flow(provider, settings, sleep=sleep).run(request)
