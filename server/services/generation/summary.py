"""Study material summarizer: summary, key concepts and MCQs."""

import asyncio
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from server.services.generation import prompts
from server.services.generation.fallback import StaticFallback
from server.services.generation.flow import GeneratedContent, GenerationFlow, provider_flow
from server.services.generation.provider import ContentProvider
from server.services.generation.retry import Sleep


class SummaryRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    material: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    exam_type: Optional[str] = None
    user_level: Optional[str] = None
    user_name: Optional[str] = None


class MCQ(BaseModel):
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=3, max_length=5)
    correct_answer_index: int = Field(..., ge=0)
    explanation: Optional[str] = None

    @field_validator("correct_answer_index")
    @classmethod
    def _index_within_options(cls, v: int, info: ValidationInfo) -> int:
        options = info.data.get("options")
        if options is not None and v >= len(options):
            raise ValueError(f"must index into options (< {len(options)})")
        return v


class SummaryResponse(GeneratedContent):
    summary: str = Field(..., min_length=1)
    key_concepts: List[str] = Field(..., min_length=3, max_length=7)
    multiple_choice_questions: List[MCQ] = Field(..., min_length=3, max_length=5)


GENERIC_TOPIC = "this material"


def _personalize(literal: Dict[str, Any], request: SummaryRequest) -> Dict[str, Any]:
    literal["summary"] = literal["summary"].replace(GENERIC_TOPIC, f'"{request.topic}"')
    return literal


FALLBACK = StaticFallback(SummaryResponse, {
    "summary": (
        f"An automatic summary of {GENERIC_TOPIC} could not be produced right now. "
        "Read through the material once for an overview, then note the main definitions, "
        "formulas and cause-effect relationships. Turn each heading into a question and try to "
        "answer it from memory. Please try again later for a tailored summary."
    ),
    "key_concepts": [
        "Identify the main definitions and terms.",
        "Note any formulas, rules or processes described.",
        "Look for cause-and-effect relationships and examples.",
    ],
    "multiple_choice_questions": [
        {
            "question": "What is an effective first step when studying new material?",
            "options": ["Skim for an overview", "Memorize every word", "Skip the headings"],
            "correct_answer_index": 0,
            "explanation": "An overview gives structure before diving into details.",
        },
        {
            "question": "Which activity best checks your understanding of a passage?",
            "options": ["Re-reading it", "Summarizing it in your own words", "Highlighting all of it"],
            "correct_answer_index": 1,
            "explanation": "Summarizing from memory reveals what you actually understood.",
        },
        {
            "question": "How should key concepts be revised for long-term retention?",
            "options": ["Once, the night before", "At spaced intervals", "Never"],
            "correct_answer_index": 1,
            "explanation": "Spaced review counters forgetting.",
        },
    ],
}, personalize=_personalize)


def build_flow(
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> GenerationFlow[SummaryRequest, SummaryResponse]:
    return provider_flow(
        "summarize_material",
        SummaryRequest,
        SummaryResponse,
        prompts.summarize_material,
        FALLBACK,
        provider,
        settings,
        sleep=sleep,
    )


async def summarize_material(
    request,
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> SummaryResponse:
    return await build_flow(provider, settings, sleep=sleep).run(request)
