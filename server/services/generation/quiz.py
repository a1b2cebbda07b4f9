"""Smart quiz: multiple-choice questions for a topic, difficulty and exam."""

import asyncio
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from server.services.generation import prompts
from server.services.generation.fallback import StaticFallback
from server.services.generation.flow import GeneratedContent, GenerationFlow, provider_flow
from server.services.generation.provider import ContentProvider
from server.services.generation.retry import Sleep
from server.services.generation.validate import Violation

Difficulty = Literal["basic", "intermediate", "advanced"]
ExamType = Literal["neet", "jee", "upsc_prelims", "ssc_bank", "cat", "general"]

MIN_QUESTIONS = 3
MAX_QUESTIONS = 10


class QuizRequest(BaseModel):
    topic: str = Field(..., min_length=3, max_length=150)
    difficulty: Difficulty
    exam_type: ExamType
    num_questions: int = Field(..., ge=MIN_QUESTIONS, le=MAX_QUESTIONS)


class QuizQuestion(BaseModel):
    question_text: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=5)
    correct_answer_index: int = Field(..., ge=0)
    explanation: str = Field(..., min_length=1)

    @field_validator("correct_answer_index")
    @classmethod
    def _index_within_options(cls, v: int, info: ValidationInfo) -> int:
        options = info.data.get("options")
        if options is not None and v >= len(options):
            raise ValueError(f"must index into options (< {len(options)})")
        return v


class QuizResponse(GeneratedContent):
    quiz_title: str = Field(..., min_length=1)
    questions: List[QuizQuestion] = Field(..., min_length=1, max_length=MAX_QUESTIONS)


def _question_count(request: QuizRequest, response: QuizResponse) -> List[Violation]:
    if len(response.questions) != request.num_questions:
        return [Violation("questions", f"exactly {request.num_questions} items", len(response.questions))]
    return []


_GENERIC_QUESTIONS = [
    ("Which technique involves retrieving information from memory without looking at notes?",
     ["Passive re-reading", "Active recall", "Highlighting", "Copying notes"], 1,
     "Active recall strengthens memory by forcing retrieval, unlike passive review."),
    ("What is the main idea behind spaced repetition?",
     ["Studying one topic all day", "Reviewing material at increasing intervals",
      "Reading faster", "Skipping revision"], 1,
     "Reviewing at growing intervals counters the forgetting curve."),
    ("In the Pomodoro Technique, a standard focus block lasts about:",
     ["5 minutes", "25 minutes", "90 minutes", "3 hours"], 1,
     "A classic Pomodoro is 25 minutes of focus followed by a short break."),
    ("Which habit best helps identify weak topics before an exam?",
     ["Taking timed mock tests", "Studying only favourite chapters",
      "Avoiding past papers", "Changing books often"], 0,
     "Mock tests expose gaps under exam-like conditions."),
    ("What is the most useful thing to do after getting a practice question wrong?",
     ["Ignore it", "Memorize the answer letter", "Understand why the answer is correct",
      "Skip similar questions"], 2,
     "Understanding the reasoning prevents repeating the same mistake."),
    ("Interleaving practice means:",
     ["Mixing different topics or problem types in one session", "Studying in bed",
      "Reading the same page repeatedly", "Only solving easy problems"], 0,
     "Mixing problem types improves the ability to choose the right method."),
    ("Which is a good way to check understanding of a concept?",
     ["Explain it in your own words", "Read the heading only", "Underline every line",
      "Look at the diagram once"], 0,
     "Teaching or explaining a concept reveals gaps in understanding."),
    ("Before the final weeks of preparation, revision should focus on:",
     ["Brand new advanced topics", "Consolidating core topics and formulas",
      "Random chapters", "Nothing; rest only"], 1,
     "Consolidating fundamentals yields the most marks late in preparation."),
    ("What usually improves focus during a study session?",
     ["Keeping the phone within reach", "Working in a quiet, dedicated space",
      "Studying while watching videos", "Multitasking across subjects"], 1,
     "A dedicated distraction-free space supports sustained attention."),
    ("Why is adequate sleep important during exam preparation?",
     ["It wastes study time", "It consolidates memory and learning",
      "It has no effect", "It only matters on exam day"], 1,
     "Sleep plays a key role in consolidating what was learned."),
]


def _fallback_literal(questions: List[tuple], title: str) -> Dict[str, Any]:
    return {
        "quiz_title": title,
        "questions": [
            {"question_text": q, "options": list(opts), "correct_answer_index": idx, "explanation": expl}
            for q, opts, idx, expl in questions
        ],
    }


def _personalize(literal: Dict[str, Any], request: QuizRequest) -> Dict[str, Any]:
    literal["quiz_title"] = f"General Study Skills Quiz: {request.topic}"
    literal["questions"] = literal["questions"][:request.num_questions]
    return literal


FALLBACK = StaticFallback(
    QuizResponse,
    _fallback_literal(_GENERIC_QUESTIONS, "General Study Skills Quiz"),
    personalize=_personalize,
)


def build_flow(
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> GenerationFlow[QuizRequest, QuizResponse]:
    return provider_flow(
        "generate_quiz",
        QuizRequest,
        QuizResponse,
        prompts.generate_quiz,
        FALLBACK,
        provider,
        settings,
        sleep=sleep,
        output_rule=_question_count,
    )


async def generate_quiz(
    request,
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> QuizResponse:
    return await build_flow(provider, settings, sleep=sleep).run(request)
