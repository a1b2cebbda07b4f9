"""Personalized study recommendations from a student's onboarding profile."""

import asyncio
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from server.services.generation import prompts
from server.services.generation.fallback import StaticFallback
from server.services.generation.flow import GeneratedContent, GenerationFlow, provider_flow
from server.services.generation.provider import ContentProvider
from server.services.generation.retry import Sleep

PreparationLevel = Literal["beginner", "intermediate", "advanced"]


class SubjectDetail(BaseModel):
    subject_name: str = Field(..., min_length=1)
    preparation_level: PreparationLevel
    target_score: Optional[str] = None
    preferred_learning_methods: List[str] = Field(..., min_length=1)


class RecommendationsRequest(BaseModel):
    name: Optional[str] = None
    target_exams: Optional[List[str]] = None
    other_exam_name: Optional[str] = None
    exam_attempt_year: Optional[str] = None
    language_medium: Optional[str] = None
    daily_study_hours: Optional[str] = None
    study_mode: Optional[str] = None
    exam_phase: Optional[str] = None
    previous_attempts: Optional[str] = None
    preferred_study_time: Optional[List[str]] = None
    weak_subjects: Optional[List[str]] = None
    strong_subjects: Optional[List[str]] = None
    subject_details: Optional[List[SubjectDetail]] = None
    preferred_learning_styles: Optional[List[str]] = None
    motivation_type: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=120)
    location: Optional[str] = None
    distraction_struggles: Optional[str] = None


class Goal(BaseModel):
    goal: str = Field(..., min_length=1)
    timeline: Optional[str] = None


class PersonalizedTips(BaseModel):
    time_management: List[str] = Field(..., min_length=1, max_length=3)
    subject_specific_study: List[str] = Field(..., min_length=1, max_length=3)
    motivational_nudges: List[str] = Field(..., min_length=1, max_length=3)
    focus_and_distraction: List[str] = Field(..., min_length=1, max_length=3)


class RecommendationsResponse(GeneratedContent):
    suggested_weekly_timetable_focus: List[str] = Field(..., min_length=3, max_length=7)
    suggested_monthly_goals: List[str] = Field(..., min_length=2, max_length=5)
    study_cycle_recommendation: str = Field(..., min_length=1)
    short_term_goals: List[Goal] = Field(..., min_length=2, max_length=4)
    long_term_goals: List[Goal] = Field(..., min_length=1, max_length=3)
    milestone_suggestions: List[str] = Field(..., min_length=2, max_length=4)
    personalized_tips: PersonalizedTips
    overall_strategy_statement: str = Field(..., min_length=1)


FALLBACK = StaticFallback(RecommendationsResponse, {
    "suggested_weekly_timetable_focus": [
        "Focus on your core subjects this week.",
        "Ensure regular revision of topics already covered.",
        "Practice effective time management with dedicated study blocks.",
    ],
    "suggested_monthly_goals": [
        "Aim to cover a significant portion of your syllabus for at least one subject.",
        "Schedule and attempt at least one mock test or comprehensive quiz.",
    ],
    "study_cycle_recommendation": (
        "Consider the Pomodoro Technique (e.g., 25 minutes study, 5 minutes break). "
        "Adjust based on your focus levels."
    ),
    "short_term_goals": [
        {"goal": "Complete one key module or unit of a core subject.", "timeline": "This week"},
        {"goal": "Review all notes from the past 3 days of study.", "timeline": "Daily"},
    ],
    "long_term_goals": [
        {"goal": "Achieve mastery in fundamental concepts of all major subjects.", "timeline": "Next 1-2 months"},
    ],
    "milestone_suggestions": [
        "End of Week: Conduct a self-assessment quiz on topics studied during the week.",
        "End of Month: Review all completed chapters and identify areas needing more attention.",
    ],
    "personalized_tips": {
        "time_management": [
            "Prioritize your tasks daily using a to-do list or planner.",
            "Minimize distractions during your dedicated study sessions.",
        ],
        "subject_specific_study": [
            "For complex topics, try breaking them down into smaller, manageable parts.",
            "Use active recall techniques like flashcards or teaching the concept to someone else.",
        ],
        "motivational_nudges": [
            "Keep your long-term exam goals in mind to stay focused.",
            "Acknowledge and celebrate small victories and progress made.",
        ],
        "focus_and_distraction": [
            "Identify your common distractions and create a plan to minimize them.",
            "Experiment with different study environments to find what helps you focus best.",
        ],
    },
    "overall_strategy_statement": (
        "The study coach is currently experiencing high demand and has provided a general plan. "
        "Please try again later for fully personalized recommendations. In the meantime, focus on "
        "consistent study habits, regular revision of material, and effective time management."
    ),
})


def build_flow(
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> GenerationFlow[RecommendationsRequest, RecommendationsResponse]:
    return provider_flow(
        "personalized_recommendations",
        RecommendationsRequest,
        RecommendationsResponse,
        prompts.personalized_recommendations,
        FALLBACK,
        provider,
        settings,
        sleep=sleep,
    )


async def generate_personalized_recommendations(
    request,
    provider: Optional[ContentProvider],
    settings=None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> RecommendationsResponse:
    """Recommendations for a study profile. Falls back to general guidance."""
    return await build_flow(provider, settings, sleep=sleep).run(request)
