"""Prompts for generated study content. Each builder returns (system, user, schema_hint)."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Iterable, Optional, Tuple

if TYPE_CHECKING:
    from server.services.generation.doubt import DoubtRequest
    from server.services.generation.productivity import ProductivityRequest
    from server.services.generation.quiz import QuizRequest
    from server.services.generation.recommendations import RecommendationsRequest
    from server.services.generation.summary import SummaryRequest
    from server.services.generation.syllabus import SyllabusRequest

NOT_SPECIFIED = "Not specified"

_JSON_RULES = """Output JSON only, no markdown, no code blocks.
Do not include a "fallback" key."""


def _or_default(value: Optional[object]) -> str:
    if value is None or value == "" or value == []:
        return NOT_SPECIFIED
    return str(value)


def _join(values: Optional[Iterable[str]]) -> str:
    values = [v for v in (values or []) if v]
    return ", ".join(values) if values else NOT_SPECIFIED


def exam_display(target_exams: Optional[list], other_exam_name: Optional[str]) -> str:
    """Exam ids joined for display, with 'other' replaced by the named exam."""
    if not target_exams:
        return NOT_SPECIFIED
    names = []
    for exam in target_exams:
        if exam == "other" and other_exam_name:
            names.append(other_exam_name)
        else:
            names.append(exam)
    return ", ".join(names)


def personalized_recommendations(req: "RecommendationsRequest") -> Tuple[str, str, str]:
    system = f"""You are an expert study coach for students preparing for competitive exams like JEE, NEET, CAT, SSC and Banking exams.
Be clear, concise and practical. Respect the student's weak areas, study time and preferences.
{_JSON_RULES}"""

    schema = """Output schema (JSON only):
{
  "suggested_weekly_timetable_focus": ["string", ... 3-7 items],
  "suggested_monthly_goals": ["string", ... 2-5 items],
  "study_cycle_recommendation": "string (e.g. 'Pomodoro: 25 min study / 5 min break')",
  "short_term_goals": [{"goal": "string", "timeline": "string (optional)"}, ... 2-4 items],
  "long_term_goals": [{"goal": "string", "timeline": "string (optional)"}, ... 1-3 items],
  "milestone_suggestions": ["string", ... 2-4 items],
  "personalized_tips": {
    "time_management": ["string", ... 1-3 items],
    "subject_specific_study": ["string", ... 1-3 items],
    "motivational_nudges": ["string", ... 1-3 items],
    "focus_and_distraction": ["string", ... 1-3 items]
  },
  "overall_strategy_statement": "string (2-3 sentences)"
}"""

    exams = exam_display(req.target_exams, req.other_exam_name)
    lines = [
        "Student profile:",
        f"- Name: {req.name or 'Student'}",
        f"- Target exam(s): {exams}",
        f"- Attempt year: {_or_default(req.exam_attempt_year)}",
        f"- Language medium: {_or_default(req.language_medium)}",
        f"- Current exam phase: {_or_default(req.exam_phase)}",
        f"- Study mode: {_or_default(req.study_mode)}",
        f"- Previous attempts: {_or_default(req.previous_attempts)}",
        f"- Daily study hours: {_or_default(req.daily_study_hours)}",
        f"- Preferred study times: {_join(req.preferred_study_time)}",
        f"- Age: {_or_default(req.age)}",
        f"- Location: {_or_default(req.location)}",
        f"- Strong subjects: {_join(req.strong_subjects)}",
        f"- Weak subjects: {_join(req.weak_subjects)}",
        f"- Preferred learning styles: {_join(req.preferred_learning_styles)}",
        f"- Motivation type: {_or_default(req.motivation_type)}",
        f"- Distraction struggles: {_or_default(req.distraction_struggles)}",
        "",
    ]
    if req.subject_details:
        lines.append("Detailed subject information:")
        for sd in req.subject_details:
            lines.append(f"- {sd.subject_name}: level {sd.preparation_level}, "
                         f"target {_or_default(sd.target_score)}, "
                         f"methods {_join(sd.preferred_learning_methods)}")
    else:
        lines.append("No detailed subject information provided.")
    lines += [
        "",
        f"Match the syllabus and difficulty of {exams}. If subject information is sparse, give general planning advice.",
        "Where detailed subject information exists, prefer it over the general strong/weak subjects.",
        "For beginner subjects suggest foundational strategies; for advanced subjects suggest advanced techniques.",
        "Output JSON only.",
    ]
    return system, "\n".join(lines), schema


def generate_quiz(req: "QuizRequest") -> Tuple[str, str, str]:
    system = f"""You are a quiz master creating multiple-choice quizzes for competitive exam aspirants (NEET, JEE, UPSC, SSC, CAT).
Questions must be factually accurate, unambiguous and have exactly one correct option.
{_JSON_RULES}"""

    schema = f"""Output schema (JSON only):
{{
  "quiz_title": "string (engaging title reflecting topic, difficulty and exam)",
  "questions": [
    {{
      "question_text": "string",
      "options": ["string", ... 4-5 items],
      "correct_answer_index": "integer (0-based index into options)",
      "explanation": "string (why the answer is right and distractors are wrong)"
    }}
  ] (exactly {req.num_questions} items)
}}"""

    user = f"""Topic: {req.topic}
Difficulty: {req.difficulty}
Exam type: {req.exam_type}
Number of questions: {req.num_questions}

basic = recall and definitions; intermediate = application; advanced = conceptual, multi-step reasoning.
Tailor the question style to {req.exam_type}. Output JSON only."""

    return system, user, schema


def summarize_material(req: "SummaryRequest") -> Tuple[str, str, str]:
    system = f"""You are a study assistant for students preparing for competitive exams.
Stay faithful to the provided material. Do not add facts that are not in it.
{_JSON_RULES}"""

    schema = """Output schema (JSON only):
{
  "summary": "string (about 100-200 words)",
  "key_concepts": ["string", ... 3-7 items],
  "multiple_choice_questions": [
    {
      "question": "string",
      "options": ["string", ... 3-5 items],
      "correct_answer_index": "integer (0-based index into options)",
      "explanation": "string (optional)"
    }
  ] (3-5 items)
}"""

    greeting = f"Student: {req.user_name}\n" if req.user_name else ""
    user = f"""{greeting}Exam focus: {req.exam_type or 'General'}
Preparation level: {_or_default(req.user_level)}
Topic of material: {req.topic}

Material:
---
{req.material}
---

Summarize for a {req.user_level or 'general'} level student, list the key concepts and write MCQs at that level. Output JSON only."""

    return system, user, schema


def suggest_syllabus(req: "SyllabusRequest", today: Optional[date] = None) -> Tuple[str, str, str]:
    today = today or date.today()
    system = f"""You are an expert study planner. Produce realistic, actionable weekly plans.
Prioritize high-weightage topics for the exam first.
{_JSON_RULES}"""

    schema = """Output schema (JSON only):
{
  "generated_syllabus": [
    {
      "subject": "string",
      "schedule": {"Week 1": ["topic (est. hours)", ...], "Week 2": [...]},
      "summary": "string (optional)"
    }
  ] (one item per requested subject),
  "overall_feedback": "string (optional)"
}"""

    days = (req.target_date - today).days
    weeks = max(1, (days + 6) // 7) if days > 0 else 1
    user = f"""Exam: {req.exam_type}
Subjects: {', '.join(req.subjects)}
Hours available per day: {req.time_available_per_day}
Today: {today.isoformat()}
Target completion date: {req.target_date.isoformat()} (about {weeks} week(s) away)

Give one plan per subject, broken into weeks ("Week 1", "Week 2", ...). Keep the weekly load within the daily hours. Output JSON only."""

    return system, user, schema


def solve_academic_doubt(req: "DoubtRequest") -> Tuple[str, str, str]:
    system = f"""You are a friendly tutor who explains academic questions step by step.
Never give only the final answer; walk through the reasoning. Use markdown inside the explanation string.
If the question is outside academic scope or you are unsure, say so kindly and set a low confidence_score.
{_JSON_RULES}"""

    schema = """Output schema (JSON only):
{
  "explanation": "string (the whole markdown-formatted answer)",
  "related_topics": ["string", ... 0-3 items] (optional),
  "confidence_score": "number between 0.0 and 1.0 (optional)"
}"""

    user = f"""Student: {req.user_name or 'Student'}
Exam context: {req.exam_type or 'General Knowledge'}
Subject of doubt: {_or_default(req.subject_context)}
Assumed level: {_or_default(req.preparation_level)}

Question: "{req.user_query}"

Greet the student, restate what is being solved, explain any formula before using it,
work through the steps and finish with the final answer. Be more elaborate for beginners.
Output JSON only."""

    return system, user, schema


def analyze_productivity(req: "ProductivityRequest") -> Tuple[str, str, str]:
    system = f"""You are a study coach who analyzes a student's productivity data for the last 7 days.
Ground every insight in the numbers given. Flag weak subjects and signs of burnout or broken streaks.
{_JSON_RULES}"""

    schema = """Output schema (JSON only):
{
  "insights": ["string", ... 1-6 items],
  "overall_assessment": "string (2-3 sentences)",
  "recommendations": ["string", ... 1-6 items, specific and actionable]
}"""

    if req.subject_wise_time_distribution:
        subjects = "\n".join(f"  - {name}: {hours:g}" for name, hours in req.subject_wise_time_distribution.items())
    else:
        subjects = f"  {NOT_SPECIFIED}"
    user = f"""Student data (last 7 days):
- Total study hours: {req.study_hours:g}
- Topics completed: {req.topics_completed}
- Subject-wise time distribution (hours):
{subjects}
- Current study streak (days): {req.streak_length}
- Weekly goals completed: {req.weekly_goals_completed}

Keep insights and recommendations distinct. Recommendations should be concrete,
e.g. "Try 3 Pomodoros instead of 5 today". Output JSON only."""

    return system, user, schema
