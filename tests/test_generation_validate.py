"""Tests for schema validation of generated content."""

import sys
from pathlib import Path
from typing import List, Literal, Optional

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from pydantic import BaseModel, Field

from server.services.generation.quiz import QuizResponse
from server.services.generation.validate import ROOT_PATH, SchemaViolationError, parse, validate


class Tip(BaseModel):
    text: str = Field(..., min_length=1)
    level: Literal["easy", "hard"]


class TipsSchema(BaseModel):
    study_tips: List[str] = Field(..., min_length=1, max_length=3)
    confidence: float = Field(..., ge=0, le=1)
    extra: Optional[List[Tip]] = None


def _paths(report):
    return {v.path for v in report.violations}


def test_valid_value_passes():
    report = validate({"study_tips": ["a", "b"], "confidence": 0.9}, TipsSchema)
    assert report.ok
    assert report
    assert report.violations == []


def test_missing_required_field_reported():
    report = validate({"study_tips": ["a"]}, TipsSchema)
    assert not report.ok
    assert _paths(report) == {"confidence"}
    assert report.violations[0].actual is None


def test_wrong_type_reported():
    report = validate({"study_tips": "abc", "confidence": 0.5}, TipsSchema)
    assert not report.ok
    assert "study_tips" in _paths(report)


def test_numeric_range_enforced():
    report = validate({"study_tips": ["a"], "confidence": 1.5}, TipsSchema)
    assert not report.ok
    v = report.violations[0]
    assert v.path == "confidence"
    assert v.actual == 1.5


def test_collection_length_bounds():
    assert not validate({"study_tips": [], "confidence": 0.1}, TipsSchema).ok
    assert not validate({"study_tips": ["a", "b", "c", "d"], "confidence": 0.1}, TipsSchema).ok
    assert validate({"study_tips": ["a", "b", "c"], "confidence": 0.1}, TipsSchema).ok


def test_enumerated_values_and_nested_paths():
    report = validate({
        "study_tips": ["a"],
        "confidence": 0.3,
        "extra": [{"text": "ok", "level": "easy"}, {"text": "x", "level": "medium"}],
    }, TipsSchema)
    assert not report.ok
    assert _paths(report) == {"extra.1.level"}


def test_non_mapping_reports_root():
    report = validate(None, TipsSchema)
    assert not report.ok
    assert _paths(report) == {ROOT_PATH}
    assert not validate([1, 2], TipsSchema).ok


def test_all_violations_collected():
    report = validate({"study_tips": [], "confidence": -1}, TipsSchema)
    assert _paths(report) == {"study_tips", "confidence"}
    assert "study_tips" in report.summary()


def test_cross_field_rule_reports_field_path():
    report = validate({
        "quiz_title": "T",
        "questions": [{
            "question_text": "Q?",
            "options": ["a", "b", "c", "d"],
            "correct_answer_index": 4,
            "explanation": "because",
        }],
    }, QuizResponse)
    assert not report.ok
    assert _paths(report) == {"questions.0.correct_answer_index"}


def test_parse_returns_model_or_raises():
    model = parse({"study_tips": ["a"], "confidence": 0}, TipsSchema)
    assert isinstance(model, TipsSchema)
    with pytest.raises(SchemaViolationError) as exc:
        parse({"confidence": 0}, TipsSchema)
    assert exc.value.schema_name == "TipsSchema"
    assert [v.path for v in exc.value.violations] == ["study_tips"]


def test_validate_accepts_model_instance():
    model = TipsSchema(study_tips=["a"], confidence=0.2)
    assert validate(model, TipsSchema).ok


def test_numeric_strings_are_not_numbers():
    report = validate({"study_tips": ["a"], "confidence": "0.9"}, TipsSchema)
    assert not report.ok
    assert _paths(report) == {"confidence"}
    assert report.violations[0].actual == "0.9"


def test_request_fields_are_type_checked():
    from server.services.generation.quiz import QuizRequest

    request = {"topic": "Optics", "difficulty": "beginner", "exam_type": "jee", "num_questions": "5"}
    report = validate(request, QuizRequest)
    assert _paths(report) == {"num_questions"}
    assert validate({**request, "num_questions": 5}, QuizRequest).ok


def test_bool_is_not_an_index():
    report = validate({
        "quiz_title": "T",
        "questions": [{
            "question_text": "Q?",
            "options": ["a", "b", "c", "d"],
            "correct_answer_index": True,
            "explanation": "because",
        }],
    }, QuizResponse)
    assert _paths(report) == {"questions.0.correct_answer_index"}
