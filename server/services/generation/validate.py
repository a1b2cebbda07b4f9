"""
Schema validation for generation requests and responses.

Schemas are pydantic models, checked in strict mode so "0.9" is not a float
and true is not an int. Validation never raises; it reports every
violated field as (path, constraint, actual) so callers can log or surface it.
"""

from dataclasses import dataclass, field
from typing import Any, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)

ROOT_PATH = "$"


@dataclass(frozen=True)
class Violation:
    """One violated constraint."""
    path: str
    constraint: str
    actual: Any = None

    def to_dict(self) -> dict:
        return {"path": self.path, "constraint": self.constraint, "actual": self.actual}

    def __str__(self) -> str:
        return f"{self.path}: {self.constraint} (got {self.actual!r})"


@dataclass(frozen=True)
class ValidationReport:
    ok: bool
    violations: List[Violation] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.ok

    def summary(self, limit: int = 3) -> str:
        if self.ok:
            return "ok"
        shown = "; ".join(str(v) for v in self.violations[:limit])
        extra = len(self.violations) - limit
        return shown + (f"; +{extra} more" if extra > 0 else "")


class SchemaViolationError(ValueError):
    """Value does not conform to its schema."""

    def __init__(self, schema_name: str, violations: List[Violation]):
        self.schema_name = schema_name
        self.violations = list(violations)
        super().__init__(f"{schema_name}: " + ValidationReport(False, self.violations).summary())


def _path(loc: tuple) -> str:
    if not loc:
        return ROOT_PATH
    return ".".join(str(p) for p in loc)


def _violations(err: ValidationError) -> List[Violation]:
    out = []
    for e in err.errors(include_url=False):
        actual = None if e.get("type") == "missing" else e.get("input")
        out.append(Violation(path=_path(tuple(e.get("loc", ()))), constraint=e.get("msg", "invalid"), actual=actual))
    return out


def _as_input(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    return value


def validate(value: Any, schema: Type[BaseModel]) -> ValidationReport:
    """
    Check value against schema. Pure; never raises for bad input.

    Covers required fields, types, numeric ranges, collection length bounds,
    enumerated values and any cross-field rules the schema declares.
    """
    try:
        schema.model_validate(_as_input(value), strict=True)
    except ValidationError as e:
        return ValidationReport(ok=False, violations=_violations(e))
    return ValidationReport(ok=True)


def parse(value: Any, schema: Type[M]) -> M:
    """Validate and return a schema instance. Raises SchemaViolationError."""
    try:
        return schema.model_validate(_as_input(value), strict=True)
    except ValidationError as e:
        raise SchemaViolationError(schema.__name__, _violations(e)) from None
