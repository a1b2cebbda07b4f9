"""Resilient content generation: schema-checked, retried, never left without a payload."""

from server.services.generation.fallback import StaticFallback
from server.services.generation.flow import (
    FlowResult,
    FlowState,
    GeneratedContent,
    GenerationFlow,
    InvalidRequestError,
    provider_flow,
)
from server.services.generation.provider import (
    ContentProvider,
    FakeProvider,
    GenerationError,
    OllamaProvider,
    get_provider,
    reset_provider,
)
from server.services.generation.retry import AttemptRecord, RetryOutcome, RetryPolicy, run_with_retry
from server.services.generation.validate import SchemaViolationError, ValidationReport, Violation, parse, validate

__all__ = [
    "AttemptRecord",
    "ContentProvider",
    "FakeProvider",
    "FlowResult",
    "FlowState",
    "GeneratedContent",
    "GenerationError",
    "GenerationFlow",
    "InvalidRequestError",
    "OllamaProvider",
    "RetryOutcome",
    "RetryPolicy",
    "SchemaViolationError",
    "StaticFallback",
    "ValidationReport",
    "Violation",
    "get_provider",
    "parse",
    "provider_flow",
    "reset_provider",
    "run_with_retry",
    "validate",
]
