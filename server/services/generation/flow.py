"""
Generation flow: validate request, attempt generation with retries, fall back.

    Pending -> Succeeded    generator output passed the response schema
    Pending -> FallenBack   attempts exhausted; static fallback returned

A malformed request raises InvalidRequestError before any generator call.
Transient upstream failures never escape run().
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel

from server.services.generation.fallback import StaticFallback
from server.services.generation.provider import ContentProvider, GenerationError
from server.services.generation.retry import AttemptRecord, RetryPolicy, Sleep, run_with_retry
from server.services.generation.validate import SchemaViolationError, Violation, parse

logger = logging.getLogger("prepwise.generation")

Q = TypeVar("Q", bound=BaseModel)
R = TypeVar("R", bound=BaseModel)

Generate = Callable[[Any], Awaitable[Any]]
OutputRule = Callable[[Any, Any], List[Violation]]


class GeneratedContent(BaseModel):
    """Base for every generated response. fallback is True only for local substitutes."""
    fallback: bool = False


class FlowState(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FALLEN_BACK = "fallen_back"


class InvalidRequestError(ValueError):
    """Caller supplied a malformed request. Not retried."""

    def __init__(self, flow_name: str, violations: List[Violation]):
        self.flow_name = flow_name
        self.violations = list(violations)
        shown = "; ".join(str(v) for v in self.violations[:3])
        super().__init__(f"Invalid request for {flow_name}: {shown}")


@dataclass
class FlowResult(Generic[R]):
    response: R
    state: FlowState
    attempts: List[AttemptRecord] = field(default_factory=list)

    @property
    def fallback(self) -> bool:
        return self.state is FlowState.FALLEN_BACK


class GenerationFlow(Generic[Q, R]):
    """
    One feature's generation entry point.

    generate(request) is the upstream call; it may raise or return anything.
    output_rule(request, response) adds request-dependent checks on top of the
    response schema and returns violations (empty list when fine).
    """

    def __init__(
        self,
        name: str,
        request_schema: Optional[Type[Q]],
        response_schema: Type[R],
        generate: Generate,
        fallback: StaticFallback[R],
        *,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        output_rule: Optional[OutputRule] = None,
    ):
        if fallback.schema is not response_schema:
            raise ValueError(f"{name}: fallback schema {fallback.schema.__name__} != {response_schema.__name__}")
        self.name = name
        self.request_schema = request_schema
        self.response_schema = response_schema
        self.generate = generate
        self.fallback = fallback
        self.policy = policy or RetryPolicy()
        self.sleep = sleep
        self.output_rule = output_rule

    def check_request(self, request: Any) -> Any:
        """Validate request shape. Raises InvalidRequestError."""
        if self.request_schema is None:
            return request
        try:
            return parse(request, self.request_schema)
        except SchemaViolationError as e:
            raise InvalidRequestError(self.name, e.violations) from None

    async def _attempt(self, request: Any) -> R:
        raw = await self.generate(request)
        response = parse(raw, self.response_schema)
        if self.output_rule is not None:
            violations = self.output_rule(request, response)
            if violations:
                raise SchemaViolationError(self.response_schema.__name__, violations)
        return response.model_copy(update={"fallback": False})

    async def run_detailed(self, request: Any) -> FlowResult[R]:
        checked = self.check_request(request)
        outcome = await run_with_retry(
            lambda: self._attempt(checked),
            self.policy,
            sleep=self.sleep,
            label=self.name,
        )
        if not outcome.exhausted:
            return FlowResult(response=outcome.value, state=FlowState.SUCCEEDED, attempts=outcome.attempts)
        logger.warning("%s: returning fallback payload", self.name)
        return FlowResult(
            response=self.fallback.synthesize(checked),
            state=FlowState.FALLEN_BACK,
            attempts=outcome.attempts,
        )

    async def run(self, request: Mapping[str, Any] | Q) -> R:
        """Resolve with a real or fallback response; distinguish via response.fallback."""
        return (await self.run_detailed(request)).response


def provider_flow(
    name: str,
    request_schema: Type[Q],
    response_schema: Type[R],
    build_prompt: Callable[[Q], tuple],
    fallback: StaticFallback[R],
    provider: Optional[ContentProvider],
    settings: Any = None,
    *,
    sleep: Sleep = asyncio.sleep,
    output_rule: Optional[OutputRule] = None,
) -> GenerationFlow[Q, R]:
    """
    Wire a feature's prompt builder to a content provider.

    With no provider (generation disabled) the flow makes a single failing
    attempt and resolves with the fallback immediately.
    """
    temperature = getattr(settings, "generation_temperature", 0.4) if settings else 0.4
    timeout = getattr(settings, "generation_timeout_s", 60) if settings else 60

    async def generate(request: Q) -> Any:
        if provider is None:
            raise GenerationError(kind="unavailable", message="Content generation is disabled")
        system, user, schema = build_prompt(request)
        return await provider.generate_json(system, user, schema, temperature=temperature, timeout_s=timeout)

    policy = RetryPolicy.from_settings(settings) if provider is not None else RetryPolicy(max_attempts=1)
    return GenerationFlow(
        name,
        request_schema,
        response_schema,
        generate,
        fallback,
        policy=policy,
        sleep=sleep,
        output_rule=output_rule,
    )
