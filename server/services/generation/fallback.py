"""Static fallback payloads used when generation cannot complete."""

import copy
import logging
from typing import Any, Callable, Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from server.services.generation.validate import validate

logger = logging.getLogger("prepwise.generation")

R = TypeVar("R", bound=BaseModel)


class StaticFallback(Generic[R]):
    """
    Deterministic substitute for one feature's response.

    The literal is checked against the response schema when the fallback is
    defined, so a feature with a bad literal fails at import, never at runtime.
    `personalize(literal, request)` may swap generic wording for request
    details; its output is re-validated and discarded if invalid.
    """

    def __init__(
        self,
        schema: Type[R],
        literal: Dict[str, Any],
        *,
        personalize: Optional[Callable[[Dict[str, Any], Any], Dict[str, Any]]] = None,
    ):
        self.schema = schema
        self._literal = {**copy.deepcopy(literal), "fallback": True}
        self.personalize = personalize
        report = validate(self._literal, schema)
        if not report.ok:
            raise ValueError(f"Fallback for {schema.__name__} violates its schema: {report.summary()}")
        self._base = schema.model_validate(self._literal)

    @property
    def literal(self) -> Dict[str, Any]:
        return copy.deepcopy(self._literal)

    def synthesize(self, request: Any = None) -> R:
        """Build the fallback response. No I/O; does not fail."""
        if self.personalize is not None and request is not None:
            try:
                candidate = self.personalize(self.literal, request)
            except (TypeError, ValueError, KeyError, AttributeError) as e:
                logger.debug("Fallback personalization for %s failed: %s", self.schema.__name__, e)
            else:
                candidate = {**candidate, "fallback": True}
                if validate(candidate, self.schema).ok:
                    return self.schema.model_validate(candidate)
                logger.debug("Personalized fallback for %s invalid, using generic", self.schema.__name__)
        return self._base.model_copy(deep=True)
