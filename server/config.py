"""Configuration for the Prepwise API server."""

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env_int(name: str) -> Optional[int]:
    v = os.environ.get(name)
    if not v:
        return None
    try:
        return int(v)
    except ValueError:
        return None


def _env_float(name: str) -> Optional[float]:
    v = os.environ.get(name)
    if not v:
        return None
    try:
        return float(v)
    except ValueError:
        return None


@dataclass
class Settings:
    """
    Server and content-generation settings.

    Every field is overridable at construction for testing.
    Environment variables override defaults in __post_init__.
    """
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])

    # Content generation (Ollama) - disabled means every feature returns its fallback
    generation_enabled: bool = False
    generation_provider: str = "ollama"
    generation_model: str = "qwen2.5:7b-instruct"
    generation_base_url: str = "http://localhost:11434"
    generation_timeout_s: int = 60
    generation_temperature: float = 0.4

    # Retry policy shared by every generation flow
    generation_max_attempts: int = 3
    generation_initial_delay_s: float = 1.0
    generation_backoff_multiplier: float = 2.0
    generation_attempt_timeout_s: Optional[float] = None

    def __post_init__(self):
        if os.environ.get("GENERATION_ENABLED", "").lower() in ("1", "true", "yes"):
            self.generation_enabled = True
        if os.environ.get("GENERATION_PROVIDER"):
            self.generation_provider = os.environ["GENERATION_PROVIDER"]
        if os.environ.get("GENERATION_MODEL"):
            self.generation_model = os.environ["GENERATION_MODEL"]
        if os.environ.get("GENERATION_BASE_URL"):
            self.generation_base_url = os.environ["GENERATION_BASE_URL"]

        if (v := _env_int("GENERATION_TIMEOUT_S")) is not None:
            self.generation_timeout_s = v
        if (v := _env_int("GENERATION_MAX_ATTEMPTS")) is not None and v >= 1:
            self.generation_max_attempts = v
        if (f := _env_float("GENERATION_INITIAL_DELAY_S")) is not None and f >= 0:
            self.generation_initial_delay_s = f
        if (f := _env_float("GENERATION_ATTEMPT_TIMEOUT_S")) is not None and f > 0:
            self.generation_attempt_timeout_s = f
