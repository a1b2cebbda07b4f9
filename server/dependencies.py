"""FastAPI dependency factories."""

import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import Depends

from server.config import Settings
from server.services.generation.provider import ContentProvider
from server.services.generation.provider import get_provider as _configured_provider


@lru_cache()
def get_settings() -> Settings:
    """Singleton Settings -- override via app.dependency_overrides in tests."""
    return Settings()


def get_provider(settings: Settings = Depends(get_settings)) -> Optional[ContentProvider]:
    """Process-wide content provider, or None when generation is disabled."""
    return _configured_provider(settings)
