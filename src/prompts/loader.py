from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from agents.errors import ConfigurationError


@lru_cache(maxsize=8)
def load_prompt(filename: str) -> str:
    """Load an instruction text file shipped alongside this module."""

    path = Path(__file__).resolve().parent / filename
    if not path.exists():
        raise ConfigurationError(f"Prompt file not found: {filename}")
    return path.read_text(encoding="utf-8").strip()
