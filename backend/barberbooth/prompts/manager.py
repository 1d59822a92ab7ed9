from __future__ import annotations
"""Prompt templates for the four-up sheet and turntable video requests."""

import logging
from pathlib import Path
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).parent / "templates"


class PromptManager:
    """Loads ``templates/{style}/{name}.txt`` once per style and fills placeholders.

    A style without its own copy of a template uses the ``default`` one.
    A template missing from ``default`` too is an error: an empty prompt
    must never reach a model.
    """

    _cache: ClassVar[dict[str, str]] = {}

    @classmethod
    def get_prompt(cls, template_name: str, style: str = "default") -> str:
        cache_key = f"{style}/{template_name}"
        if cache_key not in cls._cache:
            path = cls._resolve(template_name, style)
            logger.debug("Loading prompt template %s for style %s", path, style)
            cls._cache[cache_key] = path.read_text(encoding="utf-8").strip()
        return cls._cache[cache_key]

    @classmethod
    def render(cls, template_name: str, style: str = "default", **values: Any) -> str:
        """Fill ``{placeholders}`` of a template."""
        return cls.get_prompt(template_name, style).format(**values)

    @staticmethod
    def _resolve(template_name: str, style: str) -> Path:
        for candidate in dict.fromkeys((style, "default")):
            path = _TEMPLATES_DIR / candidate / f"{template_name}.txt"
            if path.is_file():
                return path
        raise FileNotFoundError(f"Prompt template not found: {style}/{template_name}.txt")
