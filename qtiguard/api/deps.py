"""FastAPI dependency injection: detector factories.

This module and the CLI are the only places that read settings to build
collaborators; everything below them receives its configuration explicitly.
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from qtiguard.core.settings import Settings, get_settings
from qtiguard.llm.client import AnthropicClient
from qtiguard.pii.model_detector import ModelAssistedDetector
from qtiguard.pii.pattern_detector import PatternDetector


@lru_cache(maxsize=1)
def get_pattern_detector() -> PatternDetector:
    """Return the shared deterministic detector (patterns compiled once)."""
    return PatternDetector()


def build_model_detector(settings: Settings) -> ModelAssistedDetector | None:
    """Return a model-assisted detector, or None when LLM assist is disabled.

    Raises LLMCredentialsError when assist is enabled without an API key.
    """
    if not settings.llm_assist_enabled:
        return None
    return ModelAssistedDetector(AnthropicClient.from_settings(settings))


def get_model_detector_factory(settings: Settings = Depends(get_settings)):
    """Defer construction so the LLM client is only built when requested."""
    return lambda: build_model_detector(settings)
