"""
Pytest Configuration and Fixtures

Shared fixtures for unit tests.
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from regen.config import Settings
from regen.core import SettingsStore
from regen.db import MemoryKeyValueStore
from regen.pipeline import BatchOrchestrator, PipelineEngine
from regen.voices import VoiceRegistry


# ══════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True, scope="session")
def quiet_logging():
    """Keep structlog output out of captured command output."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
    )
    yield
    structlog.reset_defaults()


# ══════════════════════════════════════════════════════════════
# Settings Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with in-memory storage and local services."""
    return Settings(
        app_env="development",
        debug=True,
        stt_base_url="http://stt.test",
        tts_base_url="http://tts.test",
        storage_backend="memory",
        openai_api_key="sk-test",
    )


# ══════════════════════════════════════════════════════════════
# Service Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def stt() -> MagicMock:
    """Speech-to-text client returning a fixed transcript."""
    client = MagicMock()
    client.transcribe = AsyncMock(return_value="um so hello world")
    client.close = AsyncMock()
    return client


@pytest.fixture
def enhancer() -> MagicMock:
    """Text enhancement client returning a fixed rewrite."""
    client = MagicMock()
    client.enhance = AsyncMock(return_value="Hello, world.")
    client.close = AsyncMock()
    return client


@pytest.fixture
def tts() -> MagicMock:
    """Speech synthesis client returning fixed audio."""
    client = MagicMock()
    client.synthesize = AsyncMock(return_value=b"ID3-audio")
    client.list_voices = AsyncMock(return_value=["af_heart", "bm_george", "zz"])
    client.close = AsyncMock()
    return client


# ══════════════════════════════════════════════════════════════
# Component Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def settings_store(memory_store) -> SettingsStore:
    return SettingsStore(memory_store, key="test:settings")


@pytest.fixture
def engine(stt, enhancer, tts) -> PipelineEngine:
    return PipelineEngine(stt=stt, enhancer=enhancer, tts=tts)


@pytest.fixture
def orchestrator(engine, settings_store) -> BatchOrchestrator:
    return BatchOrchestrator(engine, settings_store)


@pytest.fixture
def registry(tts, memory_store, settings_store) -> VoiceRegistry:
    return VoiceRegistry(tts, memory_store, settings_store, key="test:voices")
