"""
Shared fixtures: keep tests offline and isolated from each other.
"""
import pytest
from correlab.core.config import reload_settings
from correlab.core.performance import PerformanceMonitor
from correlab.services import ai_client


@pytest.fixture(autouse=True)
def no_ai_providers(monkeypatch):
    """Run every test without AI provider keys."""
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    ai_client.reset_clients()
    yield
    ai_client.reset_clients()


@pytest.fixture(autouse=True)
def clean_metrics():
    PerformanceMonitor.clear_metrics()
    yield
    PerformanceMonitor.clear_metrics()


@pytest.fixture
def settings_env(monkeypatch):
    """Apply environment overrides to the settings singleton for one test."""
    def apply(**values):
        for key, value in values.items():
            monkeypatch.setenv(key, str(value))
        return reload_settings()

    yield apply
    monkeypatch.undo()
    reload_settings()
