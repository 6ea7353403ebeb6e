"""Service layer helpers (settings, telemetry)."""

from .settings import BackendSettings, CompletionSettings, SecretVault, SettingsStore, SuggestionCacheSettings
from .telemetry import CompletionStats, CompletionTelemetry, InMemoryTelemetrySink

__all__ = [
    "BackendSettings",
    "CompletionSettings",
    "CompletionStats",
    "CompletionTelemetry",
    "InMemoryTelemetrySink",
    "SecretVault",
    "SettingsStore",
    "SuggestionCacheSettings",
]
