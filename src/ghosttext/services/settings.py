"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from cryptography.fernet import Fernet, InvalidToken

from ..completion.coalescer import DEFAULT_DEBOUNCE_MS
from ..completion.prompt import DEFAULT_AFTER_CURSOR, DEFAULT_BEFORE_CURSOR, TextLimits

__all__ = [
    "BackendSettings",
    "CompletionSettings",
    "SecretVault",
    "SettingsStore",
    "SuggestionCacheSettings",
    "TextLimitSettings",
    "merge_config",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".ghosttext"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "GHOSTTEXT_API_KEY": "backend.api_key",
    "GHOSTTEXT_BASE_URL": "backend.base_url",
    "GHOSTTEXT_MODEL": "backend.model",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "GHOSTTEXT_SUGGESTION_CACHE": "suggestion_cache.enabled",
    "GHOSTTEXT_DEBUG_LOGGING": "debug_logging",
    "GHOSTTEXT_TELEMETRY": "telemetry_opt_in",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "GHOSTTEXT_DEBOUNCE_MS": "debounce_ms",
    "GHOSTTEXT_BEFORE_CURSOR": "text_limits.before_cursor",
    "GHOSTTEXT_AFTER_CURSOR": "text_limits.after_cursor",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "GHOSTTEXT_REQUEST_TIMEOUT": "backend.request_timeout",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_API_KEY_FIELD = "api_key_ciphertext"
_FERNET_PREFIX = "fernet"
# Editor-facing configuration historically used camelCase keys.
_KEY_ALIASES: Mapping[str, str] = {
    "debounceTime": "debounce_ms",
    "debounce_time": "debounce_ms",
    "textLimits": "text_limits",
    "beforeCursor": "before_cursor",
    "afterCursor": "after_cursor",
    "suggestionCache": "suggestion_cache",
    "baseUrl": "base_url",
    "apiKey": "api_key",
    "requestTimeout": "request_timeout",
    "maxRetries": "max_retries",
}


@dataclass(slots=True)
class SuggestionCacheSettings:
    """Toggles for the local suggestion cache."""

    enabled: bool = True


@dataclass(slots=True)
class TextLimitSettings:
    """Characters kept on each side of the cursor when building prompts."""

    before_cursor: int = DEFAULT_BEFORE_CURSOR
    after_cursor: int = DEFAULT_AFTER_CURSOR

    def to_limits(self) -> TextLimits:
        return TextLimits(before_cursor=self.before_cursor, after_cursor=self.after_cursor)


@dataclass(slots=True)
class BackendSettings:
    """Connection details for the suggestion backend."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    organization: str | None = None
    request_timeout: float = 10.0
    max_retries: int = 2
    retry_min_seconds: float = 0.25
    retry_max_seconds: float = 2.0
    max_suggestions: int = 3
    temperature: float = 0.2
    default_headers: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class CompletionSettings:
    """User-configurable completion behaviour."""

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    text_limits: TextLimitSettings = field(default_factory=TextLimitSettings)
    suggestion_cache: SuggestionCacheSettings = field(default_factory=SuggestionCacheSettings)
    backend: BackendSettings = field(default_factory=BackendSettings)
    telemetry_opt_in: bool = False
    debug_logging: bool = False

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> CompletionSettings:
        """Deep-merge ``payload`` over the defaults."""

        return merge_config(cls(), payload)

    def to_mapping(self) -> Dict[str, Any]:
        return asdict(self)


def merge_config(settings: CompletionSettings, payload: Mapping[str, Any] | None) -> CompletionSettings:
    """Return ``settings`` with ``payload`` merged in; ``None`` values keep defaults."""

    if not payload:
        return settings
    data = _normalize_keys(payload)
    updates: Dict[str, Any] = {}
    for item in fields(CompletionSettings):
        if item.name not in data or data[item.name] is None:
            continue
        value = data[item.name]
        current = getattr(settings, item.name)
        if hasattr(current, "__dataclass_fields__"):
            if not isinstance(value, Mapping):
                LOGGER.warning("Ignoring non-object value for setting %s", item.name)
                continue
            value = _merge_section(current, value)
        updates[item.name] = value
    unknown = sorted(set(data) - {item.name for item in fields(CompletionSettings)})
    if unknown:
        LOGGER.debug("Ignoring unknown settings keys: %s", unknown)
    merged = replace(settings, **updates) if updates else settings
    _validate(merged)
    return merged


def _merge_section(section: Any, payload: Mapping[str, Any]) -> Any:
    allowed = {item.name for item in fields(section)}
    filtered = {key: value for key, value in payload.items() if key in allowed and value is not None}
    return replace(section, **filtered) if filtered else section


def _normalize_keys(payload: Mapping[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key, value in payload.items():
        name = _KEY_ALIASES.get(key, key)
        if isinstance(value, Mapping):
            value = _normalize_keys(value)
        normalized[name] = value
    return normalized


def _validate(settings: CompletionSettings) -> None:
    if int(settings.debounce_ms) < 0:
        raise ValueError("debounce_ms must not be negative")
    settings.text_limits.to_limits()


class SecretVault:
    """Encrypts API keys with a Fernet key kept next to the settings file."""

    def __init__(self, *, key_path: Path | None = None) -> None:
        self._key_path = key_path or (_SETTINGS_DIR / "settings.key")
        self._fernet: Fernet | None = None

    @property
    def key_path(self) -> Path:
        return self._key_path

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        token = self._get_fernet().encrypt(secret.encode("utf-8")).decode("ascii")
        return f"{_FERNET_PREFIX}:{token}"

    def decrypt(self, token: str | None) -> str:
        if not token:
            return ""
        prefix, sep, payload = token.partition(":")
        if not sep or prefix != _FERNET_PREFIX:
            raise ValueError(f"Unknown secret token prefix {prefix!r}")
        try:
            return self._get_fernet().decrypt(payload.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Invalid Fernet token") from exc

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._load_or_create_key())
        return self._fernet

    def _load_or_create_key(self) -> bytes:
        path = self._key_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            return path.read_bytes().strip()
        key = Fernet.generate_key()
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(key)
        if os.name != "nt":  # pragma: no cover - depends on OS
            os.chmod(tmp_path, 0o600)
        tmp_path.replace(path)
        return key


class SettingsStore:
    """Persistence adapter for :class:`CompletionSettings`.

    The backend API key never reaches ``settings.json`` in plaintext: it is
    stored as ``backend.api_key_ciphertext`` and decrypted through the
    :class:`SecretVault` on load.
    """

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH
        self._vault = vault or SecretVault(key_path=self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def vault(self) -> SecretVault:
        return self._vault

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> CompletionSettings:
        """Load settings from disk, applying runtime and environment overrides."""

        payload = self._read_payload()
        payload.pop("version", None)
        api_key, needs_migration = self._pop_api_key(payload)
        try:
            settings = CompletionSettings.from_mapping(payload)
        except (TypeError, ValueError) as exc:
            LOGGER.warning("Settings payload contained unexpected data: %s", exc)
            settings = CompletionSettings()
        if api_key:
            settings = replace(settings, backend=replace(settings.backend, api_key=api_key))

        if needs_migration:
            LOGGER.info("Encrypting plaintext API key found in %s", self._path)
            self.save(settings)

        if overrides:
            LOGGER.debug("Applying runtime settings overrides: %s", sorted(overrides))
            settings = merge_config(settings, overrides)

        return self._apply_env_overrides(settings)

    def save(self, settings: CompletionSettings) -> Path:
        """Persist settings with an atomic file write."""

        data = settings.to_mapping()
        backend = data["backend"]
        ciphertext = self._vault.encrypt(backend.pop("api_key", "") or "")
        if ciphertext:
            backend[_API_KEY_FIELD] = ciphertext
        data["version"] = _SETTINGS_VERSION
        body = json.dumps(data, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _pop_api_key(self, payload: Dict[str, Any]) -> tuple[str, bool]:
        """Remove key material from ``payload``; returns the key and whether it was plaintext."""

        backend = payload.get("backend")
        if not isinstance(backend, dict):
            return "", False
        ciphertext = backend.pop(_API_KEY_FIELD, None)
        legacy_plaintext = backend.pop("api_key", None) or backend.pop("apiKey", None)
        if ciphertext:
            try:
                return self._vault.decrypt(ciphertext), False
            except ValueError as exc:
                LOGGER.warning("Unable to decrypt API key: %s", exc)
                return "", False
        if isinstance(legacy_plaintext, str) and legacy_plaintext:
            return legacy_plaintext, True
        return "", False

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _apply_env_overrides(self, settings: CompletionSettings) -> CompletionSettings:
        overrides: Dict[str, Any] = {}
        for env_name, dotted in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                _assign(overrides, dotted, value)
        for env_name, dotted in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                _assign(overrides, dotted, value.strip().lower() in _TRUE_VALUES)
        for env_name, dotted in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                _assign(overrides, dotted, int(value, 10))
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, dotted in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                _assign(overrides, dotted, float(value))
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        if overrides:
            LOGGER.debug("Applying environment settings overrides: %s", sorted(overrides))
            settings = merge_config(settings, overrides)
        return settings


def _assign(target: Dict[str, Any], dotted: str, value: Any) -> None:
    head, _, tail = dotted.partition(".")
    if not tail:
        target[head] = value
        return
    target.setdefault(head, {})[tail] = value
