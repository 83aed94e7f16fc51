"""Client configuration stored as YAML."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .models import DEFAULT_MODEL

logger = logging.getLogger(__name__)

AVAILABLE_MODELS = (
    "gemini-3-pro-preview",
    "gemini-3-flash-preview",
)

DEFAULT_TIMEOUT_SECONDS = 300.0


@dataclass
class StreamConfig:
    """Settings for one streaming session.

    The model is passed explicitly into every session rather than read from
    global state, so sessions stay independent.
    """

    endpoint: str | None = None
    model: str = DEFAULT_MODEL
    api_key: str | None = None  # BYOK: the caller's own provider key
    provider: str | None = None  # "openrouter" or "gemini"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS  # longest gap between reads
    headers: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize to dict for YAML storage."""
        result: dict = {"model": self.model}
        if self.endpoint is not None:
            result["endpoint"] = self.endpoint
        if self.api_key is not None or self.provider is not None:
            byok: dict = {}
            if self.api_key is not None:
                byok["api_key"] = self.api_key
            if self.provider is not None:
                byok["provider"] = self.provider
            result["byok"] = byok
        if self.timeout_seconds != DEFAULT_TIMEOUT_SECONDS:
            result["timeout_seconds"] = self.timeout_seconds
        if self.headers:
            result["headers"] = dict(self.headers)
        return result

    @classmethod
    def from_dict(cls, data: dict) -> StreamConfig:
        """Deserialize from dict. Unknown models fall back to the default."""
        model = data.get("model") or DEFAULT_MODEL
        if model not in AVAILABLE_MODELS:
            logger.warning(f"Unknown model {model!r}, using {DEFAULT_MODEL}")
            model = DEFAULT_MODEL

        byok = data.get("byok") or {}
        return cls(
            endpoint=data.get("endpoint"),
            model=model,
            api_key=byok.get("api_key"),
            provider=byok.get("provider"),
            timeout_seconds=float(data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
            headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
        )

    def request_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        """Build HTTP headers: JSON content type, configured headers, BYOK, extras."""
        headers = {"Content-Type": "application/json", **self.headers}
        if self.api_key:
            headers["x-api-key"] = self.api_key
            if self.provider:
                headers["x-provider"] = self.provider
        if extra:
            headers.update(extra)
        return headers

    def request_body(self, body: dict) -> dict:
        """Return a copy of ``body`` with the configured model filled in."""
        merged = dict(body)
        merged.setdefault("model", self.model)
        return merged


class ConfigStore:
    """Loads and saves a StreamConfig at a YAML path.

    Writes are atomic (temp file + rename) to prevent corruption.
    """

    def __init__(self, config_path: Path) -> None:
        self._config_path = config_path

    @property
    def config_path(self) -> Path:
        return self._config_path

    def load(self) -> StreamConfig:
        """Load the config. Returns defaults if the file is missing or empty."""
        if not self._config_path.exists():
            return StreamConfig()

        with open(self._config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            return StreamConfig()
        return StreamConfig.from_dict(data)

    def save(self, config: StreamConfig) -> None:
        """Save the config atomically."""
        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            dir=self._config_path.parent,
            prefix=".config_",
            suffix=".yaml.tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(config.to_dict(), f, default_flow_style=False)
            os.replace(temp_path, self._config_path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def set_model(self, model: str) -> StreamConfig:
        """Persist the preferred model.

        Raises:
            ValueError: If the model is not one of AVAILABLE_MODELS.
        """
        if model not in AVAILABLE_MODELS:
            raise ValueError(f"Unknown model: {model}")
        config = self.load()
        config.model = model
        self.save(config)
        return config
