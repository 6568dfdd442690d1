"""Configuration classes for the ComfyUI card-art client."""

import os
import dataclasses
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union
from dataclasses import dataclass

import yaml
from dotenv import load_dotenv

from .exceptions import InvalidInputError

load_dotenv()

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8188

# Server-config file keys in milliseconds -> (field, scale to seconds)
_FILE_KEY_ALIASES: Dict[str, tuple] = {
    "comfyui_endpoint": ("host", None),
    "comfyui_port": ("port", None),
    "comfyui_timeout_ms": ("timeout", 1000.0),
    "comfyui_poll_interval_ms": ("poll_interval", 1000.0),
    "comfyui_max_poll_attempts": ("max_poll_attempts", None),
}

_ENV_VARS: Dict[str, tuple] = {
    "host": ("COMFYUI_HOST", str),
    "port": ("COMFYUI_PORT", int),
    "timeout": ("COMFYUI_TIMEOUT", float),
    "poll_interval": ("COMFYUI_POLL_INTERVAL", float),
    "max_poll_attempts": ("COMFYUI_MAX_POLL_ATTEMPTS", int),
}


@dataclass(frozen=True)
class ComfyConfig:
    """Connection settings for one ComfyUI server.

    Immutable: use ``replace`` to derive a modified copy.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    # Per-request timeout in seconds
    timeout: float = 60.0
    poll_interval: float = 0.5
    max_poll_attempts: int = 120

    @property
    def endpoint(self) -> str:
        host = (self.host or "").strip()
        if host.startswith(("http://", "https://")):
            return host.rstrip("/")
        return f"http://{host}:{self.port}"

    def validate(self) -> bool:
        if not self.host or not str(self.host).strip():
            raise InvalidInputError("host is required")
        if not 1 <= self.port <= 65535:
            raise InvalidInputError("port must be between 1 and 65535")
        if self.timeout <= 0:
            raise InvalidInputError("timeout must be positive")
        if self.poll_interval < 0:
            raise InvalidInputError("poll_interval must be non-negative")
        if self.max_poll_attempts < 1:
            raise InvalidInputError("max_poll_attempts must be at least 1")
        return True

    def replace(self, **changes: Any) -> "ComfyConfig":
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ComfyConfig":
        """Build a config from COMFYUI_* environment variables (and .env)."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for field_name, (var, cast) in _ENV_VARS.items():
            raw = env.get(var)
            if raw is None or raw == "":
                continue
            values[field_name] = _coerce(var, raw, cast)
        return cls(**values)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ComfyConfig":
        field_names = {f.name for f in dataclasses.fields(cls)}
        field_types = {name: cast for name, (_var, cast) in _ENV_VARS.items()}
        values: Dict[str, Any] = {}
        for key, raw in data.items():
            if raw is None:
                continue
            if key in field_names:
                values[key] = _coerce(key, raw, field_types[key])
            elif key in _FILE_KEY_ALIASES:
                field_name, scale = _FILE_KEY_ALIASES[key]
                value = _coerce(key, raw, field_types[field_name])
                values[field_name] = value / scale if scale else value
        return cls(**values)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ComfyConfig":
        """Load a YAML or JSON config file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise InvalidInputError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise InvalidInputError(f"Invalid config file {path}: {e}") from e
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidInputError(f"Config file {path} must contain a mapping")
        return cls.from_mapping(data)


def _coerce(name: str, raw: Any, cast: Callable[[Any], Any]) -> Any:
    try:
        return cast(raw)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid value for {name}: {raw!r}") from e
