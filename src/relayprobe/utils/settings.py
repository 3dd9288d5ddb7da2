"""Environment-backed settings used at process bootstrap."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from ..detector.config import DEFAULT_MAX_HISTORY, DEFAULT_MODEL, DetectorConfig

DEFAULT_PORT = 8080
DEFAULT_INTERVAL = 0


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_flag(name: str, default: bool) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    endpoint: str
    api_key: str
    model: str = DEFAULT_MODEL
    interval: int = DEFAULT_INTERVAL
    max_history: int = DEFAULT_MAX_HISTORY
    save_raw_response: bool = True
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, *, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            load_dotenv()
        return cls(
            endpoint=_env("OPENAI_ENDPOINT"),
            api_key=_env("OPENAI_API_KEY"),
            model=_env("RELAYPROBE_MODEL", DEFAULT_MODEL),
            interval=_env_int("RELAYPROBE_INTERVAL", DEFAULT_INTERVAL),
            max_history=_env_int("RELAYPROBE_MAX_HISTORY", DEFAULT_MAX_HISTORY),
            save_raw_response=_env_flag("RELAYPROBE_SAVE_RAW_RESPONSE", True),
            port=_env_int("RELAYPROBE_PORT", DEFAULT_PORT),
            log_level=_env("RELAYPROBE_LOG_LEVEL", "INFO"),
        )

    def to_env(self) -> dict[str, str]:
        """Inverse of from_env, for handing settings to a uvicorn worker."""
        return {
            "OPENAI_ENDPOINT": self.endpoint,
            "OPENAI_API_KEY": self.api_key,
            "RELAYPROBE_MODEL": self.model,
            "RELAYPROBE_INTERVAL": str(self.interval),
            "RELAYPROBE_MAX_HISTORY": str(self.max_history),
            "RELAYPROBE_SAVE_RAW_RESPONSE": "1" if self.save_raw_response else "0",
            "RELAYPROBE_PORT": str(self.port),
            "RELAYPROBE_LOG_LEVEL": self.log_level,
        }

    def detector_config(self) -> DetectorConfig:
        return DetectorConfig(
            endpoint=self.endpoint,
            api_key=self.api_key,
            model=self.model,
            interval=self.interval,
            max_history=self.max_history,
            save_raw_response=self.save_raw_response,
        )
