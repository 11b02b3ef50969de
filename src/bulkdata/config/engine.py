"""Resolution engine connection settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import float_env, optional_env, require_env_vars

ENGINE_URL_VAR: Final[str] = "BULKDATA_ENGINE_URL"
ENGINE_TOKEN_VAR: Final[str] = "BULKDATA_ENGINE_TOKEN"
ENGINE_TIMEOUT_VAR: Final[str] = "BULKDATA_ENGINE_TIMEOUT"
DEFAULT_ENGINE_TIMEOUT_SECONDS: Final[float] = 30.0


@dataclass(frozen=True, slots=True)
class EngineConfig:
    base_url: str
    api_token: str | None = None
    timeout_seconds: float = DEFAULT_ENGINE_TIMEOUT_SECONDS

    @classmethod
    def from_environment(cls) -> EngineConfig:
        values = require_env_vars([ENGINE_URL_VAR])
        base_url = values[ENGINE_URL_VAR].rstrip("/") + "/"
        return cls(
            base_url=base_url,
            api_token=optional_env(ENGINE_TOKEN_VAR),
            timeout_seconds=float_env(ENGINE_TIMEOUT_VAR, DEFAULT_ENGINE_TIMEOUT_SECONDS),
        )

    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers


def get_engine_config() -> EngineConfig:
    return EngineConfig.from_environment()
