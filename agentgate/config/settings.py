"""
Global settings from environment variables.
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROXY_TIMEOUT_MARGIN = 5.0


class AgentGateSettings(BaseSettings):
    """
    Global configuration loaded from environment variables.

    Environment variables are prefixed with AGENTGATE_
    Example: AGENTGATE_DEBUG=true, AGENTGATE_PERMISSION_TIMEOUT=30
    """

    model_config = SettingsConfigDict(
        env_prefix="agentgate_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    # Permission broker
    permission_timeout: float = Field(default=60.0, gt=0)
    observer_queue_size: int = Field(default=1000, ge=1)

    # Permission proxy (separate process)
    # default: permission_timeout + PROXY_TIMEOUT_MARGIN
    proxy_timeout: float | None = Field(default=None, gt=0)
    untrusted_temp_roots: list[str] = Field(default_factory=lambda: ["/tmp"])

    # Agent invocation
    permission_server_name: str = "permission-prompt"
    permission_tool_name: str = "mcp__permission-prompt__permission_prompt"
    permission_mode: str = "default"
    allowed_tools: list[str] = Field(
        default_factory=lambda: ["mcp__permission-prompt"]
    )

    @model_validator(mode="after")
    def _proxy_outlives_broker(self) -> "AgentGateSettings":
        if self.proxy_timeout is None:
            self.proxy_timeout = self.permission_timeout + PROXY_TIMEOUT_MARGIN
        elif self.proxy_timeout <= self.permission_timeout:
            raise ValueError(
                f"proxy_timeout ({self.proxy_timeout:g}s) must exceed "
                f"permission_timeout ({self.permission_timeout:g}s)"
            )
        return self


# Global settings instance (singleton)
settings = AgentGateSettings()


__all__ = ["AgentGateSettings", "settings"]
