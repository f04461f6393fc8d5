"""
Console server configuration.

Loaded from environment variables with AGENTGATE_CONSOLE_ prefix.
"""

from pydantic_settings import BaseSettings


class ConsoleConfig(BaseSettings):
    model_config = {"env_prefix": "AGENTGATE_CONSOLE_"}

    # Server
    host: str = "0.0.0.0"
    port: int = 3001

    # Base directory holding one subdirectory per session
    workspace_dir: str = "./usercontent"

    # URL the permission proxy uses to reach this server (default: localhost:port)
    public_base_url: str | None = None

    # CORS
    cors_origins: list[str] = ["*"]

    @property
    def broker_url(self) -> str:
        return self.public_base_url or f"http://localhost:{self.port}"
