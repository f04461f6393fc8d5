"""
AgentGate Console — FastAPI application entry point.
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agentgate.agent.adapter import AgentInvocationAdapter
from agentgate.agent.runtime import ClaudeAgentRuntime
from agentgate.config.settings import settings
from agentgate.exceptions import NotFoundError, UpstreamError, ValidationError
from agentgate.permission.broker import PermissionBroker
from agentgate.permission.fanout import TransportFanout
from agentgate.utils.logging import configure_logging, get_logger
from agentgate.workspace.manager import SessionWorkspaceManager

from server.config import ConsoleConfig
from server.dependencies import (
    get_broker,
    get_console_config,
    get_fanout,
    get_workspaces,
    set_agent_adapter,
    set_broker,
    set_console_config,
    set_fanout,
    set_workspaces,
)
from server.routers import chat, permissions, sessions

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_json)

    config = ConsoleConfig()
    set_console_config(config)

    workspaces = SessionWorkspaceManager()
    workspaces.initialize_base(config.workspace_dir)
    set_workspaces(workspaces)

    broker = PermissionBroker()
    set_broker(broker)

    fanout = TransportFanout(broker)
    set_fanout(fanout)

    adapter = AgentInvocationAdapter(workspaces, ClaudeAgentRuntime(), config.broker_url)
    set_agent_adapter(adapter)

    logger.info(
        "console_started",
        port=config.port,
        broker_url=config.broker_url,
        workspace_dir=str(workspaces.base_dir),
    )

    yield

    fanout.close_all()
    logger.info("console_stopped")


def _api_key_configured() -> bool:
    return os.getenv("ANTHROPIC_API_KEY", "").startswith("sk-ant-")


def create_app() -> FastAPI:
    app = FastAPI(
        title="AgentGate Console",
        description="Permission broker and session workspaces for a coding agent",
        version="0.1.0",
        lifespan=lifespan,
    )

    config = ConsoleConfig()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        logger.error("upstream_failed", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(exc)},
        )

    app.include_router(permissions.router)
    app.include_router(sessions.router)
    app.include_router(chat.router)

    @app.get("/health")
    async def health():
        workspaces = get_workspaces()
        base = workspaces.base_dir
        exists = base is not None and base.is_dir()
        files = sorted(entry.name for entry in base.iterdir()) if exists else []
        return {
            "status": "ok",
            "service": "agentgate-console",
            "apiKeyConfigured": _api_key_configured(),
            "workspace": {
                "exists": exists,
                "path": str(base) if base else None,
                "fileCount": len(files),
                "files": files[:10],
            },
            "sessions": workspaces.session_count(),
        }

    @app.get("/api/status")
    async def status():
        return {
            "connected": True,
            "message": "Agent gateway running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "port": get_console_config().port,
            "pendingPermissions": len(get_broker().list_pending()),
            "observers": get_fanout().client_count,
        }

    return app


app = create_app()


def main() -> None:
    config = ConsoleConfig()
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
