"""
ToolPermissionProxy - MCP permission prompt server for the agent runtime.

Runs as its own process, spawned by the agent runtime over stdio:

    python -m agentgate.permission.proxy --broker-url http://localhost:3001 \\
        --workspace-dir /srv/usercontent/session_...

Each permission query becomes one blocking POST to the broker's submit
endpoint. The broker's answer is translated into the runtime's decision shape
``{behavior: allow|deny, message, updatedInput?}``. Any failure to obtain a
well-formed answer is a denial.

stdout belongs to the MCP protocol; all logging goes to stderr.
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

import httpx
from fastmcp import FastMCP
from pydantic import BaseModel

from agentgate.config.settings import settings
from agentgate.exceptions import TransportError
from agentgate.permission.schema import PermissionOutcome
from agentgate.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

SERVER_NAME = "permission-prompt-server"
SUBMIT_PATH = "/api/permissions/request-mcp"


class PermissionQuery(BaseModel):
    """Generic permission query sent to the broker."""

    action: str | None = None
    description: str | None = None
    resource: str | None = None
    details: Any | None = None


def translate_arguments(arguments: dict[str, Any]) -> PermissionQuery:
    """
    Map either argument shape onto a PermissionQuery.

    Tool-call shape ``{tool_name, input}``: action is the tool name and the
    resource is the input's file path, command, or its serialized form.
    """
    tool_name = arguments.get("tool_name")
    tool_input = arguments.get("input")
    if tool_name and isinstance(tool_input, dict):
        resource = (
            tool_input.get("file_path")
            or tool_input.get("path")
            or tool_input.get("command")
            or json.dumps(tool_input, default=str)
        )
        return PermissionQuery(
            action=str(tool_name),
            description=f"Request to use {tool_name} tool",
            resource=str(resource),
            details=tool_input,
        )

    return PermissionQuery(
        action=arguments.get("action"),
        description=arguments.get("description"),
        resource=arguments.get("resource"),
        details=arguments.get("details"),
    )


def deny(message: str) -> dict[str, Any]:
    return {"behavior": "deny", "message": message}


class ToolPermissionProxy:
    def __init__(
        self,
        broker_url: str,
        workspace_dir: str | Path | None = None,
        timeout: float | None = None,
        untrusted_roots: list[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            broker_url: Base URL of the broker's HTTP endpoint
            workspace_dir: Bound session workspace; approved paths under an
                untrusted temp root are rewritten into it
            timeout: Wait for the broker, longer than the broker's own deadline
            untrusted_roots: Temp roots redirected into the workspace
            transport: httpx transport override (tests)
        """
        self._submit_url = broker_url.rstrip("/") + SUBMIT_PATH
        self._workspace_dir = os.path.abspath(workspace_dir) if workspace_dir else None
        self._timeout = float(timeout if timeout is not None else settings.proxy_timeout)
        self._untrusted_roots = [
            root.rstrip("/\\") for root in (untrusted_roots or settings.untrusted_temp_roots)
        ]
        self._transport = transport

    async def request_decision(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Ask the broker about one permission query; never raises."""
        query = translate_arguments(arguments)
        logger.info("proxy_permission_query", action=query.action, resource=query.resource)

        try:
            outcome = await self.submit(query)
        except TransportError as e:
            logger.error("proxy_transport_failed", action=query.action, error=str(e))
            return deny(f"Permission request failed: {e}. Assuming permission denied for safety.")

        decision = self.to_decision(query, outcome)
        logger.info(
            "proxy_permission_decided",
            action=query.action,
            behavior=decision["behavior"],
            reason=outcome.reason,
        )
        return decision

    async def submit(self, query: PermissionQuery) -> PermissionOutcome:
        """
        POST the query to the broker and validate its answer.

        Raises:
            TransportError: On timeout, connection failure, non-2xx status or
                a malformed body
        """
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            ) as client:
                resp = await client.post(self._submit_url, json=query.model_dump(mode="json"))
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            raise TransportError(f"broker returned HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise TransportError("Invalid response format: body is not JSON") from e

        if not isinstance(payload, dict):
            raise TransportError(
                f"Invalid response format: expected object, got {type(payload).__name__}"
            )
        approved = payload.get("approved")
        if not isinstance(approved, bool):
            raise TransportError(
                f"Invalid response: 'approved' must be boolean, got {type(approved).__name__}"
            )
        return PermissionOutcome(approved=approved, reason=str(payload.get("reason") or ""))

    def to_decision(self, query: PermissionQuery, outcome: PermissionOutcome) -> dict[str, Any]:
        if not outcome.approved:
            reason = outcome.reason or "User denied the request"
            return deny(f"Permission denied: {query.description}. Reason: {reason}")

        decision: dict[str, Any] = {
            "behavior": "allow",
            "message": f"Permission approved: {query.description}. You may proceed with the action.",
        }
        if isinstance(query.details, dict):
            updated = dict(query.details)
            file_path = updated.get("file_path")
            if isinstance(file_path, str):
                updated["file_path"] = self.redirect_path(file_path)
            decision["updatedInput"] = updated
        return decision

    def redirect_path(self, path: str) -> str:
        """Rewrite a path under an untrusted temp root into the session workspace."""
        if not self._workspace_dir:
            return path

        for root in self._untrusted_roots:
            for sep in ("/", "\\"):
                prefix = root + sep
                if not path.startswith(prefix):
                    continue
                remainder = path[len(prefix):].replace("\\", "/").lstrip("/")
                if not remainder:
                    return path
                target = os.path.normpath(os.path.join(self._workspace_dir, remainder))
                if not target.startswith(self._workspace_dir + os.sep):
                    target = os.path.join(self._workspace_dir, os.path.basename(remainder))
                logger.info("proxy_path_redirected", original=path, redirected=target)
                return target

        return path


def create_server(proxy: ToolPermissionProxy) -> FastMCP:
    """Build the MCP server exposing the single ``permission_prompt`` tool."""
    server = FastMCP(SERVER_NAME)

    @server.tool()
    async def permission_prompt(
        tool_name: str | None = None,
        input: dict[str, Any] | None = None,
        tool_use_id: str | None = None,
        action: str | None = None,
        description: str | None = None,
        resource: str | None = None,
        details: Any | None = None,
    ) -> str:
        """
        Request permission from the user to perform an action.

        Accepts either a tool call (tool_name, input) or a generic request
        (action, description, resource, details). Returns the decision as JSON.
        """
        arguments = {
            "tool_name": tool_name,
            "input": input,
            "tool_use_id": tool_use_id,
            "action": action,
            "description": description,
            "resource": resource,
            "details": details,
        }
        decision = await proxy.request_decision(
            {key: value for key, value in arguments.items() if value is not None}
        )
        return json.dumps(decision)

    return server


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="agentgate-permission-proxy",
        description="MCP permission prompt server that defers decisions to the broker.",
    )
    parser.add_argument(
        "--broker-url",
        default=os.getenv("AGENTGATE_BROKER_URL", "http://localhost:3001"),
        help="Base URL of the broker HTTP endpoint",
    )
    parser.add_argument(
        "--workspace-dir",
        default=os.getenv("AGENTGATE_SESSION_WORKSPACE"),
        help="Session workspace that approved temp paths are redirected into",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.proxy_timeout,
        help="Seconds to wait for the broker (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    configure_logging(settings.log_level, settings.log_json, stream=sys.stderr)

    proxy = ToolPermissionProxy(
        broker_url=args.broker_url,
        workspace_dir=args.workspace_dir,
        timeout=args.timeout,
    )
    logger.info(
        "permission_proxy_started",
        broker_url=args.broker_url,
        workspace_dir=args.workspace_dir,
        timeout=args.timeout,
    )
    create_server(proxy).run()


if __name__ == "__main__":
    main()


__all__ = [
    "PermissionQuery",
    "ToolPermissionProxy",
    "translate_arguments",
    "create_server",
    "main",
]
