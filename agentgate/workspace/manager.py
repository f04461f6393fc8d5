"""
SessionWorkspaceManager - one isolated directory per conversation session.

Bindings live in process memory only. A session id, once bound, always maps
to the same directory; directories never move. An agent-minted id may be
bound onto an existing directory next to the id that created it.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from agentgate.utils.ids import new_session_id
from agentgate.utils.logging import get_logger

logger = get_logger(__name__)

MARKER_FILE = "README.md"
_MAX_CREATE_ATTEMPTS = 8


@dataclass(frozen=True)
class Session:
    id: str
    workspace_dir: Path
    created_at: datetime

    def to_dict(self) -> dict[str, str]:
        return {"sessionId": self.id, "workspaceDir": str(self.workspace_dir)}


def _base_readme(base_dir: Path, now: datetime) -> str:
    return f"""# Agent Workspace

This is the agent's workspace directory where files can be created, read, and modified.

## Usage
- The agent can read and write files in this directory
- All file operations are sandboxed to this directory
- You can place files here for the agent to work with

## Directory: {base_dir}

Created: {now.isoformat()}
"""


def _session_readme(session_id: str, session_dir: Path, now: datetime) -> str:
    return f"""# Agent Session Workspace

This is a session-specific workspace directory for the agent.

## Session Information
- Session ID: {session_id}
- Created: {now.isoformat()}
- Directory: {session_dir}

## Usage
- This workspace is isolated to this session
- All files created by the agent will be stored here
- The workspace persists until the server process ends
"""


class SessionWorkspaceManager:
    """Maps session ids to isolated workspace directories under one base."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self._base_dir: Path | None = Path(base_dir).expanduser().resolve() if base_dir else None
        self._bindings: dict[str, Session] = {}
        self._lock = threading.Lock()

    @property
    def base_dir(self) -> Path | None:
        return self._base_dir

    def initialize_base(self, path: str | Path = "./usercontent") -> Path:
        """
        Ensure the base directory exists and seed it on first boot.

        The marker file is written only when the directory is empty, so
        repeated calls leave existing content untouched.
        """
        base = Path(path).expanduser().resolve()
        base.mkdir(parents=True, exist_ok=True)

        file_count = sum(1 for _ in base.iterdir())
        if file_count == 0:
            marker = base / MARKER_FILE
            marker.write_text(_base_readme(base, datetime.now(timezone.utc)), encoding="utf-8")
            logger.info("workspace_seeded", path=str(marker))

        self._base_dir = base
        logger.info("workspace_initialized", base_dir=str(base), file_count=file_count)
        return base

    def get_or_create(self, session_id: str | None = None) -> Session:
        """
        Return the session bound to ``session_id`` or create a fresh one.

        An unknown id gets a newly minted session whose binding is also
        recorded under the requested id, so concurrent callers with the same
        unknown id converge on the first creation.
        """
        with self._lock:
            if session_id:
                existing = self._bindings.get(session_id)
                if existing is not None:
                    logger.debug(
                        "session_workspace_reused",
                        session_id=session_id,
                        workspace_dir=str(existing.workspace_dir),
                    )
                    return existing

            session = self._create_session()
            self._bindings[session.id] = session
            if session_id:
                self._bindings[session_id] = session

        logger.info(
            "session_workspace_created",
            session_id=session.id,
            requested_id=session_id,
            workspace_dir=str(session.workspace_dir),
        )
        return session

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._bindings.get(session_id)

    def rebind(self, new_id: str, workspace_dir: str | Path) -> bool:
        """
        Bind an agent-minted session id onto an existing directory.

        Returns False when ``new_id`` is already bound to another directory;
        bindings are immutable and the existing one is kept.
        """
        workspace_dir = Path(workspace_dir)
        with self._lock:
            existing = self._bindings.get(new_id)
            if existing is not None:
                if existing.workspace_dir == workspace_dir:
                    return True
                logger.warning(
                    "session_rebind_conflict",
                    session_id=new_id,
                    bound_dir=str(existing.workspace_dir),
                    requested_dir=str(workspace_dir),
                )
                return False

            origin = next(
                (s for s in self._bindings.values() if s.workspace_dir == workspace_dir),
                None,
            )
            created_at = origin.created_at if origin else datetime.now(timezone.utc)
            self._bindings[new_id] = Session(
                id=new_id, workspace_dir=workspace_dir, created_at=created_at
            )

        logger.info("session_rebound", session_id=new_id, workspace_dir=str(workspace_dir))
        return True

    def session_count(self) -> int:
        with self._lock:
            return len(self._bindings)

    def all_sessions(self) -> list[tuple[str, Path]]:
        with self._lock:
            return [(key, s.workspace_dir) for key, s in self._bindings.items()]

    def _create_session(self) -> Session:
        if self._base_dir is None:
            raise RuntimeError("Workspace base directory not initialized")

        for _ in range(_MAX_CREATE_ATTEMPTS):
            session_id = new_session_id()
            session_dir = self._base_dir / session_id
            try:
                session_dir.mkdir(parents=True, exist_ok=False)
            except FileExistsError:
                continue
            now = datetime.now(timezone.utc)
            (session_dir / MARKER_FILE).write_text(
                _session_readme(session_id, session_dir, now), encoding="utf-8"
            )
            return Session(id=session_id, workspace_dir=session_dir, created_at=now)

        raise RuntimeError("Could not allocate a unique session workspace directory")


__all__ = ["Session", "SessionWorkspaceManager", "MARKER_FILE"]
