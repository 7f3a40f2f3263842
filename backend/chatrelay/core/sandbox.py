"""Sandboxed file access - keeps tool file operations inside the workspace directory."""

from pathlib import Path

from chatrelay.core.config import settings


class SandboxError(Exception):
    pass


def resolve_sandboxed_path(relative_path: str) -> Path:
    """Resolve a relative path within the sandbox. Raises SandboxError if path escapes."""
    base = settings.workspace_dir.resolve()
    resolved = (base / relative_path).resolve()

    if not resolved.is_relative_to(base):
        raise SandboxError(f"Path '{relative_path}' escapes the sandbox")

    return resolved
