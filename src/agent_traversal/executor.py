"""Executor boundary: run shell commands and list files inside a sandbox.

The recorder never executes anything itself. It consumes a
:class:`CommandExecutor`. :class:`LocalExecutor` is a local-directory
implementation suitable for development, tests and the CLI.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NamedTuple, Protocol, runtime_checkable

from agent_traversal.errors import ExecutorError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a shell command as reported by the executor."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CommandResult:
        """Accept ``exit_code`` or ``exitCode`` keys."""
        exit_code = data.get("exit_code", data.get("exitCode"))
        return cls(
            stdout=data.get("stdout") or "",
            stderr=data.get("stderr") or "",
            exit_code=exit_code,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"stdout": self.stdout, "stderr": self.stderr, "exitCode": self.exit_code}


class ListingEntry(NamedTuple):
    """One line of a flat filesystem listing: ``("f" | "d", absolute path)``."""

    type: str
    path: str


@runtime_checkable
class CommandExecutor(Protocol):
    def run_command(self, command: str) -> CommandResult: ...

    def list_filesystem(
        self,
        root_path: str,
        *,
        max_depth: int = 10,
        exclude: Iterable[str] = (),
    ) -> list[ListingEntry]: ...


class LocalExecutor:
    """Run commands with ``bash -c`` in a local directory.

    The executor keeps its own notion of the shell's working directory so a
    ``cd`` in one command carries over to the next, as it would in an
    interactive sandbox shell.
    """

    def __init__(self, root_path: str | Path, timeout: float = 60.0, shell: str = "bash") -> None:
        self.root_path = str(Path(root_path).resolve())
        self.timeout = timeout
        self.shell = shell
        self.cwd = self.root_path

    def run_command(self, command: str) -> CommandResult:
        # Print the final directory on a marker line so cd persists across calls.
        marker = "__AGENT_TRAVERSAL_PWD__"
        script = (
            f"{{ {command}\n}}; "
            f"__rc=$?; printf '\\n{marker}%s' \"$PWD\"; exit $__rc"
        )
        try:
            proc = subprocess.run(
                [self.shell, "-c", script],
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise ExecutorError(f"Failed to run command: {e}", command=command) from e

        stdout = proc.stdout
        head, sep, pwd = stdout.rpartition(f"\n{marker}")
        if sep:
            stdout = head
            if pwd and os.path.isdir(pwd):
                self.cwd = pwd
        return CommandResult(stdout=stdout, stderr=proc.stderr, exit_code=proc.returncode)

    def list_filesystem(
        self,
        root_path: str,
        *,
        max_depth: int = 10,
        exclude: Iterable[str] = (),
    ) -> list[ListingEntry]:
        """Walk *root_path* up to *max_depth* levels, pruning *exclude* names."""
        root = Path(root_path)
        if not root.is_dir():
            raise ExecutorError(f"Not a directory: {root_path}")
        excluded = set(exclude)
        root_str = str(root)
        listing = [ListingEntry("d", root_str)]

        def _on_error(err: OSError) -> None:
            logger.debug("Skipping unreadable path during listing: %s", err)

        for dirpath, dirnames, filenames in os.walk(root_str, onerror=_on_error):
            rel = os.path.relpath(dirpath, root_str)
            depth = 0 if rel == "." else rel.count(os.sep) + 1
            dirnames[:] = sorted(d for d in dirnames if d not in excluded)
            if depth >= max_depth:
                dirnames[:] = []
                continue
            for d in dirnames:
                listing.append(ListingEntry("d", f"{dirpath}/{d}"))
            for name in sorted(filenames):
                listing.append(ListingEntry("f", f"{dirpath}/{name}"))
        return listing

    def read_file(self, path: str) -> str:
        try:
            return self._full_path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ExecutorError(f"Failed to read {path}: {e}") from e

    def write_file(self, path: str, content: str) -> None:
        target = self._full_path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ExecutorError(f"Failed to write {path}: {e}") from e

    def _full_path(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else Path(self.cwd) / p
