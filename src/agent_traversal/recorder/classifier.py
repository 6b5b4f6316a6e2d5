"""Command classification: shell command string -> operation category."""

from __future__ import annotations

import re

from agent_traversal.recorder.models import Operation

COMMAND_PATTERNS: dict[Operation, list[str]] = {
    Operation.READ: ["cat", "head", "tail", "less", "more", "bat", "view"],
    Operation.LIST: ["ls", "find", "tree", "dir", "exa", "fd"],
    Operation.WRITE: ["touch", "mkdir", "cp", "mv", "rm", "rmdir", "echo", "tee", "dd"],
    Operation.NAVIGATE: ["cd", "pwd", "pushd", "popd"],
    Operation.SEARCH: ["grep", "rg", "ag", "ack", "fgrep", "egrep", "ripgrep"],
    Operation.EXECUTE: [
        "node", "npm", "pnpm", "yarn", "bun", "deno",
        "python", "python3", "pip",
        "bash", "sh", "zsh",
        "go", "cargo", "rustc",
        "make", "cmake", "gcc", "g++",
        "java", "javac",
        "ruby", "gem",
        "php", "composer",
    ],
    Operation.OTHER: [],
}

_COMMAND_TO_OPERATION: dict[str, Operation] = {
    cmd: operation
    for operation, commands in COMMAND_PATTERNS.items()
    for cmd in commands
}

# `>` not preceded by `2` (stderr redirect), `>>`, or a pipe into tee
_WRITE_REDIRECTION = re.compile(r"[^2]>|>>|\|\s*tee\s")


def extract_base_command(command: str) -> str:
    """Return the first token of *command* with any path prefix removed.

    ``/usr/bin/cat file`` -> ``cat``.
    """
    trimmed = command.strip()
    if not trimmed:
        return ""
    first_token = trimmed.split()[0]
    return first_token.rsplit("/", 1)[-1] or first_token


def has_write_redirection(command: str) -> bool:
    return _WRITE_REDIRECTION.search(command) is not None


def classify_command(command: str) -> Operation:
    """Classify a shell command by the kind of filesystem operation it performs.

    Output redirection outranks the verb: ``cat a > b`` is a write even
    though ``cat`` alone is a read. Unknown verbs map to ``Operation.OTHER``.
    """
    if has_write_redirection(command):
        return Operation.WRITE
    return _COMMAND_TO_OPERATION.get(extract_base_command(command), Operation.OTHER)


def get_commands_for_operation(operation: Operation | str) -> list[str]:
    """Return the command names known to map to *operation*."""
    return list(COMMAND_PATTERNS.get(Operation(operation), []))
