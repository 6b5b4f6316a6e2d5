"""Best-effort extraction of path-like tokens from shell commands.

This is a heuristic over a tokenized command string, not a shell grammar.
Tokens that look like paths are kept in order of appearance and resolved
against the working directory the recorder is tracking.
"""

from __future__ import annotations

import re
import shlex
from typing import NamedTuple

SHELL_KEYWORDS = frozenset({
    "&&", "||", "|", ";",
    "if", "then", "else", "fi",
    "for", "do", "done", "while",
    "case", "esac",
})

COMMON_DIRS = frozenset({
    "src", "lib", "dist", "build", "node_modules", "components", "pages",
    "app", "public", "assets", "tests", "test", "spec", "config", "scripts",
    "docs", "hooks",
})

COMMON_FILES = frozenset({"Makefile", "Dockerfile", "README", "LICENSE", "CHANGELOG"})

_EXTENSION = re.compile(r"\.\w{1,10}$")
_OPERATOR = re.compile(r"^[();<>|&]+$")
_SLASHES = re.compile(r"/+")


class ResolvedPaths(NamedTuple):
    raw: list[str]
    resolved: list[str]


def tokenize(command: str) -> list[str] | None:
    """Split *command* with shell quoting rules, dropping operator tokens.

    Returns ``None`` when the command cannot be lexed (unbalanced quotes,
    dangling escape).
    """
    lexer = shlex.shlex(command, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    try:
        tokens = list(lexer)
    except ValueError:
        return None
    return [t for t in tokens if not _OPERATOR.match(t)]


def naive_tokenize(command: str) -> list[str]:
    return command.split()


def is_likely_path(token: str) -> bool:
    """Decide whether *token* looks like a filesystem path.

    Rules are evaluated in order and the first match wins.
    """
    if not token or token.startswith("-") or token in SHELL_KEYWORDS:
        return False
    if token == ".":
        return True
    if token.startswith(("/", "./", "../")):
        return True
    if _EXTENSION.search(token):
        return True
    if "/" in token and "://" not in token:
        return True
    if "*" in token or "?" in token:
        return True
    return token in COMMON_DIRS or token in COMMON_FILES


def extract_paths(command: str) -> list[str]:
    """Return the path-like tokens of *command* in order of appearance."""
    tokens = tokenize(command)
    if tokens is None:
        tokens = naive_tokenize(command)
    return [t for t in tokens if is_likely_path(t)]


def normalize_path(path: str) -> str:
    """Collapse repeated slashes and drop a trailing slash (except for root)."""
    normalized = _SLASHES.sub("/", path)
    if len(normalized) > 1 and normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def resolve_path(path: str, cwd: str) -> str:
    """Resolve *path* to an absolute path against *cwd*.

    Each leading ``..`` segment pops one segment off *cwd* (never above
    ``/``). Interior ``..`` segments are left as written.
    """
    if path.startswith("/"):
        return normalize_path(path)
    if path == ".":
        return normalize_path(cwd)
    if path.startswith("./"):
        return normalize_path(f"{cwd}/{path[2:]}")
    if path == ".." or path.startswith("../"):
        cwd_parts = [p for p in cwd.split("/") if p]
        path_parts = path.split("/")
        up = 0
        for part in path_parts:
            if part != "..":
                break
            up += 1
        remaining = cwd_parts[:-up] + path_parts[up:]
        return normalize_path("/" + "/".join(remaining))
    return normalize_path(f"{cwd}/{path}")


def extract_and_resolve_paths(command: str, cwd: str) -> ResolvedPaths:
    raw = extract_paths(command)
    return ResolvedPaths(raw=raw, resolved=[resolve_path(p, cwd) for p in raw])
