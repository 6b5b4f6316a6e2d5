"""Tests for command classification."""

import pytest

from agent_traversal.recorder.classifier import (
    classify_command,
    extract_base_command,
    get_commands_for_operation,
    has_write_redirection,
)
from agent_traversal.recorder.models import Operation


class TestBaseCommand:
    def test_first_token(self) -> None:
        assert extract_base_command("ls -la src") == "ls"

    def test_strips_path_prefix(self) -> None:
        assert extract_base_command("/usr/bin/cat file.txt") == "cat"

    def test_empty(self) -> None:
        assert extract_base_command("   ") == ""


class TestClassify:
    @pytest.mark.parametrize("command,expected", [
        ("cat package.json", Operation.READ),
        ("/usr/bin/cat file.txt", Operation.READ),
        ("head -n 5 README.md", Operation.READ),
        ("ls -la", Operation.LIST),
        ("find . -type f", Operation.LIST),
        ("mkdir -p build", Operation.WRITE),
        ("rm -rf dist", Operation.WRITE),
        ("cd src", Operation.NAVIGATE),
        ("pwd", Operation.NAVIGATE),
        ("grep -r export src/", Operation.SEARCH),
        ("rg TODO", Operation.SEARCH),
        ("python3 main.py", Operation.EXECUTE),
        ("npm test", Operation.EXECUTE),
        ("make", Operation.EXECUTE),
    ])
    def test_table_lookup(self, command: str, expected: Operation) -> None:
        assert classify_command(command) == expected

    def test_unknown_is_other(self) -> None:
        assert classify_command("unknown_tool foo") == Operation.OTHER

    def test_empty_is_other(self) -> None:
        assert classify_command("") == Operation.OTHER

    def test_redirect_overrides_read(self) -> None:
        assert classify_command("cat x > y") == Operation.WRITE

    def test_append_overrides_execute(self) -> None:
        assert classify_command("python script.py >> out.log") == Operation.WRITE

    def test_tee_pipe_is_write(self) -> None:
        assert classify_command("ls | tee listing.txt") == Operation.WRITE

    def test_redirect_makes_unknown_verb_a_write(self) -> None:
        assert classify_command("echo 'hi' > notes.txt") == Operation.WRITE
        assert classify_command("printf hi > notes.txt") == Operation.WRITE

    def test_stderr_redirect_is_not_write(self) -> None:
        assert classify_command("cat missing.txt 2>/dev/null") == Operation.READ
        assert classify_command("ls nope 2>&1") == Operation.LIST

    def test_pipe_without_tee_keeps_verb(self) -> None:
        assert classify_command("find . -name '*.js' | head -20") == Operation.LIST


class TestRedirection:
    def test_detects(self) -> None:
        assert has_write_redirection("a > b")
        assert has_write_redirection("a >> b")
        assert has_write_redirection("a | tee b")

    def test_ignores_stderr(self) -> None:
        assert not has_write_redirection("a 2> err.log")


class TestCommandsForOperation:
    def test_read_commands(self) -> None:
        assert "cat" in get_commands_for_operation(Operation.READ)

    def test_accepts_string(self) -> None:
        assert "grep" in get_commands_for_operation("search")

    def test_other_is_empty(self) -> None:
        assert get_commands_for_operation(Operation.OTHER) == []

    def test_returns_copy(self) -> None:
        get_commands_for_operation(Operation.LIST).append("bogus")
        assert "bogus" not in get_commands_for_operation(Operation.LIST)
