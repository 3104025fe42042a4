"""Tests for execution result variants."""

import pytest

from builder_agent import (
    CommandResult,
    ExecutionResult,
    FileResult,
    MessageResult,
    ServerResult,
)


class TestExecutionResult:
    """Tests for the result variants."""

    def test_base_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            ExecutionResult(success=True)

    def test_variant_without_feedback_is_abstract(self):
        class Silent(ExecutionResult):
            pass

        with pytest.raises(TypeError):
            Silent(success=True)

    @pytest.mark.parametrize(
        ("result", "kind"),
        [
            (CommandResult(success=True, command="ls"), "command"),
            (FileResult(success=True, path="a.txt"), "file"),
            (MessageResult(success=True, text="hi"), "message"),
            (ServerResult(success=False, error="boom"), "server"),
        ],
    )
    def test_kind_is_reported(self, result, kind):
        assert result.to_dict()["type"] == kind
        assert result.feedback()

    def test_failed_file_feedback(self):
        result = FileResult(success=False, error="Path escapes workspace", path="../x")
        assert result.feedback() == 'File "../x" was not written. Error: Path escapes workspace'

    def test_command_without_output(self):
        result = CommandResult(success=True, command="true", exit_code=0)
        assert result.feedback() == 'Command "true" executed. Success: true. Output: No output'
