"""Tests for agent message normalization."""

import pytest

from agentgate.agent.normalizer import join_text, normalize, session_init_id
from agentgate.agent.schema import AgentEventType


class TestNormalize:
    def test_bare_string(self):
        event = normalize("hello")
        assert event.type == AgentEventType.TEXT
        assert event.value == "hello"

    @pytest.mark.parametrize("message", ["", "   ", "\n", "\n\t"])
    def test_any_bare_string_is_text(self, message):
        event = normalize(message)
        assert event.type == AgentEventType.TEXT
        assert event.value == message

    def test_system_init_binds_session(self):
        event = normalize({"type": "system", "subtype": "init", "session_id": "abc-123"})
        assert event.type == AgentEventType.SESSION_BOUND
        assert event.session_id == "abc-123"

    def test_system_without_init_dropped(self):
        assert normalize({"type": "system", "subtype": "compact", "session_id": "x"}) is None

    def test_assistant_text_parts_joined_by_newline(self):
        event = normalize(
            {
                "type": "assistant",
                "message": {
                    "content": [
                        {"type": "text", "text": "first"},
                        {"type": "tool_use", "name": "Write", "input": {}},
                        {"type": "text", "text": "second"},
                    ]
                },
            }
        )
        assert event.type == AgentEventType.TEXT
        assert event.value == "first\nsecond"

    def test_assistant_whitespace_text_kept(self):
        message = {"type": "assistant", "message": {"content": [{"type": "text", "text": "\n"}]}}
        assert normalize(message).value == "\n"

    def test_assistant_empty_text_dropped(self):
        message = {"type": "assistant", "message": {"content": [{"type": "text", "text": ""}]}}
        assert normalize(message) is None

    def test_assistant_without_text_dropped(self):
        message = {"type": "assistant", "message": {"content": [{"type": "tool_use", "name": "Bash"}]}}
        assert normalize(message) is None

    def test_result_suppressed(self):
        assert normalize({"type": "result", "result": "final answer", "content": "final answer"}) is None

    def test_direct_content_field(self):
        assert normalize({"content": "streamed"}).value == "streamed"
        assert normalize({"text": "also streamed"}).value == "also streamed"
        assert normalize({"content": "  "}).value == "  "

    @pytest.mark.parametrize(
        "message",
        [
            None,
            42,
            {"type": "user", "message": {"content": "tool result"}},
            {"content": ["not", "a", "string"]},
            {"content": ""},
        ],
    )
    def test_unrecognized_dropped(self, message):
        assert normalize(message) is None


class TestSessionInitId:
    def test_missing_id(self):
        assert session_init_id({"type": "system", "subtype": "init"}) is None

    def test_non_mapping(self):
        assert session_init_id("system") is None


class TestJoinText:
    def test_separates_with_blank_line(self):
        assert join_text(["a", "b", "c"]) == "a\n\nb\n\nc"

    def test_skips_separator_around_empty_chunks(self):
        assert join_text(["", "a", "", "b"]) == "a\n\nb"

    def test_empty(self):
        assert join_text([]) == ""
