"""
Tests for wire protocol helpers and the chat event model.
"""

import pytest
from pydantic import ValidationError

from securerelay.common.protocol import ChatEvent, is_client_quit, is_server_quit


def test_chat_event_rendering():
    assert str(ChatEvent(origin="Alice", body="hello")) == "Alice: hello"
    assert str(ChatEvent.system("Goodbye")) == "SERVER: Goodbye"
    assert str(ChatEvent.joined("Alice")) == "SERVER: Alice joined the chat"
    assert str(ChatEvent.left("Alice")) == "SERVER: Alice left the chat"


def test_chat_event_is_immutable():
    event = ChatEvent(origin="Alice", body="hello")
    with pytest.raises(ValidationError):
        event.body = "changed"


@pytest.mark.parametrize("text,expected", [
    ("/quit", True), ("/EXIT", True), (" /Quit ", True), ("quit", False), ("Bye", False),
])
def test_server_quit_markers(text, expected):
    assert is_server_quit(text) is expected


@pytest.mark.parametrize("text,expected", [
    ("Bye", True), ("GOODBYE", True), ("bye now", False), ("/quit", False),
])
def test_client_quit_markers(text, expected):
    assert is_client_quit(text) is expected
