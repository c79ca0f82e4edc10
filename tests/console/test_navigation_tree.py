"""Tests for NavigationTree dispatch and the sidebar sections."""

from unittest.mock import Mock

import pytest

from mcpanel.console.widgets import GlassButton
from mcpanel.shell.navigation_tree import NavigationTree


@pytest.fixture
def tree():
    return NavigationTree()


class TestDispatch:
    def test_action_handler(self, tree):
        reconnect = Mock()
        tree.register_action("reconnect", reconnect)

        assert tree.dispatch({"type": "action", "id": "reconnect"}) is True
        reconnect.assert_called_once_with()

    def test_unknown_action(self, tree):
        assert tree.dispatch({"type": "action", "id": "nope"}) is False

    def test_node_handler_gets_data(self, tree):
        handler = Mock()
        tree.register_node_handler("server", handler)

        data = {"type": "server", "id": "abc"}
        assert tree.dispatch(data) is True
        handler.assert_called_once_with(data)

    def test_untyped_node_ignored(self, tree):
        handler = Mock()
        tree.register_node_handler("server", handler)

        assert tree.dispatch({}) is False
        assert tree.dispatch({"id": "abc"}) is False
        handler.assert_not_called()

    def test_unregistered_type(self, tree):
        assert tree.dispatch({"type": "log", "cat": "events"}) is False

    def test_selection_event_dispatches(self, tree):
        handler = Mock()
        tree.register_node_handler("log", handler)

        event = Mock()
        event.node.data = {"type": "log", "cat": "errors"}
        tree.on_tree_node_selected(event)

        handler.assert_called_once_with({"type": "log", "cat": "errors"})

    def test_selection_without_data(self, tree):
        event = Mock()
        event.node.data = None
        tree.on_tree_node_selected(event)


class TestGlassButton:
    @pytest.mark.parametrize("style,variant", [
        ("primary", "primary"),
        ("secondary", "default"),
        ("destructive", "error"),
    ])
    def test_variants(self, style, variant):
        button = GlassButton("Go", style)
        assert button.variant == variant
        assert button.glass_style == style
        assert button.has_class("glass")
        assert button.has_class(f"glass-{style}")

    def test_unknown_style(self):
        with pytest.raises(ValueError):
            GlassButton("Go", "shiny")
