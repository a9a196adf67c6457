"""
Tests for action dispatch.
"""

import asyncio

import pytest

from fincore.automation.actions import (
    ActionExecutionError,
    ActionHandler,
    ActionRegistry,
    create_default_registry,
)
from fincore.models.automation import (
    ActionType,
    AlertAction,
    AutoPayAction,
    InvestAction,
    NotifyAction,
    PauseSpendingAction,
    SaveMoneyAction,
    TransferAction,
)


class SlowHandler(ActionHandler):
    async def execute(self, user_id, action):
        await asyncio.sleep(5)
        return {"success": True}


class BrokenHandler(ActionHandler):
    async def execute(self, user_id, action):
        raise RuntimeError("payment provider rejected the request")


class SloppyHandler(ActionHandler):
    async def execute(self, user_id, action):
        return "ok"


class TestDefaultRegistry:
    """Tests for the simulated handlers."""

    def test_every_action_type_registered(self):
        """Test that the default registry covers all action types."""
        registry = create_default_registry()
        assert set(registry.registered_types) == set(ActionType)

    @pytest.mark.parametrize(
        "action, expected",
        [
            (NotifyAction(message="hi"), {"success": True, "message": "Notification sent"}),
            (TransferAction(amount=50, from_account="A", to_account="B"), {"success": True, "amount": 50}),
            (PauseSpendingAction(category="fun"), {"success": True, "paused": True}),
            (AutoPayAction(), {"success": True, "paid": True}),
            (SaveMoneyAction(amount=100), {"success": True, "saved": 100}),
            (InvestAction(amount=25), {"success": True, "invested": 25}),
            (AlertAction(message="careful"), {"success": True, "alert": "careful"}),
        ],
    )
    def test_simulated_results(self, action, expected):
        """Test the result payload of each simulated handler."""
        registry = create_default_registry()
        assert asyncio.run(registry.dispatch("user-1", action)) == expected


class TestDispatchFailures:
    """Tests that every handler failure becomes ActionExecutionError."""

    def test_missing_handler(self):
        """Test dispatch without a registered handler."""
        registry = ActionRegistry()
        with pytest.raises(ActionExecutionError, match="No handler"):
            asyncio.run(registry.dispatch("u", NotifyAction(message="x")))

    def test_handler_exception(self):
        """Test that handler errors keep their message."""
        registry = ActionRegistry()
        registry.register(ActionType.TRANSFER, BrokenHandler())
        action = TransferAction(amount=1, from_account="A", to_account="B")
        with pytest.raises(ActionExecutionError, match="payment provider rejected"):
            asyncio.run(registry.dispatch("u", action))

    def test_timeout(self):
        """Test the per-action time budget."""
        registry = ActionRegistry(default_timeout_seconds=30)
        registry.register(ActionType.NOTIFY, SlowHandler())
        action = NotifyAction(message="x", timeout_seconds=0.01)
        with pytest.raises(ActionExecutionError, match="timed out"):
            asyncio.run(registry.dispatch("u", action))

    def test_non_dict_result(self):
        """Test that handlers must return a dict."""
        registry = ActionRegistry()
        registry.register(ActionType.NOTIFY, SloppyHandler())
        with pytest.raises(ActionExecutionError, match="expected dict"):
            asyncio.run(registry.dispatch("u", NotifyAction(message="x")))

    def test_register_replaces_handler(self):
        """Test that a later registration wins."""
        registry = create_default_registry()
        registry.register(ActionType.NOTIFY, BrokenHandler())
        with pytest.raises(ActionExecutionError):
            asyncio.run(registry.dispatch("u", NotifyAction(message="x")))
