"""
Action Dispatch

DESIGN DECISION: The engine does not know how money moves. Each action
type maps to an ActionHandler registered with the ActionRegistry, and
the registry is the only place handlers are invoked.

Dispatch enforces a per-action time budget. Every way a handler can
misbehave (missing, slow, raising, returning garbage) becomes a single
ActionExecutionError so the engine can record a FAILED execution.

IMPORTANT: Handlers are never retried. A retried transfer is a
double transfer.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog

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


logger = structlog.get_logger(__name__)


class ActionExecutionError(Exception):
    """An action handler failed, timed out or returned an invalid result."""

    def __init__(self, message: str, action_type: Optional[ActionType] = None):
        super().__init__(message)
        self.action_type = action_type


class ActionHandler(ABC):
    """
    Performs one kind of action on a user's behalf.

    Implementations return a structured result dict or raise.
    """

    @abstractmethod
    async def execute(self, user_id: str, action: Any) -> dict[str, Any]:
        pass


class ActionRegistry:
    """Maps action types to their handlers and dispatches actions."""

    def __init__(self, default_timeout_seconds: float = 30.0):
        self._handlers: dict[ActionType, ActionHandler] = {}
        self._default_timeout = default_timeout_seconds

    def register(self, action_type: ActionType, handler: ActionHandler) -> None:
        """Install a handler, replacing any previous one for the type."""
        self._handlers[ActionType(action_type)] = handler

    def get(self, action_type: ActionType) -> Optional[ActionHandler]:
        return self._handlers.get(ActionType(action_type))

    @property
    def registered_types(self) -> list[ActionType]:
        return list(self._handlers)

    async def dispatch(self, user_id: str, action: Any) -> dict[str, Any]:
        """
        Run the handler for an action within its time budget.

        Raises:
            ActionExecutionError: On any handler failure
        """
        action_type = action.action_type
        handler = self._handlers.get(action_type)
        if handler is None:
            raise ActionExecutionError(
                f"No handler registered for action type {action_type.value}",
                action_type,
            )

        timeout = action.timeout_seconds or self._default_timeout

        try:
            result = await asyncio.wait_for(handler.execute(user_id, action), timeout)
        except asyncio.TimeoutError:
            raise ActionExecutionError(
                f"{action_type.value} action timed out after {timeout}s",
                action_type,
            )
        except ActionExecutionError:
            raise
        except Exception as e:
            raise ActionExecutionError(str(e) or type(e).__name__, action_type) from e

        if not isinstance(result, dict):
            raise ActionExecutionError(
                f"{action_type.value} handler returned {type(result).__name__}, expected dict",
                action_type,
            )

        return result


# =============================================================================
# SIMULATED HANDLERS
# =============================================================================
# Log the request and report success. Swap for real integrations
# (payment provider, notification service) via ActionRegistry.register.

class SimulatedNotifyHandler(ActionHandler):
    async def execute(self, user_id: str, action: NotifyAction) -> dict[str, Any]:
        logger.info(
            "notification_sent",
            user_id=user_id,
            message=action.message,
            urgency=action.urgency.value,
        )
        return {"success": True, "message": "Notification sent"}


class SimulatedTransferHandler(ActionHandler):
    async def execute(self, user_id: str, action: TransferAction) -> dict[str, Any]:
        logger.info(
            "money_transferred",
            user_id=user_id,
            amount=action.amount,
            from_account=action.from_account,
            to_account=action.to_account,
        )
        return {"success": True, "amount": action.amount}


class SimulatedPauseSpendingHandler(ActionHandler):
    async def execute(self, user_id: str, action: PauseSpendingAction) -> dict[str, Any]:
        logger.info(
            "spending_paused",
            user_id=user_id,
            category=action.category,
            duration_days=action.duration_days,
        )
        return {"success": True, "paused": True}


class SimulatedAutoPayHandler(ActionHandler):
    async def execute(self, user_id: str, action: AutoPayAction) -> dict[str, Any]:
        logger.info("bill_auto_paid", user_id=user_id, method=action.method)
        return {"success": True, "paid": True}


class SimulatedSaveMoneyHandler(ActionHandler):
    async def execute(self, user_id: str, action: SaveMoneyAction) -> dict[str, Any]:
        logger.info(
            "money_saved",
            user_id=user_id,
            amount=action.amount,
            account=action.account,
        )
        return {"success": True, "saved": action.amount}


class SimulatedInvestHandler(ActionHandler):
    async def execute(self, user_id: str, action: InvestAction) -> dict[str, Any]:
        logger.info(
            "money_invested",
            user_id=user_id,
            amount=action.amount,
            instrument=action.instrument,
        )
        return {"success": True, "invested": action.amount}


class SimulatedAlertHandler(ActionHandler):
    async def execute(self, user_id: str, action: AlertAction) -> dict[str, Any]:
        logger.warning(
            "alert_sent",
            user_id=user_id,
            message=action.message,
            severity=action.severity.value,
        )
        return {"success": True, "alert": action.message}


def create_default_registry(default_timeout_seconds: float = 30.0) -> ActionRegistry:
    """Registry with a simulated handler for every action type."""
    registry = ActionRegistry(default_timeout_seconds)
    registry.register(ActionType.NOTIFY, SimulatedNotifyHandler())
    registry.register(ActionType.TRANSFER, SimulatedTransferHandler())
    registry.register(ActionType.PAUSE_SPENDING, SimulatedPauseSpendingHandler())
    registry.register(ActionType.AUTO_PAY, SimulatedAutoPayHandler())
    registry.register(ActionType.SAVE_MONEY, SimulatedSaveMoneyHandler())
    registry.register(ActionType.INVEST, SimulatedInvestHandler())
    registry.register(ActionType.ALERT, SimulatedAlertHandler())
    return registry
