"""
Finite state machine for the delivery-address change flow.

One machine is built per inbound message: nothing is persisted between
turns, so each turn re-enters at NEED_ORDER_INFO and advances as far as
the current parameters allow. The state it settles in decides the reply.

    NEED_ORDER_INFO -> ORDER_VALIDATED -> NOT_SHIPPED | SHIPPED
        -> AWAITING_NEW_ADDRESS | AWAITING_CONFIRMATION -> CONFIRMED
        -> (CARRIER_NOTIFIED) -> APPLIED

Usage:
    sm = AddressChangeStateMachine()
    sm.transition(AddressChangeTrigger.ORDER_FOUND)
    assert sm.current_state == AddressChangeState.ORDER_VALIDATED
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class AddressChangeState(str, Enum):
    """All states of the address change flow."""
    NEED_ORDER_INFO = "need_order_info"
    ORDER_VALIDATED = "order_validated"
    NOT_SHIPPED = "not_shipped"
    SHIPPED = "shipped"
    AWAITING_NEW_ADDRESS = "awaiting_new_address"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    CARRIER_NOTIFIED = "carrier_notified"
    APPLIED = "applied"
    FAILED = "failed"


class AddressChangeTrigger(str, Enum):
    """Events that cause state transitions."""
    ORDER_FOUND = "order_found"
    NO_FULFILLMENT = "no_fulfillment"
    HAS_FULFILLMENT = "has_fulfillment"
    ADDRESS_MISSING = "address_missing"
    ADDRESS_INVALID = "address_invalid"
    ADDRESS_VALIDATED = "address_validated"
    ADDRESS_CHECK_FAILED = "address_check_failed"
    NEW_ADDRESS_RECEIVED = "new_address_received"
    USER_CONFIRMED = "user_confirmed"
    CARRIER_CALL_FINISHED = "carrier_call_finished"
    CARRIER_CALL_FAILED = "carrier_call_failed"
    ADDRESS_APPLIED = "address_applied"
    UPDATE_FAILED = "update_failed"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: AddressChangeState
    to_state: AddressChangeState
    trigger: AddressChangeTrigger
    guard: Optional[Callable[["AddressChangeStateMachine"], bool]] = None


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: AddressChangeState
    entered_at: datetime
    trigger: Optional[AddressChangeTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


def _not_shipped(sm: "AddressChangeStateMachine") -> bool:
    return not sm.shipped


def _shipped(sm: "AddressChangeStateMachine") -> bool:
    return sm.shipped


# States the flow may rest in at the end of a turn
SETTLED_STATES = frozenset({
    AddressChangeState.NEED_ORDER_INFO,
    AddressChangeState.AWAITING_NEW_ADDRESS,
    AddressChangeState.AWAITING_CONFIRMATION,
    AddressChangeState.APPLIED,
    AddressChangeState.FAILED,
})


class AddressChangeStateMachine:
    """
    Deterministic state machine for one turn of the address change flow.

    The commerce mutation is only reachable from CONFIRMED (not shipped)
    or CARRIER_NOTIFIED (shipped), so an address can never be applied
    without an explicit confirmation, and never for a shipped order
    before the carrier call step has finished.
    """

    TRANSITIONS: list[Transition] = [
        # --- Order validation ---
        Transition(AddressChangeState.NEED_ORDER_INFO, AddressChangeState.ORDER_VALIDATED,
                   AddressChangeTrigger.ORDER_FOUND),
        Transition(AddressChangeState.ORDER_VALIDATED, AddressChangeState.NOT_SHIPPED,
                   AddressChangeTrigger.NO_FULFILLMENT),
        Transition(AddressChangeState.ORDER_VALIDATED, AddressChangeState.SHIPPED,
                   AddressChangeTrigger.HAS_FULFILLMENT),

        # --- Address collection ---
        Transition(AddressChangeState.NOT_SHIPPED, AddressChangeState.AWAITING_NEW_ADDRESS,
                   AddressChangeTrigger.ADDRESS_MISSING),
        Transition(AddressChangeState.SHIPPED, AddressChangeState.AWAITING_NEW_ADDRESS,
                   AddressChangeTrigger.ADDRESS_MISSING),
        Transition(AddressChangeState.NOT_SHIPPED, AddressChangeState.AWAITING_CONFIRMATION,
                   AddressChangeTrigger.NEW_ADDRESS_RECEIVED),
        Transition(AddressChangeState.SHIPPED, AddressChangeState.AWAITING_CONFIRMATION,
                   AddressChangeTrigger.NEW_ADDRESS_RECEIVED),

        # --- Address validation ---
        Transition(AddressChangeState.AWAITING_CONFIRMATION, AddressChangeState.AWAITING_NEW_ADDRESS,
                   AddressChangeTrigger.ADDRESS_INVALID),
        Transition(AddressChangeState.AWAITING_CONFIRMATION, AddressChangeState.AWAITING_CONFIRMATION,
                   AddressChangeTrigger.ADDRESS_VALIDATED),
        Transition(AddressChangeState.AWAITING_CONFIRMATION, AddressChangeState.FAILED,
                   AddressChangeTrigger.ADDRESS_CHECK_FAILED),

        # --- Confirmation gate ---
        Transition(AddressChangeState.AWAITING_CONFIRMATION, AddressChangeState.CONFIRMED,
                   AddressChangeTrigger.USER_CONFIRMED),

        # --- Not shipped: apply directly ---
        Transition(AddressChangeState.CONFIRMED, AddressChangeState.APPLIED,
                   AddressChangeTrigger.ADDRESS_APPLIED, guard=_not_shipped),
        Transition(AddressChangeState.CONFIRMED, AddressChangeState.FAILED,
                   AddressChangeTrigger.UPDATE_FAILED, guard=_not_shipped),

        # --- Shipped: call the carrier first ---
        Transition(AddressChangeState.CONFIRMED, AddressChangeState.CARRIER_NOTIFIED,
                   AddressChangeTrigger.CARRIER_CALL_FINISHED, guard=_shipped),
        Transition(AddressChangeState.CONFIRMED, AddressChangeState.FAILED,
                   AddressChangeTrigger.CARRIER_CALL_FAILED, guard=_shipped),
        Transition(AddressChangeState.CARRIER_NOTIFIED, AddressChangeState.APPLIED,
                   AddressChangeTrigger.ADDRESS_APPLIED),
        Transition(AddressChangeState.CARRIER_NOTIFIED, AddressChangeState.FAILED,
                   AddressChangeTrigger.UPDATE_FAILED),
    ]

    def __init__(self) -> None:
        self._current_state = AddressChangeState.NEED_ORDER_INFO
        self._history: list[StateEntry] = [
            StateEntry(state=AddressChangeState.NEED_ORDER_INFO, entered_at=datetime.now(timezone.utc))
        ]
        self.shipped: bool = False

    @property
    def current_state(self) -> AddressChangeState:
        return self._current_state

    def transition(self, trigger: AddressChangeTrigger) -> AddressChangeState:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new flow state.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                if t.guard is not None and not t.guard(self):
                    continue

                old_state = self._current_state
                self._current_state = t.to_state
                if trigger == AddressChangeTrigger.HAS_FULFILLMENT:
                    self.shipped = True
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "Address flow: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[AddressChangeTrigger]:
        """Return all triggers valid from the current state."""
        return [
            t.trigger for t in self.TRANSITIONS
            if t.from_state == self._current_state and (t.guard is None or t.guard(self))
        ]

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_settled(self) -> bool:
        """Check if the flow may end the turn in its current state."""
        return self._current_state in SETTLED_STATES
