# swiftdispatch/status.py
"""
Delivery status machine.

Happy path (advanced one step at a time):

    pending -> assigned -> pickup -> in_transit -> delivered

``cancelled`` is reachable from every non-terminal state. ``delivered`` and
``cancelled`` are terminal: no transition leaves them.

The machine works on Delivery values and returns updated copies. Persisting
them, and the driver-side bookkeeping that goes with a transition, is the
dispatch engine's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, FrozenSet, List, Optional

from . import config
from .errors import InvalidTransitionError
from .models import Delivery, DeliveryStatus, ProofOfDelivery

logger = logging.getLogger(__name__)

S = DeliveryStatus

# Every legal (from -> to) edge. Anything missing is rejected.
TRANSITIONS: Dict[DeliveryStatus, FrozenSet[DeliveryStatus]] = {
    S.PENDING: frozenset({S.ASSIGNED, S.CANCELLED}),
    S.ASSIGNED: frozenset({S.PICKUP, S.CANCELLED}),
    S.PICKUP: frozenset({S.IN_TRANSIT, S.CANCELLED}),
    S.IN_TRANSIT: frozenset({S.DELIVERED, S.CANCELLED}),
    S.DELIVERED: frozenset(),
    S.CANCELLED: frozenset(),
}

# Next state on the happy path; None where "advance" has nowhere to go.
NEXT_STATUS: Dict[DeliveryStatus, Optional[DeliveryStatus]] = {
    S.PENDING: S.ASSIGNED,
    S.ASSIGNED: S.PICKUP,
    S.PICKUP: S.IN_TRANSIT,
    S.IN_TRANSIT: S.DELIVERED,
    S.DELIVERED: None,
    S.CANCELLED: None,
}

CANCELLABLE: FrozenSet[DeliveryStatus] = frozenset(
    status for status, targets in TRANSITIONS.items() if S.CANCELLED in targets
)


def can_transition(current: DeliveryStatus, target: DeliveryStatus) -> bool:
    return target in TRANSITIONS[current]


@dataclass(frozen=True)
class TransitionEvent:
    """Emitted to subscribers after every status change."""
    delivery_id: str
    from_status: DeliveryStatus
    to_status: DeliveryStatus
    driver_id: Optional[str]
    at: datetime = field(default_factory=datetime.now)


Listener = Callable[[TransitionEvent], None]


class StatusMachine:
    """
    Validates and applies delivery status transitions.

    Methods return a new Delivery; the input is never modified. Listeners are
    notified through ``notify`` once the caller has persisted the change.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a transition listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: TransitionEvent) -> None:
        """
        Deliver an event to every listener.

        The transition is already committed when this runs, so a failing
        listener is logged and skipped; it never reaches the caller.
        """
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Transition listener {listener!r} failed for delivery {event.delivery_id}")

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def assign(self, delivery: Delivery, driver_id: str) -> Delivery:
        """pending -> assigned, binding the driver."""
        self._require(delivery, S.ASSIGNED)
        return replace(delivery, status=S.ASSIGNED, driver_id=driver_id)

    def advance(self, delivery: Delivery, proof: Optional[ProofOfDelivery] = None) -> Delivery:
        """
        Move one step along the happy path.

        A pending delivery cannot be advanced: it has no driver yet and must
        go through assignment.

        Args:
            delivery: The delivery to advance
            proof: Proof of delivery, accepted only when the step enters 'delivered'

        Raises:
            InvalidTransitionError: From a terminal or pending state, when proof
                is given for a step that does not deliver, or when a signature
                is required and missing
        """
        target = NEXT_STATUS[delivery.status]
        if target is None:
            raise InvalidTransitionError(
                f"Delivery {delivery.id} is {delivery.status.value}; no further transitions allowed",
                delivery.id,
            )
        if delivery.status == S.PENDING:
            raise InvalidTransitionError(
                f"Delivery {delivery.id} is pending; assign a driver before advancing",
                delivery.id,
            )
        return self._enter(delivery, target, proof, enforce_signature=True)

    def cancel(self, delivery: Delivery) -> Delivery:
        """Any non-terminal state -> cancelled. The driver reference is dropped."""
        if not config.ALLOW_CANCELLATIONS:
            raise InvalidTransitionError("Cancellations are disabled", delivery.id)
        self._require(delivery, S.CANCELLED)
        return replace(delivery, status=S.CANCELLED, driver_id=None)

    def set_status(
        self,
        delivery: Delivery,
        status: DeliveryStatus,
        proof: Optional[ProofOfDelivery] = None,
    ) -> Delivery:
        """
        Administrative override: jump to any status, skipping the sequence check.

        Still refused when the delivery is already terminal, and the driver
        invariant is kept: 'pending' and 'cancelled' drop the driver, while a
        driver-bound status cannot be set on a delivery that has none.
        """
        if delivery.status.is_terminal:
            raise InvalidTransitionError(
                f"Delivery {delivery.id} is {delivery.status.value}; no further transitions allowed",
                delivery.id,
            )
        if status.carries_driver and delivery.driver_id is None:
            raise InvalidTransitionError(
                f"Delivery {delivery.id} has no driver; cannot set status {status.value}",
                delivery.id,
            )
        return self._enter(delivery, status, proof, enforce_signature=False)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require(self, delivery: Delivery, target: DeliveryStatus) -> None:
        if not can_transition(delivery.status, target):
            raise InvalidTransitionError(
                f"Delivery {delivery.id}: {delivery.status.value} -> {target.value} is not allowed",
                delivery.id,
            )

    def _enter(
        self,
        delivery: Delivery,
        target: DeliveryStatus,
        proof: Optional[ProofOfDelivery],
        enforce_signature: bool,
    ) -> Delivery:
        if proof is not None and target != S.DELIVERED:
            raise InvalidTransitionError(
                f"Proof of delivery is only accepted when entering delivered (got {target.value})",
                delivery.id,
            )
        if (
            enforce_signature
            and target == S.DELIVERED
            and config.REQUIRE_SIGNATURE
            and (proof is None or not proof.signature)
        ):
            raise InvalidTransitionError(f"Delivery {delivery.id} requires a signature", delivery.id)

        changes = {"status": target}
        if proof is not None:
            changes["proof"] = proof
        if not target.carries_driver:
            changes["driver_id"] = None
        return replace(delivery, **changes)
