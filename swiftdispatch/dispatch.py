# swiftdispatch/dispatch.py
"""
Dispatch Engine for the SwiftShip dashboard.

This module binds deliveries to drivers and drives them through their
lifecycle. Two assignment paths are available:

1. **Single assignment** (``assign`` / ``assign_nearest``): binds one delivery
   to one driver. ``assign_nearest`` picks the driver with the NearestFirst
   policy.

2. **Batch assignment** (``assign_all``): binds the whole pending queue
   against a snapshot of available drivers with the RoundRobin policy.
   Distance is ignored here. Both policies are injected through the
   constructor and can be swapped independently.

Every mutation runs under one engine-wide re-entrant lock, so an assignment
(delivery write + driver write) is never observed half-applied through the
engine and two concurrent requests can never bind the same delivery twice.
Delivery records are always written before driver records.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from . import performance
from .errors import ConflictError, DispatchError, InvalidTransitionError, NoCandidateError, NotFoundError
from .models import Coordinate, Delivery, DeliveryStatus, Driver, DriverStatus, ProofOfDelivery
from .performance import DriverMetrics, PerformanceSummary
from .ranking import Candidate, NearestFirst, RankingPolicy, RoundRobin, distance_to_pickup
from .status import Listener, StatusMachine, TransitionEvent
from .store import DeliveryStore, DriverStore

logger = logging.getLogger(__name__)

NO_PENDING_NOTICE = "No pending deliveries to assign"
NO_DRIVERS_NOTICE = "No available drivers for assignment"


@dataclass(frozen=True)
class AssignmentFailure:
    """One pair of a batch that could not be bound."""
    delivery_id: str
    driver_id: str
    kind: str
    message: str


@dataclass
class BatchResult:
    """
    Outcome of ``assign_all``.

    Attributes:
        assigned_count: Deliveries successfully bound
        failures: Pairs that failed; the batch carried on past each of them
        notice: Human-readable summary (success, no-op reason or failure warning)
        assignments: (delivery_id, driver_id) pairs that succeeded, in queue order
        unavailable: True when the batch was skipped because no driver was available
    """
    assigned_count: int = 0
    failures: List[AssignmentFailure] = field(default_factory=list)
    notice: str = ""
    assignments: List[Tuple[str, str]] = field(default_factory=list)
    unavailable: bool = False

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


class DispatchEngine:
    """
    Orchestrates delivery-to-driver assignment and status changes.

    Args:
        deliveries: Delivery store (injected; the engine keeps no other state)
        drivers: Driver store
        single_policy: Ranking used by ``rank_candidates`` / ``assign_nearest``
        batch_policy: Pairing used by ``assign_all``
        status_machine: Transition rules; a fresh one by default
    """

    def __init__(
        self,
        deliveries: DeliveryStore,
        drivers: DriverStore,
        single_policy: Optional[RankingPolicy] = None,
        batch_policy: Optional[RoundRobin] = None,
        status_machine: Optional[StatusMachine] = None,
    ) -> None:
        self.deliveries = deliveries
        self.drivers = drivers
        self.single_policy: RankingPolicy = single_policy or NearestFirst()
        self.batch_policy: RoundRobin = batch_policy or RoundRobin()
        self.status_machine = status_machine or StatusMachine()
        self._lock = threading.RLock()

    # =========================================================================
    # READS
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Receive a TransitionEvent after every committed status change."""
        return self.status_machine.subscribe(listener)

    def snapshot(self) -> Tuple[List[Delivery], List[Driver]]:
        """Consistent copy of all deliveries and drivers."""
        with self._lock:
            return self.deliveries.get_all(), self.drivers.get_all()

    def get_delivery(self, delivery_id: str) -> Delivery:
        delivery = self.deliveries.get_by_id(delivery_id)
        if delivery is None:
            raise NotFoundError(f"Delivery {delivery_id} not found", delivery_id)
        return delivery

    def get_driver(self, driver_id: str) -> Driver:
        driver = self.drivers.get_by_id(driver_id)
        if driver is None:
            raise NotFoundError(f"Driver {driver_id} not found", driver_id)
        return driver

    def rank_candidates(
        self,
        delivery: Delivery,
        drivers: Optional[Sequence[Driver]] = None,
    ) -> List[Driver]:
        """
        Eligible drivers for a delivery, best first.

        Args:
            delivery: The delivery to match
            drivers: Driver pool to rank (default: every driver in the store)

        Returns:
            Ordered list; empty when no driver is available
        """
        if drivers is None:
            drivers = self.drivers.get_all()
        return self.single_policy.rank(delivery, drivers)

    def best_match(
        self,
        delivery: Delivery,
        drivers: Optional[Sequence[Driver]] = None,
    ) -> Optional[Driver]:
        """Top-ranked driver, or None."""
        ranked = self.rank_candidates(delivery, drivers)
        return ranked[0] if ranked else None

    def candidates_for(self, delivery_id: str) -> List[Candidate]:
        """Nearest-first candidates with pickup distances, for display."""
        with self._lock:
            delivery = self.get_delivery(delivery_id)
            drivers = self.drivers.get_all()
        return [
            Candidate(driver=d, distance_km=distance_to_pickup(d, delivery))
            for d in self.single_policy.rank(delivery, drivers)
        ]

    # =========================================================================
    # ASSIGNMENT
    # =========================================================================

    def assign(self, delivery_id: str, driver_id: str) -> Delivery:
        """
        Bind a pending delivery to an available driver.

        Both sides are updated as one unit: the delivery gets the driver and
        moves to 'assigned'; the driver records the delivery as active and
        becomes 'busy'.

        Raises:
            NotFoundError: Unknown delivery or driver
            InvalidTransitionError: The delivery is not pending (e.g. already assigned)
            ConflictError: The driver is not available
        """
        with self._lock:
            delivery = self.get_delivery(delivery_id)
            driver = self.get_driver(driver_id)

            if delivery.status != DeliveryStatus.PENDING:
                holder = f" to driver {delivery.driver_id}" if delivery.driver_id else ""
                raise InvalidTransitionError(
                    f"Delivery {delivery_id} is already {delivery.status.value}{holder}",
                    delivery_id,
                )
            if not driver.is_available:
                raise ConflictError(
                    f"Driver {driver_id} is {driver.status.value}, not available",
                    driver_id,
                )

            updated = self.status_machine.assign(delivery, driver.id)
            self._commit(delivery, updated, driver_update={
                "active_deliveries": driver.active_deliveries | {delivery.id},
                "status": DriverStatus.BUSY,
            })

        logger.info(f"Assigned delivery {delivery_id} to driver {driver_id} ({driver.name})")
        return updated

    def assign_nearest(self, delivery_id: str) -> Delivery:
        """
        Assign a delivery to its best-ranked available driver.

        Raises:
            NotFoundError: Unknown delivery
            NoCandidateError: No driver is available
        """
        with self._lock:
            delivery = self.get_delivery(delivery_id)
            driver = self.best_match(delivery)
            if driver is None:
                raise NoCandidateError(f"No available driver for delivery {delivery_id}", delivery_id)
            return self.assign(delivery_id, driver.id)

    def assign_all(self) -> BatchResult:
        """
        Round-robin the pending queue over the available drivers.

        The i-th pending delivery (store order) goes to driver ``i mod N`` of
        the available snapshot taken at call start. At most
        ``min(pending, available)`` pairs are attempted; the rest stay pending.
        A failing pair is recorded and the batch moves on.

        Returns:
            BatchResult with the assigned count, failures and a notice
        """
        with self._lock:
            pending = [d for d in self.deliveries.get_all() if d.status == DeliveryStatus.PENDING]
            pool = self.drivers.get_available()

            if not pending:
                logger.info(NO_PENDING_NOTICE)
                return BatchResult(notice=NO_PENDING_NOTICE)
            if not pool:
                logger.warning(f"{NO_DRIVERS_NOTICE} ({len(pending)} pending)")
                return BatchResult(notice=NO_DRIVERS_NOTICE, unavailable=True)

            result = BatchResult()
            for index in range(min(len(pending), len(pool))):
                delivery = pending[index]
                driver = self.batch_policy.pick(index, pool)
                try:
                    self.assign(delivery.id, driver.id)
                except DispatchError as e:
                    logger.warning(f"Batch: could not assign {delivery.id} -> {driver.id}: {e}")
                    result.failures.append(AssignmentFailure(
                        delivery_id=delivery.id,
                        driver_id=driver.id,
                        kind=e.kind,
                        message=str(e),
                    ))
                    continue
                result.assignments.append((delivery.id, driver.id))
                result.assigned_count += 1

        if result.failures:
            result.notice = (
                f"Failed to auto-assign {len(result.failures)} deliveries. "
                f"Assigned {result.assigned_count} successfully."
            )
        else:
            result.notice = f"Auto-assigned {result.assigned_count} deliveries"
        logger.info(result.notice)
        return result

    # =========================================================================
    # STATUS CHANGES
    # =========================================================================

    def advance_status(self, delivery_id: str, proof: Optional[ProofOfDelivery] = None) -> Delivery:
        """
        Move a delivery one step along pending -> assigned -> pickup -> in_transit -> delivered.

        Raises:
            NotFoundError: Unknown delivery
            InvalidTransitionError: Terminal or pending delivery, or misplaced proof
        """
        with self._lock:
            delivery = self.get_delivery(delivery_id)
            updated = self.status_machine.advance(delivery, proof)
            self._commit(delivery, updated)
        return updated

    def cancel(self, delivery_id: str) -> Delivery:
        """
        Cancel a non-terminal delivery and release its driver.

        Raises:
            NotFoundError: Unknown delivery
            InvalidTransitionError: Already delivered or cancelled
        """
        with self._lock:
            delivery = self.get_delivery(delivery_id)
            updated = self.status_machine.cancel(delivery)
            self._commit(delivery, updated)
        return updated

    def set_status(
        self,
        delivery_id: str,
        status: DeliveryStatus,
        proof: Optional[ProofOfDelivery] = None,
    ) -> Delivery:
        """Administrative status override (see StatusMachine.set_status)."""
        with self._lock:
            delivery = self.get_delivery(delivery_id)
            updated = self.status_machine.set_status(delivery, status, proof)
            self._commit(delivery, updated)
        logger.warning(f"Status of {delivery_id} overridden: {delivery.status.value} -> {status.value}")
        return updated

    # =========================================================================
    # INTAKE
    # =========================================================================

    def book_delivery(self, data: dict) -> Delivery:
        """
        Create a pending delivery at the back of the queue.

        Raises:
            KeyError: A pickup or delivery address is missing
            ValueError: Invalid package details
        """
        with self._lock:
            delivery = self.deliveries.create(data)
        logger.info(f"Booked {delivery.tracking_id} for {delivery.customer_name or 'unknown customer'}")
        return delivery

    def onboard_driver(self, data: dict) -> Driver:
        """Create an available driver with no deliveries (see DriverStore.create)."""
        with self._lock:
            driver = self.drivers.create(data)
        logger.info(f"Onboarded driver {driver.id} ({driver.name}, {driver.vehicle_type.value})")
        return driver

    def update_driver_location(self, driver_id: str, location: Coordinate) -> Driver:
        """Record a telemetry position. Has no effect on assignments."""
        with self._lock:
            self.get_driver(driver_id)
            return self.drivers.update_location(driver_id, location)

    # =========================================================================
    # PERFORMANCE
    # =========================================================================

    def get_performance(self, driver_id: str) -> DriverMetrics:
        with self._lock:
            driver = self.get_driver(driver_id)
        return performance.metrics_for(driver)

    def get_fleet_efficiency(self) -> List[DriverMetrics]:
        with self._lock:
            drivers = self.drivers.get_all()
        return performance.fleet_efficiency(drivers)

    def get_performance_comparison(self) -> PerformanceSummary:
        with self._lock:
            drivers = self.drivers.get_all()
        return performance.performance_comparison(drivers)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _commit(
        self,
        before: Delivery,
        after: Delivery,
        driver_update: Optional[dict] = None,
    ) -> None:
        """
        Persist a transition: delivery first, then its driver.

        When the driver write fails the delivery write is undone and the
        error propagates. Listeners are notified only after both writes, and
        their failures are logged by the status machine, not raised.
        Must be called with the engine lock held.
        """
        self.deliveries.update(
            after.id,
            status=after.status,
            driver_id=after.driver_id,
            proof=after.proof,
        )
        try:
            if driver_update is not None:
                self.drivers.update(after.driver_id, **driver_update)
            else:
                self._release_driver(before, after)
        except Exception:
            self.deliveries.update(
                before.id,
                status=before.status,
                driver_id=before.driver_id,
                proof=before.proof,
            )
            logger.error(f"Rolled back delivery {before.id} to {before.status.value}")
            raise

        logger.info(f"Delivery {after.id}: {before.status.value} -> {after.status.value}")
        self.status_machine.notify(TransitionEvent(
            delivery_id=after.id,
            from_status=before.status,
            to_status=after.status,
            driver_id=after.driver_id or before.driver_id,
        ))

    def _release_driver(self, before: Delivery, after: Delivery) -> None:
        """
        Driver-side effects of leaving an active state.

        On 'delivered' the driver is credited a completed delivery; on any
        exit the delivery leaves the driver's active set, and a busy driver
        with nothing left becomes available again.
        """
        released = before.driver_id is not None and (
            after.driver_id is None or after.status == DeliveryStatus.DELIVERED
        )
        if not released:
            return

        driver = self.drivers.get_by_id(before.driver_id)
        if driver is None:
            logger.warning(f"Driver {before.driver_id} of delivery {before.id} no longer exists")
            return

        active = driver.active_deliveries - {before.id}
        changes = {"active_deliveries": active}
        if after.status == DeliveryStatus.DELIVERED:
            changes["total_deliveries"] = driver.total_deliveries + 1
        if not active and driver.status == DriverStatus.BUSY:
            changes["status"] = DriverStatus.AVAILABLE
        self.drivers.update(driver.id, **changes)
