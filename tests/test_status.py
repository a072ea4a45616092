import itertools

import pytest

from swiftdispatch import config
from swiftdispatch.errors import InvalidTransitionError
from swiftdispatch.models import DeliveryStatus as S
from swiftdispatch.models import ProofOfDelivery
from swiftdispatch.status import CANCELLABLE, NEXT_STATUS, StatusMachine, TransitionEvent, can_transition
from tests.conftest import make_delivery

LEGAL = {
    (S.PENDING, S.ASSIGNED),
    (S.PENDING, S.CANCELLED),
    (S.ASSIGNED, S.PICKUP),
    (S.ASSIGNED, S.CANCELLED),
    (S.PICKUP, S.IN_TRANSIT),
    (S.PICKUP, S.CANCELLED),
    (S.IN_TRANSIT, S.DELIVERED),
    (S.IN_TRANSIT, S.CANCELLED),
}


def delivery_in(status, driver_id="drv"):
    return make_delivery("d1", status=status, driver_id=driver_id if status.carries_driver else None)


@pytest.mark.parametrize("current,target", list(itertools.product(S, S)))
def test_transition_table(current, target):
    assert can_transition(current, target) == ((current, target) in LEGAL)


def test_terminal_states_have_no_exits():
    for status in (S.DELIVERED, S.CANCELLED):
        assert status.is_terminal
        assert NEXT_STATUS[status] is None
        assert not any(can_transition(status, target) for target in S)


def test_every_non_terminal_state_is_cancellable():
    assert CANCELLABLE == {S.PENDING, S.ASSIGNED, S.PICKUP, S.IN_TRANSIT}


class TestAdvance:
    @pytest.mark.parametrize("current,expected", [
        (S.ASSIGNED, S.PICKUP),
        (S.PICKUP, S.IN_TRANSIT),
        (S.IN_TRANSIT, S.DELIVERED),
    ])
    def test_one_step(self, current, expected):
        delivery = delivery_in(current)
        advanced = StatusMachine().advance(delivery)
        assert advanced.status == expected
        assert advanced.driver_id == "drv"
        assert delivery.status == current

    @pytest.mark.parametrize("current", [S.DELIVERED, S.CANCELLED])
    def test_terminal_rejected(self, current):
        with pytest.raises(InvalidTransitionError, match="no further transitions"):
            StatusMachine().advance(delivery_in(current))

    def test_pending_requires_assignment(self):
        with pytest.raises(InvalidTransitionError, match="assign a driver"):
            StatusMachine().advance(delivery_in(S.PENDING))

    def test_proof_recorded_on_delivery(self):
        proof = ProofOfDelivery(signature="J. Doe", photo="pod/1.jpg")
        delivered = StatusMachine().advance(delivery_in(S.IN_TRANSIT), proof)
        assert delivered.proof == proof

    def test_proof_rejected_before_delivery(self):
        with pytest.raises(InvalidTransitionError, match="Proof of delivery"):
            StatusMachine().advance(delivery_in(S.ASSIGNED), ProofOfDelivery(signature="x"))

    def test_signature_required_when_configured(self):
        config.REQUIRE_SIGNATURE = True
        machine = StatusMachine()
        with pytest.raises(InvalidTransitionError, match="requires a signature"):
            machine.advance(delivery_in(S.IN_TRANSIT))
        with pytest.raises(InvalidTransitionError):
            machine.advance(delivery_in(S.IN_TRANSIT), ProofOfDelivery(photo="only-photo.jpg"))
        assert machine.advance(delivery_in(S.IN_TRANSIT), ProofOfDelivery(signature="ok")).status == S.DELIVERED


class TestCancel:
    @pytest.mark.parametrize("current", [S.PENDING, S.ASSIGNED, S.PICKUP, S.IN_TRANSIT])
    def test_cancel_drops_driver(self, current):
        cancelled = StatusMachine().cancel(delivery_in(current))
        assert cancelled.status == S.CANCELLED
        assert cancelled.driver_id is None

    @pytest.mark.parametrize("current", [S.DELIVERED, S.CANCELLED])
    def test_terminal_rejected(self, current):
        with pytest.raises(InvalidTransitionError):
            StatusMachine().cancel(delivery_in(current))

    def test_disabled_cancellations(self):
        config.ALLOW_CANCELLATIONS = False
        with pytest.raises(InvalidTransitionError, match="disabled"):
            StatusMachine().cancel(delivery_in(S.PENDING))


class TestAssign:
    def test_binds_driver(self):
        assigned = StatusMachine().assign(delivery_in(S.PENDING), "drv-9")
        assert assigned.status == S.ASSIGNED
        assert assigned.driver_id == "drv-9"

    @pytest.mark.parametrize("current", [S.ASSIGNED, S.PICKUP, S.IN_TRANSIT, S.DELIVERED, S.CANCELLED])
    def test_only_from_pending(self, current):
        with pytest.raises(InvalidTransitionError):
            StatusMachine().assign(delivery_in(current), "drv-9")


class TestSetStatus:
    def test_skips_sequence(self):
        updated = StatusMachine().set_status(delivery_in(S.ASSIGNED), S.IN_TRANSIT)
        assert updated.status == S.IN_TRANSIT
        assert updated.driver_id == "drv"

    def test_back_to_pending_drops_driver(self):
        updated = StatusMachine().set_status(delivery_in(S.PICKUP), S.PENDING)
        assert updated.status == S.PENDING
        assert updated.driver_id is None

    def test_driver_bound_status_needs_driver(self):
        with pytest.raises(InvalidTransitionError, match="has no driver"):
            StatusMachine().set_status(delivery_in(S.PENDING), S.PICKUP)

    def test_terminal_refused(self):
        with pytest.raises(InvalidTransitionError):
            StatusMachine().set_status(delivery_in(S.DELIVERED), S.IN_TRANSIT)

    def test_signature_not_enforced(self):
        config.REQUIRE_SIGNATURE = True
        assert StatusMachine().set_status(delivery_in(S.PICKUP), S.DELIVERED).status == S.DELIVERED


class TestListeners:
    def test_notify_and_unsubscribe(self):
        machine = StatusMachine()
        seen = []
        unsubscribe = machine.subscribe(seen.append)
        machine.notify("first")
        unsubscribe()
        unsubscribe()
        machine.notify("second")
        assert seen == ["first"]

    def test_failing_listener_does_not_stop_others(self):
        machine = StatusMachine()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        machine.subscribe(broken)
        machine.subscribe(seen.append)
        event = TransitionEvent(delivery_id="d1", from_status=S.PENDING, to_status=S.ASSIGNED, driver_id="x")
        machine.notify(event)
        assert seen == [event]
