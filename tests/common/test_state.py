"""
Tests for the payment state machine and the specification store.
"""

import pytest

from conftest import make_spec
from dock402.x402.exceptions import IllegalStateTransition
from dock402.x402.server import InMemorySpecificationStore, PaymentNegotiation, PaymentState


class TestPaymentNegotiation:
    def test_happy_path(self):
        negotiation = PaymentNegotiation("/premium")
        for state in (
            PaymentState.REQUIRE_SPEC,
            PaymentState.AWAITING_VERIFY,
            PaymentState.VERIFIED,
            PaymentState.SETTLED,
        ):
            negotiation.transition(state)
        assert negotiation.state is PaymentState.SETTLED
        assert negotiation.is_terminal
        assert negotiation.history[0] is PaymentState.NO_PROOF

    def test_reject_records_reason(self):
        negotiation = PaymentNegotiation()
        negotiation.transition(PaymentState.REQUIRE_SPEC)
        negotiation.transition(PaymentState.AWAITING_VERIFY)
        negotiation.reject("amount_mismatch")
        assert negotiation.state is PaymentState.REJECTED
        assert negotiation.reason == "amount_mismatch"

    def test_cannot_skip_verification(self):
        negotiation = PaymentNegotiation()
        negotiation.transition(PaymentState.REQUIRE_SPEC)
        with pytest.raises(IllegalStateTransition):
            negotiation.transition(PaymentState.VERIFIED)

    def test_cannot_reject_after_verified(self):
        negotiation = PaymentNegotiation()
        negotiation.transition(PaymentState.REQUIRE_SPEC)
        negotiation.transition(PaymentState.AWAITING_VERIFY)
        negotiation.transition(PaymentState.VERIFIED)
        with pytest.raises(IllegalStateTransition):
            negotiation.reject("late")

    def test_terminal_states(self):
        negotiation = PaymentNegotiation()
        negotiation.reject("malformed_header")
        with pytest.raises(IllegalStateTransition):
            negotiation.transition(PaymentState.REQUIRE_SPEC)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestInMemorySpecificationStore:
    def test_same_key_returns_same_instance(self):
        store = InMemorySpecificationStore(ttl_seconds=60)
        calls = []

        def factory():
            calls.append(1)
            return make_spec()

        first = store.get_or_create("k", factory)
        second = store.get_or_create("k", factory)
        assert first is second
        assert len(calls) == 1

    def test_first_writer_wins(self):
        store = InMemorySpecificationStore(ttl_seconds=60)
        first = store.get_or_create("k", lambda: make_spec(amount="1"))
        second = store.get_or_create("k", lambda: make_spec(amount="2"))
        assert second is first
        assert second.price.amount == "1"

    def test_entries_expire(self):
        clock = FakeClock()
        store = InMemorySpecificationStore(ttl_seconds=30, clock=clock)
        first = store.get_or_create("k", make_spec)
        clock.now += 29
        assert store.get("k") is first
        clock.now += 1
        assert store.get("k") is None
        assert store.get_or_create("k", make_spec) is not first

    def test_purge_expired(self):
        clock = FakeClock()
        store = InMemorySpecificationStore(ttl_seconds=10, clock=clock)
        store.get_or_create("a", make_spec)
        clock.now += 5
        store.get_or_create("b", make_spec)
        clock.now += 6
        assert store.purge_expired() == 1
        assert len(store) == 1

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            InMemorySpecificationStore(ttl_seconds=0)
