"""
Property-based tests for the Kardex fold.

Random event streams (entries, exits, consumption; ties on timestamps
included) must always yield a ledger that:
- never goes negative, and carries zero value at zero quantity
- conserves quantity: opening + entries - exits == closing
- does not depend on input order
- splits every outflow into applied + blocked == requested
- restarts the moving average on replenishment from zero
- opens any window from the balance the full history reached before it
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from kardex_engines import EventKind, MovementType, StockEvent, process_ledger, window_ledger
from kardex_kernel.domain.decimals import ZERO

BASE_TIME = datetime(2025, 1, 2, tzinfo=timezone.utc)
OPENING_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)

quantities = st.decimals(min_value=Decimal("0"), max_value=Decimal("500"), places=2)
unit_costs = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("2000"), places=2)


@composite
def stock_events(draw, max_size=25):
    kinds = draw(
        st.lists(st.sampled_from(list(EventKind)), min_size=0, max_size=max_size)
    )
    events = []
    for index, kind in enumerate(kinds):
        entry = kind is EventKind.ENTRY
        events.append(
            StockEvent(
                kind=kind,
                timestamp=BASE_TIME + timedelta(hours=draw(st.integers(0, 48))),
                invoice_id=f"inv-{index:03d}",
                item_id=f"item-{index:03d}",
                quantity_sacks=draw(quantities),
                unit_cost=draw(unit_costs) if entry else None,
            )
        )
    return events


def run(events, opening_quantity=Decimal("0"), opening_unit_cost=Decimal("0")):
    return process_ledger(
        events,
        opening_quantity=opening_quantity,
        opening_unit_cost=opening_unit_cost,
        opening_timestamp=OPENING_TIME,
    )


PROPERTY_SETTINGS = settings(
    max_examples=150,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)


class TestLedgerProperties:
    """Invariants that hold for every event stream."""

    @PROPERTY_SETTINGS
    @given(events=stock_events(), opening=quantities, cost=unit_costs)
    def test_balance_never_negative(self, events, opening, cost):
        result = run(events, opening, cost)
        for movement in result.movements:
            assert movement.balance_quantity_after >= ZERO
            assert movement.balance_value_after >= ZERO
            if movement.balance_quantity_after.is_zero():
                assert movement.balance_value_after.is_zero()

    @PROPERTY_SETTINGS
    @given(events=stock_events(), opening=quantities, cost=unit_costs)
    def test_quantity_conserved(self, events, opening, cost):
        result = run(events, opening, cost)
        entries = sum(
            (m.applied_quantity for m in result.movements if m.type is MovementType.ENTRY),
            ZERO,
        )
        exits = sum(
            (m.applied_quantity for m in result.movements if m.type is MovementType.EXIT),
            ZERO,
        )
        assert result.final_state.balance_quantity == opening + entries - exits
        assert result.final_state == result.movements[-1].state_after

    @PROPERTY_SETTINGS
    @given(data=st.data(), events=stock_events(), opening=quantities)
    def test_input_order_irrelevant(self, data, events, opening):
        shuffled = data.draw(st.permutations(events))
        assert run(shuffled, opening, Decimal("10")) == run(events, opening, Decimal("10"))

    @PROPERTY_SETTINGS
    @given(events=stock_events(), opening=quantities)
    def test_outflows_split_into_applied_and_blocked(self, events, opening):
        result = run(events, opening, Decimal("100"))
        rows_by_event: dict[tuple[str, str], list] = {}
        for movement in result.movements:
            if movement.type is MovementType.EXIT:
                rows_by_event.setdefault((movement.invoice_id, movement.item_id), []).append(movement)

        for event in events:
            if not event.kind.is_outflow:
                continue
            rows = rows_by_event[event.sale_key]
            assert 1 <= len(rows) <= 2
            assert sum(1 for r in rows if r.blocked) <= 1
            applied = sum((r.applied_quantity for r in rows), ZERO)
            blocked = sum((r.requested_quantity for r in rows if r.blocked), ZERO)
            assert applied + blocked == event.quantity_sacks
            for row in rows:
                if not row.blocked:
                    assert row.applied_quantity <= row.previous_balance_quantity

    @PROPERTY_SETTINGS
    @given(events=stock_events(), opening=quantities, cost=unit_costs)
    def test_average_moves_only_on_entries(self, events, opening, cost):
        result = run(events, opening, cost)
        previous = result.movements[0]
        for movement in result.movements[1:]:
            if movement.type is MovementType.EXIT:
                assert movement.moving_average_cost_after == previous.moving_average_cost_after
                assert movement.unit_cost == previous.moving_average_cost_after
            previous = movement

    @PROPERTY_SETTINGS
    @given(events=stock_events(), opening=quantities, cost=unit_costs)
    def test_replenishment_from_zero_restarts_cost(self, events, opening, cost):
        result = run(events, opening, cost)
        for movement in result.movements:
            if movement.type is not MovementType.ENTRY:
                assert not movement.cost_restarted
                continue
            restarts = (
                movement.previous_balance_quantity.is_zero()
                and movement.applied_quantity > ZERO
            )
            assert movement.cost_restarted == restarts
            if restarts:
                assert movement.moving_average_cost_after == movement.unit_cost

    @PROPERTY_SETTINGS
    @given(events=stock_events(), opening=quantities, cost=unit_costs, offset=st.integers(0, 60))
    def test_window_continues_full_history(self, events, opening, cost, offset):
        result = run(events, opening, cost)
        date_from = OPENING_TIME + timedelta(hours=offset)
        window = window_ledger(result, date_from=date_from)

        inside = [m for m in result.movements if m.timestamp >= date_from]
        before = [m for m in result.movements if m.timestamp < date_from]
        if before:
            assert window.prior_balance is not None
            assert window.prior_balance.state_after == before[-1].state_after
            assert window.movements == (window.prior_balance, *inside)
        else:
            assert window.prior_balance is None
            assert window.movements == tuple(inside)
        assert window.movements[-1].state_after == result.final_state
