"""Property tests: invariants hold after any sequence of clock operations."""
import asyncio
from collections import Counter

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from app.exceptions import TimeTrackingError
from app.models.break_entry import BreakType
from app.models.time_entry import TimeEntryStatus
from app.services.overlap import intervals_overlap
from tests.fakes import FakeClock, FakeStatusProjection, InMemoryStore, build_service

OVERTIME_THRESHOLD = 8
EMPLOYEES = ["emp1", "emp2"]

operation = st.tuples(
    st.sampled_from(["clock_in", "clock_out", "start_break", "end_break", "sweep"]),
    st.sampled_from(EMPLOYEES),
    st.integers(min_value=1, max_value=900),
    st.sampled_from(list(BreakType)),
)


def assert_invariants(store: InMemoryStore, now) -> None:
    entries = list(store.entries.values())

    active = Counter(e.employee_id for e in entries if e.status == TimeEntryStatus.ACTIVE)
    assert all(count <= 1 for count in active.values())

    projection = FakeStatusProjection(store)
    for employee_id, stored in store.statuses.items():
        recomputed = projection.compute(employee_id, now)
        assert stored.current_status == recomputed.current_status
        assert stored.active_time_entry_id == recomputed.active_time_entry_id
        assert stored.active_break_entry_id == recomputed.active_break_entry_id

    for entry in entries:
        breaks = store.breaks_of(entry.id)
        assert sum(1 for b in breaks if b.end_time is None) <= 1
        for item in breaks:
            assert item.start_time > entry.clock_in_time
            if item.end_time is not None:
                assert item.end_time > item.start_time
                assert item.duration_minutes >= 0
                if entry.clock_out_time is not None:
                    assert item.end_time <= entry.clock_out_time

        if entry.status == TimeEntryStatus.COMPLETED:
            assert entry.clock_out_time > entry.clock_in_time
            assert all(b.end_time is not None for b in breaks)
            assert entry.total_hours >= 0
            assert entry.regular_hours <= OVERTIME_THRESHOLD
            assert abs(
                entry.regular_hours + entry.overtime_hours + entry.double_time_hours
                - entry.total_hours
            ) < 1e-6

    for employee_id in EMPLOYEES:
        own = [e for e in entries if e.employee_id == employee_id]
        for i, a in enumerate(own):
            for b in own[i + 1:]:
                assert not intervals_overlap(
                    a.clock_in_time, a.clock_out_time, b.clock_in_time, b.clock_out_time
                )


async def run_operations(operations) -> None:
    store = InMemoryStore()
    clock = FakeClock()
    service = build_service(
        store,
        clock,
        max_daily_hours=24,
        auto_clock_out_after_hours=12,
        overtime_threshold=OVERTIME_THRESHOLD,
    )

    for name, employee_id, minutes, break_type in operations:
        clock.advance(minutes=minutes)
        try:
            if name == "clock_in":
                await service.clock_in(employee_id)
            elif name == "clock_out":
                await service.clock_out(employee_id)
            elif name == "start_break":
                await service.start_break(employee_id, break_type)
            elif name == "end_break":
                await service.end_break(employee_id)
            else:
                await service.auto_clock_out_stale_entries()
        except TimeTrackingError:
            pass
        assert_invariants(store, clock.now)


@settings(max_examples=75, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(st.lists(operation, max_size=40))
def test_invariants_hold_for_any_operation_sequence(operations):
    asyncio.run(run_operations(operations))


@settings(max_examples=50, deadline=None)
@given(st.lists(st.sampled_from(EMPLOYEES), min_size=1, max_size=6))
def test_concurrent_clock_ins_never_create_two_active_entries(employee_ids):
    async def race():
        store = InMemoryStore()
        service = build_service(store, FakeClock())
        await asyncio.gather(
            *(service.clock_in(employee_id) for employee_id in employee_ids),
            return_exceptions=True,
        )
        return store

    store = asyncio.run(race())

    active = Counter(
        e.employee_id for e in store.entries.values() if e.status == TimeEntryStatus.ACTIVE
    )
    assert set(active) == set(employee_ids)
    assert all(count == 1 for count in active.values())
