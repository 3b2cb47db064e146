import asyncio

import pytest

from brick.common.models import SystemState
from brick.pipeline.variation_generator import VariationGenerator

from helpers import FakeRecordingStore, make_click, make_env, make_key, make_recording, make_syscall


def _base_recording():
    state = SystemState(cpu_usage=40.0, memory_usage=500000.0, active_processes=10, active_services=2)
    actions = [
        make_click(0, text="File"),
        make_key(40, "h"),
        make_key(60, "i"),
        make_syscall(100, system_state=state),
        make_click(130, x=300.0, y=200.0),
        make_key(140, "!"),
    ]
    return make_recording(actions, name="Write note", description="type a note", tags=["editor"], env=make_env(scale=2.0))


def test_variation_preserves_shape_and_order():
    base = _base_recording()
    variant = VariationGenerator(seed=7).create_variation(base)

    assert variant.name == "Write note (Variation)"
    assert variant.description == "Synthetic variation of: type a note"
    assert variant.tags == ("editor", "synthetic")
    assert variant.id != base.id
    assert [a.token() for a in variant.actions] == [a.token() for a in base.actions]
    assert [a.id for a in variant.actions] == [a.id for a in base.actions]

    timestamps = [a.timestamp for a in variant.actions]
    assert timestamps == sorted(timestamps)


def test_variation_noise_stays_within_bounds():
    base = _base_recording()
    variant = VariationGenerator(seed=11).create_variation(base)

    for before, after in zip(base.actions, variant.actions):
        if before.type == "mouse":
            assert abs(after.event.coordinates.x - before.event.coordinates.x) <= 10
            assert abs(after.event.coordinates.y - before.event.coordinates.y) <= 10
            assert after.timestamp == before.timestamp
        elif before.type == "keyboard":
            assert abs(after.timestamp - before.timestamp) <= 50
        else:
            assert abs(after.context.system_state.cpu_usage - 40.0) <= 5
            assert abs(after.context.system_state.memory_usage - 500000.0) <= 50000

    scale = variant.environment.screens[0].scale_factor
    assert scale == pytest.approx(2.0, abs=0.05)


def test_same_seed_reproduces_variation():
    base = _base_recording()
    a = VariationGenerator(seed=3).create_variation(base)
    b = VariationGenerator(seed=3).create_variation(base)
    assert a.actions == b.actions
    assert a.environment == b.environment


def test_generate_synthetic_tasks_count():
    variants = VariationGenerator(seed=1).generate_synthetic_tasks(_base_recording(), 3)
    assert len(variants) == 3
    assert len({v.id for v in variants}) == 3


def test_merge_tasks_combines_segments():
    first = make_recording([make_click(0), make_click(50, x=1), make_click(90, x=2)], name="A", tags=["x"])
    second = make_recording([make_key(0, "q"), make_key(10, "w")], name="B", tags=["x", "y"])
    original_ids = {a.id for a in first.actions + second.actions}

    merged = VariationGenerator(seed=5).merge_tasks([first, second])

    assert merged.name == "Merged Task (A + B)"
    assert merged.tags == ("x", "y", "synthetic", "merged")
    assert merged.environment == first.environment
    assert 2 <= len(merged.actions) <= 5
    assert not ({a.id for a in merged.actions} & original_ids)

    timestamps = [a.timestamp for a in merged.actions]
    assert timestamps == sorted(timestamps)
    assert timestamps[0] == 0
    types = [a.type for a in merged.actions]
    assert types == sorted(types, key=lambda t: t != "mouse")


def test_merge_tasks_rejects_empty_input():
    with pytest.raises(ValueError):
        VariationGenerator(seed=0).merge_tasks([])


def test_merge_skips_recordings_without_actions():
    empty = make_recording([], name="Empty")
    full = make_recording([make_click(0)], name="Full")
    merged = VariationGenerator(seed=0).merge_tasks([empty, full])
    assert merged.name == "Merged Task (Empty + Full)"
    assert len(merged.actions) == 1
    assert merged.actions[0].timestamp == 0


def test_generate_from_multiple_tasks_count():
    tasks = [make_recording([make_click(0)], name="A"), make_recording([make_key(0)], name="B")]
    assert len(VariationGenerator(seed=2).generate_from_multiple_tasks(tasks, count=3)) == 3


def test_generate_and_save_variations():
    store = FakeRecordingStore()
    gen = VariationGenerator(store=store, seed=9)

    ids = asyncio.run(gen.generate_and_save_variations(_base_recording(), count=2))

    assert len(ids) == 2
    assert [r.id for r in store.saved] == ids
    assert all(r.name == "Write note (Variation)" for r in store.saved)
    assert "synthetic" in store.saved[0].tags


def test_save_without_store_raises():
    gen = VariationGenerator(seed=0)
    with pytest.raises(ValueError):
        asyncio.run(gen.save_generated_task(_base_recording()))
