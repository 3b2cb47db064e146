import asyncio

import pytest

from brick.common.models import SystemState
from brick.pipeline.pattern_extractor import PatternExtractor, cleanliness_score, total_execution_time
from brick.pipeline.pattern_store import PatternStore

from helpers import FakeRecordingStore, make_click, make_key, make_recording, make_syscall, spaced_clicks


def _extractor(store=None):
    return PatternExtractor(store=store or FakeRecordingStore(), patterns=PatternStore())


def test_efficiency_boundary_at_seventy_percent():
    extractor = _extractor()
    at_threshold = make_recording(spaced_clicks([0, 100, 200, 300, 400, 450, 500]))
    below = make_recording(spaced_clicks([0, 100, 200, 300, 400, 450, 508]))

    assert extractor.execution_efficiency(at_threshold.actions) == pytest.approx(0.70)
    assert extractor.execution_efficiency(below.actions) == pytest.approx(0.689, abs=1e-3)
    assert extractor.is_successful(at_threshold)
    assert not extractor.is_successful(below)


def test_zero_duration_counts_as_fully_efficient():
    extractor = _extractor()
    actions = spaced_clicks([0, 0, 0])
    assert total_execution_time(actions) == 0
    assert extractor.execution_efficiency(actions) == 1.0


def test_error_payload_never_qualifies():
    extractor = _extractor()
    recording = make_recording([make_click(0), make_syscall(10, error="permission denied"), make_key(20)])
    assert extractor.execution_efficiency(recording.actions) == 1.0
    assert cleanliness_score(recording.actions) == 1.0
    assert not extractor.is_successful(recording)


def test_redundant_actions_reduce_cleanliness():
    dup = make_click(0, x=5, y=5)
    actions = [dup, dup, dup, make_click(0, x=6, y=6), make_click(0, x=7, y=7)]
    assert cleanliness_score(actions) == pytest.approx(0.6)
    assert not _extractor().is_successful(make_recording(actions))


def test_empty_recording_does_not_qualify():
    assert not _extractor().is_successful(make_recording([]))


def test_extract_pattern_features():
    state = SystemState(cpu_usage=10.0, memory_usage=100.0, active_processes=5, active_services=1)
    actions = [
        make_click(0, text="File", window_title="Editor", system_state=state),
        make_key(20, "a", window_title="Editor"),
        make_click(60, text="OK", window_title="Dialog", system_state=state),
        make_key(70, "b", window_title="Dialog"),
    ]
    recording = make_recording(actions)
    pattern = _extractor().extract_pattern(recording)

    assert pattern.action_sequence == ["mouse:click", "keyboard:textInput", "mouse:click", "keyboard:textInput"]
    assert pattern.success_metrics.completion_rate == 1.0
    assert pattern.success_metrics.error_rate == 0.0
    assert pattern.success_metrics.execution_time == 70
    assert pattern.success_metrics.user_satisfaction == pytest.approx(1.0)
    assert pattern.context_features.environment == ["macOS", "ja-JP", "JST"]
    assert pattern.context_features.system_state["cpuUsage"] == 20.0
    assert pattern.source_recording_id == recording.id

    behaviors = pattern.emergent_behaviors
    assert "repeated-sequence:mouse:click>keyboard:textInput" in behaviors
    assert "context-awareness" in behaviors
    assert "adaptive-timing" in behaviors
    assert "efficient-navigation" in behaviors
    assert "minimal-clicks" in behaviors


def test_initialize_registers_only_successful_recordings():
    good = make_recording(spaced_clicks([0, 50, 100]), name="good")
    bad = make_recording([make_click(0), make_syscall(10, error="boom")], name="bad")
    extractor = _extractor(FakeRecordingStore([good, bad]))

    added = asyncio.run(extractor.initialize())

    assert added == 1
    patterns = extractor.patterns.snapshot()
    assert [p.source_recording_id for p in patterns] == [good.id]


def test_initialize_survives_store_failure():
    extractor = _extractor(FakeRecordingStore(fail_search=True))
    assert asyncio.run(extractor.initialize()) == 0
    assert extractor.patterns.initialized
    assert extractor.patterns.snapshot() == []
