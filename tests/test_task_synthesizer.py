import pytest

from brick.common.models import OSInfo
from brick.pipeline.models import ContextFeatures, ContextHints, Pattern, SuccessMetrics
from brick.pipeline.pattern_store import PatternStore
from brick.pipeline.task_synthesizer import TaskSynthesizer, pattern_score, round_half_up


def _pattern(pid, sequence, os_name="macOS", execution_time=100.0, satisfaction=0.9):
    return Pattern(
        id=pid,
        action_sequence=list(sequence),
        success_metrics=SuccessMetrics(execution_time=execution_time, user_satisfaction=satisfaction),
        context_features=ContextFeatures(environment=[os_name, "ja-JP", "JST"], system_state={"cpuUsage": 5.0}),
    )


def _store(*patterns):
    store = PatternStore()
    for p in patterns:
        store.add(p)
    store.mark_initialized()
    return store


def test_complexity_controls_number_of_selected_patterns():
    patterns = [_pattern(f"p{i}", ["mouse:click"], execution_time=100 + i) for i in range(4)]
    synth = TaskSynthesizer(_store(*patterns))
    hints = ContextHints()

    assert len(synth.select_patterns(hints, 1.0)) == 4
    assert len(synth.select_patterns(hints, 0.3)) == 2
    assert len(synth.select_patterns(hints, 0.0)) == 1
    assert len(synth.select_patterns(hints, 5.0)) == 4


def test_patterns_are_ranked_by_score_then_id():
    fast = _pattern("b-fast", ["mouse:click"], execution_time=1)
    slow = _pattern("a-slow", ["mouse:click"], execution_time=1000)
    tie = _pattern("a-fast", ["mouse:click"], execution_time=1)
    synth = TaskSynthesizer(_store(slow, fast, tie))

    assert pattern_score(fast) > pattern_score(slow)
    assert [p.id for p in synth.select_patterns(ContextHints(), 1.0)] == ["a-fast", "b-fast", "a-slow"]


def test_os_hint_filters_patterns_case_insensitively():
    mac = _pattern("mac", ["mouse:click"], os_name="macOS")
    win = _pattern("win", ["keyboard:textInput"], os_name="Windows")
    synth = TaskSynthesizer(_store(mac, win))

    selected = synth.select_patterns(ContextHints(os=OSInfo(name="MACOS")), 1.0)
    assert [p.id for p in selected] == ["mac"]


def test_generated_task_shape_and_timing():
    synth = TaskSynthesizer(_store(_pattern("p1", ["mouse:click", "keyboard:textInput", "mouse:scroll"])))
    task = synth.generate_future_task(complexity_level=0.5)

    assert task.name == "Generated Task (Complexity: 50%)"
    assert task.tags == ("generated", "absolute-zero", "complexity-5")
    assert "1 successful patterns" in task.description
    assert [a.token() for a in task.actions] == ["mouse:click", "keyboard:textInput", "mouse:scroll"]
    assert [a.timestamp for a in task.actions] == [0, 75, 150]

    first = task.actions[0]
    assert first.event.coordinates.x == 100 and first.event.coordinates.y == 100
    assert first.event.coordinates.relative is True
    assert task.actions[2].event.coordinates.x == 200
    assert first.context.window_title == "Generated Context"
    assert first.context.system_state.cpu_usage == 5.0


def test_repeated_tokens_are_kept_in_order():
    sequence = ["keyboard:textInput"] * 5 + ["system:processStart"] * 3
    synth = TaskSynthesizer(_store(_pattern("p1", sequence)))
    task = synth.generate_future_task(complexity_level=1.0)
    assert [a.token() for a in task.actions] == sequence
    assert [a.timestamp for a in task.actions] == [i * 75 for i in range(8)]


def test_optimize_drops_only_fully_identical_neighbours():
    synth = TaskSynthesizer(_store())
    click = synth.reconstruct_actions(_pattern("p1", ["mouse:click"]))[0]
    key = synth.reconstruct_actions(_pattern("p2", ["keyboard:textInput"]))[0]
    optimized = synth.optimize([click, click, key])
    assert [a.token() for a in optimized] == ["mouse:click", "keyboard:textInput"]
    assert [a.timestamp for a in optimized] == [0, 75]


def test_default_environment_when_no_hints():
    task = TaskSynthesizer(_store(_pattern("p1", ["mouse:click"]))).generate_future_task()
    env = task.environment
    assert env.os.name == "Windows"
    assert env.os.version == "11"
    assert env.screens[0].bounds.width == 1920
    assert env.locale == "en-US"
    assert env.timezone == "UTC"


def test_hints_override_environment():
    hints = ContextHints(os=OSInfo(name="macOS", version="14"), locale="ja-JP")
    task = TaskSynthesizer(_store(_pattern("p1", ["mouse:click"]))).generate_future_task(hints)
    assert task.environment.os.name == "macOS"
    assert task.environment.locale == "ja-JP"
    assert task.environment.timezone == "UTC"


def test_uninitialized_store_yields_empty_task():
    task = TaskSynthesizer(PatternStore()).generate_future_task(complexity_level=0.25)
    assert task.actions == ()
    assert task.name == "Generated Task (Complexity: 25%)"
    assert task.tags[-1] == "complexity-3"


@pytest.mark.parametrize("value,expected", [(2.5, 3), (2.4, 2), (0.5, 1), (0.0, 0)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_unknown_token_type_is_skipped():
    synth = TaskSynthesizer(_store(_pattern("p1", ["touch:tap", "mouse:click"])))
    task = synth.generate_future_task(complexity_level=1.0)
    assert [a.token() for a in task.actions] == ["mouse:click"]
