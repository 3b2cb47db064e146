import json

import pytest

from brick.common.json_saver import (
    build_export_payload, load_recording_json, recording_from_json, recording_to_json, save_recording_json,
)
from brick.common.models import (
    Action, ActionContext, Bounds, GUIElement, GUIState, KeyboardEvent, Modifiers,
    ProcessInfo, Recording, ScreenRegion, SystemEvent, SystemState, WindowInfo, event_from_dict,
)

from helpers import make_click, make_env, make_key, make_recording, make_syscall


def _rich_recording():
    element = GUIElement(type="button", bounds=Bounds(5, 5, 40, 20), text="保存", confidence=91.5,
                         attributes={"isClickable": True, "role": "button"})
    context = ActionContext(
        window_title="エディタ",
        active_app="TextEdit",
        screen_resolution={"width": 1440, "height": 900},
        environment=make_env(),
        process_chain=(ProcessInfo(name="python", pid=1, parent={"name": "zsh", "pid": 0}),),
        system_state=SystemState(cpu_usage=3.5, memory_usage=1024.0, active_processes=12, active_services=0),
        gui_state=GUIState(elements=(element,), regions=(ScreenRegion(type="container", bounds=Bounds(0, 0, 50, 30), elements=(element,)),)),
    )
    hotkey = Action(
        id="k1",
        event=KeyboardEvent(subtype="hotkey", key="s", key_code=1, modifiers=Modifiers(meta=True), repeat=False, timestamp=30),
        context=context,
    )
    focus = Action(
        id="w1",
        event=SystemEvent(subtype="windowFocus", window=WindowInfo(title="エディタ", bounds=Bounds(0, 0, 800, 600), is_fullscreen=False), timestamp=40),
    )
    actions = [make_click(0, text="Save"), make_key(10), make_syscall(20, parameters={"path": "/bin/ls"}), hotkey, focus]
    return make_recording(actions, name="保存操作", description="日本語の説明", tags=["editor", "save"])


def test_action_type_is_derived_from_event_class():
    assert make_click(0).type == "mouse"
    assert make_key(0).type == "keyboard"
    assert make_syscall(0).type == "system"
    assert make_click(0).token() == "mouse:click"


def test_recording_dict_round_trip_is_exact():
    recording = _rich_recording()
    assert Recording.from_dict(recording.to_dict()) == recording


def test_recording_json_round_trip_through_file(tmp_path):
    recording = _rich_recording()
    path = save_recording_json(recording, tmp_path / "nested" / "rec.json")

    text = (tmp_path / "nested" / "rec.json").read_text(encoding="utf-8")
    assert "保存操作" in text  # ensure_ascii=False
    assert load_recording_json(path) == recording
    assert recording_from_json(recording_to_json(recording)) == recording


def test_wire_format_uses_camel_case_keys():
    data = _rich_recording().to_dict()
    assert set(data) == {"id", "name", "description", "actions", "environment", "tags", "created_at"}

    hotkey = data["actions"][3]
    assert hotkey["type"] == "keyboard"
    assert hotkey["event"]["type"] == "hotkey"
    assert hotkey["event"]["keyCode"] == 1
    assert hotkey["context"]["windowTitle"] == "エディタ"
    assert hotkey["context"]["systemState"]["cpuUsage"] == 3.5
    assert data["environment"]["display"]["screens"][0]["scaleFactor"] == 1.0
    assert data["actions"][2]["event"]["systemCall"]["parameters"] == {"path": "/bin/ls"}


def test_optional_fields_are_omitted_when_unset():
    event = make_click(0).event.to_dict()
    assert "target" not in event
    assert "button" not in event
    assert event["coordinates"] == {"x": 10.0, "y": 20.0}


def test_unknown_action_type_is_rejected():
    with pytest.raises(ValueError):
        event_from_dict("touch", {"type": "tap"})


def test_export_payload_shape():
    actions = [make_click(0), make_key(5)]
    payload = build_export_payload(actions, make_env())
    assert payload["version"] == "1.0"
    assert len(payload["actions"]) == 2
    assert payload["environment"]["locale"] == "ja-JP"
    json.dumps(payload)
