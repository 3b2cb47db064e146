"""テスト用の Action / Recording ファクトリと差し替え用の偽コンポーネント"""

from typing import Any, Dict, List, Optional

from brick.common.errors import CaptureUnavailable
from brick.common.models import (
    Action, ActionContext, Bounds, Coordinates, EnvironmentContext, GUIElement,
    KeyboardEvent, Modifiers, MouseEvent, MouseTarget, OSInfo, ProcessInfo, Recording,
    ScreenInfo, SystemCall, SystemEvent, SystemState, generate_id, now_iso,
)


def make_env(os_name="macOS", locale="ja-JP", timezone="JST", scale=1.0) -> EnvironmentContext:
    return EnvironmentContext(
        os=OSInfo(name=os_name, version="14.5", arch="arm64"),
        screens=(ScreenInfo(id=0, bounds=Bounds(0, 0, 1440, 900), primary=True, scale_factor=scale),),
        locale=locale,
        timezone=timezone,
    )


def make_click(ts, text=None, x=10.0, y=20.0, window_title=None, selector=None, system_state=None) -> Action:
    target = None
    if text is not None or selector is not None:
        target = MouseTarget(element="button", selector=selector or f"button#{(text or 'x').lower()}", text=text)
    return Action(
        id=generate_id(),
        event=MouseEvent(subtype="click", coordinates=Coordinates(x=x, y=y), target=target, timestamp=ts),
        context=ActionContext(window_title=window_title, system_state=system_state),
    )


def make_key(ts, key="a", subtype="textInput", window_title=None) -> Action:
    return Action(
        id=generate_id(),
        event=KeyboardEvent(subtype=subtype, key=key, modifiers=Modifiers(), timestamp=ts),
        context=ActionContext(window_title=window_title),
    )


def make_syscall(ts, call_type="processStart", error=None, parameters=None, system_state=None) -> Action:
    return Action(
        id=generate_id(),
        event=SystemEvent(
            subtype="systemCall",
            system_call=SystemCall(
                type=call_type, module="os", function="spawn",
                parameters=parameters, error=error, timestamp=ts,
            ),
            timestamp=ts,
        ),
        context=ActionContext(system_state=system_state),
    )


def make_recording(actions, name="rec", description="", tags=(), env=None) -> Recording:
    return Recording(
        id=generate_id(),
        name=name,
        description=description,
        actions=tuple(actions),
        environment=env or make_env(),
        tags=tuple(tags),
        created_at=now_iso(),
    )


def spaced_clicks(timestamps) -> List[Action]:
    """座標が全て異なるクリック列（冗長なし）"""
    return [make_click(ts, x=10.0 + i * 5, y=20.0 + i * 5) for i, ts in enumerate(timestamps)]


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class FakeScraper:
    def __init__(self, elements=None, fail_dispose=False):
        self.elements: List[GUIElement] = list(elements or [])
        self.captures = 0
        self.disposed = False
        self.fail_dispose = fail_dispose

    async def capture_screen(self) -> None:
        self.captures += 1

    def get_elements(self):
        return list(self.elements)

    def get_regions(self):
        return []

    def find_element_at(self, x, y):
        for element in self.elements:
            if element.bounds.contains(x, y):
                return element
        return None

    async def dispose(self) -> None:
        self.disposed = True
        if self.fail_dispose:
            raise RuntimeError("scraper dispose failed")


class FakeInspector:
    def __init__(self, services_available=False):
        self.services_available = services_available
        self.process_calls = 0
        self.service_calls = 0
        self.state_calls = 0
        self.cpu_usage = 12.5

    def get_environment(self) -> EnvironmentContext:
        return make_env()

    def get_process_chain(self):
        return (ProcessInfo(name="python", pid=1234),)

    def get_screen_resolution(self) -> Optional[Dict[str, int]]:
        return {"width": 1440, "height": 900}

    def get_system_state(self) -> SystemState:
        self.state_calls += 1
        return SystemState(cpu_usage=self.cpu_usage, memory_usage=2048.0, active_processes=300, active_services=0)

    def get_process_summary(self) -> Dict[str, Any]:
        self.process_calls += 1
        return {"count": 1, "top": [{"name": "python", "pid": 1234, "cpu": 1.0, "memory": 1024}]}

    def get_service_summary(self) -> Dict[str, Any]:
        self.service_calls += 1
        if not self.services_available:
            raise CaptureUnavailable("services not supported")
        return {"count": 0, "services": []}


class FakeRecordingStore:
    """JsonRecordingStore と同じ非同期インターフェースのメモリ実装"""

    def __init__(self, recordings=None, fail_search=False):
        self.recordings: Dict[str, Recording] = {r.id: r for r in (recordings or [])}
        self.fail_search = fail_search
        self.saved: List[Recording] = []

    async def save(self, name, description, actions, environment, tags=()) -> str:
        recording = make_recording(actions, name=name, description=description, tags=tags, env=environment)
        self.recordings[recording.id] = recording
        self.saved.append(recording)
        return recording.id

    async def get(self, recording_id) -> Recording:
        return self.recordings[recording_id]

    async def search(self, text):
        if self.fail_search:
            raise OSError("store unavailable")
        return list(self.recordings.values())
