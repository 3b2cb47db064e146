"""
BRICK 共通データモデル定義（Action / Recording / 環境コンテキスト）

【使用方法】
from brick.common.models import (
    Action, ActionContext, Coordinates, MouseEvent, MouseTarget, Recording,
)

event = MouseEvent(
    subtype="click",
    coordinates=Coordinates(x=500.0, y=300.0, relative=True),
    target=MouseTarget(element="button", selector="button#save", text="Save"),
    timestamp=0,
)
action = Action(id=generate_id(), event=event, context=ActionContext(window_title="Editor"))
print(action.type)          # "mouse"
data = action.to_dict()     # ワイヤ形式（camelCase キー）
same = Action.from_dict(data)

recording = Recording(
    id=generate_id(),
    name="保存操作",
    description="エディタで保存ボタンを押す",
    actions=(action,),
    environment=EnvironmentContext.from_dict({...}),
    tags=("editor",),
    created_at=now_iso(),
)

【処理内容】
MouseEvent / KeyboardEvent / SystemEvent: イベント種別ごとの明示的なタグ付きユニオン
  （Action.type はイベントのクラスから決まる。別フィールドとして保持しない）
ActionContext: アクション発生時点の環境スナップショット
  （ウィンドウタイトル・アクティブアプリ・解像度・環境・プロセスチェーン・リソース・GUI状態）
EnvironmentContext: OS / ディスプレイ / ロケール / タイムゾーン
Recording: 名前付き・タグ付きの Action 列 + 環境
全モデルは frozen（生成後に変更しない）。to_dict / from_dict でワイヤ形式と相互変換する。
to_dict は None のオプション項目を出力しないため、from_dict との往復で値が一致する。

【依存】
Python標準ライブラリのみ (dataclasses, typing, uuid, datetime)
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

ACTION_TYPES = ("mouse", "keyboard", "system")

MOUSE_SUBTYPES = ("click", "doubleClick", "rightClick", "drag", "move", "scroll", "mouseDown", "mouseUp")
KEYBOARD_SUBTYPES = ("keyPress", "keyDown", "keyUp", "textInput", "hotkey")
SYSTEM_SUBTYPES = (
    "processStart", "processEnd", "windowFocus", "windowBlur",
    "windowResize", "serviceChange", "systemCall",
)


def generate_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    """値が None の項目を除いた辞書を返す"""
    return {k: v for k, v in d.items() if v is not None}


@dataclass(frozen=True)
class Bounds:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Bounds":
        return cls(
            x=d.get("x", 0.0),
            y=d.get("y", 0.0),
            width=d.get("width", 0.0),
            height=d.get("height", 0.0),
        )


# --- マウス ---

@dataclass(frozen=True)
class Coordinates:
    x: float
    y: float
    screen: Optional[int] = None  # マルチモニター時の画面番号
    relative: Optional[bool] = None  # ウィンドウ相対座標か

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"x": self.x, "y": self.y, "screen": self.screen, "relative": self.relative})

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Coordinates":
        return cls(x=d.get("x", 0.0), y=d.get("y", 0.0), screen=d.get("screen"), relative=d.get("relative"))


@dataclass(frozen=True)
class MouseTarget:
    element: str
    selector: str
    text: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    role: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "element": self.element,
            "selector": self.selector,
            "text": self.text,
            "attributes": dict(self.attributes),
            "role": self.role,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MouseTarget":
        return cls(
            element=d.get("element", ""),
            selector=d.get("selector", ""),
            text=d.get("text"),
            attributes=dict(d.get("attributes") or {}),
            role=d.get("role"),
        )


@dataclass(frozen=True)
class MouseEvent:
    kind: ClassVar[str] = "mouse"

    subtype: str
    coordinates: Coordinates
    timestamp: float = 0
    target: Optional[MouseTarget] = None
    button: Optional[int] = None
    pressure: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.subtype,
            "coordinates": self.coordinates.to_dict(),
            "target": self.target.to_dict() if self.target else None,
            "button": self.button,
            "pressure": self.pressure,
            "timestamp": self.timestamp,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MouseEvent":
        target = d.get("target")
        return cls(
            subtype=d.get("type", "click"),
            coordinates=Coordinates.from_dict(d.get("coordinates", {})),
            timestamp=d.get("timestamp", 0),
            target=MouseTarget.from_dict(target) if target else None,
            button=d.get("button"),
            pressure=d.get("pressure"),
        )


# --- キーボード ---

@dataclass(frozen=True)
class Modifiers:
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    meta: bool = False
    fn: bool = False

    def any_command(self) -> bool:
        """ショートカット判定用（ctrl / meta / alt のいずれか）"""
        return self.ctrl or self.meta or self.alt

    def to_dict(self) -> Dict[str, bool]:
        return {"ctrl": self.ctrl, "alt": self.alt, "shift": self.shift, "meta": self.meta, "fn": self.fn}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Modifiers":
        return cls(
            ctrl=bool(d.get("ctrl", False)),
            alt=bool(d.get("alt", False)),
            shift=bool(d.get("shift", False)),
            meta=bool(d.get("meta", False)),
            fn=bool(d.get("fn", False)),
        )


@dataclass(frozen=True)
class KeyboardEvent:
    kind: ClassVar[str] = "keyboard"

    subtype: str
    key: str
    timestamp: float = 0
    key_code: Optional[int] = None
    modifiers: Modifiers = field(default_factory=Modifiers)
    repeat: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.subtype,
            "key": self.key,
            "keyCode": self.key_code,
            "modifiers": self.modifiers.to_dict(),
            "repeat": self.repeat,
            "timestamp": self.timestamp,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "KeyboardEvent":
        return cls(
            subtype=d.get("type", "keyPress"),
            key=d.get("key", ""),
            timestamp=d.get("timestamp", 0),
            key_code=d.get("keyCode"),
            modifiers=Modifiers.from_dict(d.get("modifiers") or {}),
            repeat=d.get("repeat"),
        )


# --- システム ---

@dataclass(frozen=True)
class SystemCall:
    type: str
    module: str
    function: str
    timestamp: float = 0
    parameters: Optional[Dict[str, Any]] = None
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "module": self.module,
            "function": self.function,
            "parameters": self.parameters,
            "result": self.result,
            "error": self.error,
            "timestamp": self.timestamp,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SystemCall":
        return cls(
            type=d.get("type", ""),
            module=d.get("module", ""),
            function=d.get("function", ""),
            timestamp=d.get("timestamp", 0),
            parameters=d.get("parameters"),
            result=d.get("result"),
            error=d.get("error"),
        )


@dataclass(frozen=True)
class ProcessInfo:
    name: str
    pid: Optional[int] = None
    path: Optional[str] = None
    command_line: Optional[str] = None
    parent: Optional[Dict[str, Any]] = None  # {"name": str, "pid": int}
    user: Optional[str] = None
    start_time: Optional[float] = None
    cpu: Optional[float] = None
    memory: Optional[float] = None
    status: Optional[str] = None  # running / suspended / terminated

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "name": self.name,
            "pid": self.pid,
            "path": self.path,
            "commandLine": self.command_line,
            "parent": self.parent,
            "user": self.user,
            "startTime": self.start_time,
            "cpu": self.cpu,
            "memory": self.memory,
            "status": self.status,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProcessInfo":
        return cls(
            name=d.get("name", ""),
            pid=d.get("pid"),
            path=d.get("path"),
            command_line=d.get("commandLine"),
            parent=d.get("parent"),
            user=d.get("user"),
            start_time=d.get("startTime"),
            cpu=d.get("cpu"),
            memory=d.get("memory"),
            status=d.get("status"),
        )


@dataclass(frozen=True)
class ServiceInfo:
    name: str
    status: str  # running / stopped / starting / stopping
    start_type: str  # automatic / manual / disabled
    display_name: Optional[str] = None
    process_id: Optional[int] = None
    dependencies: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "name": self.name,
            "displayName": self.display_name,
            "status": self.status,
            "startType": self.start_type,
            "processId": self.process_id,
            "dependencies": list(self.dependencies) if self.dependencies else None,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ServiceInfo":
        return cls(
            name=d.get("name", ""),
            status=d.get("status", "stopped"),
            start_type=d.get("startType", "manual"),
            display_name=d.get("displayName"),
            process_id=d.get("processId"),
            dependencies=tuple(d.get("dependencies") or ()),
        )


@dataclass(frozen=True)
class WindowInfo:
    title: str
    handle: Optional[int] = None
    bounds: Optional[Bounds] = None
    is_fullscreen: Optional[bool] = None
    is_minimized: Optional[bool] = None
    is_maximized: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "title": self.title,
            "handle": self.handle,
            "bounds": self.bounds.to_dict() if self.bounds else None,
            "isFullscreen": self.is_fullscreen,
            "isMinimized": self.is_minimized,
            "isMaximized": self.is_maximized,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WindowInfo":
        bounds = d.get("bounds")
        return cls(
            title=d.get("title", ""),
            handle=d.get("handle"),
            bounds=Bounds.from_dict(bounds) if bounds else None,
            is_fullscreen=d.get("isFullscreen"),
            is_minimized=d.get("isMinimized"),
            is_maximized=d.get("isMaximized"),
        )


@dataclass(frozen=True)
class SystemEvent:
    kind: ClassVar[str] = "system"

    subtype: str
    timestamp: float = 0
    process: Optional[ProcessInfo] = None
    service: Optional[ServiceInfo] = None
    system_call: Optional[SystemCall] = None
    window: Optional[WindowInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.subtype,
            "process": self.process.to_dict() if self.process else None,
            "service": self.service.to_dict() if self.service else None,
            "systemCall": self.system_call.to_dict() if self.system_call else None,
            "window": self.window.to_dict() if self.window else None,
            "timestamp": self.timestamp,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SystemEvent":
        process = d.get("process")
        service = d.get("service")
        system_call = d.get("systemCall")
        window = d.get("window")
        return cls(
            subtype=d.get("type", "systemCall"),
            timestamp=d.get("timestamp", 0),
            process=ProcessInfo.from_dict(process) if process else None,
            service=ServiceInfo.from_dict(service) if service else None,
            system_call=SystemCall.from_dict(system_call) if system_call else None,
            window=WindowInfo.from_dict(window) if window else None,
        )


Event = Union[MouseEvent, KeyboardEvent, SystemEvent]

_EVENT_CLASSES = {
    "mouse": MouseEvent,
    "keyboard": KeyboardEvent,
    "system": SystemEvent,
}


def event_from_dict(action_type: str, d: Dict[str, Any]) -> Event:
    """Action.type をキーにイベントを復元する。未知の種別は ValueError"""
    event_cls = _EVENT_CLASSES.get(action_type)
    if event_cls is None:
        raise ValueError(f"未知のアクション種別: {action_type!r}")
    return event_cls.from_dict(d)


# --- 環境・GUI ---

@dataclass(frozen=True)
class OSInfo:
    name: str
    version: str = ""
    arch: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "version": self.version, "arch": self.arch}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OSInfo":
        return cls(name=d.get("name", ""), version=d.get("version", ""), arch=d.get("arch", ""))


@dataclass(frozen=True)
class ScreenInfo:
    id: int
    bounds: Bounds
    primary: bool = False
    scale_factor: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "bounds": self.bounds.to_dict(),
            "primary": self.primary,
            "scaleFactor": self.scale_factor,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScreenInfo":
        return cls(
            id=d.get("id", 0),
            bounds=Bounds.from_dict(d.get("bounds", {})),
            primary=d.get("primary", False),
            scale_factor=d.get("scaleFactor", 1.0),
        )


@dataclass(frozen=True)
class EnvironmentContext:
    os: OSInfo
    screens: Tuple[ScreenInfo, ...] = ()
    locale: str = ""
    timezone: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "os": self.os.to_dict(),
            "display": {"screens": [s.to_dict() for s in self.screens]},
            "locale": self.locale,
            "timezone": self.timezone,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EnvironmentContext":
        display = d.get("display") or {}
        return cls(
            os=OSInfo.from_dict(d.get("os") or {}),
            screens=tuple(ScreenInfo.from_dict(s) for s in display.get("screens", [])),
            locale=d.get("locale", ""),
            timezone=d.get("timezone", ""),
        )


@dataclass(frozen=True)
class GUIElement:
    type: str  # text / button / input / menu / container
    bounds: Bounds
    text: Optional[str] = None
    confidence: Optional[float] = None
    attributes: Dict[str, Any] = field(default_factory=dict)  # isClickable / role / state

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "text": self.text,
            "confidence": self.confidence,
            "bounds": self.bounds.to_dict(),
            "attributes": dict(self.attributes),
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GUIElement":
        return cls(
            type=d.get("type", "text"),
            bounds=Bounds.from_dict(d.get("bounds", {})),
            text=d.get("text"),
            confidence=d.get("confidence"),
            attributes=dict(d.get("attributes") or {}),
        )


@dataclass(frozen=True)
class ScreenRegion:
    type: str  # container / window / dialog
    bounds: Bounds
    elements: Tuple[GUIElement, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "elements": [e.to_dict() for e in self.elements],
            "bounds": self.bounds.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScreenRegion":
        return cls(
            type=d.get("type", "container"),
            bounds=Bounds.from_dict(d.get("bounds", {})),
            elements=tuple(GUIElement.from_dict(e) for e in d.get("elements", [])),
        )


@dataclass(frozen=True)
class GUIState:
    elements: Tuple[GUIElement, ...] = ()
    regions: Tuple[ScreenRegion, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "elements": [e.to_dict() for e in self.elements],
            "regions": [r.to_dict() for r in self.regions],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GUIState":
        return cls(
            elements=tuple(GUIElement.from_dict(e) for e in d.get("elements", [])),
            regions=tuple(ScreenRegion.from_dict(r) for r in d.get("regions", [])),
        )


@dataclass(frozen=True)
class SystemState:
    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    active_processes: float = 0
    active_services: float = 0

    def to_dict(self) -> Dict[str, float]:
        return {
            "cpuUsage": self.cpu_usage,
            "memoryUsage": self.memory_usage,
            "activeProcesses": self.active_processes,
            "activeServices": self.active_services,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SystemState":
        return cls(
            cpu_usage=d.get("cpuUsage", 0.0),
            memory_usage=d.get("memoryUsage", 0.0),
            active_processes=d.get("activeProcesses", 0),
            active_services=d.get("activeServices", 0),
        )


@dataclass(frozen=True)
class ActionContext:
    """アクション発生時点の環境スナップショット"""
    window_title: Optional[str] = None
    active_app: Optional[str] = None
    screen_resolution: Optional[Dict[str, int]] = None  # {"width": int, "height": int}
    environment: Optional[EnvironmentContext] = None
    process_chain: Tuple[ProcessInfo, ...] = ()
    system_state: Optional[SystemState] = None
    gui_state: Optional[GUIState] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "windowTitle": self.window_title,
            "activeApp": self.active_app,
            "screenResolution": self.screen_resolution,
            "environment": self.environment.to_dict() if self.environment else None,
            "processChain": [p.to_dict() for p in self.process_chain] if self.process_chain else None,
            "systemState": self.system_state.to_dict() if self.system_state else None,
            "guiState": self.gui_state.to_dict() if self.gui_state else None,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ActionContext":
        environment = d.get("environment")
        system_state = d.get("systemState")
        gui_state = d.get("guiState")
        return cls(
            window_title=d.get("windowTitle"),
            active_app=d.get("activeApp"),
            screen_resolution=d.get("screenResolution"),
            environment=EnvironmentContext.from_dict(environment) if environment else None,
            process_chain=tuple(ProcessInfo.from_dict(p) for p in d.get("processChain") or []),
            system_state=SystemState.from_dict(system_state) if system_state else None,
            gui_state=GUIState.from_dict(gui_state) if gui_state else None,
        )


# --- Action / Recording ---

@dataclass(frozen=True)
class Action:
    id: str
    event: Event
    context: ActionContext = field(default_factory=ActionContext)

    @property
    def type(self) -> str:
        return self.event.kind

    @property
    def timestamp(self) -> float:
        return self.event.timestamp

    def token(self) -> str:
        """パターン抽出用の "type:subtype" トークン"""
        return f"{self.type}:{self.event.subtype}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "event": self.event.to_dict(),
            "context": self.context.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Action":
        return cls(
            id=d.get("id", ""),
            event=event_from_dict(d.get("type", ""), d.get("event") or {}),
            context=ActionContext.from_dict(d.get("context") or {}),
        )


@dataclass(frozen=True)
class Recording:
    """名前付き・タグ付きの Action 列（生成後は変更しない）"""
    id: str
    name: str
    description: str
    actions: Tuple[Action, ...]
    environment: EnvironmentContext
    tags: Tuple[str, ...] = ()
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "actions": [a.to_dict() for a in self.actions],
            "environment": self.environment.to_dict(),
            "tags": list(self.tags),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Recording":
        return cls(
            id=d.get("id", ""),
            name=d.get("name", ""),
            description=d.get("description") or "",
            actions=tuple(Action.from_dict(a) for a in d.get("actions", [])),
            environment=EnvironmentContext.from_dict(d.get("environment") or {}),
            tags=tuple(d.get("tags") or ()),
            created_at=d.get("created_at", ""),
        )


def unique_tags(tags: List[str]) -> Tuple[str, ...]:
    """出現順を保ったまま重複を除いたタグ列"""
    seen = []
    for tag in tags:
        if tag not in seen:
            seen.append(tag)
    return tuple(seen)
