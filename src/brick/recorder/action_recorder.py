"""
ユーザー操作を Action 列として記録するレコーダー

【使用方法】
from brick.recorder.action_recorder import ActionRecorder
from brick.recorder.screen_scraper import ScreenScraper
from brick.common.system_inspector import SystemInspector

recorder = ActionRecorder(scraper=ScreenScraper(), inspector=SystemInspector())
recorder.add_listener(lambda action: print(action.type, action.event.subtype))

async with recorder:
    recorder.start()                                   # イベントループ上で呼ぶとプローブも起動
    recorder.record_mouse("click", 500, 300)
    recorder.record_keyboard("keyDown", "s", modifiers=Modifiers(meta=True))   # → hotkey
    recorder.record_system("windowFocus", window=WindowInfo(title="Editor"))
    actions = recorder.stop()                          # 不変のタプル
    doc = recorder.export()                            # {version, timestamp, actions, environment}
# async with を抜けると dispose()（プローブ停止 + スクレイパー破棄）

【処理内容】
1. 状態遷移: IDLE → RECORDING → IDLE、dispose() で DISPOSING → DISPOSED（終端）
2. RECORDING 中に受け取った信号1件につき Action を1件、到着順に追加（IDLE 中は無視）
3. ctrl / meta / alt + 1文字キーは hotkey に変換
4. マウス操作はポインタ位置の GUI 要素（テキスト・role・属性）で補完
5. windowFocus でウィンドウタイトル・アクティブアプリを更新し、以降のコンテキストに反映
6. プローブ（asyncio タスク）:
   - プロセス情報（既定1秒）/ サービス情報（既定5秒）を systemCall Action として記録
   - GUI（既定1秒）はスクレイパーの capture_screen() のみ（記録なし）
   - 取得不可（CaptureUnavailable）になったプローブは1度ログを出して停止、その他の例外もログを出して停止
   - システム状態は開始時とプロセスプローブごとに取得してキャッシュし、各 Action のコンテキストに使う
7. start() 時にイベントループがなければプローブは起動せず、離散イベントの記録のみ行う

【依存】
brick.common.models, brick.common.system_inspector, brick.recorder.screen_scraper, asyncio, logging
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from brick.common.errors import CaptureUnavailable, RecorderStateError
from brick.common.json_saver import build_export_payload
from brick.common.models import (
    Action, ActionContext, EnvironmentContext, GUIState, KeyboardEvent, Modifiers,
    MouseEvent, MouseTarget, OSInfo, ProcessInfo, Recording, ServiceInfo, SystemCall,
    SystemEvent, SystemState, WindowInfo, Coordinates, generate_id, now_iso, unique_tags,
)

logger = logging.getLogger(__name__)

ActionListener = Callable[[Action], None]


class RecorderState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    DISPOSING = "disposing"
    DISPOSED = "disposed"


def is_hotkey(key: str, modifiers: Modifiers) -> bool:
    return modifiers.any_command() and len(key) == 1


class ActionRecorder:
    def __init__(
        self,
        scraper=None,
        inspector=None,
        process_probe_sec: float = 1.0,
        service_probe_sec: float = 5.0,
        gui_probe_sec: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Input:
            scraper: GUI スクレイパー（capture_screen / get_elements / get_regions / find_element_at / dispose）
            inspector: SystemInspector 互換の環境取得（None なら環境情報なしで記録）
            process_probe_sec / service_probe_sec / gui_probe_sec: プローブ間隔（秒）
            clock: 経過時間計測用の単調時計（秒）
        """
        self._scraper = scraper
        self._inspector = inspector
        self._process_probe_sec = process_probe_sec
        self._service_probe_sec = service_probe_sec
        self._gui_probe_sec = gui_probe_sec
        self._clock = clock

        self._state = RecorderState.IDLE
        self._actions: List[Action] = []
        self._start_time = 0.0
        self._listeners: List[ActionListener] = []
        self._probes: List[asyncio.Task] = []

        self._window_title: Optional[str] = None
        self._active_app: Optional[str] = None
        self._environment: Optional[EnvironmentContext] = None
        self._process_chain: Tuple[ProcessInfo, ...] = ()
        self._screen_resolution: Optional[Dict[str, int]] = None
        self._system_state: Optional[SystemState] = None

    # --- 状態 ---

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecorderState.RECORDING

    def add_listener(self, callback: ActionListener) -> None:
        self._listeners.append(callback)

    def get_actions(self) -> Tuple[Action, ...]:
        return tuple(self._actions)

    def start(self) -> None:
        """記録開始。記録中に呼ぶとバッファと時計をリセットして再開する"""
        if self._state in (RecorderState.DISPOSING, RecorderState.DISPOSED):
            raise RecorderStateError(f"破棄済みのレコーダーは開始できません (state={self._state.value})")

        self._cancel_probes()
        self._actions = []
        self._start_time = self._clock()
        self._snapshot_environment()
        self._state = RecorderState.RECORDING

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("イベントループ未起動のためプローブを起動しません（離散イベントのみ記録）")
            return
        self._start_probes()
        logger.info("記録開始 (probes=%d)", len(self._probes))

    def stop(self) -> Tuple[Action, ...]:
        if self._state is RecorderState.RECORDING:
            self._state = RecorderState.IDLE
            self._cancel_probes()
            logger.info("記録停止: %d件", len(self._actions))
        return tuple(self._actions)

    def export_environment(self) -> EnvironmentContext:
        """記録開始時の環境（未取得なら現在の環境）"""
        return self._environment or self._current_environment()

    def export(self) -> Dict[str, Any]:
        return build_export_payload(self._actions, self.export_environment())

    def to_recording(self, name: str, description: str = "", tags=()) -> Recording:
        """現在のバッファから Recording を作成"""
        return Recording(
            id=generate_id(),
            name=name,
            description=description,
            actions=tuple(self._actions),
            environment=self.export_environment(),
            tags=unique_tags(list(tags)),
            created_at=now_iso(),
        )

    async def dispose(self) -> None:
        """プローブ停止とスクレイパー破棄。どの経路で抜けても DISPOSED になる"""
        if self._state in (RecorderState.DISPOSING, RecorderState.DISPOSED):
            return
        self._state = RecorderState.DISPOSING
        try:
            probes = self._cancel_probes()
            if probes:
                await asyncio.gather(*probes, return_exceptions=True)
        finally:
            try:
                if self._scraper is not None:
                    await self._scraper.dispose()
            finally:
                self._state = RecorderState.DISPOSED
                logger.info("レコーダー破棄")

    async def __aenter__(self) -> "ActionRecorder":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    # --- 離散イベント ---

    def record_mouse(
        self,
        subtype: str,
        x: float,
        y: float,
        target: Optional[MouseTarget] = None,
        button: Optional[int] = None,
        pressure: Optional[float] = None,
        screen: Optional[int] = None,
        relative: Optional[bool] = None,
    ) -> Optional[Action]:
        if not self.is_recording:
            return None
        event = MouseEvent(
            subtype=subtype,
            coordinates=Coordinates(x=x, y=y, screen=screen, relative=relative),
            target=self._enrich_target(x, y, target),
            button=button,
            pressure=pressure,
            timestamp=self._elapsed_ms(),
        )
        return self._append(event)

    def record_keyboard(
        self,
        subtype: str,
        key: str,
        modifiers: Optional[Modifiers] = None,
        key_code: Optional[int] = None,
        repeat: Optional[bool] = None,
    ) -> Optional[Action]:
        if not self.is_recording:
            return None
        modifiers = modifiers or Modifiers()
        if is_hotkey(key, modifiers):
            subtype = "hotkey"
        event = KeyboardEvent(
            subtype=subtype,
            key=key,
            key_code=key_code,
            modifiers=modifiers,
            repeat=repeat,
            timestamp=self._elapsed_ms(),
        )
        return self._append(event)

    def record_system(
        self,
        subtype: str,
        process: Optional[ProcessInfo] = None,
        service: Optional[ServiceInfo] = None,
        system_call: Optional[SystemCall] = None,
        window: Optional[WindowInfo] = None,
    ) -> Optional[Action]:
        if not self.is_recording:
            return None
        if subtype == "windowFocus" and window is not None:
            self._window_title = window.title
            if process is not None:
                self._active_app = process.name
        event = SystemEvent(
            subtype=subtype,
            process=process,
            service=service,
            system_call=system_call,
            window=window,
            timestamp=self._elapsed_ms(),
        )
        return self._append(event)

    # --- 内部処理 ---

    def _elapsed_ms(self) -> int:
        return int(round((self._clock() - self._start_time) * 1000))

    def _append(self, event) -> Action:
        action = Action(id=generate_id(), event=event, context=self._current_context())
        self._actions.append(action)
        for listener in self._listeners:
            try:
                listener(action)
            except Exception:
                logger.exception("リスナー呼び出しエラー: %r", listener)
        return action

    def _enrich_target(self, x: float, y: float, target: Optional[MouseTarget]) -> Optional[MouseTarget]:
        """ポインタ位置の GUI 要素で text / role / attributes を補完"""
        element = self._scraper.find_element_at(x, y) if self._scraper is not None else None
        if element is None:
            return target
        attributes = dict(target.attributes) if target else {}
        attributes.update(element.attributes)
        role = element.attributes.get("role")
        if target is None:
            return MouseTarget(
                element=element.type,
                selector="",
                text=element.text,
                attributes=attributes,
                role=role,
            )
        return MouseTarget(
            element=target.element,
            selector=target.selector,
            text=element.text or target.text,
            attributes=attributes,
            role=role or target.role,
        )

    def _snapshot_environment(self) -> None:
        if self._inspector is None:
            return
        self._environment = self._inspector.get_environment()
        self._process_chain = self._inspector.get_process_chain()
        self._screen_resolution = self._inspector.get_screen_resolution()
        self._system_state = self._inspector.get_system_state()

    def _current_environment(self) -> EnvironmentContext:
        if self._inspector is not None:
            return self._inspector.get_environment()
        return EnvironmentContext(os=OSInfo(name="unknown"))

    def _current_context(self) -> ActionContext:
        gui_state = None
        if self._scraper is not None:
            gui_state = GUIState(
                elements=tuple(self._scraper.get_elements()),
                regions=tuple(self._scraper.get_regions()),
            )
        return ActionContext(
            window_title=self._window_title,
            active_app=self._active_app,
            screen_resolution=self._screen_resolution,
            environment=self._environment,
            process_chain=self._process_chain,
            system_state=self._system_state,
            gui_state=gui_state,
        )

    # --- プローブ ---

    def _start_probes(self) -> None:
        if self._inspector is not None:
            self._probes.append(asyncio.create_task(
                self._probe_loop("process", self._process_probe_sec, self._probe_processes)))
            self._probes.append(asyncio.create_task(
                self._probe_loop("service", self._service_probe_sec, self._probe_services)))
        if self._scraper is not None:
            self._probes.append(asyncio.create_task(
                self._probe_loop("gui", self._gui_probe_sec, self._scraper.capture_screen)))

    def _cancel_probes(self) -> List[asyncio.Task]:
        probes, self._probes = self._probes, []
        for task in probes:
            task.cancel()
        return probes

    async def _probe_loop(self, name: str, interval: float, step: Callable[[], Awaitable[Any]]) -> None:
        try:
            while self.is_recording:
                await asyncio.sleep(interval)
                if not self.is_recording:
                    break
                await step()
        except CaptureUnavailable as e:
            logger.warning("%s プローブ停止（取得不可）: %s", name, e)
        except Exception:
            logger.exception("%s プローブ異常終了", name)

    async def _probe_processes(self) -> None:
        summary = await asyncio.to_thread(self._inspector.get_process_summary)
        self._system_state = await asyncio.to_thread(self._inspector.get_system_state)
        self._record_probe("processInfo", "getProcesses", summary)

    async def _probe_services(self) -> None:
        summary = await asyncio.to_thread(self._inspector.get_service_summary)
        self._record_probe("serviceInfo", "getServices", summary)

    def _record_probe(self, call_type: str, function: str, summary: Dict[str, Any]) -> None:
        if not self.is_recording:
            return
        timestamp = self._elapsed_ms()
        self.record_system(
            "systemCall",
            system_call=SystemCall(
                type=call_type,
                module="os",
                function=function,
                result=summary,
                timestamp=timestamp,
            ),
        )
