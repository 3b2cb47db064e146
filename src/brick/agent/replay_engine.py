"""
ReplayEngine: 記録した Action 列を元のタイミングで順に再生するモジュール

【使用方法】
from brick.agent.replay_engine import ReplayEngine, ActionDispatcher

engine = ReplayEngine()                      # デフォルトはログ出力のみ（dry run）
engine.load(recording)                       # Recording または Action 列
result = await engine.play()
print(result.dispatched, result.skipped, engine.get_progress())

# 実行先の差し替え
class MyDispatcher(ActionDispatcher):
    async def mouse(self, action, element):
        ...
engine = ReplayEngine(dispatcher=MyDispatcher())

# システムコール種別の追加
async def open_url(call):
    ...
engine.register_system_call_handler("openUrl", open_url)

# テスト時はスリープを差し替え
engine = ReplayEngine(sleep=fake_sleep)

【処理内容】
1. 状態遷移: IDLE → PLAYING → IDLE。再生中・空の場合の play() は何もしない
2. アクションを1件ずつ順に実行し、次のアクションとの時刻差 max(0, t[i+1] − t[i]) ミリ秒待つ
3. stop() は協調的な停止フラグ（各アクションの境目で確認）。再生中の load() も同様に現在の再生を打ち切る
   （再生はそれぞれ自前の位置を持ち、差し替え後のシーケンスは次の play() で先頭から再生）
4. マウス: target があればディスパッチャーで要素を解決（見つからなければ ReplayTargetNotFound）
5. システム: systemCall 種別ごとのハンドラーを呼ぶ
   - processStart / serviceControl / windowManagement: ディスパッチャーへ委譲
   - processInfo / serviceInfo: 記録時のプローブなので何もしない
   - 未登録の種別: UnknownSystemCall をログに出してスキップし、再生は継続
6. それ以外の実行エラーは ReplayDispatchFailed として送出し、残りは実行しない

【依存】
brick.common.models, brick.agent.models, asyncio, logging
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from brick.agent.models import PlaybackResult, ReplayState
from brick.common.errors import (
    ReplayDispatchFailed, ReplayError, ReplayTargetNotFound, UnknownSystemCall,
)
from brick.common.models import (
    Action, KeyboardEvent, MouseEvent, MouseTarget, Recording, SystemCall, SystemEvent, WindowInfo,
)

logger = logging.getLogger(__name__)

SystemCallHandler = Callable[[SystemCall], Awaitable[None]]
Sleep = Callable[[float], Awaitable[Any]]


class ActionDispatcher:
    """
    再生先の抽象。このクラス自体はログを出すだけ（dry run）。
    実環境への入力注入・プロセス制御はサブクラスでメソッドを上書きする。
    """

    async def resolve_target(self, target: MouseTarget) -> Optional[Any]:
        """要素を解決する。None を返すと ReplayTargetNotFound になる"""
        return target

    async def mouse(self, action: Action, element: Optional[Any]) -> None:
        event = action.event
        logger.info("[dry-run] mouse %s at (%s, %s) target=%s",
                    event.subtype, event.coordinates.x, event.coordinates.y,
                    event.target.selector if event.target else None)

    async def keyboard(self, action: Action) -> None:
        logger.info("[dry-run] keyboard %s key=%r", action.event.subtype, action.event.key)

    async def start_process(self, parameters: Dict[str, Any]) -> None:
        logger.info("[dry-run] プロセス起動: %s", parameters.get("path"))

    async def control_service(self, parameters: Dict[str, Any]) -> None:
        logger.info("[dry-run] サービス制御: %s %s", parameters.get("name"), parameters.get("action"))

    async def manage_window(self, parameters: Dict[str, Any]) -> None:
        logger.info("[dry-run] ウィンドウ操作: %s", parameters.get("action"))

    async def window(self, window: WindowInfo) -> None:
        logger.info("[dry-run] ウィンドウ状態: %s (fullscreen=%s)", window.title, window.is_fullscreen)


class ReplayEngine:
    def __init__(self, dispatcher: Optional[ActionDispatcher] = None, sleep: Sleep = asyncio.sleep):
        self._dispatcher = dispatcher or ActionDispatcher()
        self._sleep = sleep
        self._actions: List[Action] = []
        self._cursor = 0
        self._state = ReplayState.IDLE
        self._stop_requested = False
        self._handlers: Dict[str, SystemCallHandler] = {}
        self._register_builtin_handlers()

    def _register_builtin_handlers(self) -> None:
        async def process_start(call: SystemCall) -> None:
            await self._dispatcher.start_process(call.parameters or {})

        async def service_control(call: SystemCall) -> None:
            await self._dispatcher.control_service(call.parameters or {})

        async def window_management(call: SystemCall) -> None:
            await self._dispatcher.manage_window(call.parameters or {})

        async def probe_record(call: SystemCall) -> None:
            logger.debug("プローブ記録をスキップ: %s", call.type)

        self._handlers.update({
            "processStart": process_start,
            "serviceControl": service_control,
            "windowManagement": window_management,
            "processInfo": probe_record,
            "serviceInfo": probe_record,
        })

    def register_system_call_handler(self, call_type: str, handler: SystemCallHandler) -> None:
        self._handlers[call_type] = handler

    @property
    def state(self) -> ReplayState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is ReplayState.PLAYING

    def load(self, recording: Union[Recording, Iterable[Action]]) -> None:
        """再生対象を差し替えてカーソルを先頭に戻す"""
        actions = recording.actions if isinstance(recording, Recording) else recording
        self._actions = list(actions)
        self._cursor = 0

    def get_progress(self) -> float:
        if not self._actions:
            return 0.0
        return self._cursor / len(self._actions) * 100

    def stop(self) -> None:
        if self.is_playing:
            self._stop_requested = True
            logger.info("再生停止要求")

    async def play(self) -> PlaybackResult:
        if self.is_playing or not self._actions:
            return PlaybackResult(total=len(self._actions))

        actions = self._actions
        result = PlaybackResult(total=len(actions))
        self._state = ReplayState.PLAYING
        self._stop_requested = False
        self._cursor = 0
        index = 0
        started = time.monotonic()
        logger.info("再生開始: %d件", len(actions))

        try:
            while index < len(actions) and not self._halted(actions):
                action = actions[index]
                try:
                    await self._execute(action)
                    result.dispatched += 1
                except UnknownSystemCall as e:
                    logger.warning("未知のシステムコールをスキップ: %s (action=%s)", e.call_type, action.id)
                    result.skipped.append(action.id)
                except ReplayError:
                    raise
                except Exception as e:
                    logger.error("アクション実行失敗: %s - %s", action.id, e)
                    raise ReplayDispatchFailed(action.id, str(e)) from e
                index += 1
                if self._actions is actions:
                    self._cursor = index

                if index < len(actions) and not self._halted(actions):
                    delay_ms = max(0.0, actions[index].timestamp - action.timestamp)
                    if delay_ms > 0:
                        await self._sleep(delay_ms / 1000)

            result.cancelled = index < len(actions)
            if self._actions is not actions:
                logger.info("再生中に load() されたため旧シーケンスの再生を終了 (%d/%d件)", index, len(actions))
        finally:
            self._state = ReplayState.IDLE
            self._stop_requested = False
            result.elapsed_ms = (time.monotonic() - started) * 1000

        logger.info("再生終了: 実行%d件 / スキップ%d件 / 中断=%s",
                    result.dispatched, len(result.skipped), result.cancelled)
        return result

    def _halted(self, actions: List[Action]) -> bool:
        """停止要求、または load() で再生対象が差し替えられた"""
        return self._stop_requested or self._actions is not actions

    async def _execute(self, action: Action) -> None:
        event = action.event
        if isinstance(event, MouseEvent):
            element = None
            if event.target is not None:
                element = await self._dispatcher.resolve_target(event.target)
                if element is None:
                    raise ReplayTargetNotFound(event.target.selector, action.id)
            await self._dispatcher.mouse(action, element)
        elif isinstance(event, KeyboardEvent):
            await self._dispatcher.keyboard(action)
        elif isinstance(event, SystemEvent):
            if event.system_call is not None:
                handler = self._handlers.get(event.system_call.type)
                if handler is None:
                    raise UnknownSystemCall(event.system_call.type)
                await handler(event.system_call)
            if event.window is not None:
                await self._dispatcher.window(event.window)
