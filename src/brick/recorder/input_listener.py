"""
pynput による実マウス・キーボード入力の取り込み（オプション）

【使用方法】
from brick.recorder.input_listener import InputListener

recorder.start()
listener = InputListener(recorder, loop=asyncio.get_running_loop())
listener.start()        # pynput のリスナースレッドを起動
...
listener.stop()

【処理内容】
1. pynput の mouse.Listener / keyboard.Listener を起動（各自のスレッドで動く）
2. クリック（ボタン解放時）を click / rightClick、ホイールを scroll として通知
3. キー押下を keyDown、解放を keyUp として通知。修飾キーは状態のみ更新する
4. 通知はすべて loop.call_soon_threadsafe 経由でイベントループのスレッドから
   ActionRecorder に渡すため、バッファはループのスレッドでのみ変更される

【依存】
pynput（pip install .[input]、start() 時に import）, brick.recorder.action_recorder
"""

import asyncio
import logging
from typing import Any, Optional, Set

from brick.common.models import Modifiers

logger = logging.getLogger(__name__)

_MODIFIER_NAMES = {
    "ctrl": "ctrl", "ctrl_l": "ctrl", "ctrl_r": "ctrl",
    "alt": "alt", "alt_l": "alt", "alt_r": "alt", "alt_gr": "alt",
    "shift": "shift", "shift_l": "shift", "shift_r": "shift",
    "cmd": "meta", "cmd_l": "meta", "cmd_r": "meta",
}

_BUTTON_INDEX = {"left": 0, "middle": 1, "right": 2}


def key_name(key: Any) -> str:
    """pynput のキーオブジェクトを文字列に変換（文字キーは文字、特殊キーは名前）"""
    char = getattr(key, "char", None)
    if char:
        return char
    name = getattr(key, "name", None)
    if name:
        return name
    return str(key)


class InputListener:
    def __init__(self, recorder, loop: asyncio.AbstractEventLoop, capture_moves: bool = False):
        self._recorder = recorder
        self._loop = loop
        self._capture_moves = capture_moves
        self._pressed: Set[str] = set()
        self._mouse_listener: Optional[Any] = None
        self._keyboard_listener: Optional[Any] = None

    @property
    def running(self) -> bool:
        return self._mouse_listener is not None

    def start(self) -> None:
        from pynput import keyboard, mouse

        if self.running:
            return
        self._mouse_listener = mouse.Listener(
            on_click=self._on_click,
            on_scroll=self._on_scroll,
            on_move=self._on_move if self._capture_moves else None,
        )
        self._keyboard_listener = keyboard.Listener(
            on_press=self._on_press,
            on_release=self._on_release,
        )
        self._mouse_listener.start()
        self._keyboard_listener.start()
        logger.info("実入力キャプチャ開始 (pynput)")

    def stop(self) -> None:
        if self._mouse_listener is not None:
            self._mouse_listener.stop()
        if self._keyboard_listener is not None:
            self._keyboard_listener.stop()
        self._mouse_listener = None
        self._keyboard_listener = None
        self._pressed.clear()
        logger.info("実入力キャプチャ停止")

    def modifiers(self) -> Modifiers:
        return Modifiers(
            ctrl="ctrl" in self._pressed,
            alt="alt" in self._pressed,
            shift="shift" in self._pressed,
            meta="meta" in self._pressed,
        )

    # --- pynput コールバック（リスナースレッド） ---

    def _on_click(self, x, y, button, pressed) -> None:
        if pressed:
            return
        name = getattr(button, "name", "left")
        subtype = "rightClick" if name == "right" else "click"
        self._loop.call_soon_threadsafe(
            self._recorder.record_mouse, subtype, float(x), float(y), None, _BUTTON_INDEX.get(name, 0))

    def _on_scroll(self, x, y, dx, dy) -> None:
        self._loop.call_soon_threadsafe(self._recorder.record_mouse, "scroll", float(x), float(y))

    def _on_move(self, x, y) -> None:
        self._loop.call_soon_threadsafe(self._recorder.record_mouse, "move", float(x), float(y))

    def _on_press(self, key) -> None:
        name = key_name(key)
        modifier = _MODIFIER_NAMES.get(name)
        if modifier:
            self._pressed.add(modifier)
            return
        self._loop.call_soon_threadsafe(
            self._recorder.record_keyboard, "keyDown", name, self.modifiers(), getattr(key, "vk", None))

    def _on_release(self, key) -> None:
        name = key_name(key)
        modifier = _MODIFIER_NAMES.get(name)
        if modifier:
            self._pressed.discard(modifier)
            return
        self._loop.call_soon_threadsafe(
            self._recorder.record_keyboard, "keyUp", name, self.modifiers(), getattr(key, "vk", None))
