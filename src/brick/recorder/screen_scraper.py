"""
画面キャプチャ + GUI要素推定モジュール

【使用方法】
from brick.recorder.screen_scraper import ScreenScraper, DetectedText

def detector(image):
    # OCR などの認識器を差し込む（PIL.Image → DetectedText のリスト）
    return [DetectedText(text="Save", confidence=92.0, bbox=(100, 200, 140, 216))]

scraper = ScreenScraper(detector=detector)
await scraper.capture_screen()

elements = scraper.get_elements()        # GUIElement のリスト
regions = scraper.get_regions()          # 行・間隔から推定した container 領域
element = scraper.find_element_at(120, 210)

await scraper.dispose()

【処理内容】
1. mss で指定モニターをキャプチャし、Pillow の RGB 画像に変換（ブロッキング処理はスレッドへ逃がす）
2. 差し込まれた認識器で文字列と矩形を取得（認識器なしの場合は要素なし）
3. 文字列から押せそうか（isClickable）と役割（role）を推定
4. y座標を10px単位で丸めて行を作り、行内の平均間隔の2倍を超える隙間で分割して container 領域を推定
mss が使えない環境では CaptureUnavailable を送出する。

【依存】
mss, Pillow (PIL), asyncio
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import mss
import mss.exception
from PIL import Image

from brick.common.errors import CaptureUnavailable
from brick.common.models import Bounds, GUIElement, ScreenRegion

logger = logging.getLogger(__name__)

CLICKABLE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"button", r"click", r"submit", r"send", r"save", r"cancel", r"close", r"open", r"menu")
]

ROW_HEIGHT = 10


@dataclass
class DetectedText:
    """認識器の出力1件。bbox は (x0, y0, x1, y1)"""
    text: str
    confidence: float
    bbox: Tuple[float, float, float, float]


Detector = Callable[[Image.Image], Iterable[DetectedText]]


def is_likely_clickable(text: str) -> bool:
    return any(p.search(text) for p in CLICKABLE_PATTERNS)


def infer_role(text: str) -> str:
    if is_likely_clickable(text):
        return "button"
    if re.search(r"input|text|field", text, re.IGNORECASE):
        return "textbox"
    if re.search(r"menu|dropdown|select", text, re.IGNORECASE):
        return "menu"
    if re.search(r"checkbox|radio", text, re.IGNORECASE):
        return "checkbox"
    if re.search(r"link|href", text, re.IGNORECASE):
        return "link"
    return "text"


def _group_bounds(elements: List[GUIElement]) -> Bounds:
    x = min(e.bounds.x for e in elements)
    y = min(e.bounds.y for e in elements)
    right = max(e.bounds.x + e.bounds.width for e in elements)
    bottom = max(e.bounds.y + e.bounds.height for e in elements)
    return Bounds(x=x, y=y, width=right - x, height=bottom - y)


def _gap(prev: GUIElement, cur: GUIElement) -> float:
    return cur.bounds.x - (prev.bounds.x + prev.bounds.width)


def group_into_regions(elements: List[GUIElement]) -> List[ScreenRegion]:
    """行ごとに並べ、平均間隔の2倍を超える隙間で区切った2要素以上のグループを container とする"""
    rows: Dict[float, List[GUIElement]] = {}
    for element in elements:
        key = round(element.bounds.y / ROW_HEIGHT) * ROW_HEIGHT
        rows.setdefault(key, []).append(element)

    regions = []
    for key in sorted(rows):
        row = sorted(rows[key], key=lambda e: e.bounds.x)
        if len(row) < 2:
            continue
        gaps = [_gap(row[i - 1], row[i]) for i in range(1, len(row))]
        avg_spacing = sum(gaps) / len(gaps)

        groups: List[List[GUIElement]] = [[row[0]]]
        for i in range(1, len(row)):
            if gaps[i - 1] > avg_spacing * 2:
                groups.append([])
            groups[-1].append(row[i])

        for group in groups:
            if len(group) > 1:
                regions.append(ScreenRegion(
                    type="container",
                    bounds=_group_bounds(group),
                    elements=tuple(group),
                ))
    return regions


class ScreenScraper:
    def __init__(self, detector: Optional[Detector] = None, monitor_index: int = 1):
        self._detector = detector
        self._monitor_index = monitor_index
        self._elements: List[GUIElement] = []
        self._regions: List[ScreenRegion] = []
        self._last_image: Optional[Image.Image] = None
        self._disposed = False

    @property
    def last_image(self) -> Optional[Image.Image]:
        return self._last_image

    def _grab(self) -> Image.Image:
        try:
            with mss.mss() as sct:
                monitors = sct.monitors
                index = self._monitor_index if self._monitor_index < len(monitors) else 0
                shot = sct.grab(monitors[index])
                return Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")
        except (mss.exception.ScreenShotError, OSError) as e:
            raise CaptureUnavailable(f"画面キャプチャ不可: {e}") from e

    async def capture_screen(self) -> None:
        """画面をキャプチャして要素・領域を更新する"""
        if self._disposed:
            raise CaptureUnavailable("ScreenScraper は破棄済みです")
        image = await asyncio.to_thread(self._grab)
        self._last_image = image
        await asyncio.to_thread(self.analyze, image)

    def analyze(self, image: Image.Image) -> List[GUIElement]:
        """画像から要素を推定して内部状態を更新する"""
        if self._detector is None:
            self._elements = []
            self._regions = []
            return []

        elements = []
        for word in self._detector(image):
            x0, y0, x1, y1 = word.bbox
            elements.append(GUIElement(
                type="text",
                text=word.text,
                confidence=word.confidence,
                bounds=Bounds(x=x0, y=y0, width=x1 - x0, height=y1 - y0),
                attributes={
                    "isClickable": is_likely_clickable(word.text),
                    "role": infer_role(word.text),
                },
            ))
        self._elements = elements
        self._regions = group_into_regions(elements)
        logger.debug("画面解析: 要素%d件, 領域%d件", len(elements), len(self._regions))
        return list(elements)

    def get_elements(self) -> List[GUIElement]:
        return list(self._elements)

    def get_regions(self) -> List[ScreenRegion]:
        return list(self._regions)

    def find_element_at(self, x: float, y: float) -> Optional[GUIElement]:
        for element in self._elements:
            if element.bounds.contains(x, y):
                return element
        return None

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._elements = []
        self._regions = []
        self._last_image = None
        close: Any = getattr(self._detector, "close", None)
        if close is not None:
            result = close()
            if asyncio.iscoroutine(result):
                await result
        logger.info("ScreenScraper 破棄")
