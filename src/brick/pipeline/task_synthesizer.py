"""
タスク生成（Absolute Zero）: 成功パターンを選択・再構成して新しい録画を合成する

【使用方法】
from brick.pipeline.task_synthesizer import TaskSynthesizer
from brick.pipeline.models import ContextHints

synth = TaskSynthesizer(patterns=pattern_store)
task = synth.generate_future_task(ContextHints(os=OSInfo(name="macOS")), complexity_level=0.5)
print(task.name)    # "Generated Task (Complexity: 50%)"
print(task.tags)    # ("generated", "absolute-zero", "complexity-5")

【処理内容】
1. 関連パターンの抽出: OS 指定がなければ全件、あれば環境タグに OS 名を含むもの（大文字小文字無視）
2. スコア = 0.4·完了率 + 0.3·(1/実行時間) + 0.2·(1−エラー率) + 0.1·満足度 の降順（同点は id 順）
3. 上位 max(1, ⌈complexity × 関連件数⌉) 件を採用（complexity は 0〜1 に丸める）
4. トークン列から Action を再構成
   - mouse: 座標 (100 + 50i, 100 + 30i)、keyboard: キー "generated"、system: サブタイプのみ
   - コンテキストは合成値（"Generated Context" / "synthetic" / 1920×1080 / パターンのシステム状態）
5. 連結して通し番号のタイムスタンプを振る
6. 直前とイベント内容（タイムスタンプ含む）が完全一致するアクションを除去し、タイムスタンプを i × spacing_ms に振り直す
   （再構成時の通し番号で時刻が異なるため、同じトークンの連続はそのまま残る）
7. 環境はヒント優先、未指定は Windows 11 x64 / 1920×1080 / en-US / UTC
パターンストアが未初期化の場合は警告を出して空として扱う。

【依存】
brick.common.models, brick.pipeline.models, brick.pipeline.pattern_extractor, brick.pipeline.pattern_store, logging, math
"""

import logging
import math
from dataclasses import replace
from typing import List, Optional

from brick.common.errors import PatternStoreUninitialized
from brick.common.models import (
    Action, ActionContext, Bounds, Coordinates, EnvironmentContext, KeyboardEvent,
    MouseEvent, OSInfo, Recording, ScreenInfo, SystemEvent, SystemState, generate_id, now_iso,
)
from brick.pipeline.models import ContextHints, Pattern
from brick.pipeline.pattern_extractor import is_redundant
from brick.pipeline.pattern_store import PatternStore

logger = logging.getLogger(__name__)

DEFAULT_OS = OSInfo(name="Windows", version="11", arch="x64")
DEFAULT_SCREENS = (ScreenInfo(id=0, bounds=Bounds(0, 0, 1920, 1080), primary=True, scale_factor=1.0),)
DEFAULT_LOCALE = "en-US"
DEFAULT_TIMEZONE = "UTC"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def pattern_score(pattern: Pattern) -> float:
    m = pattern.success_metrics
    execution_time = max(m.execution_time, 1.0)
    return (
        m.completion_rate * 0.4
        + (1 / execution_time) * 0.3
        + (1 - m.error_rate) * 0.2
        + m.user_satisfaction * 0.1
    )


def is_pattern_relevant(pattern: Pattern, hints: ContextHints) -> bool:
    if hints.os is None:
        return True
    os_name = hints.os.name.lower()
    return any(os_name in (tag or "").lower() for tag in pattern.context_features.environment)


class TaskSynthesizer:
    def __init__(self, patterns: PatternStore, spacing_ms: float = 75.0):
        self._patterns = patterns
        self._spacing_ms = spacing_ms

    def select_patterns(self, hints: ContextHints, complexity_level: float) -> List[Pattern]:
        try:
            patterns = self._patterns.snapshot()
        except PatternStoreUninitialized as e:
            logger.warning("%s: 空のパターン集合として扱います", e)
            patterns = []

        complexity = min(1.0, max(0.0, complexity_level))
        relevant = [p for p in patterns if is_pattern_relevant(p, hints)]
        relevant.sort(key=lambda p: (-pattern_score(p), p.id))
        count = max(1, math.ceil(complexity * len(relevant)))
        return relevant[:count]

    def reconstruct_actions(self, pattern: Pattern) -> List[Action]:
        context = ActionContext(
            window_title="Generated Context",
            active_app="synthetic",
            screen_resolution={"width": 1920, "height": 1080},
            system_state=SystemState.from_dict(pattern.context_features.system_state),
        )
        actions = []
        for index, token in enumerate(pattern.action_sequence):
            action_type, _, subtype = token.partition(":")
            if action_type == "mouse":
                event = MouseEvent(
                    subtype=subtype,
                    coordinates=Coordinates(x=100 + index * 50, y=100 + index * 30, relative=True),
                    timestamp=index * 100,
                )
            elif action_type == "keyboard":
                event = KeyboardEvent(subtype=subtype, key="generated", timestamp=index * 100)
            elif action_type == "system":
                event = SystemEvent(subtype=subtype, timestamp=index * 100)
            else:
                logger.warning("未知のトークン種別をスキップ: %s (pattern=%s)", token, pattern.id)
                continue
            actions.append(Action(id=generate_id(), event=event, context=context))
        return actions

    def optimize(self, actions: List[Action]) -> List[Action]:
        """重複アクション除去 + タイミング再割り当て"""
        kept = [a for i, a in enumerate(actions) if i == 0 or not is_redundant(actions[i - 1], a)]
        return [
            replace(a, event=replace(a.event, timestamp=i * self._spacing_ms))
            for i, a in enumerate(kept)
        ]

    def build_environment(self, hints: ContextHints) -> EnvironmentContext:
        return EnvironmentContext(
            os=hints.os or DEFAULT_OS,
            screens=tuple(hints.screens) if hints.screens else DEFAULT_SCREENS,
            locale=hints.locale or DEFAULT_LOCALE,
            timezone=hints.timezone or DEFAULT_TIMEZONE,
        )

    def generate_future_task(
        self,
        context_hints: Optional[ContextHints] = None,
        complexity_level: float = 0.5,
    ) -> Recording:
        hints = context_hints or ContextHints()
        selected = self.select_patterns(hints, complexity_level)

        synthesized: List[Action] = []
        counter = 0
        for pattern in selected:
            for action in self.reconstruct_actions(pattern):
                synthesized.append(replace(action, event=replace(action.event, timestamp=counter)))
                counter += 1

        actions = self.optimize(synthesized)
        logger.info("タスク生成: パターン%d件 → アクション%d件 (complexity=%.2f)",
                    len(selected), len(actions), complexity_level)

        return Recording(
            id=generate_id(),
            name=f"Generated Task (Complexity: {round_half_up(complexity_level * 100)}%)",
            description=f"Task generated with the Absolute Zero technique from {len(selected)} successful patterns",
            actions=tuple(actions),
            environment=self.build_environment(hints),
            tags=("generated", "absolute-zero", f"complexity-{round_half_up(complexity_level * 10)}"),
            created_at=now_iso(),
        )
