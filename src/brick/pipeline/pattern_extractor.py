"""
パターン抽出器: 保存済みの録画から「成功した操作」を判定し、Pattern に蒸留する

【使用方法】
from brick.pipeline.pattern_extractor import PatternExtractor
from brick.pipeline.pattern_store import PatternStore
from brick.pipeline.recording_store import JsonRecordingStore

patterns = PatternStore()
extractor = PatternExtractor(store=JsonRecordingStore("./recordings"), patterns=patterns)
await extractor.initialize()        # コールドスタート: 全録画を評価して成功パターンを登録
print(len(patterns))

if extractor.is_successful(recording):
    pattern = extractor.extract_pattern(recording)

【処理内容】
1. store.search("") で全録画を取得
2. 3つの条件をすべて満たす録画を成功とみなす
   - 完了: アクションが1件以上あり、エラー付きシステムコールがない
   - 効率: 理想時間（件数 × optimal_action_ms）/ 実時間（最大 − 最小タイムスタンプ）≥ min_efficiency
     （実時間 0 以下は効率 1.0、比は1で頭打ち）
   - 冗長性: 1 − 直前と同一イベントの件数 / 件数 ≥ min_cleanliness
3. 成功した録画を Pattern に蒸留
   - "type:subtype" トークン列、実行時間、満足度 =（効率 + 冗長性スコア）/ 2
   - 環境タグ [os.name, locale, timezone]、GUI要素種別、システム状態の合計
   - 創発的振る舞い（繰り返しトークン対 / ウィンドウ切替 / 不均一な間隔 / 高効率 / 少ないクリック）
4. 読み込みや評価の失敗はログを出して継続（起動は中断しない）

【依存】
brick.common.models, brick.pipeline.models, brick.pipeline.pattern_store, logging
"""

import logging
from collections import Counter
from typing import Dict, List, Sequence

from brick.common.models import Action, MouseEvent, Recording, SystemEvent, generate_id
from brick.pipeline.models import ContextFeatures, Pattern, SuccessMetrics
from brick.pipeline.pattern_store import PatternStore

logger = logging.getLogger(__name__)

CLICK_SUBTYPES = ("click", "doubleClick", "rightClick")


def is_error_action(action: Action) -> bool:
    event = action.event
    return isinstance(event, SystemEvent) and event.system_call is not None and event.system_call.error is not None


def total_execution_time(actions: Sequence[Action]) -> float:
    if not actions:
        return 0.0
    timestamps = [a.timestamp for a in actions]
    return max(timestamps) - min(timestamps)


def is_redundant(prev: Action, cur: Action) -> bool:
    """直前と同じ種別かつイベント内容（タイムスタンプ含む）が完全一致"""
    return prev.type == cur.type and prev.event == cur.event


def count_redundant(actions: Sequence[Action]) -> int:
    return sum(1 for i in range(1, len(actions)) if is_redundant(actions[i - 1], actions[i]))


def cleanliness_score(actions: Sequence[Action]) -> float:
    if not actions:
        return 0.0
    return max(0.0, 1 - count_redundant(actions) / len(actions))


def aggregate_system_state(actions: Sequence[Action]) -> Dict[str, float]:
    state: Dict[str, float] = {}
    for action in actions:
        if action.context.system_state is None:
            continue
        for key, value in action.context.system_state.to_dict().items():
            state[key] = state.get(key, 0) + value
    return state


class PatternExtractor:
    def __init__(
        self,
        store,
        patterns: PatternStore,
        optimal_action_ms: float = 50.0,
        min_efficiency: float = 0.7,
        min_cleanliness: float = 0.8,
    ):
        self._store = store
        self._patterns = patterns
        self._optimal_action_ms = optimal_action_ms
        self._min_efficiency = min_efficiency
        self._min_cleanliness = min_cleanliness

    @property
    def patterns(self) -> PatternStore:
        return self._patterns

    async def initialize(self) -> int:
        """全録画を評価して成功パターンを登録する。返却: 登録件数"""
        added = 0
        try:
            recordings = await self._store.search("")
            for recording in recordings:
                try:
                    if self.is_successful(recording):
                        self._patterns.add(self.extract_pattern(recording))
                        added += 1
                except Exception as e:
                    logger.warning("録画評価スキップ: %s - %s", recording.id, e)
        except Exception as e:
            logger.error("成功パターンの初期化に失敗（%d件で継続）: %s", added, e)
        finally:
            self._patterns.mark_initialized()
        logger.info("成功パターン初期化: %d件", added)
        return added

    # --- 成功判定 ---

    def execution_efficiency(self, actions: Sequence[Action]) -> float:
        if not actions:
            return 0.0
        total = total_execution_time(actions)
        if total <= 0:
            return 1.0
        optimal = len(actions) * self._optimal_action_ms
        return min(1.0, optimal / total)

    def is_completed(self, actions: Sequence[Action]) -> bool:
        return len(actions) > 0 and not any(is_error_action(a) for a in actions)

    def is_successful(self, recording: Recording) -> bool:
        actions = recording.actions
        return (
            self.is_completed(actions)
            and self.execution_efficiency(actions) >= self._min_efficiency
            and cleanliness_score(actions) >= self._min_cleanliness
        )

    # --- 蒸留 ---

    def extract_pattern(self, recording: Recording) -> Pattern:
        actions = recording.actions
        efficiency = self.execution_efficiency(actions)
        cleanliness = cleanliness_score(actions)
        env = recording.environment

        gui_elements = [
            element.type
            for action in actions if action.context.gui_state is not None
            for element in action.context.gui_state.elements
        ]

        return Pattern(
            id=generate_id(),
            action_sequence=[a.token() for a in actions],
            success_metrics=SuccessMetrics(
                completion_rate=1.0,
                execution_time=total_execution_time(actions),
                error_rate=0.0,
                user_satisfaction=(efficiency + cleanliness) / 2,
            ),
            context_features=ContextFeatures(
                environment=[env.os.name, env.locale, env.timezone],
                gui_elements=gui_elements,
                system_state=aggregate_system_state(actions),
            ),
            emergent_behaviors=self.identify_emergent_behaviors(actions),
            source_recording_id=recording.id,
        )

    def identify_emergent_behaviors(self, actions: Sequence[Action]) -> List[str]:
        behaviors: List[str] = []

        # 2回以上現れるトークン対
        tokens = [a.token() for a in actions]
        bigrams = Counter(zip(tokens, tokens[1:]))
        seen = set()
        for pair in zip(tokens, tokens[1:]):
            if bigrams[pair] >= 2 and pair not in seen:
                seen.add(pair)
                behaviors.append(f"repeated-sequence:{pair[0]}>{pair[1]}")

        titles = [a.context.window_title for a in actions if a.context.window_title]
        if any(titles[i] != titles[i - 1] for i in range(1, len(titles))):
            behaviors.append("context-awareness")

        gaps = [actions[i].timestamp - actions[i - 1].timestamp for i in range(1, len(actions))]
        if len(gaps) >= 2 and len(set(gaps)) > 1:
            behaviors.append("adaptive-timing")

        if actions and self.execution_efficiency(actions) >= 0.9:
            behaviors.append("efficient-navigation")

        clicks = sum(1 for a in actions if isinstance(a.event, MouseEvent) and a.event.subtype in CLICK_SUBTYPES)
        if actions and clicks <= len(actions) / 2:
            behaviors.append("minimal-clicks")

        return behaviors
