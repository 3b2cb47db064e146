"""
実行フィードバックから知識マップ（振る舞い名 → 重み）を学習するモジュール

【使用方法】
from brick.pipeline.feedback_learner import FeedbackLearner
from brick.pipeline.models import LearningFeedback

learner = FeedbackLearner(knowledge_path="./knowledge.json", store=recording_store, extractor=extractor)

learner.record_feedback(LearningFeedback(
    task_id="rec-001", success=True, execution_time=1200,
    emergent_patterns=["context-awareness"], adaptations=["retry-on-timeout"],
))
print(learner.get_knowledge())   # {"context-awareness": 1.0, "retry-on-timeout": 0.1}
print(learner.success_rate())

# 成功した録画をパターンとして追加登録
pattern = await learner.learn_from_feedback(feedback)

【処理内容】
- フィードバックを履歴に追加（上限なし）
- 成功時: emergent_patterns の各名前 +1、adaptations の各名前 +0.1（減衰・正規化なし）
- learn_from_feedback: 成功時に task_id の録画を取得し、PatternExtractor で蒸留してパターンストアへ追加
  （録画ストアのエラーは呼び出し元へ伝播）
- knowledge_path 指定時は構築時に読み込み、更新のたびに JSON で保存

【依存】
brick.pipeline.models, brick.pipeline.pattern_extractor, json, pathlib, logging
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from brick.pipeline.models import LearningFeedback, Pattern

logger = logging.getLogger(__name__)

EMERGENT_PATTERN_WEIGHT = 1.0
ADAPTATION_WEIGHT = 0.1


class FeedbackLearner:
    def __init__(self, knowledge_path: str = "", store=None, extractor=None):
        self._path = Path(knowledge_path) if knowledge_path else None
        self._store = store
        self._extractor = extractor
        self._history: List[LearningFeedback] = []
        self._knowledge: Dict[str, float] = self._load()

    @property
    def history(self) -> Tuple[LearningFeedback, ...]:
        return tuple(self._history)

    def get_knowledge(self) -> Dict[str, float]:
        return dict(self._knowledge)

    def success_rate(self) -> float:
        """成功率（0.0〜1.0）。履歴なしの場合は0.0"""
        if not self._history:
            return 0.0
        return sum(1 for f in self._history if f.success) / len(self._history)

    def record_feedback(self, feedback: LearningFeedback) -> None:
        self._history.append(feedback)
        if not feedback.success:
            logger.info("フィードバック記録: %s (失敗, errors=%d)", feedback.task_id, len(feedback.errors))
            return

        for name in feedback.emergent_patterns:
            self._knowledge[name] = self._knowledge.get(name, 0.0) + EMERGENT_PATTERN_WEIGHT
        for name in feedback.adaptations:
            self._knowledge[name] = self._knowledge.get(name, 0.0) + ADAPTATION_WEIGHT
        logger.info("フィードバック記録: %s (成功, 知識%d件)", feedback.task_id, len(self._knowledge))
        self._save()

    async def learn_from_feedback(self, feedback: LearningFeedback) -> Optional[Pattern]:
        """フィードバックを記録し、成功なら対象録画をパターンとして追加する"""
        self.record_feedback(feedback)
        if not feedback.success or self._store is None or self._extractor is None:
            return None

        recording = await self._store.get(feedback.task_id)
        if not recording.actions:
            logger.warning("アクションのない録画はパターン化しません: %s", feedback.task_id)
            return None
        pattern = self._extractor.extract_pattern(recording)
        self._extractor.patterns.add(pattern)
        logger.info("パターン追加: %s (録画 %s, %dトークン)", pattern.id, recording.id, len(pattern.action_sequence))
        return pattern

    # --- 永続化 ---

    def _load(self) -> Dict[str, float]:
        """JSONファイルから知識マップを読み込み"""
        if self._path is None or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("知識マップ読み込み失敗: %s - %s", self._path.name, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("知識マップの形式が不正（dictでない）: %s", type(data))
            return {}
        return {str(k): float(v) for k, v in data.items()}

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._knowledge, ensure_ascii=False, indent=2), encoding="utf-8")
