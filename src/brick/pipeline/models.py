"""
パターン学習・タスク生成で共有するデータモデル定義

【使用方法】
from brick.pipeline.models import Pattern, SuccessMetrics, ContextFeatures, LearningFeedback, ContextHints

pattern = Pattern(
    id="uuid-xxx",
    action_sequence=["mouse:click", "keyboard:textInput"],
    success_metrics=SuccessMetrics(completion_rate=1.0, execution_time=350, error_rate=0.0, user_satisfaction=0.85),
    context_features=ContextFeatures(environment=["macOS", "ja-JP", "JST"]),
    emergent_behaviors=["adaptive-timing"],
)

feedback = LearningFeedback(
    task_id="rec-001",
    success=True,
    execution_time=1200,
    emergent_patterns=["context-awareness"],
    adaptations=["retry-on-timeout"],
)

hints = ContextHints(os=OSInfo(name="macOS"))

【処理内容】
SuccessMetrics: 成功パターンの評価指標（完了率・実行時間・エラー率・満足度）
ContextFeatures: 環境タグ・GUI要素種別・合算したシステム状態
Pattern: 成功した録画から抽出した "type:subtype" トークン列 + 指標 + 創発的振る舞い
LearningFeedback: 実行結果のフィードバック（知識マップの更新元）
ContextHints: タスク生成時に指定する環境の部分指定

【依存】
Python標準ライブラリのみ (dataclasses, typing)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from brick.common.models import OSInfo, ScreenInfo


@dataclass
class SuccessMetrics:
    completion_rate: float = 1.0
    execution_time: float = 0.0  # ミリ秒
    error_rate: float = 0.0
    user_satisfaction: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "completionRate": self.completion_rate,
            "executionTime": self.execution_time,
            "errorRate": self.error_rate,
            "userSatisfaction": self.user_satisfaction,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SuccessMetrics":
        return cls(
            completion_rate=d.get("completionRate", 1.0),
            execution_time=d.get("executionTime", 0.0),
            error_rate=d.get("errorRate", 0.0),
            user_satisfaction=d.get("userSatisfaction", 0.0),
        )


@dataclass
class ContextFeatures:
    environment: List[str] = field(default_factory=list)  # [os.name, locale, timezone]
    gui_elements: List[str] = field(default_factory=list)
    system_state: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": list(self.environment),
            "guiElements": list(self.gui_elements),
            "systemState": dict(self.system_state),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ContextFeatures":
        return cls(
            environment=list(d.get("environment", [])),
            gui_elements=list(d.get("guiElements", [])),
            system_state=dict(d.get("systemState", {})),
        )


@dataclass
class Pattern:
    """成功した録画から抽出した操作パターン"""
    id: str
    action_sequence: List[str]
    success_metrics: SuccessMetrics = field(default_factory=SuccessMetrics)
    context_features: ContextFeatures = field(default_factory=ContextFeatures)
    emergent_behaviors: List[str] = field(default_factory=list)
    source_recording_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "actionSequence": list(self.action_sequence),
            "successMetrics": self.success_metrics.to_dict(),
            "contextFeatures": self.context_features.to_dict(),
            "emergentBehaviors": list(self.emergent_behaviors),
            "sourceRecordingId": self.source_recording_id,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Pattern":
        return cls(
            id=d.get("id", ""),
            action_sequence=list(d.get("actionSequence", [])),
            success_metrics=SuccessMetrics.from_dict(d.get("successMetrics", {})),
            context_features=ContextFeatures.from_dict(d.get("contextFeatures", {})),
            emergent_behaviors=list(d.get("emergentBehaviors", [])),
            source_recording_id=d.get("sourceRecordingId"),
        )


@dataclass
class LearningFeedback:
    task_id: str
    success: bool
    execution_time: float = 0.0
    errors: List[str] = field(default_factory=list)
    adaptations: List[str] = field(default_factory=list)
    emergent_patterns: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskId": self.task_id,
            "success": self.success,
            "executionTime": self.execution_time,
            "errors": list(self.errors),
            "adaptations": list(self.adaptations),
            "emergentPatterns": list(self.emergent_patterns),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LearningFeedback":
        return cls(
            task_id=d.get("taskId", ""),
            success=bool(d.get("success", False)),
            execution_time=d.get("executionTime", 0.0),
            errors=list(d.get("errors", [])),
            adaptations=list(d.get("adaptations", [])),
            emergent_patterns=list(d.get("emergentPatterns", [])),
        )


@dataclass
class ContextHints:
    """タスク生成時の環境指定（未指定の項目はデフォルト値）"""
    os: Optional[OSInfo] = None
    screens: Optional[Tuple[ScreenInfo, ...]] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None
