"""
再生・命令変換のデータモデル定義

【使用方法】
from brick.agent.models import Instruction, InstructionType, PlaybackResult, ReplayState

inst = Instruction(type=InstructionType.CLICK, target="Save", selector="button#save", description="Click Save")
result = PlaybackResult(dispatched=3, total=3)

【処理内容】
InstructionType: 命令種別（click / type / navigate / system / wait）
Instruction: Action から導出される高水準の命令（永続化しない）
ReplayState: 再生エンジンの状態（IDLE ⇄ PLAYING）
PlaybackResult: 1回の play() のサマリー（実行数・スキップ・中断・経過時間）

【依存】
Python標準ライブラリのみ (dataclasses, enum, typing)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from brick.common.models import SystemCall


class InstructionType(str, Enum):
    CLICK = "click"
    TYPE = "type"
    NAVIGATE = "navigate"
    SYSTEM = "system"
    WAIT = "wait"


class ReplayState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"


@dataclass
class Instruction:
    """1つの高水準命令"""
    type: InstructionType
    description: str
    target: Optional[str] = None
    value: Optional[str] = None
    selector: Optional[str] = None
    system_call: Optional[SystemCall] = None
    context: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "type": self.type.value,
            "target": self.target,
            "value": self.value,
            "selector": self.selector,
            "systemCall": self.system_call.to_dict() if self.system_call else None,
            "description": self.description,
            "context": self.context,
        }
        return {k: v for k, v in d.items() if v is not None}


@dataclass
class PlaybackResult:
    """play() の実行結果"""
    dispatched: int = 0
    total: int = 0
    skipped: List[str] = field(default_factory=list)  # スキップしたアクションID
    cancelled: bool = False
    elapsed_ms: float = 0.0

    @property
    def completed(self) -> bool:
        return not self.cancelled and self.dispatched + len(self.skipped) == self.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dispatched": self.dispatched,
            "total": self.total,
            "skipped": list(self.skipped),
            "cancelled": self.cancelled,
            "elapsed_ms": self.elapsed_ms,
        }
