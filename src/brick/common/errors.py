"""
BRICK 例外階層

【使用方法】
from brick.common.errors import ReplayTargetNotFound, PersistenceFailure

try:
    await engine.play()
except ReplayTargetNotFound as e:
    logger.error("要素が見つからない: %s", e.selector)

【処理内容】
BrickError を基底とする例外クラス群。
- CaptureUnavailable: 画面・プロセス情報などの取得手段が使えない（プローブは縮退して継続）
- ReplayTargetNotFound / ReplayDispatchFailed: 再生中の致命的エラー（残りのアクションは実行しない）
- UnknownSystemCall: 未登録のシステムコール種別（再生ではスキップ扱い）
- PersistenceFailure: 録画ストアの読み書き失敗（呼び出し元へ伝播）
- PatternStoreUninitialized: 初期化前のパターンストア参照
- RecorderStateError: 破棄済みレコーダーの再利用

【依存】
Python標準ライブラリのみ
"""

from typing import Optional


class BrickError(Exception):
    """BRICK 全体の基底例外"""


class CaptureUnavailable(BrickError):
    """キャプチャ用の外部機能が利用できない"""


class ReplayError(BrickError):
    """再生エラーの基底"""


class ReplayTargetNotFound(ReplayError):
    def __init__(self, selector: str, action_id: Optional[str] = None):
        super().__init__(f"再生対象の要素が見つかりません: {selector} (action={action_id})")
        self.selector = selector
        self.action_id = action_id


class ReplayDispatchFailed(ReplayError):
    def __init__(self, action_id: str, reason: str):
        super().__init__(f"アクション実行失敗: {action_id} - {reason}")
        self.action_id = action_id
        self.reason = reason


class UnknownSystemCall(BrickError):
    def __init__(self, call_type: str):
        super().__init__(f"未知のシステムコール種別: {call_type}")
        self.call_type = call_type


class PersistenceFailure(BrickError):
    """録画ストアの入出力エラー"""


class PatternStoreUninitialized(BrickError):
    """initialize() 前にパターンストアが参照された"""


class RecorderStateError(BrickError):
    """破棄中・破棄済みのレコーダーに対する操作"""
