"""
BRICK 全体の設定（.envからロード）

【使用方法】
from brick.common.config import BrickConfig

config = BrickConfig.from_env()
print(config.store_dir)
print(config.min_efficiency)     # 0.7

# テスト・カスタム設定
config = BrickConfig(store_dir="/tmp/recordings", variation_seed=42)

【処理内容】
.envファイル（プロジェクトルート → カレントディレクトリの順）から環境変数をロードし、
レコーダー・パターン抽出・タスク生成・バリエーション生成の設定値を提供する。
デフォルト値が設定されているため、.envがなくても動作する。

【環境変数】
BRICK_STORE_DIR: 録画JSONの保存先ディレクトリ（デフォルト: <プロジェクト>/recordings）
BRICK_KNOWLEDGE_PATH: 知識マップJSONの保存先（未指定時は永続化しない）
BRICK_PROCESS_PROBE_SEC: プロセス情報の取得間隔（デフォルト: 1.0）
BRICK_SERVICE_PROBE_SEC: サービス情報の取得間隔（デフォルト: 5.0）
BRICK_GUI_PROBE_SEC: 画面解析の間隔（デフォルト: 1.0）
BRICK_OPTIMAL_ACTION_MS: 1アクションあたりの理想実行時間（デフォルト: 50）
BRICK_MIN_EFFICIENCY: 効率性の閾値（デフォルト: 0.7）
BRICK_MIN_CLEANLINESS: 冗長操作の少なさの閾値（デフォルト: 0.8）
BRICK_SYNTH_SPACING_MS: 生成タスクのアクション間隔（デフォルト: 75）
BRICK_MERGE_SPACING_MS: 結合タスクのアクション間隔（デフォルト: 100）
BRICK_VARIATION_SEED: 乱数シード（未指定時はOSのエントロピー）
BRICK_CAPTURE_OS_INPUT: pynput による実入力キャプチャを有効化（デフォルト: false）

【依存】
python-dotenv, os
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# プロジェクトルートの .env をロード
_project_root = Path(__file__).resolve().parent.parent.parent.parent
load_dotenv(_project_root / ".env")
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class BrickConfig:
    """BRICK 設定"""
    # 保存先
    store_dir: str = ""
    knowledge_path: str = ""

    # レコーダーのプローブ間隔（秒）
    process_probe_sec: float = 1.0
    service_probe_sec: float = 5.0
    gui_probe_sec: float = 1.0

    # パターン抽出
    optimal_action_ms: float = 50.0
    min_efficiency: float = 0.7
    min_cleanliness: float = 0.8

    # タスク生成
    synth_spacing_ms: float = 75.0
    merge_spacing_ms: float = 100.0
    variation_seed: Optional[int] = None

    # 実入力キャプチャ（pynput）
    capture_os_input: bool = False

    def __post_init__(self):
        if not self.store_dir:
            self.store_dir = str(_project_root / "recordings")

    @classmethod
    def from_env(cls) -> "BrickConfig":
        """環境変数から設定を構築"""
        seed = os.environ.get("BRICK_VARIATION_SEED", "")
        return cls(
            store_dir=os.environ.get("BRICK_STORE_DIR", ""),
            knowledge_path=os.environ.get("BRICK_KNOWLEDGE_PATH", ""),
            process_probe_sec=float(os.environ.get("BRICK_PROCESS_PROBE_SEC", "1.0")),
            service_probe_sec=float(os.environ.get("BRICK_SERVICE_PROBE_SEC", "5.0")),
            gui_probe_sec=float(os.environ.get("BRICK_GUI_PROBE_SEC", "1.0")),
            optimal_action_ms=float(os.environ.get("BRICK_OPTIMAL_ACTION_MS", "50")),
            min_efficiency=float(os.environ.get("BRICK_MIN_EFFICIENCY", "0.7")),
            min_cleanliness=float(os.environ.get("BRICK_MIN_CLEANLINESS", "0.8")),
            synth_spacing_ms=float(os.environ.get("BRICK_SYNTH_SPACING_MS", "75")),
            merge_spacing_ms=float(os.environ.get("BRICK_MERGE_SPACING_MS", "100")),
            variation_seed=int(seed) if seed else None,
            capture_os_input=_env_bool("BRICK_CAPTURE_OS_INPUT", False),
        )
