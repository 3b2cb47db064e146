"""
Recording を JSON ドキュメントとして保存・読み込みするユーティリティ

【使用方法】
from brick.common.json_saver import save_recording_json, load_recording_json

path = save_recording_json(recording, "recordings/rec_001.json")
same = load_recording_json(path)

text = recording_to_json(recording)
same = recording_from_json(text)

payload = build_export_payload(actions, environment)   # レコーダーの export 形式

【処理内容】
1. Recording.to_dict() でワイヤ形式（{id, name, description, actions, environment, tags, created_at}）に変換
2. UTF-8でJSONファイルに保存（日本語そのまま、2スペースインデント）
3. 読み込み時は Recording.from_dict() で復元（往復で値が一致する）

【依存】
Python標準ライブラリのみ (json, datetime, pathlib)
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Union

from brick.common.models import Action, EnvironmentContext, Recording

EXPORT_VERSION = "1.0"


def recording_to_json(recording: Recording) -> str:
    return json.dumps(recording.to_dict(), ensure_ascii=False, indent=2)


def recording_from_json(text: str) -> Recording:
    return Recording.from_dict(json.loads(text))


def save_recording_json(recording: Recording, output_path: Union[str, Path]) -> str:
    """
    Recording を JSON ファイルに保存する

    Input:
        recording: 保存対象
        output_path: 保存先パス（親ディレクトリは自動作成）
    Output:
        str: 保存したファイルのパス
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(recording_to_json(recording), encoding="utf-8")
    return str(path)


def load_recording_json(path: Union[str, Path]) -> Recording:
    return recording_from_json(Path(path).read_text(encoding="utf-8"))


def build_export_payload(
    actions: Iterable[Action],
    environment: EnvironmentContext,
) -> Dict[str, Any]:
    """レコーダーのエクスポート形式 {version, timestamp, actions, environment}"""
    return {
        "version": EXPORT_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "actions": [a.to_dict() for a in actions],
        "environment": environment.to_dict(),
    }
