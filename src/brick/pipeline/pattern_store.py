"""
成功パターンの保持（PatternExtractor が所有し、TaskSynthesizer が参照する）

【使用方法】
from brick.pipeline.pattern_store import PatternStore

store = PatternStore()
store.add(pattern)
store.mark_initialized()

patterns = store.snapshot()       # initialize 前は PatternStoreUninitialized
pattern = store.get(pattern.id)
print(len(store))

【処理内容】
- Pattern を id をキーに保持する（挿入順を維持）
- 初期化（コールドスタートの読み込み）完了前の snapshot() は PatternStoreUninitialized
- snapshot() は呼び出し時点のコピーを返す

【依存】
brick.pipeline.models, brick.common.errors
"""

from typing import Dict, Iterator, List, Optional

from brick.common.errors import PatternStoreUninitialized
from brick.pipeline.models import Pattern


class PatternStore:
    def __init__(self):
        self._patterns: Dict[str, Pattern] = {}
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def mark_initialized(self) -> None:
        self._initialized = True

    def add(self, pattern: Pattern) -> None:
        self._patterns[pattern.id] = pattern

    def get(self, pattern_id: str) -> Optional[Pattern]:
        return self._patterns.get(pattern_id)

    def snapshot(self) -> List[Pattern]:
        if not self._initialized:
            raise PatternStoreUninitialized("パターンストアは未初期化です（PatternExtractor.initialize() を先に実行）")
        return list(self._patterns.values())

    def clear(self) -> None:
        self._patterns.clear()

    def __len__(self) -> int:
        return len(self._patterns)

    def __iter__(self) -> Iterator[Pattern]:
        return iter(list(self._patterns.values()))
