"""
録画（Recording）の永続化モジュール

【使用方法】
from brick.pipeline.recording_store import JsonRecordingStore

store = JsonRecordingStore(store_dir="./recordings")

# 保存（id と created_at はストアが採番）
rec_id = await store.save("保存操作", "エディタで保存", actions, environment, ["editor"])

recording = await store.get(rec_id)
hits = await store.search("editor")          # name / description / tags の部分一致（大文字小文字無視）
every = await store.search("")               # 全件
by_app = await store.filter_by_active_app("TextEdit")
by_call = await store.filter_by_system_call_type("processStart")
similar = await store.similar_by_tags(rec_id, limit=5)

【処理内容】
- Recording を JSON ファイルとして永続化（store_dir/{id}.json、UTF-8・2スペースインデント）
- ファイル操作はスレッドで実行し、イベントループをブロックしない
- 読み書きの失敗は PersistenceFailure として呼び出し元へ伝播
- 一覧系の読み込みで壊れたファイルは警告を出してスキップ
- 結果は作成日時の新しい順

【依存】
brick.common.models (Recording), brick.common.json_saver, asyncio, pathlib, logging
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Iterable, List

from brick.common.errors import PersistenceFailure
from brick.common.json_saver import load_recording_json, save_recording_json
from brick.common.models import (
    Action, EnvironmentContext, Recording, SystemEvent, generate_id, now_iso, unique_tags,
)

logger = logging.getLogger(__name__)


class JsonRecordingStore:
    def __init__(self, store_dir: str):
        self._dir = Path(store_dir)
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def store_dir(self) -> Path:
        return self._dir

    async def save(
        self,
        name: str,
        description: str,
        actions: Iterable[Action],
        environment: EnvironmentContext,
        tags: Iterable[str] = (),
    ) -> str:
        """録画を保存。返却: 採番した id"""
        recording = Recording(
            id=generate_id(),
            name=name,
            description=description,
            actions=tuple(actions),
            environment=environment,
            tags=unique_tags(list(tags)),
            created_at=now_iso(),
        )
        try:
            await asyncio.to_thread(save_recording_json, recording, self._path(recording.id))
        except OSError as e:
            raise PersistenceFailure(f"録画保存失敗: {recording.id} - {e}") from e
        logger.info("録画保存: %s (%s, %d actions)", recording.id, name, len(recording.actions))
        return recording.id

    async def get(self, recording_id: str) -> Recording:
        path = self._path(recording_id)
        try:
            return await asyncio.to_thread(load_recording_json, path)
        except FileNotFoundError as e:
            raise PersistenceFailure(f"録画が見つかりません: {recording_id}") from e
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise PersistenceFailure(f"録画読み込み失敗: {recording_id} - {e}") from e

    async def search(self, text: str) -> List[Recording]:
        query = text.lower()

        def matches(r: Recording) -> bool:
            if not query:
                return True
            return (
                query in r.name.lower()
                or query in r.description.lower()
                or any(query in tag.lower() for tag in r.tags)
            )

        return await self._select(matches)

    async def filter_by_active_app(self, app_name: str) -> List[Recording]:
        return await self._select(
            lambda r: any(a.context.active_app == app_name for a in r.actions)
        )

    async def filter_by_system_call_type(self, call_type: str) -> List[Recording]:
        def has_call(r: Recording) -> bool:
            return any(
                isinstance(a.event, SystemEvent)
                and a.event.system_call is not None
                and a.event.system_call.type == call_type
                for a in r.actions
            )

        return await self._select(has_call)

    async def similar_by_tags(self, recording_id: str, limit: int = 5) -> List[Recording]:
        """基準録画のタグをすべて含む他の録画"""
        base = await self.get(recording_id)
        base_tags = set(base.tags)
        results = await self._select(
            lambda r: r.id != recording_id and base_tags.issubset(r.tags)
        )
        return results[:limit]

    # --- 内部処理 ---

    def _path(self, recording_id: str) -> Path:
        return self._dir / f"{recording_id}.json"

    async def _select(self, predicate: Callable[[Recording], bool]) -> List[Recording]:
        recordings = await asyncio.to_thread(self._load_all)
        return [r for r in recordings if predicate(r)]

    def _load_all(self) -> List[Recording]:
        try:
            paths = sorted(self._dir.glob("*.json"))
        except OSError as e:
            raise PersistenceFailure(f"録画一覧取得失敗: {self._dir} - {e}") from e

        recordings = []
        for path in paths:
            try:
                recordings.append(load_recording_json(path))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("録画読み込みスキップ: %s - %s", path.name, e)
        recordings.sort(key=lambda r: r.created_at, reverse=True)
        return recordings
