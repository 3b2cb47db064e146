"""
既存の録画を揺らす・結合することで合成録画を作るモジュール

【使用方法】
from brick.pipeline.variation_generator import VariationGenerator

gen = VariationGenerator(store=recording_store, seed=42)

variant = gen.create_variation(recording)                  # "<name> (Variation)"
variants = gen.generate_synthetic_tasks(recording, 3)
merged = gen.merge_tasks([rec_a, rec_b])                   # "Merged Task (A + B)"
merged_list = gen.generate_from_multiple_tasks([rec_a, rec_b], count=2)

new_id = await gen.save_generated_task(variant)
ids = await gen.generate_and_save_variations(recording, count=5)

【処理内容】
create_variation:
  - マウス座標 ± U(−10, 10)
  - キーボードのタイムスタンプ ± U(−50, 50)（前後のタイムスタンプの範囲に収めて順序を保つ）
  - システムアクションのコンテキスト: CPU ± U(−5, 5)、メモリ ± U(−50000, 50000)
  - 全画面の scaleFactor ± U(−0.05, 0.05)
  件数・順序・種別/サブタイプの並びは変えない。タグに "synthetic" を追加
merge_tasks:
  - 各録画からランダム長（1〜n）の連続区間をランダムな位置から切り出す
  - 既に結合した最大タイムスタンプの後ろに merge_spacing_ms 間隔で並べ直し、新しい id を振る
  - タイムスタンプで安定ソート、環境は先頭の録画、タグは和集合 + "synthetic" / "merged"
乱数は numpy.random.Generator（seed 指定で再現可能）

【依存】
numpy, brick.common.models, logging
"""

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

import numpy as np

from brick.common.models import (
    Action, KeyboardEvent, MouseEvent, Recording, SystemEvent,
    generate_id, now_iso, unique_tags,
)

logger = logging.getLogger(__name__)


class VariationGenerator:
    def __init__(
        self,
        store=None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        merge_spacing_ms: float = 100.0,
    ):
        self._store = store
        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self._merge_spacing_ms = merge_spacing_ms

    def _jitter(self, amplitude: float) -> float:
        """U(−amplitude, amplitude)"""
        return float(self._rng.uniform(-amplitude, amplitude))

    # --- バリエーション ---

    def create_variation(self, task: Recording) -> Recording:
        actions = self._vary_actions(task.actions)
        screens = tuple(
            replace(s, scale_factor=s.scale_factor + self._jitter(0.05))
            for s in task.environment.screens
        )
        return Recording(
            id=generate_id(),
            name=f"{task.name} (Variation)",
            description=f"Synthetic variation of: {task.description}",
            actions=tuple(actions),
            environment=replace(task.environment, screens=screens),
            tags=unique_tags(list(task.tags) + ["synthetic"]),
            created_at=now_iso(),
        )

    def _vary_actions(self, actions: Sequence[Action]) -> List[Action]:
        varied: List[Action] = []
        for i, action in enumerate(actions):
            event = action.event
            if isinstance(event, MouseEvent):
                coords = event.coordinates
                moved = replace(coords, x=coords.x + self._jitter(10), y=coords.y + self._jitter(10))
                varied.append(replace(action, event=replace(event, coordinates=moved)))

            elif isinstance(event, KeyboardEvent):
                lower = varied[i - 1].timestamp if i > 0 else min(0, event.timestamp)
                upper = actions[i + 1].timestamp if i + 1 < len(actions) else float("inf")
                timestamp = float(np.clip(event.timestamp + self._jitter(50), lower, upper))
                varied.append(replace(action, event=replace(event, timestamp=timestamp)))

            elif isinstance(event, SystemEvent) and action.context.system_state is not None:
                state = action.context.system_state
                state = replace(
                    state,
                    cpu_usage=state.cpu_usage + self._jitter(5),
                    memory_usage=state.memory_usage + self._jitter(50000),
                )
                varied.append(replace(action, context=replace(action.context, system_state=state)))

            else:
                varied.append(action)
        return varied

    def generate_synthetic_tasks(self, base_task: Recording, variations: int = 1) -> List[Recording]:
        return [self.create_variation(base_task) for _ in range(variations)]

    # --- 結合 ---

    def merge_tasks(self, tasks: Sequence[Recording]) -> Recording:
        if not tasks:
            raise ValueError("merge_tasks には1件以上の録画が必要です")

        merged: List[Action] = []
        names: List[str] = []
        for task in tasks:
            if task.name not in names:
                names.append(task.name)
            n = len(task.actions)
            if n == 0:
                continue
            size = int(self._rng.integers(1, n + 1))
            start = int(self._rng.integers(0, n - size + 1))
            segment = task.actions[start:start + size]

            last = max(a.timestamp for a in merged) if merged else None
            for index, action in enumerate(segment):
                if last is None:
                    timestamp = index * self._merge_spacing_ms
                else:
                    timestamp = last + (index + 1) * self._merge_spacing_ms
                merged.append(replace(action, id=generate_id(), event=replace(action.event, timestamp=timestamp)))

        merged.sort(key=lambda a: a.timestamp)
        tags = unique_tags([t for task in tasks for t in task.tags] + ["synthetic", "merged"])
        logger.info("録画結合: %d件 → アクション%d件", len(tasks), len(merged))

        return Recording(
            id=generate_id(),
            name=f"Merged Task ({' + '.join(names)})",
            description="Synthetic task generated from multiple recordings",
            actions=tuple(merged),
            environment=tasks[0].environment,
            tags=tags,
            created_at=now_iso(),
        )

    def generate_from_multiple_tasks(self, tasks: Sequence[Recording], count: int = 1) -> List[Recording]:
        return [self.merge_tasks(tasks) for _ in range(count)]

    # --- 保存 ---

    async def save_generated_task(self, task: Recording) -> str:
        if self._store is None:
            raise ValueError("保存先ストアが設定されていません")
        return await self._store.save(task.name, task.description, task.actions, task.environment, task.tags)

    async def generate_and_save_variations(self, base_task: Recording, count: int = 1) -> List[str]:
        ids = []
        for task in self.generate_synthetic_tasks(base_task, count):
            ids.append(await self.save_generated_task(task))
        return ids
