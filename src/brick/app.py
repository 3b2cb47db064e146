"""
BrickApp: 各コンポーネントを明示的に組み立て、起動・停止を管理するアプリケーションコンテキスト

【使用方法】
from brick.app import BrickApp
from brick.common.config import BrickConfig

async with BrickApp.from_config(BrickConfig.from_env()) as app:
    app.recorder.start()
    ...
    rec_id = await app.save_recording("保存操作", "エディタで保存", tags=["editor"])

    app.replay.load(await app.store.get(rec_id))
    await app.replay.play()

    task = app.synthesizer.generate_future_task(complexity_level=0.5)
    variants = app.variations.generate_synthetic_tasks(task, 3)

# テストでは各コンポーネントを差し替えて構築する
app = BrickApp(config, store=fake_store, scraper=fake_scraper, inspector=fake_inspector)

【処理内容】
1. 構築: 録画ストア / スクレイパー / 環境取得 / レコーダー / 再生 / 命令変換 /
   パターンストア / パターン抽出 / タスク生成 / バリエーション生成 / フィードバック学習 を生成して接続
2. start(): パターン抽出のコールドスタート、設定時は pynput による実入力キャプチャを起動
3. stop(): 実入力キャプチャ停止、再生停止、レコーダー破棄（スクレイパー破棄を含む）
プロセス全体の状態は BrickApp が保持し、モジュールレベルのシングルトンは持たない。

【依存】
brick 全モジュール, logging
"""

import asyncio
import logging
from typing import Iterable, Optional

from brick.agent.instruction_translator import InstructionTranslator
from brick.agent.replay_engine import ActionDispatcher, ReplayEngine
from brick.common.config import BrickConfig
from brick.common.system_inspector import SystemInspector
from brick.pipeline.feedback_learner import FeedbackLearner
from brick.pipeline.pattern_extractor import PatternExtractor
from brick.pipeline.pattern_store import PatternStore
from brick.pipeline.recording_store import JsonRecordingStore
from brick.pipeline.task_synthesizer import TaskSynthesizer
from brick.pipeline.variation_generator import VariationGenerator
from brick.recorder.action_recorder import ActionRecorder
from brick.recorder.screen_scraper import ScreenScraper

logger = logging.getLogger(__name__)


class BrickApp:
    def __init__(
        self,
        config: BrickConfig,
        store=None,
        scraper=None,
        inspector=None,
        dispatcher: Optional[ActionDispatcher] = None,
    ):
        self.config = config
        self.store = store if store is not None else JsonRecordingStore(config.store_dir)
        self.scraper = scraper if scraper is not None else ScreenScraper()
        self.inspector = inspector if inspector is not None else SystemInspector()

        self.recorder = ActionRecorder(
            scraper=self.scraper,
            inspector=self.inspector,
            process_probe_sec=config.process_probe_sec,
            service_probe_sec=config.service_probe_sec,
            gui_probe_sec=config.gui_probe_sec,
        )
        self.replay = ReplayEngine(dispatcher=dispatcher)
        self.translator = InstructionTranslator()

        self.patterns = PatternStore()
        self.extractor = PatternExtractor(
            store=self.store,
            patterns=self.patterns,
            optimal_action_ms=config.optimal_action_ms,
            min_efficiency=config.min_efficiency,
            min_cleanliness=config.min_cleanliness,
        )
        self.synthesizer = TaskSynthesizer(patterns=self.patterns, spacing_ms=config.synth_spacing_ms)
        self.variations = VariationGenerator(
            store=self.store,
            seed=config.variation_seed,
            merge_spacing_ms=config.merge_spacing_ms,
        )
        self.learner = FeedbackLearner(
            knowledge_path=config.knowledge_path,
            store=self.store,
            extractor=self.extractor,
        )
        self._input_listener = None
        self._started = False

    @classmethod
    def from_config(cls, config: Optional[BrickConfig] = None) -> "BrickApp":
        return cls(config or BrickConfig.from_env())

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._started:
            return
        await self.extractor.initialize()
        if self.config.capture_os_input:
            from brick.recorder.input_listener import InputListener

            self._input_listener = InputListener(self.recorder, loop=asyncio.get_running_loop())
            self._input_listener.start()
        self._started = True
        logger.info("BRICK 起動 (patterns=%d, store=%s)", len(self.patterns), self.config.store_dir)

    async def stop(self) -> None:
        try:
            if self._input_listener is not None:
                self._input_listener.stop()
                self._input_listener = None
            self.replay.stop()
            self.recorder.stop()
        finally:
            await self.recorder.dispose()
            self._started = False
            logger.info("BRICK 停止")

    async def __aenter__(self) -> "BrickApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def save_recording(self, name: str, description: str = "", tags: Iterable[str] = ()) -> str:
        """レコーダーを停止し、記録したアクションをストアへ保存する。返却: 録画 id"""
        actions = self.recorder.stop()
        environment = self.recorder.export_environment()
        return await self.store.save(name, description, actions, environment, list(tags))
