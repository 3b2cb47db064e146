import asyncio

from brick.app import BrickApp
from brick.common.config import BrickConfig
from brick.pipeline.models import LearningFeedback
from brick.recorder.action_recorder import RecorderState

from helpers import FakeInspector, FakeScraper


def _app(tmp_path, scraper):
    config = BrickConfig(store_dir=str(tmp_path / "recordings"), variation_seed=1)
    return BrickApp(config, scraper=scraper, inspector=FakeInspector())


def test_record_save_learn_and_synthesize(tmp_path):
    scraper = FakeScraper()

    async def scenario():
        async with _app(tmp_path, scraper) as app:
            assert app.started
            assert app.patterns.initialized

            app.recorder.start()
            app.recorder.record_mouse("click", 10, 10)
            app.recorder.record_keyboard("textInput", "a")
            rec_id = await app.save_recording("quick", "two steps", tags=["demo"])

            recording = await app.store.get(rec_id)
            assert [a.type for a in recording.actions] == ["mouse", "keyboard"]
            assert recording.environment.os.name == "macOS"

            pattern = await app.learner.learn_from_feedback(LearningFeedback(task_id=rec_id, success=True))
            assert pattern is not None

            task = app.synthesizer.generate_future_task(complexity_level=1.0)
            assert [a.token() for a in task.actions] == ["mouse:click", "keyboard:textInput"]

            variants = app.variations.generate_synthetic_tasks(recording, 2)
            assert len(variants) == 2
            return app

    app = asyncio.run(scenario())
    assert not app.started
    assert scraper.disposed
    assert app.recorder.state is RecorderState.DISPOSED


def test_start_loads_patterns_from_existing_recordings(tmp_path):
    async def seed():
        app = _app(tmp_path, FakeScraper())
        app.recorder.start()
        app.recorder.record_mouse("click", 1, 1)
        await app.save_recording("seed")
        await app.stop()

    async def restart():
        async with _app(tmp_path, FakeScraper()) as app:
            return len(app.patterns)

    asyncio.run(seed())
    assert asyncio.run(restart()) == 1
