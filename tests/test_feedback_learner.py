import asyncio
import json

import pytest

from brick.pipeline.feedback_learner import FeedbackLearner
from brick.pipeline.models import LearningFeedback
from brick.pipeline.pattern_extractor import PatternExtractor
from brick.pipeline.pattern_store import PatternStore

from helpers import FakeRecordingStore, make_recording, spaced_clicks


def test_successful_feedback_updates_knowledge():
    learner = FeedbackLearner()
    learner.record_feedback(LearningFeedback(
        task_id="t1", success=True,
        emergent_patterns=["context-awareness", "adaptive-timing"], adaptations=["retry"],
    ))
    learner.record_feedback(LearningFeedback(
        task_id="t2", success=True, emergent_patterns=["context-awareness"], adaptations=["retry"],
    ))

    knowledge = learner.get_knowledge()
    assert knowledge["context-awareness"] == 2.0
    assert knowledge["adaptive-timing"] == 1.0
    assert knowledge["retry"] == pytest.approx(0.2)
    assert len(learner.history) == 2


def test_failed_feedback_only_extends_history():
    learner = FeedbackLearner()
    learner.record_feedback(LearningFeedback(task_id="t1", success=False, errors=["timeout"],
                                             emergent_patterns=["context-awareness"]))
    assert learner.get_knowledge() == {}
    assert learner.history[0].task_id == "t1"


def test_success_rate():
    learner = FeedbackLearner()
    assert learner.success_rate() == 0.0
    for success in (True, False, True, True):
        learner.record_feedback(LearningFeedback(task_id="t", success=success))
    assert learner.success_rate() == 0.75


def test_knowledge_is_persisted_and_reloaded(tmp_path):
    path = tmp_path / "data" / "knowledge.json"
    learner = FeedbackLearner(knowledge_path=str(path))
    learner.record_feedback(LearningFeedback(task_id="t1", success=True, emergent_patterns=["minimal-clicks"]))

    assert json.loads(path.read_text(encoding="utf-8")) == {"minimal-clicks": 1.0}
    assert FeedbackLearner(knowledge_path=str(path)).get_knowledge() == {"minimal-clicks": 1.0}


def test_corrupt_knowledge_file_starts_empty(tmp_path):
    path = tmp_path / "knowledge.json"
    path.write_text("{not json", encoding="utf-8")
    assert FeedbackLearner(knowledge_path=str(path)).get_knowledge() == {}


def test_learn_from_feedback_adds_pattern():
    recording = make_recording(spaced_clicks([0, 40, 80]), name="good")
    store = FakeRecordingStore([recording])
    patterns = PatternStore()
    patterns.mark_initialized()
    extractor = PatternExtractor(store=store, patterns=patterns)
    learner = FeedbackLearner(store=store, extractor=extractor)

    pattern = asyncio.run(learner.learn_from_feedback(
        LearningFeedback(task_id=recording.id, success=True, emergent_patterns=["efficient-navigation"])
    ))

    assert pattern is not None
    assert pattern.source_recording_id == recording.id
    assert patterns.snapshot() == [pattern]
    assert learner.get_knowledge() == {"efficient-navigation": 1.0}


def test_learn_from_failed_feedback_adds_nothing():
    recording = make_recording(spaced_clicks([0, 40]))
    store = FakeRecordingStore([recording])
    patterns = PatternStore()
    learner = FeedbackLearner(store=store, extractor=PatternExtractor(store=store, patterns=patterns))

    assert asyncio.run(learner.learn_from_feedback(LearningFeedback(task_id=recording.id, success=False))) is None
    assert len(patterns) == 0
