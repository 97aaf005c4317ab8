from __future__ import annotations

from conftest import make_angles
from repsense.classifier import ExerciseType
from repsense.form import FeedbackCode, FormEvaluator, Severity


def test_pushup_hips_sagging_emits_warning():
    ev = FormEvaluator()
    events = ev.evaluate(ExerciseType.PUSHUP, make_angles(body_line=140, elbow=120, torso_lean=80), 1000.0)
    assert [e.code for e in events] == [FeedbackCode.PUSHUP_HIPS_SAGGING]
    assert events[0].severity == Severity.WARNING
    assert events[0].timestamp_ms == 1000.0
    assert events[0].message


def test_aligned_pushup_is_silent():
    ev = FormEvaluator()
    assert ev.evaluate(ExerciseType.PUSHUP, make_angles(body_line=175), 0.0) == []


def test_same_code_is_rate_limited():
    ev = FormEvaluator(cooldown_ms=2000.0)
    sag = make_angles(body_line=140)
    emitted = []
    for t in range(0, 5000, 100):
        emitted += ev.evaluate(ExerciseType.PUSHUP, sag, float(t))
    assert [e.timestamp_ms for e in emitted] == [0.0, 2000.0, 4000.0]


def test_rules_skipped_on_low_confidence():
    ev = FormEvaluator()
    assert ev.evaluate(ExerciseType.PUSHUP, make_angles(confidence=0.1, body_line=100), 0.0) == []
    assert ev.evaluate(ExerciseType.SQUAT, make_angles(), 0.0) == []


def test_unknown_has_no_rules():
    ev = FormEvaluator()
    assert ev.evaluate(ExerciseType.UNKNOWN, make_angles(body_line=10, torso_lean=90), 0.0) == []


def test_curl_checks_are_independent():
    ev = FormEvaluator()
    events = ev.evaluate(ExerciseType.BICEP_CURL, make_angles(shoulder=60, torso_lean=25), 0.0)
    assert {e.code for e in events} == {FeedbackCode.CURL_ELBOW_DRIFT, FeedbackCode.CURL_BODY_SWING}


def test_squat_lean_and_reset():
    ev = FormEvaluator()
    lean = make_angles(torso_lean=65)
    assert [e.code for e in ev.evaluate(ExerciseType.SQUAT, lean, 0.0)] == [FeedbackCode.SQUAT_LEANING_FORWARD]
    assert ev.evaluate(ExerciseType.SQUAT, lean, 100.0) == []
    ev.reset()
    assert len(ev.evaluate(ExerciseType.SQUAT, lean, 200.0)) == 1
