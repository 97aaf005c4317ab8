from __future__ import annotations

import json

import pytest

from repsense.angles import AngleJoint
from repsense.classifier import ExerciseType
from repsense.config import CONFIG_ENV_VAR, EngineConfig, RepConfig, config_from_dict, load_config
from repsense.reps import DEFAULT_THRESHOLDS
from repsense.session import ExerciseSession


def test_defaults():
    cfg = EngineConfig()
    assert cfg.filter.min_confidence == 0.3
    assert cfg.filter.alpha == 0.5
    assert cfg.classifier.window_size == 10
    assert cfg.classifier.majority_fraction == 0.6
    assert cfg.reps.dwell_ms == 150.0
    assert cfg.form.cooldown_ms == 2000.0
    squat = cfg.reps.thresholds[ExerciseType.SQUAT]
    assert (squat.enter_bottom_below, squat.enter_top_above) == (100.0, 160.0)
    assert ExerciseType.UNKNOWN not in cfg.reps.thresholds


def test_partial_overrides_keep_other_defaults():
    cfg = config_from_dict({
        "filter": {"alpha": 0.7},
        "reps": {"dwell_ms": 200, "thresholds": {"squat": {"enter_bottom_below": 90}}},
    })
    assert cfg.filter.alpha == 0.7
    assert cfg.filter.min_confidence == 0.3
    assert cfg.reps.dwell_ms == 200
    squat = cfg.reps.thresholds[ExerciseType.SQUAT]
    assert squat.enter_bottom_below == 90
    assert squat.enter_top_above == 160.0
    assert cfg.reps.thresholds[ExerciseType.PUSHUP].joint == AngleJoint.ELBOW


@pytest.mark.parametrize("raw", [
    {"filtr": {}},
    {"filter": {"beta": 1}},
    {"reps": {"thresholds": {"lunge": {"enter_bottom_below": 1}}}},
    {"reps": {"thresholds": {"unknown": {"enter_bottom_below": 1}}}},
    {"reps": {"thresholds": {"squat": {"enter_bottom_below": 170}}}},
    {"classifier": {"majority_fraction": 1.5}},
    {"classifier": {"window_size": 0}},
    {"classifier": {"window_size": 10.0}},
    {"classifier": {"min_score": 1.5}},
    {"classifier": {"falloff_deg": -1}},
])
def test_invalid_configs_raise(raw):
    with pytest.raises(ValueError):
        config_from_dict(raw)


def test_load_config_from_file_and_env(tmp_path, monkeypatch):
    path = tmp_path / "engine.json"
    path.write_text(json.dumps({"form": {"cooldown_ms": 500}}))
    assert load_config(str(path)).form.cooldown_ms == 500

    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert load_config().form.cooldown_ms == 500

    monkeypatch.delenv(CONFIG_ENV_VAR)
    assert load_config() == EngineConfig()


def test_load_config_rejects_non_object(tmp_path):
    path = tmp_path / "engine.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_thresholds_must_cover_every_exercise():
    partial = RepConfig(thresholds={ExerciseType.SQUAT: DEFAULT_THRESHOLDS[ExerciseType.SQUAT]})
    with pytest.raises(ValueError, match="missing"):
        EngineConfig(reps=partial).validate()
    with pytest.raises(ValueError):
        ExerciseSession(EngineConfig(reps=partial))
