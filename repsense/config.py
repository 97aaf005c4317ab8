"""
Engine configuration: every tunable number with its default, loadable from a
JSON file so thresholds can be changed without touching code.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Optional

from .angles import AngleJoint
from .classifier import SUPPORTED_EXERCISES, ExerciseType
from .form import FEEDBACK_COOLDOWN_MS
from .reps import DEFAULT_THRESHOLDS, DWELL_MS, PhaseThresholds

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "REPSENSE_CONFIG"


@dataclass(frozen=True)
class FilterConfig:
    min_confidence: float = 0.3
    alpha: float = 0.5
    confidence_decay: float = 0.8


@dataclass(frozen=True)
class ClassifierConfig:
    window_size: int = 10
    majority_fraction: float = 0.6
    min_score: float = 0.6
    falloff_deg: float = 30.0


@dataclass(frozen=True)
class RepConfig:
    dwell_ms: float = DWELL_MS
    thresholds: dict[ExerciseType, PhaseThresholds] = field(
        default_factory=lambda: dict(DEFAULT_THRESHOLDS)
    )


@dataclass(frozen=True)
class FormConfig:
    cooldown_ms: float = FEEDBACK_COOLDOWN_MS


@dataclass(frozen=True)
class EngineConfig:
    filter: FilterConfig = field(default_factory=FilterConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    reps: RepConfig = field(default_factory=RepConfig)
    form: FormConfig = field(default_factory=FormConfig)
    # Bounded feedback log; newest entries are retained.
    feedback_log_size: int = 200

    def validate(self) -> None:
        f = self.filter
        if not 0.0 <= f.min_confidence <= 1.0:
            raise ValueError(f"filter.min_confidence must be in [0, 1], got {f.min_confidence}")
        if not 0.0 < f.alpha <= 1.0:
            raise ValueError(f"filter.alpha must be in (0, 1], got {f.alpha}")
        if not 0.0 <= f.confidence_decay <= 1.0:
            raise ValueError(f"filter.confidence_decay must be in [0, 1], got {f.confidence_decay}")
        c = self.classifier
        if isinstance(c.window_size, bool) or not isinstance(c.window_size, int) or c.window_size < 1:
            raise ValueError(f"classifier.window_size must be an integer >= 1, got {c.window_size!r}")
        if not 0.0 < c.majority_fraction <= 1.0:
            raise ValueError(f"classifier.majority_fraction must be in (0, 1], got {c.majority_fraction}")
        if not 0.0 <= c.min_score <= 1.0:
            raise ValueError(f"classifier.min_score must be in [0, 1], got {c.min_score}")
        if c.falloff_deg < 0:
            raise ValueError(f"classifier.falloff_deg must be >= 0, got {c.falloff_deg}")
        if self.reps.dwell_ms < 0:
            raise ValueError(f"reps.dwell_ms must be >= 0, got {self.reps.dwell_ms}")
        missing = [ex.value for ex in SUPPORTED_EXERCISES if ex not in self.reps.thresholds]
        if missing:
            raise ValueError(f"reps.thresholds missing exercises: {missing}")
        for exercise, th in self.reps.thresholds.items():
            if th.enter_top_above <= th.enter_bottom_below:
                raise ValueError(
                    f"{exercise.value}: enter_top_above ({th.enter_top_above}) must exceed "
                    f"enter_bottom_below ({th.enter_bottom_below})"
                )
        if self.form.cooldown_ms < 0:
            raise ValueError(f"form.cooldown_ms must be >= 0, got {self.form.cooldown_ms}")
        if self.feedback_log_size < 1:
            raise ValueError(f"feedback_log_size must be >= 1, got {self.feedback_log_size}")


def _overlay(section: Any, values: dict[str, Any], name: str) -> Any:
    known = {f.name for f in fields(section)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"unknown keys in {name}: {sorted(unknown)}")
    return replace(section, **values)


def _thresholds_from_dict(raw: dict[str, Any]) -> dict[ExerciseType, PhaseThresholds]:
    table = dict(DEFAULT_THRESHOLDS)
    for key, values in raw.items():
        try:
            exercise = ExerciseType(key)
        except ValueError:
            raise ValueError(f"unknown exercise in reps.thresholds: {key!r}") from None
        if exercise not in table:
            raise ValueError(f"exercise {key!r} has no rep counter")
        values = dict(values)
        if "joint" in values:
            values["joint"] = AngleJoint(values["joint"])
        table[exercise] = _overlay(table[exercise], values, f"reps.thresholds.{key}")
    return table


def config_from_dict(raw: dict[str, Any]) -> EngineConfig:
    """Overlay a (possibly partial) nested dict on the defaults."""
    unknown = set(raw) - {"filter", "classifier", "reps", "form", "feedback_log_size"}
    if unknown:
        raise ValueError(f"unknown config sections: {sorted(unknown)}")
    cfg = EngineConfig()
    filter_cfg = _overlay(cfg.filter, raw.get("filter", {}), "filter")
    classifier_cfg = _overlay(cfg.classifier, raw.get("classifier", {}), "classifier")
    reps_raw = dict(raw.get("reps", {}))
    thresholds = _thresholds_from_dict(reps_raw.pop("thresholds", {}))
    reps_cfg = _overlay(cfg.reps, reps_raw, "reps")
    reps_cfg = replace(reps_cfg, thresholds=thresholds)
    form_cfg = _overlay(cfg.form, raw.get("form", {}), "form")
    cfg = EngineConfig(
        filter=filter_cfg,
        classifier=classifier_cfg,
        reps=reps_cfg,
        form=form_cfg,
        feedback_log_size=int(raw.get("feedback_log_size", cfg.feedback_log_size)),
    )
    cfg.validate()
    return cfg


def load_config(path: Optional[str] = None) -> EngineConfig:
    """
    Load config from ``path``, else from $REPSENSE_CONFIG, else defaults.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        return EngineConfig()
    with open(path) as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"config {path} must contain a JSON object")
    cfg = config_from_dict(raw)
    logger.info("config: loaded %s", path)
    return cfg
