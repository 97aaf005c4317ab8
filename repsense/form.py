"""
Form checks for the classified exercise.
Each violated rule emits a Warning FeedbackEvent; a code is not re-emitted
within the cooldown window.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .angles import AngleJoint, JointAngle
from .classifier import ExerciseType

logger = logging.getLogger(__name__)

# Minimum time (ms) before the same feedback code is emitted again.
FEEDBACK_COOLDOWN_MS = 2000.0


class FeedbackCode(str, Enum):
    SQUAT_LEANING_FORWARD = "squat_leaning_forward"
    PUSHUP_HIPS_SAGGING = "pushup_hips_sagging"
    CURL_ELBOW_DRIFT = "curl_elbow_drift"
    CURL_BODY_SWING = "curl_body_swing"
    PRESS_LEANING_BACK = "press_leaning_back"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class FeedbackEvent:
    code: FeedbackCode
    severity: Severity
    message: str
    timestamp_ms: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "severity": self.severity.value,
            "message": self.message,
            "timestamp_ms": self.timestamp_ms,
        }


@dataclass(frozen=True)
class FormRule:
    """Violated when the angle leaves [min_ok, max_ok]; either bound may be None."""

    code: FeedbackCode
    joint: AngleJoint
    message: str
    min_ok: Optional[float] = None
    max_ok: Optional[float] = None

    def violated(self, degrees: float) -> bool:
        if self.min_ok is not None and degrees < self.min_ok:
            return True
        if self.max_ok is not None and degrees > self.max_ok:
            return True
        return False


FORM_RULES: dict[ExerciseType, tuple[FormRule, ...]] = {
    ExerciseType.SQUAT: (
        FormRule(
            FeedbackCode.SQUAT_LEANING_FORWARD, AngleJoint.TORSO_LEAN,
            "Leaning too far forward. Keep your chest up.", max_ok=50.0,
        ),
    ),
    ExerciseType.PUSHUP: (
        FormRule(
            FeedbackCode.PUSHUP_HIPS_SAGGING, AngleJoint.BODY_LINE,
            "Hips sagging. Keep shoulders, hips and knees in line.", min_ok=160.0,
        ),
    ),
    ExerciseType.BICEP_CURL: (
        FormRule(
            FeedbackCode.CURL_ELBOW_DRIFT, AngleJoint.SHOULDER,
            "Keep your elbows pinned to your sides.", max_ok=35.0,
        ),
        FormRule(
            FeedbackCode.CURL_BODY_SWING, AngleJoint.TORSO_LEAN,
            "Don't swing your body to lift the weight.", max_ok=15.0,
        ),
    ),
    ExerciseType.SHOULDER_PRESS: (
        FormRule(
            FeedbackCode.PRESS_LEANING_BACK, AngleJoint.TORSO_LEAN,
            "Avoid leaning back. Brace your core.", max_ok=20.0,
        ),
    ),
}


class FormEvaluator:
    def __init__(
        self,
        rules: Optional[dict[ExerciseType, tuple[FormRule, ...]]] = None,
        cooldown_ms: float = FEEDBACK_COOLDOWN_MS,
    ):
        self.rules = rules if rules is not None else FORM_RULES
        self.cooldown_ms = cooldown_ms
        self._last_emitted: dict[FeedbackCode, float] = {}

    def reset(self) -> None:
        self._last_emitted.clear()

    def evaluate(
        self,
        exercise: ExerciseType,
        angles: dict[AngleJoint, JointAngle],
        timestamp_ms: float,
    ) -> list[FeedbackEvent]:
        events: list[FeedbackEvent] = []
        for rule in self.rules.get(exercise, ()):
            angle = angles.get(rule.joint)
            if angle is None or not angle.valid:
                continue
            if not rule.violated(angle.degrees):
                continue
            last = self._last_emitted.get(rule.code)
            if last is not None and timestamp_ms - last < self.cooldown_ms:
                logger.debug("form: %s suppressed (cooldown)", rule.code.value)
                continue
            self._last_emitted[rule.code] = timestamp_ms
            events.append(FeedbackEvent(rule.code, Severity.WARNING, rule.message, timestamp_ms))
        return events
