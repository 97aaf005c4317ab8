"""
Exercise classification from the joint-angle vector.
Per-frame band scoring, then a majority vote over a fixed-size ring buffer of
recent winners so the active exercise does not flicker.
"""
from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum

from .angles import AngleJoint, JointAngle

logger = logging.getLogger(__name__)


class ExerciseType(str, Enum):
    SQUAT = "squat"
    PUSHUP = "pushup"
    BICEP_CURL = "bicep_curl"
    SHOULDER_PRESS = "shoulder_press"
    UNKNOWN = "unknown"


SUPPORTED_EXERCISES = (
    ExerciseType.SQUAT,
    ExerciseType.PUSHUP,
    ExerciseType.BICEP_CURL,
    ExerciseType.SHOULDER_PRESS,
)


@dataclass(frozen=True)
class SignatureBand:
    joint: AngleJoint
    weight: float
    low: float
    high: float


# Characteristic active-range bands (deg). Weights per exercise sum to 1.
SIGNATURES: dict[ExerciseType, tuple[SignatureBand, ...]] = {
    ExerciseType.SQUAT: (
        SignatureBand(AngleJoint.KNEE, 0.4, 60.0, 172.0),
        SignatureBand(AngleJoint.TORSO_LEAN, 0.3, 0.0, 50.0),
        SignatureBand(AngleJoint.BODY_LINE, 0.3, 40.0, 180.0),
    ),
    ExerciseType.PUSHUP: (
        SignatureBand(AngleJoint.TORSO_LEAN, 0.4, 60.0, 120.0),
        SignatureBand(AngleJoint.ELBOW, 0.3, 60.0, 180.0),
        SignatureBand(AngleJoint.BODY_LINE, 0.3, 150.0, 180.0),
    ),
    ExerciseType.BICEP_CURL: (
        SignatureBand(AngleJoint.TORSO_LEAN, 0.2, 0.0, 30.0),
        SignatureBand(AngleJoint.KNEE, 0.2, 160.0, 180.0),
        SignatureBand(AngleJoint.SHOULDER, 0.3, 0.0, 40.0),
        SignatureBand(AngleJoint.ELBOW, 0.3, 30.0, 160.0),
    ),
    ExerciseType.SHOULDER_PRESS: (
        SignatureBand(AngleJoint.TORSO_LEAN, 0.2, 0.0, 30.0),
        SignatureBand(AngleJoint.KNEE, 0.2, 160.0, 180.0),
        SignatureBand(AngleJoint.SHOULDER, 0.35, 70.0, 180.0),
        SignatureBand(AngleJoint.ELBOW, 0.25, 60.0, 180.0),
    ),
}


def _band_score(degrees: float, low: float, high: float, falloff_deg: float) -> float:
    """1 inside the band, linear falloff to 0 at ``falloff_deg`` outside it."""
    if low <= degrees <= high:
        return 1.0
    dist = (low - degrees) if degrees < low else (degrees - high)
    if falloff_deg <= 0:
        return 0.0
    return max(0.0, 1.0 - dist / falloff_deg)


def score_exercises(
    angles: dict[AngleJoint, JointAngle],
    falloff_deg: float = 30.0,
) -> dict[ExerciseType, float]:
    """Weighted band score per supported exercise. Invalid angles contribute nothing."""
    scores: dict[ExerciseType, float] = {}
    for exercise, bands in SIGNATURES.items():
        total = 0.0
        for band in bands:
            angle = angles.get(band.joint)
            if angle is None or not angle.valid:
                continue
            total += band.weight * _band_score(angle.degrees, band.low, band.high, falloff_deg)
        scores[exercise] = total
    return scores


def instant_classification(
    angles: dict[AngleJoint, JointAngle],
    min_score: float = 0.6,
    falloff_deg: float = 30.0,
) -> tuple[ExerciseType, float]:
    scores = score_exercises(angles, falloff_deg)
    # Ties resolve to the first exercise in SIGNATURES order
    best = max(scores, key=lambda ex: scores[ex])
    if scores[best] < min_score:
        return ExerciseType.UNKNOWN, scores[best]
    return best, scores[best]


class ExerciseClassifier:
    """
    Smoothed classifier. ``current`` changes only once the window is full and
    one candidate holds at least ``majority_fraction`` of its votes.
    """

    def __init__(
        self,
        window_size: int = 10,
        majority_fraction: float = 0.6,
        min_score: float = 0.6,
        falloff_deg: float = 30.0,
    ):
        self.window_size = window_size
        self.majority_fraction = majority_fraction
        self.min_score = min_score
        self.falloff_deg = falloff_deg
        self._history: deque[ExerciseType] = deque(maxlen=window_size)
        self._tally: Counter[ExerciseType] = Counter()
        self.current = ExerciseType.UNKNOWN
        self.confidence = 0.0

    def reset(self) -> None:
        self._history.clear()
        self._tally.clear()
        self.current = ExerciseType.UNKNOWN
        self.confidence = 0.0

    @property
    def history(self) -> tuple[ExerciseType, ...]:
        return tuple(self._history)

    def update(self, angles: dict[AngleJoint, JointAngle]) -> tuple[ExerciseType, float]:
        winner, score = instant_classification(angles, self.min_score, self.falloff_deg)
        if len(self._history) == self.window_size:
            evicted = self._history[0]
            self._tally[evicted] -= 1
            if self._tally[evicted] <= 0:
                del self._tally[evicted]
        self._history.append(winner)
        self._tally[winner] += 1

        if len(self._history) == self.window_size:
            top, votes = self._tally.most_common(1)[0]
            if top != self.current and votes / self.window_size >= self.majority_fraction:
                logger.info(
                    "classifier: exercise switched %s -> %s (votes=%s/%s)",
                    self.current.value, top.value, votes, self.window_size,
                )
                self.current = top
        self.confidence = self._tally[self.current] / len(self._history)
        return self.current, self.confidence
