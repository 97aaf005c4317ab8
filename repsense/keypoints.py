"""
Per-frame keypoint types and the keypoint filter.
Low-confidence landmarks are held at their last smoothed position with decaying
confidence; usable landmarks are EMA-smoothed per coordinate.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class JointName(str, Enum):
    NOSE = "nose"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


@dataclass(frozen=True)
class Keypoint:
    name: JointName
    x: float
    y: float
    confidence: float


@dataclass(frozen=True)
class Pose:
    """Keypoints for one frame, in the order the pose model produced them."""

    keypoints: tuple[Keypoint, ...] = ()
    timestamp_ms: float = 0.0

    def get(self, name: JointName) -> Optional[Keypoint]:
        for kp in self.keypoints:
            if kp.name == name:
                return kp
        return None

    def by_name(self) -> dict[JointName, Keypoint]:
        return {kp.name: kp for kp in self.keypoints}


@dataclass
class _TrackedPoint:
    x: float
    y: float
    confidence: float


@dataclass
class KeypointFilter:
    """
    One-step EMA smoothing per keypoint name, with hold-and-decay for
    landmarks below ``min_confidence``.

    State persists across frames until ``reset()`` (session reset or camera
    restart).
    """

    min_confidence: float = 0.3
    alpha: float = 0.5
    confidence_decay: float = 0.8
    _state: dict[JointName, _TrackedPoint] = field(default_factory=dict, repr=False)

    def reset(self) -> None:
        self._state.clear()

    def apply(self, pose: Pose) -> Pose:
        out: list[Keypoint] = []
        seen: set[JointName] = set()
        for kp in pose.keypoints:
            seen.add(kp.name)
            out.append(self._filter_one(kp))
        # Landmarks the model dropped this frame are held, not removed
        for name, prev in self._state.items():
            if name in seen:
                continue
            prev.confidence *= self.confidence_decay
            out.append(Keypoint(name, prev.x, prev.y, prev.confidence))
        return Pose(keypoints=tuple(out), timestamp_ms=pose.timestamp_ms)

    def _filter_one(self, kp: Keypoint) -> Keypoint:
        prev = self._state.get(kp.name)
        if kp.confidence < self.min_confidence:
            if prev is None:
                return kp
            prev.confidence *= self.confidence_decay
            return Keypoint(kp.name, prev.x, prev.y, prev.confidence)
        if prev is None:
            self._state[kp.name] = _TrackedPoint(kp.x, kp.y, kp.confidence)
            return kp
        a = self.alpha
        prev.x = a * kp.x + (1 - a) * prev.x
        prev.y = a * kp.y + (1 - a) * prev.y
        prev.confidence = kp.confidence
        return Keypoint(kp.name, prev.x, prev.y, kp.confidence)
