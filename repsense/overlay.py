"""
Draw skeleton, exercise, rep counts and feedback toasts on frames (in-place).
"""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .classifier import ExerciseType
from .keypoints import JointName, Pose
from .session import SessionSnapshot

# Skeleton segments over the named keypoints the engine tracks
_SKELETON = (
    (JointName.LEFT_SHOULDER, JointName.RIGHT_SHOULDER),
    (JointName.LEFT_SHOULDER, JointName.LEFT_ELBOW),
    (JointName.LEFT_ELBOW, JointName.LEFT_WRIST),
    (JointName.RIGHT_SHOULDER, JointName.RIGHT_ELBOW),
    (JointName.RIGHT_ELBOW, JointName.RIGHT_WRIST),
    (JointName.LEFT_SHOULDER, JointName.LEFT_HIP),
    (JointName.RIGHT_SHOULDER, JointName.RIGHT_HIP),
    (JointName.LEFT_HIP, JointName.RIGHT_HIP),
    (JointName.LEFT_HIP, JointName.LEFT_KNEE),
    (JointName.LEFT_KNEE, JointName.LEFT_ANKLE),
    (JointName.RIGHT_HIP, JointName.RIGHT_KNEE),
    (JointName.RIGHT_KNEE, JointName.RIGHT_ANKLE),
)

_LABELS = {
    ExerciseType.SQUAT: "Squat",
    ExerciseType.PUSHUP: "Push-up",
    ExerciseType.BICEP_CURL: "Bicep curl",
    ExerciseType.SHOULDER_PRESS: "Shoulder press",
    ExerciseType.UNKNOWN: "Detecting...",
}


def _pt(x: float, y: float) -> tuple[int, int]:
    return (int(round(x)), int(round(y)))


def draw_skeleton(
    frame: np.ndarray,
    pose: Pose,
    min_confidence: float = 0.3,
    color: tuple[int, int, int] = (0, 255, 0),
    thickness: int = 2,
) -> None:
    """Draw segments whose endpoints are both confident enough."""
    points = {kp.name: kp for kp in pose.keypoints if kp.confidence >= min_confidence}
    for a, b in _SKELETON:
        if a in points and b in points:
            cv2.line(frame, _pt(points[a].x, points[a].y), _pt(points[b].x, points[b].y), color, thickness)
    for kp in points.values():
        cv2.circle(frame, _pt(kp.x, kp.y), 3, color, -1)


def exercise_label(exercise: ExerciseType) -> str:
    return _LABELS.get(exercise, exercise.value)


def draw_realtime_overlay(
    frame: np.ndarray,
    pose: Optional[Pose],
    snapshot: SessionSnapshot,
    feedback_message: Optional[str] = None,
    message: Optional[str] = None,
) -> None:
    """
    Draw realtime overlay on frame (in-place):
    - Skeleton if keypoints present
    - Exercise, reps of the active exercise, phase, per-exercise totals
    - Latest feedback toast and an optional status message (e.g. "Move into frame")
    """
    h, w = frame.shape[:2]
    if pose is not None and pose.keypoints:
        draw_skeleton(frame, pose)

    panel_h = 140
    overlay = frame.copy()
    cv2.rectangle(overlay, (0, 0), (w, panel_h), (40, 40, 40), -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

    font = cv2.FONT_HERSHEY_SIMPLEX
    scale = 0.6
    thick = 2
    y0, dy = 28, 28
    color = (255, 255, 255)

    def put(line: str, y: int) -> None:
        cv2.putText(frame, line, (12, y), font, scale, color, thick, cv2.LINE_AA)

    exercise = snapshot.current_exercise
    active_reps = snapshot.counts.get(exercise, 0) if exercise != ExerciseType.UNKNOWN else 0
    put(f"Exercise: {exercise_label(exercise)} ({snapshot.confidence:.0%})", y0)
    put(f"Reps: {active_reps}", y0 + dy)
    put(f"Phase: {snapshot.phase.value if snapshot.phase is not None else '--'}", y0 + 2 * dy)
    totals = "  ".join(f"{exercise_label(ex)}: {n}" for ex, n in snapshot.counts.items())
    put(totals, y0 + 3 * dy)

    if feedback_message:
        msg = feedback_message if len(feedback_message) <= 64 else feedback_message[:61] + "..."
        cv2.putText(frame, msg, (12, h - 24), font, 0.7, (0, 165, 255), 2, cv2.LINE_AA)

    if message:
        cv2.putText(
            frame, message, (w // 2 - 120, h // 2),
            font, 0.8, (0, 200, 255), 2, cv2.LINE_AA
        )
