"""
Joint angles from filtered keypoints.
Each angle is an ordered triple (vertex in the middle), evaluated on both body
sides; the side the camera sees better is reported.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .keypoints import JointName, Keypoint, Pose


class AngleJoint(str, Enum):
    KNEE = "knee"            # hip-knee-ankle
    ELBOW = "elbow"          # shoulder-elbow-wrist
    SHOULDER = "shoulder"    # elbow-shoulder-hip
    BODY_LINE = "body_line"  # shoulder-hip-knee, 180 = straight
    TORSO_LEAN = "torso_lean"  # hip->shoulder from vertical, 0 = upright


@dataclass(frozen=True)
class JointAngle:
    joint: AngleJoint
    degrees: float
    confidence: float
    valid: bool


# (first, vertex, last) per side. TORSO_LEAN uses (hip, shoulder) only.
_TRIPLES: dict[AngleJoint, tuple[tuple[JointName, ...], tuple[JointName, ...]]] = {
    AngleJoint.KNEE: (
        (JointName.LEFT_HIP, JointName.LEFT_KNEE, JointName.LEFT_ANKLE),
        (JointName.RIGHT_HIP, JointName.RIGHT_KNEE, JointName.RIGHT_ANKLE),
    ),
    AngleJoint.ELBOW: (
        (JointName.LEFT_SHOULDER, JointName.LEFT_ELBOW, JointName.LEFT_WRIST),
        (JointName.RIGHT_SHOULDER, JointName.RIGHT_ELBOW, JointName.RIGHT_WRIST),
    ),
    AngleJoint.SHOULDER: (
        (JointName.LEFT_ELBOW, JointName.LEFT_SHOULDER, JointName.LEFT_HIP),
        (JointName.RIGHT_ELBOW, JointName.RIGHT_SHOULDER, JointName.RIGHT_HIP),
    ),
    AngleJoint.BODY_LINE: (
        (JointName.LEFT_SHOULDER, JointName.LEFT_HIP, JointName.LEFT_KNEE),
        (JointName.RIGHT_SHOULDER, JointName.RIGHT_HIP, JointName.RIGHT_KNEE),
    ),
    AngleJoint.TORSO_LEAN: (
        (JointName.LEFT_HIP, JointName.LEFT_SHOULDER),
        (JointName.RIGHT_HIP, JointName.RIGHT_SHOULDER),
    ),
}


def _angle_deg(
    a: tuple[float, float],
    b: tuple[float, float],
    c: tuple[float, float],
) -> Optional[float]:
    """Interior angle at b for a-b-c, folded from [0, 360) into [0, 180]."""
    if math.hypot(a[0] - b[0], a[1] - b[1]) < 1e-9 or math.hypot(c[0] - b[0], c[1] - b[1]) < 1e-9:
        return None
    radians = math.atan2(c[1] - b[1], c[0] - b[0]) - math.atan2(a[1] - b[1], a[0] - b[0])
    angle = math.degrees(radians) % 360.0
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def _lean_deg(hip: tuple[float, float], shoulder: tuple[float, float]) -> Optional[float]:
    """Trunk angle from vertical. 0 = upright, 90 = horizontal (image y grows downward)."""
    dx = shoulder[0] - hip[0]
    dy = shoulder[1] - hip[1]
    if abs(dx) + abs(dy) < 1e-9:
        return None
    return math.degrees(math.atan2(abs(dx), -dy))


def _side_angle(
    joint: AngleJoint,
    names: tuple[JointName, ...],
    points: dict[JointName, Keypoint],
) -> tuple[float, float]:
    """Return (degrees, confidence) for one side; NaN / 0 when a keypoint is absent."""
    kps = [points.get(n) for n in names]
    if any(kp is None for kp in kps):
        return math.nan, 0.0
    conf = min(kp.confidence for kp in kps)
    xy = [(kp.x, kp.y) for kp in kps]
    if joint == AngleJoint.TORSO_LEAN:
        deg = _lean_deg(xy[0], xy[1])
    else:
        deg = _angle_deg(xy[0], xy[1], xy[2])
    if deg is None:
        return math.nan, 0.0
    return deg, conf


def compute_joint_angles(pose: Pose, min_confidence: float = 0.3) -> dict[AngleJoint, JointAngle]:
    """
    Every AngleJoint is always present in the result. Angles whose confidence
    is below ``min_confidence`` come back with ``valid=False``; consumers skip
    them rather than substituting a default.
    """
    points = pose.by_name()
    out: dict[AngleJoint, JointAngle] = {}
    for joint, (left_names, right_names) in _TRIPLES.items():
        left = _side_angle(joint, left_names, points)
        right = _side_angle(joint, right_names, points)
        deg, conf = right if right[1] > left[1] else left
        valid = conf >= min_confidence and not math.isnan(deg)
        out[joint] = JointAngle(joint=joint, degrees=deg, confidence=conf, valid=valid)
    return out
