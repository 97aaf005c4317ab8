from __future__ import annotations

import math
from typing import Optional

import pytest

from repsense.angles import AngleJoint, JointAngle
from repsense.keypoints import JointName, Keypoint, Pose

# Default posture per exercise (deg). Keys match build_pose keyword arguments.
SQUAT_TOP = dict(knee=170, body_line=170, torso_lean=10, shoulder=15, elbow=170)
SQUAT_BOTTOM = dict(knee=95, body_line=80, torso_lean=30, shoulder=15, elbow=170)
PUSHUP_TOP = dict(knee=175, body_line=175, torso_lean=80, shoulder=70, elbow=165)
PUSHUP_BOTTOM = dict(knee=175, body_line=175, torso_lean=80, shoulder=30, elbow=80)
CURL_DOWN = dict(knee=178, body_line=178, torso_lean=5, shoulder=10, elbow=150)
CURL_UP = dict(knee=178, body_line=178, torso_lean=5, shoulder=10, elbow=45)
PRESS_RACK = dict(knee=178, body_line=178, torso_lean=5, shoulder=90, elbow=80)
PRESS_LOCKOUT = dict(knee=178, body_line=178, torso_lean=5, shoulder=170, elbow=170)


def _rotate(v: tuple[float, float], deg: float) -> tuple[float, float]:
    r = math.radians(deg)
    return (v[0] * math.cos(r) - v[1] * math.sin(r), v[0] * math.sin(r) + v[1] * math.cos(r))


def _add(p: tuple[float, float], v: tuple[float, float], length: float) -> tuple[float, float]:
    return (p[0] + v[0] * length, p[1] + v[1] * length)


def build_pose(
    knee: float,
    body_line: float,
    torso_lean: float,
    shoulder: float,
    elbow: float,
    timestamp_ms: float = 0.0,
    confidence: float = 0.9,
) -> Pose:
    """Side-view pose (image coords, y down) whose joint angles are exactly the given ones."""
    hip = (300.0, 300.0)
    up = (math.sin(math.radians(torso_lean)), -math.cos(math.radians(torso_lean)))
    shoulder_pt = _add(hip, up, 100.0)
    thigh = _rotate(up, body_line)
    knee_pt = _add(hip, thigh, 100.0)
    shin = _rotate((-thigh[0], -thigh[1]), knee)
    ankle_pt = _add(knee_pt, shin, 100.0)
    upper_arm = _rotate((-up[0], -up[1]), shoulder)
    elbow_pt = _add(shoulder_pt, upper_arm, 60.0)
    forearm = _rotate((-upper_arm[0], -upper_arm[1]), elbow)
    wrist_pt = _add(elbow_pt, forearm, 60.0)

    points = {
        "shoulder": shoulder_pt,
        "elbow": elbow_pt,
        "wrist": wrist_pt,
        "hip": hip,
        "knee": knee_pt,
        "ankle": ankle_pt,
    }
    keypoints = []
    for side in ("left", "right"):
        for part, (x, y) in points.items():
            keypoints.append(Keypoint(JointName(f"{side}_{part}"), x, y, confidence))
    return Pose(keypoints=tuple(keypoints), timestamp_ms=timestamp_ms)


def make_angles(confidence: float = 0.9, **degrees: Optional[float]) -> dict[AngleJoint, JointAngle]:
    """Angle set from keyword degrees; joints not given are invalid (NaN, zero confidence)."""
    out = {}
    for joint in AngleJoint:
        deg = degrees.get(joint.value)
        if deg is None:
            out[joint] = JointAngle(joint, math.nan, 0.0, False)
        else:
            out[joint] = JointAngle(joint, float(deg), confidence, confidence >= 0.3)
    return out


@pytest.fixture
def pose_builder():
    return build_pose
