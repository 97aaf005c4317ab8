from __future__ import annotations

import math

import pytest

from conftest import build_pose
from repsense.angles import AngleJoint, _angle_deg, compute_joint_angles
from repsense.keypoints import JointName, Keypoint, Pose


def test_angle_deg_basic():
    assert _angle_deg((1.0, 0.0), (0.0, 0.0), (0.0, 1.0)) == pytest.approx(90.0)
    assert _angle_deg((-1.0, 0.0), (0.0, 0.0), (1.0, 0.0)) == pytest.approx(180.0)
    # Reflex side folds back to the interior angle
    assert _angle_deg((0.0, 1.0), (0.0, 0.0), (1.0, 0.0)) == pytest.approx(90.0)


def test_angle_deg_degenerate():
    assert _angle_deg((0.0, 0.0), (0.0, 0.0), (1.0, 0.0)) is None


@pytest.mark.parametrize("knee,body,lean,shoulder,elbow", [
    (170, 170, 10, 15, 170),
    (95, 80, 30, 15, 170),
    (175, 175, 80, 30, 80),
    (178, 178, 5, 170, 170),
])
def test_angles_recovered_from_pose(knee, body, lean, shoulder, elbow):
    angles = compute_joint_angles(build_pose(knee, body, lean, shoulder, elbow))
    assert angles[AngleJoint.KNEE].degrees == pytest.approx(knee, abs=1e-6)
    assert angles[AngleJoint.BODY_LINE].degrees == pytest.approx(body, abs=1e-6)
    assert angles[AngleJoint.TORSO_LEAN].degrees == pytest.approx(lean, abs=1e-6)
    assert angles[AngleJoint.SHOULDER].degrees == pytest.approx(shoulder, abs=1e-6)
    assert angles[AngleJoint.ELBOW].degrees == pytest.approx(elbow, abs=1e-6)
    assert all(a.valid for a in angles.values())


def test_confidence_is_minimum_of_triple():
    pose = Pose(keypoints=(
        Keypoint(JointName.LEFT_HIP, 0.0, 0.0, 0.9),
        Keypoint(JointName.LEFT_KNEE, 0.0, 10.0, 0.5),
        Keypoint(JointName.LEFT_ANKLE, 0.0, 20.0, 0.7),
    ))
    knee = compute_joint_angles(pose)[AngleJoint.KNEE]
    assert knee.confidence == pytest.approx(0.5)
    assert knee.degrees == pytest.approx(180.0)
    assert knee.valid


def test_low_confidence_angle_is_invalid_but_present():
    pose = Pose(keypoints=(
        Keypoint(JointName.LEFT_HIP, 0.0, 0.0, 0.9),
        Keypoint(JointName.LEFT_KNEE, 0.0, 10.0, 0.2),
        Keypoint(JointName.LEFT_ANKLE, 10.0, 10.0, 0.9),
    ))
    knee = compute_joint_angles(pose, min_confidence=0.3)[AngleJoint.KNEE]
    assert not knee.valid
    assert knee.degrees == pytest.approx(90.0)


def test_missing_keypoints_give_nan():
    angles = compute_joint_angles(Pose())
    assert set(angles) == set(AngleJoint)
    for angle in angles.values():
        assert math.isnan(angle.degrees)
        assert angle.confidence == 0.0
        assert not angle.valid


def test_better_side_is_reported():
    pose = Pose(keypoints=(
        Keypoint(JointName.LEFT_HIP, 0.0, 0.0, 0.4),
        Keypoint(JointName.LEFT_KNEE, 0.0, 10.0, 0.4),
        Keypoint(JointName.LEFT_ANKLE, 0.0, 20.0, 0.4),
        Keypoint(JointName.RIGHT_HIP, 0.0, 0.0, 0.9),
        Keypoint(JointName.RIGHT_KNEE, 0.0, 10.0, 0.9),
        Keypoint(JointName.RIGHT_ANKLE, 10.0, 10.0, 0.9),
    ))
    knee = compute_joint_angles(pose)[AngleJoint.KNEE]
    assert knee.degrees == pytest.approx(90.0)
    assert knee.confidence == pytest.approx(0.9)


def test_torso_lean_upright_and_horizontal():
    upright = Pose(keypoints=(
        Keypoint(JointName.LEFT_HIP, 100.0, 200.0, 0.9),
        Keypoint(JointName.LEFT_SHOULDER, 100.0, 100.0, 0.9),
    ))
    flat = Pose(keypoints=(
        Keypoint(JointName.LEFT_HIP, 100.0, 200.0, 0.9),
        Keypoint(JointName.LEFT_SHOULDER, 0.0, 200.0, 0.9),
    ))
    assert compute_joint_angles(upright)[AngleJoint.TORSO_LEAN].degrees == pytest.approx(0.0)
    assert compute_joint_angles(flat)[AngleJoint.TORSO_LEAN].degrees == pytest.approx(90.0)
