from __future__ import annotations

import pytest

from repsense.keypoints import JointName, Keypoint, KeypointFilter, Pose


def _pose(*kps: Keypoint, ts: float = 0.0) -> Pose:
    return Pose(keypoints=kps, timestamp_ms=ts)


def test_first_frame_passes_through():
    f = KeypointFilter(alpha=0.5)
    out = f.apply(_pose(Keypoint(JointName.LEFT_KNEE, 10.0, 20.0, 0.9)))
    kp = out.get(JointName.LEFT_KNEE)
    assert (kp.x, kp.y, kp.confidence) == (10.0, 20.0, 0.9)


def test_exponential_smoothing():
    f = KeypointFilter(alpha=0.5)
    f.apply(_pose(Keypoint(JointName.LEFT_KNEE, 0.0, 0.0, 0.9)))
    out = f.apply(_pose(Keypoint(JointName.LEFT_KNEE, 10.0, 20.0, 0.8), ts=33.0))
    kp = out.get(JointName.LEFT_KNEE)
    assert kp.x == pytest.approx(5.0)
    assert kp.y == pytest.approx(10.0)
    assert kp.confidence == pytest.approx(0.8)
    assert out.timestamp_ms == 33.0


def test_low_confidence_holds_last_value_with_decay():
    f = KeypointFilter(min_confidence=0.3, alpha=0.5, confidence_decay=0.5)
    f.apply(_pose(Keypoint(JointName.LEFT_WRIST, 4.0, 8.0, 0.8)))
    out = f.apply(_pose(Keypoint(JointName.LEFT_WRIST, 400.0, 800.0, 0.1)))
    kp = out.get(JointName.LEFT_WRIST)
    assert (kp.x, kp.y) == (4.0, 8.0)
    assert kp.confidence == pytest.approx(0.4)
    out = f.apply(_pose(Keypoint(JointName.LEFT_WRIST, 400.0, 800.0, 0.1)))
    assert out.get(JointName.LEFT_WRIST).confidence == pytest.approx(0.2)


def test_missing_keypoint_is_held_not_dropped():
    f = KeypointFilter(confidence_decay=0.5)
    f.apply(_pose(
        Keypoint(JointName.LEFT_HIP, 1.0, 1.0, 0.9),
        Keypoint(JointName.LEFT_KNEE, 2.0, 2.0, 0.9),
    ))
    out = f.apply(_pose(Keypoint(JointName.LEFT_HIP, 1.0, 1.0, 0.9)))
    knee = out.get(JointName.LEFT_KNEE)
    assert knee is not None
    assert (knee.x, knee.y) == (2.0, 2.0)
    assert knee.confidence == pytest.approx(0.45)


def test_low_confidence_without_history_stays_low():
    f = KeypointFilter(min_confidence=0.3)
    out = f.apply(_pose(Keypoint(JointName.NOSE, 5.0, 5.0, 0.1)))
    assert out.get(JointName.NOSE).confidence == pytest.approx(0.1)
    # Nothing was remembered, so an empty frame yields nothing
    assert f.apply(_pose()).keypoints == ()


def test_reset_forgets_state():
    f = KeypointFilter(alpha=0.5)
    f.apply(_pose(Keypoint(JointName.LEFT_KNEE, 0.0, 0.0, 0.9)))
    f.reset()
    out = f.apply(_pose(Keypoint(JointName.LEFT_KNEE, 10.0, 10.0, 0.9)))
    assert out.get(JointName.LEFT_KNEE).x == 10.0
