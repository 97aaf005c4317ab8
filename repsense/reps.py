"""
Rep counting: one hysteresis state machine per exercise.
A rep is counted on the Bottom -> Top transition only. Crossings must hold for
the dwell time before they are honored; low-confidence frames freeze the machine.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .angles import AngleJoint, JointAngle
from .classifier import ExerciseType

logger = logging.getLogger(__name__)

# Minimum time (ms) a crossing must persist before the phase changes.
DWELL_MS = 150.0


class RepPhase(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    IN_TRANSITION = "in_transition"


@dataclass(frozen=True)
class PhaseThresholds:
    """
    Tracked angle and hysteresis band for one exercise.
    Top is the rest position, Bottom the work position.
    """

    joint: AngleJoint
    enter_bottom_below: float
    enter_top_above: float

    @property
    def gap(self) -> float:
        return self.enter_top_above - self.enter_bottom_below


DEFAULT_THRESHOLDS: dict[ExerciseType, PhaseThresholds] = {
    ExerciseType.SQUAT: PhaseThresholds(AngleJoint.KNEE, 100.0, 160.0),
    ExerciseType.PUSHUP: PhaseThresholds(AngleJoint.ELBOW, 90.0, 150.0),
    # Curl works by flexing: extended arm is Top, curled arm is Bottom.
    ExerciseType.BICEP_CURL: PhaseThresholds(AngleJoint.ELBOW, 60.0, 140.0),
    # Press rack position is Bottom, lockout overhead is Top.
    ExerciseType.SHOULDER_PRESS: PhaseThresholds(AngleJoint.ELBOW, 100.0, 160.0),
}


@dataclass
class RepCounterState:
    exercise: ExerciseType
    phase: RepPhase = RepPhase.TOP
    count: int = 0
    last_phase_change_ms: Optional[float] = None
    # Last extreme actually reached; phase may read InTransition in between
    settled: RepPhase = RepPhase.TOP
    pending_since_ms: Optional[float] = None
    # Timestamp of the previous frame fed to the machine
    last_sample_ms: Optional[float] = None


class RepStateMachine:
    def __init__(
        self,
        exercise: ExerciseType,
        thresholds: PhaseThresholds,
        dwell_ms: float = DWELL_MS,
    ):
        if exercise == ExerciseType.UNKNOWN:
            raise ValueError("Unknown exercise has no rep counter")
        self.thresholds = thresholds
        self.dwell_ms = dwell_ms
        self.state = RepCounterState(exercise=exercise)

    @property
    def count(self) -> int:
        return self.state.count

    @property
    def phase(self) -> RepPhase:
        return self.state.phase

    def reset(self) -> None:
        self.state = RepCounterState(exercise=self.state.exercise)

    def interrupt(self) -> None:
        """Drop any pending crossing. Called when the machine is not fed for a frame."""
        self.state.pending_since_ms = None
        self.state.last_sample_ms = None

    def update(self, angles: dict[AngleJoint, JointAngle], timestamp_ms: float) -> bool:
        """
        Advance on one frame. Returns True when this frame completed a rep.
        """
        angle = angles.get(self.thresholds.joint)
        if angle is None or not angle.valid or math.isnan(angle.degrees):
            self.interrupt()
            return False
        return self.step(angle.degrees, timestamp_ms)

    def step(self, degrees: float, timestamp_ms: float) -> bool:
        st = self.state
        th = self.thresholds
        if st.settled == RepPhase.TOP:
            crossing = degrees < th.enter_bottom_below
            target = RepPhase.BOTTOM
            at_rest = degrees > th.enter_top_above
        else:
            crossing = degrees > th.enter_top_above
            target = RepPhase.TOP
            at_rest = degrees < th.enter_bottom_below

        previous_ms = st.last_sample_ms
        st.last_sample_ms = timestamp_ms
        if not crossing:
            st.pending_since_ms = None
            st.phase = st.settled if at_rest else RepPhase.IN_TRANSITION
            return False

        if st.pending_since_ms is None:
            # The crossing happened somewhere after the previous sample
            st.pending_since_ms = timestamp_ms if previous_ms is None else previous_ms
        if timestamp_ms - st.pending_since_ms < self.dwell_ms:
            st.phase = RepPhase.IN_TRANSITION
            return False

        st.settled = target
        st.phase = target
        st.pending_since_ms = None
        st.last_phase_change_ms = timestamp_ms
        logger.debug("reps: %s -> %s at %.0f ms (%.1f deg)", st.exercise.value, target.value, timestamp_ms, degrees)
        if target != RepPhase.TOP:
            return False
        st.count += 1
        logger.info("reps: %s rep %s counted at %.0f ms", st.exercise.value, st.count, timestamp_ms)
        return True
