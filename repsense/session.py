"""
Session aggregator: owns all per-session state and runs the per-frame pipeline
pose -> filter -> angles -> {classifier, form} -> rep counter -> snapshot.
Single writer; readers get immutable snapshots.
"""
from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Optional

from .angles import AngleJoint, JointAngle, compute_joint_angles
from .classifier import SUPPORTED_EXERCISES, ExerciseClassifier, ExerciseType
from .config import EngineConfig
from .form import FeedbackEvent, FormEvaluator
from .keypoints import KeypointFilter, Pose
from .reps import RepPhase, RepStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    timestamp_ms: float
    current_exercise: ExerciseType
    confidence: float
    counts: dict[ExerciseType, int]
    phase: Optional[RepPhase]
    new_feedback: tuple[FeedbackEvent, ...] = ()
    rep_completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp_ms": self.timestamp_ms,
            "current_exercise": self.current_exercise.value,
            "confidence": round(self.confidence, 3),
            "counts": {ex.value: n for ex, n in self.counts.items()},
            "phase": self.phase.value if self.phase is not None else None,
            "new_feedback": [ev.to_dict() for ev in self.new_feedback],
            "rep_completed": self.rep_completed,
        }


@dataclass
class SessionState:
    """All mutable state of one tracking session; no module-level state."""

    filter: KeypointFilter
    classifier: ExerciseClassifier
    counters: dict[ExerciseType, RepStateMachine]
    form: FormEvaluator
    feedback_log: deque[FeedbackEvent]
    frames: int = 0
    last_angles: dict[AngleJoint, JointAngle] = field(default_factory=dict)

    @classmethod
    def create(cls, config: EngineConfig) -> SessionState:
        fc = config.filter
        cc = config.classifier
        return cls(
            filter=KeypointFilter(
                min_confidence=fc.min_confidence,
                alpha=fc.alpha,
                confidence_decay=fc.confidence_decay,
            ),
            classifier=ExerciseClassifier(
                window_size=cc.window_size,
                majority_fraction=cc.majority_fraction,
                min_score=cc.min_score,
                falloff_deg=cc.falloff_deg,
            ),
            counters={
                ex: RepStateMachine(ex, config.reps.thresholds[ex], dwell_ms=config.reps.dwell_ms)
                for ex in SUPPORTED_EXERCISES
            },
            form=FormEvaluator(cooldown_ms=config.form.cooldown_ms),
            feedback_log=deque(maxlen=config.feedback_log_size),
        )


class ExerciseSession:
    """
    Frames must arrive in timestamp order, one call per frame. Call ``reset()``
    whenever the capture restarts.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.config.validate()
        self.state = SessionState.create(self.config)

    @property
    def current_exercise(self) -> ExerciseType:
        return self.state.classifier.current

    def reset(self) -> None:
        st = self.state
        st.filter.reset()
        st.classifier.reset()
        for counter in st.counters.values():
            counter.reset()
        st.form.reset()
        st.feedback_log.clear()
        st.frames = 0
        st.last_angles = {}
        logger.info("session: reset")

    def process(self, pose: Pose) -> SessionSnapshot:
        filtered = self.state.filter.apply(pose)
        angles = compute_joint_angles(filtered, self.config.filter.min_confidence)
        return self.process_angles(angles, pose.timestamp_ms)

    def process_angles(
        self,
        angles: dict[AngleJoint, JointAngle],
        timestamp_ms: float,
    ) -> SessionSnapshot:
        """Run the pipeline from precomputed joint angles."""
        st = self.state
        st.frames += 1
        st.last_angles = angles
        exercise, confidence = st.classifier.update(angles)

        feedback: list[FeedbackEvent] = []
        rep_completed = False
        phase: Optional[RepPhase] = None
        if exercise != ExerciseType.UNKNOWN:
            counter = st.counters[exercise]
            rep_completed = counter.update(angles, timestamp_ms)
            phase = counter.phase
            feedback = st.form.evaluate(exercise, angles, timestamp_ms)
            st.feedback_log.extend(feedback)
            for ev in feedback:
                logger.info("session: feedback %s at %.0f ms", ev.code.value, timestamp_ms)
        # Idle counters must not carry a pending crossing across the gap
        for other, idle in st.counters.items():
            if other != exercise:
                idle.interrupt()

        return SessionSnapshot(
            timestamp_ms=timestamp_ms,
            current_exercise=exercise,
            confidence=confidence,
            counts=self.counts(),
            phase=phase,
            new_feedback=tuple(feedback),
            rep_completed=rep_completed,
        )

    def counts(self) -> dict[ExerciseType, int]:
        return {ex: counter.count for ex, counter in self.state.counters.items()}

    def feedback_log(self) -> tuple[FeedbackEvent, ...]:
        return tuple(self.state.feedback_log)

    def summary(self) -> dict[str, Any]:
        """JSON-ready session summary for reports."""
        tally = Counter(ev.code.value for ev in self.state.feedback_log)
        return {
            "frames": self.state.frames,
            "current_exercise": self.current_exercise.value,
            "counts": {ex.value: n for ex, n in self.counts().items()},
            "total_reps": sum(self.counts().values()),
            "feedback_counts": dict(tally),
            "feedback": [ev.to_dict() for ev in self.state.feedback_log],
        }
