"""
Live webcam pipeline: capture, pose, exercise session, overlay window.
Saves the session summary and generates a report on exit (q).
"""
from __future__ import annotations

import logging
import os
import time
from typing import Optional

import cv2

from .config import EngineConfig
from .io_stream import webcam_frames
from .overlay import draw_realtime_overlay
from .pose import create_pose_detector, process_frame, scale_pose
from .report import run_session_report, write_session_summary
from .session import ExerciseSession

logger = logging.getLogger(__name__)

# Target resize width for faster inference
LIVE_RESIZE_WIDTH = 960
# No-pose warning after this many seconds
NO_POSE_WARN_SEC = 2.0
# How long a feedback toast stays on screen
FEEDBACK_DISPLAY_SEC = 3.0


def run_live_pipeline(
    camera_id: int = 0,
    target_fps: float = 30,
    record: bool = False,
    output_dir: str = "outputs",
    config: Optional[EngineConfig] = None,
) -> None:
    """
    Run live capture loop. q=quit, r=reset (camera restart), s=snapshot.
    On quit: save session summary, generate report; optionally save recording.
    """
    os.makedirs(output_dir, exist_ok=True)
    pose_model = create_pose_detector()
    session = ExerciseSession(config)

    fps_actual = target_fps
    last_pose_time = time.perf_counter()
    message: Optional[str] = None
    feedback_message: Optional[str] = None
    feedback_time = 0.0
    video_writer: Optional[cv2.VideoWriter] = None
    win_name = "Rep Counter (q=quit, r=reset, s=snapshot)"

    cv2.namedWindow(win_name, cv2.WINDOW_NORMAL)

    try:
        for frame_bgr, frame_idx, fps_est, timestamp_ms in webcam_frames(camera_id, target_fps=target_fps):
            fps_actual = fps_est

            # Resize for inference, keypoints scaled back to the original frame
            h, w = frame_bgr.shape[:2]
            scale = LIVE_RESIZE_WIDTH / w if w > LIVE_RESIZE_WIDTH else 1.0
            small = cv2.resize(frame_bgr, (LIVE_RESIZE_WIDTH, int(round(h * scale)))) if scale != 1.0 else frame_bgr
            pose = process_frame(small, pose_model, timestamp_ms)
            if scale != 1.0:
                pose = scale_pose(pose, 1.0 / scale)
            if pose.keypoints:
                last_pose_time = time.perf_counter()

            snapshot = session.process(pose)
            if snapshot.new_feedback:
                feedback_message = snapshot.new_feedback[-1].message
                feedback_time = time.perf_counter()
            if feedback_message and (time.perf_counter() - feedback_time) > FEEDBACK_DISPLAY_SEC:
                feedback_message = None

            if time.perf_counter() - last_pose_time > NO_POSE_WARN_SEC:
                message = "Move into frame"
            elif message == "Move into frame":
                message = None

            out_frame = frame_bgr.copy()
            draw_realtime_overlay(out_frame, pose, snapshot, feedback_message, message)

            if record and video_writer is None:
                fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                rec_path = os.path.join(output_dir, "live_recording.mp4")
                video_writer = cv2.VideoWriter(
                    rec_path,
                    fourcc,
                    max(1, int(fps_actual)),
                    (out_frame.shape[1], out_frame.shape[0]),
                )
            if video_writer is not None:
                video_writer.write(out_frame)

            cv2.imshow(win_name, out_frame)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r"):
                session.reset()
                message = None
                feedback_message = None
            if key == ord("s"):
                snap_path = os.path.join(output_dir, f"snapshot_{frame_idx}.jpg")
                cv2.imwrite(snap_path, out_frame)
                message = "Saved snapshot"
    finally:
        cv2.destroyAllWindows()
        if video_writer is not None:
            video_writer.release()

    summary = session.summary()
    summary["fps_est"] = float(fps_actual)
    summary_path = write_session_summary(summary, output_dir)
    logger.info("live: session ended, counts=%s", summary["counts"])
    run_session_report(summary_path, output_dir, source="live")
