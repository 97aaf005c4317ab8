#!/usr/bin/env python3
"""
Exercise recognition and rep counting: offline (video) or live (webcam).
Usage:
  Offline: python run.py --video path/to/video.mp4 [--config engine.json]
  Live:    python run.py --live [--camera 0] [--record] [--config engine.json]
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env so REPSENSE_CONFIG can point at a tuned threshold file
load_dotenv()
load_dotenv(Path(__file__).resolve().parent / ".env")

from repsense.config import EngineConfig, load_config
from repsense.io_stream import video_frames
from repsense.live import run_live_pipeline
from repsense.pose import create_pose_detector, process_frame
from repsense.report import run_session_report, write_session_summary
from repsense.session import ExerciseSession


def run_offline(
    video_path: str,
    output_dir: str = "outputs",
    config: Optional[EngineConfig] = None,
) -> dict:
    """Process video file: pose -> session -> summary -> report. Returns the summary."""
    os.makedirs(output_dir, exist_ok=True)
    pose_model = create_pose_detector()
    session = ExerciseSession(config)
    fps = 30.0
    for frame_bgr, frame_idx, fps, timestamp_ms in video_frames(video_path):
        session.process(process_frame(frame_bgr, pose_model, timestamp_ms))
    summary = session.summary()
    summary["fps"] = fps
    summary_path = write_session_summary(summary, output_dir)
    run_session_report(summary_path, output_dir, source="offline")
    return summary


def main() -> None:
    ap = argparse.ArgumentParser(description="Exercise rep counter: offline video or live webcam")
    ap.add_argument("--video", type=str, default=None, help="Path to video file (offline mode)")
    ap.add_argument("--live", action="store_true", help="Use live webcam")
    ap.add_argument("--camera", type=int, default=0, help="Camera device id (default 0)")
    ap.add_argument("--record", action="store_true", help="Save live_recording.mp4 in live mode")
    ap.add_argument("--output-dir", type=str, default="outputs", help="Output directory")
    ap.add_argument("--config", type=str, default=None, help="JSON engine config (default: $REPSENSE_CONFIG)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.live and args.video:
        print("Error: provide exactly one of --video or --live", file=sys.stderr)
        sys.exit(1)
    if not args.live and not args.video:
        print("Error: provide --video PATH or --live", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: invalid config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.live:
        run_live_pipeline(
            camera_id=args.camera,
            target_fps=30,
            record=args.record,
            output_dir=args.output_dir,
            config=config,
        )
    else:
        if not os.path.isfile(args.video):
            print(f"Error: video file not found: {args.video}", file=sys.stderr)
            sys.exit(1)
        summary = run_offline(args.video, output_dir=args.output_dir, config=config)
        print(f"Offline done. Reps: {summary['counts']}. Report: {args.output_dir}/report.html")


if __name__ == "__main__":
    main()
