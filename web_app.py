from __future__ import annotations

import asyncio
import base64
import concurrent.futures
import json
import logging
import tempfile
from pathlib import Path
from typing import Optional

# Ensure session and rep logging is visible when running under uvicorn
logging.getLogger("repsense.session").setLevel(logging.INFO)
logging.getLogger("repsense.reps").setLevel(logging.INFO)
logging.getLogger("repsense.classifier").setLevel(logging.INFO)

from fastapi import FastAPI
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse

import cv2
import numpy as np

from repsense.config import EngineConfig, load_config
from repsense.keypoints import Pose
from repsense.pose import create_pose_detector, process_frame
from repsense.report import run_session_report, write_session_summary
from repsense.session import ExerciseSession


app = FastAPI(title="RepSense")

# Thread pool for live WebSocket so event loop can respond to pings (avoids keepalive timeout)
_LIVE_EXECUTOR = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="live_pose")

_CONFIG: Optional[EngineConfig] = None


def _engine_config() -> EngineConfig:
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def _extract_body(html: str) -> str:
    start = html.find("<body>")
    end = html.rfind("</body>")
    if start == -1 or end == -1:
        return html
    return html[start + len("<body>"):end]


def decode_frame(image_data: str) -> Optional[np.ndarray]:
    """Base64 (optionally data-URL) JPEG/PNG -> BGR frame, or None if undecodable."""
    if image_data.startswith("data:"):
        image_data = image_data.split(",", 1)[1]
    try:
        img_bytes = base64.b64decode(image_data)
    except ValueError:
        return None
    np_arr = np.frombuffer(img_bytes, np.uint8)
    if np_arr.size == 0:
        return None
    return cv2.imdecode(np_arr, cv2.IMREAD_COLOR)


_LIVE_PAGE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>RepSense</title>
    <style>
      :root { --bg: #07090d; --panel: #0f1319; --text: #f0f4f8; --muted: #94a3b8; --accent: #06b6d4; --warn: #f59e0b; }
      * { box-sizing: border-box; margin: 0; padding: 0; }
      body { font-family: sans-serif; background: var(--bg); color: var(--text); padding: 24px; }
      .card { background: var(--panel); border-radius: 12px; padding: 16px; margin-bottom: 16px; }
      video, canvas { width: 100%; max-width: 640px; border-radius: 12px; }
      button { background: var(--accent); color: #000; border: 0; border-radius: 8px; padding: 10px 16px; font-weight: 600; }
      .muted { color: var(--muted); }
      #toast { color: var(--warn); min-height: 1.5em; }
    </style>
  </head>
  <body>
    <div class="card">
      <h2>RepSense</h2>
      <p class="muted">Squats, push-ups, bicep curls and shoulder presses are detected automatically.</p>
    </div>
    <div class="card">
      <video id="video" playsinline muted></video>
      <canvas id="canvas" width="640" height="480" style="display:none"></canvas>
      <p id="status" class="muted">Camera is off.</p>
      <p><button id="toggle">Start Camera</button> <button id="stop">Finish &amp; report</button></p>
    </div>
    <div class="card">
      <h3 id="exercise">Detecting...</h3>
      <p id="counts"></p>
      <p id="toast"></p>
    </div>
    <div class="card" id="report"></div>
    <script>
      const video = document.getElementById("video");
      const canvas = document.getElementById("canvas");
      const statusEl = document.getElementById("status");
      const toggle = document.getElementById("toggle");
      let ws = null, stream = null, active = false, lastFrame = 0, waiting = false;
      const frameDuration = 1000 / 30;

      function connect() {
        const proto = location.protocol === "https:" ? "wss" : "ws";
        ws = new WebSocket(proto + "://" + location.host + "/ws/live");
        ws.onmessage = (ev) => {
          const msg = JSON.parse(ev.data);
          waiting = false;
          if (msg.type === "report") { document.getElementById("report").innerHTML = msg.html; return; }
          if (msg.type !== "snapshot") return;
          document.getElementById("exercise").textContent = msg.current_exercise + " (" + msg.phase + ")";
          document.getElementById("counts").textContent =
            Object.entries(msg.counts).map(([k, v]) => k + ": " + v).join("  ");
          if (msg.new_feedback.length) document.getElementById("toast").textContent = msg.new_feedback.at(-1).message;
        };
      }

      function capture(ts) {
        if (!active) return;
        if (ts - lastFrame >= frameDuration && !waiting && ws && ws.readyState === 1) {
          lastFrame = ts;
          const ctx = canvas.getContext("2d", { willReadFrequently: true });
          ctx.drawImage(video, 0, 0, canvas.width, canvas.height);
          waiting = true;
          ws.send(JSON.stringify({ image: canvas.toDataURL("image/jpeg", 0.7), timestamp_ms: performance.now() }));
        }
        requestAnimationFrame(capture);
      }

      async function start() {
        try {
          statusEl.textContent = "Loading camera...";
          stream = await navigator.mediaDevices.getUserMedia({ video: { width: 640, height: 480, facingMode: "user", frameRate: { ideal: 30 } }, audio: false });
          video.srcObject = stream;
          await video.play();
          if (!ws) connect();
          const sendReset = () => ws.send(JSON.stringify({ type: "reset" }));
          if (ws.readyState === 1) sendReset(); else ws.addEventListener("open", sendReset, { once: true });
          active = true; toggle.textContent = "Stop Camera"; statusEl.textContent = "Tracking";
          requestAnimationFrame(capture);
        } catch (err) {
          statusEl.textContent = "Camera access denied. Please allow camera access in your browser settings.";
        }
      }

      function stopCamera() {
        active = false;
        if (stream) stream.getTracks().forEach((t) => t.stop());
        video.srcObject = null; toggle.textContent = "Start Camera"; statusEl.textContent = "Camera is off.";
      }

      toggle.onclick = () => (active ? stopCamera() : start());
      document.getElementById("stop").onclick = () => {
        stopCamera();
        if (ws && ws.readyState === 1) ws.send(JSON.stringify({ type: "stop" }));
      };
    </script>
  </body>
</html>
"""


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
    return HTMLResponse(_LIVE_PAGE)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def _session_report(session: ExerciseSession) -> str:
    with tempfile.TemporaryDirectory() as tmpdir:
        summary_path = write_session_summary(session.summary(), tmpdir)
        report_path = run_session_report(summary_path, tmpdir, source="live-web")
        return _extract_body(Path(report_path).read_text())


@app.websocket("/ws/live")
async def live_socket(websocket: WebSocket) -> None:
    await websocket.accept()
    print("live: session started", flush=True)
    pose_model = create_pose_detector()
    session = ExerciseSession(_engine_config())
    frame_idx = 0
    last_ts = -1.0
    loop = asyncio.get_running_loop()
    try:
        while True:
            msg = await websocket.receive_text()
            try:
                payload = json.loads(msg)
            except json.JSONDecodeError:
                continue
            if not isinstance(payload, dict):
                continue
            msg_type = payload.get("type")
            if msg_type == "reset":
                # Camera (re)started: filter memory and counters belong to the old capture
                session.reset()
                last_ts = -1.0
                print("live: reset (camera restart)", flush=True)
                continue
            if msg_type == "stop":
                print(f"live: stop received, counts={session.summary()['counts']}", flush=True)
                if payload.get("save", True):
                    report_html = await loop.run_in_executor(_LIVE_EXECUTOR, _session_report, session)
                    await websocket.send_text(json.dumps({"type": "report", "html": report_html}))
                await websocket.close()
                return

            image_data = payload.get("image")
            if not image_data:
                continue
            frame_bgr = decode_frame(image_data)
            if frame_bgr is None:
                continue
            try:
                timestamp_ms = float(payload.get("timestamp_ms", 0.0))
            except (TypeError, ValueError):
                continue
            # Engine state is order-dependent; late frames are dropped
            if timestamp_ms <= last_ts:
                continue
            last_ts = timestamp_ms
            if frame_idx == 0:
                print("live: first frame received", flush=True)

            def _process_frame_sync() -> dict:
                pose: Pose = process_frame(frame_bgr, pose_model, timestamp_ms)
                return session.process(pose).to_dict()

            snapshot = await loop.run_in_executor(_LIVE_EXECUTOR, _process_frame_sync)
            frame_idx += 1
            if frame_idx % 60 == 0:
                print(f"live: frame {frame_idx} (exercise={snapshot['current_exercise']})", flush=True)
            snapshot["type"] = "snapshot"
            await websocket.send_text(json.dumps(snapshot))
    except WebSocketDisconnect:
        print(f"live: client disconnected (frames={frame_idx})", flush=True)
        return


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
