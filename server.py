"""
Paddle Match Web Server — host loop (FastAPI + WebSocket)

Runs the fixed-rate tick loop, turns client key/pointer/touch messages into
paddle controls, and broadcasts the match snapshot plus drained feedback
events to every connected renderer.
"""

import asyncio
import json
import logging
import os
import time
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from config import COURT_WIDTH, COURT_HEIGHT, TICK_DT, DIFFICULTY_SETTINGS, THEMES, SPAWN_RATES
from controller import MatchController
from controls import PaddleControl
from scenarios import SCENARIOS

logger = logging.getLogger(__name__)

# ── Controller ──────────────────────────────────────────────────────────────

ctrl = MatchController()


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(game_loop())
    yield
    task.cancel()


app = FastAPI(lifespan=lifespan)

# ── Client / input state ────────────────────────────────────────────────────

clients: list[WebSocket] = []
held_keys: dict[str, bool] = {}

# Pointer/touch state: latest y per side, None when inactive
pointer_y: dict[str, float | None] = {"left": None}
touch_y: dict[str, float | None] = {"left": None, "right": None}

# Scenario presets rewrite match state directly; development use only
DEBUG_SCENARIOS = os.environ.get("PADDLE_DEBUG", "") not in ("", "0")

# Keys -> (side, direction); multi mode splits W/S and arrows between sides
SINGLE_KEYS = {"w": -1, "up": -1, "s": 1, "down": 1}
MULTI_KEYS = {
    "left": {"w": -1, "s": 1},
    "right": {"up": -1, "down": 1},
}

# ── Async game loop ─────────────────────────────────────────────────────────

TARGET_FPS = 60
FRAME_DT = TICK_DT


def _key_direction(mapping: dict) -> int:
    d = 0
    for key, direction in mapping.items():
        if held_keys.get(key, False):
            d += direction
    return max(-1, min(1, d))


def _controls() -> tuple[PaddleControl, PaddleControl]:
    """Build this tick's controls; touch beats pointer beats keyboard."""
    if ctrl.state.mode == "multi":
        sides = []
        for side in ("left", "right"):
            if touch_y[side] is not None:
                sides.append(PaddleControl.place(touch_y[side]))
            else:
                sides.append(PaddleControl.move(_key_direction(MULTI_KEYS[side])))
        return sides[0], sides[1]

    if touch_y["left"] is not None:
        left = PaddleControl.place(touch_y["left"])
    elif pointer_y["left"] is not None:
        left = PaddleControl.follow(pointer_y["left"])
    else:
        left = PaddleControl.move(_key_direction(SINGLE_KEYS))
    return left, PaddleControl.idle()


async def game_loop():
    """Main tick loop at ~60 fps; one logical tick per frame."""
    while True:
        now = time.perf_counter()

        left, right = _controls()
        ctrl.update(left, right, TICK_DT)

        if clients:
            frame_msg = _build_frame_message()
            dead: list[WebSocket] = []
            for ws in clients:
                try:
                    await ws.send_text(frame_msg)
                except Exception:
                    dead.append(ws)
            for ws in dead:
                if ws in clients:
                    clients.remove(ws)
        else:
            ctrl.drain_events()

        elapsed = time.perf_counter() - now
        sleep_time = FRAME_DT - elapsed
        if sleep_time > 0:
            await asyncio.sleep(sleep_time)
        else:
            await asyncio.sleep(0)


def _build_frame_message() -> str:
    """Serialize the snapshot and drained events into one JSON frame."""
    snap = ctrl.snapshot()
    frame = {
        "type": "frame",
        "state": asdict(snap),
        "events": ctrl.drain_events(),
        "theme": ctrl.settings.theme,
    }
    return json.dumps(frame, separators=(',', ':'))


# ── Key press handlers ──────────────────────────────────────────────────────

def _handle_key_down(key: str):
    held_keys[key] = True
    pointer_y["left"] = None

    status = ctrl.state.status
    if key in ("space", "escape", "p"):
        ctrl.toggle_pause()
    elif key == "r" and status == "gameOver":
        ctrl.rematch()
    elif key == "m":
        ctrl.return_to_menu()
    elif key in SCENARIOS and DEBUG_SCENARIOS:
        SCENARIOS[key](ctrl)


def _handle_key_up(key: str):
    held_keys[key] = False


def _run_scenario(key: str) -> None:
    if not DEBUG_SCENARIOS:
        raise ValueError("scenarios are disabled (set PADDLE_DEBUG=1)")
    if key not in SCENARIOS:
        raise ValueError(f"unknown scenario '{key}'")
    logger.info("[DEBUG] scenario %s", key)
    SCENARIOS[key](ctrl)


def _apply_setting(name: str, value) -> None:
    """Route one ``set`` command to the matching controller setter."""
    setters = {
        "difficulty": ctrl.set_difficulty,
        "theme": ctrl.set_theme,
        "sound": ctrl.set_sound,
        "reduced_motion": ctrl.set_reduced_motion,
        "adaptive_ai": ctrl.set_adaptive_ai,
        "powerups": ctrl.set_powerups_enabled,
        "spawn_rate": ctrl.set_spawn_rate,
    }
    setter = setters.get(name)
    if setter is None:
        raise ValueError(f"unknown setting '{name}'")
    setter(value)


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)

    init_msg = json.dumps({
        "type": "init",
        "court_width": COURT_WIDTH,
        "court_height": COURT_HEIGHT,
        "tick_dt": TICK_DT,
        "difficulties": list(DIFFICULTY_SETTINGS),
        "themes": THEMES,
        "spawn_rates": list(SPAWN_RATES),
    })
    await ws.send_text(init_msg)

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue

            cmd = msg.get("cmd", "")
            try:
                if cmd == "key_down":
                    _handle_key_down(str(msg.get("key", "")).lower())
                elif cmd == "key_up":
                    _handle_key_up(str(msg.get("key", "")).lower())
                elif cmd == "pointer":
                    pointer_y["left"] = float(msg.get("y", COURT_HEIGHT / 2))
                elif cmd == "touch":
                    side = "right" if msg.get("side") == "right" else "left"
                    touch_y[side] = float(msg.get("y", COURT_HEIGHT / 2))
                elif cmd == "touch_end":
                    touch_y["left"] = touch_y["right"] = None
                elif cmd == "start":
                    ctrl.start(msg.get("difficulty", "medium"),
                               int(msg.get("win_score", 7)),
                               msg.get("mode", "single"))
                elif cmd == "pause":
                    ctrl.toggle_pause()
                elif cmd == "visibility":
                    if msg.get("hidden"):
                        ctrl.pause()
                elif cmd == "menu":
                    ctrl.return_to_menu()
                elif cmd == "rematch":
                    ctrl.rematch()
                elif cmd == "set":
                    _apply_setting(str(msg.get("name", "")), msg.get("value"))
                elif cmd == "scenario":
                    _run_scenario(str(msg.get("key", "")))
                elif cmd == "get_stats":
                    await ws.send_text(json.dumps({
                        "type": "stats",
                        "data": ctrl.stats.as_dict(),
                    }))
            except ValueError as exc:
                logger.warning("[WS] rejected %s: %s", cmd, exc)
                await ws.send_text(json.dumps({"type": "error", "cmd": cmd, "msg": str(exc)}))
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)
        held_keys.clear()
        touch_y["left"] = touch_y["right"] = None


# ── HTTP routes ─────────────────────────────────────────────────────────────

@app.get("/")
async def root():
    return asdict(ctrl.snapshot())


@app.get("/stats")
async def stats():
    return ctrl.stats.as_dict()


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("server:app",
                host=os.environ.get("PADDLE_HOST", "0.0.0.0"),
                port=int(os.environ.get("PADDLE_PORT", "8000")),
                reload=False)
