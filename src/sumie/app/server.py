from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from time import perf_counter
from typing import Any, Dict, List

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.clock import FrameClock
from ..sim.core.config import SceneConfig
from ..sim.core.scene import Scene

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1280.0
DEFAULT_HEIGHT = 720.0
MAX_QUEUED_SNAPSHOTS = 120


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SnapshotFeed:
    """Bounded backlog of encoded snapshots.

    Each subscriber has a cursor holding the last tick it was sent; acknowledged
    ticks are trimmed from the front of the backlog.
    """

    def __init__(self, capacity: int = MAX_QUEUED_SNAPSHOTS):
        self._backlog: deque[QueuedSnapshot] = deque(maxlen=capacity)
        self._cursors: Dict[WebSocket, int] = {}
        self._lock = asyncio.Lock()

    @property
    def subscribers(self) -> List[WebSocket]:
        return list(self._cursors)

    def ticks(self) -> List[int]:
        return [entry.tick for entry in self._backlog]

    def subscribe(self, client: WebSocket) -> None:
        self._cursors[client] = -1

    def unsubscribe(self, client: WebSocket) -> None:
        self._cursors.pop(client, None)

    async def publish(self, entry: QueuedSnapshot) -> None:
        async with self._lock:
            self._backlog.append(entry)
        for client in self.subscribers:
            try:
                await self.catch_up(client)
            except WebSocketDisconnect:
                logger.info("Dropping disconnected client")
                self.unsubscribe(client)

    async def catch_up(self, client: WebSocket) -> None:
        cursor = self._cursors.get(client, -1)
        async with self._lock:
            unsent = [entry for entry in self._backlog if entry.tick > cursor]
        for entry in unsent:
            await client.send_text(entry.payload)
            self._cursors[client] = entry.tick

    async def acknowledge(self, tick: int) -> None:
        async with self._lock:
            while self._backlog and self._backlog[0].tick <= tick:
                self._backlog.popleft()

    async def clear(self) -> None:
        async with self._lock:
            self._backlog.clear()
        for client in self._cursors:
            self._cursors[client] = -1


def encode_snapshot(scene: Scene, tick: int) -> QueuedSnapshot:
    snapshot = scene.snapshot(tick)
    body: Dict[str, Any] = {
        "tick": snapshot.tick,
        "metrics": asdict(snapshot.metrics),
        "clouds": snapshot.clouds,
        "birds": snapshot.birds,
        "obstacle": asdict(snapshot.obstacle),
        "metadata": asdict(snapshot.metadata),
    }
    message = {"type": "snapshot", "tick": snapshot.tick, "payload": body}
    return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(message))


class SceneController:
    def __init__(
        self,
        config: SceneConfig,
        width: float = DEFAULT_WIDTH,
        height: float = DEFAULT_HEIGHT,
        frame_rate: float = 30.0,
        broadcast_interval: int = 1,
    ):
        self.config = config
        self.scene = Scene(config, width, height)
        self.clock = FrameClock()
        self.feed = SnapshotFeed()
        self.frame_rate = max(1.0, frame_rate)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self._lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._run())
            self._loop_task.add_done_callback(_report_loop_exit)
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.scene.reset()
            self.clock.reset()
            self.tick = 0
        await self._republish()

    async def resize(self, width: float, height: float) -> bool:
        async with self._lock:
            changed = self.scene.resize(width, height)
        if changed:
            await self._republish()
        return changed

    async def advance(self, timestamp: float) -> None:
        async with self._lock:
            self.scene.step(self.clock.tick(timestamp) * self.speed_multiplier)
            self.tick += 1
            due = self.tick % self.broadcast_interval == 0
        if due:
            await self.feed.publish(encode_snapshot(self.scene, self.tick))

    async def acknowledge(self, tick: int) -> None:
        await self.feed.acknowledge(tick)

    async def _republish(self) -> None:
        # Stale ticks from before a rebuild must not reach clients.
        await self.feed.clear()
        await self.feed.publish(encode_snapshot(self.scene, self.tick))

    async def _run(self) -> None:
        period = 1.0 / self.frame_rate
        while True:
            await asyncio.sleep(period)
            if self.running:
                await self.advance(perf_counter())
            else:
                self.clock.reset()


def _report_loop_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Simulation loop stopped", exc_info=error)


app = FastAPI(title="Sumie Scene Simulation")
controller = SceneController(SceneConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    scene = controller.scene
    metrics = scene.metrics
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "width": scene.width,
            "height": scene.height,
            "birds": len(scene.birds),
            "clouds": len(scene.clouds),
            "metrics": None if metrics is None else asdict(metrics),
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    requested = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, requested))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/control/resize")
async def resize_scene(payload: dict) -> JSONResponse:
    try:
        width = float(payload["width"])
        height = float(payload["height"])
        rebuilt = await controller.resize(width, height)
    except (KeyError, TypeError, ValueError) as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return JSONResponse({"width": width, "height": height, "rebuilt": rebuilt})


async def _handle_client_message(text: str) -> None:
    try:
        message = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Ignoring malformed client message")
        return
    if not isinstance(message, dict) or message.get("type") != "ack":
        return
    tick = message.get("tick")
    if isinstance(tick, int):
        await controller.acknowledge(tick)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    feed = controller.feed
    feed.subscribe(websocket)
    logger.info("Client connected to /ws (%d subscribers)", len(feed.subscribers))
    try:
        await feed.catch_up(websocket)
        while True:
            await _handle_client_message(await websocket.receive_text())
    except WebSocketDisconnect:
        logger.info("Client disconnected from /ws")
    finally:
        feed.unsubscribe(websocket)


__all__ = ["app", "controller"]
