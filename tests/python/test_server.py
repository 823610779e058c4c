import asyncio
import json

from fastapi.testclient import TestClient

from sumie.app import server
from sumie.app.server import SceneController, encode_snapshot
from sumie.sim.core.config import SceneConfig


def test_snapshot_queue_ack_cleanup() -> None:
    controller = SceneController(SceneConfig(), width=320, height=180)

    async def exercise() -> None:
        await controller.feed.publish(encode_snapshot(controller.scene, 1))
        await controller.feed.publish(encode_snapshot(controller.scene, 2))
        assert controller.feed.ticks() == [1, 2]
        await controller.acknowledge(1)
        assert controller.feed.ticks() == [2]

    asyncio.run(exercise())


def test_snapshot_payload_shape() -> None:
    controller = SceneController(SceneConfig(), width=320, height=180)
    message = json.loads(encode_snapshot(controller.scene, 0).payload)

    assert message["type"] == "snapshot"
    payload = message["payload"]
    assert set(payload) == {"tick", "metrics", "clouds", "birds", "obstacle", "metadata"}
    assert payload["metadata"]["width"] == 320


def test_advance_and_resize() -> None:
    controller = SceneController(SceneConfig(), width=320, height=180)

    async def exercise() -> None:
        await controller.advance(10.0)
        await controller.advance(10.5)
        assert controller.tick == 2
        assert controller.scene.time == 0.5
        assert await controller.resize(320, 180) is False
        assert await controller.resize(640, 360) is True
        assert controller.feed.ticks() == [2]
        await controller.reset()
        assert controller.tick == 0
        assert controller.scene.time == 0.0

    asyncio.run(exercise())


def test_status_and_resize_endpoints(monkeypatch) -> None:
    monkeypatch.setattr(server, "controller", SceneController(SceneConfig(), width=320, height=180))
    client = TestClient(server.app)

    status = client.get("/api/status").json()
    assert status["width"] == 320
    assert status["birds"] == 12
    assert status["metrics"] is None

    response = client.post("/api/control/resize", json={"width": 400})
    assert response.status_code == 400
    response = client.post("/api/control/resize", json={"width": -1, "height": 100})
    assert response.status_code == 400

    response = client.post("/api/control/resize", json={"width": 400, "height": 300})
    assert response.status_code == 200
    assert response.json()["rebuilt"] is True

    response = client.post("/api/control/speed", json={"multiplier": 99})
    assert response.json()["multiplier"] == 5.0


def test_non_finite_resize_leaves_scene_untouched(monkeypatch) -> None:
    monkeypatch.setattr(server, "controller", SceneController(SceneConfig(), width=320, height=180))
    client = TestClient(server.app)

    for body in ({"width": "nan", "height": 100}, {"width": 400, "height": "inf"}):
        response = client.post("/api/control/resize", json=body)
        assert response.status_code == 400

    assert server.controller.scene.width == 320
    assert server.controller.scene.height == 180
    assert len(server.controller.scene.cloud_fields()) == len(server.controller.scene.clouds)
