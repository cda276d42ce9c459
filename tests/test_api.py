import time

import pytest
from fastapi.testclient import TestClient

from livedetect.api.app import create_app
from livedetect.config import settings
from livedetect.detection.image_data import encode_image_data
from livedetect.pipeline.stream_pipeline import StreamPipeline

from conftest import PERSON_BOX, FixedDetector, make_detection

IMAGE_DATA = encode_image_data(b"\xff\xd8fake-jpeg")


@pytest.fixture
def pipeline(tracker_config, inference_config):
    return StreamPipeline(
        FixedDetector([make_detection(PERSON_BOX)]),
        tracking_enabled=True,
        tracker_config=tracker_config,
        inference_config=inference_config,
    )


@pytest.fixture
def client(pipeline):
    app = create_app(pipeline=pipeline, start_pipeline=False)
    with TestClient(app) as test_client:
        yield test_client


def push_and_tick(client, pipeline, count):
    for i in range(count):
        response = client.post(
            "/api/frames", json={"frameId": i, "imageData": IMAGE_DATA, "captureTs": i * 33}
        )
        assert response.status_code == 202
        pipeline.tick()


def wait_for(condition, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "livedetect"

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["checks"] == {"scheduler": "stopped", "tracker": "ok"}


def test_status_and_config(client):
    status = client.get("/api/status").json()
    assert status["server"]["status"] == "running"
    assert status["pipeline"]["detector"]["name"] == "fixed"

    config = client.get("/api/config").json()
    assert config["mode"] == settings.server.mode
    assert config["tracking"]["min_hits"] == settings.tracking.min_hits


def test_push_frame(client, pipeline):
    response = client.post("/api/frames", json={"frameId": "f1", "imageData": IMAGE_DATA, "captureTs": 5})
    assert response.status_code == 202
    assert response.json() == {"accepted": True, "frameId": "f1", "pending": 1, "dropped": 0}

    frame = pipeline.queue.try_dequeue_latest()
    assert frame.payload == b"\xff\xd8fake-jpeg"
    assert frame.capture_ts == 5


def test_push_frame_bad_image_data(client):
    response = client.post("/api/frames", json={"frameId": 1, "imageData": "%%%"})
    assert response.status_code == 400

    error = response.json()["error"]
    assert error["status"] == 400
    assert "base64" in error["message"]
    assert "timestamp" in error


def test_push_frame_missing_fields(client):
    assert client.post("/api/frames", json={"frameId": 1}).status_code == 422


def test_tracks_and_latest_result(client, pipeline):
    assert client.get("/api/results/latest").json() == {"result": None}

    push_and_tick(client, pipeline, 3)

    tracks = client.get("/api/tracks").json()
    assert tracks["enabled"] is True
    assert tracks["count"] == 1
    assert tracks["tracks"][0]["trackId"] == 1

    latest = client.get("/api/results/latest", params={"trajectory": True}).json()["result"]
    assert latest["frame_id"] == 2
    assert len(latest["detections"][0]["trajectory"]) == 3


def test_faulted_tracker_returns_503_until_reset(client, pipeline):
    push_and_tick(client, pipeline, 1)
    pipeline.tracker._next_track_id = 1
    pipeline.detector.detections.append(make_detection((0.6, 0.6, 0.9, 0.9), label="car"))
    push_and_tick(client, pipeline, 1)

    response = client.get("/api/tracks")
    assert response.status_code == 503
    assert response.json()["error"]["status"] == 503
    assert client.get("/health").json()["checks"]["tracker"] == "faulted"

    pipeline.tracker._next_track_id = 3
    assert client.post("/api/tracks/reset").json()["success"] is True
    assert client.get("/api/tracks").status_code == 200


def test_test_inference(client):
    response = client.post("/api/test-inference", json={"imageData": IMAGE_DATA})
    assert response.status_code == 200

    body = response.json()
    assert body["success"] is True
    assert body["detections"][0]["label"] == "person"
    assert body["processingTime"] >= 0


def test_metrics_report(client, pipeline):
    push_and_tick(client, pipeline, 3)

    report = client.get("/metrics/report", params={"duration": 30}).json()
    assert set(report) >= {
        "timestamp",
        "duration",
        "mode",
        "frames",
        "fps",
        "latency",
        "bandwidth",
        "detections",
    }
    assert report["frames"]["processed"] == 3
    assert report["mode"] == settings.server.mode
    assert set(report["bandwidth"]) == {"uplink_kbps", "downlink_kbps"}
    assert set(report["latency"]["e2e"]) == {"median", "p95", "min", "max", "avg"}

    assert client.get("/metrics/report", params={"duration": 0}).status_code == 422


def test_metrics_summary_and_reset(client, pipeline):
    push_and_tick(client, pipeline, 2)
    assert client.get("/metrics/summary").json()["processed_frames"] == 2
    assert client.get("/metrics").json()["summary"]["total_frames"] == 2

    assert client.post("/metrics/reset").json()["success"] is True
    assert client.get("/metrics/summary").json()["processed_frames"] == 0


def test_metrics_start_stop(client, pipeline):
    client.post("/metrics/stop")
    push_and_tick(client, pipeline, 1)
    assert pipeline.recorder.processed_frames == 0

    client.post("/metrics/start")
    push_and_tick(client, pipeline, 1)
    assert pipeline.recorder.processed_frames == 1


def test_metrics_export(client, pipeline):
    push_and_tick(client, pipeline, 1)

    csv = client.get("/metrics/export/csv")
    assert csv.status_code == 200
    assert csv.headers["content-type"].startswith("text/csv")
    assert csv.text.startswith("Timestamp,Duration (s),Mode")

    as_json = client.get("/metrics/export/JSON")
    assert as_json.status_code == 200
    assert as_json.json()["frames"]["processed"] == 1

    assert client.get("/metrics/export/xml").status_code == 400


def test_metrics_save(client, monkeypatch, tmp_path):
    monkeypatch.setattr(settings.metrics, "results_dir", str(tmp_path))

    response = client.post("/metrics/save", json={"duration": 10, "filename": "run1.json"})
    assert response.status_code == 200
    assert response.json()["filepath"] == str(tmp_path / "run1.json")
    assert (tmp_path / "run1.json").exists()


def test_results_websocket_receives_records(client, pipeline):
    broadcaster = client.app.state.broadcaster

    with client.websocket_connect("/ws/results") as websocket:
        wait_for(lambda: broadcaster.client_count == 1)

        pipeline.on_frame("ws-1", b"x", 0)
        pipeline.tick()

        record = websocket.receive_json()
        assert record["frame_id"] == "ws-1"
        assert record["detections"] == []

    wait_for(lambda: broadcaster.client_count == 0)


def test_stream_websocket_enqueues_frames(client, pipeline):
    with client.websocket_connect("/ws/stream") as websocket:
        websocket.send_json({"frameId": 7, "imageData": "%%%"})  # ignored
        websocket.send_json({"frameId": 8, "imageData": IMAGE_DATA, "captureTs": 1})
        wait_for(lambda: pipeline.frames_received == 1)

    frame = pipeline.queue.try_dequeue_latest()
    assert frame.frame_id == 8


def test_results_websocket_trajectory_per_viewer(client, pipeline):
    broadcaster = client.app.state.broadcaster

    with client.websocket_connect("/ws/results?trajectory=true") as with_history, \
            client.websocket_connect("/ws/results") as plain:
        wait_for(lambda: broadcaster.client_count == 2)

        for i in range(3):
            pipeline.on_frame(i, b"x", i * 33)
            pipeline.tick()

        records = [with_history.receive_json() for _ in range(3)]
        plain_records = [plain.receive_json() for _ in range(3)]

    (entry,) = records[-1]["detections"]
    assert entry["trackId"] == 1
    assert len(entry["trajectory"]) == 3
    assert entry["trajectory"][-1] == dict(zip(("xmin", "ymin", "xmax", "ymax"), PERSON_BOX))

    (plain_entry,) = plain_records[-1]["detections"]
    assert "trajectory" not in plain_entry


def test_results_websocket_defaults_to_pipeline_trajectory(tracker_config, inference_config):
    pipeline = StreamPipeline(
        FixedDetector([make_detection(PERSON_BOX)]),
        tracking_enabled=True,
        include_trajectory=True,
        tracker_config=tracker_config,
        inference_config=inference_config,
    )
    app = create_app(pipeline=pipeline, start_pipeline=False)

    with TestClient(app) as test_client:
        broadcaster = test_client.app.state.broadcaster
        assert broadcaster.include_trajectory

        with test_client.websocket_connect("/ws/results") as websocket:
            wait_for(lambda: broadcaster.client_count == 1)
            for i in range(3):
                pipeline.on_frame(i, b"x", i * 33)
                pipeline.tick()
            records = [websocket.receive_json() for _ in range(3)]

    assert "trajectory" in records[-1]["detections"][0]


def test_stream_websocket_ignores_non_json_messages(client, pipeline):
    with client.websocket_connect("/ws/stream") as websocket:
        websocket.send_text("not json")
        websocket.send_text("[1, 2, 3]")
        websocket.send_json({"frameId": 9, "imageData": IMAGE_DATA, "captureTs": 1})
        wait_for(lambda: pipeline.frames_received == 1)

    assert pipeline.queue.try_dequeue_latest().frame_id == 9
