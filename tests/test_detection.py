import base64

import httpx
import pytest

from livedetect.config import DetectionConfig
from livedetect.detection import (
    MockDetector,
    RawDetection,
    RemoteDetector,
    create_detector,
    decode_image_data,
    encode_image_data,
    validate_detection,
)
from livedetect.errors import (
    ConfigError,
    DetectionError,
    DetectorTimeoutError,
    FrameDecodeError,
    MalformedDetectionError,
)

from conftest import make_box, make_detection

REMOTE_URL = "http://detector.test/detect"


# =============================================================================
# Models
# =============================================================================


def test_box_properties():
    box = make_box(0.1, 0.2, 0.5, 0.6)
    assert box.width == pytest.approx(0.4)
    assert box.height == pytest.approx(0.4)
    assert box.area == pytest.approx(0.16)
    assert box.center == pytest.approx((0.3, 0.4))
    assert box.top_left == (0.1, 0.2)
    assert box.shifted(0.1, -0.1).to_dict() == pytest.approx(
        {"xmin": 0.2, "ymin": 0.1, "xmax": 0.6, "ymax": 0.5}
    )


@pytest.mark.parametrize(
    "coords, expected",
    [
        ((0.0, 0.0, 1.0, 1.0), True),
        ((0.5, 0.1, 0.5, 0.4), False),  # zero width
        ((0.6, 0.1, 0.2, 0.4), False),
        ((-0.1, 0.1, 0.2, 0.4), False),
        ((0.1, 0.1, 0.2, float("nan")), False),
    ],
)
def test_box_is_normalized(coords, expected):
    assert make_box(*coords).is_normalized() is expected


def test_from_dict_accepts_both_shapes():
    bbox = RawDetection.from_dict({"label": "person", "score": 0.7, "bbox": [0.1, 0.2, 0.3, 0.4]})
    flat = RawDetection.from_dict(
        {"label": "person", "score": 0.7, "xmin": 0.1, "ymin": 0.2, "xmax": 0.3, "ymax": 0.4}
    )
    assert bbox == flat
    assert bbox.to_dict() == {
        "label": "person",
        "score": 0.7,
        "xmin": 0.1,
        "ymin": 0.2,
        "xmax": 0.3,
        "ymax": 0.4,
    }


@pytest.mark.parametrize(
    "data",
    [
        {"label": "person", "score": 0.7},
        {"label": "person", "score": "high", "bbox": [0.1, 0.2, 0.3, 0.4]},
        {"label": "person", "score": 0.7, "bbox": [0.1, 0.2]},
        "not a dict",
    ],
)
def test_from_dict_rejects_unparseable(data):
    with pytest.raises(MalformedDetectionError):
        RawDetection.from_dict(data)


def test_from_dict_missing_label_is_caught_by_validation():
    det = RawDetection.from_dict({"score": 0.7, "bbox": [0.1, 0.2, 0.3, 0.4]})
    assert det.label == ""
    with pytest.raises(MalformedDetectionError):
        validate_detection(det)


def test_validate_detection():
    det = make_detection((0.1, 0.1, 0.4, 0.4))
    assert validate_detection(det) is det

    with pytest.raises(MalformedDetectionError):
        validate_detection(make_detection((0.1, 0.1, 0.4, 0.4), score=-0.1))


# =============================================================================
# Image data
# =============================================================================


def test_decode_data_url_and_bare_base64():
    payload = b"\xff\xd8\xff\xe0fake-jpeg"
    encoded = base64.b64encode(payload).decode()

    assert decode_image_data(f"data:image/jpeg;base64,{encoded}") == payload
    assert decode_image_data(encoded) == payload
    assert decode_image_data(encode_image_data(payload)) == payload


@pytest.mark.parametrize("data", ["", "data:image/jpeg;base64,!!!not-base64!!!", "data:image/jpeg;base64,"])
def test_decode_rejects_bad_input(data):
    with pytest.raises(FrameDecodeError):
        decode_image_data(data)


# =============================================================================
# Detectors
# =============================================================================


def test_mock_detector_output_is_valid_and_seeded():
    a = MockDetector(seed=3)
    b = MockDetector(seed=3)

    for _ in range(20):
        detections = a.detect(b"")
        assert 1 <= len(detections) <= 3
        for det in detections:
            validate_detection(det)
            assert 0.6 <= det.score < 0.9
        assert detections == b.detect(b"")

    assert a.get_stats()["calls"] == 20


def remote(handler) -> RemoteDetector:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RemoteDetector(DetectionConfig(remote_url=REMOTE_URL, remote_timeout_s=0.5), client=client)


def test_remote_detector_parses_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.read()
        return httpx.Response(
            200,
            json={"detections": [{"label": "dog", "score": 0.8, "bbox": [0.1, 0.1, 0.5, 0.5]}]},
        )

    detector = remote(handler)
    detections = detector.detect(b"jpeg")

    assert seen["url"] == REMOTE_URL
    assert b"data:image/jpeg;base64," in seen["body"]
    assert detections == [make_detection((0.1, 0.1, 0.5, 0.5), label="dog", score=0.8)]
    assert detector.get_stats()["requests"] == 1


def test_remote_detector_http_error():
    detector = remote(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(DetectionError):
        detector.detect(b"jpeg")
    assert detector.errors == 1


def test_remote_detector_bad_payload():
    detector = remote(lambda request: httpx.Response(200, json={"detections": [{"label": "x"}]}))
    with pytest.raises(DetectionError):
        detector.detect(b"jpeg")


def test_remote_detector_timeout():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(DetectorTimeoutError):
        remote(handler).detect(b"jpeg")


def test_remote_detector_unreachable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DetectionError):
        remote(handler).detect(b"jpeg")


def test_remote_detector_requires_url():
    with pytest.raises(DetectionError):
        RemoteDetector(DetectionConfig(remote_url=None))


def test_factory():
    assert isinstance(create_detector("mock"), MockDetector)
    with pytest.raises(ConfigError):
        create_detector("wasm")


def test_yolo_detector_missing_weights(tmp_path):
    pytest.importorskip("ultralytics")
    from livedetect.detection.yolo_detector import YOLODetector

    with pytest.raises(FileNotFoundError):
        YOLODetector(DetectionConfig(), weights_path=tmp_path / "missing.pt")
