from io import BytesIO

import pytest
from PIL import Image as PILImage

import api_server
from models.detection_box import DetectionBox
from models.errors import InferenceError

from conftest import FakeFaceDetector, FakeSegmentationProvider


@pytest.fixture
def providers(monkeypatch):
    seg = FakeSegmentationProvider(value=0)
    det = FakeFaceDetector()
    monkeypatch.setattr(api_server, "segmentation_service", seg)
    monkeypatch.setattr(api_server, "face_detection_service", det)
    return seg, det


@pytest.fixture
def client(providers):
    api_server.app.config["TESTING"] = True
    api_server.sessions.clear()
    with api_server.app.test_client() as client:
        yield client
    api_server.sessions.clear()


def _upload(client, size=(6, 4), color=(200, 100, 50), name="photo.png"):
    out = BytesIO()
    PILImage.new("RGB", size, color).save(out, format="PNG")
    out.seek(0)
    return client.post("/api/load-image", data={"image": (out, name)},
                       content_type="multipart/form-data")


@pytest.fixture
def session_id(client):
    return _upload(client).get_json()["session_id"]


def test_health(client):
    body = client.get("/api/health").get_json()
    assert body["status"] == "healthy"


def test_load_image_starts_a_session(client):
    res = _upload(client)
    body = res.get_json()
    assert res.status_code == 200
    assert (body["width"], body["height"]) == (6, 4)
    assert body["image"].startswith("data:image/png;base64,")
    assert body["history_length"] == 1
    assert not body["can_undo"]
    assert body["session_id"] in api_server.sessions


def test_load_image_rejects_unsupported_files(client):
    res = _upload(client, name="photo.gif")
    assert res.status_code == 400
    assert res.get_json()["error"] == "InvalidParameter"


def test_unknown_session_is_rejected(client):
    res = client.post("/api/undo", json={"session_id": "missing"})
    assert res.status_code == 400


def test_edit_flow(client, session_id):
    body = client.post("/api/adjust", json={"session_id": session_id, "brightness": 150}).get_json()
    assert body["params"]["brightness"] == 150
    assert body["history_length"] == 1

    body = client.post("/api/commit-adjustments", json={"session_id": session_id}).get_json()
    assert body["history_length"] == 2

    body = client.post("/api/filter", json={"session_id": session_id, "filter": "sepia"}).get_json()
    assert body["active_filter"] == "sepia"
    assert body["history_length"] == 3

    body = client.post("/api/undo", json={"session_id": session_id}).get_json()
    assert body["history_cursor"] == 1
    assert body["can_redo"]

    body = client.post("/api/redo", json={"session_id": session_id}).get_json()
    assert body["history_cursor"] == 2

    res = client.post("/api/redo", json={"session_id": session_id})
    assert res.status_code == 409
    assert res.get_json()["error"] == "NoOp"

    body = client.post("/api/reset", json={"session_id": session_id}).get_json()
    assert body["history_length"] == 1
    assert body["params"]["brightness"] == 100


def test_bad_parameters_map_to_400(client, session_id):
    res = client.post("/api/filter", json={"session_id": session_id, "filter": "posterize"})
    assert res.status_code == 400
    res = client.post("/api/filter", json={"session_id": session_id, "filter": "blur", "radius": -1})
    assert res.status_code == 400
    res = client.post("/api/adjust", json={"session_id": session_id, "contrast": "lots"})
    assert res.status_code == 400


def test_remove_background_and_export(client, session_id, providers):
    seg, _ = providers
    body = client.post("/api/remove-background",
                       json={"session_id": session_id, "background": [1, 2, 3, 255]}).get_json()
    assert seg.calls == 1
    assert body["history_length"] == 2

    res = client.get(f"/api/export/{session_id}")
    assert res.status_code == 200
    assert res.mimetype == "image/png"
    image = PILImage.open(BytesIO(res.data))
    assert image.size == (6, 4)
    assert image.convert("RGBA").getpixel((0, 0)) == (1, 2, 3, 255)


def test_inference_failure_maps_to_502(client, session_id, providers):
    seg, _ = providers
    seg.error = InferenceError("model returned garbage")
    res = client.post("/api/remove-background", json={"session_id": session_id})
    assert res.status_code == 502
    assert api_server.sessions[session_id].history.cursor == 0


def test_detect_faces_reports_boxes(client, session_id, providers):
    _, det = providers
    det.boxes = [DetectionBox((1, 1), (4, 3), score=0.8)]
    body = client.post("/api/detect-faces", json={"session_id": session_id}).get_json()
    assert body["faces"] == [{"top_left": [1, 1], "bottom_right": [4, 3], "score": 0.8}]
    assert body["history_length"] == 2


def test_detect_faces_without_faces(client, session_id):
    body = client.post("/api/detect-faces", json={"session_id": session_id}).get_json()
    assert body["faces"] == []
    assert body["message"] == "No faces detected in the image"
    assert body["history_length"] == 1


def test_export_unknown_session(client):
    assert client.get("/api/export/nope").status_code == 404


def test_clear_session(client, session_id):
    body = client.post("/api/clear-session", json={"session_id": session_id}).get_json()
    assert body["success"]
    assert session_id not in api_server.sessions
