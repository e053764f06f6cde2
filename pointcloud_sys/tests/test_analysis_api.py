# tests/test_analysis_api.py
from fastapi.testclient import TestClient
from pointcloud_sys.app.main import app

client = TestClient(app)


def test_detect_points():
    resp = client.post("/analysis/detect", json={
        "points": [[0, 0, 0], [1, 3, 0], [2, 0, 0]],
        "threshold": 1.0,
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["fit"] == {"m": 0.0, "b": 1.0}
    assert body["outliers"] == [[1.0, 3.0, 0.0]]
    assert body["inliers"] == [[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]]


def test_detect_constant_x_is_fit_undefined():
    resp = client.post("/analysis/detect", json={"points": [[5, 1, 0], [5, 2, 0], [5, 9, 0]]})
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "fit_undefined"


def test_detect_empty_is_insufficient_data():
    resp = client.post("/analysis/detect", json={"points": []})
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "insufficient_data"


def test_detect_rejects_negative_threshold():
    resp = client.post("/analysis/detect", json={"points": [[0, 0, 0]], "threshold": -1})
    assert resp.status_code == 422


def test_anomalies_replace_cloud_annotations(bump_ply):
    cloud_id = client.post(
        "/clouds", files={"file": ("bump.ply", bump_ply, "application/octet-stream")}
    ).json()["cloud_id"]

    resp = client.post(f"/analysis/{cloud_id}/anomalies", json={"threshold": 0.5, "color": "orange"})
    assert resp.status_code == 200
    annotations = resp.json()["annotations"]
    assert annotations[0] == {"type": "sphere", "position": [5.0, 12.0, 0.0], "radius": 0.02, "color": "orange"}
    assert annotations[1]["type"] == "line"
    assert len(annotations[1]["points"]) == 10

    resp = client.post(f"/analysis/{cloud_id}/anomalies", json={"threshold": 0.5, "connect_inliers": False})
    assert len(resp.json()["annotations"]) == 1
    assert client.get(f"/clouds/{cloud_id}/scene").json()["annotations"] == resp.json()["annotations"]


def test_anomalies_unknown_cloud():
    assert client.post("/analysis/nope/anomalies", json={}).status_code == 404
