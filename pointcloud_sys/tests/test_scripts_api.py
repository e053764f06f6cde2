# tests/test_scripts_api.py
from fastapi.testclient import TestClient
from pointcloud_sys.app.main import app

client = TestClient(app)


def make_cloud(data: bytes) -> str:
    resp = client.post("/clouds", files={"file": ("bump.ply", data, "application/octet-stream")})
    return resp.json()["cloud_id"]


def test_run_text_script(bump_ply):
    cloud_id = make_cloud(bump_ply)
    script = '[{"type": "analyze_anomalies", "threshold": 0.5, "color": "red"}, {"type": "sphere", "position": [0, 0, 0]}]'

    resp = client.post(f"/scripts/{cloud_id}/run", json={"script": script})
    assert resp.status_code == 200
    kinds = [a["type"] for a in resp.json()["annotations"]]
    assert kinds == ["sphere", "line", "sphere"]


def test_next_run_replaces_annotations(bump_ply):
    cloud_id = make_cloud(bump_ply)
    client.post(f"/scripts/{cloud_id}/run", json={"script": [{"type": "sphere", "position": [1, 1, 1]}]})

    resp = client.post(f"/scripts/{cloud_id}/run", json={"script": []})
    assert resp.json()["annotations"] == []
    assert client.get(f"/clouds/{cloud_id}/scene").json()["annotations"] == []


def test_invalid_script_is_400(bump_ply):
    cloud_id = make_cloud(bump_ply)
    resp = client.post(f"/scripts/{cloud_id}/run", json={"script": '{"type": "sphere"}'})
    assert resp.status_code == 400
    assert "JSON array" in resp.json()["detail"]


def test_degenerate_analysis_reports_warning():
    points = b"ply\nformat ascii 1.0\nelement vertex 3\nproperty float x\nproperty float y\nproperty float z\nend_header\n5 1 0\n5 2 0\n5 9 0\n"
    cloud_id = make_cloud(points)

    resp = client.post(f"/scripts/{cloud_id}/run", json={"script": [{"type": "analyze_anomalies"}]})
    assert resp.status_code == 200
    assert resp.json()["annotations"] == []
    assert "fit_undefined" in resp.json()["warnings"][0]
