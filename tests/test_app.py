import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import json_body, make_client
from studio.app import Studio, app, get_studio
from studio.uploader import AssetUploader


class FakeLeonardo:
    """MockTransport handler that plays the Leonardo REST API."""

    def __init__(self, final_status="COMPLETE"):
        self.final_status = final_status
        self.submitted = []
        self.polls = 0

    def __call__(self, request: httpx.Request):
        path = request.url.path
        if path.endswith("/init-image"):
            return httpx.Response(200, json={"uploadInitImage": {
                "id": "asset-1", "url": "https://bucket.test/", "fields": '{"key": "k"}', "key": "k",
            }})
        if request.method == "POST" and path.endswith("/generations"):
            self.submitted.append(json_body(request))
            return httpx.Response(200, json={"sdGenerationJob": {"generationId": "g1"}})
        if path.endswith("/generations/g1"):
            self.polls += 1
            if self.polls == 1:
                return httpx.Response(200, json={"generations_by_pk": {"id": "g1", "status": "PENDING"}})
            return httpx.Response(200, json={"generations_by_pk": {
                "id": "g1",
                "status": self.final_status,
                "generated_images": [{"id": "i1", "url": "https://cdn.test/out.png"}],
            }})
        return httpx.Response(404, text="unexpected")


class NoPushUploader(AssetUploader):
    async def push_asset(self, ticket, data, filename="image", content_type=None):
        self.pushed = getattr(self, "pushed", []) + [ticket.id]


@pytest.fixture
def leonardo():
    return FakeLeonardo()


@pytest.fixture
def api(leonardo):
    client = make_client(leonardo)
    studio = Studio(client, uploader=NoPushUploader(client), poll_interval=0, max_attempts=3)
    app.dependency_overrides[get_studio] = lambda: studio
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def stage_image(api, model="Leonardo Phoenix 1.0", filename="ref.png"):
    r = api.post(
        "/guidance-images",
        data={"model": model},
        files={"file": (filename, b"\x89PNG", "image/png")},
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_models_lists_image_generation_only(api):
    r = api.get("/models")
    assert r.status_code == 200
    names = [m["name"] for m in r.json()]
    assert "Leonardo Phoenix 1.0" in names
    assert "MOTION2" not in names


def test_styles(api):
    data = api.get("/styles").json()
    assert "Sketch Bw" in data["styles"]
    assert data["aspect_ratios"]["16:9"] == {"width": 1456, "height": 720}


def test_guidance_image_upload_and_update(api):
    staged = stage_image(api)
    assert staged["status"] == "uploading"
    assert staged["guidance_type"] == "Style Reference"

    image = api.get(f"/guidance-images/{staged['temp_id']}").json()
    assert image["status"] == "ready"
    assert image["asset_id"] == "asset-1"

    r = api.patch(f"/guidance-images/{staged['temp_id']}", json={"strength_type": "Ultra"})
    assert r.json()["strength"] == {"kind": "named", "strength_type": "Ultra"}

    r = api.patch(f"/guidance-images/{staged['temp_id']}", json={"guidance_type": "Character Reference"})
    assert r.json()["strength"] == {"kind": "named", "strength_type": "Mid"}

    r = api.patch(f"/guidance-images/{staged['temp_id']}", json={"guidance_type": "Depth"})
    assert r.status_code == 400


def test_guidance_image_rejects_bad_file(api):
    r = api.post("/guidance-images", data={"model": "SDXL 1.0"}, files={"file": ("notes.txt", b"hi", "text/plain")})
    assert r.status_code == 400


def test_delete_guidance_image(api):
    staged = stage_image(api)
    assert api.delete(f"/guidance-images/{staged['temp_id']}").status_code == 200
    assert api.get(f"/guidance-images/{staged['temp_id']}").status_code == 404


def test_generate_and_poll_result(api, leonardo):
    staged = stage_image(api)
    api.patch(f"/guidance-images/{staged['temp_id']}", json={"guidance_type": "Character Reference"})

    r = api.post("/generate", json={
        "prompt": "A majestic lion in a futuristic city",
        "model": "Leonardo Phoenix 1.0",
        "style": "Sketch Bw",
        "guidance_image_ids": [staged["temp_id"]],
    })
    assert r.status_code == 200, r.text
    job_id = r.json()["job_id"]

    result = api.get(f"/result/{job_id}").json()
    assert result["status"] == "done"
    assert result["image_url"] == "https://cdn.test/out.png"
    assert result["extra"]["generation_id"] == "g1"

    [body] = leonardo.submitted
    assert body["modelId"] == "de7d3faf-762f-48e0-b3b7-9d0ac3a3fcf3"
    assert body["alchemy"] is True
    assert body["presetStyle"] == "SKETCH_BW"
    assert body["contrast"] == 2.5
    assert body["controlnets"] == [{
        "initImageId": "asset-1",
        "initImageType": "UPLOADED",
        "preprocessorId": 397,
        "strengthType": "Mid",
    }]


def test_generate_failure_is_reported(api, leonardo):
    leonardo.final_status = "FAILED"
    job_id = api.post("/generate", json={"prompt": "x", "model": "SDXL 1.0"}).json()["job_id"]

    result = api.get(f"/result/{job_id}").json()
    assert result["status"] == "error"
    assert "failed" in result["error_message"]


def test_generate_rejects_unsupported_guidance_type(api, leonardo):
    staged = stage_image(api)
    api.patch(f"/guidance-images/{staged['temp_id']}", json={"guidance_type": "Character Reference"})

    r = api.post("/generate", json={"prompt": "x", "model": "Lucid Origin", "guidance_image_ids": [staged["temp_id"]]})
    assert r.status_code == 400
    assert "Character Reference" in r.json()["detail"]
    assert leonardo.submitted == []


def test_generate_validation(api):
    assert api.post("/generate", json={"prompt": "  ", "model": "SDXL 1.0"}).status_code == 400
    assert api.post("/generate", json={"prompt": "x", "model": "Nope"}).status_code == 400
    assert api.post("/generate", json={"prompt": "x", "model": "SDXL 1.0", "guidance_image_ids": ["missing"]}).status_code == 404


def test_unknown_job(api):
    assert api.get("/result/nope").status_code == 404


@pytest.mark.parametrize("model", ["MOTION2", "Nope XL"])
def test_guidance_image_rejected_for_model_without_guidance(api, model):
    r = api.post("/guidance-images", data={"model": model}, files={"file": ("ref.png", b"\x89PNG", "image/png")})
    assert r.status_code == 400
