import httpx
import pytest

from catalog_admin.main import create_app


@pytest.fixture
async def client(settings, store, uploader):
    app = create_app(settings=settings, store=store, uploader=uploader)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.state.workspaces.close_all()


async def open_workspace(client) -> str:
    response = await client.post("/api/image-sets/workspaces")
    assert response.status_code == 200
    return response.json()["id"]


async def test_full_editing_round(client, catalog, store):
    workspace_id = await open_workspace(client)
    base = f"/api/image-sets/workspaces/{workspace_id}"

    response = await client.post(f"{base}/product", json={"product_id": catalog["product"]["id"]})
    assert response.status_code == 200
    assert [group["color"] for group in response.json()] == ["Red", "Blue"]
    assert response.json()[0]["hex_code"] == "#FF0000"

    response = await client.post(f"{base}/color", json={"color": "Red"})
    assert response.status_code == 200
    assert response.json()["variation_ids"] == catalog["red_ids"]
    assert response.json()["entries"] == []

    response = await client.post(
        f"{base}/images",
        files=[
            ("files", ("front.jpg", b"\xff\xd8front", "image/jpeg")),
            ("files", ("back.png", b"\x89PNGback", "image/png")),
            ("files", ("notes.txt", b"hello", "text/plain")),
        ],
    )
    assert response.status_code == 200
    body = response.json()
    assert [entry["filename"] for entry in body["accepted"]] == ["front.jpg", "back.png"]
    assert body["rejected"] == [{"filename": "notes.txt", "reason": "notes.txt is not an image"}]
    assert body["truncated"] == []
    assert body["accepted"][0]["is_primary"]

    preview_url = body["accepted"][0]["url"]
    assert preview_url.startswith("preview://")
    response = await client.get(f"{base}/previews/{preview_url[len('preview://'):]}")
    assert response.status_code == 200
    assert response.content == b"\xff\xd8front"

    response = await client.post(f"{base}/images/reorder", json={"from_index": 1, "to_index": 0})
    assert [entry["filename"] for entry in response.json()["entries"]] == ["back.png", "front.jpg"]

    response = await client.post(f"{base}/commit")
    assert response.status_code == 200
    result = response.json()
    assert result["uploaded"] == 2
    assert result["inserted_rows"] == 4
    assert result["entries"][0]["url"].endswith("_back.png")
    assert result["entries"][0]["is_primary"]
    assert not any(entry["pending"] for entry in result["entries"])

    rows = await store.select("images", {"variation_id": catalog["red_ids"]})
    assert len(rows) == 4

    response = await client.delete(base)
    assert response.status_code == 200
    response = await client.get(base)
    assert response.status_code == 404


async def test_commit_without_selection_is_a_notification(client):
    workspace_id = await open_workspace(client)

    response = await client.post(f"/api/image-sets/workspaces/{workspace_id}/commit")

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "title": "Nothing selected",
        "message": "Select a product and a color first",
    }


async def test_add_images_requires_color(client, catalog):
    workspace_id = await open_workspace(client)
    base = f"/api/image-sets/workspaces/{workspace_id}"
    await client.post(f"{base}/product", json={"product_id": catalog["product"]["id"]})

    response = await client.post(
        f"{base}/images", files=[("files", ("a.jpg", b"\xff", "image/jpeg"))]
    )

    assert response.status_code == 409
    assert response.json()["success"] is False


async def test_unknown_product_and_workspace(client, catalog):
    workspace_id = await open_workspace(client)

    response = await client.post(
        f"/api/image-sets/workspaces/{workspace_id}/product", json={"product_id": 999}
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Product not found"

    response = await client.get("/api/image-sets/workspaces/missing")
    assert response.status_code == 404
    assert response.json()["message"] == "Workspace not found"


async def test_upload_failure_is_reported(client, catalog, uploader):
    uploader.fail_on.add("bad.jpg")
    workspace_id = await open_workspace(client)
    base = f"/api/image-sets/workspaces/{workspace_id}"
    await client.post(f"{base}/product", json={"product_id": catalog["product"]["id"]})
    await client.post(f"{base}/color", json={"color": "Blue"})
    await client.post(
        f"{base}/images",
        files=[
            ("files", ("good.jpg", b"\xff", "image/jpeg")),
            ("files", ("bad.jpg", b"\xff", "image/jpeg")),
        ],
    )

    response = await client.post(f"{base}/commit")

    assert response.status_code == 502
    assert response.json()["message"] == "1 of 2 image upload(s) failed"
    state = (await client.get(f"{base}/images")).json()
    assert [entry["pending"] for entry in state["entries"]] == [False, True]


async def test_reorder_out_of_range(client, catalog):
    workspace_id = await open_workspace(client)
    base = f"/api/image-sets/workspaces/{workspace_id}"
    await client.post(f"{base}/product", json={"product_id": catalog["product"]["id"]})
    await client.post(f"{base}/color", json={"color": "Red"})

    response = await client.post(f"{base}/images/reorder", json={"from_index": 0, "to_index": 3})

    assert response.status_code == 422
    assert response.json()["title"] == "Validation error"
