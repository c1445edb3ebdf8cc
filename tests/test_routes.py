"""
End-to-end tests of the HTTP surface against the in-memory store.
"""
import base64

import httpx
from prometheus_client import CollectorRegistry
import pytest

from content_hub.errors import CollaboratorFailure
from content_hub.main import create_app

from conftest import PNG_BYTES, TENANT_A, TENANT_B, make_brief_doc

GUIDE_A = "65a000000000000000000001"
GUIDE_B = "65a000000000000000000009"
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")
PNG_URI = f"data:image/png;base64,{PNG_B64}"


# Authentication


@pytest.mark.asyncio
async def test_login_and_use_token(client, user_in_db, seeded):
    response = await client.post("/auth/login", json={"email": "editor@example.com", "password": "correct horse battery"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"] == {
        "id": "64b7f0c2a1b2c3d4e5f600aa",
        "email": "editor@example.com",
        "role": "client",
        "clientId": TENANT_A,
    }
    assert body["token_type"] == "bearer"

    headers = {"Authorization": f"Bearer {body['access_token']}"}
    me = await client.get("/auth/me", headers=headers)
    assert me.json()["user"]["clientId"] == TENANT_A
    assert (await client.get(f"/client/{TENANT_A}", headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_login_errors(client, user_in_db):
    missing = await client.post("/auth/login", json={"email": "editor@example.com"})
    assert missing.status_code == 400
    assert missing.json() == {"success": False, "error": "Email and password required"}

    wrong = await client.post("/auth/login", json={"email": "editor@example.com", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "Invalid email or password"


# Dashboard


@pytest.mark.asyncio
async def test_client_data_shape(client, auth_headers, seeded):
    seeded.briefs.docs.append(make_brief_doc(TENANT_A, "nodomain0001", domainId=None))

    response = await client.get(f"/client/{TENANT_A}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert [d["id"] for d in data["domains"]] == ["d1", "d2"]
    [guide] = data["brandGuides"]
    assert guide["domainId"] == "d1"
    assert guide["stylePrompt"] == "Flat pastel illustrations"
    assert guide["styleImageUrl"] is None
    [brief] = data["briefs"]
    assert brief["id"] == "nodomain0001"
    assert brief["domainId"] == "d1"
    assert brief["domainInferred"] is True
    assert brief["contentType"] == "Blog"
    assert "heroImage" not in brief


@pytest.mark.asyncio
async def test_client_data_for_another_tenant_is_unauthorized(client, auth_headers, seeded):
    response = await client.get(f"/client/{TENANT_B}", headers=auth_headers)

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Access denied"}


@pytest.mark.asyncio
async def test_client_data_malformed_id(client, auth_headers, seeded):
    response = await client.get("/client/bad$id", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid clientId"


@pytest.mark.asyncio
async def test_missing_and_expired_tokens(client, expired_headers, seeded):
    assert (await client.get(f"/client/{TENANT_A}")).status_code == 401

    expired = await client.get(f"/client/{TENANT_A}", headers=expired_headers)
    assert expired.status_code == 401
    assert expired.json()["error"] == "Session expired"


# Brand guides


@pytest.mark.asyncio
async def test_brand_guide_image_upload(client, auth_headers, seeded):
    response = await client.post(
        f"/brand-guide/{GUIDE_A}/image",
        json={"styleImageData": PNG_B64, "styleImageMimeType": "image/png"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Brand guide image updated successfully"}

    guide = (await client.get("/brand-guides/d1", headers=auth_headers)).json()["brandGuide"]
    assert guide["styleImageUrl"] == PNG_URI
    assert guide["styleImageMimeType"] == "image/png"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"styleImageData": "not base64!!", "styleImageMimeType": "image/png"},
        {"styleImageData": PNG_B64, "styleImageMimeType": "application/pdf"},
        {"styleImageMimeType": "image/png"},
    ],
)
async def test_brand_guide_image_rejects_bad_payload(client, auth_headers, seeded, payload):
    response = await client.post(f"/brand-guide/{GUIDE_A}/image", json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert "styleImageData" not in seeded.brand_guides.docs[0]


@pytest.mark.asyncio
async def test_brand_guide_image_of_another_tenant_is_not_found(client, auth_headers, seeded):
    response = await client.post(
        f"/brand-guide/{GUIDE_B}/image", json={"styleImageData": PNG_B64, "styleImageMimeType": "image/png"}, headers=auth_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_brand_guide(client, auth_headers, seeded):
    response = await client.patch("/brand-guides/d1", json={"toneOfVoice": "Playful"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["brandGuide"]["toneOfVoice"] == "Playful"
    assert (await client.get("/brand-guides/d2", headers=auth_headers)).status_code == 404


# Briefs


@pytest.mark.asyncio
async def test_submit_and_publish_brief(client, auth_headers, seeded, workflow):
    created = await client.post(
        "/briefs", json={"domainId": "d1", "title": "Launch Post", "brief": "Announce the launch"}, headers=auth_headers
    )

    assert created.status_code == 201
    brief = created.json()["brief"]
    assert (brief["status"], brief["domainId"], brief["clientId"]) == ("Draft", "d1", TENANT_A)

    published = await client.post(f"/brief/{brief['id']}/publish", headers=auth_headers)
    assert published.status_code == 200
    assert published.json()["brief"]["status"] == "Published"
    workflow.publish.assert_awaited_once()


@pytest.mark.asyncio
async def test_submit_brief_validation(client, auth_headers, seeded):
    response = await client.post("/briefs", json={"domainId": "d1", "title": "", "brief": "x"}, headers=auth_headers)
    assert response.status_code == 400
    response = await client.post("/briefs", json={"domainId": "d9", "title": "T", "brief": "x"}, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_publish_failure_is_retryable_and_changes_nothing(client, auth_headers, seeded, workflow):
    seeded.briefs.docs.append(make_brief_doc(TENANT_A, "draft0000001"))
    workflow.publish.side_effect = CollaboratorFailure("Workflow publish failed. Please try again.")

    response = await client.post("/brief/draft0000001/publish", headers=auth_headers)

    assert response.status_code == 502
    assert response.json() == {
        "success": False,
        "error": "Workflow publish failed. Please try again.",
        "retryable": True,
    }
    brief = (await client.get("/brief/draft0000001", headers=auth_headers)).json()["brief"]
    assert brief["status"] == "Draft"


@pytest.mark.asyncio
async def test_schedule_brief(client, auth_headers, seeded):
    seeded.briefs.docs.append(make_brief_doc(TENANT_A, "draft0000001"))

    response = await client.post(
        "/brief/draft0000001/schedule", json={"scheduledAt": "2030-03-01T10:00:00Z"}, headers=auth_headers
    )
    assert response.status_code == 200
    brief = response.json()["brief"]
    assert brief["status"] == "Scheduled"
    assert brief["scheduledAt"].startswith("2030-03-01T10:00:00")

    again = await client.post("/brief/draft0000001/schedule", json={"scheduledAt": "2030-04-01T10:00:00Z"}, headers=auth_headers)
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_locked_brief_edits(client, auth_headers, seeded):
    seeded.briefs.docs.append(make_brief_doc(TENANT_A, "published01", status="Published"))

    locked = await client.patch("/brief/published01", json={"content": "Rewritten"}, headers=auth_headers)
    assert locked.status_code == 409
    assert locked.json()["success"] is False

    renamed = await client.patch("/brief/published01", json={"title": "New title"}, headers=auth_headers)
    assert renamed.status_code == 200
    assert renamed.json()["brief"]["title"] == "New title"
    assert renamed.json()["brief"]["content"] == "Initial draft"


@pytest.mark.asyncio
async def test_update_brief_rejects_unknown_fields(client, auth_headers, seeded):
    seeded.briefs.docs.append(make_brief_doc(TENANT_A, "draft0000001"))
    response = await client.patch("/brief/draft0000001", json={"status": "Published"}, headers=auth_headers)

    assert response.status_code == 400
    assert seeded.briefs.docs[-1]["status"] == "Draft"


@pytest.mark.asyncio
async def test_delete_brief_twice(client, auth_headers, seeded):
    seeded.briefs.docs.append(make_brief_doc(TENANT_A, "draft0000001"))

    first = await client.delete("/brief/draft0000001", headers=auth_headers)
    assert first.status_code == 200
    assert first.json() == {"success": True, "message": "Brief deleted successfully"}

    second = await client.delete("/brief/draft0000001", headers=auth_headers)
    assert second.status_code == 404


@pytest.mark.asyncio
async def test_brief_of_another_tenant_is_not_found(client, auth_headers, seeded):
    assert (await client.get("/brief/tenantbbrief", headers=auth_headers)).status_code == 404
    assert (await client.delete("/brief/tenantbbrief", headers=auth_headers)).status_code == 404
    assert len(seeded.briefs.docs) == 1


@pytest.mark.asyncio
async def test_generate_hero_image(client, auth_headers, seeded, images):
    seeded.briefs.docs.append(make_brief_doc(TENANT_A, "published01", status="Published"))
    images.generate.return_value = PNG_URI

    response = await client.post("/brief/published01/hero-image", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["brief"]["heroImageUrl"] == PNG_URI
    assert seeded.briefs.docs[-1]["heroImageData"] == PNG_BYTES


@pytest.mark.asyncio
async def test_hero_image_failure_is_bad_gateway(client, auth_headers, seeded, images):
    seeded.briefs.docs.append(make_brief_doc(TENANT_A, "draft0000001"))
    images.generate.side_effect = CollaboratorFailure("Image generation failed. Please try again.")

    response = await client.post("/brief/draft0000001/hero-image", json={"prompt": "A rocket"}, headers=auth_headers)

    assert response.status_code == 502
    assert response.json()["retryable"] is True


# Transport


@pytest.mark.asyncio
async def test_health(client, db_manager):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"

    db_manager.healthy = False
    degraded = await client.get("/health")
    assert degraded.status_code == 200
    assert degraded.json()["database"] == "unavailable"


@pytest.mark.asyncio
async def test_oversized_body_is_rejected(client, auth_headers, seeded):
    payload = {"styleImageData": "A" * (70 * 1024), "styleImageMimeType": "image/png"}

    response = await client.post(f"/brand-guide/{GUIDE_A}/image", json=payload, headers=auth_headers)

    assert response.status_code == 413
    assert response.json()["success"] is False
    assert "styleImageData" not in seeded.brand_guides.docs[0]


@pytest.mark.asyncio
async def test_unknown_route_uses_error_shape(client):
    response = await client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_chunked_oversized_body_stops_reading_early(client, auth_headers, seeded):
    sent = []

    async def upload():
        for _ in range(50):
            sent.append(16 * 1024)
            yield b"A" * (16 * 1024)

    response = await client.post(f"/brand-guide/{GUIDE_A}/image", content=upload(), headers=auth_headers)

    assert response.status_code == 413
    assert response.json() == {"success": False, "error": "Request body exceeds the 64KB limit"}
    assert len(sent) < 50
    assert "styleImageData" not in seeded.brand_guides.docs[0]


@pytest.mark.asyncio
async def test_chunked_body_within_limit_is_accepted(client, auth_headers, seeded):
    body = ('{"styleImageData": "%s", "styleImageMimeType": "image/png"}' % PNG_B64).encode("ascii")

    async def upload():
        yield body[:10]
        yield body[10:]

    response = await client.post(
        f"/brand-guide/{GUIDE_A}/image",
        content=upload(),
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert seeded.brand_guides.docs[0]["styleImageData"] == PNG_BYTES


@pytest.mark.asyncio
async def test_several_apps_in_one_process(settings, db_manager, workflow, images):
    statuses = []
    for _ in range(2):
        app = create_app(
            settings,
            db_manager=db_manager,
            workflow_client=workflow,
            image_client=images,
            metrics_registry=CollectorRegistry(),
        )
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
            statuses.append((await http_client.get("/health")).status_code)
            statuses.append((await http_client.get("/metrics")).status_code)

    assert statuses == [200, 200, 200, 200]
