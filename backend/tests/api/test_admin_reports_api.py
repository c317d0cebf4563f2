import pytest

from learnboard.interactions.domain.models import ReportReason


@pytest.fixture
def reported_post(seed):
    post = seed.add_post("author", title="flagged")
    reporters = [f"r{index}" for index in range(6)]
    for reporter in reporters:
        seed.add_user(reporter, username=reporter.upper())
    return post, reporters


async def _file_reports(api_client, headers, post, reporters):
    ids = []
    for reporter in reporters:
        response = await api_client.post(
            "/api/reports",
            json={"post_id": post.id, "reason": ReportReason.SPAM.value},
            headers=headers(reporter),
        )
        ids.append(response.json()["report"]["id"])
    return ids


@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/api/admin/reports"),
        ("GET", "/api/admin/reports/1"),
        ("POST", "/api/admin/reports/1/unsuppress"),
        ("POST", "/api/admin/reports/1/dismiss"),
    ],
)
@pytest.mark.asyncio
async def test_admin_surface_requires_admin_role(api_client, seed, headers, method, path):
    anonymous = await api_client.request(method, path)
    member = await api_client.request(method, path, headers=headers("alice"))

    assert anonymous.status_code == 401
    assert member.status_code == 403
    assert member.json()["detail"] == "forbidden"


@pytest.mark.asyncio
async def test_list_and_detail(api_client, headers, reported_post):
    post, reporters = reported_post
    ids = await _file_reports(api_client, headers, post, reporters[:3])

    listing = await api_client.get("/api/admin/reports", params={"limit": 2}, headers=headers("admin", "admin"))
    assert listing.status_code == 200
    page = listing.json()
    assert page["has_more"] is True
    assert [item["report"]["id"] for item in page["items"]] == [ids[2], ids[1]]
    assert page["items"][0]["total_reports"] == 3
    assert page["items"][0]["reporter_username"] == "R2"
    assert page["items"][0]["item"]["title"] == "flagged"

    clamped = await api_client.get("/api/admin/reports", params={"limit": 1000}, headers=headers("admin", "admin"))
    assert clamped.json()["limit"] == 100

    detail = await api_client.get(f"/api/admin/reports/{ids[0]}", headers=headers("admin", "admin"))
    assert detail.status_code == 200
    assert detail.json()["report"]["id"] == ids[0]
    assert len(detail.json()["all_reports"]) == 3

    missing = await api_client.get("/api/admin/reports/999", headers=headers("admin", "admin"))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_unsuppress_restores_visibility_and_keeps_reports(api_client, headers, reported_post):
    post, reporters = reported_post
    ids = await _file_reports(api_client, headers, post, reporters[:5])
    assert (await api_client.get(f"/api/posts/{post.id}")).status_code == 404

    response = await api_client.post(f"/api/admin/reports/{ids[0]}/unsuppress", headers=headers("admin", "admin"))

    assert response.status_code == 200
    assert response.json()["outcome"] == "ok"
    assert response.json()["target_id"] == post.id
    assert (await api_client.get(f"/api/posts/{post.id}")).status_code == 200
    detail = await api_client.get(f"/api/admin/reports/{ids[0]}", headers=headers("admin", "admin"))
    assert detail.json()["total_reports"] == 5


@pytest.mark.asyncio
async def test_dismiss_deletes_all_reports_on_the_item(api_client, headers, reported_post):
    post, reporters = reported_post
    ids = await _file_reports(api_client, headers, post, reporters)

    response = await api_client.post(f"/api/admin/reports/{ids[2]}/dismiss", headers=headers("admin", "admin"))

    assert response.status_code == 200
    assert response.json()["deleted_reports"] == 6
    assert response.json()["suppressed"] is False
    assert (await api_client.get(f"/api/posts/{post.id}")).status_code == 200
    listing = await api_client.get("/api/admin/reports", headers=headers("admin", "admin"))
    assert listing.json()["items"] == []
    again = await api_client.post(f"/api/admin/reports/{ids[2]}/dismiss", headers=headers("admin", "admin"))
    assert again.status_code == 404
