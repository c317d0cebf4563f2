import pytest

from learnboard.infra.jwt import encode_access
from learnboard.infra.rate_limit import DEFAULT_POLICIES, HOUR, InMemoryWindowStore, RateGovernor, RatePolicy
from learnboard.interactions.domain import container


@pytest.mark.asyncio
async def test_vote_lifecycle(api_client, seed, headers):
    post = seed.add_post("author")

    created = await api_client.post("/api/votes", json={"post_id": post.id}, headers=headers("alice"))
    assert created.status_code == 201
    body = created.json()
    assert body["outcome"] == "created"
    vote_id = body["vote"]["id"]
    assert body["vote"]["post_id"] == post.id

    summary = await api_client.get(f"/api/votes/posts/{post.id}", headers=headers("alice"))
    assert summary.json() == {
        "target": "post",
        "target_id": post.id,
        "count": 1,
        "has_voted": True,
        "user_vote_id": vote_id,
    }
    reputation = await api_client.get("/api/users/author/reputation")
    assert reputation.json() == {"user_id": "author", "reputation": 1}

    removed = await api_client.delete(f"/api/votes/{vote_id}", headers=headers("alice"))
    assert removed.status_code == 200
    assert removed.json() == {"outcome": "removed", "vote_id": vote_id}
    assert (await api_client.get("/api/users/author/reputation")).json()["reputation"] == 0


@pytest.mark.asyncio
async def test_vote_requires_caller(api_client, seed):
    post = seed.add_post("author")

    response = await api_client.post("/api/votes", json={"post_id": post.id})

    assert response.status_code == 401
    assert response.json()["detail"] == "invalid_token"
    assert "request_id" in response.json()


@pytest.mark.asyncio
async def test_vote_accepts_bearer_token(api_client, seed):
    post = seed.add_post("author")
    token = encode_access({"sub": "alice", "role": "user"})

    response = await api_client.post(
        "/api/votes",
        json={"post_id": post.id},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 201

    bad = await api_client.post(
        "/api/votes",
        json={"post_id": post.id},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert bad.status_code == 401


@pytest.mark.parametrize(
    "payload",
    [{}, {"post_id": 1, "comment_id": 1}, {"post_id": 0}],
)
@pytest.mark.asyncio
async def test_vote_target_shape_is_validated(api_client, seed, headers, payload):
    seed.add_post("author")

    response = await api_client.post("/api/votes", json=payload, headers=headers("alice"))

    assert response.status_code == 400
    assert response.json()["outcome"] == "invalid_target"


@pytest.mark.asyncio
async def test_vote_outcomes_map_to_status_codes(api_client, seed, headers):
    post = seed.add_post("author")
    await api_client.post("/api/votes", json={"post_id": post.id}, headers=headers("alice"))

    duplicate = await api_client.post("/api/votes", json={"post_id": post.id}, headers=headers("alice"))
    own = await api_client.post("/api/votes", json={"post_id": post.id}, headers=headers("author"))
    missing = await api_client.post("/api/votes", json={"comment_id": 42}, headers=headers("alice"))

    assert (duplicate.status_code, duplicate.json()["outcome"]) == (409, "conflict")
    assert (own.status_code, own.json()["outcome"]) == (403, "self_interaction")
    assert (missing.status_code, missing.json()["outcome"]) == (404, "not_found")


@pytest.mark.asyncio
async def test_removing_someone_elses_vote_is_forbidden(api_client, seed, headers):
    post = seed.add_post("author")
    created = await api_client.post("/api/votes", json={"post_id": post.id}, headers=headers("alice"))

    response = await api_client.delete(f"/api/votes/{created.json()['vote']['id']}", headers=headers("bob"))

    assert response.status_code == 403
    assert response.json()["outcome"] == "forbidden"


@pytest.mark.asyncio
async def test_vote_budget_counts_only_successful_requests(api_client, seed, headers, clock):
    container.configure(
        governor=RateGovernor(
            InMemoryWindowStore(clock),
            policies={**DEFAULT_POLICIES, "vote": RatePolicy("vote", 2, HOUR)},
        )
    )
    posts = [seed.add_post("author", title=f"post {index}") for index in range(3)]

    first = await api_client.post("/api/votes", json={"post_id": posts[0].id}, headers=headers("alice"))
    assert first.headers["RateLimit-Remaining"] == "1"
    for _ in range(3):
        duplicate = await api_client.post("/api/votes", json={"post_id": posts[0].id}, headers=headers("alice"))
        assert duplicate.status_code == 409
    second = await api_client.post("/api/votes", json={"post_id": posts[1].id}, headers=headers("alice"))
    assert second.status_code == 201

    limited = await api_client.post("/api/votes", json={"post_id": posts[2].id}, headers=headers("alice"))
    assert limited.status_code == 429
    body = limited.json()
    assert body["outcome"] == "rate_limited"
    assert body["retry_after_seconds"] > 0
    assert limited.headers["Retry-After"] == str(body["retry_after_seconds"])

    # A bot identity is exempt; other users have their own budget
    bot = await api_client.post("/api/votes", json={"post_id": posts[2].id}, headers=headers("crawler", "bot"))
    assert bot.status_code == 201
    bob = await api_client.post("/api/votes", json={"post_id": posts[2].id}, headers=headers("bob"))
    assert bob.status_code == 201

    clock.advance(HOUR)
    retried = await api_client.post("/api/votes", json={"post_id": posts[2].id}, headers=headers("alice"))
    assert retried.status_code == 201


@pytest.mark.asyncio
async def test_vote_summary_for_missing_comment_is_not_found(api_client, seed):
    response = await api_client.get("/api/votes/comments/99")

    assert response.status_code == 404
