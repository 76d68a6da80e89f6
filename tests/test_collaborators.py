import pytest

UNRELATED = {
    "title": "Restaurant Ops",
    "roles_needed": ["Chef"],
    "tech_stack": ["Rust"],
    "project_details": {"experience_level": "expert", "timeline": "1 month", "team_size": 2},
}


@pytest.mark.asyncio
async def test_matches(client, owner_headers, collaborator_headers, make_project):
    good = await make_project(owner_headers)
    await make_project(owner_headers, **UNRELATED)
    await make_project(owner_headers, title="Draft", status="draft")

    res = await client.get("/api/v1/collaborators/matches", headers=collaborator_headers)
    assert res.status_code == 200
    data = res.json()

    # the draft and the unrelated project are left out
    assert data["total"] == 1
    match = data["matches"][0]
    assert match["id"] == good["id"]
    assert match["owner_name"] == "Olivia Owner"
    assert match["match_score"] == 67
    texts = [r["text"] for r in match["match_reasons"]]
    assert "Your Frontend Developer expertise aligns perfectly with this project's needs" in texts
    assert "You have hands-on experience with React, TypeScript" in texts
    assert "Your flexible availability matches the project's 3 months timeline" in texts
    assert "Based on your profile, you're among the top candidates for this opportunity" in texts


@pytest.mark.asyncio
async def test_matches_sorted_by_score(client, owner_headers, collaborator_headers, make_project):
    await make_project(owner_headers, title="Partial", tech_stack=["Go", "Rust", "Elixir"])
    await make_project(owner_headers, title="Perfect", roles_needed=["Frontend Developer"], tech_stack=["React"])

    res = await client.get("/api/v1/collaborators/matches", headers=collaborator_headers)
    scores = [m["match_score"] for m in res.json()["matches"]]
    assert [m["title"] for m in res.json()["matches"]] == ["Perfect", "Partial"]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_matches_with_empty_profile(client, make_user, owner_headers, make_project):
    await make_project(owner_headers)
    headers, _ = await make_user("blank@example.com")

    res = await client.get("/api/v1/collaborators/matches", headers=headers)
    assert res.status_code == 200
    assert res.json() == {"matches": [], "total": 0}


@pytest.mark.asyncio
async def test_matches_owner_forbidden(client, owner_headers):
    res = await client.get("/api/v1/collaborators/matches", headers=owner_headers)
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_my_applications(client, owner_headers, collaborator_headers, make_project):
    project = await make_project(owner_headers)
    await client.post(
        f"/api/v1/projects/{project['id']}/apply",
        headers=collaborator_headers,
        json={"message": "Count me in"},
    )

    res = await client.get("/api/v1/collaborators/applications", headers=collaborator_headers)
    assert res.status_code == 200
    apps = res.json()
    assert len(apps) == 1
    assert apps[0]["project"]["title"] == project["title"]
    assert apps[0]["project"]["owner_name"] == "Olivia Owner"
    assert apps[0]["role"] == "Collaborator"
    assert apps[0]["status"] == "pending"
    assert apps[0]["match_score"] == 67
    assert apps[0]["message"] == "Count me in"


@pytest.mark.asyncio
async def test_withdraw_application(client, owner_headers, collaborator_headers, make_project):
    project = await make_project(owner_headers)
    res = await client.post(
        f"/api/v1/projects/{project['id']}/apply", headers=collaborator_headers, json={}
    )
    application_id = res.json()["application_id"]

    url = f"/api/v1/collaborators/applications/{application_id}/withdraw"
    res = await client.patch(url, headers=collaborator_headers)
    assert res.status_code == 200

    res = await client.get("/api/v1/collaborators/applications", headers=collaborator_headers)
    assert res.json()[0]["status"] == "withdrawn"

    res = await client.patch(url, headers=collaborator_headers)
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_withdraw_someone_elses_application(
    client, owner_headers, collaborator_headers, make_user, make_project
):
    project = await make_project(owner_headers)
    res = await client.post(
        f"/api/v1/projects/{project['id']}/apply", headers=collaborator_headers, json={}
    )
    application_id = res.json()["application_id"]
    other_headers, _ = await make_user("nosy@example.com")

    res = await client.patch(
        f"/api/v1/collaborators/applications/{application_id}/withdraw", headers=other_headers
    )
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_dashboard_stats(
    client, owner_headers, collaborator_headers, collaborator_data, make_project
):
    joined = await make_project(owner_headers, title="Joined")
    applied = await make_project(owner_headers, title="Applied")
    await make_project(owner_headers, **UNRELATED)

    _, collaborator = collaborator_data
    await client.post(
        f"/api/v1/projects/{joined['id']}/invites",
        headers=owner_headers,
        json={"user_id": str(collaborator.id)},
    )
    await client.patch(f"/api/v1/projects/{joined['id']}/invite/accept", headers=collaborator_headers)
    await client.post(
        f"/api/v1/projects/{applied['id']}/apply", headers=collaborator_headers, json={}
    )

    res = await client.get("/api/v1/collaborators/stats", headers=collaborator_headers)
    assert res.status_code == 200
    assert res.json() == {
        "matches_received": 2,
        "projects_joined": 1,
        "completed_projects": 0,
        "pending_applications": 1,
        "match_score": 67,
    }


@pytest.mark.asyncio
async def test_completed_projects_counted(
    client, owner_headers, collaborator_headers, collaborator_data, make_project
):
    project = await make_project(owner_headers)
    _, collaborator = collaborator_data
    await client.post(
        f"/api/v1/projects/{project['id']}/invites",
        headers=owner_headers,
        json={"user_id": str(collaborator.id)},
    )
    await client.patch(f"/api/v1/projects/{project['id']}/invite/accept", headers=collaborator_headers)
    await client.put(
        f"/api/v1/projects/{project['id']}",
        headers=owner_headers,
        json={"lifecycle_stage": "completed"},
    )

    res = await client.get("/api/v1/collaborators/stats", headers=collaborator_headers)
    data = res.json()
    assert data["projects_joined"] == 0
    assert data["completed_projects"] == 1
