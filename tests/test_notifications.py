import pytest

from app.services.email import build_otp_email
from app.services.notification_service import create_notification


async def _notify(db_session, user, title="Hello", type="application"):
    await create_notification(
        db_session,
        user_id=user.id,
        type=type,
        title=title,
        message=f"{title} message",
    )
    await db_session.commit()


@pytest.mark.asyncio
async def test_list_notifications(client, db_session, owner_headers, owner_data):
    _, owner = owner_data
    await _notify(db_session, owner, "First")
    await _notify(db_session, owner, "Second")

    res = await client.get("/api/v1/notifications", headers=owner_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["total"] == 2
    assert data["unread_count"] == 2
    assert {n["title"] for n in data["items"]} == {"First", "Second"}


@pytest.mark.asyncio
async def test_notifications_are_per_user(
    client, db_session, owner_data, collaborator_headers
):
    _, owner = owner_data
    await _notify(db_session, owner)

    res = await client.get("/api/v1/notifications", headers=collaborator_headers)
    assert res.json()["total"] == 0


@pytest.mark.asyncio
async def test_mark_read(client, db_session, owner_headers, owner_data):
    _, owner = owner_data
    await _notify(db_session, owner)

    res = await client.get("/api/v1/notifications", headers=owner_headers)
    notification_id = res.json()["items"][0]["id"]

    res = await client.patch(f"/api/v1/notifications/{notification_id}/read", headers=owner_headers)
    assert res.status_code == 200

    res = await client.get("/api/v1/notifications?read=false", headers=owner_headers)
    assert res.json()["total"] == 0
    assert res.json()["unread_count"] == 0


@pytest.mark.asyncio
async def test_mark_read_other_users_notification(
    client, db_session, owner_data, collaborator_headers
):
    _, owner = owner_data
    notification = await create_notification(
        db_session, user_id=owner.id, type="application", title="Private", message="x"
    )
    await db_session.commit()

    res = await client.patch(
        f"/api/v1/notifications/{notification.id}/read", headers=collaborator_headers
    )
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_read(client, db_session, owner_headers, owner_data):
    _, owner = owner_data
    for i in range(3):
        await _notify(db_session, owner, f"N{i}")

    res = await client.patch("/api/v1/notifications/read-all", headers=owner_headers)
    assert res.status_code == 200
    assert res.json()["count"] == 3

    res = await client.get("/api/v1/notifications", headers=owner_headers)
    assert res.json()["unread_count"] == 0


@pytest.mark.asyncio
async def test_pagination(client, db_session, owner_headers, owner_data):
    _, owner = owner_data
    for i in range(5):
        await _notify(db_session, owner, f"N{i}")

    res = await client.get("/api/v1/notifications?page=2&page_size=2", headers=owner_headers)
    data = res.json()
    assert data["total"] == 5
    assert len(data["items"]) == 2
    assert data["page"] == 2


@pytest.mark.asyncio
async def test_unknown_notification_type(db_session, owner_data):
    _, owner = owner_data
    with pytest.raises(ValueError):
        await create_notification(
            db_session, user_id=owner.id, type="birthday", title="x", message="y"
        )


def test_otp_email_contains_code():
    subject, html = build_otp_email("Ada <Lovelace>", "482913", 10)
    assert "verification code" in subject
    assert "482913" in html
    assert "10" in html
    # names are escaped
    assert "<Lovelace>" not in html


@pytest.mark.asyncio
async def test_sender_and_project_resolved(
    client, owner_headers, collaborator_headers, make_project
):
    project = await make_project(owner_headers)
    await client.post(
        f"/api/v1/projects/{project['id']}/apply", headers=collaborator_headers, json={}
    )

    res = await client.get("/api/v1/notifications", headers=owner_headers)
    item = res.json()["items"][0]
    assert item["sender_name"] == "Carl Collaborator"
    assert item["project_title"] == project["title"]


@pytest.mark.asyncio
async def test_type_filter(client, db_session, owner_headers, owner_data):
    _, owner = owner_data
    await _notify(db_session, owner, "Applied", type="application")
    await _notify(db_session, owner, "Joined", type="invite_accepted")

    res = await client.get("/api/v1/notifications?type=invite_accepted", headers=owner_headers)
    assert [n["title"] for n in res.json()["items"]] == ["Joined"]

    res = await client.get("/api/v1/notifications?type=birthday", headers=owner_headers)
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_delete_notification(client, db_session, owner_headers, owner_data, collaborator_headers):
    _, owner = owner_data
    notification = await create_notification(
        db_session, user_id=owner.id, type="application", title="Old", message="x"
    )
    await db_session.commit()

    res = await client.delete(
        f"/api/v1/notifications/{notification.id}", headers=collaborator_headers
    )
    assert res.status_code == 404

    res = await client.delete(f"/api/v1/notifications/{notification.id}", headers=owner_headers)
    assert res.status_code == 204

    res = await client.get("/api/v1/notifications", headers=owner_headers)
    assert res.json()["total"] == 0
