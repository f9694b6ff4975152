"""Project Routes — HTTP contract of /api/v1/projects.

Tests cover:
    - authentication is required and verified
    - creation with inline tasks and with existing taskIds
    - status codes: 400 validation, 403 not authorized, 404 unknown, 409 conflict
    - membership routes and delete
"""

from tests.factories import project_payload, task_payload


async def test_missing_token_is_401(client):
    res = await client.get("/api/v1/projects")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "NOT_AUTHENTICATED"


async def test_forged_token_is_401(client):
    res = await client.get(
        "/api/v1/projects", headers={"Authorization": "Bearer bm90IGEgdG9rZW4="},
    )
    assert res.status_code == 401


async def test_create_project_with_tasks(client, created_project):
    assert created_project["owner"] == "alice"
    assert sorted(created_project["users"]) == ["alice", "bob"]
    assert len(created_project["taskIds"]) == 2
    assert created_project["totalProcessPoints"] == 15
    assert created_project["doneProcessPoints"] == 0
    assert created_project["needsAssignment"] is False


async def test_create_project_from_existing_tasks(client, auth):
    res = await client.post(
        "/api/v1/tasks", json=[task_payload(3), task_payload(4, offset=1)],
        headers=auth("alice"),
    )
    assert res.status_code == 201
    task_ids = [t["id"] for t in res.json()]

    res = await client.post(
        "/api/v1/projects", json=project_payload(taskIds=task_ids),
        headers=auth("alice"),
    )
    assert res.status_code == 201
    assert res.json()["taskIds"] == task_ids
    assert res.json()["totalProcessPoints"] == 7


async def test_reusing_bound_task_is_409(client, auth, created_project):
    res = await client.post(
        "/api/v1/projects",
        json=project_payload(taskIds=created_project["taskIds"][:1]),
        headers=auth("alice"),
    )
    assert res.status_code == 409

    listed = await client.get("/api/v1/projects", headers=auth("alice"))
    assert len(listed.json()) == 1


async def test_project_for_other_owner_is_403(client, auth):
    res = await client.post(
        "/api/v1/projects",
        json=project_payload(owner="bob", tasks=[task_payload()]),
        headers=auth("alice"),
    )
    assert res.status_code == 403


async def test_owner_outside_users_is_400(client, auth):
    res = await client.post(
        "/api/v1/projects",
        json=project_payload(users=["bob"], tasks=[task_payload()]),
        headers=auth("alice"),
    )
    assert res.status_code == 400
    assert "Owner" in res.json()["error"]["message"]


async def test_invalid_geometry_is_400(client, auth):
    bad = {**task_payload(), "geometry": '{"type": "Point"}'}
    res = await client.post(
        "/api/v1/projects", json=project_payload(tasks=[bad]), headers=auth("alice"),
    )
    assert res.status_code == 400


async def test_task_ids_and_tasks_together_is_400(client, auth):
    res = await client.post(
        "/api/v1/projects",
        json=project_payload(taskIds=["t1"], tasks=[task_payload()]),
        headers=auth("alice"),
    )
    assert res.status_code == 400
    assert res.json()["error"]["details"]


async def test_member_reads_project(client, auth, created_project):
    res = await client.get(
        f"/api/v1/projects/{created_project['id']}", headers=auth("bob"),
    )
    assert res.status_code == 200
    assert res.json()["name"] == "Mapping Hamburg"


async def test_stranger_reading_project_is_403(client, auth, created_project):
    res = await client.get(
        f"/api/v1/projects/{created_project['id']}", headers=auth("carol"),
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "NOT_AUTHORIZED"


async def test_unknown_project_is_404(client, auth):
    res = await client.get("/api/v1/projects/does-not-exist", headers=auth("alice"))
    assert res.status_code == 404


async def test_project_tasks_in_order(client, auth, created_project):
    res = await client.get(
        f"/api/v1/projects/{created_project['id']}/tasks", headers=auth("bob"),
    )
    assert res.status_code == 200
    assert [t["id"] for t in res.json()] == created_project["taskIds"]
    assert [t["maxProcessPoints"] for t in res.json()] == [10, 5]


async def test_owner_adds_and_removes_user(client, auth, created_project):
    pid = created_project["id"]
    res = await client.post(
        f"/api/v1/projects/{pid}/users", params={"uid": "carol"}, headers=auth("alice"),
    )
    assert res.status_code == 200
    assert "carol" in res.json()["users"]

    res = await client.delete(f"/api/v1/projects/{pid}/users/carol", headers=auth("alice"))
    assert res.status_code == 200
    assert "carol" not in res.json()["users"]


async def test_adding_member_twice_is_409(client, auth, created_project):
    res = await client.post(
        f"/api/v1/projects/{created_project['id']}/users",
        params={"uid": "bob"}, headers=auth("alice"),
    )
    assert res.status_code == 409


async def test_member_cannot_invite(client, auth, created_project):
    res = await client.post(
        f"/api/v1/projects/{created_project['id']}/users",
        params={"uid": "carol"}, headers=auth("bob"),
    )
    assert res.status_code == 403


async def test_owner_cannot_be_removed(client, auth, created_project):
    res = await client.delete(
        f"/api/v1/projects/{created_project['id']}/users/alice", headers=auth("alice"),
    )
    assert res.status_code == 403


async def test_member_leaves(client, auth, created_project):
    pid = created_project["id"]
    res = await client.delete(f"/api/v1/projects/{pid}/users", headers=auth("bob"))
    assert res.status_code == 200
    assert res.json()["users"] == ["alice"]

    res = await client.get(f"/api/v1/projects/{pid}", headers=auth("bob"))
    assert res.status_code == 403


async def test_owner_cannot_leave(client, auth, created_project):
    res = await client.delete(
        f"/api/v1/projects/{created_project['id']}/users", headers=auth("alice"),
    )
    assert res.status_code == 403


async def test_non_owner_delete_is_403_and_keeps_project(client, auth, created_project):
    pid = created_project["id"]
    res = await client.delete(f"/api/v1/projects/{pid}", headers=auth("bob"))
    assert res.status_code == 403

    res = await client.get(f"/api/v1/projects/{pid}/tasks", headers=auth("bob"))
    assert len(res.json()) == 2


async def test_owner_deletes_project_and_tasks(client, auth, created_project):
    pid = created_project["id"]
    res = await client.delete(f"/api/v1/projects/{pid}", headers=auth("alice"))
    assert res.status_code == 204

    assert (await client.get(f"/api/v1/projects/{pid}", headers=auth("alice"))).status_code == 404
    task_id = created_project["taskIds"][0]
    res = await client.get(f"/api/v1/tasks/{task_id}", headers=auth("alice"))
    assert res.status_code == 404
