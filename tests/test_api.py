def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "service": "taskhub"}


def test_unknown_route(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Route not found: GET /api/nope"}


def test_metrics_exposed(client):
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "api_requests_total" in resp.text


def test_task_lifecycle_scenario(client, make_user):
    alice, alice_headers = make_user(username="alice")
    _, bob_headers = make_user(username="bob")

    resp = client.post("/api/tasks", json={"title": "Buy milk"}, headers=alice_headers)
    assert resp.status_code == 201
    task = resp.json()
    assert task["id"] == 1
    assert task["status"] == "To Do"
    assert task["user_id"] == alice["id"]
    assert task["description"] is None

    resp = client.delete("/api/tasks/1", headers=bob_headers)
    assert resp.status_code == 403
    assert resp.json() == {"error": "Forbidden: cannot access others' tasks"}

    resp = client.delete("/api/tasks/1", headers=alice_headers)
    assert resp.status_code == 204
    assert resp.content == b""

    assert client.get("/api/tasks/1", headers=alice_headers).status_code == 404


def test_create_ignores_client_supplied_owner(client, make_user):
    alice, headers = make_user()
    resp = client.post(
        "/api/tasks",
        json={"title": "mine", "user_id": 999, "status": "In Progress"},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["user_id"] == alice["id"]
    assert resp.json()["status"] == "In Progress"


def test_create_validation_errors(client, make_user):
    _, headers = make_user()
    resp = client.post("/api/tasks", json={"title": ""}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["details"][0]["field"] == "title"

    resp = client.post("/api/tasks", json={"title": "x", "status": "Done"}, headers=headers)
    assert resp.status_code == 400


def test_get_task_owner_admin_and_stranger(client, make_user):
    _, owner = make_user()
    _, stranger = make_user()
    _, admin = make_user(role="admin")
    task_id = client.post("/api/tasks", json={"title": "t"}, headers=owner).json()["id"]

    assert client.get(f"/api/tasks/{task_id}", headers=owner).status_code == 200
    assert client.get(f"/api/tasks/{task_id}", headers=admin).status_code == 200
    assert client.get(f"/api/tasks/{task_id}", headers=stranger).status_code == 403
    assert client.get("/api/tasks/999", headers=stranger).status_code == 404
    assert client.get("/api/tasks/abc", headers=owner).status_code == 400


def test_list_pagination_and_meta(client, make_user):
    _, headers = make_user()
    for i in range(25):
        client.post("/api/tasks", json={"title": f"task {i}"}, headers=headers)

    resp = client.get("/api/tasks", params={"page": 2, "limit": 10}, headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["data"]) == 10
    assert body["meta"] == {"page": 2, "limit": 10, "total": 25}

    body = client.get("/api/tasks", params={"page": 3, "limit": 10}, headers=headers).json()
    assert len(body["data"]) == 5

    body = client.get("/api/tasks", headers=headers).json()
    assert body["meta"] == {"page": 1, "limit": 10, "total": 25}
    assert body["data"][0]["title"] == "task 24"


def test_list_rejects_bad_pagination(client, make_user):
    _, headers = make_user()
    for params in ({"page": 0}, {"limit": 0}, {"limit": 101}, {"page": "abc"}, {"status": "Done"}):
        resp = client.get("/api/tasks", params=params, headers=headers)
        assert resp.status_code == 400, params


def test_list_all_flag(client, make_user):
    _, alice = make_user()
    _, bob = make_user()
    _, admin = make_user(role="admin")
    client.post("/api/tasks", json={"title": "a"}, headers=alice)
    client.post("/api/tasks", json={"title": "b", "status": "Completed"}, headers=bob)

    body = client.get("/api/tasks", params={"all": "true"}, headers=alice).json()
    assert [t["title"] for t in body["data"]] == ["a"]

    body = client.get("/api/tasks", params={"all": "true"}, headers=admin).json()
    assert body["meta"]["total"] == 2

    body = client.get(
        "/api/tasks", params={"all": "true", "status": "Completed"}, headers=admin
    ).json()
    assert [t["title"] for t in body["data"]] == ["b"]


def test_patch_is_partial(client, make_user):
    _, headers = make_user()
    task = client.post(
        "/api/tasks", json={"title": "Buy milk", "description": "2 litres"}, headers=headers
    ).json()

    resp = client.patch(f"/api/tasks/{task['id']}", json={"status": "Completed"}, headers=headers)
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["status"] == "Completed"
    assert updated["title"] == "Buy milk"
    assert updated["description"] == "2 litres"

    resp = client.patch(f"/api/tasks/{task['id']}", json={}, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "No fields to update"}

    resp = client.patch(f"/api/tasks/{task['id']}", json={"title": None}, headers=headers)
    assert resp.status_code == 400


def test_admin_only_listing(client, make_user):
    _, user = make_user()
    _, admin = make_user(role="admin")
    client.post("/api/tasks", json={"title": "a"}, headers=user)

    assert client.get("/api/tasks/admin/all-tasks", headers=user).status_code == 403
    resp = client.get("/api/tasks/admin/all-tasks", headers=admin)
    assert resp.status_code == 200
    assert [t["title"] for t in resp.json()] == ["a"]


def test_list_oversized_page_is_bad_request(client, make_user):
    _, headers = make_user()
    resp = client.get("/api/tasks", params={"page": "10000000000000000000"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["details"][0]["field"] == "page"
