def test_list_categories_with_counts(client):
    resp = client.get("/api/categories")
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 3
    counts = {category["name"]: category["itemCount"] for category in body["data"]}
    assert counts == {"Electronics": 1, "Books": 1, "Clothing": 0}


def test_item_count_ignores_inactive_items(client, admin_headers):
    client.put("/api/items/1", json={"name": "Smartphone", "description": "x", "isActive": False},
               headers=admin_headers)
    counts = {c["name"]: c["itemCount"] for c in client.get("/api/categories").json()["data"]}
    assert counts["Electronics"] == 0


def test_get_category_with_items(client):
    resp = client.get("/api/categories/2")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Books"
    assert [item["name"] for item in data["items"]] == ["Programming Book"]


def test_get_category_not_found(client):
    resp = client.get("/api/categories/12")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Category with ID 12 not found"


def test_admin_creates_category(client, admin_headers):
    resp = client.post("/api/categories", json={"name": " Garden ", "description": "Outdoor"}, headers=admin_headers)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data == {"id": 4, "name": "Garden", "description": "Outdoor", "createdAt": data["createdAt"]}


def test_category_names_unique_ignoring_case(client, admin_headers):
    resp = client.post("/api/categories", json={"name": "electronics"}, headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json() == {"error": "Conflict", "message": "Category name already exists"}


def test_regular_user_cannot_create_category(client, user_headers):
    resp = client.post("/api/categories", json={"name": "Toys"}, headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Admin access required"


def test_create_category_requires_token(client):
    assert client.post("/api/categories", json={"name": "Toys"}).status_code == 401


def test_create_category_validation(client, admin_headers):
    resp = client.post("/api/categories", json={"name": "", "description": "d" * 201}, headers=admin_headers)
    assert resp.status_code == 400
    assert {d["field"] for d in resp.json()["details"]} == {"name", "description"}
