"""Tests for Movement API endpoints."""
from stockroom.models.product import Product


def create_product(client, quantity=10, name="Test Product"):
    response = client.post(
        "/api/v1/products/",
        json={"name": name, "price": 10.0, "quantity": quantity, "low_limit": 2, "high_limit": 50}
    )
    return response.json()["id"]


def product_quantity(client, product_id):
    return client.get(f"/api/v1/products/{product_id}").json()["quantity"]


def test_record_exit_and_revert(client, registered_user, no_celery):
    """Product at 10, exit of 3 then revert restores 10."""
    product_id = create_product(client, quantity=10)

    response = client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "out", "quantity": 3},
        headers=registered_user,
    )

    assert response.status_code == 201
    movement = response.json()
    assert movement["product_id"] == product_id
    assert movement["movement_type"] == "out"
    assert movement["quantity"] == 3
    assert movement["user_id"] == "u1"
    assert product_quantity(client, product_id) == 7
    no_celery.assert_called_once_with(product_id)

    response = client.delete(f"/api/v1/movements/{movement['id']}", headers=registered_user)

    assert response.status_code == 204
    assert product_quantity(client, product_id) == 10
    assert client.get("/api/v1/movements/").json()["total"] == 0


def test_record_entry_increments(client, registered_user):
    product_id = create_product(client, quantity=10)

    client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "in", "quantity": 5},
        headers=registered_user,
    )

    assert product_quantity(client, product_id) == 15


def test_exit_can_go_negative(client, registered_user):
    product_id = create_product(client, quantity=1)

    response = client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "out", "quantity": 4},
        headers=registered_user,
    )

    assert response.status_code == 201
    assert product_quantity(client, product_id) == -3


def test_record_without_token(client):
    product_id = create_product(client)

    response = client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "in", "quantity": 1},
    )

    assert response.status_code == 401
    assert product_quantity(client, product_id) == 10


def test_record_with_forged_token(client, registered_user, token_for):
    product_id = create_product(client)
    token = token_for("u1", secret="not-the-identity-secret")

    response = client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "in", "quantity": 1},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 401


def test_record_with_expired_token(client, registered_user, token_for):
    product_id = create_product(client)
    token = token_for("u1", expires_in=-60)

    response = client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "in", "quantity": 1},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 401


def test_authenticated_but_not_registered(client, registered_user, headers_for):
    """A valid token whose user has no directory entry is rejected."""
    product_id = create_product(client)

    response = client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "in", "quantity": 1},
        headers=headers_for("stranger"),
    )

    assert response.status_code == 403
    assert "not registered" in response.json()["detail"]
    assert product_quantity(client, product_id) == 10
    assert client.get("/api/v1/movements/").json()["total"] == 0


def test_unknown_product(client, registered_user, no_celery):
    response = client.post(
        "/api/v1/movements/",
        json={"product_id": 9999, "movement_type": "in", "quantity": 1},
        headers=registered_user,
    )

    assert response.status_code == 404
    assert client.get("/api/v1/movements/").json()["total"] == 0
    no_celery.assert_not_called()


def test_invalid_quantity(client, registered_user):
    product_id = create_product(client)

    for quantity in (0, -1):
        response = client.post(
            "/api/v1/movements/",
            json={"product_id": product_id, "movement_type": "in", "quantity": quantity},
            headers=registered_user,
        )
        assert response.status_code == 422


def test_invalid_movement_type(client, registered_user):
    product_id = create_product(client)

    response = client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "transfer", "quantity": 1},
        headers=registered_user,
    )

    assert response.status_code == 422


def test_revert_unknown_movement(client):
    response = client.delete("/api/v1/movements/4242")

    assert response.status_code == 404


def test_revert_twice(client, registered_user):
    product_id = create_product(client, quantity=10)
    movement = client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "in", "quantity": 5},
        headers=registered_user,
    ).json()

    assert client.delete(f"/api/v1/movements/{movement['id']}").status_code == 204
    assert client.delete(f"/api/v1/movements/{movement['id']}").status_code == 404
    assert product_quantity(client, product_id) == 10


def test_movement_log(client, registered_user):
    screws = create_product(client, name="Tornillo")
    nuts = create_product(client, name="Tuerca")
    ids = []
    for product_id, movement_type in [(screws, "in"), (nuts, "out"), (screws, "out")]:
        response = client.post(
            "/api/v1/movements/",
            json={"product_id": product_id, "movement_type": movement_type, "quantity": 1},
            headers=registered_user,
        )
        ids.append(response.json()["id"])

    response = client.get("/api/v1/movements/")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert [item["id"] for item in data["items"]] == list(reversed(ids))
    assert [item["product_name"] for item in data["items"]] == ["Tornillo", "Tuerca", "Tornillo"]
    assert all(item["username"] == "maria" for item in data["items"])


def test_movement_log_pagination(client, registered_user):
    product_id = create_product(client, quantity=0)
    for _ in range(25):
        client.post(
            "/api/v1/movements/",
            json={"product_id": product_id, "movement_type": "in", "quantity": 1},
            headers=registered_user,
        )

    data = client.get("/api/v1/movements/?page=2&page_size=10").json()

    assert data["total"] == 25
    assert data["total_pages"] == 3
    assert len(data["items"]) == 10


def test_movement_log_survives_missing_product(client, registered_user, db_session):
    product_id = create_product(client, name="Borrado")
    client.post(
        "/api/v1/movements/",
        json={"product_id": product_id, "movement_type": "in", "quantity": 1},
        headers=registered_user,
    )
    db_session.query(Product).filter(Product.id == product_id).delete()
    db_session.commit()

    items = client.get("/api/v1/movements/").json()["items"]

    assert len(items) == 1
    assert items[0]["product_name"] == ""
    assert items[0]["username"] == "maria"
