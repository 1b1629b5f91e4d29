import pytest

PRICES = {"caramel": 4, "respresso": 5, "butter": 6, "cheddar": 7, "kettle": 8}


def create_code(client, **body):
    response = client.post("/api/pricing/discount-codes", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_per_flavor_prices_set_mean_price(client):
    code = create_code(client, code="FLAVORS", popcornPrices=PRICES)

    assert code["price"] == 6
    assert code["popcornPrices"] == PRICES


def test_single_price_applies_to_every_flavor(client):
    code = create_code(client, code="FLAT", price=4.5, description="Staff")

    assert code["price"] == 4.5
    assert set(code["popcornPrices"].values()) == {4.5}
    assert code["description"] == "Staff"
    assert code["isActive"] is True


def test_defaults_and_generated_code(client):
    code = create_code(client)

    assert len(code["code"]) == 36  # uuid4
    assert code["price"] == 5.75
    assert set(code["popcornPrices"].values()) == {5.75}


def test_duplicate_code_rejected(client):
    create_code(client, code="DUP")

    response = client.post("/api/pricing/discount-codes", json={"code": "DUP"})

    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]


@pytest.mark.parametrize(
    "body",
    [
        {"price": -1},
        {"popcornPrices": {**PRICES, "butter": -0.5}},
        {"popcornPrices": {"caramel": 4}},
    ],
)
def test_invalid_prices_rejected(client, body):
    assert client.post("/api/pricing/discount-codes", json=body).status_code == 422
    assert client.get("/api/pricing/discount-codes").json() == []


def test_list_get_and_delete(client):
    first = create_code(client, code="ONE")
    second = create_code(client, code="TWO")

    listed = [c["code"] for c in client.get("/api/pricing/discount-codes").json()]
    assert listed == ["TWO", "ONE"]
    assert client.get(f"/api/pricing/discount-codes/{first['id']}").json()["code"] == "ONE"

    assert client.delete(f"/api/pricing/discount-codes/{second['id']}").status_code == 200
    assert client.get(f"/api/pricing/discount-codes/{second['id']}").status_code == 404
    assert client.delete(f"/api/pricing/discount-codes/{second['id']}").status_code == 404


def test_update_discount_code(client):
    code = create_code(client, code="OLD", price=5)

    response = client.put(
        f"/api/pricing/discount-codes/{code['id']}",
        json={"code": "NEW", "popcornPrices": PRICES, "isActive": False},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "NEW"
    assert body["price"] == 6
    assert body["isActive"] is False
    assert body["description"] == ""


def test_update_price_only_resets_flavors(client):
    code = create_code(client, code="MIX", popcornPrices=PRICES)

    body = client.put(f"/api/pricing/discount-codes/{code['id']}", json={"price": 3}).json()

    assert body["price"] == 3
    assert set(body["popcornPrices"].values()) == {3}


def test_update_to_taken_code_rejected(client):
    create_code(client, code="TAKEN")
    code = create_code(client, code="MINE")

    response = client.put(f"/api/pricing/discount-codes/{code['id']}", json={"code": "TAKEN"})

    assert response.status_code == 400
    assert client.get(f"/api/pricing/discount-codes/{code['id']}").json()["code"] == "MINE"


def test_update_keeping_own_code_is_allowed(client):
    code = create_code(client, code="SAME")

    response = client.put(f"/api/pricing/discount-codes/{code['id']}", json={"code": "SAME", "description": "x"})

    assert response.status_code == 200


def test_update_missing_code(client):
    assert client.put("/api/pricing/discount-codes/999", json={"price": 1}).status_code == 404


def test_popcorn_prices_created_lazily(client):
    body = client.get("/api/pricing/popcorn-prices").json()

    assert {k: body[k] for k in PRICES} == {k: 0 for k in PRICES}
    assert client.get("/api/pricing/popcorn-prices").json()["id"] == body["id"]


def test_update_popcorn_prices(client):
    client.get("/api/pricing/popcorn-prices")

    body = client.put("/api/pricing/popcorn-prices", json=PRICES).json()

    assert {k: body[k] for k in PRICES} == PRICES
    assert client.get("/api/pricing/popcorn-prices").json()["kettle"] == 8


@pytest.mark.parametrize(
    "body",
    [
        {**PRICES, "cheddar": -1},
        {"caramel": 1, "respresso": 1},
    ],
)
def test_invalid_popcorn_prices_leave_config_unchanged(client, body):
    client.put("/api/pricing/popcorn-prices", json=PRICES)

    assert client.put("/api/pricing/popcorn-prices", json=body).status_code == 422

    current = client.get("/api/pricing/popcorn-prices").json()
    assert {k: current[k] for k in PRICES} == PRICES


def test_snake_case_request_fields_still_accepted(client):
    code = create_code(client, code="SNAKE", popcorn_prices=PRICES, is_active=False)

    assert code["price"] == 6
    assert code["isActive"] is False


def test_update_to_empty_code_rejected(client):
    code = create_code(client, code="KEEP")

    response = client.put(f"/api/pricing/discount-codes/{code['id']}", json={"code": ""})

    assert response.status_code == 422
    assert client.get(f"/api/pricing/discount-codes/{code['id']}").json()["code"] == "KEEP"


def test_timestamps_are_utc(client):
    code = create_code(client, code="TZ")

    assert code["createdAt"].endswith("Z") or code["createdAt"].endswith("+00:00")
