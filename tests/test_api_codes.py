import json

import httpx
import pytest
from sqlmodel import select

from popcorn_dashboard.codes import FormCodeService
from popcorn_dashboard.dependencies import get_form_codes
from popcorn_dashboard.main import app
from popcorn_dashboard.models import FormCode

EXISTING_JUMP = {"type": "field", "from": {"ref": "Q1"}, "to": {"type": "field", "ref": "Q2"}}


@pytest.fixture
def form_requests():
    return []


@pytest.fixture
def form_status():
    """Status the fake Typeform answers the PATCH with."""
    return {"patch": 200}


@pytest.fixture
def codes_client(client, session, settings, form_requests, form_status):
    def handler(request: httpx.Request) -> httpx.Response:
        form_requests.append(request)
        if request.method == "GET":
            return httpx.Response(200, json={"id": "X3HYI3Te", "logic": {"jumps": [EXISTING_JUMP]}})
        if form_status["patch"] != 200:
            return httpx.Response(form_status["patch"])
        return httpx.Response(200, json={"id": "X3HYI3Te", "updated": True})

    service = FormCodeService(session=session, settings=settings, transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_form_codes] = lambda: service
    return client


def stored_codes(session):
    return [c.code for c in session.exec(select(FormCode)).all()]


def test_add_code_appends_jump_to_form(codes_client, session, form_requests):
    response = codes_client.post(
        "/api/codes/add",
        json={"code": "POPPY", "typeOfDiscount": "Percent", "percentOff": 10, "discountAmount": 1.5},
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["code"]["code"] == "POPPY"
    assert body["code"]["typeOfDiscount"] == "Percent"
    assert body["code"]["percentOff"] == 10
    assert body["form"] == {"id": "X3HYI3Te", "updated": True}
    assert stored_codes(session) == ["POPPY"]

    get, patch = form_requests
    assert get.method == "GET" and get.url.path == "/forms/X3HYI3Te"
    assert patch.method == "PATCH" and patch.url.path == "/forms/X3HYI3Te"
    assert patch.headers["Authorization"] == "Bearer tf-test-key"

    jumps = json.loads(patch.content)["logic"]["jumps"]
    assert jumps[0] == EXISTING_JUMP
    new_jump = jumps[1]
    assert new_jump["from"] == {"ref": "Q3_CUSTOMER_CODE"}
    assert new_jump["conditions"][0]["vars"][1] == {"type": "constant", "value": "POPPY"}
    assert new_jump["to"] == {"type": "field", "ref": "Q5_NEXT_QUESTION"}
    assert new_jump["actions"][0]["details"] == {"operation": "add", "value": 1.5, "target": "discount_price"}


def test_duplicate_code_rejected(codes_client, form_requests):
    body = {"code": "TWICE", "typeOfDiscount": "Dollar", "dollarsOff": 2, "discountAmount": 2}
    assert codes_client.post("/api/codes/add", json=body).status_code == 201

    response = codes_client.post("/api/codes/add", json=body)

    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]
    assert len(form_requests) == 2


@pytest.mark.parametrize(
    "body, missing",
    [
        ({"typeOfDiscount": "Percent", "percentOff": 5, "discountAmount": 1}, "code"),
        ({"code": "X", "percentOff": 5, "discountAmount": 1}, "typeOfDiscount"),
        ({"code": "X", "typeOfDiscount": "Percent", "percentOff": 5}, "discountAmount"),
        ({"code": "X", "typeOfDiscount": "Percent", "discountAmount": 1}, "percentOff"),
        ({"code": "X", "typeOfDiscount": "Dollar", "discountAmount": 1}, "dollarsOff"),
    ],
)
def test_missing_fields_rejected(codes_client, session, form_requests, body, missing):
    response = codes_client.post("/api/codes/add", json=body)

    assert response.status_code == 400
    assert missing in response.json()["detail"]
    assert stored_codes(session) == []
    assert form_requests == []


def test_unknown_discount_type_rejected(codes_client):
    response = codes_client.post(
        "/api/codes/add", json={"code": "X", "typeOfDiscount": "Free", "discountAmount": 1}
    )

    assert response.status_code == 400
    assert "'Percent' or 'Dollar'" in response.json()["detail"]


def test_typeform_failure_stores_nothing(codes_client, session, form_status):
    form_status["patch"] = 502

    response = codes_client.post(
        "/api/codes/add",
        json={"code": "LOST", "typeOfDiscount": "Dollar", "dollarsOff": 3, "discountAmount": 3},
    )

    assert response.status_code == 500
    assert "502" in response.json()["detail"]
    assert stored_codes(session) == []


def test_missing_api_key_is_server_error(codes_client, session, settings, form_requests):
    settings.typeform_api_key = None

    response = codes_client.post(
        "/api/codes/add",
        json={"code": "NOKEY", "typeOfDiscount": "Dollar", "dollarsOff": 3, "discountAmount": 3},
    )

    assert response.status_code == 500
    assert "TYPEFORM_API_KEY" in response.json()["detail"]
    assert form_requests == []
    assert stored_codes(session) == []
