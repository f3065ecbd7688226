from uuid import uuid4

import pytest

from pos_backend.models.user import UserRole


@pytest.mark.parametrize("path", ["/", "/health"])
def test_system_endpoints_are_public(client, path):
    response = client.get(path)

    assert response.status_code == 200


@pytest.mark.parametrize("method,path", [
    ("get", "/products"),
    ("get", "/products/lookup?code=123456"),
    ("get", "/categories"),
    ("get", "/users/me"),
    ("get", "/inventory"),
])
def test_protected_endpoints_need_a_token(client, method, path):
    response = getattr(client, method)(path)

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_cashier_cannot_create_products(client, cashier, auth_header):
    response = client.post(
        "/products",
        json={"name": "Cola", "categoryId": str(uuid4()), "price": 1.5, "costPrice": 1.0,
              "initialQuantity": 10, "reorderThreshold": 2},
        headers=auth_header(cashier),
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Access denied: no permission"}


@pytest.mark.parametrize("method,path", [
    ("post", "/categories"),
    ("put", "/categories/{id}"),
    ("delete", "/categories/{id}"),
    ("put", "/products/{id}"),
    ("delete", "/products/{id}"),
])
def test_catalog_writes_are_for_managers(client, cashier, auth_header, method, path):
    kwargs = {"headers": auth_header(cashier)}
    if method != "delete":
        kwargs["json"] = {"name": "Drinks"}

    response = getattr(client, method)(path.format(id=uuid4()), **kwargs)

    assert response.status_code == 403


@pytest.mark.parametrize("method,path", [
    ("get", "/users"),
    ("get", "/users/{id}"),
    ("patch", "/users/{id}"),
    ("delete", "/users/{id}"),
])
def test_user_management_is_super_admin_only(client, admin, auth_header, method, path):
    kwargs = {"headers": auth_header(admin)}
    if method == "patch":
        kwargs["json"] = {"role": "cashier"}

    response = getattr(client, method)(path.format(id=uuid4()), **kwargs)

    assert response.status_code == 403


def test_login_needs_exactly_one_identifier(client):
    response = client.post(
        "/users/login",
        json={"username": "cashier1", "email": "cashier1@cornershop.com", "password": "secret1"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request."


def test_lookup_without_code_is_400(client, cashier, auth_header):
    response = client.get("/products/lookup", headers=auth_header(cashier))

    assert response.status_code == 400


def test_unknown_stock_status_filter_is_400(client, cashier, auth_header):
    response = client.get("/products", params={"stockStatus": "plenty"}, headers=auth_header(cashier))

    assert response.status_code == 400


def test_super_admin_role_cannot_be_granted(client, super_admin, auth_header):
    response = client.patch(
        f"/users/{uuid4()}",
        json={"role": "super admin"},
        headers=auth_header(super_admin),
    )

    assert response.status_code == 400


def test_demoted_admin_loses_catalog_access_before_token_expires(client, admin, auth_header, accounts_on_file):
    headers = auth_header(admin)
    accounts_on_file[admin.id] = admin.model_copy(update={"role": UserRole.CASHIER})

    response = client.post("/categories", json={"name": "Drinks"}, headers=headers)

    assert response.status_code == 403
