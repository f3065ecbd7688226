import pytest
from pydantic import ValidationError

from pos_backend.models.user import UserRole
from pos_backend.schemas.product import ProductUpdate
from pos_backend.schemas.stock import StockTransactionCreate
from pos_backend.schemas.user import ForgotPasswordRequest, LoginRequest, UserCreate, UserUpdate


def test_login_accepts_username_or_email():
    assert LoginRequest(username="cashier1", password="secret1").email is None
    assert LoginRequest(email=" Cashier1@CornerShop.COM ", password="secret1").email == "cashier1@cornershop.com"


@pytest.mark.parametrize("payload", [
    {"password": "secret1"},
    {"username": "cashier1", "email": "cashier1@cornershop.com", "password": "secret1"},
    {"username": "cashier1", "password": "short"},
])
def test_login_rejects_bad_payloads(payload):
    with pytest.raises(ValidationError):
        LoginRequest(**payload)


def test_user_create_reads_camel_case_and_normalizes_email():
    user = UserCreate.model_validate({
        "username": "till_two",
        "email": "TILL2@CornerShop.com",
        "password": "secret1",
        "confirmPassword": "secret1",
        "role": "cashier",
    })

    assert user.email == "till2@cornershop.com"
    assert user.role is UserRole.CASHIER


def test_user_create_passwords_must_match():
    with pytest.raises(ValidationError):
        UserCreate(username="till_two", email="t@cornershop.com", password="secret1", confirm_password="secret2", role="admin")


def test_user_update_cannot_grant_super_admin():
    with pytest.raises(ValidationError):
        UserUpdate(role="super admin")
    assert UserUpdate(role="admin").role is UserRole.ADMIN


def test_forgot_password_normalizes_email():
    assert ForgotPasswordRequest(email="  Owner@CornerShop.Com").email == "owner@cornershop.com"


def test_product_update_has_no_stock_fields():
    assert "stock_quantity" not in ProductUpdate.model_fields
    assert "initial_quantity" not in ProductUpdate.model_fields


def test_stock_transaction_rejects_unknown_type():
    with pytest.raises(ValidationError):
        StockTransactionCreate.model_validate({"productId": "4b1d8f6e-7f55-4a5c-9d8e-2b0f3f1f0a10", "type": "gift", "quantity": 1})
