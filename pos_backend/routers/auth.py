import logging
from datetime import datetime
from fastapi import APIRouter, HTTPException, status, Depends
from fastapi.security import OAuth2PasswordRequestForm

from pos_backend.models.otp import Otp
from pos_backend.models.user import User
from pos_backend.schemas.user import ForgotPasswordRequest, VerifyOtpRequest, ResetPasswordRequest
from pos_backend.core.email import send_otp_email
from pos_backend.core.security import generate_otp, otp_expiry, get_password_hash
from pos_backend.services.accounts import authenticate, issue_access_token

router = APIRouter()
logger = logging.getLogger(__name__)


async def _live_otp(email: str, code: str) -> Otp:
    record = await Otp.find_one(Otp.email == email, Otp.otp == code)
    if not record:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OTP.")
    if record.is_expired():
        await record.delete()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="OTP has expired.")
    return record


# ---------------------------------------------------------
# 1. LOGIN ENDPOINT (OAuth2 form, used by the docs "Authorize" button)
# ---------------------------------------------------------
@router.post("/login")
async def login(form_data: OAuth2PasswordRequestForm = Depends()):
    """The `username` field accepts either a username or an email address."""
    identifier = form_data.username.strip()
    if "@" in identifier:
        user = await authenticate(form_data.password, email=identifier)
    else:
        user = await authenticate(form_data.password, username=identifier)

    return {"access_token": issue_access_token(user), "token_type": "bearer"}


# ---------------------------------------------------------
# 2. FORGOT PASSWORD (emails a one-time code)
# ---------------------------------------------------------
@router.post("/forgot-password")
async def forgot_password(request: ForgotPasswordRequest):
    user = await User.find_one(User.email == request.email)

    # Same answer whether or not the account exists
    if user:
        # One live code per email
        await Otp.find(Otp.email == request.email).delete()

        code = generate_otp()
        await Otp(email=request.email, otp=code, expires_at=otp_expiry()).insert()
        await send_otp_email(request.email, code, user.username)
    else:
        logger.info("Password reset requested for unknown email %s", request.email)

    return {"message": "If that email exists, an OTP has been sent."}


# ---------------------------------------------------------
# 3. VERIFY OTP (lets the client move to the new-password screen)
# ---------------------------------------------------------
@router.post("/verify-otp")
async def verify_otp(request: VerifyOtpRequest):
    await _live_otp(request.email, request.otp)
    return {"message": "OTP verified."}


# ---------------------------------------------------------
# 4. RESET PASSWORD (consumes the OTP)
# ---------------------------------------------------------
@router.post("/reset-password")
async def reset_password(request: ResetPasswordRequest):
    await _live_otp(request.email, request.otp)

    user = await User.find_one(User.email == request.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")

    await user.set({
        User.hashed_password: get_password_hash(request.password),
        User.updated_at: datetime.utcnow(),
    })
    await Otp.find(Otp.email == request.email).delete()
    logger.info("Password reset for %s", user.username)

    return {"message": "Password reset successful."}
