import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pymongo import ReturnDocument

from scorehub.config import settings
from scorehub.database import get_db
from scorehub.models.user import (
    PublicUser,
    RegisterRequest,
    ResetPasswordRequest,
    ResetRequest,
    SignInRequest,
    SignInResponse,
    VerifyOtpRequest,
)
from scorehub.services.audit_service import log_audit
from scorehub.services.auth_service import (
    create_access_token,
    generate_code,
    hash_password,
    verify_password,
)
from scorehub.services.email_service import (
    EmailDeliveryError,
    send_password_reset_email,
    send_verification_email,
)
from scorehub.utils import ensure_utc, utcnow

logger = logging.getLogger("scorehub.auth")
router = APIRouter(prefix="/api/user", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, request: Request, db=Depends(get_db)):
    """Create (or re-issue the code for) an unverified account and email an OTP."""
    if body.password != body.confirm_password:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Passwords do not match")

    existing = await db.users.find_one({"email": body.email}, {"is_verified": 1})
    if existing and existing.get("is_verified"):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "User already registered")

    now = utcnow()
    otp = generate_code()
    user = await db.users.find_one_and_update(
        {"email": body.email},
        {
            "$set": {
                "username": body.username,
                "hashed_password": hash_password(body.password),
                "otp": otp,
                "otp_expires": now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
                "is_verified": False,
                "updated_at": now,
            },
            "$setOnInsert": {
                "virtual_currency": settings.INITIAL_BALANCE,
                "points": 0,
                "predictions": [],
                "created_at": now,
            },
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )

    try:
        await send_verification_email(body.email, body.username, otp)
    except EmailDeliveryError:
        await db.users.delete_one({"_id": user["_id"]})
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send verification email. Please try again.",
        )

    user_id = str(user["_id"])
    await log_audit(action="REGISTER", actor_id=user_id, request=request)
    logger.info("User registered: %s", user_id)
    return {"message": "Please check your email for verification code"}


@router.post("/verify-otp")
async def verify_otp(body: VerifyOtpRequest, request: Request, db=Depends(get_db)):
    user = await db.users.find_one({"email": body.email})
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    if user.get("is_verified"):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Email already verified")
    if not user.get("otp") or not secrets.compare_digest(user["otp"].encode(), body.otp.encode()):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid OTP")
    if not user.get("otp_expires") or ensure_utc(user["otp_expires"]) < utcnow():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "OTP has expired")

    await db.users.update_one(
        {"_id": user["_id"]},
        {
            "$set": {"is_verified": True, "updated_at": utcnow()},
            "$unset": {"otp": "", "otp_expires": ""},
        },
    )
    await log_audit(action="EMAIL_VERIFIED", actor_id=str(user["_id"]), request=request)
    return {"message": "Email verified successfully"}


@router.post("/signin", response_model=SignInResponse)
async def signin(body: SignInRequest, request: Request, db=Depends(get_db)):
    user = await db.users.find_one({"email": body.email})
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    if not user.get("is_verified"):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Please verify your email first")

    user_id = str(user["_id"])
    if not verify_password(body.password, user["hashed_password"]):
        await log_audit(action="LOGIN_FAILED", actor_id=user_id, request=request)
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid password")

    token = create_access_token(user_id, user["email"])
    await log_audit(action="LOGIN_SUCCESS", actor_id=user_id, request=request)
    logger.info("User signed in: %s", user_id)
    return SignInResponse(
        message="Sign in successful",
        token=token,
        user=PublicUser(id=user_id, username=user["username"], email=user["email"]),
    )


# ---------- Password reset ----------

@router.post("/request-reset")
async def request_reset(body: ResetRequest, request: Request, db=Depends(get_db)):
    user = await db.users.find_one({"email": body.email}, {"_id": 1})
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")

    code = generate_code()
    await db.users.update_one(
        {"_id": user["_id"]},
        {"$set": {
            "reset_token": code,
            "reset_token_expires": utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        }},
    )

    try:
        await send_password_reset_email(body.email, code)
    except EmailDeliveryError:
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send reset email. Please try again.",
        )

    await log_audit(action="PASSWORD_RESET_REQUESTED", actor_id=str(user["_id"]), request=request)
    return {"message": "Password reset instructions sent to your email"}


@router.get("/verify-reset-token/{token}")
async def verify_reset_token(token: str, db=Depends(get_db)):
    user = await db.users.find_one(
        {"reset_token": token, "reset_token_expires": {"$gt": utcnow()}},
        {"_id": 1},
    )
    if not user:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid or expired reset token")
    return {"message": "Valid reset token"}


@router.post("/reset-password")
async def reset_password(body: ResetPasswordRequest, request: Request, db=Depends(get_db)):
    user = await db.users.find_one_and_update(
        {
            "email": body.email,
            "reset_token": body.reset_token,
            "reset_token_expires": {"$gt": utcnow()},
        },
        {
            "$set": {"hashed_password": hash_password(body.new_password), "updated_at": utcnow()},
            "$unset": {"reset_token": "", "reset_token_expires": ""},
        },
        projection={"_id": 1},
    )
    if not user:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid or expired reset token")

    await log_audit(action="PASSWORD_RESET", actor_id=str(user["_id"]), request=request)
    return {"message": "Password reset successful"}
