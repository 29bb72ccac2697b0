from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import EmailStr, Field

from scorehub.models.common import CamelModel


class PredictionStatus(str, Enum):
    PENDING = "PENDING"
    WON = "WON"  # exact score
    PARTIAL = "PARTIAL"  # correct result direction only
    LOST = "LOST"


class UserInDB(CamelModel):
    """Full user document as stored in MongoDB."""
    username: str
    email: EmailStr
    hashed_password: str
    is_verified: bool = False
    otp: Optional[str] = None
    otp_expires: Optional[datetime] = None
    reset_token: Optional[str] = None
    reset_token_expires: Optional[datetime] = None
    virtual_currency: float = 1000.0
    points: int = 0
    predictions: list[dict] = []
    created_at: datetime
    updated_at: datetime


# ---------- Account requests ----------

class RegisterRequest(CamelModel):
    username: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    confirm_password: str


class VerifyOtpRequest(CamelModel):
    email: EmailStr
    otp: str = Field(min_length=1)


class SignInRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ResetRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    email: EmailStr
    reset_token: str = Field(min_length=1)
    new_password: str = Field(min_length=1)


class ProfileUpdate(CamelModel):
    username: str = Field(min_length=1)


# ---------- Predictions ----------

class PredictionCreate(CamelModel):
    """Presence of the scores is checked by the service (0 is a valid score)."""
    match_id: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    match_date: Optional[datetime] = None
    competition: Optional[str] = None


class PredictionResponse(CamelModel):
    match_id: str
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    home_score: int
    away_score: int
    status: str
    points: int
    match_date: Optional[datetime] = None
    competition: Optional[str] = None
    submitted_at: Optional[datetime] = None
    evaluated_at: Optional[datetime] = None


class SubmitPredictionResponse(CamelModel):
    message: str
    prediction: PredictionResponse


class EvaluateResponse(CamelModel):
    message: str
    points_earned: int
    predictions: list[PredictionResponse]


class LeaderboardEntry(CamelModel):
    rank: int
    username: str
    points: int


# ---------- Responses ----------

class PublicUser(CamelModel):
    id: str
    username: str
    email: str


class SignInResponse(CamelModel):
    message: str
    token: str
    user: PublicUser


class UserProfileResponse(CamelModel):
    """Profile data returned to the client. Never carries the password hash or codes."""
    id: str
    username: str
    email: str
    is_verified: bool
    virtual_currency: float
    points: int
    predictions: list[PredictionResponse] = []
    created_at: Optional[datetime] = None


def prediction_to_response(doc: dict) -> PredictionResponse:
    return PredictionResponse(**{k: v for k, v in doc.items() if k in PredictionResponse.model_fields})


def user_to_profile(user: dict) -> UserProfileResponse:
    return UserProfileResponse(
        id=str(user["_id"]),
        username=user["username"],
        email=user["email"],
        is_verified=user.get("is_verified", False),
        virtual_currency=user.get("virtual_currency", 0.0),
        points=user.get("points", 0),
        predictions=[prediction_to_response(p) for p in user.get("predictions", [])],
        created_at=user.get("created_at"),
    )
