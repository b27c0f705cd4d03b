"""
API request and response models for PitchMatch REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
market/models.py, which own the internal domain representation. Route
handlers map between the two.

Every success body uses the envelope {success, message, data?}; every error
body uses {success: false, message, code, errors?, stack?}.
"""

from dataclasses import asdict
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from auth.models import User
from market.models import Pitch

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# bcrypt ignores everything past 72 bytes.
_PASSWORD_MAX = 72
_PASSWORD_MIN = 6


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    founder = "founder"
    investor = "investor"
    community = "community"


class StageEnum(str, Enum):
    pre_seed = "Pre-Seed"
    seed = "Seed"
    series_a = "Series A"
    series_b = "Series B"
    series_c = "Series C"
    growth = "Growth"
    ipo = "IPO"


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------


class InvestmentPreferencesModel(BaseModel):
    """Investor targeting preferences."""

    model_config = ConfigDict(str_strip_whitespace=True)

    industries: list[str] = Field(default_factory=list, max_length=20)
    stages: list[StageEnum] = Field(default_factory=list)
    min_investment: float = Field(default=0, ge=0)
    max_investment: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_range(self) -> "InvestmentPreferencesModel":
        if self.max_investment is not None and self.max_investment < self.min_investment:
            raise ValueError("max_investment must be greater than or equal to min_investment")
        return self

    def to_domain_dict(self) -> dict:
        """Plain dict with enum values unwrapped, as stored by UserStore."""
        return {
            "industries": list(self.industries),
            "stages": [s.value for s in self.stages],
            "min_investment": self.min_investment,
            "max_investment": self.max_investment,
        }


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=_PASSWORD_MIN, max_length=_PASSWORD_MAX)
    role: RoleEnum = RoleEnum.founder


class InvestorSignupRequest(BaseModel):
    """Request body for POST /auth/signup/investor. The role is always investor."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=_PASSWORD_MIN, max_length=_PASSWORD_MAX)
    investment_preferences: Optional[InvestmentPreferencesModel] = None


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)


class ProfileUpdate(BaseModel):
    """Request body for PUT /auth/profile. Only supplied fields are changed."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[RoleEnum] = None
    avatar: Optional[str] = Field(default=None, max_length=1000)
    bio: Optional[str] = Field(default=None, max_length=500)
    location: Optional[str] = Field(default=None, max_length=255)
    website: Optional[str] = Field(default=None, max_length=255)
    linkedin: Optional[str] = Field(default=None, max_length=255)
    twitter: Optional[str] = Field(default=None, max_length=255)
    investment_preferences: Optional[InvestmentPreferencesModel] = None


class PitchCreate(BaseModel):
    """Request body for POST /api/startups."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=5000)
    industry: str = Field(min_length=1, max_length=100)
    stage: StageEnum


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of an account. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: str
    avatar: Optional[str] = None
    is_verified: bool = False
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    oauth_provider: Optional[str] = None
    created_at: str = ""
    investment_preferences: Optional[InvestmentPreferencesModel] = None
    interested_pitches: Optional[list[int]] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Build the public view. Investor-only fields are omitted for other roles."""
        is_investor = user.role == RoleEnum.investor.value
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            avatar=user.avatar,
            is_verified=user.is_verified,
            bio=user.bio,
            location=user.location,
            website=user.website,
            linkedin=user.linkedin,
            twitter=user.twitter,
            oauth_provider=user.oauth_provider,
            created_at=user.created_at or "",
            investment_preferences=(
                InvestmentPreferencesModel(**asdict(user.investment_preferences)) if is_investor else None
            ),
            interested_pitches=list(user.interested_pitches) if is_investor else None,
        )


class AuthData(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class AuthResponse(BaseModel):
    """Response for signup and login: a fresh token plus the account."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: AuthData


class UserEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: UserResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class OAuthProviderInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    label: str


class ProvidersEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = "OAuth providers"
    data: list[OAuthProviderInfo]


class FounderSummary(BaseModel):
    """The founder fields embedded in pitch listings."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    avatar: Optional[str] = None


class PitchResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str
    industry: str
    stage: str
    founder_id: int
    founder: Optional[FounderSummary] = None
    created_at: str

    @classmethod
    def from_pitch(cls, pitch: Pitch, founder: Optional[User] = None) -> "PitchResponse":
        """Build a PitchResponse; founder is None when the account no longer exists."""
        return cls(
            id=pitch.id,
            name=pitch.name,
            description=pitch.description,
            industry=pitch.industry,
            stage=pitch.stage,
            founder_id=pitch.founder_id,
            founder=(
                FounderSummary(id=founder.id, name=founder.name, email=founder.email, avatar=founder.avatar)
                if founder is not None
                else None
            ),
            created_at=pitch.created_at,
        )


class PitchEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: PitchResponse


class PitchListEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: list[PitchResponse]


class InterestData(BaseModel):
    model_config = ConfigDict(frozen=True)

    pitch_id: int
    added: bool
    interested_pitches: list[int]


class InterestEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: InterestData


class HealthResponse(BaseModel):
    """Response for GET / and GET /api/health."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    version: str
    timestamp: str


class ErrorResponse(BaseModel):
    """Envelope returned on 4xx/5xx responses.

    errors carries per-field validation problems; stack is only filled in
    debug mode.
    """

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    code: str
    errors: Optional[list[dict]] = None
    stack: Optional[str] = None
