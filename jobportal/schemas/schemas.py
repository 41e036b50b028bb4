"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Payload shapes (comma-joined lists, casing, whitespace) are normalized
here so services only ever see one representation.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Any, Dict
from enum import Enum


def split_csv(value: Any) -> Any:
    """'a, b,,c' -> ['a', 'b', 'c']; lists pass through trimmed."""
    if value is None:
        return value
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return value


# ============================================================
# ENUMS
# ============================================================

class OtpPurpose(str, Enum):
    email_verification = "email_verification"
    password_reset = "password_reset"


class ExperienceLevel(str, Enum):
    entry = "Entry Level"
    mid = "Mid Level"
    senior = "Senior"
    lead = "Lead"
    manager = "Manager"
    executive = "Executive"


class JobType(str, Enum):
    full_time = "Full-time"
    part_time = "Part-time"
    contract = "Contract"
    internship = "Internship"
    temporary = "Temporary"


class JobCategory(str, Enum):
    programming = "Programming"
    data_science = "Data Science"
    designing = "Designing"
    networking = "Networking"
    management = "Management"
    marketing = "Marketing"
    cybersecurity = "Cybersecurity"


class ApplicationStatus(str, Enum):
    pending = "pending"
    shortlisted = "shortlisted"
    rejected = "rejected"
    hired = "hired"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.]+$")
    email: EmailStr
    password: str = Field(..., min_length=6)
    fullname: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = None

    @field_validator("username")
    @classmethod
    def lower_username(cls, v: str) -> str:
        return v.strip().lower()

class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Email or username")
    password: str

class ForgotPasswordRequest(BaseModel):
    email: EmailStr

class VerifyOtpRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Email or username")
    otp: str = Field(..., min_length=4, max_length=10)
    purpose: OtpPurpose = OtpPurpose.email_verification
    new_password: Optional[str] = Field(None, min_length=6)

    @model_validator(mode="after")
    def reset_needs_password(self):
        if self.purpose == OtpPurpose.password_reset and not self.new_password:
            raise ValueError("new_password is required for password reset")
        return self

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)

class SendOtpRequest(BaseModel):
    phone_number: str = Field(..., pattern=r"^\+?[0-9]{7,15}$")

class UpdatePhoneRequest(BaseModel):
    otp: str = Field(..., min_length=4, max_length=10)

class OAuthImportRequest(BaseModel):
    external_id: str = Field(..., min_length=1)
    email: EmailStr
    fullname: Optional[str] = ""
    provider: str = "oauth"
    profile_photo: Optional[str] = ""


# ============================================================
# USER SCHEMAS
# ============================================================

class ProfileUpdate(BaseModel):
    fullname: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    skills: Optional[List[str]] = None
    experience: Optional[List[Dict[str, Any]]] = None
    education: Optional[List[Dict[str, Any]]] = None
    profile_photo: Optional[str] = None
    resume: Optional[str] = None

    @field_validator("skills", mode="before")
    @classmethod
    def normalize_skills(cls, v: Any) -> Any:
        return split_csv(v)


# ============================================================
# POST SCHEMAS
# ============================================================

class PostCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=5000)
    image_url: Optional[str] = ""

class CommentCreate(BaseModel):
    text_message: str = Field(..., min_length=1, max_length=2000)


# ============================================================
# RECRUITER SCHEMAS
# ============================================================

class RecruiterSignup(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6)
    company_logo: Optional[str] = ""

    @field_validator("company_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

class RecruiterLogin(BaseModel):
    email: EmailStr
    password: str

class RecruiterVerifyOtp(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=10)

class RecruiterResendOtp(BaseModel):
    email: EmailStr

class RecruiterResetPassword(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    password_confirm: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Passwords do not match")
        return self

class RecruiterUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    company_logo: Optional[str] = None


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=1)
    requirements: List[str] = []
    skills: List[str] = []
    experience_level: ExperienceLevel
    location: str = Field(..., min_length=1)
    job_type: JobType
    category: JobCategory
    salary: Optional[float] = Field(None, ge=0)
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)

    @field_validator("requirements", "skills", mode="before")
    @classmethod
    def normalize_list(cls, v: Any) -> Any:
        return split_csv(v) if v is not None else []


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    resume: Optional[str] = ""
    cover_letter: Optional[str] = Field("", max_length=5000)

class ApplicationStatusUpdate(BaseModel):
    application_id: str
    status: ApplicationStatus


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
