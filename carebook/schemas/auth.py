from pydantic import EmailStr, Field
from typing import Optional, Literal
from datetime import datetime

from .common import CamelModel
from ..core.security import UserRole


class UserSignup(CamelModel):
    fullname: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["PATIENT", "DOCTOR"] = "PATIENT"


class DoctorSignup(CamelModel):
    fullname: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    speciality: Optional[str] = Field(None, max_length=100)
    experience: Optional[int] = Field(None, ge=0)
    consultation_fee: Optional[float] = Field(None, ge=0)


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class DoctorUpdate(CamelModel):
    fullname: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    speciality: Optional[str] = Field(None, max_length=100)
    experience: Optional[int] = Field(None, ge=0)
    consultation_fee: Optional[float] = Field(None, ge=0)
    # Accepted only so that an attempt to change it can be rejected explicitly
    role: Optional[str] = None


class Identity(CamelModel):
    """Public view of a user record, shared by every service."""

    id: str
    fullname: str
    email: str
    role: UserRole
    speciality: Optional[str] = None
    experience: Optional[int] = None
    consultation_fee: Optional[float] = None
    created_at: Optional[datetime] = None


class DoctorSummary(CamelModel):
    id: str
    fullname: str
    speciality: Optional[str] = None
    experience: Optional[int] = None
    consultation_fee: Optional[float] = None


class SignupResponse(CamelModel):
    message: str
    user_id: str
    token: str


class DoctorSignupResponse(CamelModel):
    message: str
    doctor: Identity


class LoginResponse(CamelModel):
    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int


class IdentityResponse(CamelModel):
    message: str
    user: Identity


class DoctorResponse(CamelModel):
    message: str
    doctor: Identity

