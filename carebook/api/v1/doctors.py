from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...core.security import UserRole
from ...api.deps import get_current_user
from ...services.auth_service import AuthService
from ...schemas.auth import (
    DoctorSignup, DoctorSignupResponse, DoctorUpdate, DoctorResponse,
    DoctorSummary, UserLogin, LoginResponse, Identity
)
from ...models.user import User

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=List[DoctorSummary])
async def list_doctors(db: Session = Depends(get_db)):
    """List all registered doctors."""
    doctors = AuthService(db).list_doctors()
    return [DoctorSummary.model_validate(doctor) for doctor in doctors]

@router.post("/signup", response_model=DoctorSignupResponse, status_code=status.HTTP_201_CREATED)
async def doctor_signup(
    doctor_data: DoctorSignup,
    db: Session = Depends(get_db)
):
    """Register a new doctor."""
    doctor = AuthService(db).register_doctor(doctor_data)
    return DoctorSignupResponse(
        message="Doctor registered successfully",
        doctor=Identity.model_validate(doctor)
    )

@router.post("/login", response_model=LoginResponse)
async def doctor_login(
    login_data: UserLogin,
    db: Session = Depends(get_db)
):
    """Authenticate a doctor and return an access token."""
    token = AuthService(db).authenticate_user(login_data, required_role=UserRole.DOCTOR)
    return LoginResponse(
        message="Login successful",
        token=token.access_token,
        expires_in=token.expires_in
    )

@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a doctor's identity by id."""
    doctor = AuthService(db).get_doctor(doctor_id)
    return DoctorResponse(
        message="Doctor info",
        doctor=Identity.model_validate(doctor)
    )

@router.patch("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: str,
    update: DoctorUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a doctor's profile (the doctor themself or an admin)."""
    doctor = AuthService(db).update_doctor(doctor_id, update, current_user)
    return DoctorResponse(
        message="Doctor updated successfully",
        doctor=Identity.model_validate(doctor)
    )
