from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..models.user import User
from ..core.security import (
    verify_password, get_password_hash, create_user_token,
    UserRole, Token, AuthenticationError, AuthorizationError
)
from ..core.exceptions import NotFoundError, ConflictError, BadRequestError
from ..schemas.auth import UserSignup, DoctorSignup, UserLogin, DoctorUpdate

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserSignup) -> User:
        """Register a new patient (or self-declared doctor) account."""
        self._ensure_email_available(user_data.email)

        new_user = User(
            fullname=user_data.fullname,
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            role=UserRole(user_data.role),
        )

        self.db.add(new_user)
        self.db.commit()
        self.db.refresh(new_user)

        logger.info(f"User created: {new_user.id} ({new_user.email})")
        return new_user

    def register_doctor(self, doctor_data: DoctorSignup) -> User:
        """Register a new doctor with professional details."""
        self._ensure_email_available(doctor_data.email)

        doctor = User(
            fullname=doctor_data.fullname,
            email=doctor_data.email,
            password_hash=get_password_hash(doctor_data.password),
            role=UserRole.DOCTOR,
            speciality=doctor_data.speciality,
            experience=doctor_data.experience,
            consultation_fee=doctor_data.consultation_fee,
        )

        self.db.add(doctor)
        self.db.commit()
        self.db.refresh(doctor)

        logger.info(f"Doctor registered: {doctor.id} ({doctor.email})")
        return doctor

    def authenticate_user(
        self, login_data: UserLogin, required_role: Optional[UserRole] = None
    ) -> Token:
        """Authenticate user and return an access token."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        if not user or (required_role and user.role != required_role):
            logger.warning(f"Login failed: unknown account {login_data.email}")
            raise AuthenticationError("Invalid credentials")

        if not verify_password(login_data.password, user.password_hash):
            logger.warning(f"Login failed: invalid password for {login_data.email}")
            raise AuthenticationError("Invalid credentials")

        logger.info(f"User login successful: {user.id}")
        return create_user_token(user.id, user.email, user.role)

    def issue_token(self, user: User) -> Token:
        return create_user_token(user.id, user.email, user.role)

    def get_doctor(self, doctor_id: str) -> User:
        """Look up an identity by id for doctor lookups.

        The role is not filtered here; callers decide whether the identity
        they got back is acceptable as a doctor.
        """
        user = self.db.query(User).filter(User.id == doctor_id).first()
        if not user:
            logger.warning(f"Doctor lookup failed: {doctor_id} not found")
            raise NotFoundError("Doctor not found")
        return user

    def list_doctors(self) -> List[User]:
        return self.db.query(User).filter(
            User.role == UserRole.DOCTOR
        ).order_by(User.fullname).all()

    def update_doctor(self, doctor_id: str, update: DoctorUpdate, current_user: User) -> User:
        """Apply a partial update to a doctor's profile."""
        if update.role is not None:
            logger.warning(f"Doctor update rejected: role change attempted on {doctor_id}")
            raise BadRequestError("Role cannot be modified")

        if current_user.role != UserRole.ADMIN and current_user.id != doctor_id:
            raise AuthorizationError("Not authorized to update this doctor")

        doctor = self.db.query(User).filter(
            User.id == doctor_id,
            User.role == UserRole.DOCTOR
        ).first()
        if not doctor:
            raise NotFoundError("Doctor not found")

        changes = update.model_dump(exclude_unset=True, exclude_none=True, exclude={"role"})

        if "email" in changes and changes["email"] != doctor.email:
            self._ensure_email_available(changes["email"])

        for field, value in changes.items():
            setattr(doctor, field, value)

        self.db.commit()
        self.db.refresh(doctor)

        logger.info(f"Doctor updated: {doctor.id} fields={sorted(changes)}")
        return doctor

    def _ensure_email_available(self, email: str):
        existing_user = self.db.query(User).filter(User.email == email).first()
        if existing_user:
            logger.warning(f"Signup failed: email already exists {email}")
            raise ConflictError("Email already exists")
