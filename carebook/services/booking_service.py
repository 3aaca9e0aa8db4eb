"""
Appointment booking workflow.

Creates appointments after checking the caller and doctor against the
Credential Store, enforces one active appointment per (doctor, time) slot,
applies the role-specific status ordering on updates and publishes a
notification event for every change.
"""
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..models.appointment import Appointment, AppointmentStatus, TERMINAL_STATUSES
from ..models.notification import NotificationType
from ..core.security import UserRole, AuthenticationError, AuthorizationError
from ..core.exceptions import NotFoundError, ConflictError, InvalidStatusError
from ..core.pubsub import NotificationChannel, DispatchOutcome
from ..schemas.auth import Identity
from ..schemas.appointment import AppointmentCreate
from ..schemas.notification import NotificationEvent
from .identity_client import IdentityClient

logger = logging.getLogger(__name__)

# Allowed target statuses per role. List position is the ordering: a status
# may only stay where it is or move to a later position.
DOCTOR_STATUS_ORDER = [
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.NO_SHOW,
]

PATIENT_STATUS_ORDER = [
    AppointmentStatus.PENDING,
    AppointmentStatus.CANCELLED,
]

STATUS_ORDER_BY_ROLE = {
    UserRole.DOCTOR: DOCTOR_STATUS_ORDER,
    UserRole.PATIENT: PATIENT_STATUS_ORDER,
}


def _names(statuses) -> str:
    return ", ".join(s.value for s in statuses)


def check_status_transition(
    role: UserRole, current: AppointmentStatus, requested: AppointmentStatus
):
    """Raise unless ``role`` may move an appointment from ``current`` to ``requested``."""
    order = STATUS_ORDER_BY_ROLE.get(role)
    if order is None:
        raise AuthorizationError("Not authorized to update this appointment")

    if requested not in order:
        raise InvalidStatusError(f"Invalid status. Must be one of: {_names(order)}")

    # A current status outside the role's list cannot be moved by that role
    if current not in order or order.index(current) > order.index(requested):
        raise InvalidStatusError(
            f"Invalid status. Must be in this ORDER and one of: {_names(order)}"
        )


class BookingService:
    def __init__(
        self,
        db: Session,
        identity_client: IdentityClient,
        channel: Optional[NotificationChannel] = None,
    ):
        self.db = db
        self.identity_client = identity_client
        self.channel = channel

    async def resolve_identity(self, token: str) -> Identity:
        user = await self.identity_client.get_identity(token)
        if not user:
            raise AuthenticationError("Invalid user token")
        return user

    async def create_appointment(self, token: str, data: AppointmentCreate) -> Appointment:
        """Book a new PENDING appointment for the caller."""
        user = await self.resolve_identity(token)

        doctor = await self.identity_client.get_doctor(data.doctor_id, token)
        if not doctor or doctor.role != UserRole.DOCTOR:
            logger.warning(f"Booking rejected: doctor {data.doctor_id} not found")
            raise NotFoundError("Doctor not found")

        # Check-then-insert without a lock: concurrent requests for the same
        # slot can both pass this check.
        if self.find_slot_conflict(data.doctor_id, data.date_time):
            logger.warning(
                f"Time slot not available: doctor={data.doctor_id} date_time={data.date_time}"
            )
            raise ConflictError("This time slot is not available")

        appointment = Appointment(
            patient_id=user.id,
            doctor_id=data.doctor_id,
            date_time=data.date_time,
            notes=data.notes,
            status=AppointmentStatus.PENDING,
        )
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment created: {appointment.id}")

        await self._notify(
            appointment,
            NotificationType.APPOINTMENT_CREATED,
            f"Appointment created between {user.fullname} and Dr. {doctor.fullname} "
            f"on {appointment.date_time.isoformat()}",
        )
        return appointment

    def find_slot_conflict(self, doctor_id: str, date_time) -> Optional[Appointment]:
        """Return an appointment still occupying the slot, if any."""
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.date_time == date_time,
            Appointment.status.notin_(TERMINAL_STATUSES),
        ).first()

    async def list_appointments(self, token: str) -> List[Appointment]:
        """Appointments of the caller, newest slot first."""
        user = await self.resolve_identity(token)

        query = self.db.query(Appointment)
        if user.role == UserRole.DOCTOR:
            query = query.filter(Appointment.doctor_id == user.id)
        else:
            query = query.filter(Appointment.patient_id == user.id)

        appointments = query.order_by(Appointment.date_time.desc()).all()
        logger.info(f"Appointments retrieved for {user.id}: {len(appointments)}")
        return appointments

    async def update_status(
        self, token: str, appointment_id: str, new_status: AppointmentStatus
    ) -> Appointment:
        """Move an appointment to ``new_status`` on behalf of the caller."""
        user = await self.resolve_identity(token)

        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).first()
        if not appointment:
            logger.warning(f"Appointment not found: {appointment_id}")
            raise NotFoundError("Appointment not found")

        if not self._is_participant(user, appointment):
            logger.warning(
                f"User {user.id} ({user.role.value}) not authorized to update appointment {appointment_id}"
            )
            raise AuthorizationError("Not authorized to update this appointment")

        try:
            check_status_transition(user.role, appointment.status, new_status)
        except InvalidStatusError:
            logger.warning(
                f"Invalid status transition {appointment.status.value} -> {new_status.value} "
                f"by {user.role.value} on appointment {appointment_id}"
            )
            raise

        appointment.status = new_status
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} status updated to {new_status.value}")

        await self._notify(
            appointment,
            NotificationType.APPOINTMENT_UPDATED,
            f"Appointment status updated to: {new_status.value}",
        )
        return appointment

    @staticmethod
    def _is_participant(user: Identity, appointment: Appointment) -> bool:
        if user.role == UserRole.DOCTOR:
            return appointment.doctor_id == user.id
        if user.role == UserRole.PATIENT:
            return appointment.patient_id == user.id
        return False

    async def _notify(
        self, appointment: Appointment, type: NotificationType, message: str
    ) -> DispatchOutcome:
        if self.channel is None:
            logger.warning(f"No notification channel - {type.value} for {appointment.id} skipped")
            return DispatchOutcome.ENQUEUE_FAILED

        event = NotificationEvent(
            appointment_id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            message=message,
            type=type,
        )
        outcome = await self.channel.publish(event)
        if outcome is DispatchOutcome.ENQUEUE_FAILED:
            logger.warning(f"Notification {type.value} for appointment {appointment.id} not enqueued")
        return outcome
