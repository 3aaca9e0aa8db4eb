from .user import User
from .appointment import Appointment, AppointmentStatus, TERMINAL_STATUSES
from .notification import Notification, NotificationType, DeliveryStatus
