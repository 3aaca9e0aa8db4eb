from datetime import datetime, timedelta

import pytest

from carebook.models.notification import Notification, NotificationType, DeliveryStatus

from .conftest import auth_headers

def add_notification(db, minutes_ago, patient="patient-1", doctor="doctor-1",
                     type=NotificationType.APPOINTMENT_CREATED,
                     status=DeliveryStatus.SENT, read=False):
    notification = Notification(
        appointment_id=f"appt-{minutes_ago}",
        patient_id=patient,
        doctor_id=doctor,
        message=f"Notification {minutes_ago}",
        type=type,
        status=status,
        read=read,
        created_at=datetime(2030, 1, 1) - timedelta(minutes=minutes_ago),
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification

class TestUserNotifications:

    def test_latest_first(self, notification_client, db_session):
        add_notification(db_session, 30)
        add_notification(db_session, 10)
        add_notification(db_session, 20)
        add_notification(db_session, 5, patient="patient-2", doctor="doctor-2")

        response = notification_client.get(
            "/api/v1/notifications/patient-1", headers=auth_headers("patient-1")
        )
        assert response.status_code == 200

        body = response.json()
        assert body["success"] is True
        assert body["count"] == 3
        assert [n["message"] for n in body["data"]] == [
            "Notification 10", "Notification 20", "Notification 30"
        ]

    def test_doctor_sees_their_notifications(self, notification_client, db_session):
        add_notification(db_session, 1, doctor="doctor-1")
        add_notification(db_session, 2, doctor="doctor-2")

        response = notification_client.get(
            "/api/v1/notifications/doctor-1", headers=auth_headers("doctor-1")
        )
        assert response.status_code == 200
        assert [n["doctorId"] for n in response.json()["data"]] == ["doctor-1"]

    def test_at_most_fifty(self, notification_client, db_session):
        for minutes_ago in range(60):
            add_notification(db_session, minutes_ago)

        response = notification_client.get(
            "/api/v1/notifications/patient-1", headers=auth_headers("patient-1")
        )
        body = response.json()
        assert body["count"] == 50
        assert len(body["data"]) == 50
        created = [n["createdAt"] for n in body["data"]]
        assert created == sorted(created, reverse=True)
        assert all(c.endswith("Z") for c in created)
        assert body["data"][0]["message"] == "Notification 0"

    def test_filter_by_type_and_read(self, notification_client, db_session):
        add_notification(db_session, 1, type=NotificationType.APPOINTMENT_UPDATED, read=True)
        add_notification(db_session, 2, type=NotificationType.APPOINTMENT_UPDATED)
        add_notification(db_session, 3, type=NotificationType.APPOINTMENT_CREATED, read=True)

        response = notification_client.get(
            "/api/v1/notifications/patient-1",
            params={"type": "APPOINTMENT_UPDATED"},
            headers=auth_headers("patient-1")
        )
        assert {n["type"] for n in response.json()["data"]} == {"APPOINTMENT_UPDATED"}
        assert response.json()["count"] == 2

        response = notification_client.get(
            "/api/v1/notifications/patient-1",
            params={"type": "APPOINTMENT_UPDATED", "read": "false"},
            headers=auth_headers("patient-1")
        )
        assert [n["message"] for n in response.json()["data"]] == ["Notification 2"]

    def test_invalid_type_filter(self, notification_client):
        response = notification_client.get(
            "/api/v1/notifications/patient-1",
            params={"type": "SOMETHING"},
            headers=auth_headers("patient-1")
        )
        assert response.status_code == 400

    def test_other_user_forbidden(self, notification_client, db_session):
        add_notification(db_session, 1)

        response = notification_client.get(
            "/api/v1/notifications/patient-1", headers=auth_headers("patient-2")
        )
        assert response.status_code == 403

    def test_admin_can_read_any_user(self, notification_client, db_session):
        add_notification(db_session, 1)

        response = notification_client.get(
            "/api/v1/notifications/patient-1", headers=auth_headers("admin-1")
        )
        assert response.status_code == 200
        assert response.json()["count"] == 1

    def test_requires_token(self, notification_client):
        response = notification_client.get("/api/v1/notifications/patient-1")
        assert response.status_code == 401

    def test_invalid_token(self, notification_client):
        response = notification_client.get(
            "/api/v1/notifications/patient-1",
            headers={"Authorization": "Bearer nope"}
        )
        assert response.status_code == 401

class TestStats:

    def test_admin_stats(self, notification_client, db_session):
        add_notification(db_session, 1, status=DeliveryStatus.SENT, read=True)
        add_notification(db_session, 2, status=DeliveryStatus.SENT)
        add_notification(db_session, 3, status=DeliveryStatus.FAILED)
        add_notification(db_session, 4, status=DeliveryStatus.PENDING, patient="patient-2")

        response = notification_client.get(
            "/api/v1/notifications/stats", headers=auth_headers("admin-1")
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"total": 4, "sent": 2, "read": 1, "unread": 3},
        }

    @pytest.mark.parametrize("user", ["patient-1", "doctor-1"])
    def test_non_admin_forbidden(self, notification_client, user):
        response = notification_client.get(
            "/api/v1/notifications/stats", headers=auth_headers(user)
        )
        assert response.status_code == 403

class TestMarkRead:

    def test_recipient_marks_read(self, notification_client, db_session):
        notification = add_notification(db_session, 1)

        response = notification_client.patch(
            f"/api/v1/notifications/{notification.id}/read",
            headers=auth_headers("doctor-1")
        )
        assert response.status_code == 200
        assert response.json()["data"]["read"] is True

        unread = notification_client.get(
            "/api/v1/notifications/patient-1",
            params={"read": "false"},
            headers=auth_headers("patient-1")
        )
        assert unread.json()["count"] == 0

    def test_stranger_forbidden(self, notification_client, db_session):
        notification = add_notification(db_session, 1)

        response = notification_client.patch(
            f"/api/v1/notifications/{notification.id}/read",
            headers=auth_headers("patient-2")
        )
        assert response.status_code == 403

    def test_unknown_notification(self, notification_client):
        response = notification_client.patch(
            "/api/v1/notifications/missing/read",
            headers=auth_headers("patient-1")
        )
        assert response.status_code == 404
