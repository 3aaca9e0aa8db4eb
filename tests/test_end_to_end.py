"""Booking against the real auth service, with events fed to the delivery worker."""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from carebook.auth_main import app as auth_app
from carebook.booking_main import app as booking_app
from carebook.api.deps import get_identity_client, get_notification_channel
from carebook.core.database import SessionLocal
from carebook.models.notification import Notification, DeliveryStatus
from carebook.services.identity_client import IdentityClient
from carebook.services.notification_worker import NotificationWorker, SimulatedDeliverySender

@pytest.fixture
def auth_client(test_db):
    return TestClient(auth_app, base_url="http://testserver")

@pytest.fixture
def booking(test_db, channel):
    identity_client = IdentityClient(
        base_url="http://auth.test/api/v1",
        transport=httpx.ASGITransport(app=auth_app),
    )
    booking_app.dependency_overrides[get_identity_client] = lambda: identity_client
    booking_app.dependency_overrides[get_notification_channel] = lambda: channel
    yield TestClient(booking_app, base_url="http://testserver")
    booking_app.dependency_overrides.clear()

def signup(auth_client, path, body):
    response = auth_client.post(path, json=body)
    assert response.status_code == 201
    login = auth_client.post(
        path.replace("signup", "login"),
        json={"email": body["email"], "password": body["password"]}
    )
    assert login.status_code == 200
    return {"Authorization": f"Bearer {login.json()['token']}"}

def test_booking_lifecycle(auth_client, booking, channel):
    patient_headers = signup(auth_client, "/api/v1/patients/signup", {
        "fullname": "Alice Patient", "email": "alice@example.com", "password": "secret123",
    })
    doctor_headers = signup(auth_client, "/api/v1/doctors/signup", {
        "fullname": "Carol Doctor", "email": "carol@example.com", "password": "secret123",
        "speciality": "Cardiology",
    })
    doctor_id = auth_client.get("/api/v1/identity", headers=doctor_headers).json()["user"]["id"]

    slot = {"doctorId": doctor_id, "dateTime": "2030-01-01T10:00:00Z"}

    created = booking.post("/api/v1/appointments", json=slot, headers=patient_headers)
    assert created.status_code == 201
    appointment_id = created.json()["appointment"]["id"]

    assert booking.post("/api/v1/appointments", json=slot, headers=patient_headers).status_code == 409

    confirmed = booking.patch(
        f"/api/v1/appointments/{appointment_id}",
        json={"status": "CONFIRMED"},
        headers=doctor_headers
    )
    assert confirmed.status_code == 200

    listed = booking.get("/api/v1/appointments", headers=doctor_headers)
    assert [a["status"] for a in listed.json()["appointments"]] == ["CONFIRMED"]

    # A patient id is not accepted as a doctor
    patient_id = created.json()["appointment"]["patientId"]
    not_a_doctor = dict(slot, doctorId=patient_id)
    assert booking.post("/api/v1/appointments", json=not_a_doctor, headers=patient_headers).status_code == 404

    assert len(channel.events) == 2

    worker = NotificationWorker(None, SessionLocal, SimulatedDeliverySender(delay_seconds=0))
    for event in channel.events:
        asyncio.run(worker.handle_message(event.model_dump_json(by_alias=True)))

    db = SessionLocal()
    try:
        stored = db.query(Notification).all()
        assert len(stored) == 2
        assert {n.status for n in stored} == {DeliveryStatus.SENT}
        assert {n.doctor_id for n in stored} == {doctor_id}
    finally:
        db.close()
