from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from src.attendance_payroll.attendance_payroll.attendance.model import AttendanceRecord
from src.attendance_payroll.attendance_payroll.database.in_memory import InMemoryUnitOfWork
from src.attendance_payroll.attendance_payroll.device_link.transport import DeviceInfo
from src.attendance_payroll.attendance_payroll.employees.model import Employee
from src.attendance_payroll.attendance_payroll.main import create_app


class FakeTransport:
    def __init__(self, device):
        self.device = device

    def connect(self):
        pass

    def disconnect(self):
        pass

    def get_info(self):
        return DeviceInfo(device_id=self.device.device_id, serial_number="SN-API")

    def get_users(self):
        return []

    def get_punches(self):
        return []


@pytest.fixture()
def uow():
    uow = InMemoryUnitOfWork()
    uow.store.employees["E1"] = Employee(
        employee_id="E1", full_name="John Doe", email="john.doe@co.com", hourly_rate=Decimal("10.00")
    )
    uow.store.attendance["r1"] = AttendanceRecord(
        record_id="r1",
        employee_id="E1",
        work_date=date(2025, 3, 3),
        clock_in=datetime(2025, 3, 3, 8, 0),
        clock_out=datetime(2025, 3, 3, 17, 0),
        total_hours=9.0,
        transaction_id="tx-1",
    )
    return uow


@pytest.fixture()
def client(monkeypatch, uow):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(uow=uow, transport_factory=FakeTransport)
    return app.test_client()


def login(client, user_id="admin-1"):
    with client.session_transaction() as s:
        s["user_id"] = user_id


def test_routes_require_an_actor(client):
    assert client.get("/api/periods").status_code == 401


def test_period_and_payroll_flow(client, uow):
    login(client)

    created = client.post("/api/periods", json={"start_date": "2025-03-01", "end_date": "2025-03-15"})
    assert created.status_code == 201
    period_id = created.get_json()["period"]["period_id"]

    unconfirmed = client.post(f"/api/periods/{period_id}/finalize", json={})
    assert unconfirmed.status_code == 400

    finalized = client.post(f"/api/periods/{period_id}/finalize", json={"confirm": True})
    assert finalized.status_code == 200
    assert finalized.get_json()["affected_record_count"] == 1

    again = client.post(f"/api/periods/{period_id}/finalize", json={"confirm": True})
    assert again.status_code == 409
    assert again.get_json()["errors"] == ["Period is already finalized or locked"]

    trail = client.get(f"/api/periods/{period_id}/audit").get_json()["entries"]
    assert [e["action"] for e in trail] == ["CREATE_ATTENDANCE_PERIOD", "FINALIZE_ATTENDANCE_PERIOD"]

    preview = client.get(f"/api/payroll/preview/{period_id}")
    assert preview.get_json()["rows"][0]["gross_pay"] == "95.00"

    calculated = client.post(f"/api/payroll/calculate/{period_id}", json={"confirm": True})
    assert calculated.status_code == 200
    payroll_id = calculated.get_json()["period"]["payroll_period_id"]
    assert calculated.get_json()["total_amount"] == "95.00"

    approved = client.post(f"/api/payroll/{payroll_id}/approve", json={"confirm": True, "notes": "ok"})
    assert approved.status_code == 200
    assert approved.get_json()["period"]["status"] == "APPROVED"

    recalc = client.post(f"/api/payroll/calculate/{period_id}", json={"confirm": True})
    assert recalc.status_code == 409
    assert recalc.get_json()["errors"] == ["Payroll already approved for this period"]


def test_bad_dates_and_unknown_ids(client):
    login(client)

    assert client.post("/api/periods", json={"start_date": "03/01/2025", "end_date": "2025-03-15"}).status_code == 400
    assert client.get("/api/periods/missing/summary").status_code == 404
    assert client.get("/api/periods/missing/audit").status_code == 404
    assert client.get("/api/payroll/preview/missing?employee_ids=E1").status_code == 404
    assert client.post("/api/payroll/missing/approve", json={"confirm": True}).status_code == 404


def test_device_routes(client):
    login(client)

    tested = client.post("/api/devices/test")
    assert tested.get_json()["connected_devices"] == 1

    status = client.get("/api/devices/status").get_json()["devices"]
    assert list(status) == ["127.0.0.1:4370"]

    info = client.get("/api/devices/127.0.0.1:4370/info")
    assert info.status_code == 200
    assert info.get_json()["device"]["serial_number"] == "SN-API"
    assert client.get("/api/devices/10.9.9.9:4370/info").status_code == 404

    assert client.post("/api/devices/reset", json={"device_id": "10.1.1.1:4370"}).status_code == 404
    assert client.post("/api/sync").get_json()["punches_fetched"] == 0


def test_employee_ids_must_be_a_list_or_string(client):
    login(client)
    period_id = client.post("/api/periods", json={"start_date": "2025-03-01", "end_date": "2025-03-15"}).get_json()[
        "period"
    ]["period_id"]
    client.post(f"/api/periods/{period_id}/finalize", json={"confirm": True})

    bad = client.post(f"/api/payroll/calculate/{period_id}", json={"confirm": True, "employee_ids": 5})

    assert bad.status_code == 400
    assert bad.get_json()["message"] == "employee_ids must be a list or a comma-separated string"

    subset = client.post(f"/api/payroll/calculate/{period_id}", json={"confirm": True, "employee_ids": ["E1"]})
    assert subset.status_code == 200
