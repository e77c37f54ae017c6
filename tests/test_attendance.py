import uuid
from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import event, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.attendance import service
from app.core.exceptions import ConflictError, ValidationError
from app.core.models import AttendanceRecord


async def test_mark_attendance_creates_record_and_ledger_row(client: AsyncClient, make_employee, auth_headers, sheet) -> None:
    asha = await make_employee("Asha Rao", "EMP01")

    response = await client.post("/api/v1/attendance", json={"status": "present"}, headers=auth_headers(asha))
    assert response.status_code == 201
    data = response.json()
    assert data["date"] == "2026-10-20"
    assert data["status"] == "present"
    assert data["employee_code"] == "EMP01"
    assert data["checkout_at"] is None
    assert data["submitted_time"] == "20-10-2026 9:15 AM"

    assert sheet.data_rows() == [["20-10-2026", "EMP01", "Asha Rao", "present", "9:15 AM", "N/A"]]


async def test_second_mark_same_day_conflicts(client: AsyncClient, make_employee, auth_headers, db_session: AsyncSession) -> None:
    asha = await make_employee("Asha Rao", "EMP01")
    headers = auth_headers(asha)

    first = await client.post("/api/v1/attendance", json={"status": "present"}, headers=headers)
    assert first.status_code == 201
    second = await client.post("/api/v1/attendance", json={"status": "sick leave"}, headers=headers)
    assert second.status_code == 409

    records = (await db_session.execute(select(AttendanceRecord))).scalars().all()
    assert len(records) == 1
    assert records[0].status == "present"


async def test_invalid_status_rejected(client: AsyncClient, make_employee, auth_headers) -> None:
    asha = await make_employee("Asha Rao", "EMP01")
    response = await client.post("/api/v1/attendance", json={"status": "holiday"}, headers=auth_headers(asha))
    assert response.status_code == 400


async def test_mark_requires_authentication(client: AsyncClient) -> None:
    response = await client.post("/api/v1/attendance", json={"status": "present"})
    assert response.status_code == 401


async def test_ledger_failure_does_not_fail_mark(client: AsyncClient, make_employee, auth_headers, sheet, db_session: AsyncSession) -> None:
    asha = await make_employee("Asha Rao", "EMP01")
    sheet.fail = True

    response = await client.post("/api/v1/attendance", json={"status": "present"}, headers=auth_headers(asha))
    assert response.status_code == 201

    records = (await db_session.execute(select(AttendanceRecord))).scalars().all()
    assert len(records) == 1


async def test_checkout_flow(client: AsyncClient, make_employee, auth_headers, clock, sheet) -> None:
    asha = await make_employee("Asha Rao", "EMP01")
    headers = auth_headers(asha)

    not_marked = await client.patch("/api/v1/attendance/checkout", headers=headers)
    assert not_marked.status_code == 404

    await client.post("/api/v1/attendance", json={"status": "present"}, headers=headers)

    too_early = await client.patch("/api/v1/attendance/checkout", headers=headers)
    assert too_early.status_code == 400

    clock.advance(hours=9)
    response = await client.patch("/api/v1/attendance/checkout", headers=headers)
    assert response.status_code == 200
    assert response.json()["checkout_time"] == "6:15 PM"
    assert sheet.data_rows() == [["20-10-2026", "EMP01", "Asha Rao", "present", "9:15 AM", "6:15 PM"]]

    clock.advance(minutes=30)
    again = await client.patch("/api/v1/attendance/checkout", headers=headers)
    assert again.status_code == 409
    assert sheet.data_rows()[0][5] == "6:15 PM"


async def test_checkout_not_allowed_for_leave(client: AsyncClient, make_employee, auth_headers, clock) -> None:
    asha = await make_employee("Asha Rao", "EMP01")
    headers = auth_headers(asha)
    await client.post("/api/v1/attendance", json={"status": "casual leave"}, headers=headers)

    clock.advance(hours=8)
    response = await client.patch("/api/v1/attendance/checkout", headers=headers)
    assert response.status_code == 400


async def test_admin_correction_keeps_times(client: AsyncClient, make_employee, auth_headers, sheet) -> None:
    admin = await make_employee("Office Admin", "ADM01", role="admin")
    asha = await make_employee("Asha Rao", "EMP01")
    created = await client.post("/api/v1/attendance", json={"status": "present"}, headers=auth_headers(asha))
    record_id = created.json()["id"]

    forbidden = await client.put(f"/api/v1/attendance/{record_id}", json={"status": "half-day"}, headers=auth_headers(asha))
    assert forbidden.status_code == 403

    response = await client.put(f"/api/v1/attendance/{record_id}", json={"status": "half-day"}, headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "half-day"
    assert data["submitted_at"] == created.json()["submitted_at"]
    assert data["checkout_at"] is None
    assert sheet.data_rows() == [["20-10-2026", "EMP01", "Asha Rao", "half-day", "9:15 AM", "N/A"]]


async def test_admin_correction_unknown_record(client: AsyncClient, make_employee, auth_headers) -> None:
    admin = await make_employee("Office Admin", "ADM01", role="admin")
    response = await client.put(
        "/api/v1/attendance/00000000-0000-0000-0000-000000000000",
        json={"status": "absent"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 404


async def test_admin_query_filters(client: AsyncClient, make_employee, auth_headers, db_session: AsyncSession, clock) -> None:
    admin = await make_employee("Office Admin", "ADM01", role="admin")
    asha = await make_employee("Asha Rao", "EMP01")
    ravi = await make_employee("Ravi Kumar", "EMP02")
    db_session.add_all([
        AttendanceRecord(employee_id=asha.id, date=date(2026, 10, 19), status="present", submitted_at=clock.now()),
        AttendanceRecord(employee_id=asha.id, date=date(2026, 10, 20), status="half-day", submitted_at=clock.now()),
        AttendanceRecord(employee_id=ravi.id, date=date(2026, 10, 20), status="absent", submitted_at=clock.now()),
    ])
    await db_session.commit()
    headers = auth_headers(admin)

    everything = await client.get("/api/v1/attendance", headers=headers)
    assert everything.status_code == 200
    assert everything.json()["count"] == 3
    assert everything.json()["records"][-1]["date"] == "2026-10-19"

    by_name = await client.get("/api/v1/attendance", params={"employee_name": "ASHA"}, headers=headers)
    assert by_name.json()["count"] == 2

    by_day = await client.get(
        "/api/v1/attendance",
        params={"start_date": "2026-10-20", "end_date": "2026-10-20", "status": "absent"},
        headers=headers,
    )
    assert [r["employee_code"] for r in by_day.json()["records"]] == ["EMP02"]

    bad_range = await client.get(
        "/api/v1/attendance",
        params={"start_date": "2026-10-21", "end_date": "2026-10-20"},
        headers=headers,
    )
    assert bad_range.status_code == 400


async def test_query_with_unknown_name_is_not_found(client: AsyncClient, make_employee, auth_headers) -> None:
    admin = await make_employee("Office Admin", "ADM01", role="admin")
    await make_employee("Asha Rao", "EMP01")
    response = await client.get("/api/v1/attendance", params={"employee_name": "nonexistent"}, headers=auth_headers(admin))
    assert response.status_code == 404


async def test_my_attendance_is_scoped(client: AsyncClient, make_employee, auth_headers) -> None:
    asha = await make_employee("Asha Rao", "EMP01")
    ravi = await make_employee("Ravi Kumar", "EMP02")
    await client.post("/api/v1/attendance", json={"status": "present"}, headers=auth_headers(asha))
    await client.post("/api/v1/attendance", json={"status": "paid leave"}, headers=auth_headers(ravi))

    response = await client.get("/api/v1/attendance/me", headers=auth_headers(asha))
    assert response.status_code == 200
    records = response.json()["records"]
    assert [r["employee_code"] for r in records] == ["EMP01"]

    admin_forbidden = await client.get("/api/v1/attendance/me", headers=auth_headers(await make_employee("Boss", "ADM01", role="admin")))
    assert admin_forbidden.status_code == 403


async def test_checkout_rechecks_status_at_write_time(session_factory, make_employee, ledger, clock, db_session: AsyncSession) -> None:
    asha = await make_employee("Asha Rao", "EMP01")
    async with session_factory() as db:
        db.add(AttendanceRecord(employee_id=asha.id, date=date(2026, 10, 20), status="present", submitted_at=clock.now()))
        await db.commit()

    # db_session holds the record as "present" while an admin correction commits elsewhere
    stale = (await db_session.execute(select(AttendanceRecord))).scalar_one()
    assert stale.status == "present"
    async with session_factory() as other:
        await other.execute(update(AttendanceRecord).values(status="absent"))
        await other.commit()

    clock.advance(hours=2)
    with pytest.raises(ValidationError):
        await service.check_out(db_session, ledger, clock, asha.id)

    async with session_factory() as db:
        record = (await db.execute(select(AttendanceRecord))).scalar_one()
        assert record.status == "absent"
        assert record.checkout_at is None


async def test_mark_race_on_unique_constraint_conflicts(make_employee, ledger, clock, db_session: AsyncSession) -> None:
    asha = await make_employee("Asha Rao", "EMP01")

    def competing_insert(session, flush_context, instances) -> None:
        # Another submission lands after the pre-check but before our insert
        session.execute(
            insert(AttendanceRecord.__table__).values(
                id=uuid.uuid4(),
                employee_id=asha.id,
                date=date(2026, 10, 20),
                status="absent",
                submitted_at=clock.now(),
            )
        )

    event.listen(db_session.sync_session, "before_flush", competing_insert, once=True)
    with pytest.raises(ConflictError):
        await service.mark_attendance(db_session, ledger, clock, asha.id, "present")


async def test_ledger_failure_does_not_fail_checkout(client: AsyncClient, make_employee, auth_headers, clock, sheet, db_session: AsyncSession) -> None:
    asha = await make_employee("Asha Rao", "EMP01")
    headers = auth_headers(asha)
    await client.post("/api/v1/attendance", json={"status": "present"}, headers=headers)
    sheet.fail = True

    clock.advance(hours=9)
    response = await client.patch("/api/v1/attendance/checkout", headers=headers)
    assert response.status_code == 200

    record = (await db_session.execute(select(AttendanceRecord))).scalar_one()
    assert record.checkout_at is not None


async def test_ledger_failure_does_not_fail_correction(client: AsyncClient, make_employee, auth_headers, sheet, db_session: AsyncSession) -> None:
    admin = await make_employee("Office Admin", "ADM01", role="admin")
    asha = await make_employee("Asha Rao", "EMP01")
    created = await client.post("/api/v1/attendance", json={"status": "present"}, headers=auth_headers(asha))
    sheet.fail = True

    response = await client.put(
        f"/api/v1/attendance/{created.json()['id']}",
        json={"status": "sick leave"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200

    record = (await db_session.execute(select(AttendanceRecord))).scalar_one()
    assert record.status == "sick leave"


async def test_name_filter_is_literal_not_regex(client: AsyncClient, make_employee, auth_headers) -> None:
    admin = await make_employee("Office Admin", "ADM01", role="admin")
    await make_employee("Asha Rao", "EMP01")
    response = await client.get("/api/v1/attendance", params={"employee_name": "^Asha"}, headers=auth_headers(admin))
    assert response.status_code == 404
