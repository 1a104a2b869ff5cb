import uuid

import pytest
from httpx import AsyncClient


async def create_batch(client: AsyncClient, code: str = "me-2023") -> dict:
    response = await client.post(
        "/api/v1/batches",
        json={"batch_code": code, "intake_session": "2023", "program_code": "me", "number_of_students": 60},
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_batch_normalises_codes(client: AsyncClient) -> None:
    batch = await create_batch(client, " me-2023 ")
    assert batch["batch_code"] == "ME-2023"
    assert batch["program_code"] == "ME"
    assert batch["number_of_students"] == 60

    response = await client.get(f"/api/v1/batches/{batch['id']}")
    assert response.status_code == 200
    assert response.json()["batch_code"] == "ME-2023"


@pytest.mark.asyncio
async def test_duplicate_batch_conflicts(client: AsyncClient) -> None:
    await create_batch(client)
    response = await client.post(
        "/api/v1/batches",
        json={"batch_code": "ME-2023", "intake_session": "2023", "program_code": "me"},
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_batches_and_unknown_batch(client: AsyncClient) -> None:
    await create_batch(client, "me-2023")
    await create_batch(client, "ce-2023")

    response = await client.get("/api/v1/batches")
    assert [b["batch_code"] for b in response.json()] == ["CE-2023", "ME-2023"]

    response = await client.get(f"/api/v1/batches/{uuid.uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_and_update_student(client: AsyncClient) -> None:
    batch = await create_batch(client)
    response = await client.post(
        "/api/v1/students",
        json={
            "roll_no": 12,
            "batch_id": batch["id"],
            "first_name": " Meera ",
            "last_name": "Iyer",
            "email": "Meera.Iyer@Example.com",
        },
    )
    assert response.status_code == 201
    student = response.json()
    assert student["first_name"] == "Meera"
    assert student["email"] == "meera.iyer@example.com"
    assert student["is_active"] is True

    response = await client.patch(
        f"/api/v1/students/{student['student_id']}",
        json={"phone": "+91 98450 00000", "is_active": False},
    )
    assert response.status_code == 200
    assert response.json()["phone"] == "+91 98450 00000"
    assert response.json()["is_active"] is False

    response = await client.get(f"/api/v1/students/{student['student_id']}")
    assert response.json()["is_active"] is False


@pytest.mark.asyncio
async def test_student_roll_number_unique_within_batch(client: AsyncClient) -> None:
    batch = await create_batch(client)
    other = await create_batch(client, "ce-2023")
    payload = {"roll_no": 1, "first_name": "A", "last_name": "B", "email": "a@example.com"}

    first = await client.post("/api/v1/students", json={**payload, "batch_id": batch["id"]})
    assert first.status_code == 201
    duplicate = await client.post("/api/v1/students", json={**payload, "batch_id": batch["id"]})
    assert duplicate.status_code == 409
    elsewhere = await client.post("/api/v1/students", json={**payload, "batch_id": other["id"]})
    assert elsewhere.status_code == 201


@pytest.mark.asyncio
async def test_student_with_unknown_batch_is_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/students",
        json={
            "roll_no": 1,
            "batch_id": str(uuid.uuid4()),
            "first_name": "A",
            "last_name": "B",
            "email": "a@example.com",
        },
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid batch"


@pytest.mark.asyncio
async def test_list_students_filters(client: AsyncClient) -> None:
    batch = await create_batch(client)
    for roll_no, active in ((2, True), (1, True), (3, False)):
        await client.post(
            "/api/v1/students",
            json={
                "roll_no": roll_no,
                "batch_id": batch["id"],
                "first_name": f"S{roll_no}",
                "last_name": "Test",
                "email": f"s{roll_no}@example.com",
                "is_active": active,
            },
        )

    response = await client.get("/api/v1/students", params={"batch_id": batch["id"]})
    assert [s["roll_no"] for s in response.json()] == [1, 2, 3]

    response = await client.get("/api/v1/students", params={"batch_id": batch["id"], "active_only": True})
    assert [s["roll_no"] for s in response.json()] == [1, 2]

    response = await client.get("/api/v1/students/9999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_rejects_null_for_required_fields(client: AsyncClient) -> None:
    batch = await create_batch(client)
    student = (
        await client.post(
            "/api/v1/students",
            json={"roll_no": 4, "batch_id": batch["id"], "first_name": "Kiran", "last_name": "Das", "email": "k@example.com"},
        )
    ).json()

    for field in ("first_name", "last_name", "roll_no", "email", "is_active"):
        response = await client.patch(f"/api/v1/students/{student['student_id']}", json={field: None})
        assert response.status_code == 422, field

    response = await client.patch(f"/api/v1/students/{student['student_id']}", json={"phone": None, "batch_id": None})
    assert response.status_code == 200
    assert response.json()["batch_id"] is None
    assert response.json()["first_name"] == "Kiran"
