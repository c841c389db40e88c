"""Request helpers shared by the API tests."""
from datetime import datetime, timezone

PASSWORD = "Passw0rd!"


async def register(client, email="parent@example.com", **extra):
    payload = {
        "email": email,
        "password": PASSWORD,
        "first_name": "Jane",
        "last_name": "Doe",
        **extra,
    }
    response = await client.post("/api/v1/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def bearer(tokens) -> dict:
    return {"Authorization": f"Bearer {tokens['access_token']}"}


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")
