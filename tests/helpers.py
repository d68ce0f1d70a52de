"""Small helpers shared by route tests."""

TEST_PASSWORD = "secret123"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
