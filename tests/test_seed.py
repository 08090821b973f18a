import pytest

from core.seed import seed_test_user


@pytest.mark.asyncio
async def test_seed_is_idempotent(session_factory, make_manager):
    assert await seed_test_user(session_factory, "Demo@Example.com", "demo-password") is True
    assert await seed_test_user(session_factory, "demo@example.com", "demo-password") is False

    result = await make_manager().login("demo@example.com", "demo-password")
    assert result.user.email == "demo@example.com"
