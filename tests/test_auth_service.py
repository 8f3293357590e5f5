import asyncio
import time

import pytest
from jose import jwt

from core.config import config
from core.exceptions import AuthenticationError
from core.security import issue_offline_token, is_token_expired, decode_token_claims
from domain.services.auth_service import AuthService
from infrastructure.cache.local_cache import SESSION_KEY, TICKETS_KEY


def test_login_persists_session_and_restores_it(cache, gateway) -> None:
    async def scenario():
        service = AuthService(gateway, cache)
        session = await service.login("  Owner@Example.com", "owner123")
        restored = AuthService(gateway, cache)
        status = await restored.check_status()
        return session, status

    session, status = asyncio.run(scenario())
    assert session.user.email == "owner@example.com"
    assert session.user.can_manage_requests
    assert not session.user.is_admin
    assert status.is_authenticated
    assert status.user.email == "owner@example.com"


def test_login_failure_keeps_anonymous(cache, gateway) -> None:
    async def scenario():
        service = AuthService(gateway, cache)
        with pytest.raises(AuthenticationError):
            await service.login("tenant@example.com", "bad")
        return service, await cache.get_item(SESSION_KEY)

    service, stored = asyncio.run(scenario())
    assert service.session is None
    assert stored is None


def test_expired_token_is_reported(cache, gateway) -> None:
    async def scenario():
        token = issue_offline_token("1", "tenant", ttl_seconds=-60)
        await cache.set_json(SESSION_KEY, {"token": token, "user": {"id": "1", "email": "t@example.com"}})
        return await AuthService(gateway, cache).check_status()

    status = asyncio.run(scenario())
    assert status.is_authenticated is False
    assert status.expired is True


@pytest.mark.parametrize(
    "stored",
    [
        None,
        {"token": "not-a-jwt", "user": {"id": "1", "email": "t@example.com"}},
        {"token": "a.b.c", "user": {"id": "1"}},
        ["unexpected"],
    ],
)
def test_invalid_stored_session_is_anonymous(cache, gateway, stored) -> None:
    async def scenario():
        if stored is not None:
            await cache.set_json(SESSION_KEY, stored)
        return await AuthService(gateway, cache).check_status()

    status = asyncio.run(scenario())
    assert status.is_authenticated is False
    assert status.expired is False


def test_logout_clears_session_and_ticket_cache(cache, gateway) -> None:
    async def scenario():
        service = AuthService(gateway, cache)
        await service.login("tenant@example.com", "tenant123")
        await cache.set_json(TICKETS_KEY, [{"_id": "1"}])
        await service.logout()
        return service, await cache.keys()

    service, keys = asyncio.run(scenario())
    assert service.user is None
    assert gateway.token is None
    assert SESSION_KEY not in keys
    assert TICKETS_KEY not in keys


def test_update_user_merges_into_session(cache, gateway) -> None:
    async def scenario():
        service = AuthService(gateway, cache)
        await service.login("tenant@example.com", "tenant123")
        await service.update_user({"name": "Renamed Tenant"})
        return await cache.get_json(SESSION_KEY)

    stored = asyncio.run(scenario())
    assert stored["user"]["name"] == "Renamed Tenant"
    assert stored["user"]["email"] == "tenant@example.com"


def test_token_expiry_uses_exp_claim() -> None:
    token = issue_offline_token("1", "tenant", ttl_seconds=100)
    assert not is_token_expired(token)
    assert is_token_expired(token, now=time.time() + 200)
    assert not is_token_expired("a.b.c")


def test_non_numeric_expiry_is_treated_as_corrupt_session(cache, gateway) -> None:
    async def scenario():
        token = jwt.encode({"sub": "1", "exp": "soon"}, "secret", algorithm="HS256")
        await cache.set_json(SESSION_KEY, {"token": token, "user": {"id": "1", "email": "t@example.com"}})
        status = await AuthService(gateway, cache).check_status()
        return status, await cache.get_item(SESSION_KEY)

    status, stored = asyncio.run(scenario())
    assert status.is_authenticated is False
    assert status.expired is False
    assert stored is None


def test_offline_token_is_signed_jwt() -> None:
    token = issue_offline_token("tenant-1", "tenant")
    claims = jwt.decode(token, config.OFFLINE_TOKEN_SECRET, algorithms=[config.OFFLINE_TOKEN_ALGORITHM])
    assert claims["sub"] == "tenant-1"
    assert claims["role"] == "tenant"
    assert decode_token_claims("not.a.token") is None
