import asyncio
import json

import httpx
import pytest

from core.exceptions import GatewayError, NotFoundError, AuthenticationError
from core.security import decode_token_claims
from infrastructure.cache.local_cache import TICKETS_KEY, REGISTERED_USERS_KEY
from infrastructure.gateway.fixture import FixtureGateway
from infrastructure.gateway.remote import RemoteGateway


def _remote(handler) -> RemoteGateway:
    return RemoteGateway("http://api.test/", transport=httpx.MockTransport(handler))


def test_remote_maps_ticket_identifiers_and_sends_bearer() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[
            {"_id": "abc", "title": "Leaking Faucet", "status": "pending", "createdAt": "2024-03-01T10:00:00Z"},
        ])

    async def scenario():
        gateway = _remote(handler)
        gateway.set_token("a.b.c")
        tickets = await gateway.list_tickets()
        await gateway.close()
        return tickets

    tickets = asyncio.run(scenario())
    assert tickets[0].id == "abc"
    assert tickets[0].created_at.year == 2024
    assert seen[0].url.path == "/maintenance"
    assert seen[0].headers["Authorization"] == "Bearer a.b.c"


def test_remote_update_sends_only_editable_fields() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"_id": "7", "title": "Fixed", "status": "completed"})

    async def scenario():
        gateway = _remote(handler)
        ticket = await gateway.update_ticket("7", {"id": "7", "_id": "7", "title": "Fixed", "status": "completed",
                                                   "createdAt": "2024-01-01"})
        await gateway.close()
        return ticket

    ticket = asyncio.run(scenario())
    assert bodies == [{"title": "Fixed", "status": "completed"}]
    assert ticket.status == "completed"


def test_remote_error_statuses() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/maintenance/missing"):
            return httpx.Response(404, json={"message": "Request not found"})
        if request.url.path == "/auth/login":
            return httpx.Response(401, json={"message": "Invalid credentials"})
        return httpx.Response(500, text="boom")

    async def scenario():
        gateway = _remote(handler)
        with pytest.raises(NotFoundError) as not_found:
            await gateway.delete_ticket("missing")
        with pytest.raises(AuthenticationError):
            await gateway.login("x@example.com", "nope")
        with pytest.raises(GatewayError) as server_error:
            await gateway.list_contacts()
        await gateway.close()
        return not_found.value, server_error.value

    not_found, server_error = asyncio.run(scenario())
    assert not_found.message == "Request not found"
    assert server_error.status_code == 500
    assert server_error.message == "Request failed with status code 500"


def test_remote_network_failure_is_gateway_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        gateway = _remote(handler)
        with pytest.raises(GatewayError, match="Network error"):
            await gateway.list_tickets()
        assert await gateway.check_status() is False
        await gateway.close()

    asyncio.run(scenario())


def test_remote_delete_reporting_failure_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "message": "Cannot delete"})

    async def scenario():
        gateway = _remote(handler)
        with pytest.raises(GatewayError, match="Cannot delete"):
            await gateway.delete_ticket("1")
        await gateway.close()

    asyncio.run(scenario())


def test_remote_chat_send_payload() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append((request.url.path, json.loads(request.content)))
        return httpx.Response(201, json={"id": "srv-1", "senderId": "currentUser", "text": "hello"})

    async def scenario():
        gateway = _remote(handler)
        message = await gateway.send_message("contact-1", "hello")
        await gateway.close()
        return message

    message = asyncio.run(scenario())
    assert bodies == [("/api/chat/messages", {"contactId": "contact-1", "content": "hello"})]
    assert message.id == "srv-1"
    assert message.contact_id == "contact-1"


def test_fixture_login_issues_offline_token(cache) -> None:
    async def scenario():
        gateway = FixtureGateway(cache)
        session = await gateway.login(" Tenant@Example.com ", "tenant123")
        with pytest.raises(AuthenticationError):
            await gateway.login("tenant@example.com", "wrong")
        return session, gateway

    session, gateway = asyncio.run(scenario())
    assert session.user.role == "tenant"
    assert decode_token_claims(session.token)["sub"] == session.user.id
    assert gateway.token == session.token


def test_fixture_register_then_login(cache) -> None:
    async def scenario():
        gateway = FixtureGateway(cache)
        user = await gateway.register({"email": "new@example.com", "password": "pw", "name": "New"})
        with pytest.raises(GatewayError, match="User already exists"):
            await gateway.register({"email": "NEW@example.com", "password": "other"})
        with pytest.raises(GatewayError, match="User already exists"):
            await gateway.register({"email": "admin@example.com", "password": "x"})
        session = await FixtureGateway(cache).login("new@example.com", "pw")
        return user, session

    user, session = asyncio.run(scenario())
    assert user.name == "New"
    assert session.user.id == user.id


def test_fixture_tickets_seed_from_cache_and_write_through(cache) -> None:
    async def scenario():
        await cache.set_json(TICKETS_KEY, [{"_id": "cached-1", "title": "From last session"}])
        gateway = FixtureGateway(cache)
        tickets = await gateway.list_tickets()
        created = await gateway.create_ticket({"title": "New one", "_id": "ignored"})
        with pytest.raises(NotFoundError):
            await gateway.update_ticket("nope", {"title": "x"})
        return tickets, created, await cache.get_list(TICKETS_KEY)

    tickets, created, rows = asyncio.run(scenario())
    assert [t.id for t in tickets] == ["cached-1"]
    assert created.id.startswith("maintenance-")
    assert [row["_id"] for row in rows] == [created.id, "cached-1"]


def test_fixture_tickets_fall_back_to_defaults(cache) -> None:
    async def scenario():
        await cache.set_json(TICKETS_KEY, [])
        return await FixtureGateway(cache).list_tickets()

    assert [t.id for t in asyncio.run(scenario())] == ["1", "2", "3"]


def test_fixture_registered_users_survive_restart(cache) -> None:
    async def scenario():
        await FixtureGateway(cache).register({"email": "keep@example.com", "password": "pw"})
        return await cache.get_list(REGISTERED_USERS_KEY)

    rows = asyncio.run(scenario())
    assert [row["email"] for row in rows] == ["keep@example.com"]
    assert rows[0]["name"] == "keep"
