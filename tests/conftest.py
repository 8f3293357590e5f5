import random
from collections import Counter

import pytest

from core.exceptions import GatewayError
from infrastructure.cache.local_cache import LocalCache
from infrastructure.gateway.fixture import FixtureGateway
from infrastructure.realtime.channel import SimulatedChannel


class FlakyGateway(FixtureGateway):
    """FixtureGateway, который считает вызовы и падает на выбранных операциях"""

    def __init__(self, cache: LocalCache):
        super().__init__(cache)
        self.failing = set()
        self.calls = Counter()

    def _track(self, operation: str):
        self.calls[operation] += 1
        if operation in self.failing:
            raise GatewayError("Network Error")

    async def list_tickets(self):
        self._track("list_tickets")
        return await super().list_tickets()

    async def create_ticket(self, fields):
        self._track("create_ticket")
        return await super().create_ticket(fields)

    async def update_ticket(self, ticket_id, fields):
        self._track("update_ticket")
        return await super().update_ticket(ticket_id, fields)

    async def delete_ticket(self, ticket_id):
        self._track("delete_ticket")
        return await super().delete_ticket(ticket_id)

    async def list_contacts(self):
        self._track("list_contacts")
        return await super().list_contacts()

    async def list_messages(self, contact_id):
        self._track("list_messages")
        return await super().list_messages(contact_id)

    async def send_message(self, contact_id, text):
        self._track("send_message")
        return await super().send_message(contact_id, text)

    async def mark_read(self, contact_id):
        self._track("mark_read")
        return await super().mark_read(contact_id)


@pytest.fixture
def cache(tmp_path) -> LocalCache:
    return LocalCache(str(tmp_path / "cache.db"))


@pytest.fixture
def gateway(cache) -> FlakyGateway:
    return FlakyGateway(cache)


@pytest.fixture
def channel() -> SimulatedChannel:
    return SimulatedChannel("ws://test/chat", connect_delay=0, rng=random.Random(7))
