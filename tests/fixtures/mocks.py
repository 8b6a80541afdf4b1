"""
In-process client double for adapter tests.

Records every statement it receives and answers from a queue of canned
responses, so dispatching and connection management can be tested without
a backend.

Usage:
    def test_dispatch(fake_connection):
        cn, client = fake_connection
        client.responses.append(Response(rows=[{'sum': 2}]))
"""
import asyncio

import pytest
from sqlitesource.client import Client, Response
from sqlitesource.connection import SqliteConnection
from sqlitesource.exceptions import QueryError


class FakeClient(Client):
    """Client double that records (primitive, sql) calls."""

    opened = 0
    open_delay = 0

    def __init__(self):
        self.calls = []
        self.responses = []
        self.closed = False

    @classmethod
    async def open(cls, options):
        cls.opened += 1
        if cls.open_delay:
            await asyncio.sleep(cls.open_delay)
        return cls()

    async def _answer(self, primitive, sql):
        self.calls.append((primitive, sql))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return Response()

    async def execute(self, sql):
        return await self._answer('execute', sql)

    async def select(self, sql):
        return await self._answer('select', sql)

    async def insert(self, sql):
        return await self._answer('insert', sql)

    async def update(self, sql):
        return await self._answer('update', sql)

    async def delete(self, sql):
        return await self._answer('delete', sql)

    async def create(self, sql):
        return await self._answer('create', sql)

    async def drop(self, sql):
        return await self._answer('drop', sql)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def fake_connection(fake_client):
    """Connection adopting a FakeClient; nothing is opened."""
    cn = SqliteConnection(database=':memory:', client=fake_client)
    return cn, fake_client


@pytest.fixture
def syntax_error():
    return QueryError('near "FROM": syntax error')
