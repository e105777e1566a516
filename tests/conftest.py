from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def http_client():
    @asynccontextmanager
    async def factory(app) -> AsyncIterator[httpx.AsyncClient]:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client

    return factory
