"""gateway 测试配置 -- httpx AsyncClient + 手动初始化的 app"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from todograph.core.store import create_store_group


@pytest_asyncio.fixture
async def test_app(tmp_path: Path):
    """创建测试用 FastAPI app 实例"""
    os.environ["TODOGRAPH_DB_PATH"] = str(tmp_path / "test.db")

    from todograph.gateway.main import create_app, init_services

    app = create_app()

    # 手动初始化（绕过 lifespan）
    store_group = await create_store_group(tmp_path / "test.db")
    await init_services(app, store_group)

    yield app

    await store_group.close()
    os.environ.pop("TODOGRAPH_DB_PATH", None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac
