"""全局 pytest 配置 -- 临时 SQLite 数据库 + 核心服务 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest_asyncio
from todograph.core.preferences import SortPreferencesService
from todograph.core.repository import EventRepository
from todograph.core.status_engine import StatusEngine
from todograph.core.store import StoreGroup, create_store_group


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db_conn(tmp_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from todograph.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store_group(tmp_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """提供共享连接的 Store 实例组"""
    group = await create_store_group(tmp_db_path)
    yield group
    await group.close()


@pytest_asyncio.fixture
async def repository(store_group: StoreGroup) -> EventRepository:
    """已加载（空）依赖图的事件仓库"""
    repo = EventRepository(store_group)
    await repo.load()
    return repo


@pytest_asyncio.fixture
async def status_engine(repository: EventRepository) -> StatusEngine:
    """绑定到同一仓库的状态引擎"""
    return StatusEngine(repository)


@pytest_asyncio.fixture
async def preferences(store_group: StoreGroup) -> SortPreferencesService:
    """排序偏好服务"""
    return SortPreferencesService(store_group)
