"""数据库文件管理

报告当前数据库路径、创建新数据库、校验数据库文件，
以及在运行中把全部服务切换到另一个数据库文件。

创建与校验只操作目标文件，不依赖运行中的服务，CLI 直接调用；
切换在 StoreGroup 写锁内完成：进行中的读写全部结束后才更换连接，
新连接上的依赖图重建成功之前旧连接保持不变，失败时原样恢复。
"""

from pathlib import Path

import aiosqlite
import structlog

from .exceptions import PersistenceError, ValidationError
from .graph import DependencyGraph
from .models import DatabaseInfo
from .repository import EventRepository
from .store import SqliteEventStore, StoreGroup, open_database

log = structlog.get_logger()


def normalize_path(path: str | Path) -> Path:
    """展开 ~ 并转为绝对路径

    Raises:
        ValidationError: 路径为空
    """
    raw = str(path).strip()
    if not raw:
        raise ValidationError("database path must not be empty", field="path")
    return Path(raw).expanduser().resolve()


async def create_database_file(path: str | Path) -> DatabaseInfo:
    """在 path 创建空数据库（自动创建父目录），不会覆盖已有文件

    Raises:
        ValidationError: 路径为空、文件已存在或无法在该位置创建
    """
    db_path = normalize_path(path)
    if db_path.exists():
        raise ValidationError(f"database file already exists: {db_path}", field="path")

    try:
        conn = await open_database(db_path)
    except (OSError, aiosqlite.Error) as e:
        raise ValidationError(
            f"cannot create database at {db_path}: {e}", field="path"
        ) from e
    await conn.close()

    await log.ainfo("database_created", path=str(db_path))
    return DatabaseInfo(path=str(db_path), event_count=0)


async def validate_database_file(path: str | Path) -> DatabaseInfo:
    """检查 path 是否为可用的 todograph 数据库

    打开文件并初始化 schema（缺失的表会被补建），
    再读取全部事件并重建一份独立的依赖图做环检测。

    Raises:
        ValidationError: 文件不存在，或不是可读的 SQLite 数据库/记录无法解析
        CyclicDependencyError: 记录中的依赖关系存在环
    """
    db_path = normalize_path(path)
    if not db_path.is_file():
        raise ValidationError(f"database file does not exist: {db_path}", field="path")

    try:
        conn = await open_database(db_path)
    except aiosqlite.Error as e:
        raise ValidationError(f"invalid database file: {e}", field="path") from e
    try:
        events = await SqliteEventStore(conn).list_events()
    except (aiosqlite.Error, ValueError) as e:
        raise ValidationError(f"invalid database file: {e}", field="path") from e
    finally:
        await conn.close()

    DependencyGraph().rebuild(events)
    return DatabaseInfo(path=str(db_path), event_count=len(events))


class DatabaseManager:
    """运行中服务的数据库管理"""

    def __init__(self, store_group: StoreGroup, repository: EventRepository) -> None:
        self._stores = store_group
        self._repository = repository

    def current_path(self) -> str | None:
        """当前使用中的数据库文件路径"""
        return self._stores.db_path

    async def current(self) -> DatabaseInfo:
        """当前数据库路径与事件数量"""
        async with self._stores.lock.read():
            try:
                count = await self._stores.event_store.count_events()
            except aiosqlite.Error as e:
                raise PersistenceError("count_events", e) from e
        return DatabaseInfo(path=self.current_path(), event_count=count)

    async def create_database(self, path: str | Path) -> DatabaseInfo:
        """创建新数据库；当前服务继续使用原数据库"""
        return await create_database_file(path)

    async def validate_database(self, path: str | Path) -> DatabaseInfo:
        return await validate_database_file(path)

    async def switch_database(self, path: str | Path) -> DatabaseInfo:
        """把仓库、状态引擎与偏好服务切换到 path 指向的数据库

        Raises:
            ValidationError: 目标文件不可用
            CyclicDependencyError: 目标数据库的依赖关系存在环
            PersistenceError: 打开新连接或重建依赖图失败（仍使用原数据库）
        """
        db_path = normalize_path(path)
        await validate_database_file(db_path)

        async with self._stores.lock.write():
            try:
                conn = await open_database(db_path)
            except aiosqlite.Error as e:
                raise PersistenceError("switch_database", e) from e

            old_conn, old_path = self._stores.conn, self._stores.db_path
            self._stores.bind(conn, db_path)
            try:
                count = await self._repository.reload_unlocked()
            except aiosqlite.Error as e:
                self._stores.bind(old_conn, old_path)
                await conn.close()
                raise PersistenceError("switch_database", e) from e
            except Exception:
                self._stores.bind(old_conn, old_path)
                await conn.close()
                raise
            await old_conn.close()

        await log.ainfo(
            "database_switched",
            from_path=old_path,
            to_path=str(db_path),
            event_count=count,
        )
        return DatabaseInfo(path=str(db_path), event_count=count)
