"""EventRepository -- 事件记录的唯一所有者

每个进程构造一次，通过显式引用传给使用方，不提供全局访问。
写操作（create/update/delete）持有 StoreGroup 的独占写锁，读操作持有共享读锁；
这把锁与排序偏好服务、数据库切换共用，同一连接上的事务不会交错；
每次写操作先完成全部校验，再在单个 SQLite 事务内提交，
提交成功后才同步更新 DependencyGraph 索引。
"""

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import aiosqlite
import structlog
from ulid import ULID

from .config import NAME_MAX_LENGTH, TAG_KEY_MAX_LENGTH, TAG_VALUE_MAX_LENGTH
from .exceptions import (
    CyclicDependencyError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .graph import DependencyGraph
from .models import (
    RECOMPUTABLE_STATES,
    CreateEventRequest,
    DeleteResult,
    Event,
    EventFilter,
    EventStatus,
    UpdateEventRequest,
    derive_status,
)
from .store import (
    StoreGroup,
    delete_event_and_detach,
    insert_event,
    replace_event,
    write_event_status,
)

log = structlog.get_logger()


class EventRepository:
    """事件仓库：CRUD + 依赖/依赖方查询"""

    def __init__(
        self,
        store_group: StoreGroup,
        graph: DependencyGraph | None = None,
    ) -> None:
        self._stores = store_group
        self._graph = graph if graph is not None else DependencyGraph()
        self._lock = store_group.lock

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    async def load(self) -> int:
        """从持久化记录重建依赖图索引

        Returns:
            加载的事件数量

        Raises:
            CyclicDependencyError: 持久化数据中存在环
        """
        async with self._lock.write():
            try:
                count = await self.reload_unlocked()
            except aiosqlite.Error as e:
                raise PersistenceError("load", e) from e
        await log.ainfo("repository_loaded", event_count=count)
        return count

    async def reload_unlocked(self) -> int:
        """从当前连接重建依赖图，仅供已持有写锁的调用方使用

        新索引建好并通过环检测后才替换旧索引，失败时旧索引保持不变。
        """
        events = await self._stores.event_store.list_events()
        graph = DependencyGraph()
        graph.rebuild(events)
        self._graph = graph
        return len(events)

    # ---- 读操作 ----

    async def get(self, event_id: str) -> Event:
        """根据 id 查询事件

        Raises:
            NotFoundError: 事件不存在
        """
        async with self._reading("get_event"):
            return await self._fetch(event_id)

    async def list_events(self, filter: EventFilter | None = None) -> list[Event]:
        """按筛选条件查询事件，按 created_at 倒序"""
        filter = filter or EventFilter()
        async with self._reading("list_events"):
            events = await self._stores.event_store.list_events(filter.status)
        return [event for event in events if filter.matches(event)]

    async def snapshot(self) -> list[Event]:
        """当前全部事件的快照"""
        return await self.list_events()

    async def dependencies_of(self, event_id: str) -> list[Event]:
        """事件的直接依赖（跳过已不存在的悬空引用）"""
        async with self._reading("dependencies_of"):
            ids = self._graph.dependencies(event_id)
            return await self._fetch_many(ids)

    async def dependents_of(self, event_id: str) -> list[Event]:
        """直接依赖该事件的事件"""
        async with self._reading("dependents_of"):
            ids = self._graph.dependents(event_id)
            return await self._fetch_many(ids)

    # ---- 写操作 ----

    async def create(self, request: CreateEventRequest) -> Event:
        """创建事件

        初始状态：任一依赖未完成时为 Blocked，否则为 Pending。

        Raises:
            ValidationError: 名称为空/超长、标签非法、依赖不存在
            PersistenceError: 存储失败
        """
        name = self._validate_name(request.name)
        tags = self._validate_tags(request.tags)

        async with self._lock.write():
            dependencies = self._validate_dependencies(None, request.dependencies)
            status = derive_status(self._graph.status_of(d) for d in dependencies)
            now = datetime.now(UTC)
            event = Event(
                id=str(ULID()),
                name=name,
                description=request.description,
                tags=tags,
                status=status,
                created_at=now,
                updated_at=now,
                dependencies=dependencies,
            )
            await insert_event(self._stores.conn, self._stores.event_store, event)
            self._graph.add_node(event.id, dependencies, status)

        await log.ainfo(
            "event_created",
            event_id=event.id,
            status=event.status.value,
            dependency_count=len(dependencies),
        )
        return event

    async def update(self, request: UpdateEventRequest) -> Event:
        """合并字段更新

        依赖变更先做存在性与环检测，校验失败时不做任何修改。
        Pending/Blocked 事件在依赖变更后按创建规则重算状态。

        Raises:
            NotFoundError: 事件不存在
            ValidationError: 字段非法
            CyclicDependencyError: 依赖变更会形成环
            PersistenceError: 存储失败
        """
        changes: dict = {}
        if request.name is not None:
            changes["name"] = self._validate_name(request.name)
        if request.description is not None:
            changes["description"] = request.description
        if request.tags is not None:
            changes["tags"] = self._validate_tags(request.tags)

        async with self._lock.write():
            current = await self._fetch_unchecked(request.id, "update_event")

            if request.dependencies is not None:
                dependencies = self._validate_dependencies(
                    current.id, request.dependencies
                )
                cycle = self._graph.find_cycle_path(current.id, dependencies)
                if cycle is not None:
                    await log.awarning(
                        "dependency_cycle_rejected",
                        event_id=current.id,
                        cycle=cycle,
                    )
                    raise CyclicDependencyError(current.id, cycle)
                changes["dependencies"] = dependencies
                if current.status in RECOMPUTABLE_STATES:
                    changes["status"] = derive_status(
                        self._graph.status_of(d) for d in dependencies
                    )

            changes["updated_at"] = self._next_timestamp(current)
            event = current.model_copy(update=changes)
            await replace_event(self._stores.conn, self._stores.event_store, event)

            if "dependencies" in changes:
                self._graph.set_dependencies(event.id, event.dependencies)
            self._graph.set_status(event.id, event.status)

        await log.ainfo(
            "event_updated",
            event_id=event.id,
            fields=sorted(k for k in changes if k != "updated_at"),
        )
        return event

    async def delete(self, event_id: str) -> DeleteResult:
        """删除事件并从所有依赖方的 dependencies 中移除它

        依赖方的状态保持不变，不会因删除而自动解除阻塞。

        Raises:
            NotFoundError: 事件不存在
            PersistenceError: 存储失败
        """
        async with self._lock.write():
            current = await self._fetch_unchecked(event_id, "delete_event")
            detached: list[Event] = []
            for dependent_id in self._graph.dependents(current.id):
                dependent = await self._stores.event_store.get_event(dependent_id)
                if dependent is None:
                    continue
                detached.append(
                    dependent.model_copy(
                        update={
                            "dependencies": [
                                d for d in dependent.dependencies if d != current.id
                            ],
                            "updated_at": self._next_timestamp(dependent),
                        }
                    )
                )
            await delete_event_and_detach(
                self._stores.conn,
                self._stores.event_store,
                current.id,
                detached,
            )
            self._graph.remove_node(current.id)

        await log.ainfo(
            "event_deleted",
            event_id=event_id,
            detached=[e.id for e in detached],
        )
        return DeleteResult(deleted_id=event_id, detached=detached)

    # ---- StatusEngine 使用的写路径（调用方必须持有写锁） ----

    def writer(self):
        """独占写锁上下文，级联状态变更期间全程持有"""
        return self._lock.write()

    async def fetch_unlocked(self, event_id: str) -> Event:
        """不加锁读取事件，仅供已持有写锁的调用方使用"""
        return await self._fetch_unchecked(event_id, "get_event")

    async def persist_status(self, event: Event, status: EventStatus) -> Event:
        """写入单个事件的状态（独立事务）并同步图索引

        Raises:
            NotFoundError: 事件在写入前已被删除
            PersistenceError: 存储失败
        """
        updated_at = self._next_timestamp(event)
        await write_event_status(
            self._stores.conn,
            self._stores.event_store,
            event.id,
            status,
            updated_at,
        )
        self._graph.set_status(event.id, status)
        return event.model_copy(update={"status": status, "updated_at": updated_at})

    # ---- 内部 ----

    @asynccontextmanager
    async def _reading(self, operation: str) -> AsyncIterator[None]:
        async with self._lock.read():
            try:
                yield
            except aiosqlite.Error as e:
                raise PersistenceError(operation, e) from e

    async def _fetch(self, event_id: str) -> Event:
        event = await self._stores.event_store.get_event(event_id)
        if event is None:
            raise NotFoundError(event_id)
        return event

    async def _fetch_unchecked(self, event_id: str, operation: str) -> Event:
        try:
            return await self._fetch(event_id)
        except aiosqlite.Error as e:
            raise PersistenceError(operation, e) from e

    async def _fetch_many(self, event_ids: list[str]) -> list[Event]:
        events = []
        for event_id in event_ids:
            event = await self._stores.event_store.get_event(event_id)
            if event is not None:
                events.append(event)
        return events

    @staticmethod
    def _next_timestamp(event: Event) -> datetime:
        """保证 updated_at 单调不减"""
        return max(datetime.now(UTC), event.updated_at)

    @staticmethod
    def _validate_name(name: str) -> str:
        stripped = name.strip()
        if not stripped:
            raise ValidationError("name must not be empty", field="name")
        if len(stripped) > NAME_MAX_LENGTH:
            raise ValidationError(
                f"name exceeds {NAME_MAX_LENGTH} characters",
                field="name",
            )
        return stripped

    @staticmethod
    def _validate_tags(tags: Mapping[str, str]) -> dict[str, str]:
        result: dict[str, str] = {}
        for raw_key, value in tags.items():
            key = raw_key.strip()
            if not key:
                raise ValidationError("tag key must not be empty", field="tags")
            if len(key) > TAG_KEY_MAX_LENGTH:
                raise ValidationError(
                    f"tag key exceeds {TAG_KEY_MAX_LENGTH} characters: {key!r}",
                    field="tags",
                )
            if len(value) > TAG_VALUE_MAX_LENGTH:
                raise ValidationError(
                    f"tag value exceeds {TAG_VALUE_MAX_LENGTH} characters: {key!r}",
                    field="tags",
                )
            if key in result:
                raise ValidationError(f"duplicate tag key: {key!r}", field="tags")
            result[key] = value
        return result

    def _validate_dependencies(
        self,
        event_id: str | None,
        dependencies: list[str],
    ) -> list[str]:
        deps = list(dict.fromkeys(dependencies))
        for dep in deps:
            if event_id is not None and dep == event_id:
                raise ValidationError(
                    f"event cannot depend on itself: {dep}",
                    field="dependencies",
                )
            if dep not in self._graph:
                raise ValidationError(
                    f"unknown dependency id: {dep}",
                    field="dependencies",
                )
        return deps
