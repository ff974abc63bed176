"""StatusEngine -- 事件状态机与级联解除阻塞

四种状态之间允许任意手动流转，引擎只对"流转到 Completed"做出反应：
检查目标事件的直接依赖方，把依赖已全部完成的 Blocked 事件改为 Pending。

级联只覆盖直接依赖方。被解除阻塞的事件只是进入 Pending，
它自己的依赖方要等它被标记 Completed 时再由那次调用处理。

失败语义：
1. 目标事件写入失败 -> 抛出 PersistenceError，没有任何修改
2. 目标写入成功、某个依赖方写入失败 -> 目标状态保留，
   失败项记录在 StatusChangeResult.failures，可通过 retry_unblock 单独重试
"""

import structlog

from .exceptions import NotFoundError, PersistenceError
from .models import CascadeFailure, EventStatus, StatusChangeResult
from .repository import EventRepository

log = structlog.get_logger()


class StatusEngine:
    """状态流转服务 -- 级联逻辑的唯一实现位置"""

    def __init__(self, repository: EventRepository) -> None:
        self._repository = repository

    async def set_status(self, event_id: str, new_status: EventStatus) -> StatusChangeResult:
        """设置事件状态；流转到 Completed 时级联解除直接依赖方的阻塞

        整个操作持有仓库写锁，其他写操作无法观察到进行中的级联。

        Args:
            event_id: 目标事件 ID
            new_status: 新状态

        Returns:
            StatusChangeResult，包含目标事件、被解除阻塞的事件和失败项

        Raises:
            NotFoundError: 目标事件不存在
            PersistenceError: 目标事件写入失败（无任何修改）
        """
        async with self._repository.writer():
            current = await self._repository.fetch_unlocked(event_id)
            target = await self._repository.persist_status(current, new_status)
            await log.ainfo(
                "event_status_changed",
                event_id=event_id,
                from_status=current.status.value,
                to_status=new_status.value,
            )

            result = StatusChangeResult(target=target)
            if new_status == EventStatus.COMPLETED:
                await self._unblock_dependents(event_id, result)

        if result.partial:
            await log.awarning(
                "status_cascade_partial",
                event_id=event_id,
                unblocked=[e.id for e in result.unblocked],
                failed=[f.event_id for f in result.failures],
            )
        return result

    async def retry_unblock(self, event_id: str) -> StatusChangeResult:
        """单独重试一个依赖方的解除阻塞

        仅当事件为 Blocked 且依赖全部完成时改为 Pending，否则不做修改。

        Raises:
            NotFoundError: 事件不存在
            PersistenceError: 写入失败
        """
        async with self._repository.writer():
            current = await self._repository.fetch_unlocked(event_id)
            graph = self._repository.graph
            if current.status != EventStatus.BLOCKED or not graph.is_satisfied(event_id):
                return StatusChangeResult(target=current)
            target = await self._repository.persist_status(current, EventStatus.PENDING)

        await log.ainfo("status_unblock_retried", event_id=event_id)
        return StatusChangeResult(target=target)

    async def _unblock_dependents(self, event_id: str, result: StatusChangeResult) -> None:
        graph = self._repository.graph
        for dependent_id in graph.dependents(event_id):
            if graph.status_of(dependent_id) != EventStatus.BLOCKED:
                continue
            if not graph.is_satisfied(dependent_id):
                continue
            try:
                dependent = await self._repository.fetch_unlocked(dependent_id)
                unblocked = await self._repository.persist_status(
                    dependent, EventStatus.PENDING
                )
            except (PersistenceError, NotFoundError) as e:
                await log.aerror(
                    "status_cascade_write_failed",
                    event_id=event_id,
                    dependent_id=dependent_id,
                    error_type=type(e).__name__,
                )
                result.failures.append(
                    CascadeFailure(
                        event_id=dependent_id,
                        error_type=type(e).__name__,
                        message=str(e),
                    )
                )
                continue
            result.unblocked.append(unblocked)
            await log.ainfo(
                "status_cascade_unblocked",
                event_id=event_id,
                dependent_id=dependent_id,
            )

    @staticmethod
    def summarize(result: StatusChangeResult) -> dict[str, EventStatus]:
        """event_id -> 新状态 映射，便于调用方增量刷新"""
        return {event.id: event.status for event in result.updated}
