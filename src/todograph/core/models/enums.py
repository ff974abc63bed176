"""枚举定义

包含 EventStatus 状态集合与 SortDirection 排序方向，
以及判定初始/重算状态的 derive_status 规则。
"""

from collections.abc import Iterable
from enum import StrEnum


class EventStatus(StrEnum):
    """事件状态

    四种状态之间可以任意手动流转；
    Blocked 只由引擎写入，不在读取时实时推导。
    """

    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    BLOCKED = "Blocked"


class SortDirection(StrEnum):
    """标签排序方向"""

    ASC = "asc"
    DESC = "desc"


# 依赖重算时允许被改写的状态（InProgress/Completed 由用户掌控）
RECOMPUTABLE_STATES: set[EventStatus] = {
    EventStatus.PENDING,
    EventStatus.BLOCKED,
}


def derive_status(dependency_statuses: Iterable[EventStatus]) -> EventStatus:
    """根据依赖状态计算事件状态

    Args:
        dependency_statuses: 所有依赖事件的当前状态

    Returns:
        任一依赖未完成时为 BLOCKED，否则为 PENDING（无依赖也是 PENDING）
    """
    for status in dependency_statuses:
        if status != EventStatus.COMPLETED:
            return EventStatus.BLOCKED
    return EventStatus.PENDING
