"""Store Protocol 接口定义

定义 EventStore、PreferencesStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from datetime import datetime
from typing import Protocol

from ..models.enums import EventStatus
from ..models.event import Event
from ..models.sort import SortPreferences


class EventStore(Protocol):
    """Event 存储接口 -- 持久化协作者

    所有写方法不提交事务，由调用方管理事务边界。
    """

    async def create_event(self, event: Event) -> None:
        """创建事件记录"""
        ...

    async def get_event(self, event_id: str) -> Event | None:
        """根据 id 查询事件"""
        ...

    async def list_events(self, status: EventStatus | None = None) -> list[Event]:
        """查询事件列表，支持按状态筛选"""
        ...

    async def update_event(self, event: Event) -> None:
        """整行更新事件"""
        ...

    async def update_event_status(
        self,
        event_id: str,
        status: EventStatus,
        updated_at: datetime,
    ) -> int:
        """仅更新状态，返回受影响行数"""
        ...

    async def delete_event(self, event_id: str) -> int:
        """删除事件，返回受影响行数"""
        ...

    async def count_events(self) -> int:
        """事件总数"""
        ...


class PreferencesStore(Protocol):
    """排序偏好存储接口"""

    async def get_sort_preferences(self) -> SortPreferences | None:
        """读取排序偏好"""
        ...

    async def save_sort_preferences(self, preferences: SortPreferences) -> None:
        """写入排序偏好"""
        ...
