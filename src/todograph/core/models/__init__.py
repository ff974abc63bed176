"""todograph Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import RECOMPUTABLE_STATES, EventStatus, SortDirection, derive_status
from .event import Event
from .requests import CreateEventRequest, EventFilter, UpdateEventRequest
from .results import CascadeFailure, DatabaseInfo, DeleteResult, StatusChangeResult
from .sort import SortPreferences, TagSortRule

__all__ = [
    # 枚举
    "EventStatus",
    "SortDirection",
    # 状态规则
    "RECOMPUTABLE_STATES",
    "derive_status",
    # Event
    "Event",
    # 请求
    "CreateEventRequest",
    "UpdateEventRequest",
    "EventFilter",
    # 结果
    "StatusChangeResult",
    "CascadeFailure",
    "DeleteResult",
    "DatabaseInfo",
    # 排序偏好
    "TagSortRule",
    "SortPreferences",
]
