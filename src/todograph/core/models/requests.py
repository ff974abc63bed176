"""请求模型 -- 创建/更新/筛选

这里只做类型约束，业务校验（空名称、依赖存在性、环检测）
由 EventRepository 在写入前完成，并抛出 core 异常。
"""

from pydantic import BaseModel, Field

from .enums import EventStatus


class CreateEventRequest(BaseModel):
    """创建事件请求"""

    name: str
    description: str = ""
    tags: dict[str, str] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)


class UpdateEventRequest(BaseModel):
    """更新事件请求 -- None 表示该字段保持不变

    状态变更不走此请求，统一由 StatusEngine.set_status 处理。
    """

    id: str
    name: str | None = None
    description: str | None = None
    tags: dict[str, str] | None = None
    dependencies: list[str] | None = None


class EventFilter(BaseModel):
    """事件筛选条件

    - status: 精确匹配
    - tags: 每个键值对都必须精确匹配
    - search: 名称或描述的大小写不敏感子串匹配
    """

    status: EventStatus | None = None
    tags: dict[str, str] | None = None
    search: str | None = None

    def matches(self, event) -> bool:
        """判断事件是否满足筛选条件"""
        if self.status is not None and event.status != self.status:
            return False
        if self.tags:
            for key, value in self.tags.items():
                if event.tags.get(key) != value:
                    return False
        if self.search:
            needle = self.search.casefold()
            if (
                needle not in event.name.casefold()
                and needle not in event.description.casefold()
            ):
                return False
        return True
