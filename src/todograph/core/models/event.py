"""Event Domain Model

id 使用 ULID 格式，创建后不可变。
tags 保留插入顺序；dependencies 按集合语义去重，保留首次出现顺序。
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from .enums import EventStatus


class Event(BaseModel):
    """Event 数据模型

    updated_at 单调不减且始终 >= created_at。
    """

    id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(description="事件名称，非空")
    description: str = Field(default="", description="描述，可为空")
    tags: dict[str, str] = Field(default_factory=dict, description="标签键值对")
    status: EventStatus = Field(default=EventStatus.PENDING, description="当前状态")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    dependencies: list[str] = Field(
        default_factory=list,
        description="本事件依赖的事件 ID 列表",
    )

    @field_validator("dependencies")
    @classmethod
    def _dedupe_dependencies(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))
