"""写操作结果模型

每次写操作都返回被修改的事件集合，调用方可据此增量刷新视图。
"""

from pydantic import BaseModel, Field

from .event import Event


class CascadeFailure(BaseModel):
    """级联解除阻塞时单个依赖方的写入失败"""

    event_id: str
    error_type: str
    message: str


class StatusChangeResult(BaseModel):
    """set_status 的返回值

    目标事件的状态已提交；unblocked 为成功解除阻塞的直接依赖方，
    failures 为写入失败、需要单独重试的依赖方。
    """

    target: Event
    unblocked: list[Event] = Field(default_factory=list)
    failures: list[CascadeFailure] = Field(default_factory=list)

    @property
    def updated(self) -> list[Event]:
        """按写入顺序返回所有被修改的事件"""
        return [self.target, *self.unblocked]

    @property
    def partial(self) -> bool:
        """是否存在级联写入失败"""
        return bool(self.failures)


class DeleteResult(BaseModel):
    """delete 的返回值 -- detached 为 dependencies 被改写的依赖方"""

    deleted_id: str
    detached: list[Event] = Field(default_factory=list)


class DatabaseInfo(BaseModel):
    """数据库文件信息 -- 创建、校验与切换操作的返回值"""

    path: str | None = None
    event_count: int = 0
