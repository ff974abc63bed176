"""Core 异常体系

校验错误与图结构错误在写入前抛出（无副作用）；
只有持久化错误可能伴随显式上报的部分生效。
"""


class TodoGraphError(Exception):
    """todograph 基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class ValidationError(TodoGraphError):
    """输入校验失败：空名称/超长名称、非法标签、自依赖、依赖不存在等"""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, recoverable=False)
        self.field = field


class NotFoundError(TodoGraphError):
    """引用了不存在的实体"""

    def __init__(self, entity_id: str, entity: str = "event") -> None:
        super().__init__(f"{entity} not found: {entity_id}", recoverable=False)
        self.entity = entity
        self.entity_id = entity_id


class CyclicDependencyError(TodoGraphError):
    """依赖变更会在依赖图中形成环

    cycle 为环上的事件 ID 序列，首尾相同，例如 [a, b, a]。
    """

    def __init__(self, event_id: str, cycle: list[str] | None = None) -> None:
        path = " -> ".join(cycle) if cycle else event_id
        super().__init__(f"dependency cycle detected: {path}", recoverable=False)
        self.event_id = event_id
        self.cycle = cycle or []


class PersistenceError(TodoGraphError):
    """底层存储失败（事务已回滚）

    此异常可通过重试恢复。
    """

    def __init__(self, operation: str, original_error: Exception) -> None:
        """
        Args:
            operation: 失败的存储操作名称
            original_error: 原始异常
        """
        super().__init__(
            f"persistence failure during {operation}: {original_error}",
            recoverable=True,
        )
        self.operation = operation
        self.original_error = original_error
