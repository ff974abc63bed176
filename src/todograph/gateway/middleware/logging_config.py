"""structlog 配置模块

dev 模式：ConsoleRenderer 彩色输出，异常带完整堆栈
json 模式：每行一个 JSON 对象，异常转为结构化 traceback

aiosqlite 在 DEBUG 级别逐条记录连接操作，uvicorn.access 与
LoggingMiddleware 的 request_completed 重复，两者都压到 WARNING。
"""

import logging
import os

import structlog

_QUIET_LOGGERS = ("aiosqlite", "uvicorn.access")


def _drop_color_message(
    _logger: logging.Logger, _method: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """uvicorn 在 extra 中附带 color_message，与 event 重复"""
    event_dict.pop("color_message", None)
    return event_dict


def resolve_level(name: str) -> int:
    """日志级别名称转数值，未知名称退回 INFO"""
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 与标准库 logging

    参数优先；缺省时读取 TODOGRAPH_LOG_FORMAT（"dev" | "json"，默认 dev）
    与 TODOGRAPH_LOG_LEVEL（默认 INFO）。可重复调用，后一次覆盖前一次。
    """
    log_format = (log_format or os.environ.get("TODOGRAPH_LOG_FORMAT", "dev")).lower()
    level = resolve_level(log_level or os.environ.get("TODOGRAPH_LOG_LEVEL", "INFO"))

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _drop_color_message,
    ]

    if log_format == "json":
        final_processors: list[structlog.types.Processor] = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        final_processors = [structlog.dev.ConsoleRenderer()]

    # 不缓存 logger：重新配置（含测试中的日志捕获）对模块级 logger 立即生效
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *final_processors,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
