"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、名称长度上限、标签长度上限等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TODOGRAPH_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TODOGRAPH_DB_PATH",
        str(_get_base_dir() / "sqlite" / "todograph.db"),
    )


# 事件名称最大字符数（strip 之后计算）
NAME_MAX_LENGTH: int = int(os.environ.get("TODOGRAPH_NAME_MAX_LENGTH", "200"))

# 标签 key 最大字符数
TAG_KEY_MAX_LENGTH: int = int(os.environ.get("TODOGRAPH_TAG_KEY_MAX_LENGTH", "64"))

# 标签 value 最大字符数
TAG_VALUE_MAX_LENGTH: int = int(
    os.environ.get("TODOGRAPH_TAG_VALUE_MAX_LENGTH", "256")
)
