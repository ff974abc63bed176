"""依赖注入模块 -- 通过 FastAPI Depends 注入核心服务

所有实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from todograph.core.database import DatabaseManager
from todograph.core.preferences import SortPreferencesService
from todograph.core.repository import EventRepository
from todograph.core.status_engine import StatusEngine
from todograph.core.store import StoreGroup


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_repository(request: Request) -> EventRepository:
    """从 app.state 获取 EventRepository 实例"""
    return request.app.state.repository


def get_status_engine(request: Request) -> StatusEngine:
    """从 app.state 获取 StatusEngine 实例"""
    return request.app.state.status_engine


def get_preferences(request: Request) -> SortPreferencesService:
    """从 app.state 获取 SortPreferencesService 实例"""
    return request.app.state.preferences


def get_database(request: Request) -> DatabaseManager:
    """从 app.state 获取 DatabaseManager 实例"""
    return request.app.state.database
