"""
FastAPI dependencies for services built by create_app().
"""

from __future__ import annotations

from fastapi import Request

from taskapi.config import Settings
from taskapi.services import TaskService, UserService


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service
