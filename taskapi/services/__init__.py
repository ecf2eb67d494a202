"""
Services - the operations behind the HTTP routes.

- UserService: registration, login, token refresh, identity lookups
- TaskService: task CRUD with the ownership policy, listing, statistics
"""

from taskapi.services.tasks import ListParams, TaskPage, TaskService
from taskapi.services.users import UserService

__all__ = [
    "ListParams",
    "TaskPage",
    "TaskService",
    "UserService",
]
