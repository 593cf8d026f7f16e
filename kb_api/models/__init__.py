from .documents import Document, DocumentStatusEnum
from .user_sessions import UserSession
from .users import User, UserRoleEnum

__all__ = [
    "Document",
    "DocumentStatusEnum",
    "User",
    "UserRoleEnum",
    "UserSession",
]
