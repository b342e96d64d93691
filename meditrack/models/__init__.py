from .base import Base
from .session import StoredSession

__all__ = ["Base", "StoredSession"]
