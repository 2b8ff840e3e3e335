from .base import Base
from .session import ENGINE, SessionLocal, init_db, read_session

__all__ = [
    "Base",
    "ENGINE",
    "SessionLocal",
    "init_db",
    "read_session",
]
