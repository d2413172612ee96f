from propflow.db.session import get_db, engine, async_session_maker, get_sync_session, Base
from propflow.db.base_class import BaseModel

__all__ = ["get_db", "engine", "async_session_maker", "get_sync_session", "Base", "BaseModel"]
