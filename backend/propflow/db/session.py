from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from propflow.config import get_settings

Base = declarative_base()
_settings = get_settings()
_connect_args = {}
if _settings.database_require_ssl:
    _connect_args["ssl"] = True
engine = create_async_engine(
    _settings.database_url,
    connect_args=_connect_args,
    echo=_settings.environment == "development",
)
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Sync engine for Celery workers and import execution threads.
# Recycle connections every 5 min to avoid stale SSL connections with cloud DBs.
_sync_engine = None


def get_sync_engine():
    global _sync_engine
    if _sync_engine is None:
        _sync_engine = create_engine(_settings.sync_database_url, pool_pre_ping=True, pool_recycle=300)
    return _sync_engine


def get_sync_session() -> Session:
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_sync_engine(), expire_on_commit=False)
    return SessionLocal()


async def get_db():
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
