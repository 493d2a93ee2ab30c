from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from core.environment import get_database_url


DATABASE_URL = get_database_url()
DATABASE_BACKEND = make_url(DATABASE_URL).get_backend_name()


def _engine_options(backend: str) -> dict:
    if backend == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


engine = create_async_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_BACKEND))

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
Base = declarative_base()


async def init_models():
    """Create missing tables on startup and before seeding."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
