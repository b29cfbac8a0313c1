from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from src.config import settings


def _engine_kwargs(url: str) -> dict:
    # sqlite (tests, local runs) has no connection pool worth pinging
    if url.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


def create_engine_for(url: str, echo: bool = False):
    return create_async_engine(url, echo=echo, **_engine_kwargs(url))


def create_session_factory(bind) -> async_sessionmaker:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine_for(settings.SQLALCHEMY_DATABASE_URI)
AsyncSessionLocal = create_session_factory(engine)

Base = declarative_base()

# Dependency
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
