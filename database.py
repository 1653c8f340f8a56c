from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from config import settings


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine; SQLite gets a single shared connection so in-memory URLs work."""
    url = database_url or settings.database_url
    sqlite = settings.is_sqlite if database_url is None else "sqlite" in url.split(":")[0].lower()
    kwargs = {"echo": settings.debug if echo is None else echo}
    if sqlite:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_async_engine(url, **kwargs)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    import models  # noqa: F401  (registers tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
