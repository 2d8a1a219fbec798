from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from shared_lib.config import get_config
from server.web.app.models import Base

settings = get_config()

database_url = settings.database.get_url()
engine_options = {"echo": settings.database.echo}
if database_url.startswith("postgresql"):
    engine_options.update(
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
    )

engine = create_async_engine(database_url, **engine_options)
AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session

async def init_models() -> None:
    """Create all tables. Intended for development databases."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
