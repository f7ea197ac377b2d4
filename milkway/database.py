from urllib.parse import urlparse, parse_qs, urlencode, urlunparse

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from milkway.config import settings


def _prepare_engine_args() -> tuple[str, dict]:
    """Build the engine URL and keyword arguments for the configured backend.

    asyncpg does not accept ``sslmode`` as a URL query parameter, so it is
    stripped and translated to ``connect_args={"ssl": True}``. SQLite URLs
    (used by the test suite and local demos) get no pool sizing because the
    SQLite pools reject those options.
    """
    raw_url = settings.DATABASE_URL
    parsed = urlparse(raw_url)

    if parsed.scheme.startswith("sqlite"):
        return raw_url, {}

    params = parse_qs(parsed.query, keep_blank_values=True)
    sslmode = params.pop("sslmode", [None])[0]
    params.pop("channel_binding", None)

    new_query = urlencode({k: v[0] for k, v in params.items()})
    clean_url = urlunparse(parsed._replace(query=new_query))

    engine_kwargs: dict = {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}
    if sslmode in ("require", "verify-ca", "verify-full"):
        engine_kwargs["connect_args"] = {"ssl": True}

    return clean_url, engine_kwargs


_DB_URL, _ENGINE_KWARGS = _prepare_engine_args()

engine = create_async_engine(_DB_URL, echo=False, **_ENGINE_KWARGS)

AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
