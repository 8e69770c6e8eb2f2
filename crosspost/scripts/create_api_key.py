import argparse
import asyncio

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from crosspost.core.config import settings
from crosspost.core.security import generate_api_key
from crosspost.models.api_key import ApiKey


async def main(user_id: str) -> None:
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)

    parts = generate_api_key()
    async with Session() as db:
        db.add(ApiKey(user_id=user_id, key_prefix=parts.prefix, key_hash=parts.hashed, is_active=True))
        await db.commit()

    await engine.dispose()
    # shown once; only the hash is stored
    print(parts.plain)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Issue an API key for a listing owner.")
    parser.add_argument("user_id")
    args = parser.parse_args()

    asyncio.run(main(args.user_id))
