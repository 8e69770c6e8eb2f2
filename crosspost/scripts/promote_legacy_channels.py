import argparse
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from crosspost.core.config import settings
from crosspost.models.listing import Listing
from crosspost.services.channel_store import promote_legacy_channels


async def main(owner_id: str | None, batch_size: int, dry_run: bool) -> None:
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)

    scanned = 0
    created = 0
    after = ""
    async with Session() as db:
        while True:
            stmt = select(Listing).where(Listing.id > after).order_by(Listing.id.asc()).limit(batch_size)
            if owner_id:
                stmt = stmt.where(Listing.owner_id == owner_id)
            batch = (await db.execute(stmt)).scalars().all()
            if not batch:
                break

            for listing in batch:
                if listing.cross_post_results:
                    created += await promote_legacy_channels(db, listing)
            scanned += len(batch)
            after = batch[-1].id

            if dry_run:
                await db.rollback()
            else:
                await db.commit()

    await engine.dispose()
    mode = "would create" if dry_run else "created"
    print(f"Scanned {scanned} listings, {mode} {created} channel rows")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Copy embedded cross_post_results into channel_listings rows.")
    parser.add_argument("--owner-id", default=None)
    parser.add_argument("--batch-size", type=int, default=200)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    asyncio.run(main(args.owner_id, args.batch_size, args.dry_run))
