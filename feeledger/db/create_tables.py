"""
Create all fee ledger tables (batches, students, academic_periods, fee_types,
fee_components, student_fees, payments) if they do not exist.

Run once against a fresh database with DATABASE_URL set:
  python -m feeledger.db.create_tables
"""
import asyncio

import feeledger.core.models  # noqa: F401  (registers the tables on Base.metadata)
from feeledger.db.session import Base, engine


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    try:
        await create_tables()
    finally:
        await engine.dispose()
    print("Tables created:", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    asyncio.run(main())
