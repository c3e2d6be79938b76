from __future__ import annotations

"""setup_db.py: Create the chat tables without running migrations.

Handy for a fresh local database:
    python scripts/setup_db.py

Creates:
  - chats
  - messages
  - parsed_contents

Use `alembic upgrade head` instead on databases that are already managed.
"""

import asyncio
import sys
from pathlib import Path

# Allow running from project root without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from docchat.config import settings
from docchat.db.models import Base
from docchat.db.session import async_engine


async def main() -> None:
    print(f"Connecting to {settings.database_url!r} …")
    try:
        async with async_engine.begin() as conn:
            print("Creating tables …")
            await conn.run_sync(Base.metadata.create_all)
        print("✓ Database setup complete.")
    finally:
        await async_engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
