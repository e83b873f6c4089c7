"""
Database CLI Commands

Database operations: init
"""
import asyncio
from typing import Optional

from quizeval.config import settings


class DbCommand:
    """Database CLI command handler."""

    def __init__(self, dry_run: bool = False, database_url: Optional[str] = None):
        self.dry_run = dry_run
        self.database_url = database_url or settings.DATABASE_URL

    def execute(self, args) -> int:
        """Execute database command."""
        if args.db_action == "init":
            return self._init(args)
        else:
            print("Error: Unknown database action")
            return 1

    def _init(self, args) -> int:
        """Create missing tables."""
        print("=== Database Init ===")

        if self.dry_run:
            print(f"[DRY RUN] Would create tables on {self._masked_url()}")
            return 0

        try:
            asyncio.run(self._async_init())
            print("✓ Tables created")
            return 0
        except Exception as e:
            print(f"✗ Init failed: {e}")
            return 1

    async def _async_init(self) -> None:
        from quizeval.database import build_engine
        from quizeval.orm.base import Base

        engine = build_engine(self.database_url)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        finally:
            await engine.dispose()

    def _masked_url(self) -> str:
        """Database URL with the password hidden."""
        from sqlalchemy.engine import make_url

        return make_url(self.database_url).render_as_string(hide_password=True)
