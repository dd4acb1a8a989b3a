"""
Migration registry - define migrations here, oldest first
"""

from sqlalchemy import select, text

from axiss_nav.db import Base
from axiss_nav.emoji_matcher import match_tag_emoji
from axiss_nav.migrations import create_migration, migration_runner, MigrationRunner


def register(runner: MigrationRunner) -> MigrationRunner:

    @create_migration("001", "initial_schema", runner=runner)
    def migration_001_initial_schema(session):
        from axiss_nav import models  # noqa: F401
        Base.metadata.create_all(session.get_bind())

    @create_migration("002", "backfill_tag_icons", runner=runner)
    def migration_002_backfill_tag_icons(session):
        from axiss_nav.models import Tag
        for tag in session.execute(select(Tag).where((Tag.icon.is_(None)) | (Tag.icon == ""))).scalars():
            tag.icon = match_tag_emoji(tag.name)

    def migration_003_down(session):
        session.execute(text("DROP INDEX IF EXISTS ix_links_user_active"))

    @create_migration("003", "links_user_active_index", down=migration_003_down, runner=runner)
    def migration_003_links_user_active_index(session):
        session.execute(text(
            "CREATE INDEX IF NOT EXISTS ix_links_user_active ON links (user_id, is_active)"
        ))

    return runner


register(migration_runner)
