"""
Small migration runner in the spirit of Alembic: versioned up/down callables,
applied in registration order and recorded in `schema_migrations`.
"""

import hashlib
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy import Column, String, DateTime, Integer
from sqlalchemy.orm import declarative_base, Session, sessionmaker

from axiss_nav.db import SessionLocal

logger = logging.getLogger("axiss_nav.migrations")

MigrationBase = declarative_base()

MigrationFn = Callable[[Session], None]

BASE_VERSION = "0"


class MigrationRecord(MigrationBase):
    __tablename__ = "schema_migrations"

    id = Column(Integer, primary_key=True)
    version = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    applied_at = Column(DateTime(timezone=True), nullable=False)
    checksum = Column(String(64), nullable=False)


class MigrationError(RuntimeError):
    pass


class Migration:
    """Single migration with up/down operations"""

    def __init__(self, version: str, name: str, up: MigrationFn, down: Optional[MigrationFn] = None):
        self.version = version
        self.name = name
        self.up = up
        self.down = down
        self.checksum = self._calculate_checksum()

    def _calculate_checksum(self) -> str:
        content = f"{self.version}:{self.name}:{self.up.__code__.co_code!r}"
        return hashlib.sha256(content.encode()).hexdigest()


class MigrationRunner:

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory
        self.migrations: List[Migration] = []
        self._table_ready = False

    def _ensure_migration_table(self) -> None:
        if not self._table_ready:
            MigrationBase.metadata.create_all(self.session_factory.kw["bind"])
            self._table_ready = True

    def add_migration(self, version: str, name: str, up: MigrationFn, down: Optional[MigrationFn] = None) -> Migration:
        if any(m.version == version for m in self.migrations):
            raise MigrationError(f"duplicate migration version {version}")
        migration = Migration(version, name, up, down)
        self.migrations.append(migration)
        return migration

    def get_applied_migrations(self) -> List[str]:
        self._ensure_migration_table()
        with self.session_factory() as session:
            records = session.query(MigrationRecord).order_by(MigrationRecord.id).all()
            return [r.version for r in records]

    def get_pending_migrations(self) -> List[Migration]:
        applied = set(self.get_applied_migrations())
        return [m for m in self.migrations if m.version not in applied]

    def migrate(self, target_version: Optional[str] = None) -> List[str]:
        """Apply pending migrations, optionally stopping at target_version. Returns the versions applied."""
        pending = self.get_pending_migrations()

        if target_version:
            idx = next((i for i, m in enumerate(pending) if m.version == target_version), None)
            if idx is None:
                raise MigrationError(f"migration version {target_version} not found among pending")
            pending = pending[:idx + 1]

        applied = []
        for migration in pending:
            logger.info("applying %s: %s", migration.version, migration.name)
            with self.session_factory() as session:
                try:
                    migration.up(session)
                    session.add(MigrationRecord(
                        version=migration.version,
                        name=migration.name,
                        applied_at=datetime.now(timezone.utc),
                        checksum=migration.checksum,
                    ))
                    session.commit()
                except Exception:
                    session.rollback()
                    logger.exception("migration %s failed", migration.version)
                    raise
            applied.append(migration.version)
        return applied

    def downgrade(self, target_version: str) -> List[str]:
        """
        Roll back applied migrations newer than target_version ("0" rolls back
        everything). Returns the versions rolled back.
        """
        applied = self.get_applied_migrations()
        if target_version != BASE_VERSION and target_version not in applied:
            raise MigrationError(f"migration version {target_version} is not applied")

        to_rollback = []
        for version in reversed(applied):
            if version == target_version:
                break
            migration = next((m for m in self.migrations if m.version == version), None)
            if migration is None or migration.down is None:
                raise MigrationError(f"migration {version} cannot be rolled back")
            to_rollback.append(migration)

        rolled_back = []
        for migration in to_rollback:
            logger.info("rolling back %s: %s", migration.version, migration.name)
            with self.session_factory() as session:
                try:
                    migration.down(session)
                    session.query(MigrationRecord).filter_by(version=migration.version).delete()
                    session.commit()
                except Exception:
                    session.rollback()
                    logger.exception("rollback of %s failed", migration.version)
                    raise
            rolled_back.append(migration.version)
        return rolled_back

    def status(self) -> Dict[str, List[str]]:
        applied = self.get_applied_migrations()
        return {
            "applied": applied,
            "pending": [m.version for m in self.migrations if m.version not in set(applied)],
        }

    def history(self) -> List[Dict[str, object]]:
        applied = set(self.get_applied_migrations())
        return [
            {
                "version": m.version,
                "name": m.name,
                "applied": m.version in applied,
                "reversible": m.down is not None,
            }
            for m in self.migrations
        ]


migration_runner = MigrationRunner()


def create_migration(version: str, name: str, down: Optional[MigrationFn] = None,
                     runner: Optional[MigrationRunner] = None):
    """Decorator registering the wrapped function as the `up` step of a migration."""
    def decorator(func: MigrationFn) -> MigrationFn:
        (runner or migration_runner).add_migration(version, name, func, down)
        return func
    return decorator
