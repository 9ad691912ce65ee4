"""Repository for the notification inbox."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update

from kapkurtar.models.notification import Notification
from kapkurtar.storage.db_models import NotificationTable
from kapkurtar.storage.repository_base import RepositoryBase


class PostgresNotificationRepository(RepositoryBase[Notification]):
    """Notification repository using SQLAlchemy."""

    async def get_by_id(self, id: UUID) -> Optional[Notification]:
        stmt = select(NotificationTable).where(NotificationTable.id == id)
        result = await self.session.execute(stmt)
        db_notification = result.scalar_one_or_none()

        if not db_notification:
            return None

        return self._to_domain_model(db_notification)

    async def create(self, entity: Notification) -> Notification:
        db_notification = NotificationTable(
            id=entity.id,
            principal_id=entity.principal_id,
            type=entity.type,
            title=entity.title,
            message=entity.message,
            is_read=entity.is_read,
            created_at=entity.created_at,
        )
        self.session.add(db_notification)
        await self.session.flush()

        return self._to_domain_model(db_notification)

    async def list_for_principal(self, principal_id: UUID, limit: int = 50) -> list[Notification]:
        """Newest first."""
        stmt = (
            select(NotificationTable)
            .where(NotificationTable.principal_id == principal_id)
            .order_by(NotificationTable.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain_model(row) for row in result.scalars().all()]

    async def mark_read(self, id: UUID, principal_id: UUID) -> bool:
        """Set is_read on a row the principal owns. False if there is none."""
        stmt = (
            update(NotificationTable)
            .where(NotificationTable.id == id)
            .where(NotificationTable.principal_id == principal_id)
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    def _to_domain_model(self, db_notification: NotificationTable) -> Notification:
        return Notification(
            id=db_notification.id,
            principal_id=db_notification.principal_id,
            type=db_notification.type,
            title=db_notification.title,
            message=db_notification.message,
            is_read=db_notification.is_read,
            created_at=db_notification.created_at,
        )
