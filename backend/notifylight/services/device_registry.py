"""Device registry - push tokens keyed by token, associated with users."""
import logging
import uuid
from typing import Dict, List, Sequence

from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..database import session_scope, utcnow
from ..models import Device
from .validator import ALL_USERS, PLATFORMS, validate_device

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Persistent store of device tokens."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def register_device(self, token: str, platform: str, user_id: str) -> Device:
        """Register a device, or refresh it if the token is already known.

        Runs as a single INSERT ... ON CONFLICT(token) DO UPDATE, so
        concurrent registrations of one token never create two rows. The
        existing row keeps its id and created_at.
        """
        validate_device(token, platform, user_id)
        now = utcnow()

        async with session_scope(self._session_factory) as session:
            insert = pg_insert if session.bind.dialect.name == "postgresql" else sqlite_insert
            columns = Device.__table__.c
            stmt = insert(Device.__table__).values(
                id=str(uuid.uuid4()),
                token=token,
                platform=platform,
                user_id=user_id,
                created_at=now,
                updated_at=now,
            )
            # id and created_at keep their original values
            stmt = stmt.on_conflict_do_update(
                index_elements=[columns.token],
                set_={
                    columns.platform: stmt.excluded.platform,
                    columns.user_id: stmt.excluded.user_id,
                    columns.updated_at: stmt.excluded.updated_at,
                },
            )
            await session.execute(stmt)

            result = await session.execute(select(Device).where(Device.token == token))
            device = result.scalar_one()
            await session.commit()

        logger.info(f"Device registered: {platform} token {token[:16]}... for user {user_id}")
        return device

    async def resolve_devices(self, user_ids: Sequence[str]) -> List[Device]:
        """Devices for the given users, or every device for ["all"].

        Most recently updated first.
        """
        query = select(Device).order_by(Device.updated_at.desc())
        if ALL_USERS not in user_ids:
            if not user_ids:
                return []
            query = query.where(Device.user_id.in_(list(user_ids)))

        async with session_scope(self._session_factory) as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def distinct_user_ids(self) -> List[str]:
        """Every user id that has at least one registered device."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(Device.user_id).distinct().order_by(Device.user_id)
            )
            return list(result.scalars().all())

    async def stats(self) -> Dict[str, int]:
        """Device counts, total and per platform."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(Device.platform, func.count(Device.id)).group_by(Device.platform)
            )
            counts = {platform: 0 for platform in PLATFORMS}
            for platform, count in result.all():
                counts[platform] = count

        counts["total"] = sum(counts.values())
        return counts
