"""
Persistenz der Web-Push-Subscriptions.

Jede Operation öffnet ihre eigene kurze Session, damit parallele
Zustellungen (und deren Eviction-Deletes) keine Session teilen.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, Protocol, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskvision.models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)


class SubscriptionStoreError(Exception):
    """Subscriptions konnten nicht gelesen werden."""


class SubscriptionStore(Protocol):
    async def list_by_owners(self, owner_ids: Iterable[uuid.UUID]) -> Sequence[PushSubscription]: ...

    async def list_all(self) -> Sequence[PushSubscription]: ...

    async def delete_by_id(self, subscription_id: uuid.UUID) -> None: ...


class SqlSubscriptionStore:

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # ── Lesen ────────────────────────────────────────────────────────────────

    async def list_by_owners(self, owner_ids: Iterable[uuid.UUID]) -> list[PushSubscription]:
        ids = list(dict.fromkeys(owner_ids))
        if not ids:
            raise ValueError("owner_ids must not be empty – use list_all() for broadcast")
        return await self._read(
            select(PushSubscription)
            .where(PushSubscription.employee_id.in_(ids))
            .order_by(PushSubscription.created_at, PushSubscription.id)
        )

    async def list_all(self) -> list[PushSubscription]:
        return await self._read(
            select(PushSubscription).order_by(PushSubscription.created_at, PushSubscription.id)
        )

    async def list_for_owner(self, owner_id: uuid.UUID) -> list[PushSubscription]:
        return await self.list_by_owners([owner_id])

    async def _read(self, stmt) -> list[PushSubscription]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Reading push subscriptions failed: %s", e)
            raise SubscriptionStoreError(str(e)[:200]) from e

    # ── Schreiben ────────────────────────────────────────────────────────────

    async def delete_by_id(self, subscription_id: uuid.UUID) -> None:
        """Idempotent: eine bereits gelöschte Subscription ist kein Fehler."""
        async with self.session_factory() as session:
            await session.execute(
                delete(PushSubscription).where(PushSubscription.id == subscription_id)
            )
            await session.commit()

    async def delete_by_endpoint(
        self, endpoint: str, owner_id: uuid.UUID | None = None
    ) -> int:
        conditions = [PushSubscription.endpoint == endpoint]
        if owner_id is not None:
            conditions.append(PushSubscription.employee_id == owner_id)
        async with self.session_factory() as session:
            result = await session.execute(delete(PushSubscription).where(*conditions))
            await session.commit()
            return result.rowcount or 0

    async def upsert(
        self,
        owner_id: uuid.UUID,
        endpoint: str,
        p256dh: str,
        auth: str,
        replaces_endpoint: str | None = None,
    ) -> PushSubscription:
        """
        Legt eine Subscription an oder aktualisiert die Schlüssel, eindeutig
        über (owner_id, endpoint). replaces_endpoint entfernt die vorherige
        Registrierung desselben Mitarbeiters (Browser hat den Endpoint rotiert).
        """
        async with self.session_factory() as session:
            if replaces_endpoint and replaces_endpoint != endpoint:
                await session.execute(
                    delete(PushSubscription).where(
                        PushSubscription.employee_id == owner_id,
                        PushSubscription.endpoint == replaces_endpoint,
                    )
                )

            sub = await self._find(session, owner_id, endpoint)
            if sub is None:
                sub = PushSubscription(
                    employee_id=owner_id,
                    endpoint=endpoint,
                    p256dh=p256dh,
                    auth=auth,
                )
                session.add(sub)
                try:
                    await session.commit()
                except IntegrityError:
                    # Paralleler Subscribe desselben Geräts – dann aktualisieren
                    await session.rollback()
                    sub = await self._find(session, owner_id, endpoint)
                    if sub is None:
                        raise
                    self._rekey(sub, p256dh, auth)
                    await session.commit()
            else:
                self._rekey(sub, p256dh, auth)
                await session.commit()

            await session.refresh(sub)
            return sub

    @staticmethod
    async def _find(
        session: AsyncSession, owner_id: uuid.UUID, endpoint: str
    ) -> PushSubscription | None:
        result = await session.execute(
            select(PushSubscription).where(
                PushSubscription.employee_id == owner_id,
                PushSubscription.endpoint == endpoint,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _rekey(sub: PushSubscription, p256dh: str, auth: str) -> None:
        sub.p256dh = p256dh
        sub.auth = auth
        sub.updated_at = datetime.now(timezone.utc)
