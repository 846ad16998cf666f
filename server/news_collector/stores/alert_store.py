"""
Alert Store

Read access to active alert rules (joined with their owner's contact info)
and the notification dispatch records that make delivery at-most-once.
"""
from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from news_collector.core.types import PersistenceError
from news_collector.models.news import AlertRule, ImpactLevel, UserContact

from .database import Database
from .schema import AlertRow, NotificationDispatchRow

logger = logging.getLogger(__name__)


def _row_to_rule(row: AlertRow) -> AlertRule:
    user = row.user
    return AlertRule(
        id=row.id,
        user_id=row.user_id,
        keyword=row.keyword,
        min_impact=ImpactLevel.from_string(row.min_impact) or ImpactLevel.C,
        notify_push=bool(row.notify_push),
        notify_email=bool(row.notify_email),
        notify_discord=bool(row.notify_discord),
        is_active=bool(row.is_active),
        user=UserContact(
            id=row.user_id,
            email=user.email if user else None,
            push_subscription=user.push_subscription if user else None,
            discord_webhook=user.discord_webhook if user else None,
        ),
    )


class AlertStore:
    """Alert rules (read-only) and dispatch claims."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def list_active_alerts(self) -> list[AlertRule]:
        """All active rules, each with its owning user's contact info."""
        return await self._db.run(self._list_active_alerts)

    def _list_active_alerts(self) -> list[AlertRule]:
        with self._db.session() as session:
            rows = session.scalars(
                select(AlertRow).where(AlertRow.is_active.is_(True))
            ).unique().all()
            rules = []
            for row in rows:
                try:
                    rules.append(_row_to_rule(row))
                except ValueError as exc:
                    logger.warning("Skipping invalid alert rule %s: %s", row.id, exc)
            return rules

    async def claim_dispatch(
        self,
        alert_id: str,
        article_id: str,
        channels: Sequence[str],
    ) -> bool:
        """
        Record that (alert, article) is being notified.

        Returns True if this call created the record, False if it already
        existed. The unique constraint makes concurrent claims safe: exactly
        one caller wins.
        """
        return await self._db.run(self._claim_dispatch, alert_id, article_id, list(channels))

    def _claim_dispatch(self, alert_id: str, article_id: str, channels: list[str]) -> bool:
        try:
            with self._db.session() as session:
                session.add(
                    NotificationDispatchRow(
                        alert_id=alert_id,
                        article_id=article_id,
                        channels=channels,
                    )
                )
                session.flush()
        except IntegrityError:
            logger.debug(
                "Dispatch already claimed",
                extra={"alert_id": alert_id, "article_id": article_id},
            )
            return False
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Dispatch claim failed: {exc}",
                "claim_dispatch",
                {"alert_id": alert_id, "article_id": article_id},
            ) from exc
        return True

    async def release_dispatch(self, alert_id: str, article_id: str) -> None:
        """Drop a claim whose job never reached the queue."""
        await self._db.run(self._release_dispatch, alert_id, article_id)

    def _release_dispatch(self, alert_id: str, article_id: str) -> None:
        try:
            with self._db.session() as session:
                session.execute(
                    delete(NotificationDispatchRow)
                    .where(NotificationDispatchRow.alert_id == alert_id)
                    .where(NotificationDispatchRow.article_id == article_id)
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Dispatch release failed: {exc}",
                "release_dispatch",
                {"alert_id": alert_id, "article_id": article_id},
            ) from exc
