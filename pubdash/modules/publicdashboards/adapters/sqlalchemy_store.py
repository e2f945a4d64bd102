from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pubdash.errors import PublicDashboardNotFoundError, PublicDashboardValidationError
from pubdash.models import DashboardRecord, PublicDashboardRecord
from pubdash.modules.publicdashboards.application.tokens import ShortUidGenerator
from pubdash.modules.publicdashboards.domain.models import (
    Dashboard,
    PublicDashboard,
    PublicDashboardListItem,
    TimeSettings,
)

logger = logging.getLogger("uvicorn.error")


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _dump_time_settings(value: TimeSettings) -> str:
    return json.dumps(value.to_dict(), separators=(",", ":"), sort_keys=True)


def _load_time_settings(raw: str | None) -> TimeSettings:
    if not raw:
        return TimeSettings()
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("publicdashboards.time_settings.invalid | %s", {"raw": raw[:200]})
        return TimeSettings()
    return TimeSettings.from_dict(payload if isinstance(payload, dict) else None)


def _to_dashboard(record: DashboardRecord) -> Dashboard:
    return Dashboard(
        id=record.id,
        uid=record.uid,
        org_id=record.org_id,
        title=record.title or "",
        data=dict(record.data or {}),
    )


def _to_public_dashboard(record: PublicDashboardRecord) -> PublicDashboard:
    return PublicDashboard(
        uid=record.uid,
        dashboard_uid=record.dashboard_uid,
        org_id=record.org_id,
        access_token=record.access_token,
        is_enabled=bool(record.is_enabled),
        annotations_enabled=bool(record.annotations_enabled),
        time_settings=_load_time_settings(record.time_settings),
        created_by=record.created_by,
        created_at=record.created_at,
        updated_by=record.updated_by,
        updated_at=record.updated_at,
    )


class SqlDashboardStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    def find_dashboard(self, uid: str, org_id: int) -> Dashboard | None:
        record = (
            self._db.query(DashboardRecord)
            .filter(DashboardRecord.uid == uid, DashboardRecord.org_id == org_id)
            .first()
        )
        return _to_dashboard(record) if record else None

    def save_dashboard(self, *, org_id: int, data: dict[str, Any], uid: str | None = None) -> Dashboard:
        uid = uid or str(data.get("uid") or "") or ShortUidGenerator().new_random_id()
        payload = {**data, "uid": uid}
        record = (
            self._db.query(DashboardRecord)
            .filter(DashboardRecord.uid == uid, DashboardRecord.org_id == org_id)
            .first()
        )
        if record is None:
            record = DashboardRecord(uid=uid, org_id=org_id)
            self._db.add(record)
        record.title = str(payload.get("title") or "")
        record.data = payload
        self._db.commit()
        self._db.refresh(record)
        return _to_dashboard(record)


class SqlPublicDashboardStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    def find(self, uid: str) -> PublicDashboard | None:
        if not uid:
            return None
        record = self._db.query(PublicDashboardRecord).filter(PublicDashboardRecord.uid == uid).first()
        return _to_public_dashboard(record) if record else None

    def find_by_access_token(self, access_token: str) -> PublicDashboard | None:
        if not access_token:
            raise PublicDashboardValidationError(
                code="public_dashboard_identifier_not_set",
                message="Public dashboard access token is not set",
            )
        record = (
            self._db.query(PublicDashboardRecord)
            .filter(PublicDashboardRecord.access_token == access_token)
            .first()
        )
        return _to_public_dashboard(record) if record else None

    def find_by_dashboard_uid(self, org_id: int, dashboard_uid: str) -> PublicDashboard | None:
        if not dashboard_uid:
            return None
        record = (
            self._db.query(PublicDashboardRecord)
            .filter(
                PublicDashboardRecord.org_id == org_id,
                PublicDashboardRecord.dashboard_uid == dashboard_uid,
            )
            .order_by(PublicDashboardRecord.created_at.asc())
            .first()
        )
        return _to_public_dashboard(record) if record else None

    def find_all(self, org_id: int) -> list[PublicDashboardListItem]:
        """List the org's public dashboards, enabled first, then by dashboard title.

        Records whose dashboard no longer exists come last with an empty title.
        """
        rows = (
            self._db.query(PublicDashboardRecord, DashboardRecord.title)
            .outerjoin(
                DashboardRecord,
                (DashboardRecord.uid == PublicDashboardRecord.dashboard_uid)
                & (DashboardRecord.org_id == PublicDashboardRecord.org_id),
            )
            .filter(PublicDashboardRecord.org_id == org_id)
            .order_by(
                PublicDashboardRecord.is_enabled.desc(),
                case((DashboardRecord.id.is_(None), 1), else_=0),
                DashboardRecord.title.asc(),
                PublicDashboardRecord.uid.asc(),
            )
            .all()
        )
        return [
            PublicDashboardListItem(
                uid=record.uid,
                access_token=record.access_token,
                dashboard_uid=record.dashboard_uid,
                title=title or "",
                is_enabled=bool(record.is_enabled),
            )
            for record, title in rows
        ]

    def save(self, public_dashboard: PublicDashboard) -> None:
        record = PublicDashboardRecord(
            uid=public_dashboard.uid,
            dashboard_uid=public_dashboard.dashboard_uid,
            org_id=public_dashboard.org_id,
            access_token=public_dashboard.access_token,
            is_enabled=public_dashboard.is_enabled,
            annotations_enabled=public_dashboard.annotations_enabled,
            time_settings=_dump_time_settings(public_dashboard.time_settings),
            created_by=public_dashboard.created_by,
            created_at=_naive_utc(public_dashboard.created_at) or datetime.utcnow(),
        )
        self._db.add(record)
        try:
            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            raise PublicDashboardValidationError(
                status_code=409,
                code="public_dashboard_already_exists",
                message="Public dashboard uid or access token already exists",
            ) from exc

    def update(self, public_dashboard: PublicDashboard) -> None:
        record = self._db.query(PublicDashboardRecord).filter(PublicDashboardRecord.uid == public_dashboard.uid).first()
        if record is None:
            raise PublicDashboardNotFoundError()
        record.is_enabled = public_dashboard.is_enabled
        record.annotations_enabled = public_dashboard.annotations_enabled
        record.time_settings = _dump_time_settings(public_dashboard.time_settings)
        record.updated_by = public_dashboard.updated_by
        record.updated_at = _naive_utc(public_dashboard.updated_at) or datetime.utcnow()
        self._db.commit()

    def exists_enabled_by_access_token(self, access_token: str) -> bool:
        if not access_token:
            return False
        return (
            self._db.query(PublicDashboardRecord.uid)
            .filter(
                PublicDashboardRecord.access_token == access_token,
                PublicDashboardRecord.is_enabled.is_(True),
            )
            .first()
            is not None
        )

    def exists_enabled_by_dashboard_uid(self, dashboard_uid: str) -> bool:
        if not dashboard_uid:
            return False
        return (
            self._db.query(PublicDashboardRecord.uid)
            .filter(
                PublicDashboardRecord.dashboard_uid == dashboard_uid,
                PublicDashboardRecord.is_enabled.is_(True),
            )
            .first()
            is not None
        )
