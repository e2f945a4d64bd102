from __future__ import annotations

from sqlalchemy.orm import Session

from pubdash.models import AnnotationRecord
from pubdash.modules.publicdashboards.domain.models import (
    ACTION_ANNOTATIONS_READ,
    SCOPE_ANNOTATIONS_TYPE_DASHBOARD,
    SCOPE_ANNOTATIONS_TYPE_ORGANIZATION,
    AnnotationItem,
    AnnotationQuery,
)

DEFAULT_LIMIT = 100


def _matches_tags(item_tags: list[str], wanted: list[str], match_any: bool) -> bool:
    if not wanted:
        return True
    present = set(item_tags)
    if match_any:
        return any(tag in present for tag in wanted)
    return all(tag in present for tag in wanted)


class SqlAnnotationRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def find(self, query: AnnotationQuery) -> list[AnnotationItem]:
        context = query.context
        can_read_dashboard = context is None or context.has_permission(
            ACTION_ANNOTATIONS_READ, SCOPE_ANNOTATIONS_TYPE_DASHBOARD
        )
        can_read_organization = context is None or context.has_permission(
            ACTION_ANNOTATIONS_READ, SCOPE_ANNOTATIONS_TYPE_ORGANIZATION
        )
        if not can_read_dashboard and not can_read_organization:
            return []

        db_query = self._db.query(AnnotationRecord).filter(AnnotationRecord.org_id == query.org_id)
        if query.dashboard_uid:
            db_query = db_query.filter(AnnotationRecord.dashboard_uid == query.dashboard_uid)
        elif query.dashboard_id is not None:
            db_query = db_query.filter(AnnotationRecord.dashboard_id == query.dashboard_id)

        if not can_read_organization:
            db_query = db_query.filter(AnnotationRecord.dashboard_id.isnot(None), AnnotationRecord.dashboard_id != 0)
        if not can_read_dashboard:
            db_query = db_query.filter((AnnotationRecord.dashboard_id.is_(None)) | (AnnotationRecord.dashboard_id == 0))

        # each bound applies on its own, so a one-sided window still filters
        if query.time_to > 0:
            db_query = db_query.filter(AnnotationRecord.epoch <= query.time_to)
        if query.time_from > 0:
            db_query = db_query.filter(AnnotationRecord.epoch_end >= query.time_from)

        records = db_query.order_by(AnnotationRecord.epoch.desc(), AnnotationRecord.epoch_end.desc()).all()

        limit = query.limit if query.limit > 0 else DEFAULT_LIMIT
        items: list[AnnotationItem] = []
        for record in records:
            tags = [str(tag) for tag in (record.tags or [])]
            # tag filtering stays in Python, JSON containment differs across backends
            if not _matches_tags(tags, query.tags, query.match_any):
                continue
            items.append(
                AnnotationItem(
                    id=record.id,
                    dashboard_id=record.dashboard_id,
                    dashboard_uid=record.dashboard_uid,
                    panel_id=record.panel_id,
                    time=record.epoch,
                    time_end=record.epoch_end,
                    text=record.text or "",
                    tags=tags,
                )
            )
            if len(items) >= limit:
                break
        return items
