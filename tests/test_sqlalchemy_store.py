from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pubdash.errors import PublicDashboardNotFoundError, PublicDashboardValidationError
from pubdash.models import AnnotationRecord
from pubdash.modules.publicdashboards import SqlAnnotationRepository, SqlDashboardStore, SqlPublicDashboardStore
from pubdash.modules.publicdashboards.application.access import build_anonymous_context
from pubdash.modules.publicdashboards.domain.models import AnnotationQuery, Dashboard, PublicDashboard, TimeSettings
from pubdash.shared.infrastructure.database import Base


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


def _public_dashboard(**overrides) -> PublicDashboard:
    values = {
        "uid": "pd-1",
        "dashboard_uid": "dash-1",
        "org_id": 1,
        "access_token": "a" * 32,
        "is_enabled": True,
        "annotations_enabled": False,
        "time_settings": TimeSettings(from_="now-1h", to="now"),
        "created_by": 3,
        "created_at": datetime(2026, 1, 1, 8, 0),
    }
    values.update(overrides)
    return PublicDashboard(**values)


def test_dashboard_store_round_trip(db: Session) -> None:
    store = SqlDashboardStore(db)
    saved = store.save_dashboard(org_id=1, data={"uid": "dash-1", "title": "Overview", "panels": []})

    found = store.find_dashboard("dash-1", 1)
    assert found is not None
    assert found.id == saved.id
    assert found.title == "Overview"
    assert found.data["panels"] == []
    assert store.find_dashboard("dash-1", 2) is None

    store.save_dashboard(org_id=1, uid="dash-1", data={"title": "Renamed", "panels": [{"id": 1}]})
    assert store.find_dashboard("dash-1", 1).title == "Renamed"


def test_public_dashboard_store_lookups(db: Session) -> None:
    store = SqlPublicDashboardStore(db)
    store.save(_public_dashboard())

    by_uid = store.find("pd-1")
    assert by_uid is not None
    assert by_uid.time_settings == TimeSettings(from_="now-1h", to="now")
    assert by_uid.created_at == datetime(2026, 1, 1, 8, 0)
    assert store.find_by_access_token("a" * 32).uid == "pd-1"
    assert store.find_by_dashboard_uid(1, "dash-1").uid == "pd-1"
    assert store.find_by_dashboard_uid(2, "dash-1") is None
    assert store.find("") is None
    assert store.find("missing") is None
    assert store.find_by_access_token("b" * 32) is None


def test_find_by_empty_access_token_is_rejected(db: Session) -> None:
    with pytest.raises(PublicDashboardValidationError) as exc_info:
        SqlPublicDashboardStore(db).find_by_access_token("")
    assert exc_info.value.code == "public_dashboard_identifier_not_set"


def test_update_writes_only_mutable_fields(db: Session) -> None:
    store = SqlPublicDashboardStore(db)
    store.save(_public_dashboard())

    store.update(
        _public_dashboard(
            access_token="b" * 32,
            dashboard_uid="other",
            created_by=99,
            is_enabled=False,
            annotations_enabled=True,
            time_settings=TimeSettings(from_="now-7d", to="now"),
            updated_by=4,
            updated_at=datetime(2026, 2, 1),
        )
    )

    updated = store.find("pd-1")
    assert updated.access_token == "a" * 32
    assert updated.dashboard_uid == "dash-1"
    assert updated.created_by == 3
    assert updated.is_enabled is False
    assert updated.annotations_enabled is True
    assert updated.time_settings.from_ == "now-7d"
    assert updated.updated_by == 4
    assert updated.updated_at == datetime(2026, 2, 1)

    with pytest.raises(PublicDashboardNotFoundError):
        store.update(_public_dashboard(uid="missing"))


def test_duplicate_access_token_is_rejected(db: Session) -> None:
    store = SqlPublicDashboardStore(db)
    store.save(_public_dashboard())

    with pytest.raises(PublicDashboardValidationError) as exc_info:
        store.save(_public_dashboard(uid="pd-2", dashboard_uid="dash-2"))

    assert exc_info.value.status_code == 409
    assert store.find("pd-2") is None


def test_exists_enabled_checks(db: Session) -> None:
    store = SqlPublicDashboardStore(db)
    store.save(_public_dashboard())
    store.save(_public_dashboard(uid="pd-2", dashboard_uid="dash-2", access_token="c" * 32, is_enabled=False))

    assert store.exists_enabled_by_access_token("a" * 32) is True
    assert store.exists_enabled_by_access_token("c" * 32) is False
    assert store.exists_enabled_by_access_token("") is False
    assert store.exists_enabled_by_dashboard_uid("dash-1") is True
    assert store.exists_enabled_by_dashboard_uid("dash-2") is False


def test_find_all_orders_enabled_first_then_title(db: Session) -> None:
    dashboards = SqlDashboardStore(db)
    for uid, title in (("d-alpha", "Alpha"), ("d-bravo", "Bravo"), ("d-charlie", "Charlie")):
        dashboards.save_dashboard(org_id=1, uid=uid, data={"title": title})

    store = SqlPublicDashboardStore(db)
    store.save(_public_dashboard(uid="p-alpha", dashboard_uid="d-alpha", access_token="1" * 32, is_enabled=False))
    store.save(_public_dashboard(uid="p-charlie", dashboard_uid="d-charlie", access_token="2" * 32))
    store.save(_public_dashboard(uid="p-orphan", dashboard_uid="d-gone", access_token="3" * 32))
    store.save(_public_dashboard(uid="p-bravo", dashboard_uid="d-bravo", access_token="4" * 32))
    store.save(_public_dashboard(uid="p-other-org", dashboard_uid="d-bravo", org_id=2, access_token="5" * 32))

    items = store.find_all(1)

    assert [item.uid for item in items] == ["p-bravo", "p-charlie", "p-orphan", "p-alpha"]
    assert [item.title for item in items] == ["Bravo", "Charlie", "", "Alpha"]


def _seed_annotations(db: Session) -> None:
    db.add_all(
        [
            AnnotationRecord(id=1, org_id=1, dashboard_id=10, dashboard_uid="dash-1", panel_id=2, epoch=1000, epoch_end=1000, text="deploy", tags=["deploy", "api"]),
            AnnotationRecord(id=2, org_id=1, dashboard_id=10, dashboard_uid="dash-1", panel_id=3, epoch=2000, epoch_end=2500, text="incident", tags=["incident"]),
            AnnotationRecord(id=3, org_id=1, dashboard_id=11, dashboard_uid="dash-2", panel_id=1, epoch=1500, epoch_end=1500, text="other board", tags=["deploy"]),
            AnnotationRecord(id=4, org_id=1, dashboard_id=None, dashboard_uid=None, panel_id=None, epoch=1200, epoch_end=1200, text="org wide", tags=["deploy"]),
            AnnotationRecord(id=5, org_id=2, dashboard_id=10, dashboard_uid="dash-1", panel_id=2, epoch=1000, epoch_end=1000, text="other org", tags=["deploy"]),
            AnnotationRecord(id=6, org_id=1, dashboard_id=10, dashboard_uid="dash-1", panel_id=2, epoch=90000, epoch_end=90000, text="late", tags=[]),
        ]
    )
    db.commit()


def _context():
    return build_anonymous_context(Dashboard(uid="dash-1", org_id=1, data={"panels": []}))


def test_annotation_repository_filters_dashboard_and_window(db: Session) -> None:
    _seed_annotations(db)
    repository = SqlAnnotationRepository(db)

    items = repository.find(
        AnnotationQuery(org_id=1, time_from=500, time_to=5000, dashboard_id=10, dashboard_uid="dash-1", context=_context())
    )

    assert [item.id for item in items] == [2, 1]
    assert items[0].time_end == 2500
    assert items[1].tags == ["deploy", "api"]


def test_annotation_repository_tag_matching(db: Session) -> None:
    _seed_annotations(db)
    repository = SqlAnnotationRepository(db)

    any_match = repository.find(
        AnnotationQuery(org_id=1, time_from=500, time_to=5000, tags=["deploy", "incident"], match_any=True, context=_context())
    )
    all_match = repository.find(
        AnnotationQuery(org_id=1, time_from=500, time_to=5000, tags=["deploy", "api"], context=_context())
    )

    # the org-wide annotation 4 is outside the anonymous dashboard scope
    assert [item.id for item in any_match] == [2, 3, 1]
    assert [item.id for item in all_match] == [1]


def test_annotation_repository_limit_and_org_scope(db: Session) -> None:
    _seed_annotations(db)
    repository = SqlAnnotationRepository(db)

    limited = repository.find(AnnotationQuery(org_id=1, dashboard_uid="dash-1", limit=1, context=_context()))
    unscoped = repository.find(AnnotationQuery(org_id=1, time_from=500, time_to=5000, tags=["deploy"]))

    assert [item.id for item in limited] == [6]
    assert [item.id for item in unscoped] == [3, 4, 1]


def test_annotation_repository_applies_one_sided_window(db: Session) -> None:
    _seed_annotations(db)
    repository = SqlAnnotationRepository(db)

    from_only = repository.find(AnnotationQuery(org_id=1, time_from=1800, dashboard_uid="dash-1", context=_context()))
    to_only = repository.find(AnnotationQuery(org_id=1, time_to=1500, dashboard_uid="dash-1", context=_context()))

    assert [item.id for item in from_only] == [6, 2]
    assert [item.id for item in to_only] == [1]
