from sqlalchemy import BigInteger, Column, Integer, String, DateTime, Boolean, Text, JSON, Index, UniqueConstraint
from datetime import datetime
from pubdash.shared.infrastructure.database import Base


class DashboardRecord(Base):
    __tablename__ = "dashboard"

    id = Column(Integer, primary_key=True, index=True)
    uid = Column(String(40), nullable=False)
    org_id = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False, default="")
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("org_id", "uid", name="dashboard_org_uid_key"),
    )


class PublicDashboardRecord(Base):
    __tablename__ = "dashboard_public"

    uid = Column(String(40), primary_key=True)
    dashboard_uid = Column(String(40), nullable=False)
    org_id = Column(Integer, nullable=False)
    access_token = Column(String(32), nullable=False, unique=True)
    is_enabled = Column(Boolean, nullable=False, default=False)
    annotations_enabled = Column(Boolean, nullable=False, default=False)
    time_settings = Column(Text, nullable=False, default="{}")  # JSON {"from", "to"}
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("dashboard_public_org_dashboard_uid_idx", "org_id", "dashboard_uid"),
    )


class AnnotationRecord(Base):
    __tablename__ = "annotation"

    id = Column(Integer, primary_key=True, index=True)
    org_id = Column(Integer, nullable=False)
    dashboard_id = Column(Integer, nullable=True)
    dashboard_uid = Column(String(40), nullable=True)
    panel_id = Column(Integer, nullable=True)
    epoch = Column(BigInteger, nullable=False)  # ms
    epoch_end = Column(BigInteger, nullable=False)
    text = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("annotation_org_epoch_idx", "org_id", "epoch", "epoch_end"),
        Index("annotation_dashboard_idx", "org_id", "dashboard_id"),
    )
