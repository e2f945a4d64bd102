import os
from datetime import datetime, timezone

os.environ.setdefault("PUBDASH_ENVIRONMENT", "test")
os.environ.setdefault("PUBDASH_DATABASE_URL", "sqlite+pysqlite://")

import pytest


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def dashboard_data() -> dict:
    """Dashboard with two datasources, a legacy string reference and a collapsed row"""
    return {
        "uid": "dash-1",
        "title": "Service Overview",
        "time": {"from": "now-6h", "to": "now"},
        "panels": [
            {
                "id": 1,
                "type": "timeseries",
                "datasource": {"type": "prometheus", "uid": "prom"},
                "targets": [
                    {"refId": "A", "expr": "up", "exemplar": True},
                    {"refId": "B", "expr": "secret_metric", "hide": True},
                    {"refId": "C", "datasource": {"type": "loki", "uid": "loki"}, "expr": "{app=\"api\"}"},
                ],
            },
            {
                "id": 2,
                "type": "table",
                "datasource": "legacy-mysql",
                "targets": [{"refId": "A", "rawSql": "select 1"}],
            },
            {"id": 3, "type": "text"},
            {
                "id": 4,
                "type": "row",
                "collapsed": True,
                "panels": [
                    {
                        "id": 5,
                        "type": "stat",
                        "datasource": {"type": "influxdb", "uid": "influx"},
                        "targets": [{"refId": "A", "query": "hidden", "hide": True}],
                    }
                ],
            },
        ],
    }
