"""Read-only summaries over recorded provider backend metrics."""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from .. import models


def _iso(value: datetime | None) -> str:
    return (value or datetime.now(timezone.utc)).isoformat()


def providers_overview(db: Session) -> dict[str, Any]:
    metrics = db.query(models.ProviderMetrics).order_by(models.ProviderMetrics.last_updated.desc()).all()
    grouped: "OrderedDict[str, dict[str, Any]]" = OrderedDict()
    for metric in metrics:
        provider = grouped.setdefault(
            metric.provider,
            {"name": metric.provider, "status": metric.status or "online", "backends": []},
        )
        provider["backends"].append(
            {
                "name": metric.backend_name,
                "qubits": metric.backend_qubits or 0,
                "type": metric.backend_type,
                "queueTime": metric.queue_time or 0,
                "costPerShot": metric.cost_per_shot or 0,
                "errorRate": metric.error_rate or 0,
                "availability": metric.availability or 0,
                "status": metric.status or "online",
                "region": metric.region,
                "lastUpdated": _iso(metric.last_updated),
            }
        )
    providers = list(grouped.values())
    return {
        "providers": providers,
        "totalProviders": len(providers),
        "totalBackends": sum(len(p["backends"]) for p in providers),
        "lastUpdated": _iso(None),
    }


def live_status(db: Session) -> dict[str, Any]:
    metrics = db.query(models.ProviderMetrics).all()
    count = len(metrics)
    if not count:
        return {"averageQueueTime": 0, "averageCost": 0, "onlineBackends": 0, "averageErrorRate": 0}
    return {
        "averageQueueTime": sum(m.queue_time or 0 for m in metrics) / count,
        "averageCost": sum(m.cost_per_shot or 0 for m in metrics) / count,
        "onlineBackends": sum(1 for m in metrics if (m.status or "online") == "online"),
        "averageErrorRate": sum(m.error_rate or 0 for m in metrics) / count,
    }
