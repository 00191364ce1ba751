"""Historical metric lookups against CloudWatch."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .clock import is_utc
from .errors import MetricQueryError


@dataclass(frozen=True)
class Dimension:
    name: str
    value: str


@dataclass(frozen=True)
class Datapoint:
    """One aggregated sample for a single period."""

    minimum: Decimal
    timestamp: Optional[datetime] = None


class MetricQuery(Protocol):
    """Capability to read the minimum of a metric over a window."""

    def query_minimum(
        self,
        metric_name: str,
        namespace: str,
        dimension: Dimension,
        start: datetime,
        end: datetime,
        period_seconds: int,
    ) -> List[Datapoint]:
        """Return zero or more datapoints; raise MetricQueryError on failure."""


def check_window(start: datetime, end: datetime) -> None:
    """Reject windows whose bounds are not UTC or are out of order."""

    for label, value in (("start", start), ("end", end)):
        if not is_utc(value):
            raise ValueError(f"Metric window {label} {value!r} must be a UTC datetime.")
    if start >= end:
        raise ValueError("Metric window start must precede its end.")


class CloudWatchMetricQuery(MetricQuery):
    """Reads metric statistics through the CloudWatch API."""

    def __init__(self, client: Any = None, *, region_name: Optional[str] = None) -> None:
        self._client = client or boto3.client("cloudwatch", region_name=region_name)

    def query_minimum(
        self,
        metric_name: str,
        namespace: str,
        dimension: Dimension,
        start: datetime,
        end: datetime,
        period_seconds: int,
    ) -> List[Datapoint]:
        check_window(start, end)
        try:
            response = self._client.get_metric_statistics(
                Namespace=namespace,
                MetricName=metric_name,
                Dimensions=[{"Name": dimension.name, "Value": dimension.value}],
                StartTime=start,
                EndTime=end,
                Period=period_seconds,
                Statistics=["Minimum"],
            )
        except (BotoCoreError, ClientError) as exc:
            raise MetricQueryError(
                f"CloudWatch query for {namespace}/{metric_name} "
                f"({dimension.name}={dimension.value}) failed: {exc}"
            ) from exc

        datapoints: List[Datapoint] = []
        for raw in response.get("Datapoints", []):
            if "Minimum" not in raw:
                continue
            datapoints.append(
                Datapoint(minimum=Decimal(str(raw["Minimum"])), timestamp=raw.get("Timestamp"))
            )
        return datapoints
