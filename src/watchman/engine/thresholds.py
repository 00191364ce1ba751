"""Threshold resolution from live values and historical metric minimums."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, List, Tuple

from ..clock import Clock, SystemClock, to_utc
from ..log import get_logger
from ..metrics import Dimension, MetricQuery
from ..resources.base import AwsResource
from .services import ComparisonDirection, ServiceDefinition, ThresholdSpec

logger = get_logger("watchman.thresholds")


class BaselineSource(Enum):
    STATIC_CURRENT_VALUE = "static-current-value"
    HISTORICAL_MINIMUM = "historical-minimum"


@dataclass(frozen=True)
class ResolvedThreshold:
    """Threshold for one purpose of one resource, valid for a single run."""

    resource_name: str
    purpose: str
    threshold: Decimal
    baseline: Decimal
    baseline_source: BaselineSource
    direction: ComparisonDirection


class ThresholdResolver:
    """Turns merged resource options into numeric thresholds."""

    def __init__(self, metric_query: MetricQuery, clock: Clock | None = None) -> None:
        self._metric_query = metric_query
        self._clock = clock or SystemClock()

    def resolve(
        self,
        definition: ServiceDefinition,
        resource: AwsResource,
        options: Any,
    ) -> List[ResolvedThreshold]:
        resolved: List[ResolvedThreshold] = []
        for spec in definition.thresholds:
            live_value = resource.value(spec.live_attribute)
            if live_value is None:
                logger.info(
                    "%s %s has no %s; skipping %s threshold",
                    definition.kind,
                    resource.name,
                    spec.live_attribute,
                    spec.purpose,
                )
                continue
            baseline, source = self._baseline(definition, spec, resource, options, live_value)
            fraction = self._fraction(spec, options)
            resolved.append(
                ResolvedThreshold(
                    resource_name=resource.name,
                    purpose=spec.purpose,
                    threshold=baseline * fraction,
                    baseline=baseline,
                    baseline_source=source,
                    direction=spec.direction,
                )
            )
        return resolved

    def _baseline(
        self,
        definition: ServiceDefinition,
        spec: ThresholdSpec,
        resource: AwsResource,
        options: Any,
        live_value: Decimal,
    ) -> Tuple[Decimal, BaselineSource]:
        if spec.history is None:
            return live_value, BaselineSource.STATIC_CURRENT_VALUE
        delay_minutes = getattr(options, spec.history.delay_option, None)
        if delay_minutes is None:
            return live_value, BaselineSource.STATIC_CURRENT_VALUE

        end = to_utc(self._clock.now())
        start = end - timedelta(minutes=delay_minutes)
        period_seconds = delay_minutes * 60
        datapoints = self._metric_query.query_minimum(
            spec.history.metric_name,
            definition.namespace,
            Dimension(definition.dimension_name, resource.name),
            start,
            end,
            period_seconds,
        )
        if not datapoints:
            logger.info(
                "No %s datapoints for %s in the last %d minutes; using current value %s",
                spec.history.metric_name,
                resource.name,
                delay_minutes,
                live_value,
            )
            return live_value, BaselineSource.STATIC_CURRENT_VALUE
        return min(point.minimum for point in datapoints), BaselineSource.HISTORICAL_MINIMUM

    @staticmethod
    def _fraction(spec: ThresholdSpec, options: Any) -> Decimal:
        if spec.fraction_option is None:
            return spec.default_fraction
        override = getattr(options, spec.fraction_option, None)
        if override is None:
            return spec.default_fraction
        return Decimal(str(override))
