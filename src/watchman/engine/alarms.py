"""Alarm definitions built from resolved thresholds."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from ..configuration.models import AlertingGroup
from ..metrics import Dimension
from .services import AlarmSpec, ServiceDefinition
from .thresholds import ResolvedThreshold


@dataclass(frozen=True)
class AlarmDefinition:
    kind: str
    resource_name: str
    purpose: str
    alarm_name: str
    namespace: str
    metric_name: str
    dimensions: Tuple[Dimension, ...]
    statistic: str
    comparison_operator: str
    threshold: Decimal
    period: int
    evaluation_periods: int
    treat_missing_data: str
    description: str

    @property
    def sort_key(self) -> Tuple[str, str, str]:
        return (self.kind, self.resource_name, self.purpose)


def alarm_name(group: AlertingGroup, resource_name: str, purpose: str) -> str:
    return f"{resource_name}-{purpose}-{group.name}-{group.alarm_name_suffix}"


class AlarmBuilder:
    """Builds every alarm of a kind's catalogue for one resource."""

    def build(
        self,
        group: AlertingGroup,
        definition: ServiceDefinition,
        resource_name: str,
        thresholds: Iterable[ResolvedThreshold],
    ) -> List[AlarmDefinition]:
        by_purpose: Dict[str, ResolvedThreshold] = {item.purpose: item for item in thresholds}
        dimensions = (Dimension(definition.dimension_name, resource_name),)
        alarms: List[AlarmDefinition] = []
        for spec in definition.alarms:
            resolved = self._threshold_for(spec, by_purpose)
            if resolved is None:
                continue
            threshold, operator = resolved
            alarms.append(
                AlarmDefinition(
                    kind=definition.kind,
                    resource_name=resource_name,
                    purpose=spec.purpose,
                    alarm_name=alarm_name(group, resource_name, spec.purpose),
                    namespace=definition.namespace,
                    metric_name=spec.metric_name,
                    dimensions=dimensions,
                    statistic=spec.statistic,
                    comparison_operator=operator,
                    threshold=threshold,
                    period=spec.period,
                    evaluation_periods=spec.evaluation_periods,
                    treat_missing_data=spec.treat_missing_data,
                    description=f"{spec.description} ({resource_name}, {group.name})",
                )
            )
        return alarms

    @staticmethod
    def _threshold_for(
        spec: AlarmSpec,
        by_purpose: Dict[str, ResolvedThreshold],
    ) -> Tuple[Decimal, str] | None:
        if spec.threshold_purpose is None:
            return spec.fixed_threshold, spec.comparison_operator or "GreaterThanThreshold"
        resolved = by_purpose.get(spec.threshold_purpose)
        if resolved is None:
            return None
        threshold = resolved.threshold
        if spec.scale_by_period:
            threshold = threshold * spec.period
        return threshold, spec.comparison_operator or resolved.direction.operator
