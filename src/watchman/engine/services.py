"""Per-kind catalogue of thresholds and alarms.

Each supported resource kind is described by a :class:`ServiceDefinition`:
which live values and historical metrics its thresholds come from, and which
alarms are built from those thresholds. Adding a kind means adding a
definition here plus a locator; the resolver and builder stay unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple, Type

from ..configuration.models import AutoScalingResourceConfig, ResourceConfig
from ..resources.autoscaling import DESIRED_CAPACITY
from ..resources.dynamodb import READ_CAPACITY, WRITE_CAPACITY

DEFAULT_THRESHOLD_FRACTION = Decimal("0.5")
DEFAULT_CAPACITY_FRACTION = Decimal("0.8")


class ComparisonDirection(Enum):
    BELOW = "below"
    ABOVE = "above"

    @property
    def operator(self) -> str:
        if self is ComparisonDirection.BELOW:
            return "LessThanThreshold"
        return "GreaterThanOrEqualToThreshold"


@dataclass(frozen=True)
class HistoryLookup:
    """Historical metric whose minimum can replace the live value."""

    delay_option: str
    metric_name: str


@dataclass(frozen=True)
class ThresholdSpec:
    purpose: str
    live_attribute: str
    direction: ComparisonDirection
    default_fraction: Decimal = DEFAULT_THRESHOLD_FRACTION
    fraction_option: Optional[str] = None
    history: Optional[HistoryLookup] = None


@dataclass(frozen=True)
class AlarmSpec:
    """One alarm built for every resource of a kind.

    Alarms with a ``threshold_purpose`` take their threshold from the
    resolved threshold of that purpose and are skipped when it is absent.
    The others use ``fixed_threshold`` with an explicit operator.
    """

    purpose: str
    metric_name: str
    statistic: str
    description: str
    threshold_purpose: Optional[str] = None
    fixed_threshold: Decimal = Decimal(0)
    comparison_operator: Optional[str] = None
    period: int = 60
    evaluation_periods: int = 1
    scale_by_period: bool = False
    treat_missing_data: str = "missing"


@dataclass(frozen=True)
class ServiceDefinition:
    kind: str
    namespace: str
    dimension_name: str
    option_type: Type
    thresholds: Tuple[ThresholdSpec, ...]
    alarms: Tuple[AlarmSpec, ...]


AUTOSCALING = ServiceDefinition(
    kind="autoscaling",
    namespace="AWS/AutoScaling",
    dimension_name="AutoScalingGroupName",
    option_type=AutoScalingResourceConfig,
    thresholds=(
        ThresholdSpec(
            purpose="InService",
            live_attribute=DESIRED_CAPACITY,
            direction=ComparisonDirection.BELOW,
            history=HistoryLookup(
                delay_option="instance_count_increase_delay_minutes",
                metric_name="GroupDesiredCapacity",
            ),
        ),
    ),
    alarms=(
        AlarmSpec(
            purpose="InService",
            metric_name="GroupInServiceInstances",
            statistic="Minimum",
            description="In-service instances fell below half of the expected capacity",
            threshold_purpose="InService",
            period=60,
            evaluation_periods=5,
        ),
        AlarmSpec(
            purpose="NoInstances",
            metric_name="GroupInServiceInstances",
            statistic="Maximum",
            description="No instances in service",
            comparison_operator="LessThanOrEqualToThreshold",
            period=60,
            evaluation_periods=3,
            treat_missing_data="breaching",
        ),
    ),
)

DYNAMODB = ServiceDefinition(
    kind="dynamodb",
    namespace="AWS/DynamoDB",
    dimension_name="TableName",
    option_type=ResourceConfig,
    thresholds=(
        ThresholdSpec(
            purpose="ConsumedReadCapacity",
            live_attribute=READ_CAPACITY,
            direction=ComparisonDirection.ABOVE,
            default_fraction=DEFAULT_CAPACITY_FRACTION,
            fraction_option="threshold_fraction",
        ),
        ThresholdSpec(
            purpose="ConsumedWriteCapacity",
            live_attribute=WRITE_CAPACITY,
            direction=ComparisonDirection.ABOVE,
            default_fraction=DEFAULT_CAPACITY_FRACTION,
            fraction_option="threshold_fraction",
        ),
    ),
    alarms=(
        AlarmSpec(
            purpose="ConsumedReadCapacity",
            metric_name="ConsumedReadCapacityUnits",
            statistic="Sum",
            description="Consumed read capacity is close to the provisioned limit",
            threshold_purpose="ConsumedReadCapacity",
            period=300,
            evaluation_periods=2,
            scale_by_period=True,
        ),
        AlarmSpec(
            purpose="ConsumedWriteCapacity",
            metric_name="ConsumedWriteCapacityUnits",
            statistic="Sum",
            description="Consumed write capacity is close to the provisioned limit",
            threshold_purpose="ConsumedWriteCapacity",
            period=300,
            evaluation_periods=2,
            scale_by_period=True,
        ),
        AlarmSpec(
            purpose="ReadThrottleEvents",
            metric_name="ReadThrottleEvents",
            statistic="Sum",
            description="Read requests are being throttled",
            comparison_operator="GreaterThanThreshold",
            period=60,
            evaluation_periods=2,
            treat_missing_data="notBreaching",
        ),
        AlarmSpec(
            purpose="WriteThrottleEvents",
            metric_name="WriteThrottleEvents",
            statistic="Sum",
            description="Write requests are being throttled",
            comparison_operator="GreaterThanThreshold",
            period=60,
            evaluation_periods=2,
            treat_missing_data="notBreaching",
        ),
    ),
)

DEFAULT_DEFINITIONS: Dict[str, ServiceDefinition] = {
    AUTOSCALING.kind: AUTOSCALING,
    DYNAMODB.kind: DYNAMODB,
}
