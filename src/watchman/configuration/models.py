"""Typed configuration model for alerting groups and their services."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Generic, Iterator, List, Optional, Tuple, TypeVar, Union


@dataclass(frozen=True)
class AlertEmail:
    """Email address subscribed to a group's notification topic."""

    email: str

    protocol = "email"

    @property
    def endpoint(self) -> str:
        return self.email


@dataclass(frozen=True)
class AlertUrl:
    """HTTPS endpoint subscribed to a group's notification topic."""

    url: str

    protocol = "https"

    @property
    def endpoint(self) -> str:
        return self.url


AlertTarget = Union[AlertEmail, AlertUrl]


@dataclass
class AutoScalingResourceConfig:
    """Options for autoscaling groups. ``None`` means unset."""

    instance_count_increase_delay_minutes: Optional[int] = None


@dataclass
class ResourceConfig:
    """Options for kinds alarmed on a fraction of provisioned capacity."""

    threshold_fraction: Optional[Decimal] = None


T = TypeVar("T")


@dataclass
class ResourceThresholds(Generic[T]):
    """A named resource with optional per-resource option overrides."""

    name: str
    options: Optional[T] = None


@dataclass
class AwsServiceAlarms(Generic[T]):
    """Resources of one kind in a group, plus the service-level defaults."""

    resources: List[ResourceThresholds[T]] = field(default_factory=list)
    options: Optional[T] = None


@dataclass
class AlertingGroupServices:
    autoscaling: Optional[AwsServiceAlarms[AutoScalingResourceConfig]] = None
    dynamodb: Optional[AwsServiceAlarms[ResourceConfig]] = None

    def configured(self) -> Iterator[Tuple[str, AwsServiceAlarms]]:
        """Yield ``(kind, service)`` pairs for every populated slot."""

        if self.autoscaling is not None:
            yield "autoscaling", self.autoscaling
        if self.dynamodb is not None:
            yield "dynamodb", self.dynamodb


@dataclass
class AlertingGroup:
    name: str
    alarm_name_suffix: str
    targets: List[AlertTarget] = field(default_factory=list)
    services: AlertingGroupServices = field(default_factory=AlertingGroupServices)
    description: Optional[str] = None


@dataclass
class WatchmanConfiguration:
    alerting_groups: List[AlertingGroup] = field(default_factory=list)
