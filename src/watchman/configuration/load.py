"""Load and validate Watchman configuration files.

The JSON layout mirrors the object model::

    {
      "alertingGroups": [
        {
          "name": "checkout",
          "alarmNameSuffix": "checkout",
          "targets": [{"email": "ops@example.com"}],
          "services": {
            "autoScaling": {
              "resources": ["web", {"name": "worker", "options": {"instanceCountIncreaseDelayMinutes": 20}}],
              "options": {"instanceCountIncreaseDelayMinutes": 100}
            }
          }
        }
      ]
    }
"""

from __future__ import annotations

import json
import re
from decimal import Decimal
from pathlib import Path
from typing import Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigurationError
from .models import (
    AlertEmail,
    AlertingGroup,
    AlertingGroupServices,
    AlertTarget,
    AlertUrl,
    AutoScalingResourceConfig,
    AwsServiceAlarms,
    ResourceConfig,
    ResourceThresholds,
    WatchmanConfiguration,
)

# CloudFormation stack names allow letters, digits and hyphens only.
_GROUP_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class AutoScalingOptionsPayload(_Payload):
    instance_count_increase_delay_minutes: Optional[int] = Field(
        None,
        alias="instanceCountIncreaseDelayMinutes",
        ge=1,
        description="Minutes of desired-capacity history to take the minimum from",
    )


class ResourceOptionsPayload(_Payload):
    threshold_fraction: Optional[Decimal] = Field(
        None,
        alias="thresholdFraction",
        gt=0,
        le=1,
        description="Fraction of provisioned capacity that triggers the alarm",
    )


P = TypeVar("P", bound=_Payload)


class ResourcePayload(_Payload, Generic[P]):
    name: str = Field(..., min_length=1)
    options: Optional[P] = None


class ServicePayload(_Payload, Generic[P]):
    resources: List[Union[str, ResourcePayload[P]]] = Field(default_factory=list)
    options: Optional[P] = None


class TargetPayload(_Payload):
    email: Optional[str] = None
    url: Optional[str] = None


class ServicesPayload(_Payload):
    autoscaling: Optional[ServicePayload[AutoScalingOptionsPayload]] = Field(
        None, alias="autoScaling"
    )
    dynamodb: Optional[ServicePayload[ResourceOptionsPayload]] = Field(None, alias="dynamoDb")


class AlertingGroupPayload(_Payload):
    name: str = Field(..., min_length=1, max_length=100)
    alarm_name_suffix: str = Field(..., alias="alarmNameSuffix", min_length=1)
    description: Optional[str] = None
    targets: List[TargetPayload] = Field(default_factory=list)
    services: ServicesPayload = Field(default_factory=ServicesPayload)


class ConfigurationPayload(_Payload):
    alerting_groups: List[AlertingGroupPayload] = Field(
        default_factory=list, alias="alertingGroups"
    )


def _convert_target(payload: TargetPayload) -> AlertTarget:
    if payload.email and not payload.url:
        return AlertEmail(payload.email)
    if payload.url and not payload.email:
        return AlertUrl(payload.url)
    raise ConfigurationError("Each target needs exactly one of 'email' or 'url'.")


def _convert_service(payload, option_type, group_name: str, kind: str) -> AwsServiceAlarms:
    def options(raw):
        if raw is None:
            return None
        return option_type(**raw.model_dump())

    resources: List[ResourceThresholds] = []
    seen: set[str] = set()
    for entry in payload.resources:
        if isinstance(entry, str):
            entry = ResourcePayload(name=entry)
        if entry.name in seen:
            raise ConfigurationError(
                f"Resource '{entry.name}' is listed twice under {kind} in group '{group_name}'."
            )
        seen.add(entry.name)
        resources.append(ResourceThresholds(name=entry.name, options=options(entry.options)))
    return AwsServiceAlarms(resources=resources, options=options(payload.options))


def _convert_group(payload: AlertingGroupPayload) -> AlertingGroup:
    if not _GROUP_NAME.match(payload.name):
        raise ConfigurationError(
            f"Alerting group name '{payload.name}' may only contain letters, digits and hyphens."
        )
    services = AlertingGroupServices()
    if payload.services.autoscaling is not None:
        services.autoscaling = _convert_service(
            payload.services.autoscaling, AutoScalingResourceConfig, payload.name, "autoscaling"
        )
    if payload.services.dynamodb is not None:
        services.dynamodb = _convert_service(
            payload.services.dynamodb, ResourceConfig, payload.name, "dynamodb"
        )
    return AlertingGroup(
        name=payload.name,
        alarm_name_suffix=payload.alarm_name_suffix,
        targets=[_convert_target(target) for target in payload.targets],
        services=services,
        description=payload.description,
    )


def validate_configuration(config: WatchmanConfiguration) -> WatchmanConfiguration:
    """Reject configurations whose groups cannot be deployed side by side."""

    seen: set[str] = set()
    for group in config.alerting_groups:
        if group.name in seen:
            raise ConfigurationError(f"Alerting group '{group.name}' is defined more than once.")
        seen.add(group.name)
        if not _GROUP_NAME.match(group.name):
            raise ConfigurationError(
                f"Alerting group name '{group.name}' may only contain letters, digits and hyphens."
            )
        if not group.alarm_name_suffix:
            raise ConfigurationError(f"Alerting group '{group.name}' has no alarm name suffix.")
        _check_lookbacks(group)
    return config


def _check_lookbacks(group: AlertingGroup) -> None:
    autoscaling = group.services.autoscaling
    if autoscaling is None:
        return
    candidates = [("service defaults", autoscaling.options)]
    candidates.extend((entry.name, entry.options) for entry in autoscaling.resources)
    for owner, options in candidates:
        delay = getattr(options, "instance_count_increase_delay_minutes", None)
        if delay is not None and delay < 1:
            raise ConfigurationError(
                f"Alerting group '{group.name}': instanceCountIncreaseDelayMinutes for {owner} "
                f"must be at least one minute, got {delay}"
            )


def parse_configuration(data: object) -> WatchmanConfiguration:
    """Convert an already-decoded JSON document into the configuration model."""

    try:
        payload = ConfigurationPayload.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    config = WatchmanConfiguration(
        alerting_groups=[_convert_group(group) for group in payload.alerting_groups]
    )
    return validate_configuration(config)


def load_configuration(path: Union[str, Path]) -> WatchmanConfiguration:
    """Read every ``*.json`` file at ``path`` (a file or a directory) into one configuration."""

    root = Path(path)
    files = sorted(root.glob("*.json")) if root.is_dir() else [root]
    if not files:
        raise ConfigurationError(f"No configuration files found in {root}")

    groups: List[AlertingGroup] = []
    for file in files:
        try:
            data = json.loads(file.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"Could not read configuration file {file}: {exc}") from exc
        except ValueError as exc:
            raise ConfigurationError(f"Configuration file {file} is not valid JSON") from exc
        groups.extend(parse_configuration(data).alerting_groups)
    return validate_configuration(WatchmanConfiguration(alerting_groups=groups))
