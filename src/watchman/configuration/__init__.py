"""Configuration model, option merging and file loading."""

from .load import load_configuration, parse_configuration, validate_configuration
from .merge import merge_options
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

__all__ = [
    "AlertEmail",
    "AlertingGroup",
    "AlertingGroupServices",
    "AlertTarget",
    "AlertUrl",
    "AutoScalingResourceConfig",
    "AwsServiceAlarms",
    "ResourceConfig",
    "ResourceThresholds",
    "WatchmanConfiguration",
    "load_configuration",
    "merge_options",
    "parse_configuration",
    "validate_configuration",
]
