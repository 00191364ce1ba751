"""Watchman: CloudWatch alarm stacks generated from alerting-group configuration."""

from .engine import AlarmPipeline, GroupOutcome, GroupState, RunMode
from .errors import (
    AlarmGenerationError,
    ConfigurationError,
    DeploymentError,
    MetricQueryError,
    ResourceLookupError,
    WatchmanError,
)

__all__ = [
    "AlarmGenerationError",
    "AlarmPipeline",
    "ConfigurationError",
    "DeploymentError",
    "GroupOutcome",
    "GroupState",
    "MetricQueryError",
    "ResourceLookupError",
    "RunMode",
    "WatchmanError",
]
