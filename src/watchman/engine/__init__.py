"""Threshold resolution, alarm building, stack composition and deployment."""

from .alarms import AlarmBuilder, AlarmDefinition
from .deploy import CloudFormationDeployer, StackDeployer
from .orchestrator import AlarmPipeline, GroupOutcome, GroupState, RunMode
from .services import AUTOSCALING, DEFAULT_DEFINITIONS, DYNAMODB, ComparisonDirection, ServiceDefinition
from .stack import Stack, StackComposer, render_template
from .thresholds import BaselineSource, ResolvedThreshold, ThresholdResolver

__all__ = [
    "AUTOSCALING",
    "DEFAULT_DEFINITIONS",
    "DYNAMODB",
    "AlarmBuilder",
    "AlarmDefinition",
    "AlarmPipeline",
    "BaselineSource",
    "CloudFormationDeployer",
    "ComparisonDirection",
    "GroupOutcome",
    "GroupState",
    "ResolvedThreshold",
    "RunMode",
    "ServiceDefinition",
    "Stack",
    "StackComposer",
    "StackDeployer",
    "ThresholdResolver",
    "render_template",
]
