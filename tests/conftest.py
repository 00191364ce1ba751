import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from watchman.configuration import (  # noqa: E402
    AlertEmail,
    AlertingGroup,
    AlertingGroupServices,
    WatchmanConfiguration,
)
from watchman.engine import AlarmPipeline  # noqa: E402
from watchman.errors import DeploymentError  # noqa: E402
from watchman.metrics import Datapoint, Dimension  # noqa: E402
from watchman.resources import AwsResource, StaticResourceLocator  # noqa: E402
from watchman.resources.autoscaling import DESIRED_CAPACITY  # noqa: E402

NOW = datetime(2018, 1, 26, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now


class FakeMetricQuery:
    """Answers minimum queries from a table keyed by (resource, period)."""

    def __init__(self) -> None:
        self.responses: Dict[Tuple[str, int], List[Datapoint]] = {}
        self.default: List[Datapoint] = []
        self.error: Optional[Exception] = None
        self.calls: List[dict] = []

    def returns(self, resource: str, period_seconds: int, minimum) -> None:
        self.responses[(resource, period_seconds)] = [Datapoint(minimum=Decimal(minimum))]

    def query_minimum(self, metric_name, namespace, dimension: Dimension, start, end, period_seconds):
        self.calls.append(
            {
                "metric_name": metric_name,
                "namespace": namespace,
                "dimension": dimension,
                "start": start,
                "end": end,
                "period_seconds": period_seconds,
            }
        )
        if self.error is not None:
            raise self.error
        return list(self.responses.get((dimension.value, period_seconds), self.default))


class RecordingDeployer:
    """Keeps every deployed stack; optionally fails for named stacks."""

    def __init__(self, failing: Tuple[str, ...] = ()) -> None:
        self.stacks = {}
        self.deploy_calls: List[str] = []
        self._failing = set(failing)

    def deploy(self, stack) -> None:
        self.deploy_calls.append(stack.stack_name)
        if stack.stack_name in self._failing:
            raise DeploymentError(f"cannot deploy {stack.stack_name}")
        self.stacks[stack.stack_name] = stack

    def stack_was_deployed(self, name: str) -> bool:
        return name in self.stacks

    def alarms_by_resource(self, stack_name: str):
        grouped = {}
        for alarm in self.stacks[stack_name].alarms:
            grouped.setdefault(alarm.resource_name, []).append(alarm)
        return grouped


def autoscaling_groups(*groups: Tuple[str, int]) -> StaticResourceLocator:
    return StaticResourceLocator(
        "autoscaling",
        [AwsResource(name, {DESIRED_CAPACITY: Decimal(desired)}) for name, desired in groups],
    )


def basic_config(name: str, suffix: str, services: AlertingGroupServices) -> WatchmanConfiguration:
    return WatchmanConfiguration(
        alerting_groups=[
            AlertingGroup(
                name=name,
                alarm_name_suffix=suffix,
                targets=[AlertEmail("test@example.com")],
                services=services,
            )
        ]
    )


@pytest.fixture
def metric_query() -> FakeMetricQuery:
    return FakeMetricQuery()


@pytest.fixture
def deployer() -> RecordingDeployer:
    return RecordingDeployer()


@pytest.fixture
def make_pipeline(metric_query, deployer):
    def factory(*locators, **kwargs):
        kwargs.setdefault("clock", FixedClock())
        kwargs.setdefault("max_workers", 1)
        kwargs.setdefault("deployer", deployer)
        kwargs.setdefault("metric_query", metric_query)
        return AlarmPipeline(locators=locators, **kwargs)

    return factory
