"""Pipeline driving every alerting group from discovery to deployment."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from prometheus_client import Counter

from ..clock import Clock
from ..config import DEFAULT_MAX_WORKERS, DEFAULT_STACK_PREFIX
from ..configuration.load import validate_configuration
from ..configuration.merge import merge_options
from ..configuration.models import AlertingGroup, WatchmanConfiguration
from ..errors import AlarmGenerationError, ConfigurationError
from ..log import get_logger
from ..metrics import MetricQuery
from ..resources.base import AwsResource, ResourceLocator
from .alarms import AlarmBuilder, AlarmDefinition
from .deploy import StackDeployer
from .services import DEFAULT_DEFINITIONS, ServiceDefinition
from .stack import Stack, StackComposer, stack_name_for
from .thresholds import ResolvedThreshold, ThresholdResolver

logger = get_logger("watchman.engine")

GROUPS_TOTAL = Counter(
    "watchman_alerting_groups_total",
    "Alerting groups processed, segmented by terminal state",
    ["outcome"],
)
ALARMS_TOTAL = Counter(
    "watchman_alarms_generated_total",
    "Alarm definitions generated, segmented by resource kind",
    ["kind"],
)


class RunMode(Enum):
    GENERATE_ALARMS = "generate-alarms"
    DRY_RUN = "dry-run"
    TEST_CONFIG = "test-config"


class GroupState(Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    BUILDING = "building"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    BUILT = "built"
    FAILED = "failed"
    NOT_ATTEMPTED = "not-attempted"


_SUCCESS_STATES = (GroupState.DEPLOYED, GroupState.BUILT)


@dataclass
class GroupOutcome:
    """Terminal state of one alerting group for one run."""

    group_name: str
    state: GroupState
    stack_name: str
    stack: Optional[Stack] = None
    error: Optional[BaseException] = None
    failed_in: Optional[GroupState] = None

    @property
    def succeeded(self) -> bool:
        return self.state in _SUCCESS_STATES


@dataclass
class _ResolvedResource:
    definition: ServiceDefinition
    resource_name: str
    thresholds: List[ResolvedThreshold] = field(default_factory=list)


class _ResourceCache:
    """Locator results fetched once per run and shared read-only by every group."""

    def __init__(self, locators: Mapping[str, ResourceLocator]) -> None:
        self._locators = locators
        self._lock = threading.Lock()
        self._results: Dict[str, Tuple[Dict[str, AwsResource], Optional[BaseException]]] = {}

    def find(self, kind: str) -> Dict[str, AwsResource]:
        with self._lock:
            if kind not in self._results:
                try:
                    found = {resource.name: resource for resource in self._locators[kind].locate()}
                    self._results[kind] = (found, None)
                except Exception as exc:  # noqa: BLE001 - raised again in every group that needs it
                    self._results[kind] = ({}, exc)
            found, error = self._results[kind]
        if error is not None:
            raise error
        return found


class AlarmPipeline:
    """Builds and deploys one alarm stack per alerting group.

    A failure inside one group ends that group only. Every other group still
    runs to completion, and a single :class:`AlarmGenerationError` listing all
    failed groups is raised once every group has reached a terminal state.
    """

    def __init__(
        self,
        *,
        locators: Iterable[ResourceLocator],
        metric_query: MetricQuery,
        deployer: StackDeployer,
        clock: Clock | None = None,
        definitions: Mapping[str, ServiceDefinition] | None = None,
        stack_prefix: str = DEFAULT_STACK_PREFIX,
        max_workers: int = DEFAULT_MAX_WORKERS,
        run_timeout_seconds: float | None = None,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._locators: Dict[str, ResourceLocator] = {
            locator.kind: locator for locator in locators
        }
        self._definitions = dict(definitions or DEFAULT_DEFINITIONS)
        self._resolver = ThresholdResolver(metric_query, clock)
        self._builder = AlarmBuilder()
        self._composer = StackComposer(stack_prefix)
        self._deployer = deployer
        self._stack_prefix = stack_prefix
        self._max_workers = max_workers
        self._run_timeout_seconds = run_timeout_seconds
        self._timer = timer

    def run(
        self,
        config: WatchmanConfiguration,
        mode: RunMode = RunMode.GENERATE_ALARMS,
    ) -> List[GroupOutcome]:
        """Process every alerting group and return their outcomes in config order."""

        validate_configuration(config)
        self._check_supported(config.alerting_groups)
        if mode is RunMode.TEST_CONFIG:
            logger.info("Configuration is valid (%d alerting groups)", len(config.alerting_groups))
            return []

        outcomes = self._run_groups(config.alerting_groups, mode)
        for outcome in outcomes:
            GROUPS_TOTAL.labels(outcome=outcome.state.value).inc()

        failures = [outcome for outcome in outcomes if not outcome.succeeded]
        if failures:
            logger.error(
                "%d of %d alerting groups did not complete", len(failures), len(outcomes)
            )
            raise AlarmGenerationError(failures, outcomes)
        logger.info("All %d alerting groups completed", len(outcomes))
        return outcomes

    def _check_supported(self, groups: Sequence[AlertingGroup]) -> None:
        for group in groups:
            for kind, _service in group.services.configured():
                if kind not in self._definitions:
                    raise ConfigurationError(
                        f"Group '{group.name}' configures unsupported resource kind '{kind}'"
                    )
                if kind not in self._locators:
                    raise ConfigurationError(
                        f"Group '{group.name}' configures {kind} but no locator is registered"
                    )

    def _run_groups(
        self,
        groups: Sequence[AlertingGroup],
        mode: RunMode,
    ) -> List[GroupOutcome]:
        deadline = None
        if self._run_timeout_seconds is not None:
            deadline = self._timer() + self._run_timeout_seconds
        resources = _ResourceCache(self._locators)

        if self._max_workers == 1:
            return [self._process_group(group, mode, deadline, resources) for group in groups]

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = [
                executor.submit(self._process_group, group, mode, deadline, resources)
                for group in groups
            ]
            return [future.result() for future in futures]

    def _process_group(
        self,
        group: AlertingGroup,
        mode: RunMode,
        deadline: float | None,
        resources: _ResourceCache,
    ) -> GroupOutcome:
        stack_name = stack_name_for(group.name, self._stack_prefix)
        if deadline is not None and self._timer() >= deadline:
            logger.warning("Run deadline passed before alerting group %s started", group.name)
            return GroupOutcome(group.name, GroupState.NOT_ATTEMPTED, stack_name)

        state = GroupState.RESOLVING
        stack: Optional[Stack] = None
        try:
            logger.info("Resolving thresholds for alerting group %s", group.name)
            resolved = self._resolve_group(group, resources)

            state = GroupState.BUILDING
            alarms = self._build_alarms(group, resolved)
            stack = self._composer.compose(group, alarms)
            logger.info("Built stack %s with %d alarms", stack.stack_name, len(stack.alarms))
            if mode is RunMode.DRY_RUN:
                return GroupOutcome(group.name, GroupState.BUILT, stack_name, stack=stack)

            state = GroupState.DEPLOYING
            self._deployer.deploy(stack)
        except Exception as exc:  # noqa: BLE001 - isolated per group, reported at the end
            logger.exception("Alerting group %s failed while %s", group.name, state.value)
            return GroupOutcome(
                group.name,
                GroupState.FAILED,
                stack_name,
                stack=stack,
                error=exc,
                failed_in=state,
            )

        logger.info("Deployed stack %s", stack_name)
        return GroupOutcome(group.name, GroupState.DEPLOYED, stack_name, stack=stack)

    def _resolve_group(
        self,
        group: AlertingGroup,
        resources: _ResourceCache,
    ) -> List[_ResolvedResource]:
        resolved: List[_ResolvedResource] = []
        for kind, service in group.services.configured():
            definition = self._definitions[kind]
            found = resources.find(kind)
            for entry in service.resources:
                resource = found.get(entry.name)
                if resource is None:
                    logger.warning(
                        "No %s resource named %s for alerting group %s", kind, entry.name, group.name
                    )
                    continue
                options = merge_options(definition.option_type, entry.options, service.options)
                thresholds = self._resolver.resolve(definition, resource, options)
                resolved.append(_ResolvedResource(definition, resource.name, thresholds))
        return resolved

    def _build_alarms(
        self,
        group: AlertingGroup,
        resolved: Iterable[_ResolvedResource],
    ) -> List[AlarmDefinition]:
        alarms: List[AlarmDefinition] = []
        for item in resolved:
            built = self._builder.build(group, item.definition, item.resource_name, item.thresholds)
            ALARMS_TOTAL.labels(kind=item.definition.kind).inc(len(built))
            alarms.extend(built)
        return alarms


def summarize(outcomes: Iterable[GroupOutcome]) -> List[Tuple[str, str]]:
    """Return ``(group, state)`` pairs for reporting."""

    return [(outcome.group_name, outcome.state.value) for outcome in outcomes]
