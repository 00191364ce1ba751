"""Entrypoint wiring the pipeline to AWS from environment settings."""

from __future__ import annotations

import sys
from typing import List, Optional

from .clock import SystemClock
from .config import WatchmanSettings, get_settings
from .configuration.load import load_configuration
from .engine.deploy import CloudFormationDeployer
from .engine.orchestrator import AlarmPipeline, GroupOutcome, RunMode, summarize
from .errors import AlarmGenerationError, ConfigurationError
from .log import get_logger
from .metrics import CloudWatchMetricQuery
from .resources import AutoScalingGroupLocator, DynamoDbTableLocator

logger = get_logger("watchman.cli")


def build_pipeline(settings: WatchmanSettings) -> AlarmPipeline:
    region = settings.aws_region
    return AlarmPipeline(
        locators=[
            AutoScalingGroupLocator(region_name=region),
            DynamoDbTableLocator(region_name=region),
        ],
        metric_query=CloudWatchMetricQuery(region_name=region),
        deployer=CloudFormationDeployer(region_name=region),
        clock=SystemClock(),
        stack_prefix=settings.stack_prefix,
        max_workers=settings.max_workers,
        run_timeout_seconds=settings.run_timeout_seconds,
    )


def _report(outcomes: List[GroupOutcome]) -> None:
    for group_name, state in summarize(outcomes):
        logger.info("%s: %s", group_name, state)


def run(mode: RunMode = RunMode.GENERATE_ALARMS, settings: Optional[WatchmanSettings] = None) -> int:
    settings = settings or get_settings()
    if not settings.config_path:
        logger.error("WATCHMAN_CONFIG_PATH is not set")
        return 2
    try:
        config = load_configuration(settings.config_path)
        outcomes = build_pipeline(settings).run(config, mode)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except AlarmGenerationError as exc:
        _report(exc.outcomes)
        logger.error("%s", exc)
        return 1
    _report(outcomes)
    return 0


def main() -> None:
    mode = RunMode(sys.argv[1]) if len(sys.argv) > 1 else RunMode.GENERATE_ALARMS
    sys.exit(run(mode))


if __name__ == "__main__":
    main()
