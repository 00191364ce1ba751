"""Shared exception types for the Watchman alarm pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from .engine.orchestrator import GroupOutcome


class WatchmanError(RuntimeError):
    """Base class for every error raised by the pipeline."""


class ConfigurationError(WatchmanError):
    """Raised when configuration is malformed or internally inconsistent."""


class ResourceLookupError(WatchmanError):
    """Raised when a resource locator cannot list resources."""


class MetricQueryError(WatchmanError):
    """Raised when a historical metric lookup fails in transport or service."""


class DeploymentError(WatchmanError):
    """Raised when a stack could not be created or updated."""


class AlarmGenerationError(WatchmanError):
    """Raised once at the end of a run when one or more groups did not deploy."""

    def __init__(
        self,
        failures: Sequence["GroupOutcome"],
        outcomes: Optional[Sequence["GroupOutcome"]] = None,
    ) -> None:
        self.failures: List["GroupOutcome"] = list(failures)
        self.outcomes: List["GroupOutcome"] = list(outcomes if outcomes is not None else failures)
        names = ", ".join(
            f"{outcome.group_name} ({outcome.state.value})" for outcome in self.failures
        )
        super().__init__(f"Alarm generation failed for {len(self.failures)} group(s): {names}")

    @property
    def causes(self) -> List[BaseException]:
        return [outcome.error for outcome in self.failures if outcome.error is not None]
