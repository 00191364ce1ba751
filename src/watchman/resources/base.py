"""Resource locator contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Protocol


@dataclass(frozen=True)
class AwsResource:
    """A discovered resource with the live attribute values alarms are sized from."""

    name: str
    values: Dict[str, Decimal] = field(default_factory=dict)

    def value(self, attribute: str) -> Optional[Decimal]:
        return self.values.get(attribute)


class ResourceLocator(Protocol):
    """Lists the current resources of one kind."""

    kind: str

    def locate(self) -> List[AwsResource]:
        """Return every resource of this kind; raise ResourceLookupError on failure."""


class StaticResourceLocator(ResourceLocator):
    """Serves a fixed resource list, for dry runs and tests."""

    def __init__(self, kind: str, resources: List[AwsResource]) -> None:
        self.kind = kind
        self._resources = list(resources)

    def locate(self) -> List[AwsResource]:
        return list(self._resources)
