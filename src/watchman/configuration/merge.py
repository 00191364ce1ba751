"""Resource-over-service merging of optional option records."""

from __future__ import annotations

from dataclasses import fields, replace
from typing import Optional, Type, TypeVar

T = TypeVar("T")


def merge_options(
    option_type: Type[T],
    resource: Optional[T],
    service: Optional[T],
) -> T:
    """Return an options record where each field takes the first set value.

    A field is set when it is not ``None``; zero and other falsy values are
    real settings and win over the service default.
    """

    merged = option_type()
    updates = {}
    for spec in fields(option_type):  # type: ignore[arg-type]
        value = None
        if resource is not None:
            value = getattr(resource, spec.name)
        if value is None and service is not None:
            value = getattr(service, spec.name)
        updates[spec.name] = value
    return replace(merged, **updates)
