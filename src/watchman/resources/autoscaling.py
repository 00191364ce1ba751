"""AutoScaling group discovery."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import ResourceLookupError
from .base import AwsResource, ResourceLocator

DESIRED_CAPACITY = "DesiredCapacity"


class AutoScalingGroupLocator(ResourceLocator):
    kind = "autoscaling"

    def __init__(self, client: Any = None, *, region_name: Optional[str] = None) -> None:
        self._client = client or boto3.client("autoscaling", region_name=region_name)

    def locate(self) -> List[AwsResource]:
        resources: List[AwsResource] = []
        try:
            paginator = self._client.get_paginator("describe_auto_scaling_groups")
            for page in paginator.paginate():
                for group in page.get("AutoScalingGroups", []):
                    resources.append(
                        AwsResource(
                            name=group["AutoScalingGroupName"],
                            values={DESIRED_CAPACITY: Decimal(group.get("DesiredCapacity", 0))},
                        )
                    )
        except (BotoCoreError, ClientError) as exc:
            raise ResourceLookupError(f"Listing autoscaling groups failed: {exc}") from exc
        return resources
