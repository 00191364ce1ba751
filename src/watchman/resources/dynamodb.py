"""DynamoDB table discovery."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import ResourceLookupError
from ..log import get_logger
from .base import AwsResource, ResourceLocator

READ_CAPACITY = "ReadCapacityUnits"
WRITE_CAPACITY = "WriteCapacityUnits"

logger = get_logger("watchman.resources")


class DynamoDbTableLocator(ResourceLocator):
    """Lists tables and their provisioned throughput.

    On-demand tables have no provisioned throughput, so they carry no
    capacity values and only get the throttling alarm.
    """

    kind = "dynamodb"

    def __init__(self, client: Any = None, *, region_name: Optional[str] = None) -> None:
        self._client = client or boto3.client("dynamodb", region_name=region_name)

    def locate(self) -> List[AwsResource]:
        resources: List[AwsResource] = []
        try:
            paginator = self._client.get_paginator("list_tables")
            for page in paginator.paginate():
                for table_name in page.get("TableNames", []):
                    table = self._describe(table_name)
                    if table is None:
                        continue
                    resources.append(AwsResource(name=table_name, values=self._capacity(table)))
        except (BotoCoreError, ClientError) as exc:
            raise ResourceLookupError(f"Listing DynamoDB tables failed: {exc}") from exc
        return resources

    def _describe(self, table_name: str) -> Optional[Dict[str, Any]]:
        try:
            return self._client.describe_table(TableName=table_name)["Table"]
        except ClientError as exc:
            # deleted between list_tables and describe_table
            if exc.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
                logger.info("Table %s disappeared while listing; skipping", table_name)
                return None
            raise

    @staticmethod
    def _capacity(table: Dict[str, Any]) -> Dict[str, Decimal]:
        billing = table.get("BillingModeSummary", {}).get("BillingMode", "PROVISIONED")
        if billing == "PAY_PER_REQUEST":
            return {}
        throughput = table.get("ProvisionedThroughput", {})
        values: Dict[str, Decimal] = {}
        for key in (READ_CAPACITY, WRITE_CAPACITY):
            if key in throughput:
                values[key] = Decimal(throughput[key])
        return values
