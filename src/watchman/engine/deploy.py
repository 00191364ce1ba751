"""Stack deployment through CloudFormation."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from ..errors import DeploymentError
from ..log import get_logger
from .stack import Stack

logger = get_logger("watchman.deploy")

_NO_UPDATES = "No updates are to be performed"
_ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"


class StackDeployer(Protocol):
    """Creates or updates a stack; raises DeploymentError on failure."""

    def deploy(self, stack: Stack) -> None:
        """Make the deployed stack match ``stack``."""


class CloudFormationDeployer(StackDeployer):
    """Create-or-update deployer; unchanged templates are a no-op."""

    def __init__(
        self,
        client: Any = None,
        *,
        region_name: Optional[str] = None,
        wait: bool = True,
    ) -> None:
        self._client = client or boto3.client("cloudformation", region_name=region_name)
        self._wait = wait

    def deploy(self, stack: Stack) -> None:
        template = stack.template_body
        try:
            status = self._stack_status(stack.stack_name)
            if status == _ROLLBACK_COMPLETE:
                # a stack whose first create rolled back cannot be updated, only replaced
                logger.warning("Stack %s is in %s; deleting it first", stack.stack_name, status)
                self._client.delete_stack(StackName=stack.stack_name)
                if self._wait:
                    self._client.get_waiter("stack_delete_complete").wait(StackName=stack.stack_name)
                status = None
            if status is not None:
                logger.info("Updating stack %s (%d alarms)", stack.stack_name, len(stack.alarms))
                self._client.update_stack(StackName=stack.stack_name, TemplateBody=template)
                waiter_name = "stack_update_complete"
            else:
                logger.info("Creating stack %s (%d alarms)", stack.stack_name, len(stack.alarms))
                self._client.create_stack(StackName=stack.stack_name, TemplateBody=template)
                waiter_name = "stack_create_complete"
            if self._wait:
                self._client.get_waiter(waiter_name).wait(StackName=stack.stack_name)
        except ClientError as exc:
            if _NO_UPDATES in str(exc):
                logger.info("Stack %s is already up to date", stack.stack_name)
                return
            raise DeploymentError(f"Deploying stack {stack.stack_name} failed: {exc}") from exc
        except (BotoCoreError, WaiterError) as exc:
            raise DeploymentError(f"Deploying stack {stack.stack_name} failed: {exc}") from exc

    def _stack_status(self, stack_name: str) -> Optional[str]:
        """Return the live stack's status, or None when there is nothing to update."""

        try:
            response = self._client.describe_stacks(StackName=stack_name)
        except ClientError as exc:
            if "does not exist" in str(exc):
                return None
            raise
        for item in response.get("Stacks", []):
            status = item.get("StackStatus")
            if status != "DELETE_COMPLETE":
                return status
        return None
