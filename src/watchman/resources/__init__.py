"""Resource discovery for the supported resource kinds."""

from .autoscaling import AutoScalingGroupLocator
from .base import AwsResource, ResourceLocator, StaticResourceLocator
from .dynamodb import DynamoDbTableLocator

__all__ = [
    "AutoScalingGroupLocator",
    "AwsResource",
    "DynamoDbTableLocator",
    "ResourceLocator",
    "StaticResourceLocator",
]
