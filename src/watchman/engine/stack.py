"""Composition of a group's alarms into one CloudFormation stack."""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple

from ..config import DEFAULT_STACK_PREFIX
from ..configuration.models import AlertingGroup, AlertTarget
from .alarms import AlarmDefinition

TOPIC_LOGICAL_ID = "AlertingGroupTopic"
EMPTY_LOGICAL_ID = "NoAlarmsPlaceholder"

_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


@dataclass(frozen=True)
class Stack:
    stack_name: str
    group_name: str
    alarms: Tuple[AlarmDefinition, ...]
    targets: Tuple[AlertTarget, ...] = field(default_factory=tuple)
    description: str = ""

    @property
    def template_body(self) -> str:
        return render_template(self)


def stack_name_for(group_name: str, prefix: str = DEFAULT_STACK_PREFIX) -> str:
    return f"{prefix}-{group_name}"


class StackComposer:
    """Aggregates every alarm of one alerting group into a single stack."""

    def __init__(self, prefix: str = DEFAULT_STACK_PREFIX) -> None:
        self._prefix = prefix

    def compose(self, group: AlertingGroup, alarms: Iterable[AlarmDefinition]) -> Stack:
        ordered = sorted(alarms, key=lambda alarm: alarm.sort_key)
        seen: set[str] = set()
        for alarm in ordered:
            if alarm.alarm_name in seen:
                raise ValueError(
                    f"Alarm name '{alarm.alarm_name}' occurs twice in group '{group.name}'"
                )
            seen.add(alarm.alarm_name)
        return Stack(
            stack_name=stack_name_for(group.name, self._prefix),
            group_name=group.name,
            alarms=tuple(ordered),
            targets=tuple(group.targets),
            description=group.description or f"Watchman alarms for {group.name}",
        )


def logical_id(alarm_name: str) -> str:
    digest = hashlib.sha1(alarm_name.encode("utf-8")).hexdigest()[:8]
    return f"Alarm{_NON_ALPHANUMERIC.sub('', alarm_name)[:200]}{digest}"


def _number(value: Decimal) -> Any:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _alarm_resource(alarm: AlarmDefinition, actions: List[Dict[str, str]]) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        "AlarmName": alarm.alarm_name,
        "AlarmDescription": alarm.description,
        "Namespace": alarm.namespace,
        "MetricName": alarm.metric_name,
        "Dimensions": [
            {"Name": dimension.name, "Value": dimension.value}
            for dimension in sorted(alarm.dimensions, key=lambda d: (d.name, d.value))
        ],
        "Statistic": alarm.statistic,
        "Period": alarm.period,
        "EvaluationPeriods": alarm.evaluation_periods,
        "Threshold": _number(alarm.threshold),
        "ComparisonOperator": alarm.comparison_operator,
        "TreatMissingData": alarm.treat_missing_data,
    }
    if actions:
        properties["AlarmActions"] = actions
        properties["OKActions"] = actions
    return {"Type": "AWS::CloudWatch::Alarm", "Properties": properties}


def build_template(stack: Stack) -> Dict[str, Any]:
    resources: Dict[str, Any] = {}
    actions: List[Dict[str, str]] = []
    if stack.targets:
        resources[TOPIC_LOGICAL_ID] = {
            "Type": "AWS::SNS::Topic",
            "Properties": {
                "Subscription": [
                    {"Protocol": target.protocol, "Endpoint": target.endpoint}
                    for target in stack.targets
                ]
            },
        }
        actions = [{"Ref": TOPIC_LOGICAL_ID}]
    for alarm in stack.alarms:
        resources[logical_id(alarm.alarm_name)] = _alarm_resource(alarm, actions)
    if not resources:
        # a template needs at least one resource; this keeps an emptied group deployable
        resources[EMPTY_LOGICAL_ID] = {"Type": "AWS::CloudFormation::WaitConditionHandle"}
    return {
        "AWSTemplateFormatVersion": "2010-09-09",
        "Description": stack.description,
        "Resources": resources,
    }


def render_template(stack: Stack) -> str:
    """Serialise the stack as JSON; identical stacks render identical bytes."""

    return json.dumps(build_template(stack), indent=2, sort_keys=True)
