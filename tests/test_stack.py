import json
from decimal import Decimal

from watchman.configuration import AlertEmail, AlertingGroup, AlertUrl
from watchman.engine import AUTOSCALING, DYNAMODB, AlarmBuilder, StackComposer
from watchman.engine.stack import EMPTY_LOGICAL_ID, TOPIC_LOGICAL_ID, logical_id
from watchman.engine.thresholds import BaselineSource, ResolvedThreshold

GROUP = AlertingGroup(
    name="checkout",
    alarm_name_suffix="prod",
    targets=[AlertEmail("ops@example.com"), AlertUrl("https://hooks.example.com/alarm")],
)


def _in_service(resource, threshold):
    return ResolvedThreshold(
        resource_name=resource,
        purpose="InService",
        threshold=Decimal(threshold),
        baseline=Decimal(threshold) * 2,
        baseline_source=BaselineSource.STATIC_CURRENT_VALUE,
        direction=AUTOSCALING.thresholds[0].direction,
    )


def _alarms(resources):
    builder = AlarmBuilder()
    alarms = []
    for resource, threshold in resources:
        alarms.extend(builder.build(GROUP, AUTOSCALING, resource, [_in_service(resource, threshold)]))
    return alarms


def test_stack_name_uses_prefix_and_group_name():
    stack = StackComposer().compose(GROUP, [])
    assert stack.stack_name == "Watchman-checkout"
    assert StackComposer("Alarms").compose(GROUP, []).stack_name == "Alarms-checkout"


def test_alarm_order_is_stable_regardless_of_input_order():
    forward = StackComposer().compose(GROUP, _alarms([("web", 4), ("api", 2)]))
    reverse = StackComposer().compose(GROUP, list(reversed(_alarms([("web", 4), ("api", 2)]))))

    assert [(a.resource_name, a.purpose) for a in forward.alarms] == [
        ("api", "InService"),
        ("api", "NoInstances"),
        ("web", "InService"),
        ("web", "NoInstances"),
    ]
    assert forward.template_body == reverse.template_body


def test_template_contains_alarm_properties_and_topic():
    stack = StackComposer().compose(GROUP, _alarms([("web", "2.5")]))
    template = json.loads(stack.template_body)

    topic = template["Resources"][TOPIC_LOGICAL_ID]
    assert topic["Type"] == "AWS::SNS::Topic"
    assert topic["Properties"]["Subscription"] == [
        {"Protocol": "email", "Endpoint": "ops@example.com"},
        {"Protocol": "https", "Endpoint": "https://hooks.example.com/alarm"},
    ]

    alarm = template["Resources"][logical_id("web-InService-checkout-prod")]
    properties = alarm["Properties"]
    assert alarm["Type"] == "AWS::CloudWatch::Alarm"
    assert properties["Threshold"] == 2.5
    assert properties["Dimensions"] == [{"Name": "AutoScalingGroupName", "Value": "web"}]
    assert properties["Namespace"] == "AWS/AutoScaling"
    assert properties["AlarmActions"] == [{"Ref": TOPIC_LOGICAL_ID}]


def test_logical_ids_are_alphanumeric_and_distinct():
    first = logical_id("a-b-InService-g-s")
    second = logical_id("ab-InService-g-s")
    assert first.isalnum() and second.isalnum()
    assert first != second


def test_empty_group_still_renders_a_deployable_template():
    group = AlertingGroup(name="empty", alarm_name_suffix="x")
    template = json.loads(StackComposer().compose(group, []).template_body)
    assert list(template["Resources"]) == [EMPTY_LOGICAL_ID]


def test_kinds_sort_before_resource_names():
    builder = AlarmBuilder()
    table = ResolvedThreshold(
        resource_name="aaa-table",
        purpose="ConsumedReadCapacity",
        threshold=Decimal(8),
        baseline=Decimal(10),
        baseline_source=BaselineSource.STATIC_CURRENT_VALUE,
        direction=DYNAMODB.thresholds[0].direction,
    )
    alarms = builder.build(GROUP, DYNAMODB, "aaa-table", [table]) + _alarms([("zzz", 2)])
    stack = StackComposer().compose(GROUP, alarms)
    assert [alarm.kind for alarm in stack.alarms][0] == "autoscaling"
    assert [alarm.kind for alarm in stack.alarms][-1] == "dynamodb"
