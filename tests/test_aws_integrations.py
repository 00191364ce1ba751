from datetime import datetime, timedelta, timezone
from decimal import Decimal

import boto3
import pytest
from botocore.stub import Stubber

from conftest import FakeMetricQuery, FixedClock, RecordingDeployer, basic_config
from watchman.configuration import (
    AlertEmail,
    AlertingGroup,
    AlertingGroupServices,
    AwsServiceAlarms,
    ResourceThresholds,
)
from watchman.engine import AlarmPipeline, CloudFormationDeployer, GroupState, StackComposer
from watchman.errors import DeploymentError, MetricQueryError, ResourceLookupError
from watchman.metrics import CloudWatchMetricQuery, Dimension
from watchman.resources import AutoScalingGroupLocator, DynamoDbTableLocator

END = datetime(2018, 1, 26, tzinfo=timezone.utc)
START = END - timedelta(minutes=20)
CREATED = datetime(2017, 6, 1, tzinfo=timezone.utc)


def _client(service):
    return boto3.client(
        service,
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def _stack():
    group = AlertingGroup(name="test", alarm_name_suffix="s", targets=[AlertEmail("a@example.com")])
    return StackComposer().compose(group, [])


def test_cloudwatch_returns_minimum_datapoints():
    client = _client("cloudwatch")
    stubber = Stubber(client)
    stubber.add_response(
        "get_metric_statistics",
        {"Label": "GroupDesiredCapacity", "Datapoints": [{"Minimum": 80.0}]},
        {
            "Namespace": "AWS/AutoScaling",
            "MetricName": "GroupDesiredCapacity",
            "Dimensions": [{"Name": "AutoScalingGroupName", "Value": "web"}],
            "StartTime": START,
            "EndTime": END,
            "Period": 1200,
            "Statistics": ["Minimum"],
        },
    )

    with stubber:
        points = CloudWatchMetricQuery(client).query_minimum(
            "GroupDesiredCapacity",
            "AWS/AutoScaling",
            Dimension("AutoScalingGroupName", "web"),
            START,
            END,
            1200,
        )

    assert [point.minimum for point in points] == [Decimal("80.0")]


def test_cloudwatch_service_errors_become_metric_query_errors():
    client = _client("cloudwatch")
    stubber = Stubber(client)
    stubber.add_client_error("get_metric_statistics", "Throttling", "Rate exceeded")

    with stubber, pytest.raises(MetricQueryError):
        CloudWatchMetricQuery(client).query_minimum(
            "GroupDesiredCapacity", "AWS/AutoScaling", Dimension("AutoScalingGroupName", "web"), START, END, 1200
        )


@pytest.mark.parametrize(
    "start, end",
    [
        (START.replace(tzinfo=None), END),
        (START, END.replace(tzinfo=None)),
        (START.astimezone(timezone(timedelta(hours=9))), END.astimezone(timezone(timedelta(hours=9)))),
    ],
)
def test_cloudwatch_rejects_non_utc_windows(start, end):
    client = _client("cloudwatch")
    with Stubber(client), pytest.raises(ValueError):
        CloudWatchMetricQuery(client).query_minimum(
            "GroupDesiredCapacity", "AWS/AutoScaling", Dimension("AutoScalingGroupName", "web"), start, end, 1200
        )


def test_autoscaling_locator_reads_desired_capacity():
    client = _client("autoscaling")
    stubber = Stubber(client)
    stubber.add_response(
        "describe_auto_scaling_groups",
        {
            "AutoScalingGroups": [
                {
                    "AutoScalingGroupName": "web",
                    "MinSize": 1,
                    "MaxSize": 10,
                    "DesiredCapacity": 4,
                    "DefaultCooldown": 300,
                    "AvailabilityZones": ["us-east-1a"],
                    "HealthCheckType": "EC2",
                    "CreatedTime": CREATED,
                }
            ]
        },
    )

    with stubber:
        resources = AutoScalingGroupLocator(client).locate()

    assert [(resource.name, resource.value("DesiredCapacity")) for resource in resources] == [
        ("web", Decimal(4))
    ]


def test_autoscaling_locator_wraps_errors():
    client = _client("autoscaling")
    stubber = Stubber(client)
    stubber.add_client_error("describe_auto_scaling_groups", "AccessDenied", "no")

    with stubber, pytest.raises(ResourceLookupError):
        AutoScalingGroupLocator(client).locate()


def test_dynamodb_locator_skips_capacity_for_on_demand_tables():
    client = _client("dynamodb")
    stubber = Stubber(client)
    stubber.add_response("list_tables", {"TableNames": ["orders", "events"]})
    stubber.add_response(
        "describe_table",
        {
            "Table": {
                "TableName": "orders",
                "ProvisionedThroughput": {"ReadCapacityUnits": 50, "WriteCapacityUnits": 10},
            }
        },
        {"TableName": "orders"},
    )
    stubber.add_response(
        "describe_table",
        {
            "Table": {
                "TableName": "events",
                "BillingModeSummary": {"BillingMode": "PAY_PER_REQUEST"},
                "ProvisionedThroughput": {"ReadCapacityUnits": 0, "WriteCapacityUnits": 0},
            }
        },
        {"TableName": "events"},
    )

    with stubber:
        resources = {resource.name: resource for resource in DynamoDbTableLocator(client).locate()}

    assert resources["orders"].values == {
        "ReadCapacityUnits": Decimal(50),
        "WriteCapacityUnits": Decimal(10),
    }
    assert resources["events"].values == {}


def _table_race_client():
    client = _client("dynamodb")
    stubber = Stubber(client)
    stubber.add_response("list_tables", {"TableNames": ["orders", "scratch"]})
    stubber.add_response(
        "describe_table",
        {
            "Table": {
                "TableName": "orders",
                "ProvisionedThroughput": {"ReadCapacityUnits": 50, "WriteCapacityUnits": 10},
            }
        },
        {"TableName": "orders"},
    )
    stubber.add_client_error(
        "describe_table",
        "ResourceNotFoundException",
        "Requested resource not found: Table: scratch not found",
        expected_params={"TableName": "scratch"},
    )
    return client, stubber


def test_dynamodb_locator_skips_tables_deleted_while_listing():
    client, stubber = _table_race_client()

    with stubber:
        resources = DynamoDbTableLocator(client).locate()

    assert [resource.name for resource in resources] == ["orders"]


def test_table_deleted_while_listing_still_deploys_the_group():
    client, stubber = _table_race_client()
    deployer = RecordingDeployer()
    pipeline = AlarmPipeline(
        locators=[DynamoDbTableLocator(client)],
        metric_query=FakeMetricQuery(),
        deployer=deployer,
        clock=FixedClock(),
        max_workers=1,
    )
    config = basic_config(
        "orders",
        "suffix",
        AlertingGroupServices(dynamodb=AwsServiceAlarms(resources=[ResourceThresholds("orders")])),
    )

    with stubber:
        (outcome,) = pipeline.run(config)

    assert outcome.state is GroupState.DEPLOYED
    assert "orders" in deployer.alarms_by_resource("Watchman-orders")
    stubber.assert_no_pending_responses()


def test_dynamodb_locator_wraps_other_describe_errors():
    client = _client("dynamodb")
    stubber = Stubber(client)
    stubber.add_response("list_tables", {"TableNames": ["orders"]})
    stubber.add_client_error("describe_table", "AccessDeniedException", "no")

    with stubber, pytest.raises(ResourceLookupError):
        DynamoDbTableLocator(client).locate()


def test_deployer_creates_missing_stack():
    client = _client("cloudformation")
    stubber = Stubber(client)
    stack = _stack()
    stubber.add_client_error(
        "describe_stacks", "ValidationError", "Stack with id Watchman-test does not exist"
    )
    stubber.add_response(
        "create_stack",
        {"StackId": "arn:aws:cloudformation:us-east-1:123456789012:stack/Watchman-test/1"},
        {"StackName": "Watchman-test", "TemplateBody": stack.template_body},
    )

    with stubber:
        CloudFormationDeployer(client, wait=False).deploy(stack)

    stubber.assert_no_pending_responses()


def test_deployer_treats_unchanged_stack_as_success():
    client = _client("cloudformation")
    stubber = Stubber(client)
    stack = _stack()
    stubber.add_response(
        "describe_stacks",
        {
            "Stacks": [
                {
                    "StackName": "Watchman-test",
                    "CreationTime": CREATED,
                    "StackStatus": "CREATE_COMPLETE",
                }
            ]
        },
        {"StackName": "Watchman-test"},
    )
    stubber.add_client_error(
        "update_stack", "ValidationError", "No updates are to be performed."
    )

    with stubber:
        CloudFormationDeployer(client, wait=False).deploy(stack)

    stubber.assert_no_pending_responses()


def test_deployer_wraps_update_failures():
    client = _client("cloudformation")
    stubber = Stubber(client)
    stubber.add_response(
        "describe_stacks",
        {
            "Stacks": [
                {
                    "StackName": "Watchman-test",
                    "CreationTime": CREATED,
                    "StackStatus": "UPDATE_COMPLETE",
                }
            ]
        },
    )
    stubber.add_client_error("update_stack", "InsufficientCapabilities", "denied")

    with stubber, pytest.raises(DeploymentError):
        CloudFormationDeployer(client, wait=False).deploy(_stack())


def test_deployer_replaces_stack_left_in_rollback_complete():
    client = _client("cloudformation")
    stubber = Stubber(client)
    stack = _stack()
    stubber.add_response(
        "describe_stacks",
        {
            "Stacks": [
                {
                    "StackName": "Watchman-test",
                    "CreationTime": CREATED,
                    "StackStatus": "ROLLBACK_COMPLETE",
                }
            ]
        },
        {"StackName": "Watchman-test"},
    )
    stubber.add_response("delete_stack", {}, {"StackName": "Watchman-test"})
    stubber.add_response(
        "create_stack",
        {"StackId": "arn:aws:cloudformation:us-east-1:123456789012:stack/Watchman-test/2"},
        {"StackName": "Watchman-test", "TemplateBody": stack.template_body},
    )

    with stubber:
        CloudFormationDeployer(client, wait=False).deploy(stack)

    stubber.assert_no_pending_responses()
