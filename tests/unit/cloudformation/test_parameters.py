import pytest

from stackpilot.cloudformation.parameters import Parameters


def test_mapping_is_converted_in_order():
    parameters = Parameters({"InstanceType": "t3.micro", "Count": 2})

    assert parameters.stack_parameters() == [
        {"ParameterKey": "InstanceType", "ParameterValue": "t3.micro"},
        {"ParameterKey": "Count", "ParameterValue": "2"},
    ]


def test_stage_section_is_used_for_stage():
    data = {"InstanceType": "t3.micro", "prod": {"InstanceType": "m5.large"}}

    assert Parameters(data, stage="prod").stack_parameters() == [
        {"ParameterKey": "InstanceType", "ParameterValue": "m5.large"}
    ]
    # other stages only see the top level values
    assert Parameters(data, stage="dev").stack_parameters() == [
        {"ParameterKey": "InstanceType", "ParameterValue": "t3.micro"}
    ]


def test_stage_section_is_merged_over_shared_values():
    data = {
        "InstanceType": "t3.micro",
        "VpcId": "vpc-123",
        "staging": {"InstanceType": "t3.small"},
        "prod": {"InstanceType": "m5.large", "Replicas": 3},
    }

    assert Parameters(data, stage="prod").stack_parameters() == [
        {"ParameterKey": "InstanceType", "ParameterValue": "m5.large"},
        {"ParameterKey": "VpcId", "ParameterValue": "vpc-123"},
        {"ParameterKey": "Replicas", "ParameterValue": "3"},
    ]
    assert Parameters(data).stack_parameters() == [
        {"ParameterKey": "InstanceType", "ParameterValue": "t3.micro"},
        {"ParameterKey": "VpcId", "ParameterValue": "vpc-123"},
    ]


@pytest.mark.parametrize(
    "value,expected",
    [
        (True, "true"),
        (False, "false"),
        (["a", "b", 3], "a,b,3"),
        (None, ""),
        (1.5, "1.5"),
    ],
)
def test_value_conversion(value, expected):
    assert Parameters({"Key": value}).stack_parameters() == [
        {"ParameterKey": "Key", "ParameterValue": expected}
    ]


def test_list_of_entries():
    data = [
        {"ParameterKey": "Name", "ParameterValue": "web"},
        {"ParameterKey": "Enabled", "ParameterValue": True},
        {"ParameterKey": "Secret", "UsePreviousValue": True},
    ]

    assert Parameters(data).stack_parameters() == [
        {"ParameterKey": "Name", "ParameterValue": "web"},
        {"ParameterKey": "Enabled", "ParameterValue": "true"},
        {"ParameterKey": "Secret", "UsePreviousValue": True},
    ]


@pytest.mark.parametrize("data", [None, {}, []])
def test_no_parameters(data):
    assert Parameters(data, stage="prod").stack_parameters() == []
