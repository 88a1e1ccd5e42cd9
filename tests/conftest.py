"""
Pytest configuration file for lambda-sync tests.
"""
import json
from unittest.mock import MagicMock, patch

import boto3
import moto
import pytest
from botocore.exceptions import ClientError

from lambda_sync.aws import AWSClientOptions
from lambda_sync.config import DeployConfig, TriggerSpec

FUNCTION_NAME = 'test-function'
FUNCTION_ARN = 'arn:aws:lambda:us-east-1:123456789012:function:test-function'
ROLE_ARN = 'arn:aws:iam::123456789012:role/lambda-test-role'


def client_error(code, operation='Operation', message='error'):
    """Build a botocore ClientError with the given error code."""
    return ClientError({'Error': {'Code': code, 'Message': message}}, operation)


def function_state(state='Active', last_update_status='Successful', reason=None):
    """Build a get_function response."""
    configuration = {
        'FunctionName': FUNCTION_NAME,
        'FunctionArn': FUNCTION_ARN,
        'State': state,
        'LastUpdateStatus': last_update_status,
    }
    if reason:
        configuration['LastUpdateStatusReason'] = reason
    return {'Configuration': configuration}


def make_config(tmp_path=None, **overrides):
    """DeployConfig with only the function name set unless overridden."""
    values = {'function_name': FUNCTION_NAME}
    if tmp_path is not None:
        values['source_dir'] = tmp_path
    values.update(overrides)
    if 'sqs_triggers' in values:
        values['sqs_triggers'] = tuple(
            t if isinstance(t, TriggerSpec) else TriggerSpec(**t) for t in values['sqs_triggers']
        )
    return DeployConfig(**values)


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    with patch.dict('os.environ', {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_SECURITY_TOKEN': 'testing',
        'AWS_SESSION_TOKEN': 'testing',
        'AWS_DEFAULT_REGION': 'us-east-1',
    }):
        yield


@pytest.fixture
def options():
    return AWSClientOptions(region='us-east-1')


@pytest.fixture
def mock_client():
    """A MagicMock standing in for the boto3 lambda client."""
    client = MagicMock()
    client.create_function.return_value = {'FunctionArn': FUNCTION_ARN}
    client.update_function_code.return_value = {'FunctionArn': FUNCTION_ARN}
    client.update_function_configuration.return_value = {'FunctionArn': FUNCTION_ARN}
    client.get_function.return_value = function_state()
    client.get_paginator.return_value.paginate.return_value = [{'EventSourceMappings': []}]
    return client


@pytest.fixture
def no_sleep():
    """Skip real waits in retry and polling loops."""
    with patch('time.sleep') as mock_sleep:
        yield mock_sleep


@pytest.fixture
def mocked_aws(aws_credentials):
    with moto.mock_aws():
        yield


@pytest.fixture
def lambda_client(mocked_aws):
    """Lambda client fixture."""
    return boto3.client('lambda', region_name='us-east-1')


@pytest.fixture
def lambda_role(mocked_aws):
    """Create a Lambda execution role."""
    iam_client = boto3.client('iam', region_name='us-east-1')
    assume_role_policy = {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": "lambda.amazonaws.com"},
                "Action": "sts:AssumeRole"
            }
        ]
    }
    response = iam_client.create_role(
        RoleName='lambda-test-role',
        AssumeRolePolicyDocument=json.dumps(assume_role_policy)
    )
    return response['Role']['Arn']


@pytest.fixture
def source_dir(tmp_path):
    """A minimal function source tree."""
    (tmp_path / 'lambda_function.py').write_text(
        'def lambda_handler(event, context):\n    return {"ok": True}\n')
    return tmp_path
