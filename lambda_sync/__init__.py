# lambda_sync/__init__.py
"""
lambda-sync: deploy one AWS Lambda function and its SQS triggers
from a declarative local configuration
"""

__version__ = "1.0.0"

from .aws import AWSClientOptions
from .aws.event_source_manager import EventSourceManager, TriggerSyncResult
from .aws.lambda_manager import FunctionDeployment, LambdaManager
from .builder import LambdaBuilder
from .config import DeployConfig, TriggerSpec, load_config
from .deployer import Deployer, DeploymentResult
from .exceptions import (
    ConfigurationError,
    DeploymentError,
    FunctionReadyTimeoutError,
    PackagingError,
    PreviousUpdateFailedError,
    RetryExhaustedError,
)

__all__ = [
    'AWSClientOptions',
    'ConfigurationError',
    'DeployConfig',
    'Deployer',
    'DeploymentError',
    'DeploymentResult',
    'EventSourceManager',
    'FunctionDeployment',
    'FunctionReadyTimeoutError',
    'LambdaBuilder',
    'LambdaManager',
    'PackagingError',
    'PreviousUpdateFailedError',
    'RetryExhaustedError',
    'TriggerSpec',
    'TriggerSyncResult',
    'load_config',
]
