# lambda_sync/exceptions.py
"""
Deployment error taxonomy

Remote not-found and conflict signals stay botocore ClientErrors; use
error_code() to classify them.
"""
from typing import Optional

from botocore.exceptions import ClientError

NOT_FOUND_CODE = 'ResourceNotFoundException'
CONFLICT_CODE = 'ResourceConflictException'


class DeploymentError(Exception):
    """Base class for fatal deployment errors"""


class ConfigurationError(DeploymentError):
    """A required setting is missing or invalid"""


class PackagingError(DeploymentError):
    """The deployment artifact could not be built"""


class PreviousUpdateFailedError(DeploymentError):
    """The function reported LastUpdateStatus=Failed while waiting for readiness"""

    def __init__(self, function_name: str, reason: Optional[str] = None):
        self.function_name = function_name
        self.reason = reason
        message = f"Previous update of {function_name} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class FunctionReadyTimeoutError(DeploymentError, TimeoutError):
    """The function did not become ready within the allowed wait"""

    def __init__(self, function_name: str, max_wait: float):
        self.function_name = function_name
        self.max_wait = max_wait
        super().__init__(f"Timeout waiting for {function_name} to be ready after {max_wait:g}s")


class RetryExhaustedError(DeploymentError):
    """All retry attempts were used without a result"""


def error_code(error: Exception) -> Optional[str]:
    """Return the AWS error code of a ClientError, None for anything else"""
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code')
    return None


def is_not_found(error: Exception) -> bool:
    return error_code(error) == NOT_FOUND_CODE


def is_conflict(error: Exception) -> bool:
    return error_code(error) == CONFLICT_CODE
