# lambda_sync/aws/__init__.py
"""
AWS service managers - shared client construction and conflict retry
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Optional, Sequence

import boto3

from ..exceptions import RetryExhaustedError, error_code, is_conflict, is_not_found

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'eu-central-1'

# Waits before the 2nd and 3rd attempt of a conflicting update
DEFAULT_RETRY_DELAYS = (30.0, 60.0)


@dataclass(frozen=True)
class AWSClientOptions:
    """Connection options used to build boto3 clients"""

    region: str = DEFAULT_REGION
    profile: Optional[str] = None

    def merged(self, region: Optional[str] = None, profile: Optional[str] = None) -> 'AWSClientOptions':
        """Return new options with every non-empty override applied"""
        overrides = {}
        if region:
            overrides['region'] = region
        if profile:
            overrides['profile'] = profile
        return replace(self, **overrides)

    def create_client(self, service_name: str):
        """Build a fresh boto3 client for these options"""
        session = boto3.Session(profile_name=self.profile, region_name=self.region)
        return session.client(service_name)


class AWSServiceManager(ABC):
    """
    Base class for AWS service managers
    Provides client handling and the conflict retry policy
    """

    def __init__(self, options: AWSClientOptions, client: Any = None,
                 retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS):
        self.options = options
        self.retry_delays = tuple(retry_delays)
        self._client = client

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Return AWS service name (e.g., 'lambda')"""
        pass

    @property
    def client(self):
        """Lazy-load boto3 client"""
        if self._client is None:
            self._client = self.options.create_client(self.service_name)
        return self._client

    def call(self, operation: str, **kwargs) -> Any:
        """Call an AWS API operation once, logging failures"""
        method = getattr(self.client, operation)
        try:
            response = method(**kwargs)
        except Exception as e:
            if not (is_not_found(e) or is_conflict(e)):
                logger.error(f"❌ {self.service_name}.{operation} failed: {error_code(e) or e}")
            raise
        logger.debug(f"✅ {self.service_name}.{operation} succeeded")
        return response

    def call_with_conflict_retry(self, operation: str, max_attempts: int = 3, **kwargs) -> Any:
        """
        Call an AWS API operation, retrying while the resource reports a conflict

        A ResourceConflictException means another update is still in flight.
        It is retried after a growing delay until attempts run out; any other
        error, or a conflict on the last attempt, is raised unchanged.
        """
        for attempt in range(max_attempts):
            try:
                return self.call(operation, **kwargs)
            except Exception as e:
                if not is_conflict(e):
                    raise
                if attempt == max_attempts - 1:
                    logger.error(f"❌ {self.service_name}.{operation} still conflicting after {max_attempts} attempts")
                    raise

                delay = self._retry_delay(attempt)
                logger.warning(
                    f"⚠️ {self.service_name}.{operation} conflicts with an update in progress, "
                    f"waiting {delay:g}s... (attempt {attempt + 1}/{max_attempts})")
                time.sleep(delay)

        raise RetryExhaustedError(
            f"{self.service_name}.{operation} did not succeed within {max_attempts} attempts")

    def _retry_delay(self, attempt: int) -> float:
        if not self.retry_delays:
            return 0.0
        return self.retry_delays[min(attempt, len(self.retry_delays) - 1)]

    def resource_exists(self, check_operation: str, **kwargs) -> bool:
        """
        Check if AWS resource exists; a not-found error means it does not
        """
        try:
            self.call(check_operation, **kwargs)
            return True
        except Exception as e:
            if is_not_found(e):
                return False
            raise


__all__ = ['AWSClientOptions', 'AWSServiceManager', 'DEFAULT_REGION', 'DEFAULT_RETRY_DELAYS']
