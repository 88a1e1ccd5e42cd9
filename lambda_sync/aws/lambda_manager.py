# lambda_sync/aws/lambda_manager.py
"""
Lambda Function Manager - brings the remote function in line with DeployConfig
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from . import AWSServiceManager
from ..config import (
    DEFAULT_DESCRIPTION,
    DEFAULT_HANDLER,
    DEFAULT_MEMORY_SIZE,
    DEFAULT_RUNTIME,
    DEFAULT_TIMEOUT,
    DeployConfig,
)
from ..exceptions import ConfigurationError, FunctionReadyTimeoutError, PreviousUpdateFailedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT = 120.0
DEFAULT_POLL_INTERVAL = 3.0


@dataclass(frozen=True)
class FunctionDeployment:
    """Outcome of reconciling the function itself"""

    function_arn: str
    created: bool


class LambdaManager(AWSServiceManager):
    """Manages Lambda function code and configuration"""

    max_wait = DEFAULT_MAX_WAIT
    poll_interval = DEFAULT_POLL_INTERVAL

    @property
    def service_name(self) -> str:
        return 'lambda'

    def deploy_function(self, config: DeployConfig, zip_content: bytes) -> FunctionDeployment:
        """
        Create the function, or update its code and configuration

        Returns the function ARN and whether the function was created.
        """
        function_name = config.function_name
        logger.info(f"Deploying Lambda function: {function_name}")

        if self.function_exists(function_name):
            logger.info("Updating existing function...")
            function_arn = self._update_function(config, zip_content)
            logger.info(f"✅ Lambda function updated: {function_name}")
            return FunctionDeployment(function_arn=function_arn, created=False)

        if not config.role_arn:
            raise ConfigurationError("role_arn is required for creating new functions")

        logger.info("Creating new function...")
        function_arn = self._create_function(config, zip_content)
        logger.info(f"✅ Lambda function created: {function_name}")
        return FunctionDeployment(function_arn=function_arn, created=True)

    def function_exists(self, function_name: str) -> bool:
        return self.resource_exists('get_function', FunctionName=function_name)

    def _create_function(self, config: DeployConfig, zip_content: bytes) -> str:
        response = self.call(
            'create_function',
            FunctionName=config.function_name,
            Role=config.role_arn,
            Code={'ZipFile': zip_content},
            Description=DEFAULT_DESCRIPTION if config.description is None else config.description,
            **self._function_settings(config)
        )
        return response['FunctionArn']

    def _update_function(self, config: DeployConfig, zip_content: bytes) -> str:
        """Update code, then configuration once the code update has settled"""
        logger.info("Updating function code...")
        response = self.call_with_conflict_retry(
            'update_function_code',
            FunctionName=config.function_name,
            ZipFile=zip_content
        )

        if config.has_configuration_changes:
            logger.info("Waiting for code update to complete...")
            self.wait_for_function_ready(config.function_name)

            logger.info("Updating function configuration...")
            self.call_with_conflict_retry(
                'update_function_configuration',
                FunctionName=config.function_name,
                **self._function_settings(config)
            )

        return response['FunctionArn']

    def _function_settings(self, config: DeployConfig) -> Dict[str, Any]:
        """Settings shared by create_function and update_function_configuration

        An unset description is left out so an update keeps the remote value.
        """
        settings = {
            'Runtime': config.runtime or DEFAULT_RUNTIME,
            'Handler': config.handler or DEFAULT_HANDLER,
            'Timeout': config.timeout or DEFAULT_TIMEOUT,
            'MemorySize': config.memory_size or DEFAULT_MEMORY_SIZE,
            'Layers': list(config.layers or []),
        }
        if config.description is not None:
            settings['Description'] = config.description
        if config.environment is not None:
            settings['Environment'] = {'Variables': dict(config.environment)}
        return settings

    def wait_for_function_ready(self, function_name: str, max_wait: Optional[float] = None,
                                poll_interval: Optional[float] = None) -> None:
        """
        Block until the function is Active with a Successful last update

        Query errors are ignored and polling continues. A Failed last update
        aborts immediately with PreviousUpdateFailedError.
        """
        max_wait = self.max_wait if max_wait is None else max_wait
        poll_interval = self.poll_interval if poll_interval is None else poll_interval
        deadline = time.monotonic() + max_wait

        while time.monotonic() < deadline:
            try:
                response = self.client.get_function(FunctionName=function_name)
            except (ClientError, BotoCoreError) as e:
                logger.debug(f"Ignoring error while polling {function_name}: {e}")
            else:
                configuration = response.get('Configuration', {})
                state = configuration.get('State')
                last_update_status = configuration.get('LastUpdateStatus')

                if state == 'Active' and last_update_status == 'Successful':
                    logger.info("✅ Function is ready")
                    return

                if last_update_status == 'Failed':
                    raise PreviousUpdateFailedError(
                        function_name, configuration.get('LastUpdateStatusReason'))

                logger.debug(f"  State={state} LastUpdateStatus={last_update_status}")

            time.sleep(poll_interval)

        raise FunctionReadyTimeoutError(function_name, max_wait)
