# lambda_sync/deployer.py
"""
Deployment orchestrator: build, reconcile the function, sync triggers, clean up
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .aws import AWSClientOptions
from .aws.event_source_manager import EventSourceManager, TriggerSyncResult
from .aws.lambda_manager import FunctionDeployment, LambdaManager
from .builder import LambdaBuilder
from .config import DeployConfig

logger = logging.getLogger(__name__)


@dataclass
class DeploymentResult:
    """Summary of one deployment run"""

    function_name: str
    function_arn: Optional[str] = None
    created: bool = False
    triggers: TriggerSyncResult = field(default_factory=TriggerSyncResult)


class Deployer:
    """Runs one deployment of a single function"""

    def __init__(self, config: DeployConfig, options: Optional[AWSClientOptions] = None):
        self.config = config
        # Settings from the config file take precedence over the caller's defaults
        self.options = (options or AWSClientOptions()).merged(
            region=config.region, profile=config.profile)
        self.package_path: Optional[Path] = None
        self.result = DeploymentResult(function_name=config.function_name)

        # Clients are created on first AWS call, so --build-only needs no credentials
        self.lambda_mgr = LambdaManager(self.options)
        self.event_source_mgr = EventSourceManager(self.options)
        self.builder = LambdaBuilder(config)

    def get_deployment_steps(self) -> List[Tuple[str, Callable[[], None]]]:
        return [
            ("Build Package", self._build_package),
            ("Lambda Deployment", self._deploy_lambda),
            ("SQS Triggers", self._sync_triggers),
        ]

    def deploy(self) -> DeploymentResult:
        """Execute the deployment; the artifact is removed on every exit path"""
        logger.info(f"🚀 Deploying Lambda function: {self.config.function_name} ({self.options.region})")

        try:
            for step_name, step_func in self.get_deployment_steps():
                if self._should_skip_step(step_name):
                    continue

                logger.info(f"\n📋 {step_name}")
                logger.info("-" * 60)
                self._execute_step(step_name, step_func)

            self._show_deployment_summary()
            return self.result

        finally:
            self._cleanup_package()

    def build(self) -> Path:
        """Build the package only and keep it on disk"""
        logger.info("\n📦 Building Lambda Package")
        logger.info("-" * 60)
        self._build_package()
        return self.package_path

    def _should_skip_step(self, step_name: str) -> bool:
        if step_name == "SQS Triggers" and not self.config.sqs_triggers:
            logger.debug("No SQS triggers configured, skipping trigger synchronization")
            return True
        return False

    def _execute_step(self, step_name: str, step_func: Callable[[], None]) -> None:
        try:
            step_func()
        except Exception as e:
            logger.error(f"❌ {step_name} failed: {e}")
            raise

    def _build_package(self) -> None:
        self.package_path = self.builder.build()

    def _deploy_lambda(self) -> None:
        zip_content = self.package_path.read_bytes()
        deployment: FunctionDeployment = self.lambda_mgr.deploy_function(self.config, zip_content)
        self.result.function_arn = deployment.function_arn
        self.result.created = deployment.created

    def _sync_triggers(self) -> None:
        self.result.triggers = self.event_source_mgr.sync_sqs_triggers(
            self.config.function_name, self.config.sqs_triggers)

    def _cleanup_package(self) -> None:
        """Remove the local deployment artifact"""
        package_path = self.config.package_path
        if package_path.exists():
            package_path.unlink()
            logger.debug(f"🧹 Removed {package_path}")

    def _show_deployment_summary(self) -> None:
        action = "created" if self.result.created else "updated"
        logger.info("\n" + "=" * 60)
        logger.info(f"🎉 Function {action} successfully!")
        logger.info("=" * 60)
        logger.info(f"  ARN: {self.result.function_arn}")

        triggers = self.result.triggers
        if triggers.changed:
            logger.info(
                f"  SQS triggers: {len(triggers.created)} created, "
                f"{len(triggers.updated)} updated, {len(triggers.deleted)} removed")

        logger.info("\n📝 Next Steps:")
        logger.info(f"  Logs: aws logs tail /aws/lambda/{self.config.function_name} --follow")
