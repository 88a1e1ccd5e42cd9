# lambda_sync/aws/event_source_manager.py
"""
Event Source Mapping Manager - SQS triggers for a Lambda function
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from . import AWSServiceManager
from ..config import TriggerSpec

logger = logging.getLogger(__name__)


@dataclass
class TriggerSyncResult:
    """Queue ARNs touched by one synchronization pass"""

    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.deleted)


class EventSourceManager(AWSServiceManager):
    """Keeps the function's SQS event source mappings equal to the configured set"""

    @property
    def service_name(self) -> str:
        return 'lambda'

    def sync_sqs_triggers(self, function_name: str, triggers: Sequence[TriggerSpec]) -> TriggerSyncResult:
        """
        Create, update and delete mappings so that exactly the configured
        queues trigger the function

        An empty trigger list leaves existing mappings alone.
        """
        result = TriggerSyncResult()
        if not triggers:
            logger.debug("No SQS triggers configured, leaving event source mappings untouched")
            return result

        existing = self.list_mappings(function_name)
        by_queue = {}
        for mapping in existing:
            by_queue.setdefault(mapping.get('EventSourceArn'), mapping)

        for trigger in triggers:
            mapping = by_queue.get(trigger.queue_arn)
            if mapping:
                logger.info(f"Updating SQS trigger: {trigger.queue_arn}")
                self.call(
                    'update_event_source_mapping',
                    UUID=mapping['UUID'],
                    **self._mapping_settings(trigger)
                )
                result.updated.append(trigger.queue_arn)
            else:
                logger.info(f"Creating SQS trigger: {trigger.queue_arn}")
                self.call(
                    'create_event_source_mapping',
                    EventSourceArn=trigger.queue_arn,
                    FunctionName=function_name,
                    **self._mapping_settings(trigger)
                )
                result.created.append(trigger.queue_arn)

        configured = {trigger.queue_arn for trigger in triggers}
        for mapping in existing:
            queue_arn = mapping.get('EventSourceArn')
            if queue_arn not in configured:
                logger.info(f"Removing SQS trigger: {queue_arn}")
                self.call('delete_event_source_mapping', UUID=mapping['UUID'])
                result.deleted.append(queue_arn)

        logger.info(
            f"✅ SQS triggers synchronized: {len(result.created)} created, "
            f"{len(result.updated)} updated, {len(result.deleted)} removed")
        return result

    def list_mappings(self, function_name: str) -> List[Dict[str, Any]]:
        """All event source mappings of the function, across pages"""
        paginator = self.client.get_paginator('list_event_source_mappings')
        mappings = []
        for page in paginator.paginate(FunctionName=function_name):
            mappings.extend(page.get('EventSourceMappings', []))
        return mappings

    def _mapping_settings(self, trigger: TriggerSpec) -> Dict[str, Any]:
        return {
            'BatchSize': trigger.effective_batch_size,
            'MaximumBatchingWindowInSeconds': trigger.effective_batching_window,
            'Enabled': trigger.effective_enabled,
        }
