"""
Unit tests for SQS trigger synchronization.
"""
import pytest

from lambda_sync.aws.event_source_manager import EventSourceManager, TriggerSyncResult
from lambda_sync.config import TriggerSpec

from conftest import FUNCTION_NAME, client_error

QUEUE_A = 'arn:aws:sqs:us-east-1:123456789012:queue-a'
QUEUE_B = 'arn:aws:sqs:us-east-1:123456789012:queue-b'
QUEUE_C = 'arn:aws:sqs:us-east-1:123456789012:queue-c'


def mapping(uuid, queue_arn, batch_size=10):
    return {
        'UUID': uuid,
        'EventSourceArn': queue_arn,
        'BatchSize': batch_size,
        'MaximumBatchingWindowInSeconds': 0,
        'State': 'Enabled',
    }


def set_mappings(client, *pages):
    client.get_paginator.return_value.paginate.return_value = [
        {'EventSourceMappings': list(page)} for page in pages
    ]


@pytest.fixture
def manager(options, mock_client):
    return EventSourceManager(options, client=mock_client)


def test_update_create_delete(manager, mock_client):
    """Configured {A, B} against remote {A, C}: update A, create B, delete C."""
    set_mappings(mock_client, [mapping('uuid-a', QUEUE_A), mapping('uuid-c', QUEUE_C)])
    triggers = [
        TriggerSpec(queue_arn=QUEUE_A, batch_size=5, max_batching_window=2),
        TriggerSpec(queue_arn=QUEUE_B, enabled=False),
    ]

    result = manager.sync_sqs_triggers(FUNCTION_NAME, triggers)

    mock_client.update_event_source_mapping.assert_called_once_with(
        UUID='uuid-a', BatchSize=5, MaximumBatchingWindowInSeconds=2, Enabled=True)
    mock_client.create_event_source_mapping.assert_called_once_with(
        EventSourceArn=QUEUE_B, FunctionName=FUNCTION_NAME,
        BatchSize=10, MaximumBatchingWindowInSeconds=0, Enabled=False)
    mock_client.delete_event_source_mapping.assert_called_once_with(UUID='uuid-c')
    assert result == TriggerSyncResult(created=[QUEUE_B], updated=[QUEUE_A], deleted=[QUEUE_C])
    mock_client.get_paginator.assert_called_once_with('list_event_source_mappings')
    mock_client.get_paginator.return_value.paginate.assert_called_once_with(FunctionName=FUNCTION_NAME)


def test_creates_and_updates_happen_before_deletes(manager, mock_client):
    set_mappings(mock_client, [mapping('uuid-c', QUEUE_C), mapping('uuid-a', QUEUE_A)])
    triggers = [TriggerSpec(queue_arn=QUEUE_B), TriggerSpec(queue_arn=QUEUE_A)]

    manager.sync_sqs_triggers(FUNCTION_NAME, triggers)

    mutations = [
        name for name, _, _ in mock_client.method_calls
        if name.endswith('_event_source_mapping')
    ]
    assert mutations == [
        'create_event_source_mapping',
        'update_event_source_mapping',
        'delete_event_source_mapping',
    ]


def test_unchanged_mapping_is_still_updated(manager, mock_client):
    set_mappings(mock_client, [mapping('uuid-a', QUEUE_A, batch_size=10)])

    result = manager.sync_sqs_triggers(FUNCTION_NAME, [TriggerSpec(queue_arn=QUEUE_A)])

    mock_client.update_event_source_mapping.assert_called_once_with(
        UUID='uuid-a', BatchSize=10, MaximumBatchingWindowInSeconds=0, Enabled=True)
    assert result.updated == [QUEUE_A]


def test_empty_trigger_list_makes_no_calls(manager, mock_client):
    set_mappings(mock_client, [mapping('uuid-c', QUEUE_C)])

    result = manager.sync_sqs_triggers(FUNCTION_NAME, [])

    assert mock_client.method_calls == []
    assert not result.changed


def test_mappings_are_read_across_pages(manager, mock_client):
    set_mappings(mock_client, [mapping('uuid-a', QUEUE_A)], [mapping('uuid-c', QUEUE_C)])

    result = manager.sync_sqs_triggers(FUNCTION_NAME, [TriggerSpec(queue_arn=QUEUE_A)])

    assert result == TriggerSyncResult(updated=[QUEUE_A], deleted=[QUEUE_C])


def test_no_existing_mappings(manager, mock_client):
    triggers = [TriggerSpec(queue_arn=QUEUE_A), TriggerSpec(queue_arn=QUEUE_B)]

    result = manager.sync_sqs_triggers(FUNCTION_NAME, triggers)

    assert mock_client.create_event_source_mapping.call_count == 2
    mock_client.update_event_source_mapping.assert_not_called()
    mock_client.delete_event_source_mapping.assert_not_called()
    assert result.created == [QUEUE_A, QUEUE_B]


def test_errors_propagate(manager, mock_client):
    error = client_error('InvalidParameterValueException')
    mock_client.create_event_source_mapping.side_effect = error

    with pytest.raises(Exception) as excinfo:
        manager.sync_sqs_triggers(FUNCTION_NAME, [TriggerSpec(queue_arn=QUEUE_A)])

    assert excinfo.value is error
    mock_client.delete_event_source_mapping.assert_not_called()
