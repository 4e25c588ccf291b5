"""Unit tests for the DynamoDB event repository."""
import json
from datetime import datetime
from unittest.mock import patch

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from storage.event_repository import (
    DynamoDBEventRepository,
    decode_events,
    encode_events,
    event_to_record,
    record_to_event,
)
from timeline.models import LoadStatus, ProductionEvent, ProductionEventType, ProductionPhase

TABLE_NAME = 'test-production-calendar'


@pytest.fixture
def aws_env(monkeypatch):
    """Set fake AWS credentials and region."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb_table(aws_env):
    """Create a mock DynamoDB table for testing."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {'AttributeName': 'storage_key', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'storage_key', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table


@pytest.fixture
def repository(dynamodb_table):
    """Create DynamoDBEventRepository instance with mock table."""
    return DynamoDBEventRepository(TABLE_NAME, project_id='project-42')


@pytest.fixture
def sample_event():
    """Create a sample ProductionEvent with every optional field set."""
    return ProductionEvent(
        id='event-1',
        title='Location Scout: Harbor',
        type=ProductionEventType.LOCATION_SCOUT,
        date=datetime(2025, 2, 14, 8, 0),
        end_date=datetime(2025, 2, 15),
        phase=ProductionPhase.PRE_PRODUCTION,
        subcategory_id='pre-location',
        notes='Bring drone',
        location='Harbor',
        scenes=['22', '23'],
        crew=['DP', 'Location Manager'],
        call_time=datetime(2025, 2, 14, 7, 0),
        wrap_time=datetime(2025, 2, 14, 17, 0),
        custom_color='#112233',
        linked_location_id='loc-9',
        linked_task_ids=['task-1', 'task-2']
    )


def test_load_events_missing(repository):
    """Test load_events reports missing when nothing is stored."""
    result = repository.load_events()

    assert result.status is LoadStatus.MISSING
    assert result.events == []


def test_save_and_load_events(repository, sample_event):
    """Test saved events load back unchanged."""
    assert repository.save_events([sample_event]) is True

    result = repository.load_events()

    assert result.status is LoadStatus.LOADED
    assert result.events == [sample_event]


def test_save_uses_project_storage_key(repository, dynamodb_table, sample_event):
    """Test the item is keyed by the project's storage key."""
    repository.save_events([sample_event])

    item = dynamodb_table.get_item(Key={'storage_key': 'calendarEvents_project-42'})['Item']
    assert item['project_id'] == 'project-42'
    assert json.loads(item['events'])[0]['id'] == 'event-1'
    assert int(item['last_updated']) > 0


def test_projects_are_isolated(repository, sample_event):
    """Test another project's repository does not see these events."""
    repository.save_events([sample_event])

    other = DynamoDBEventRepository(TABLE_NAME, project_id='project-7')
    assert other.load_events().status is LoadStatus.MISSING


def test_load_corrupt_blob(repository, dynamodb_table):
    """Test undecodable blobs load as corrupt with no events."""
    dynamodb_table.put_item(Item={
        'storage_key': repository.storage_key,
        'events': '{not json'
    })

    result = repository.load_events()

    assert result.status is LoadStatus.CORRUPT
    assert result.events == []


def test_load_blob_with_bad_record(repository, dynamodb_table):
    """Test a record with an unknown event type marks the blob corrupt."""
    dynamodb_table.put_item(Item={
        'storage_key': repository.storage_key,
        'events': json.dumps([{'id': 'x', 'title': 'X', 'type': 'Party', 'date': '2025-01-01T00:00:00'}])
    })

    assert repository.load_events().status is LoadStatus.CORRUPT


def test_save_events_client_error(repository, sample_event):
    """Test write failures are reported as False."""
    error = ClientError({'Error': {'Code': 'ProvisionedThroughputExceededException',
                                   'Message': 'slow down'}}, 'PutItem')
    with patch.object(repository.table, 'put_item', side_effect=error):
        assert repository.save_events([sample_event]) is False


def test_load_events_client_error_raises(repository):
    """Test read failures propagate to the caller."""
    error = ClientError({'Error': {'Code': 'ResourceNotFoundException',
                                   'Message': 'no table'}}, 'GetItem')
    with patch.object(repository.table, 'get_item', side_effect=error):
        with pytest.raises(ClientError):
            repository.load_events()


class TestEventRecords:
    """Test cases for event record conversion."""

    def test_optional_fields_omitted(self):
        """Test unset optional fields are left out of the record."""
        event = ProductionEvent(
            id='event-2',
            title='Wrap Party',
            type=ProductionEventType.WRAP_DAY,
            date=datetime(2025, 6, 1, 20, 0)
        )

        record = event_to_record(event)

        assert 'end_date' not in record
        assert 'subcategory_id' not in record
        assert record['type'] == 'Wrap Day'
        assert record['phase'] == 'Development'
        assert record['date'] == '2025-06-01T20:00:00'

    def test_record_defaults(self):
        """Test older records without optional keys still load."""
        event = record_to_event({
            'id': 'legacy',
            'title': 'Milestone',
            'type': 'Milestone',
            'date': '2025-01-10T00:00:00'
        })

        assert event.phase is ProductionPhase.DEVELOPMENT
        assert event.end_date is None
        assert event.scenes == []

    def test_decode_rejects_non_array(self):
        """Test a JSON object is not accepted as an event list."""
        with pytest.raises(ValueError):
            decode_events('{"id": "x"}')

    def test_encode_empty(self):
        """Test an empty list encodes to an empty JSON array."""
        assert encode_events([]) == '[]'
