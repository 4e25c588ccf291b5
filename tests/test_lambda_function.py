"""Integration tests for Lambda handler."""
import json
import logging
import os
from datetime import datetime
from unittest.mock import Mock, patch

import pytest

from lambda_function import JsonFormatter, lambda_handler, setup_logging
from timeline.models import LoadResult, LoadStatus, ProductionEvent, ProductionEventType


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'TABLE_NAME': 'test-production-calendar',
        'LOG_LEVEL': 'INFO'
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.aws_request_id = 'test-request-id'
    return context


@pytest.fixture
def stored_event():
    """Create the event the mock repository returns."""
    return ProductionEvent(
        id='event-1',
        title='Table Read',
        type=ProductionEventType.REHEARSAL,
        date=datetime(2025, 3, 10, 10, 0),
        end_date=datetime(2025, 3, 11)
    )


@pytest.fixture
def mock_repository(stored_event):
    """Patch the repository class used by the handler."""
    with patch('lambda_function.DynamoDBEventRepository') as repository_class:
        repository = Mock()
        repository.load_events.return_value = LoadResult(status=LoadStatus.LOADED, events=[stored_event])
        repository.save_events.return_value = True
        repository_class.return_value = repository
        yield repository_class


class TestLambdaHandler:
    """Test cases for Lambda handler."""

    def test_sync_shoot_days(self, mock_env, mock_context, mock_repository):
        """Test shoot days from the payload are added and saved."""
        payload = {
            'project_id': 'project-42',
            'shoot_days': [
                {'date': '2025-04-01', 'day_number': 1},
                {'date': '2025-04-02', 'day_number': 2},
                {'date': 'garbage'}
            ]
        }

        response = lambda_handler(payload, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['statistics']['shoot_days_received'] == 2
        assert body['statistics']['events_added'] == 2
        assert body['statistics']['total_events'] == 3
        assert 'duration_seconds' in body

        mock_repository.assert_called_once_with(
            table_name='test-production-calendar', project_id='project-42'
        )
        mock_repository.return_value.save_events.assert_called_once()

    def test_move_event(self, mock_env, mock_context, mock_repository):
        """Test move_event shifts the stored event."""
        payload = {
            'project_id': 'project-42',
            'action': 'move_event',
            'event_id': 'event-1',
            'new_date': '2025-03-15',
            'subcategory_id': 'prod-broll'
        }

        response = lambda_handler(payload, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['status'] == 'applied'
        assert body['event']['date'] == '2025-03-15T10:00:00'
        assert body['event']['end_date'] == '2025-03-16T00:00:00'
        assert body['event']['phase'] == 'Production'

    def test_move_unknown_event(self, mock_env, mock_context, mock_repository):
        """Test moving a missing event reports not_found without saving."""
        payload = {
            'project_id': 'project-42',
            'action': 'move_event',
            'event_id': 'nope',
            'new_date': '2025-03-15'
        }

        response = lambda_handler(payload, mock_context)

        body = json.loads(response['body'])
        assert response['statusCode'] == 200
        assert body['status'] == 'not_found'
        assert body['event'] is None
        mock_repository.return_value.save_events.assert_not_called()

    def test_resize_event(self, mock_env, mock_context, mock_repository):
        """Test resize_event with an end before the start clears the end date."""
        payload = {
            'project_id': 'project-42',
            'action': 'resize_event',
            'event_id': 'event-1',
            'new_end_date': '2025-03-01'
        }

        response = lambda_handler(payload, mock_context)

        body = json.loads(response['body'])
        assert body['status'] == 'applied'
        assert 'end_date' not in body['event']

    def test_invalid_move_date(self, mock_env, mock_context, mock_repository):
        """Test an unparseable date is a 400."""
        payload = {
            'project_id': 'project-42',
            'action': 'move_event',
            'event_id': 'event-1',
            'new_date': 'next tuesday'
        }

        response = lambda_handler(payload, mock_context)

        assert response['statusCode'] == 400
        assert json.loads(response['body'])['error_type'] == 'ValueError'

    def test_missing_event_id(self, mock_env, mock_context, mock_repository):
        """Test a move without event_id is a 400."""
        payload = {'project_id': 'project-42', 'action': 'move_event', 'new_date': '2025-03-15'}

        response = lambda_handler(payload, mock_context)

        assert response['statusCode'] == 400
        body = json.loads(response['body'])
        assert body['error_type'] == 'ValueError'
        assert 'event_id' in body['error']
        mock_repository.return_value.save_events.assert_not_called()

    def test_resize_missing_event_id(self, mock_env, mock_context, mock_repository):
        """Test a resize without event_id is a 400."""
        payload = {'project_id': 'project-42', 'action': 'resize_event', 'new_end_date': '2025-03-15'}

        response = lambda_handler(payload, mock_context)

        assert response['statusCode'] == 400
        assert json.loads(response['body'])['error_type'] == 'ValueError'

    def test_internal_key_error_is_server_error(self, mock_env, mock_context, mock_repository):
        """Test a KeyError raised inside the store is a 500, not a bad request."""
        payload = {
            'project_id': 'project-42',
            'action': 'move_event',
            'event_id': 'event-1',
            'new_date': '2025-03-15'
        }

        with patch('lambda_function.EventStore.move_event', side_effect=KeyError('phase')):
            response = lambda_handler(payload, mock_context)

        assert response['statusCode'] == 500
        assert json.loads(response['body'])['error_type'] == 'KeyError'

    def test_missing_project_id(self, mock_env, mock_context, mock_repository):
        """Test requests without a project are rejected before storage access."""
        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 400
        mock_repository.assert_not_called()

    def test_unknown_action(self, mock_env, mock_context, mock_repository):
        """Test unknown actions are rejected."""
        response = lambda_handler({'project_id': 'p', 'action': 'delete_all'}, mock_context)

        assert response['statusCode'] == 400
        assert 'sync_shoot_days' in json.loads(response['body'])['error']

    def test_storage_failure(self, mock_env, mock_context, mock_repository):
        """Test unexpected storage errors produce a 500."""
        mock_repository.return_value.load_events.side_effect = Exception('DynamoDB error')

        response = lambda_handler({'project_id': 'project-42'}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Calendar update failed'
        assert 'DynamoDB error' in body['error']
        assert body['error_type'] == 'Exception'


class TestLogging:
    """Test cases for logging setup."""

    def test_setup_logging_installs_json_formatter(self):
        """Test the root logger gets one JSON handler at the requested level."""
        setup_logging('DEBUG')

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, JsonFormatter)

    def test_json_formatter_output(self):
        """Test formatted records are JSON with the expected keys."""
        record = logging.LogRecord('calendar', logging.WARNING, __file__, 1, 'hello %s', ('world',), None)

        data = json.loads(JsonFormatter().format(record))

        assert data['message'] == 'hello world'
        assert data['level'] == 'WARNING'
        assert data['logger'] == 'calendar'
