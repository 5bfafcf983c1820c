"""Shared fixtures for DynamoDB-backed tests."""
import boto3
import pytest
from moto import mock_aws

from catalog.event_lifecycle import EventLifecycle
from storage.dynamodb_manager import DynamoDBManager

TABLE_NAME = 'test-events'
SLUG_TABLE_NAME = 'test-event-slugs'


@pytest.fixture
def aws_credentials(monkeypatch):
    """Point boto3 at fake credentials and a fixed region."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb_tables(aws_credentials):
    """Create mock events and slug tables."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        events_table = dynamodb.create_table(
            TableName=TABLE_NAME,
            KeySchema=[
                {'AttributeName': 'event_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'event_id', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        slug_table = dynamodb.create_table(
            TableName=SLUG_TABLE_NAME,
            KeySchema=[
                {'AttributeName': 'slug', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'slug', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield events_table, slug_table


@pytest.fixture
def dynamodb_manager(dynamodb_tables):
    """Create DynamoDBManager instance with mock tables."""
    manager = DynamoDBManager(TABLE_NAME, SLUG_TABLE_NAME, region_name='us-east-1')
    yield manager
    manager.close()


@pytest.fixture
def lifecycle(dynamodb_manager):
    """EventLifecycle writing to the mock tables."""
    return EventLifecycle(dynamodb_manager)


@pytest.fixture
def event_fields():
    """Valid field values for a new event."""
    return {
        'title': 'Launch Party',
        'description': 'Celebrate the product launch',
        'overview': 'Drinks, demos and a keynote',
        'image': 'https://example.com/launch.png',
        'venue': 'Main Hall',
        'location': 'Berlin, Germany',
        'date': '2025-03-15',
        'time': '7:00 PM',
        'mode': 'offline',
        'audience': 'Customers and partners',
        'agenda': ['Keynote', 'Demos'],
        'organizer': 'Product Team',
        'tags': ['launch', 'product']
    }
