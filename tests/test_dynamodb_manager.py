"""Unit tests for DynamoDB manager."""
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from catalog.exceptions import DuplicateKeyError
from catalog.models import Event


def make_event(event_id, slug, tags, title=None):
    """Build a stored-shape Event for direct writes."""
    return Event(
        event_id=event_id,
        title=title or slug.replace('-', ' ').title(),
        slug=slug,
        description='Description',
        overview='Overview',
        image='https://example.com/image.png',
        venue='Venue',
        location='Location',
        date='2025-03-15',
        time='19:00',
        mode='online',
        audience='Everyone',
        agenda=['Intro'],
        organizer='Organizer',
        tags=tags,
        created_at='2025-01-01T00:00:00+00:00',
        updated_at='2025-01-01T00:00:00+00:00'
    )


@pytest.fixture
def sample_event():
    """Create a sample Event for testing."""
    return make_event('event-1', 'ai-summit', ['ai', 'ml'])


def test_find_by_id_missing(dynamodb_manager):
    """Test find_by_id returns None for an unknown id."""
    assert dynamodb_manager.find_by_id('missing') is None


def test_put_event_round_trip(dynamodb_manager, sample_event):
    """Test put_event stores the event and claims its slug."""
    dynamodb_manager.put_event(sample_event)

    stored = dynamodb_manager.find_by_id('event-1')
    assert stored == sample_event
    assert dynamodb_manager.find_slug_owner('ai-summit') == 'event-1'


def test_find_by_slug(dynamodb_manager, sample_event):
    """Test find_by_slug resolves through the slug table."""
    dynamodb_manager.put_event(sample_event)

    assert dynamodb_manager.find_by_slug('ai-summit').event_id == 'event-1'
    assert dynamodb_manager.find_by_slug('unknown') is None


def test_put_event_duplicate_slug(dynamodb_manager, sample_event):
    """Test that a second owner for a slug is rejected."""
    dynamodb_manager.put_event(sample_event)
    intruder = make_event('event-2', 'ai-summit', ['ai'])

    with pytest.raises(DuplicateKeyError) as exc_info:
        dynamodb_manager.put_event(intruder)

    assert exc_info.value.slug == 'ai-summit'
    assert dynamodb_manager.find_by_id('event-2') is None
    assert dynamodb_manager.find_slug_owner('ai-summit') == 'event-1'


def test_put_event_update_same_slug(dynamodb_manager, sample_event):
    """Test that the owner can rewrite its record under the same slug."""
    dynamodb_manager.put_event(sample_event)
    updated = make_event('event-1', 'ai-summit', ['ai'], title='Ai Summit')
    updated.venue = 'New Venue'

    dynamodb_manager.put_event(updated, previous=sample_event)

    assert dynamodb_manager.find_by_id('event-1').venue == 'New Venue'


def test_put_event_update_moves_slug(dynamodb_manager, sample_event):
    """Test that a slug change claims the new slug and frees the old one."""
    dynamodb_manager.put_event(sample_event)
    renamed = make_event('event-1', 'ml-summit', ['ml'])

    dynamodb_manager.put_event(renamed, previous=sample_event)

    assert dynamodb_manager.find_slug_owner('ml-summit') == 'event-1'
    assert dynamodb_manager.find_slug_owner('ai-summit') is None


def test_put_event_update_into_taken_slug(dynamodb_manager, sample_event):
    """Test that renaming onto another event's slug changes nothing."""
    other = make_event('event-2', 'ml-summit', ['ml'])
    dynamodb_manager.put_event(sample_event)
    dynamodb_manager.put_event(other)
    renamed = make_event('event-1', 'ml-summit', ['ml'])

    with pytest.raises(DuplicateKeyError):
        dynamodb_manager.put_event(renamed, previous=sample_event)

    assert dynamodb_manager.find_slug_owner('ai-summit') == 'event-1'
    assert dynamodb_manager.find_by_id('event-1').slug == 'ai-summit'


def test_find_by_tags(dynamodb_manager, sample_event):
    """Test find_by_tags matches any shared tag and honours exclude_id."""
    dynamodb_manager.put_event(sample_event)
    dynamodb_manager.put_event(make_event('event-2', 'ml-meetup', ['ml']))
    dynamodb_manager.put_event(make_event('event-3', 'ai-night', ['ai', 'social']))
    dynamodb_manager.put_event(make_event('event-4', 'book-club', ['books']))

    events = dynamodb_manager.find_by_tags(['ai', 'ml'], exclude_id='event-1')

    assert {event.event_id for event in events} == {'event-2', 'event-3'}


def test_find_by_tags_empty(dynamodb_manager, sample_event):
    """Test find_by_tags with no tags returns an empty list."""
    dynamodb_manager.put_event(sample_event)

    assert dynamodb_manager.find_by_tags([]) == []


def test_storage_errors_propagate(dynamodb_manager):
    """Test that ClientError from DynamoDB is re-raised."""
    error = ClientError(
        {'Error': {'Code': 'ProvisionedThroughputExceededException', 'Message': 'slow down'}},
        'GetItem'
    )

    with patch.object(dynamodb_manager.slug_table, 'get_item', side_effect=error):
        with pytest.raises(ClientError):
            dynamodb_manager.find_slug_owner('ai-summit')


def test_context_manager_closes_client(dynamodb_manager):
    """Test that leaving the with block closes the client."""
    with patch.object(dynamodb_manager.dynamodb.meta.client, 'close') as mock_close:
        with dynamodb_manager as manager:
            assert manager is dynamodb_manager

    mock_close.assert_called_once()
