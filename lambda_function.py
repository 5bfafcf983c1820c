"""AWS Lambda handler for the event catalog API."""
import atexit
import json
import logging
import os
import re
import time
from typing import Dict, Any, Tuple

from botocore.exceptions import ClientError

from catalog.event_lifecycle import EventLifecycle
from catalog.event_lookup import EventLookup
from catalog.exceptions import DuplicateKeyError, EventValidationError, InvalidFormatError
from storage.dynamodb_manager import DynamoDBManager

SLUG_PATTERN = re.compile(r'^[a-z0-9_-]+$')

# One manager per table pair, kept for the life of the container
_stores: Dict[Tuple[str, str], DynamoDBManager] = {}


def get_store(table_name: str, slug_table_name: str) -> DynamoDBManager:
    """Return the cached manager for these tables, creating it on first use."""
    key = (table_name, slug_table_name)
    store = _stores.get(key)
    if store is None:
        store = DynamoDBManager(table_name=table_name, slug_table_name=slug_table_name)
        _stores[key] = store
    return store


def close_stores() -> None:
    """Close and forget every cached manager."""
    while _stores:
        _, store = _stores.popitem()
        store.close()


atexit.register(close_stores)


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def is_valid_slug(slug: str) -> bool:
    """Return True if slug only has characters generate_slug can produce."""
    return bool(slug) and SLUG_PATTERN.match(slug) is not None


def response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    """Build an API Gateway proxy response."""
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def get_event_by_slug(lookup: EventLookup, slug: str) -> Dict[str, Any]:
    """GET /events/{slug}"""
    if not slug or not slug.strip():
        return response(400, {'message': 'Slug parameter is required'})

    if not is_valid_slug(slug):
        return response(400, {
            'message': 'Invalid slug format. Slug must be URL-safe '
                       '(lowercase letters, digits, underscores and hyphens).'
        })

    event = lookup.find_by_slug(slug)
    if event is None:
        return response(404, {'message': f"Event with slug '{slug}' not found"})

    return response(200, {
        'message': 'Event retrieved successfully',
        'event': event.to_dict()
    })


def get_similar_events_by_slug(lookup: EventLookup, slug: str) -> Dict[str, Any]:
    """GET /events/{slug}/similar"""
    events = lookup.find_similar(slug) if slug else []
    return response(200, {
        'message': 'Similar events retrieved successfully',
        'events': [event.to_dict() for event in events]
    })


def create_event(lifecycle: EventLifecycle, payload: Dict[str, Any], retries: int) -> Dict[str, Any]:
    """POST /events"""
    event = lifecycle.save(None, payload, retries=retries)
    return response(201, {
        'message': 'Event created successfully',
        'event': event.to_dict()
    })


def update_event(
    lifecycle: EventLifecycle,
    lookup: EventLookup,
    slug: str,
    payload: Dict[str, Any],
    retries: int
) -> Dict[str, Any]:
    """PUT /events/{slug}"""
    existing = lookup.find_by_slug(slug) if is_valid_slug(slug) else None
    if existing is None:
        return response(404, {'message': f"Event with slug '{slug}' not found"})

    event = lifecycle.save(existing, payload, retries=retries)
    return response(200, {
        'message': 'Event updated successfully',
        'event': event.to_dict()
    })


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode the JSON request body.

    Raises:
        EventValidationError: If the body is missing or not a JSON object
    """
    try:
        payload = json.loads(event.get('body') or '')
    except json.JSONDecodeError as e:
        raise EventValidationError('body', f"Request body is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise EventValidationError('body', 'Request body must be a JSON object')

    return payload


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for API Gateway proxy requests.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        API Gateway proxy response
    """
    # Read configuration from environment variables
    table_name = os.environ.get('TABLE_NAME', 'events')
    slug_table_name = os.environ.get('SLUG_TABLE_NAME', 'event-slugs')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    method = event.get('httpMethod', 'GET')
    resource = event.get('resource', '')
    slug = (event.get('pathParameters') or {}).get('slug', '')

    logger.info(f"Handling {method} {resource}", extra={'slug': slug})

    try:
        retries = int(os.environ.get('SLUG_WRITE_RETRIES', '2'))

        store = get_store(table_name, slug_table_name)
        lookup = EventLookup(store)
        lifecycle = EventLifecycle(store)

        if method == 'GET' and resource == '/events/{slug}':
            result = get_event_by_slug(lookup, slug)
        elif method == 'GET' and resource == '/events/{slug}/similar':
            result = get_similar_events_by_slug(lookup, slug)
        elif method == 'POST' and resource == '/events':
            result = create_event(lifecycle, parse_body(event), retries)
        elif method == 'PUT' and resource == '/events/{slug}':
            result = update_event(lifecycle, lookup, slug, parse_body(event), retries)
        else:
            result = response(404, {'message': f"No route for {method} {resource}"})

    except (InvalidFormatError, EventValidationError) as e:
        logger.warning(f"Rejected {method} {resource}: {e}")
        result = response(400, {
            'message': 'Invalid event data',
            'error': str(e),
            'error_type': type(e).__name__
        })

    except DuplicateKeyError as e:
        logger.warning(f"Slug conflict on {method} {resource}: {e}")
        result = response(409, {
            'message': 'Event slug already exists',
            'error': str(e),
            'error_type': type(e).__name__
        })

    except ClientError as e:
        logger.error(
            f"DynamoDB error on {method} {resource}: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        result = response(500, {
            'message': 'Failed to access event storage',
            'error': str(e),
            'error_type': type(e).__name__
        })

    except Exception as e:
        logger.error(
            f"Request failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        result = response(500, {
            'message': 'Request failed',
            'error': str(e),
            'error_type': type(e).__name__
        })

    duration = time.time() - start_time
    logger.info(
        f"Handled {method} {resource} with status {result['statusCode']}",
        extra={'duration_seconds': round(duration, 2)}
    )

    return result
