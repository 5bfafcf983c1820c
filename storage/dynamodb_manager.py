"""DynamoDB manager for event storage operations."""
import logging
from functools import reduce
from operator import or_
from typing import List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from catalog.exceptions import DuplicateKeyError
from catalog.models import Event

logger = logging.getLogger(__name__)


class DynamoDBManager:
    """
    Manager for DynamoDB operations.

    Events live in one table keyed by event_id. A second table keyed by
    slug maps each slug to the event that owns it; its conditional writes
    are the uniqueness constraint on slugs.
    """

    def __init__(self, table_name: str, slug_table_name: str, region_name: Optional[str] = None):
        """
        Initialize DynamoDB resource and table references.

        Args:
            table_name: Name of the events table
            slug_table_name: Name of the slug ownership table
            region_name: AWS region, defaults to boto3's resolution
        """
        self.table_name = table_name
        self.slug_table_name = slug_table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        self.slug_table = self.dynamodb.Table(slug_table_name)
        logger.info(
            f"Initialized DynamoDBManager for tables: {table_name}, {slug_table_name}"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self) -> None:
        """Close the underlying client's connections."""
        self.dynamodb.meta.client.close()
        logger.debug("Closed DynamoDB client")

    def find_by_id(self, event_id: str) -> Optional[Event]:
        """
        Retrieve one event by ID.

        Args:
            event_id: Event identifier

        Returns:
            Event object or None if absent
        """
        try:
            response = self.table.get_item(Key={'event_id': event_id})
        except ClientError as e:
            logger.error(f"Error reading event {event_id}: {e}")
            raise

        item = response.get('Item')
        return self._item_to_event(item) if item else None

    def find_slug_owner(self, slug: str) -> Optional[str]:
        """
        Look up which event owns a slug.

        Args:
            slug: Slug to check

        Returns:
            Owning event_id or None if the slug is free
        """
        try:
            response = self.slug_table.get_item(Key={'slug': slug}, ConsistentRead=True)
        except ClientError as e:
            logger.error(f"Error reading slug '{slug}': {e}")
            raise

        item = response.get('Item')
        return item['event_id'] if item else None

    def find_by_slug(self, slug: str) -> Optional[Event]:
        """
        Retrieve the event that owns a slug.

        Args:
            slug: Event slug

        Returns:
            Event object or None if no event has this slug
        """
        owner_id = self.find_slug_owner(slug)
        if owner_id is None:
            return None
        return self.find_by_id(owner_id)

    def find_by_tags(self, tags: List[str], exclude_id: Optional[str] = None) -> List[Event]:
        """
        Scan for events carrying at least one of the given tags.

        Args:
            tags: Tags to match
            exclude_id: Event ID to leave out of the results

        Returns:
            Matching events in scan order
        """
        if not tags:
            return []

        filter_expression = reduce(or_, [Attr('tags').contains(tag) for tag in tags])
        if exclude_id is not None:
            filter_expression = filter_expression & Attr('event_id').ne(exclude_id)

        try:
            response = self.table.scan(FilterExpression=filter_expression)
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    FilterExpression=filter_expression,
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning events by tags {tags}: {e}")
            raise

        events = [self._item_to_event(item) for item in items]
        logger.info(f"Found {len(events)} events sharing tags {tags}")
        return events

    def put_event(self, event: Event, previous: Optional[Event] = None) -> None:
        """
        Commit an event and its slug claim in a single transaction.

        The event row, the claim on event.slug and (when the slug changed)
        the release of the previous slug succeed or fail together.

        Args:
            event: Record to write
            previous: Committed version of the record, None for a create

        Raises:
            DuplicateKeyError: If another event already owns event.slug
        """
        event_condition = (
            'attribute_not_exists(event_id)' if previous is None
            else 'attribute_exists(event_id)'
        )
        owner_values = {':event_id': event.event_id}

        transact_items = [
            {
                'Put': {
                    'TableName': self.table_name,
                    'Item': self._event_to_item(event),
                    'ConditionExpression': event_condition,
                }
            },
            {
                'Put': {
                    'TableName': self.slug_table_name,
                    'Item': {'slug': event.slug, 'event_id': event.event_id},
                    'ConditionExpression': 'attribute_not_exists(slug) OR event_id = :event_id',
                    'ExpressionAttributeValues': owner_values,
                }
            },
        ]

        if previous is not None and previous.slug and previous.slug != event.slug:
            transact_items.append({
                'Delete': {
                    'TableName': self.slug_table_name,
                    'Key': {'slug': previous.slug},
                    'ConditionExpression': 'event_id = :event_id',
                    'ExpressionAttributeValues': owner_values,
                }
            })

        try:
            self.dynamodb.meta.client.transact_write_items(TransactItems=transact_items)
        except ClientError as e:
            if self._slug_claim_rejected(e):
                logger.info(f"Slug '{event.slug}' rejected by uniqueness constraint")
                raise DuplicateKeyError(event.slug) from e
            logger.error(f"Error writing event {event.event_id}: {e}")
            raise

    def _slug_claim_rejected(self, error: ClientError) -> bool:
        """
        Check whether a cancelled transaction failed on the slug claim.

        Args:
            error: ClientError raised by transact_write_items

        Returns:
            True if the slug claim (second item) failed its condition
        """
        if error.response.get('Error', {}).get('Code') != 'TransactionCanceledException':
            return False

        codes = [reason.get('Code') for reason in error.response.get('CancellationReasons', [])]
        if not codes:
            return True
        return len(codes) > 1 and codes[1] == 'ConditionalCheckFailed'

    def _item_to_event(self, item: dict) -> Event:
        """
        Convert DynamoDB item to Event object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Event object
        """
        return Event(
            event_id=item['event_id'],
            title=item['title'],
            slug=item['slug'],
            description=item.get('description', ''),
            overview=item.get('overview', ''),
            image=item.get('image', ''),
            venue=item.get('venue', ''),
            location=item.get('location', ''),
            date=item['date'],
            time=item['time'],
            mode=item.get('mode', ''),
            audience=item.get('audience', ''),
            agenda=list(item.get('agenda', [])),
            organizer=item.get('organizer', ''),
            tags=list(item.get('tags', [])),
            created_at=item.get('created_at'),
            updated_at=item.get('updated_at')
        )

    def _event_to_item(self, event: Event) -> dict:
        """
        Convert Event object to DynamoDB item.

        Args:
            event: Event object

        Returns:
            DynamoDB item dictionary
        """
        item = event.to_dict()

        # Drop unset optional fields
        return {key: value for key, value in item.items() if value is not None}
