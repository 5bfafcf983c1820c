"""Write path for event records: validation, derivation and commit."""
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from catalog.exceptions import DuplicateKeyError, EventValidationError
from catalog.models import EVENT_MODES, WRITABLE_FIELDS, Event
from catalog.normalizer import generate_slug, normalize_date, normalize_time
from catalog.slug_resolver import SlugResolver

logger = logging.getLogger(__name__)

LIST_FIELDS = ('agenda', 'tags')


class EventLifecycle:
    """Prepares and commits event creates and updates."""

    def __init__(self, store, resolver: Optional[SlugResolver] = None):
        """
        Initialize the lifecycle.

        Args:
            store: Storage handle (DynamoDBManager or compatible)
            resolver: Slug resolver, defaults to one reading from store
        """
        self.store = store
        self.resolver = resolver or SlugResolver(store)

    def prepare_for_write(self, existing: Optional[Event], changes: Dict[str, Any]) -> Event:
        """
        Build the record that will be committed.

        Applies changes on top of existing (or a new record), validates it,
        then derives slug, date and time. Each derived field is recomputed
        only when its source value differs from the committed one. existing
        is never mutated, so any failure leaves the caller's state intact.

        Args:
            existing: Committed record, or None for a create
            changes: Field values supplied by the caller

        Returns:
            New Event ready for persistence

        Raises:
            EventValidationError: If a field is missing or malformed
            InvalidFormatError: If date or time cannot be normalized
        """
        cleaned = self._clean_changes(changes)

        base = existing if existing is not None else Event(event_id=uuid.uuid4().hex)
        record = replace(base, **cleaned)
        self._validate(record)

        if existing is None or record.title != existing.title:
            base_slug = generate_slug(record.title)
            if not base_slug:
                raise EventValidationError(
                    'title', 'Title must contain at least one letter or digit'
                )
            record.slug = self.resolver.resolve_unique_slug(base_slug, record.event_id)

        if existing is None or record.date != existing.date:
            record.date = normalize_date(record.date)

        if existing is None or record.time != existing.time:
            record.time = normalize_time(record.time)

        now = datetime.now(timezone.utc).isoformat()
        record.created_at = existing.created_at if existing is not None else now
        record.updated_at = now

        return record

    def save(self, existing: Optional[Event], changes: Dict[str, Any], retries: int = 0) -> Event:
        """
        Prepare and commit a create or update.

        Args:
            existing: Committed record, or None for a create
            changes: Field values supplied by the caller
            retries: Extra resolution passes after a DuplicateKeyError

        Returns:
            The committed Event

        Raises:
            DuplicateKeyError: If the slug is still claimed after all passes
        """
        attempts = retries + 1

        for attempt in range(attempts):
            record = self.prepare_for_write(existing, changes)
            try:
                self.store.put_event(record, previous=existing)
            except DuplicateKeyError as e:
                if attempt < attempts - 1:
                    logger.warning(
                        f"Slug '{e.slug}' claimed concurrently "
                        f"(attempt {attempt + 1}/{attempts}), resolving again"
                    )
                    continue
                logger.error(f"Giving up on slug '{e.slug}' after {attempts} attempts")
                raise

            action = 'Created' if existing is None else 'Updated'
            logger.info(f"{action} event {record.event_id} with slug '{record.slug}'")
            return record

    def _clean_changes(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Check field names and types, trimming text values."""
        unknown = sorted(set(changes) - set(WRITABLE_FIELDS))
        if unknown:
            raise EventValidationError(unknown[0], f"Unknown field(s): {', '.join(unknown)}")

        cleaned = {}
        for name, value in changes.items():
            if name in LIST_FIELDS:
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise EventValidationError(name, f"{name} must be a list of strings")
                cleaned[name] = [v.strip() for v in value]
            else:
                if not isinstance(value, str):
                    raise EventValidationError(name, f"{name} must be a string")
                cleaned[name] = value.strip()

        return cleaned

    def _validate(self, record: Event) -> None:
        """Validate required fields, mode and list contents."""
        for name in WRITABLE_FIELDS:
            if name in LIST_FIELDS:
                continue
            if not getattr(record, name):
                logger.warning(f"Event '{record.title}' missing required field: {name}")
                raise EventValidationError(name, f"{name.capitalize()} is required")

        if record.mode not in EVENT_MODES:
            raise EventValidationError(
                'mode', f"Mode must be one of {', '.join(EVENT_MODES)}"
            )

        for name in LIST_FIELDS:
            items = getattr(record, name)
            if not items or not all(items):
                raise EventValidationError(
                    name, f"{name.capitalize()} must have at least one item"
                )
