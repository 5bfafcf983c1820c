"""Read-only queries over the event catalog."""
import logging
from typing import List, Optional

from botocore.exceptions import ClientError

from catalog.models import Event

logger = logging.getLogger(__name__)


class EventLookup:
    """Lookups by slug and tag-overlap recommendations."""

    def __init__(self, store):
        self.store = store

    def find_by_slug(self, slug: str) -> Optional[Event]:
        """Return the event with this slug, or None if there is none."""
        return self.store.find_by_slug(slug)

    def find_similar(self, slug: str) -> List[Event]:
        """
        Find events sharing at least one tag with the anchor event.

        Args:
            slug: Slug of the anchor event

        Returns:
            Other events with a tag in common, in storage order. Empty when
            the anchor does not exist or the store cannot be read.
        """
        try:
            anchor = self.store.find_by_slug(slug)
            if anchor is None:
                logger.info(f"No anchor event for slug '{slug}'")
                return []

            return self.store.find_by_tags(anchor.tags, exclude_id=anchor.event_id)

        except ClientError as e:
            logger.error(f"Similar events lookup failed for slug '{slug}': {e}")
            return []
