"""Slug uniqueness resolution against the event store."""
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class SlugResolver:
    """Finds a slug not claimed by any other event."""

    def __init__(self, store):
        """
        Initialize the resolver.

        Args:
            store: Storage handle exposing find_slug_owner(slug)
        """
        self.store = store

    def is_taken(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        """Return True if slug belongs to an event other than exclude_id."""
        owner_id = self.store.find_slug_owner(slug)
        return owner_id is not None and owner_id != exclude_id

    def resolve_unique_slug(self, base_slug: str, exclude_id: Optional[str] = None) -> str:
        """
        Resolve a slug that no other event uses.

        The numeric suffix is always appended to base_slug, so collisions
        produce base-1, base-2, ... in turn. Each attempt is a separate
        read against the store; the store's slug constraint remains the
        authority at write time.

        Args:
            base_slug: Slug generated from the title
            exclude_id: ID of the event being written, ignored as an owner

        Returns:
            base_slug, or base_slug with the first free numeric suffix
        """
        slug = base_slug
        counter = 1

        while self.is_taken(slug, exclude_id):
            slug = f"{base_slug}-{counter}"
            counter += 1

        if slug != base_slug:
            logger.info(f"Slug '{base_slug}' in use, resolved to '{slug}'")

        return slug
