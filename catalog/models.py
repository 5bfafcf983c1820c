"""Data models for the event catalog."""
from dataclasses import asdict, dataclass, field
from typing import List, Optional

EVENT_MODES = ('online', 'offline', 'hybrid')

# Fields a caller may set; slug and timestamps are derived on write.
WRITABLE_FIELDS = (
    'title',
    'description',
    'overview',
    'image',
    'venue',
    'location',
    'date',
    'time',
    'mode',
    'audience',
    'agenda',
    'organizer',
    'tags',
)


@dataclass
class Event:
    """Event record as stored in the catalog."""
    event_id: Optional[str] = None
    title: str = ''
    slug: str = ''
    description: str = ''
    overview: str = ''
    image: str = ''
    venue: str = ''
    location: str = ''
    date: str = ''
    time: str = ''
    mode: str = ''
    audience: str = ''
    agenda: List[str] = field(default_factory=list)
    organizer: str = ''
    tags: List[str] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
