"""RSS feed data model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Optional

FeedStatus = Literal["active", "error", "inactive"]


@dataclass
class Feed:
    """A single RSS/Atom feed entry with its last known health."""

    name: str
    url: str
    status: FeedStatus = "active"
    last_fetched: Optional[datetime] = None
    error_message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "status": self.status,
            "last_fetched": self.last_fetched.isoformat() if self.last_fetched else None,
            "error_message": self.error_message,
        }
