# watchlist/models.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

PLATFORMS = {
    "netflix": "Netflix",
    "hulu": "Hulu",
    "disney": "Disney+",
    "prime": "Prime Video",
    "apple": "Apple TV+",
    "hbo": "HBO Max",
    "paramount": "Paramount+",
    "peacock": "Peacock",
    "other": "Other",
}

STATUSES = ("watching", "planned", "completed")

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None

@dataclass
class User:
    id: Optional[int]
    username: str

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username}

@dataclass
class Show:
    id: Optional[int]
    title: str
    platform: str
    status: str  # "watching", "planned", "completed"
    user_id: int
    image_url: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "platform": self.platform,
            "status": self.status,
            "imageUrl": self.image_url,
            "userId": self.user_id,
            "createdAt": iso(self.created_at),
            "completedAt": iso(self.completed_at),
        }
