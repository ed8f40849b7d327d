# watchlist/service.py
from typing import List, Optional
from watchlist.models import User, Show, PLATFORMS, STATUSES, utcnow
from watchlist import lifecycle
import logging

logger = logging.getLogger(__name__)

# Exceptions
class ValidationError(Exception):
    """Raised when input or business validation fails."""
    pass

class NotFoundError(Exception):
    """Raised when an entity is not found."""
    pass

class ConflictError(Exception):
    """Raised when a unique value is already taken."""
    pass

def _clean(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} required")
    return value.strip()

class WatchlistService:
    """
    Business logic service for the watchlist tracker.
    The repository (InMemoryRepo from watchlist.repo) and the image resolver
    (watchlist.images.ImageResolver) are injected.
    Show operations take the current user's id; the caller is responsible for
    establishing who that is.
    """

    def __init__(self, repo, resolver, clock=utcnow):
        """
        Initialize service with a repository and an image resolver.
        clock returns the current UTC datetime and is swappable in tests.
        """
        self.repo = repo
        self.resolver = resolver
        self.clock = clock
        logger.debug("WatchlistService initialized with repo %s", type(repo).__name__)

    # ---- Users ----
    def check_user(self, username: str) -> Optional[User]:
        """Return the user with this username, or None."""
        return self.repo.get_user_by_username(_clean(username, "username"))

    def create_user(self, username: str) -> User:
        """Register a new username. Raises ConflictError if it is taken."""
        try:
            name = _clean(username, "username")
        except ValidationError:
            logger.warning("create_user: invalid username provided")
            raise
        user, created = self.repo.create_user_if_absent(name)
        if not created:
            logger.info("create_user: username %s already exists", name)
            raise ConflictError("User already exists")
        logger.info("Created user id=%s username=%s", user.id, user.username)
        return user

    def login(self, username: str) -> User:
        u = self.check_user(username)
        if not u:
            logger.debug("login: username %s not found", username)
            raise NotFoundError("User not found")
        logger.info("User id=%s logged in", u.id)
        return u

    def get_user(self, user_id: int) -> User:
        """Get a user by id or raise NotFoundError."""
        u = self.repo.get_user(user_id)
        if not u:
            logger.debug("get_user: user %s not found", user_id)
            raise NotFoundError("User not found")
        return u

    # ---- Shows ----
    def list_shows(self, user_id: int, status: Optional[str] = None,
                   completed_within: Optional[str] = None) -> List[Show]:
        """List a user's shows, optionally by status and by how recently they were completed."""
        if status is not None and status not in STATUSES:
            raise ValidationError(f"invalid status '{status}'")
        shows = self.repo.list_shows_for_user(user_id)
        if status:
            shows = [s for s in shows if s.status == status]
        if completed_within:
            try:
                shows = lifecycle.completed_within(shows, completed_within, now=self.clock())
            except lifecycle.TransitionError as e:
                raise ValidationError(str(e))
        return shows

    def add_show(self, user_id: int, title: str, platform: str, status: str) -> Show:
        """
        Create a show for the user. Status comes from the caller; a show
        created as completed is stamped with completed_at = created_at.
        The poster is resolved before the show is stored.
        """
        title = _clean(title, "title")
        if not isinstance(platform, str) or platform not in PLATFORMS:
            logger.warning("add_show: invalid platform %r", platform)
            raise ValidationError(f"invalid platform '{platform}'")
        if not isinstance(status, str) or status not in STATUSES:
            logger.warning("add_show: invalid status %r", status)
            raise ValidationError(f"invalid status '{status}'")
        self.get_user(user_id)
        now = self.clock()
        image_url = self.resolver.resolve(title)
        s = Show(id=None, title=title, platform=platform, status=status, user_id=user_id,
                 image_url=image_url, created_at=now,
                 completed_at=now if status == "completed" else None)
        created = self.repo.create_show(s)
        logger.info("Created show id=%s user=%s title=%s", created.id, user_id, created.title)
        return created

    def _owned_show(self, show_id: int, user_id: int) -> Show:
        s = self.repo.get_show(show_id)
        if not s or s.user_id != user_id:
            logger.debug("show %s not found for user %s", show_id, user_id)
            raise NotFoundError("Show not found")
        return s

    def update_show_status(self, show_id: int, user_id: int, status: str) -> Show:
        """Change status (the only mutable field) and derive completed_at."""
        s = self._owned_show(show_id, user_id)
        try:
            lifecycle.apply_status(s, status, self.clock)
        except lifecycle.TransitionError as e:
            logger.warning("update_show_status: %s", e)
            raise ValidationError(str(e))
        self.repo.update_show(s)
        logger.info("Updated show id=%s status=%s", s.id, s.status)
        return s

    def apply_action(self, show_id: int, user_id: int, action: str) -> Show:
        """Run a named transition (mark_completed, start_watching, rewatch)."""
        s = self._owned_show(show_id, user_id)
        try:
            lifecycle.apply_action(s, action, self.clock)
        except lifecycle.TransitionError as e:
            logger.warning("apply_action: %s", e)
            raise ValidationError(str(e))
        self.repo.update_show(s)
        logger.info("Applied %s to show id=%s -> %s", action, s.id, s.status)
        return s

    def delete_show(self, show_id: int, user_id: int) -> None:
        """Delete a show. Missing or foreign shows are ignored."""
        self.repo.delete_show(show_id, user_id)
        logger.info("Delete show id=%s requested by user=%s", show_id, user_id)
