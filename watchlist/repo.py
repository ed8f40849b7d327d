# watchlist/repo.py
import threading
from dataclasses import replace
from typing import Dict, List, Optional, Tuple
from watchlist.models import User, Show

# --- In-memory repo ---
class InMemoryRepo:
    """
    Keyed maps for users and shows plus a unique username index.
    Nothing is persisted; a restart loses all data.
    Returned objects are copies, so callers must go through update_show to write.
    """

    def __init__(self):
        self._users: Dict[int, User] = {}
        self._usernames: Dict[str, int] = {}
        self._shows: Dict[int, Show] = {}
        self._next = {"user": 1, "show": 1}
        self._lock = threading.Lock()

    # helper to assign id (caller holds the lock)
    def _assign(self, kind: str) -> int:
        nid = self._next[kind]
        self._next[kind] += 1
        return nid

    # Users
    def create_user_if_absent(self, username: str) -> Tuple[User, bool]:
        """Atomically insert a user unless the username is taken. Returns (user, created)."""
        with self._lock:
            uid = self._usernames.get(username)
            if uid is not None:
                return replace(self._users[uid]), False
            u = User(id=self._assign("user"), username=username)
            self._users[u.id] = u
            self._usernames[username] = u.id
            return replace(u), True

    def get_user(self, uid: int) -> Optional[User]:
        with self._lock:
            u = self._users.get(uid)
            return replace(u) if u else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            uid = self._usernames.get(username)
            return replace(self._users[uid]) if uid is not None else None

    # Shows
    def create_show(self, s: Show) -> Show:
        with self._lock:
            s.id = self._assign("show")
            self._shows[s.id] = replace(s)
            return s

    def get_show(self, sid: int) -> Optional[Show]:
        with self._lock:
            s = self._shows.get(sid)
            return replace(s) if s else None

    def list_shows_for_user(self, user_id: int) -> List[Show]:
        with self._lock:
            return [replace(s) for s in self._shows.values() if s.user_id == user_id]

    def update_show(self, s: Show) -> None:
        with self._lock:
            if s.id in self._shows:
                self._shows[s.id] = replace(s)

    def delete_show(self, sid: int, user_id: int) -> None:
        with self._lock:
            s = self._shows.get(sid)
            if s and s.user_id == user_id:
                self._shows.pop(sid, None)
