import pytest
from datetime import datetime, timedelta, timezone
from watchlist.repo import InMemoryRepo
from watchlist.service import WatchlistService, ValidationError, NotFoundError, ConflictError
from watchlist.models import Show
import threading

class FakeResolver:
    def __init__(self, url="https://img.example/poster.jpg"):
        self.url = url
        self.titles = []

    def resolve(self, title):
        self.titles.append(title)
        return self.url

class StepClock:
    """Returns a new time, one minute later, on every call."""
    def __init__(self, start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        self.now = self.now + timedelta(minutes=1)
        return self.now

# ---------- Fixtures ----------
@pytest.fixture
def repo():
    return InMemoryRepo()

@pytest.fixture
def resolver():
    return FakeResolver()

@pytest.fixture
def svc(repo, resolver):
    return WatchlistService(repo, resolver)

@pytest.fixture
def sample_user(svc):
    return svc.create_user("alice")

@pytest.fixture
def other_user(svc):
    return svc.create_user("bob")

# ---------- User tests ----------
def test_create_user_success(svc):
    u = svc.create_user("carol")
    assert u.id is not None and u.username == "carol"

def test_create_user_strips_whitespace(svc):
    assert svc.create_user("  dave ").username == "dave"

@pytest.mark.parametrize("bad_name", ["", "   ", None, 42])
def test_create_user_invalid_name(svc, bad_name):
    with pytest.raises(ValidationError):
        svc.create_user(bad_name)

def test_create_user_twice_conflicts(svc):
    svc.create_user("erin")
    with pytest.raises(ConflictError):
        svc.create_user("erin")

def test_check_user(svc, sample_user):
    assert svc.check_user("alice") == sample_user
    assert svc.check_user("nobody") is None

def test_login_existing_and_missing(svc, sample_user):
    assert svc.login("alice").id == sample_user.id
    with pytest.raises(NotFoundError):
        svc.login("nobody")

def test_get_user_missing(svc):
    with pytest.raises(NotFoundError):
        svc.get_user(999)

# ---------- Show creation ----------
def test_add_show_resolves_image(svc, resolver, sample_user):
    s = svc.add_show(sample_user.id, "Severance", "apple", "watching")
    assert s.id is not None
    assert s.image_url == resolver.url
    assert resolver.titles == ["Severance"]
    assert s.completed_at is None

def test_add_show_keeps_caller_status(svc, sample_user):
    s = svc.add_show(sample_user.id, "Later", "hulu", "planned")
    assert s.status == "planned"

def test_add_show_completed_is_stamped(svc, sample_user):
    s = svc.add_show(sample_user.id, "Done", "hbo", "completed")
    assert s.completed_at == s.created_at

@pytest.mark.parametrize("title, platform, status", [
    ("", "netflix", "watching"),
    ("Ok", "tivo", "watching"),
    ("Ok", "netflix", "dropped"),
    ("Ok", None, "watching"),
    ("Ok", ["netflix"], "watching"),
    ("Ok", {"a": 1}, "watching"),
    ("Ok", "netflix", ["watching"]),
])
def test_add_show_invalid(svc, sample_user, title, platform, status):
    with pytest.raises(ValidationError):
        svc.add_show(sample_user.id, title, platform, status)

def test_add_show_unknown_user(svc):
    with pytest.raises(NotFoundError):
        svc.add_show(999, "Orphan", "netflix", "watching")

# ---------- Status transitions ----------
def test_completed_then_watching_clears(svc, sample_user):
    s = svc.add_show(sample_user.id, "Loop", "netflix", "watching")
    done = svc.update_show_status(s.id, sample_user.id, "completed")
    assert done.completed_at is not None and done.completed_at >= s.created_at
    back = svc.update_show_status(s.id, sample_user.id, "watching")
    assert back.completed_at is None

def test_planned_preserves_completed_at(repo, resolver):
    svc = WatchlistService(repo, resolver, clock=StepClock())
    u = svc.create_user("zed")
    s = svc.add_show(u.id, "Again", "prime", "watching")
    done = svc.update_show_status(s.id, u.id, "completed")
    planned = svc.update_show_status(s.id, u.id, "planned")
    assert planned.completed_at == done.completed_at
    again = svc.update_show_status(s.id, u.id, "completed")
    assert again.completed_at > done.completed_at

def test_update_persists_in_repo(svc, repo, sample_user):
    s = svc.add_show(sample_user.id, "Stored", "peacock", "planned")
    svc.update_show_status(s.id, sample_user.id, "watching")
    assert repo.get_show(s.id).status == "watching"

def test_update_missing_show(svc, sample_user):
    with pytest.raises(NotFoundError):
        svc.update_show_status(999, sample_user.id, "completed")

def test_update_other_users_show(svc, sample_user, other_user):
    s = svc.add_show(sample_user.id, "Mine", "netflix", "watching")
    with pytest.raises(NotFoundError):
        svc.update_show_status(s.id, other_user.id, "completed")
    assert svc.list_shows(sample_user.id)[0].status == "watching"

def test_update_invalid_status(svc, sample_user):
    s = svc.add_show(sample_user.id, "Bad", "netflix", "watching")
    with pytest.raises(ValidationError):
        svc.update_show_status(s.id, sample_user.id, "abandoned")

# ---------- Actions ----------
def test_action_cycle(svc, sample_user):
    s = svc.add_show(sample_user.id, "Cycle", "disney", "planned")
    s = svc.apply_action(s.id, sample_user.id, "start_watching")
    assert s.status == "watching"
    s = svc.apply_action(s.id, sample_user.id, "mark_completed")
    assert s.status == "completed" and s.completed_at is not None
    stamp = s.completed_at
    s = svc.apply_action(s.id, sample_user.id, "rewatch")
    assert s.status == "planned" and s.completed_at == stamp

def test_action_from_wrong_state(svc, sample_user):
    s = svc.add_show(sample_user.id, "Wrong", "disney", "planned")
    with pytest.raises(ValidationError):
        svc.apply_action(s.id, sample_user.id, "mark_completed")

# ---------- Listing, ownership, deletion ----------
def test_list_shows_scoped_to_user(svc, sample_user, other_user):
    svc.add_show(sample_user.id, "A1", "netflix", "watching")
    svc.add_show(other_user.id, "B1", "hulu", "watching")
    svc.add_show(sample_user.id, "A2", "hbo", "planned")
    assert {s.title for s in svc.list_shows(sample_user.id)} == {"A1", "A2"}
    assert all(s.user_id == other_user.id for s in svc.list_shows(other_user.id))

def test_list_shows_status_filter(svc, sample_user):
    svc.add_show(sample_user.id, "W", "netflix", "watching")
    svc.add_show(sample_user.id, "P", "netflix", "planned")
    assert [s.title for s in svc.list_shows(sample_user.id, status="planned")] == ["P"]
    with pytest.raises(ValidationError):
        svc.list_shows(sample_user.id, status="dropped")

def test_list_shows_completed_window(repo, resolver):
    clock = StepClock()
    svc = WatchlistService(repo, resolver, clock=clock)
    u = svc.create_user("win")
    old = svc.add_show(u.id, "Old", "netflix", "completed")
    clock.now = clock.now + timedelta(days=60)
    svc.add_show(u.id, "Recent", "netflix", "completed")
    svc.add_show(u.id, "Current", "netflix", "watching")
    titles = [s.title for s in svc.list_shows(u.id, completed_within="30days")]
    assert titles == ["Recent"]
    assert len(svc.list_shows(u.id, completed_within="3months")) == 2
    assert len(svc.list_shows(u.id, completed_within="all")) == 3
    assert old.completed_at is not None

def test_list_shows_bad_window(svc, sample_user):
    with pytest.raises(ValidationError):
        svc.list_shows(sample_user.id, completed_within="decade")

def test_delete_show(svc, sample_user):
    s = svc.add_show(sample_user.id, "Gone", "netflix", "watching")
    svc.delete_show(s.id, sample_user.id)
    assert svc.list_shows(sample_user.id) == []

def test_delete_by_wrong_user_is_silent_noop(svc, sample_user, other_user):
    s = svc.add_show(sample_user.id, "Kept", "netflix", "watching")
    svc.delete_show(s.id, other_user.id)
    assert [x.id for x in svc.list_shows(sample_user.id)] == [s.id]

def test_delete_missing_show_is_noop(svc, sample_user):
    svc.delete_show(12345, sample_user.id)

# ---------- Repo-level behavior ----------
def test_ids_not_reused_after_delete(svc, sample_user):
    s1 = svc.add_show(sample_user.id, "One", "netflix", "watching")
    svc.delete_show(s1.id, sample_user.id)
    s2 = svc.add_show(sample_user.id, "Two", "netflix", "watching")
    assert s2.id > s1.id

def test_repo_create_user_if_absent(repo):
    u, created = repo.create_user_if_absent("kim")
    again, created_again = repo.create_user_if_absent("kim")
    assert created and not created_again
    assert again.id == u.id

def test_repo_returns_copies(repo, svc, sample_user):
    s = svc.add_show(sample_user.id, "Copy", "netflix", "watching")
    fetched = repo.get_show(s.id)
    fetched.status = "completed"
    assert repo.get_show(s.id).status == "watching"

def test_repo_user_lookup(repo):
    u, _ = repo.create_user_if_absent("lee")
    assert repo.get_user_by_username("lee").id == u.id
    assert repo.get_user_by_username("nobody") is None

# ---------- Concurrency ----------
def test_concurrent_create_user_single_winner(svc, repo):
    n = 8
    barrier = threading.Barrier(n)
    created, conflicts = [], []

    def worker():
        barrier.wait()
        try:
            created.append(svc.create_user("same"))
        except ConflictError:
            conflicts.append(True)

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(created) == 1
    assert len(conflicts) == n - 1
    assert repo.get_user_by_username("same").id == created[0].id
    # the loser ids were never handed out
    assert repo.get_user(created[0].id + 1) is None

def test_list_shows_while_other_user_inserts(repo):
    for i in range(2000):
        repo.create_show(Show(id=None, title=f"S{i}", platform="netflix", status="watching", user_id=1))
    stop = threading.Event()
    errors = []

    def writer():
        i = 0
        while not stop.is_set():
            repo.create_show(Show(id=None, title=f"W{i}", platform="hulu", status="planned", user_id=2))
            i += 1

    t = threading.Thread(target=writer)
    t.start()
    try:
        for _ in range(300):
            try:
                assert len(repo.list_shows_for_user(1)) == 2000
            except RuntimeError as e:
                errors.append(str(e))
    finally:
        stop.set()
        t.join()
    assert errors == []
