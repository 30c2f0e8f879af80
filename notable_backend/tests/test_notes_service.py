import threading
import time

import pytest

from notable_backend.errors import ConcurrentUpdateError, NoteNotFound, UserNotFound, ValidationError
from notable_backend.notes import mutator as mutator_module
from notable_backend.notes.mutator import NoteLocks, SetFieldMutator, note_locks
from notable_backend.notes.repository import NoteRepository
from notable_database.models import User


@pytest.fixture
def store(file_session_factory):
    session = file_session_factory()
    session.add_all([User(email="a@x.com", username="a"), User(email="b@x.com", username="b")])
    session.commit()
    yield session
    session.close()

@pytest.fixture
def repo(store):
    return NoteRepository(store)

@pytest.fixture
def mutator(store):
    return SetFieldMutator(store)


# -------- REPOSITORY --------
def test_create_note_defaults(repo):
    note = repo.create(1, "T", "C")
    assert note.id is not None
    assert note.tags == []
    assert note.attachments == []
    assert (note.favorite, note.pinned, note.in_trash) == (False, False, False)
    assert note.created_at == note.modified_at

def test_get_missing_note(repo):
    with pytest.raises(NoteNotFound):
        repo.get(999)

def test_delete_is_idempotent(repo):
    note_id = repo.create(1, "T", "C").id
    repo.delete(note_id)
    repo.delete(note_id)
    repo.delete(12345)
    with pytest.raises(NoteNotFound):
        repo.get(note_id)

def test_create_for_missing_user(repo):
    with pytest.raises(UserNotFound):
        repo.create(777, "T", "C")
    assert repo.list_all() == []

def test_filtered_listings(repo):
    tagged = repo.create(1, "tagged", "", tags=["work"])
    plain = repo.create(1, "plain", "", favorite=True)
    trashed = repo.create(1, "trashed", "", in_trash=True)
    repo.create(2, "someone else", "", tags=["x"], favorite=True, in_trash=True)

    ids = lambda notes: [n.id for n in notes]
    assert ids(repo.list_for_user(1)) == [tagged.id, plain.id, trashed.id]
    assert ids(repo.list_filtered(1, has_tags=True)) == [tagged.id]
    assert ids(repo.list_filtered(1, no_tags=True)) == [plain.id, trashed.id]
    assert ids(repo.list_filtered(1, favorite=True)) == [plain.id]
    assert ids(repo.list_filtered(1, in_trash=True)) == [trashed.id]
    assert len(repo.list_all()) == 4

def test_distinct_tags_in_first_seen_order(repo):
    repo.create(1, "a", "", tags=["work", "home"])
    repo.create(1, "b", "", tags=["home", "ideas", "work"])
    repo.create(2, "c", "", tags=["private"])
    assert repo.distinct_tags(1) == ["work", "home", "ideas"]
    assert repo.distinct_tags(3) == []


# -------- COLLECTIONS --------
def test_duplicate_tags_are_kept(repo, mutator):
    note = repo.create(1, "T", "C")
    mutator.add_tag(note.id, "work")
    assert mutator.add_tag(note.id, "work") == ["work", "work"]
    assert repo.get(note.id).tags == ["work", "work"]

def test_remove_drops_every_equal_entry(repo, mutator):
    note = repo.create(1, "T", "C", tags=["a", "b", "a"])
    assert mutator.remove_tag(note.id, "a") == ["b"]
    assert mutator.remove_tag(note.id, "missing") == ["b"]

def test_attachments(repo, mutator):
    note = repo.create(1, "T", "C")
    mutator.add_attachment(note.id, "file.png")
    mutator.add_attachment(note.id, "doc.pdf")
    mutator.remove_attachment(note.id, "file.png")
    assert repo.get(note.id).attachments == ["doc.pdf"]
    assert repo.get(note.id).tags == []

def test_collection_change_on_missing_note(mutator):
    with pytest.raises(NoteNotFound):
        mutator.add_tag(404, "work")
    with pytest.raises(ValidationError):
        mutator.append(1, "title", "x")

def test_every_mutation_refreshes_modified_at(repo, mutator):
    note = repo.create(1, "T", "C")
    stamps = [note.modified_at]
    versions = [note.version]
    for change in (
        lambda: mutator.add_tag(note.id, "a"),
        lambda: mutator.remove_tag(note.id, "a"),
        lambda: mutator.update_note_field(note.id, "pinned", True),
        lambda: mutator.update_content(note.id, "T2", "C2"),
    ):
        time.sleep(0.01)
        change()
        current = repo.get(note.id)
        stamps.append(current.modified_at)
        versions.append(current.version)
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)
    assert versions == [1, 2, 3, 4, 6]


# -------- SCALAR FIELDS --------
def test_status_flags_are_independent(repo, mutator):
    note = repo.create(1, "T", "C", pinned=True)
    mutator.update_status(note.id, favorite=True)
    current = repo.get(note.id)
    assert (current.favorite, current.pinned, current.in_trash) == (True, True, False)

    mutator.update_status(note.id, in_trash=True, pinned=False)
    current = repo.get(note.id)
    assert (current.favorite, current.pinned, current.in_trash) == (True, False, True)

def test_update_content_replaces_both_fields(repo, mutator):
    note = repo.create(1, "T", "C", tags=["keep"])
    mutator.update_content(note.id, "New", "")
    current = repo.get(note.id)
    assert (current.title, current.content, current.tags) == ("New", "", ["keep"])

def test_update_note_field_rejects_unknown_fields(repo, mutator):
    note = repo.create(1, "T", "C")
    with pytest.raises(ValidationError):
        mutator.update_note_field(note.id, "user_id; DROP TABLE notes", 2)
    with pytest.raises(NoteNotFound):
        mutator.update_note_field(999, "favorite", True)


# -------- CONCURRENCY --------
def test_concurrent_tag_adds_all_persist(file_session_factory, repo, store):
    note = repo.create(1, "T", "C")
    tags = [f"tag-{i}" for i in range(8)]
    barrier = threading.Barrier(len(tags))
    errors = []

    def add(tag):
        session = file_session_factory()
        try:
            barrier.wait()
            SetFieldMutator(session).add_tag(note.id, tag)
        except Exception as exc:
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=add, args=(tag,)) for tag in tags]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    store.expire_all()
    assert sorted(repo.get(note.id).tags) == sorted(tags)
    assert len(note_locks) == 0

def test_write_between_read_and_write_is_not_lost(file_session_factory, repo, mutator, monkeypatch):
    note = repo.create(1, "T", "C")
    other_session = file_session_factory()
    # Separate lock table: behaves like a writer in another process.
    other = SetFieldMutator(other_session, locks=NoteLocks())
    real_utcnow = mutator_module.utcnow
    interfered = []

    def utcnow_with_interference():
        if not interfered:
            interfered.append(True)
            other.add_tag(note.id, "theirs")
        return real_utcnow()

    monkeypatch.setattr(mutator_module, "utcnow", utcnow_with_interference)
    try:
        assert mutator.add_tag(note.id, "mine") == ["theirs", "mine"]
    finally:
        other_session.close()
    assert repo.get(note.id).tags == ["theirs", "mine"]

def test_gives_up_after_repeated_conflicts(file_session_factory, repo, mutator, monkeypatch):
    note = repo.create(1, "T", "C")
    other_session = file_session_factory()
    other = SetFieldMutator(other_session, locks=NoteLocks())
    real_utcnow = mutator_module.utcnow
    busy = []

    def always_interfere():
        if not busy:
            busy.append(True)
            try:
                other.add_tag(note.id, "x")
            finally:
                busy.clear()
        return real_utcnow()

    monkeypatch.setattr(mutator_module, "utcnow", always_interfere)
    try:
        with pytest.raises(ConcurrentUpdateError):
            mutator.add_tag(note.id, "mine")
    finally:
        other_session.close()
    monkeypatch.undo()

    tags = repo.get(note.id).tags
    assert "mine" not in tags
    assert tags == ["x"] * mutator_module.MAX_ATTEMPTS
