from bson import ObjectId
import pytest
from pymongo.errors import PyMongoError

from jobportal.core.errors import Forbidden, InvalidOperation, NotFound
from jobportal.services.notifications import NotificationService
from jobportal.services.posts import PostService
from jobportal.services.relationships import RelationshipGraph


@pytest.fixture
def graph(db):
    return RelationshipGraph(db)


@pytest.fixture
def notifications(db):
    return NotificationService(db)


@pytest.fixture
def posts(db):
    return PostService(db)


@pytest.fixture
def pair(users):
    a = users.create_principal({"username": "ada", "email": "ada@x.com", "password": "secret1", "fullname": "Ada"})
    b = users.create_principal({"username": "bob", "email": "bob@x.com", "password": "secret1", "fullname": "Bob"})
    return a["id"], b["id"]


def edges(users, a, b):
    ua, ub = users.get_by_id(a), users.get_by_id(b)
    return ub["_id"] in ua.get("following", []), ua["_id"] in ub.get("followers", [])


@pytest.mark.parametrize("toggles", [1, 2, 3, 4])
def test_follow_symmetry(graph, users, pair, toggles):
    a, b = pair
    for _ in range(toggles):
        result = graph.toggle_follow(a, b)

    following = toggles % 2 == 1
    assert edges(users, a, b) == (following, following)
    assert result["following"] is following
    assert result["followers_count"] == (1 if following else 0)
    # nothing leaks onto the reverse direction
    assert edges(users, b, a) == (False, False)


def test_self_follow_rejected(graph, users, pair):
    a, _ = pair
    before = users.get_by_id(a)
    with pytest.raises(InvalidOperation):
        graph.toggle_follow(a, a)
    after = users.get_by_id(a)
    assert before["following"] == after["following"] == []
    assert before["followers"] == after["followers"] == []


def test_follow_unknown_user(graph, pair):
    a, _ = pair
    with pytest.raises(NotFound):
        graph.toggle_follow(a, "64b000000000000000000099")


def test_follow_notifies_target_once(graph, notifications, pair):
    a, b = pair
    graph.toggle_follow(a, b)
    graph.toggle_follow(a, b)

    entries = notifications.list_notifications(b)
    assert [n["type"] for n in entries] == ["follow"]
    assert entries[0]["from"] == a
    assert entries[0]["sender"]["username"] == "ada"


def test_like_notifies_author(graph, posts, notifications, pair):
    a, b = pair
    post = posts.create_post(a, "hello")

    liked, total = graph.toggle_like(post["id"], b)
    assert (liked, total) == (True, 1)

    entries = notifications.list_notifications(a)
    assert len(entries) == 1
    assert entries[0]["type"] == "like"
    assert entries[0]["from"] == b
    assert entries[0]["read"] is False
    assert notifications.unread_count(a) == 1

    assert notifications.mark_all_read(a) == 1
    assert all(n["read"] for n in notifications.list_notifications(a))
    assert notifications.mark_all_read(a) == 0
    assert notifications.unread_count(a) == 0


def test_unlike_and_self_like(graph, posts, notifications, pair):
    a, b = pair
    post = posts.create_post(a, "hello")

    assert graph.toggle_like(post["id"], a) == (True, 1)
    assert graph.toggle_like(post["id"], b) == (True, 2)
    assert graph.toggle_like(post["id"], b) == (False, 1)
    # own like is silent, unlike sends nothing
    assert [n["type"] for n in notifications.list_notifications(a)] == ["like"]


def test_like_missing_post(graph, pair):
    with pytest.raises(NotFound):
        graph.toggle_like("64b000000000000000000099", pair[0])


def test_comment_ownership(graph, posts, pair):
    a, b = pair
    post = posts.create_post(b, "hello")
    comment_id = graph.add_comment(post["id"], a, "nice")
    assert [c["id"] for c in posts.get_post(post["id"])["comments"]] == [comment_id]

    with pytest.raises(Forbidden):
        graph.remove_comment(post["id"], comment_id, b)

    graph.remove_comment(post["id"], comment_id, a)
    assert posts.get_raw(post["id"])["comments"] == []
    with pytest.raises(NotFound):
        graph.remove_comment(post["id"], comment_id, a)


def test_comment_notifies_author(graph, posts, notifications, pair):
    a, b = pair
    post = posts.create_post(a, "hello")
    graph.add_comment(post["id"], a, "my own")
    graph.add_comment(post["id"], b, "nice")

    entries = notifications.list_notifications(a)
    assert [n["type"] for n in entries] == ["comment"]
    assert entries[0]["metadata"]["post_id"] == post["id"]


def test_comment_on_missing_post(graph, pair):
    with pytest.raises(NotFound):
        graph.add_comment("64b000000000000000000099", pair[0], "hi")


def test_comment_on_wrong_post_not_found(graph, posts, pair):
    a, _ = pair
    first = posts.create_post(a, "one")
    second = posts.create_post(a, "two")
    comment_id = graph.add_comment(first["id"], a, "hi")
    with pytest.raises(NotFound):
        graph.remove_comment(second["id"], comment_id, a)


def fail_on(collection, monkeypatch, oid):
    """Make update_one raise for writes that target the document `oid`."""
    original = collection.update_one

    def update_one(filter, update, *args, **kwargs):
        if filter.get("_id") == oid:
            raise PyMongoError("write failed")
        return original(filter, update, *args, **kwargs)

    monkeypatch.setattr(collection, "update_one", update_one)


def test_follow_reverted_when_target_write_fails(graph, users, notifications, pair, monkeypatch):
    a, b = pair
    fail_on(graph.users.collection, monkeypatch, ObjectId(b))

    with pytest.raises(PyMongoError):
        graph.toggle_follow(a, b)

    monkeypatch.undo()
    assert edges(users, a, b) == (False, False)
    assert notifications.list_notifications(b) == []


def test_unfollow_reverted_when_target_write_fails(graph, users, pair, monkeypatch):
    a, b = pair
    graph.toggle_follow(a, b)
    fail_on(graph.users.collection, monkeypatch, ObjectId(b))

    with pytest.raises(PyMongoError):
        graph.toggle_follow(a, b)

    monkeypatch.undo()
    assert edges(users, a, b) == (True, True)


def test_comment_removed_when_post_write_fails(graph, posts, pair, monkeypatch):
    a, b = pair
    post = posts.create_post(b, "hello")
    fail_on(graph.posts, monkeypatch, ObjectId(post["id"]))

    with pytest.raises(PyMongoError):
        graph.add_comment(post["id"], a, "nice")

    monkeypatch.undo()
    assert graph.comments.count_documents({}) == 0
    assert posts.get_raw(post["id"])["comments"] == []
