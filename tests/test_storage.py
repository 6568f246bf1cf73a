from datetime import timedelta

import pytest

from studytutor.errors import NotFoundError, ValidationError


def test_create_and_lookup_user(storage):
    user = storage.create_user("ada", "secret")

    assert storage.get_user(user.id) == user
    assert storage.get_user_by_username("ada") == user
    assert storage.get_user("missing") is None
    assert storage.get_user_by_username("nobody") is None


def test_duplicate_username_rejected(storage):
    storage.create_user("ada", "secret")

    with pytest.raises(ValidationError):
        storage.create_user("ada", "other")


def test_new_conversation_timestamps_match(storage):
    conversation = storage.create_conversation("u1", "Algebra")

    assert conversation.created_at == conversation.updated_at
    assert conversation.title == "Algebra"
    assert storage.get_conversation(conversation.id) == conversation


def test_conversation_ids_are_unique(storage):
    ids = {storage.create_conversation("u1", f"Topic {i}").id for i in range(50)}
    assert len(ids) == 50


def test_messages_listed_in_submission_order(storage):
    conversation = storage.create_conversation("u1", "Algebra")
    contents = [f"message {i}" for i in range(20)]
    for i, content in enumerate(contents):
        storage.create_message(conversation.id, content, is_user=i % 2 == 0)

    messages = storage.list_messages_by_conversation(conversation.id)

    assert [m.content for m in messages] == contents
    assert all(a.created_at < b.created_at for a, b in zip(messages, messages[1:]))


def test_listing_messages_is_repeatable(storage):
    conversation = storage.create_conversation("u1", "Algebra")
    storage.create_message(conversation.id, "first", True)
    storage.create_message(conversation.id, "second", False)

    assert storage.list_messages_by_conversation(
        conversation.id
    ) == storage.list_messages_by_conversation(conversation.id)


def test_message_bumps_conversation_updated_at(storage):
    conversation = storage.create_conversation("u1", "Algebra")
    message = storage.create_message(conversation.id, "hello", True)

    updated = storage.get_conversation(conversation.id)
    assert updated.updated_at == message.created_at
    assert updated.updated_at > updated.created_at
    assert updated.created_at == conversation.created_at


def test_most_recently_messaged_conversation_listed_first(storage):
    older = storage.create_conversation("u1", "Older")
    newer = storage.create_conversation("u1", "Newer")
    storage.create_conversation("u2", "Someone else")

    assert [c.id for c in storage.list_conversations_by_user("u1")] == [
        newer.id,
        older.id,
    ]

    storage.create_message(older.id, "back to this one", True)

    assert [c.id for c in storage.list_conversations_by_user("u1")] == [
        older.id,
        newer.id,
    ]


def test_listings_empty_when_nothing_matches(storage):
    assert storage.list_conversations_by_user("nobody") == []
    assert storage.list_messages_by_conversation("missing") == []


def test_message_for_missing_conversation_rejected(storage):
    with pytest.raises(NotFoundError):
        storage.create_message("missing", "hello", True)

    assert storage.list_messages_by_conversation("missing") == []


def test_image_url_is_optional(storage):
    conversation = storage.create_conversation("u1", "Geometry")
    with_image = storage.create_message(
        conversation.id, "", True, image_url="/api/uploads/1-abc.png"
    )
    without_image = storage.create_message(conversation.id, "Angle?", True)

    assert with_image.image_url == "/api/uploads/1-abc.png"
    assert without_image.image_url is None


def test_file_database_keeps_records(tmp_path):
    from studytutor.database.db import SQLStorage

    url = f"sqlite:///{tmp_path / 'tutor.db'}"
    conversation = SQLStorage(url).create_conversation("u1", "Physics")

    assert SQLStorage(url).get_conversation(conversation.id) == conversation


def test_concurrent_writes_are_serialized(storage):
    from concurrent.futures import ThreadPoolExecutor

    conversations = [
        storage.create_conversation("u1", "Algebra"),
        storage.create_conversation("u1", "Geometry"),
    ]

    def send(i):
        conversation = conversations[i % 2]
        return storage.create_message(conversation.id, f"message {i}", i % 3 == 0)

    with ThreadPoolExecutor(max_workers=8) as pool:
        created = list(pool.map(send, range(200)))

    stamps = sorted(m.created_at for m in created)
    assert len(set(stamps)) == len(created)

    for conversation in conversations:
        messages = storage.list_messages_by_conversation(conversation.id)
        expected = {m.id for m in created if m.conversation_id == conversation.id}

        assert {m.id for m in messages} == expected
        assert len(messages) == 100
        assert all(a.created_at < b.created_at for a, b in zip(messages, messages[1:]))
        assert storage.get_conversation(conversation.id).updated_at == (
            messages[-1].created_at
        )


def test_timestamps_are_utc(storage):
    conversation = storage.create_conversation("u1", "Algebra")
    storage.create_message(conversation.id, "hello", True)

    stored = storage.get_conversation(conversation.id)
    message = storage.list_messages_by_conversation(conversation.id)[0]

    assert conversation.created_at.utcoffset() == timedelta(0)
    assert stored.updated_at.utcoffset() == timedelta(0)
    assert message.created_at.utcoffset() == timedelta(0)
