from __future__ import annotations

import pytest

from docchat.client.store import ChatStore, chat_store_scope, current_chat_store


def test_outside_scope_raises() -> None:
    with pytest.raises(RuntimeError):
        current_chat_store()


def test_scope_provides_store() -> None:
    with chat_store_scope() as store:
        assert current_chat_store() is store
        message = current_chat_store().add_message("Hello", "user")

    assert store.messages == (message,)
    assert message.role == "user"
    assert message.id


def test_scope_is_torn_down_on_exit() -> None:
    with chat_store_scope():
        pass

    with pytest.raises(RuntimeError):
        current_chat_store()


def test_nested_scopes_restore_outer_store() -> None:
    outer = ChatStore()
    with chat_store_scope(outer):
        with chat_store_scope() as inner:
            assert current_chat_store() is inner
        assert current_chat_store() is outer


def test_clear_messages() -> None:
    store = ChatStore()
    store.add_message("Hi", "user")
    store.add_message("Hello!", "assistant")
    assert [m.role for m in store.messages] == ["user", "assistant"]

    store.clear_messages()
    assert store.messages == ()


def test_loading_flag() -> None:
    store = ChatStore()
    assert store.is_loading is False
    store.set_loading(True)
    assert store.is_loading is True
