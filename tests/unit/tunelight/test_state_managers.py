"""Unit tests for state managers."""

import pytest

from tunelight.models import PendingAuthRequest, Token
from tunelight.state_managers import DeviceTargetStore, TokenStore
from tunelight.utils import local_storage as local_storage_module
from tunelight.utils.local_storage import (
    ACCESS_TOKEN_KEY,
    CODE_VERIFIER_KEY,
    TOKEN_EXPIRES_AT_KEY,
    WLED_IP_KEY,
    LocalStorage,
)

# TokenStore Tests


@pytest.mark.asyncio
async def test_token_store_initialize_empty(token_store):
    """No persisted token means not authenticated."""
    await token_store.initialize()

    assert token_store.get() is None
    assert token_store.is_valid() is False


def test_token_validity_boundary(token_store, clock):
    """Valid strictly before expiry, invalid at and after it."""
    token_store.set(Token(value="abc", expires_at_ms=clock() + 1000))

    clock.advance(999)
    assert token_store.is_valid() is True

    clock.advance(1)
    assert token_store.is_valid() is False


def test_empty_token_value_is_invalid(token_store, clock):
    token_store.set(Token(value="", expires_at_ms=clock() + 60_000))

    assert token_store.is_valid() is False


def test_token_set_persists(token_store, storage, clock):
    """The token is mirrored to storage under the documented keys."""
    token_store.set(Token(value="abc", expires_at_ms=clock() + 3_600_000))

    assert storage.get(ACCESS_TOKEN_KEY) == "abc"
    assert storage.get(TOKEN_EXPIRES_AT_KEY) == str(clock() + 3_600_000)


@pytest.mark.asyncio
async def test_token_survives_restart(storage, clock):
    """A new store over the same storage picks the token back up."""
    TokenStore(storage, clock=clock).set(Token(value="abc", expires_at_ms=clock() + 60_000))

    reloaded = TokenStore(LocalStorage(storage.path), clock=clock)
    await reloaded.initialize()

    assert reloaded.get() == Token(value="abc", expires_at_ms=clock() + 60_000)
    assert reloaded.is_valid() is True


def test_token_clear_removes_from_storage(token_store, storage, clock):
    token_store.set(Token(value="abc", expires_at_ms=clock() + 60_000))

    token_store.clear()

    assert token_store.get() is None
    assert storage.get(ACCESS_TOKEN_KEY) is None
    assert storage.get(TOKEN_EXPIRES_AT_KEY) is None


@pytest.mark.asyncio
async def test_unreadable_expiry_is_discarded(storage, clock):
    storage.set_many({ACCESS_TOKEN_KEY: "abc", TOKEN_EXPIRES_AT_KEY: "soon"})

    store = TokenStore(storage, clock=clock)
    await store.initialize()

    assert store.get() is None
    assert storage.get(ACCESS_TOKEN_KEY) is None


def test_failed_persist_keeps_previous_token(token_store, clock, monkeypatch):
    """State and its durable mirror never diverge across a failed write."""
    old = Token(value="old", expires_at_ms=clock() + 60_000)
    token_store.set(old)

    def failing_replace(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr(local_storage_module.os, "replace", failing_replace)

    with pytest.raises(OSError):
        token_store.set(Token(value="new", expires_at_ms=clock() + 120_000))

    assert token_store.get() == old


# PendingAuthStore Tests


def test_pending_store_round_trip(pending_store, storage):
    request = PendingAuthRequest(code_verifier="v" * 128, created_at_ms=42)

    pending_store.set(request)

    assert pending_store.get() == request
    assert storage.get(CODE_VERIFIER_KEY) == "v" * 128


def test_pending_store_clear(pending_store):
    pending_store.set(PendingAuthRequest(code_verifier="v" * 64, created_at_ms=1))

    pending_store.clear()

    assert pending_store.get() is None


# DeviceTargetStore Tests


@pytest.mark.asyncio
async def test_device_store_strips_and_persists(device_store, storage):
    """Only surrounding whitespace is removed."""
    await device_store.initialize()

    target = device_store.set("  192.168.1.50 \n")

    assert target.ip == "192.168.1.50"
    assert storage.get(WLED_IP_KEY) == "192.168.1.50"


@pytest.mark.asyncio
async def test_device_store_loads_saved_ip(storage):
    storage.set(WLED_IP_KEY, "wled.local")

    store = DeviceTargetStore(storage)
    await store.initialize()

    assert store.get().ip == "wled.local"
    assert store.get().state_url == "http://wled.local/json/state"


@pytest.mark.asyncio
async def test_device_store_defaults_to_unset(device_store):
    await device_store.initialize()

    assert device_store.get().is_set is False
