"""Shared fakes for the document store and the identity provider."""

from datetime import datetime
from typing import Optional

import pytest

from jobtracker.auth import Identity, Session

APP_ID = "test-app"
USER_ID = "user-1"
COLLECTION = f"artifacts/{APP_ID}/users/{USER_ID}/jobApplications"


class FakeStore:
    """In-memory stand-in for FirestoreStore that records every call."""

    def __init__(self):
        self.calls = []
        self.subscribers = {}
        self.unsubscribed = []
        self.initial_snapshots = {}
        self.fail_with: Optional[Exception] = None
        self._next_id = 0

    def subscribe(self, path, on_snapshot, on_error):
        self.calls.append(("subscribe", path, None))
        self.subscribers[path] = (on_snapshot, on_error)
        if path in self.initial_snapshots:
            on_snapshot(self.initial_snapshots[path])

        def unsubscribe():
            self.unsubscribed.append(path)
            self.subscribers.pop(path, None)

        return unsubscribe

    def emit(self, path, documents):
        on_snapshot, _ = self.subscribers[path]
        on_snapshot(documents)

    def fail(self, path, error):
        _, on_error = self.subscribers[path]
        on_error(error)

    def add(self, path, fields):
        if self.fail_with:
            raise self.fail_with
        self._next_id += 1
        self.calls.append(("add", path, fields))
        return f"doc-{self._next_id}"

    def update(self, path, fields):
        if self.fail_with:
            raise self.fail_with
        self.calls.append(("update", path, fields))

    def delete(self, path):
        if self.fail_with:
            raise self.fail_with
        self.calls.append(("delete", path, None))

    @property
    def writes(self):
        return [call for call in self.calls if call[0] != "subscribe"]


class FakeIdentityProvider:
    """Identity provider whose user is switched by the test."""

    def __init__(self):
        self.current: Optional[Identity] = None
        self._listeners = []

    def on_identity_changed(self, callback):
        self._listeners.append(callback)
        callback(self.current)
        return lambda: self._listeners.remove(callback)

    def set_user(self, user_id):
        self.current = Identity(
            user_id=user_id,
            id_token=f"id-token-{user_id}",
            refresh_token=f"refresh-{user_id}",
            expires_at=datetime(2099, 1, 1),
        )
        for listener in list(self._listeners):
            listener(self.current)

    def sign_out(self):
        self.current = None
        for listener in list(self._listeners):
            listener(None)

    @property
    def listener_count(self):
        return len(self._listeners)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def anonymous_session(store, provider):
    """Session attached to a provider that has not signed anyone in."""
    session = Session(APP_ID, provider, lambda identity: store)
    session.attach()
    return session


@pytest.fixture
def session(anonymous_session, provider):
    """Session with a resolved identity."""
    provider.set_user(USER_ID)
    return anonymous_session
