"""Firebase Authentication client and session bootstrap.

Signs the user in through the Firebase Auth REST API (custom token when one is
configured, otherwise anonymously), keeps the refresh token on disk so an
anonymous user keeps the same uid across restarts, and exposes the resolved
identity through an explicit ``Session`` object.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import requests
from filelock import FileLock
from google.oauth2.credentials import Credentials

from .config import Config
from .errors import AuthenticationError
from .store import FirestoreStore, collection_path, document_path

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

# Refresh a little before the provider's expiry
EXPIRY_SKEW = timedelta(seconds=60)


@dataclass(frozen=True)
class Identity:
    """A signed-in Firebase user."""

    user_id: str
    id_token: str
    refresh_token: str
    expires_at: datetime  # naive UTC, as google-auth expects


IdentityListener = Callable[[Optional[Identity]], None]


def _expiry(expires_in: Any) -> datetime:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    try:
        seconds = int(expires_in or 3600)
    except (TypeError, ValueError):
        seconds = 3600
    return now + timedelta(seconds=seconds) - EXPIRY_SKEW


def _required(data: dict, *keys: str) -> list:
    """Pull required fields out of an auth response."""
    missing = [key for key in keys if not data.get(key)]
    if missing:
        raise AuthenticationError(f"Auth response is missing {', '.join(missing)}")
    return [str(data[key]) for key in keys]


class IdentityProvider:
    """Firebase Auth REST client with identity-change notifications."""

    def __init__(self, api_key: str, session_path: Path, timeout: float = 10):
        self._api_key = api_key
        self._session_path = Path(session_path)
        self._timeout = timeout
        self._listeners: list[IdentityListener] = []
        self.current: Optional[Identity] = None

    def _post(self, url: str, **kwargs) -> dict:
        try:
            response = requests.post(
                url, params={"key": self._api_key}, timeout=self._timeout, **kwargs
            )
        except requests.RequestException as e:
            raise AuthenticationError(f"Auth request failed: {e}", original_error=e) from e

        if not response.ok:
            try:
                detail = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                detail = response.text
            raise AuthenticationError(f"Auth request rejected ({response.status_code}): {detail}")

        try:
            data = response.json()
        except ValueError as e:
            raise AuthenticationError(f"Auth response is not JSON: {e}", original_error=e) from e
        if not isinstance(data, dict):
            raise AuthenticationError(f"Unexpected auth response: {data!r}")
        return data

    def sign_in_anonymously(self) -> Identity:
        """Create a new anonymous user."""
        data = self._post(
            f"{IDENTITY_TOOLKIT_URL}/accounts:signUp", json={"returnSecureToken": True}
        )
        user_id, id_token, refresh_token = _required(data, "localId", "idToken", "refreshToken")
        identity = Identity(
            user_id=user_id,
            id_token=id_token,
            refresh_token=refresh_token,
            expires_at=_expiry(data.get("expiresIn")),
        )
        logger.info(f"Signed in anonymously as {identity.user_id}")
        self._set_identity(identity)
        return identity

    def sign_in_with_custom_token(self, token: str) -> Identity:
        """Sign in with a custom token minted by a trusted backend."""
        data = self._post(
            f"{IDENTITY_TOOLKIT_URL}/accounts:signInWithCustomToken",
            json={"token": token, "returnSecureToken": True},
        )
        id_token, refresh_token = _required(data, "idToken", "refreshToken")
        # The custom token response carries no uid; look it up from the ID token
        lookup = self._post(f"{IDENTITY_TOOLKIT_URL}/accounts:lookup", json={"idToken": id_token})
        users = lookup.get("users") or []
        if not users or not isinstance(users[0], dict):
            raise AuthenticationError("Custom token sign-in returned no user")
        (user_id,) = _required(users[0], "localId")

        identity = Identity(
            user_id=user_id,
            id_token=id_token,
            refresh_token=refresh_token,
            expires_at=_expiry(data.get("expiresIn")),
        )
        logger.info(f"Signed in with custom token as {identity.user_id}")
        self._set_identity(identity)
        return identity

    def refresh(self, refresh_token: str) -> Identity:
        """Exchange a refresh token for a fresh ID token."""
        data = self._post(
            SECURE_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        user_id, id_token, new_refresh_token = _required(data, "user_id", "id_token", "refresh_token")
        identity = Identity(
            user_id=user_id,
            id_token=id_token,
            refresh_token=new_refresh_token,
            expires_at=_expiry(data.get("expires_in")),
        )
        logger.debug(f"Refreshed ID token for {identity.user_id}")
        self._set_identity(identity)
        return identity

    def restore(self) -> Optional[Identity]:
        """Resume the session saved by a previous run, if any."""
        saved = self._load_session()
        if not saved.get("refresh_token"):
            return None
        logger.info(f"Restoring saved session for {saved.get('user_id')}")
        return self.refresh(saved["refresh_token"])

    def sign_out(self) -> None:
        """Forget the current user and the saved session."""
        with FileLock(f"{self._session_path}.lock"):
            self._session_path.unlink(missing_ok=True)
        logger.info("Signed out")
        self._set_identity(None)

    def on_identity_changed(self, callback: IdentityListener) -> Callable[[], None]:
        """Register a listener; it is called now with the current identity, then on every change."""
        self._listeners.append(callback)
        callback(self.current)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def credentials_for(self, identity: Identity) -> Credentials:
        """google-auth credentials that present the user's ID token and refresh it on expiry."""

        def refresh_handler(request, scopes):
            refreshed = self.refresh(self.current.refresh_token if self.current else identity.refresh_token)
            return refreshed.id_token, refreshed.expires_at

        return Credentials(
            token=identity.id_token,
            expiry=identity.expires_at,
            refresh_handler=refresh_handler,
        )

    def _set_identity(self, identity: Optional[Identity]) -> None:
        previous = self.current
        self.current = identity

        if identity is not None:
            try:
                self._save_session(identity)
            except OSError as e:
                logger.warning(f"Could not save session to {self._session_path}: {e}")

        # Token refreshes for the same user are not identity changes
        previous_uid = previous.user_id if previous else None
        new_uid = identity.user_id if identity else None
        if previous_uid == new_uid:
            return

        for listener in list(self._listeners):
            listener(identity)

    def _load_session(self) -> dict:
        if not self._session_path.exists():
            return {}
        with FileLock(f"{self._session_path}.lock"):
            try:
                with open(self._session_path) as f:
                    return json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Ignoring unreadable session file {self._session_path}: {e}")
                return {}

    def _save_session(self, identity: Identity) -> None:
        self._session_path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(f"{self._session_path}.lock"):
            with open(self._session_path, "w") as f:
                json.dump({"user_id": identity.user_id, "refresh_token": identity.refresh_token}, f)


StoreFactory = Callable[[Identity], Any]
SessionListener = Callable[["Session"], None]


class Session:
    """Current identity and store handle, passed explicitly to the mirror and commands."""

    def __init__(self, app_id: str, provider: IdentityProvider, store_factory: StoreFactory):
        self.app_id = app_id
        self.provider = provider
        self._store_factory = store_factory
        self._listeners: list[SessionListener] = []
        self._unsubscribe_identity: Optional[Callable[[], None]] = None
        self.user_id: Optional[str] = None
        self.store = None
        self.last_error: Optional[Exception] = None

    @property
    def ready(self) -> bool:
        return self.user_id is not None and self.store is not None

    def attach(self) -> None:
        """Start following identity changes."""
        if self._unsubscribe_identity is None:
            self._unsubscribe_identity = self.provider.on_identity_changed(self._on_identity_changed)

    def close(self) -> None:
        if self._unsubscribe_identity is not None:
            self._unsubscribe_identity()
            self._unsubscribe_identity = None

    def add_listener(self, callback: SessionListener) -> Callable[[], None]:
        """Register a listener; it is called now and after every identity change."""
        self._listeners.append(callback)
        callback(self)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def collection_path(self) -> str:
        return collection_path(self.app_id, self.user_id)

    def document_path(self, job_id: str) -> str:
        return document_path(self.app_id, self.user_id, job_id)

    def _on_identity_changed(self, identity: Optional[Identity]) -> None:
        if identity is None:
            self.user_id = None
            self.store = None
        else:
            try:
                self.store = self._store_factory(identity)
                self.user_id = identity.user_id
            except Exception as e:
                logger.error(f"Failed to open document store for {identity.user_id}: {e}")
                self.last_error = e
                self.user_id = None
                self.store = None

        for listener in list(self._listeners):
            listener(self)


def sign_in(provider: IdentityProvider, auth_token: Optional[str] = None) -> Optional[Identity]:
    """Sign in with the configured token, a saved session, or anonymously."""
    if auth_token:
        return provider.sign_in_with_custom_token(auth_token)

    try:
        identity = provider.restore()
    except AuthenticationError as e:
        logger.warning(f"Saved session could not be restored, signing in anonymously: {e}")
        identity = None

    return identity or provider.sign_in_anonymously()


def bootstrap(
    config: Config,
    store_factory: Optional[StoreFactory] = None,
    provider: Optional[IdentityProvider] = None,
) -> Session:
    """Establish the session used by every data operation.

    Raises ConfigurationError before any network call when Firebase is not
    configured. A failed sign-in is logged and leaves the session without an
    identity, so the mirror and commands stay idle.
    """
    firebase = config.require_firebase()

    if provider is None:
        provider = IdentityProvider(firebase.api_key, config.session_path)

    if store_factory is None:
        def store_factory(identity: Identity) -> FirestoreStore:
            return FirestoreStore.connect(firebase.project_id, provider.credentials_for(identity))

    session = Session(config.app_id, provider, store_factory)
    session.attach()

    try:
        sign_in(provider, config.auth_token)
    except AuthenticationError as e:
        logger.error(f"Firebase Auth failed: {e}")
        session.last_error = e

    return session
