"""Firebase Realtime Database backend (firebase-admin SDK).

The SDK runs each listener on its own thread and delivers incremental
``put``/``patch`` events. This backend folds those events into the full
value at the subscribed path and hands every new value to the asyncio
loop, so consumers only ever see complete snapshots on the loop thread.
"""

import asyncio
import copy
import json
import logging
import os
import threading
from typing import Any

import firebase_admin
from firebase_admin import credentials, db, exceptions

from cancheito.core.config import StoreConfig
from cancheito.store.base import (
    CollectionStore,
    ErrorCallback,
    ValueCallback,
    set_at,
    split_path,
)

logger = logging.getLogger(__name__)

_APP_NAME = "cancheito-admin"


def apply_event(snapshot: Any, event_type: str, path: str, data: Any) -> Any:
    """Fold one listener event into the snapshot, returning the new snapshot."""
    parts = split_path(path)
    if event_type == "put":
        return set_at(snapshot, parts, data)
    if event_type == "patch":
        for key, value in (data or {}).items():
            snapshot = set_at(snapshot, parts + split_path(key), value)
        return snapshot
    logger.debug("Ignoring listener event of type '%s'", event_type)
    return snapshot


class _FirebaseSubscription:
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        path: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._loop = loop
        self._path = path
        self._on_value = on_value
        self._on_error = on_error
        self._lock = threading.Lock()
        self._snapshot: Any = None
        self._active = True
        self.registration: db.ListenerRegistration | None = None

    @property
    def active(self) -> bool:
        return self._active

    def _detach(self) -> db.ListenerRegistration | None:
        if not self._active:
            return None
        self._active = False
        registration, self.registration = self.registration, None
        return registration

    def close(self) -> None:
        registration = self._detach()
        if registration is not None:
            registration.close()

    async def aclose(self) -> None:
        """Stop delivery now; join the SDK listener thread off the loop."""
        registration = self._detach()
        if registration is not None:
            await asyncio.to_thread(registration.close)

    def handle_event(self, event: db.Event) -> None:
        """Listener-thread callback."""
        if not self._active:
            return
        try:
            with self._lock:
                self._snapshot = apply_event(
                    self._snapshot, event.event_type, event.path, event.data,
                )
                snapshot = copy.deepcopy(self._snapshot)
        except Exception as e:  # noqa: BLE001
            self._post(self._fail, e)
            return
        self._post(self._deliver, snapshot)

    def _post(self, callback: Any, arg: Any) -> None:
        try:
            self._loop.call_soon_threadsafe(callback, arg)
        except RuntimeError:
            logger.debug("Event loop closed; dropping update for '%s'", self._path)

    def _deliver(self, snapshot: Any) -> None:
        if self._active:
            self._on_value(snapshot)

    def _fail(self, error: Exception) -> None:
        if self._active:
            self.close()
            self._on_error(error)


class FirebaseStore(CollectionStore):
    """CollectionStore over a firebase-admin app."""

    def __init__(self, app: firebase_admin.App) -> None:
        self._app = app

    @classmethod
    def from_config(cls, config: StoreConfig) -> "FirebaseStore":
        """Initialise (or reuse) the SDK app from config and environment.

        Credentials come from ``credentials_path`` or, failing that, the
        service-account JSON in FIREBASE_ADMIN_SDK_CONFIG. The database URL
        comes from ``database_url`` or FIREBASE_DATABASE_URL.
        """
        try:
            return cls(firebase_admin.get_app(_APP_NAME))
        except ValueError:
            pass

        database_url = config.database_url or os.environ.get("FIREBASE_DATABASE_URL")
        if not database_url:
            msg = "database_url (or FIREBASE_DATABASE_URL) is required"
            raise ValueError(msg)

        if config.credentials_path:
            cred = credentials.Certificate(config.credentials_path)
        else:
            raw = os.environ.get("FIREBASE_ADMIN_SDK_CONFIG")
            if not raw:
                msg = "credentials_path (or FIREBASE_ADMIN_SDK_CONFIG) is required"
                raise ValueError(msg)
            try:
                cred = credentials.Certificate(json.loads(raw))
            except json.JSONDecodeError as e:
                msg = f"FIREBASE_ADMIN_SDK_CONFIG is not valid JSON: {e}"
                raise ValueError(msg) from e

        app = firebase_admin.initialize_app(cred, {"databaseURL": database_url}, name=_APP_NAME)
        logger.info("Connected to %s", database_url)
        return cls(app)

    def subscribe(
        self,
        path: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> _FirebaseSubscription:
        loop = asyncio.get_running_loop()
        sub = _FirebaseSubscription(loop, path, on_value, on_error)
        try:
            # db.reference rejects paths containing . # $ [ ] with ValueError.
            ref = db.reference(path, app=self._app)
            sub.registration = ref.listen(sub.handle_event)
        except (exceptions.FirebaseError, ValueError) as e:
            logger.error("Could not listen on '%s': %s", path, e)
            loop.call_soon(sub._fail, e)
        return sub

    async def get(self, path: str) -> Any:
        ref = db.reference(path, app=self._app)
        return await asyncio.to_thread(ref.get)

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        ref = db.reference(path, app=self._app)
        await asyncio.to_thread(ref.update, dict(fields))
