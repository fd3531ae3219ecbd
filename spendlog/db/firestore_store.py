"""Subscription-capable remote store backed by Cloud Firestore.

Documents live at ``<collection>/<user_id>``. The Admin SDK is initialized
once with Application Default Credentials; local runs refuse to touch a real
project unless an emulator host is configured.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError

from spendlog.core.errors import PersistenceError, SubscriptionError
from spendlog.models.ledger import Ledger

from .backend import ErrorCallback, SnapshotCallback, Unsubscribe

logger = logging.getLogger("spendlog.db.firestore")

_init_lock = threading.Lock()


def init_firebase_admin(*, project_id: Optional[str] = None, emulator_host: Optional[str] = None) -> None:
    """Initialize Firebase Admin SDK exactly once."""
    if emulator_host:
        os.environ.setdefault("FIRESTORE_EMULATOR_HOST", emulator_host)

    if firebase_admin._apps:
        return

    with _init_lock:
        if firebase_admin._apps:
            return
        options = {"projectId": project_id} if project_id else None
        try:
            cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, options)
        except Exception as e:
            raise PersistenceError(
                "Failed to initialize Firebase Admin SDK with Application Default Credentials. "
                "Locally: run `gcloud auth application-default login` or set FIRESTORE_EMULATOR_HOST."
            ) from e


def get_firestore_client(*, project_id: Optional[str] = None, emulator_host: Optional[str] = None):
    init_firebase_admin(project_id=project_id, emulator_host=emulator_host)
    return firestore.client()


class FirestoreBackend:
    def __init__(
        self,
        client: Any = None,
        *,
        collection: str = "users",
        project_id: Optional[str] = None,
        emulator_host: Optional[str] = None,
    ):
        self._client = client
        self._collection = collection
        self._project_id = project_id
        self._emulator_host = emulator_host

    def _doc(self, user_id: str):
        if self._client is None:
            self._client = get_firestore_client(
                project_id=self._project_id, emulator_host=self._emulator_host
            )
        return self._client.collection(self._collection).document(user_id)

    def _get(self, user_id: str) -> Optional[Ledger]:
        snap = self._doc(user_id).get()
        if not snap.exists:
            return None
        return Ledger.from_document(snap.to_dict() or {})

    async def fetch(self, user_id: str) -> Optional[Ledger]:
        try:
            return await asyncio.to_thread(self._get, user_id)
        except (google_exceptions.GoogleAPIError, ValidationError) as e:
            raise PersistenceError(f"failed to fetch ledger for {user_id}: {e}") from e

    async def save(self, user_id: str, ledger: Ledger) -> None:
        document = ledger.to_document()
        try:
            await asyncio.to_thread(lambda: self._doc(user_id).set(document))
        except google_exceptions.GoogleAPIError as e:
            raise PersistenceError(f"failed to save ledger for {user_id}: {e}") from e

    def subscribe(
        self, user_id: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback
    ) -> Unsubscribe:
        # Runs on the SDK's watch thread
        def _callback(docs, changes, read_time):  # noqa: ARG001
            try:
                snap = docs[0] if docs else None
                if snap is None or not snap.exists:
                    on_snapshot(None)
                else:
                    on_snapshot(Ledger.from_document(snap.to_dict() or {}))
            except ValidationError as e:
                on_error(SubscriptionError(f"malformed ledger document for {user_id}: {e}"))

        try:
            watch = self._doc(user_id).on_snapshot(_callback)
        except (google_exceptions.GoogleAPIError, PersistenceError) as e:
            on_error(SubscriptionError(f"failed to subscribe to {user_id}: {e}"))
            return lambda: None
        logger.info("firestore listener attached for %s", user_id)
        return watch.unsubscribe
