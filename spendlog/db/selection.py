"""Backend strategy selection.

The host/origin string is probed once at composition time; the resulting
strategy is injected and never re-evaluated.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union
from urllib.parse import urlparse

from spendlog.core.config import Settings

from .backend import LedgerBackend, SubscribableBackend
from .local_store import LocalJsonBackend

logger = logging.getLogger("spendlog.db")


class BackendMode(str, enum.Enum):
    LOCAL_MOCK = "local-mock"
    CLOUD = "cloud"


@dataclass(frozen=True)
class BackendStrategy:
    mode: BackendMode
    backend: Union[LedgerBackend, SubscribableBackend]


def is_development_environment(
    origin: str, hostnames: Iterable[str], patterns: Iterable[str]
) -> bool:
    parsed = urlparse(origin if "//" in origin else f"//{origin}")
    hostname = (parsed.hostname or "").lower()
    if hostname in {h.lower() for h in hostnames}:
        return True
    return any(p and p in origin for p in patterns)


def select_backend_strategy(
    settings: Settings, remote: Optional[SubscribableBackend] = None
) -> BackendStrategy:
    if is_development_environment(
        settings.app_origin, settings.development_hostnames, settings.development_patterns
    ):
        logger.warning("development origin %s: using local mock data (no live updates)", settings.app_origin)
        return BackendStrategy(
            BackendMode.LOCAL_MOCK,
            LocalJsonBackend(settings.data_dir, seed_demo_data=settings.seed_demo_data),
        )
    if remote is None:
        from .firestore_store import FirestoreBackend

        remote = FirestoreBackend(
            collection=settings.firestore_collection,
            project_id=settings.firestore_project_id,
            emulator_host=settings.firestore_emulator_host,
        )
    logger.info("production origin %s: using cloud ledger with live listener", settings.app_origin)
    return BackendStrategy(BackendMode.CLOUD, remote)
