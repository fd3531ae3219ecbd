"""One-shot local JSON store (Local-Mock mode).

One document per user at ``<data_dir>/mock_data_<user>.json``. There are no
push updates; readers re-fetch explicitly.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from spendlog.core.errors import PersistenceError
from spendlog.models.ledger import Ledger

from .seed import demo_ledger

logger = logging.getLogger("spendlog.db.local")

_SAFE_NAME = re.compile(r"[^A-Za-z0-9_.-]")


class LocalJsonBackend:
    def __init__(self, data_dir: Path, seed_demo_data: bool = True):
        self.data_dir = Path(data_dir)
        self.seed_demo_data = seed_demo_data

    def path_for(self, user_id: str) -> Path:
        return self.data_dir / f"mock_data_{_SAFE_NAME.sub('_', user_id)}.json"

    def _read(self, user_id: str) -> Optional[Ledger]:
        path = self.path_for(user_id)
        if path.exists():
            try:
                return Ledger.from_document(json.loads(path.read_text(encoding="utf-8")))
            except (ValueError, ValidationError, OSError):
                logger.exception("failed to parse local ledger %s; falling back", path)
        return demo_ledger() if self.seed_demo_data else None

    def _write(self, user_id: str, ledger: Ledger) -> None:
        path = self.path_for(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(ledger.to_document(), fh, ensure_ascii=False)
            os.replace(tmp, path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def fetch(self, user_id: str) -> Optional[Ledger]:
        return await asyncio.to_thread(self._read, user_id)

    async def save(self, user_id: str, ledger: Ledger) -> None:
        try:
            await asyncio.to_thread(self._write, user_id, ledger)
        except OSError as e:
            raise PersistenceError(f"failed to save local ledger for {user_id}: {e}") from e
        logger.debug("saved local ledger for %s", user_id)
