# ruff: noqa: TC003
from __future__ import annotations

import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Request

logger = logging.getLogger(__name__)


class ReceiptStorage:
    """Filesystem store for rendered receipt documents.

    Writes go to a temporary file in the same directory and are moved into
    place with an atomic rename, so readers never see a partial document.
    """

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def path_for(self, expense_id: uuid.UUID) -> Path:
        """Return the canonical location of an expense's receipt."""
        return self.base_dir / f"expense-{expense_id}.pdf"

    def write(self, expense_id: uuid.UUID, data: bytes) -> Path:
        """Store a receipt, replacing any previous one, and return its path."""
        target = self.path_for(expense_id)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(dir=self.base_dir, suffix=".tmp", delete=False) as handle:
            tmp_path = Path(handle.name)
            try:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            except BaseException:
                handle.close()
                tmp_path.unlink(missing_ok=True)
                raise

        try:
            tmp_path.replace(target)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug("Wrote receipt %s (%d bytes)", target, len(data))
        return target

    def exists(self, path: str | Path) -> bool:
        """Return True if a stored receipt is present at path."""
        return Path(path).is_file()


def get_receipt_storage(request: Request) -> ReceiptStorage:
    """FastAPI dependency for the receipt store configured on the app."""
    storage: ReceiptStorage = request.app.state.receipt_storage
    return storage


ReceiptStorageDep = Annotated[ReceiptStorage, Depends(get_receipt_storage)]
