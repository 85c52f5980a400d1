"""Append-only sales log and receipt export."""

import logging
import os
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .errors import CorruptPersistedState
from .models import Receipt
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

SALES_KEY = "pf_sales"

_receipts_adapter = TypeAdapter(list[Receipt])


class SalesLog:
    """Persisted, append-only history of receipts."""

    def __init__(self, storage: KeyValueStore, key: str = SALES_KEY) -> None:
        self.storage = storage
        self.key = key

    def _read(self) -> list[dict]:
        try:
            data = self.storage.load_json(self.key)
        except CorruptPersistedState as e:
            logger.warning(f"Discarding corrupt sales log: {e}")
            return []
        if not isinstance(data, list):
            if data is not None:
                logger.warning(f"Discarding sales log with unexpected layout under {self.key!r}")
            return []
        return data

    def appended(self, receipt: Receipt) -> list[dict]:
        """Return the persisted collection with receipt added, without storing it."""
        return self._read() + [receipt.model_dump(mode="json", by_alias=True)]

    def append(self, receipt: Receipt) -> None:
        """Append a receipt and rewrite the whole collection."""
        records = self.appended(receipt)
        self.storage.save_json(self.key, records)
        logger.info(f"Recorded sale {receipt.transaction_id} ({len(records)} total)")

    def all(self) -> list[Receipt]:
        """Return every recorded receipt in append order."""
        try:
            return _receipts_adapter.validate_python(self._read())
        except ValidationError as e:
            logger.warning(f"Sales log contains unreadable receipts: {e}")
            return []

    def __len__(self) -> int:
        return len(self._read())


def export_receipt(receipt: Receipt, directory: str) -> Path:
    """
    Write a receipt as an indented JSON file.

    Args:
        receipt: Receipt to export
        directory: Target directory, created if missing

    Returns:
        Path of the written file, named after the transaction ID
    """
    os.makedirs(directory, exist_ok=True)
    path = Path(directory) / f"receipt_{receipt.transaction_id}.json"
    path.write_text(receipt.to_json(), encoding="utf-8")
    logger.info(f"Exported receipt to {path}")
    return path
