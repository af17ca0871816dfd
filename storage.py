# storage.py
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from models import Invoice, Customer, Meta, Settings

logger = logging.getLogger(__name__)

INVOICES_FILE = "invoices.json"
CUSTOMERS_FILE = "customers.json"
META_FILE = "meta.json"


class StorageError(Exception):
    pass


@dataclass
class LoadResult:
    invoices: list[Invoice] = field(default_factory=list)
    customers: list[Customer] = field(default_factory=list)
    meta: Meta = field(default_factory=Meta)


class Storage:
    """
    Flat-file persistence: three JSON documents in one directory.

    Every save rewrites all three files in full. There is no write-to-temp
    and rename, so a crash mid-write can leave a truncated document; the
    next load then logs the decode error and starts that collection empty.
    """

    def __init__(self, data_dir: str = "data"):
        self.data_dir = data_dir or "data"

    def set_data_directory(self, data_dir: str) -> None:
        # Existing files stay where they are.
        if data_dir:
            self.data_dir = data_dir

    def path_for(self, filename: str) -> str:
        return os.path.join(self.data_dir, filename)

    # -----------------------------
    # Load
    # -----------------------------
    def _read_json(self, filename: str):
        path = Path(self.path_for(filename))
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as e:
            logger.error("Error reading %s: %s", path, e)
            return None

    def _load_list(self, filename: str, record_cls) -> list:
        raw = self._read_json(filename)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.error("Error unmarshaling %s: expected a JSON array", filename)
            return []
        try:
            return [record_cls.from_dict(r) for r in raw]
        except ValueError as e:
            logger.error("Error unmarshaling %s: %s", filename, e)
            return []

    def has_data(self) -> bool:
        return Path(self.path_for(META_FILE)).exists()

    def load(self, default_settings: Optional[Settings] = None) -> LoadResult:
        """
        Missing files load as empty collections / default meta.
        Malformed documents are logged and fall back to empty.
        """
        result = LoadResult()
        if default_settings is not None:
            result.meta.settings = default_settings

        result.invoices = self._load_list(INVOICES_FILE, Invoice)
        result.customers = self._load_list(CUSTOMERS_FILE, Customer)

        raw_meta = self._read_json(META_FILE)
        if raw_meta is not None:
            try:
                meta = Meta.from_dict(raw_meta)
            except ValueError as e:
                logger.error("Error unmarshaling %s: %s", META_FILE, e)
            else:
                result.meta.next_id = meta.next_id
                result.meta.next_customer_id = meta.next_customer_id
                if meta.settings.company.name:
                    result.meta.settings = meta.settings

        # Counter floor is 1
        if result.meta.next_id <= 0:
            result.meta.next_id = 1
        if result.meta.next_customer_id <= 0:
            result.meta.next_customer_id = 1

        logger.info(
            "Loaded %d invoices, %d customers, nextID: %d, nextCustomerID: %d",
            len(result.invoices), len(result.customers),
            result.meta.next_id, result.meta.next_customer_id,
        )
        return result

    # -----------------------------
    # Save
    # -----------------------------
    def _write_json(self, filename: str, payload) -> None:
        path = self.path_for(filename)
        try:
            data = json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(data)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving %s: %s", path, e)
            raise StorageError(f"Error saving {filename}: {e}") from e

    def save(self, invoices: list[Invoice], customers: list[Customer], meta: Meta) -> None:
        """
        Writes invoices, customers, then meta. Stops at the first failure
        and raises StorageError; documents already written stay written.
        """
        try:
            Path(self.data_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Error creating data directory %s: %s", self.data_dir, e)
            raise StorageError(f"Error creating data directory: {e}") from e

        self._write_json(INVOICES_FILE, [inv.to_dict() for inv in invoices])
        self._write_json(CUSTOMERS_FILE, [c.to_dict() for c in customers])
        self._write_json(META_FILE, meta.to_dict())
