"""Product record persistence."""

import logging
import threading
from typing import Any, Dict, List, Optional

from diskcache import Cache

from ..core.config import settings
from ..core.models import ProductRecord, record_key

logger = logging.getLogger(__name__)

_RECORD_PREFIX = "product:"


def _apply_fields(data: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    """Merge updated fields into a stored record dict, serializing model values."""
    update = ProductRecord(asin=data["asin"], country=data.get("country", "us"))
    for name, value in fields.items():
        if not hasattr(update, name):
            raise AttributeError(f"ProductRecord has no field '{name}'")
        setattr(update, name, value)
    serialized = update.to_dict()
    for name in fields:
        data[name] = serialized[name]
    return data


class ProductStore:
    """Contract for storing product records. Last writer wins."""

    def get(self, asin: str, country: str = "us") -> Optional[ProductRecord]:
        raise NotImplementedError

    def save(self, record: ProductRecord) -> None:
        raise NotImplementedError

    def update_fields(self, asin: str, country: str = "us", **fields) -> ProductRecord:
        """Atomically change some fields of an existing (or new) record."""
        raise NotImplementedError

    def list_keys(self) -> List[str]:
        raise NotImplementedError


class InMemoryProductStore(ProductStore):
    """Dict-backed store for tests and single-process use."""

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, asin: str, country: str = "us") -> Optional[ProductRecord]:
        with self._lock:
            data = self._records.get(record_key(asin, country))
        return ProductRecord.from_dict(data) if data else None

    def save(self, record: ProductRecord) -> None:
        with self._lock:
            self._records[record.key] = record.to_dict()

    def update_fields(self, asin: str, country: str = "us", **fields) -> ProductRecord:
        key = record_key(asin, country)
        with self._lock:
            data = self._records.get(key) or ProductRecord(asin=asin, country=country).to_dict()
            self._records[key] = _apply_fields(data, fields)
            return ProductRecord.from_dict(self._records[key])

    def list_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._records)


class DiskProductStore(ProductStore):
    """Durable store on a diskcache directory, shared across processes."""

    def __init__(self, directory: Optional[str] = None, cache: Optional[Cache] = None):
        self.cache = cache if cache is not None else Cache(directory or settings.store_dir)

    def get(self, asin: str, country: str = "us") -> Optional[ProductRecord]:
        data = self.cache.get(_RECORD_PREFIX + record_key(asin, country))
        return ProductRecord.from_dict(data) if data else None

    def save(self, record: ProductRecord) -> None:
        self.cache.set(_RECORD_PREFIX + record.key, record.to_dict())
        logger.debug(f"Saved product record {record.key}")

    def update_fields(self, asin: str, country: str = "us", **fields) -> ProductRecord:
        key = _RECORD_PREFIX + record_key(asin, country)
        with self.cache.transact():
            data = self.cache.get(key) or ProductRecord(asin=asin, country=country).to_dict()
            data = _apply_fields(data, fields)
            self.cache.set(key, data)
        return ProductRecord.from_dict(data)

    def list_keys(self) -> List[str]:
        return sorted(k[len(_RECORD_PREFIX):] for k in self.cache.iterkeys() if str(k).startswith(_RECORD_PREFIX))

    def close(self) -> None:
        self.cache.close()
