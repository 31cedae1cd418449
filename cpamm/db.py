"""
Key/value storage for pool and account state.

DB wraps LevelDB through plyvel, MemoryDB offers the same surface over a
dict for tests, and StateView stages writes so a whole operation commits in
one batch or not at all.
"""
import logging
from contextlib import contextmanager
from typing import Optional

import plyvel

logger = logging.getLogger(__name__)

# Marker for keys deleted inside a StateView
_DELETED = object()


class DB:
    def __init__(self, db_path: str, create_if_missing: bool = True,
                 write_buffer_size: int = 64 * 1024 * 1024,  # 64MB
                 max_open_files: int = 1000):
        """
        Open a LevelDB database.

        Args:
            db_path: Path to database directory
            create_if_missing: Create database if it doesn't exist
            write_buffer_size: Size of write buffer
            max_open_files: Maximum number of open files
        """
        try:
            self._db = plyvel.DB(
                db_path,
                create_if_missing=create_if_missing,
                write_buffer_size=write_buffer_size,
                max_open_files=max_open_files,
            )
            self._closed = False
            logger.info(f"Database opened at {db_path}")
        except Exception as e:
            logger.error(f"Failed to open database at {db_path}: {e}")
            raise

    def _require_open(self):
        if self._closed:
            raise RuntimeError("Database is closed")

    def get(self, key: bytes) -> Optional[bytes]:
        """
        Get value by key.

        Returns None if key doesn't exist.
        """
        self._require_open()
        try:
            return self._db.get(key)
        except Exception as e:
            logger.error(f"Error getting key {key.hex()[:16]}: {e}")
            raise

    def put(self, key: bytes, value: bytes):
        """Put a key-value pair."""
        self._require_open()
        try:
            self._db.put(key, value)
        except Exception as e:
            logger.error(f"Error putting key {key.hex()[:16]}: {e}")
            raise

    def delete(self, key: bytes):
        """Delete a key."""
        self._require_open()
        try:
            self._db.delete(key)
        except Exception as e:
            logger.error(f"Error deleting key {key.hex()[:16]}: {e}")
            raise

    def exists(self, key: bytes) -> bool:
        return self.get(key) is not None

    @contextmanager
    def write_batch(self):
        """
        Context manager for atomic batch writes.

        Example:
            with db.write_batch() as batch:
                batch.put(b'key1', b'value1')
                batch.delete(b'key2')
        """
        self._require_open()
        with self._db.write_batch(transaction=True) as batch:
            yield batch

    def get_prefix(self, prefix: bytes) -> list[tuple[bytes, bytes]]:
        """
        Get all key-value pairs with a given prefix, in key order.
        """
        self._require_open()
        try:
            return list(self._db.iterator(prefix=prefix))
        except Exception as e:
            logger.error(f"Error getting prefix {prefix.hex()}: {e}")
            raise

    def close(self):
        """Close the database."""
        if not self._closed:
            self._db.close()
            self._closed = True
            logger.info("Database closed")

    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class _MemoryBatch:
    def __init__(self):
        self.ops = []

    def put(self, key: bytes, value: bytes):
        self.ops.append((key, value))

    def delete(self, key: bytes):
        self.ops.append((key, None))


class MemoryDB:
    """In-memory stand-in for DB, used by tests and dry runs."""

    def __init__(self):
        self._data: dict[bytes, bytes] = {}
        self._closed = False

    def _require_open(self):
        if self._closed:
            raise RuntimeError("Database is closed")

    def get(self, key: bytes) -> Optional[bytes]:
        self._require_open()
        return self._data.get(key)

    def put(self, key: bytes, value: bytes):
        self._require_open()
        self._data[key] = value

    def delete(self, key: bytes):
        self._require_open()
        self._data.pop(key, None)

    def exists(self, key: bytes) -> bool:
        return self.get(key) is not None

    @contextmanager
    def write_batch(self):
        self._require_open()
        batch = _MemoryBatch()
        yield batch
        # Only reached when the with-block did not raise
        for key, value in batch.ops:
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value

    def get_prefix(self, prefix: bytes) -> list[tuple[bytes, bytes]]:
        self._require_open()
        return sorted(
            (key, value) for key, value in self._data.items()
            if key.startswith(prefix)
        )

    def close(self):
        self._closed = True

    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class StateView:
    """
    Staged writes over a DB.

    Reads see staged values first and fall through to the database. Nothing
    reaches the database until commit(), which writes every staged change in
    a single batch.
    """

    def __init__(self, db):
        self.db = db
        self._pending: dict[bytes, object] = {}
        self._closed = False

    def get(self, key: bytes) -> Optional[bytes]:
        if key in self._pending:
            value = self._pending[key]
            return None if value is _DELETED else value
        return self.db.get(key)

    def set(self, key: bytes, value: bytes):
        if self._closed:
            raise RuntimeError("State view already committed or discarded")
        self._pending[key] = value

    def delete(self, key: bytes):
        if self._closed:
            raise RuntimeError("State view already committed or discarded")
        self._pending[key] = _DELETED

    def get_prefix(self, prefix: bytes) -> list[tuple[bytes, bytes]]:
        merged = dict(self.db.get_prefix(prefix))
        for key, value in self._pending.items():
            if not key.startswith(prefix):
                continue
            if value is _DELETED:
                merged.pop(key, None)
            else:
                merged[key] = value
        return sorted(merged.items())

    @property
    def dirty(self) -> bool:
        return bool(self._pending)

    def commit(self) -> int:
        """Write all staged changes atomically. Returns the number written."""
        if self._closed:
            raise RuntimeError("State view already committed or discarded")
        count = len(self._pending)
        with self.db.write_batch() as batch:
            for key, value in self._pending.items():
                if value is _DELETED:
                    batch.delete(key)
                else:
                    batch.put(key, value)
        self._pending.clear()
        self._closed = True
        return count

    def discard(self):
        self._pending.clear()
        self._closed = True
