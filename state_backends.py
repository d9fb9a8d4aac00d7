"""
State backend implementations for search state persistence.
Provides different storage backends behind a single key-value contract.
"""

import datetime
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Dict
from dataclasses import dataclass

from core.exceptions import PersistenceError

# Configure logging
logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


@dataclass
class StateBackendConfig:
    """Configuration for state backends"""
    ttl_default: int = 0  # seconds, 0 disables expiry
    max_key_size: int = 1000
    max_value_size: int = 10 * 1024 * 1024  # 10MB
    cleanup_interval: float = 60.0


class StateBackend(ABC):
    """Abstract base class for state storage backends"""

    backend_type = 'abstract'

    def __init__(self, config: Optional[StateBackendConfig] = None):
        self.config = config or StateBackendConfig()

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Retrieve value by key"""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store value with optional TTL"""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key"""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if key exists"""

    @abstractmethod
    def clear(self) -> bool:
        """Clear all data (for testing)"""

    def close(self) -> None:
        """Release background resources held by the backend"""

    def _validate_key(self, key: str) -> bool:
        """Validate key format and size"""
        if not key or len(key) > self.config.max_key_size:
            return False
        return True

    def _effective_ttl(self, ttl: Optional[int]) -> Optional[int]:
        return ttl or self.config.ttl_default or None

    def _serialize_value(self, value: Any) -> str:
        """Serialize value to JSON string"""
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize value: {e}")
            raise

    def _deserialize_value(self, value_str: str) -> Any:
        """Deserialize JSON string to value"""
        try:
            return json.loads(value_str)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to deserialize value: {e}")
            return None


class MemoryStateBackend(StateBackend):
    """
    In-memory state backend for single-process hosts and testing.
    Thread-safe with automatic TTL cleanup. Values are held as JSON so that
    callers never share mutable structures with the store.
    """

    backend_type = 'memory'

    def __init__(self, config: Optional[StateBackendConfig] = None):
        super().__init__(config)
        self._store: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._cleanup_thread = None
        self._start_cleanup_thread()

    def _is_expired(self, entry: Dict[str, Any], now: Optional[float] = None) -> bool:
        expires_at = entry.get('expires_at')
        return bool(expires_at) and (now or time.time()) > expires_at

    def get(self, key: str) -> Optional[Any]:
        if not self._validate_key(key):
            logger.warning(f"Invalid key: {key}")
            return None

        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None

            if self._is_expired(entry):
                del self._store[key]
                return None

            return self._deserialize_value(entry['value'])

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self._validate_key(key):
            logger.warning(f"Invalid key: {key}")
            return False

        try:
            serialized = self._serialize_value(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize value for key {key}: {e}")
            return False

        if len(serialized) > self.config.max_value_size:
            logger.warning(f"Value too large for key {key}")
            return False

        ttl_seconds = self._effective_ttl(ttl)
        with self._lock:
            self._store[key] = {
                'value': serialized,
                'expires_at': time.time() + ttl_seconds if ttl_seconds else None,
                'created_at': time.time()
            }

        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            if key in self._store:
                del self._store[key]
                return True
            return False

    def exists(self, key: str) -> bool:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False

            if self._is_expired(entry):
                del self._store[key]
                return False

            return True

    def clear(self) -> bool:
        with self._lock:
            self._store.clear()
        return True

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed"""
        current_time = time.time()
        with self._lock:
            expired_keys = [
                key for key, entry in self._store.items()
                if self._is_expired(entry, current_time)
            ]
            for key in expired_keys:
                del self._store[key]

        if expired_keys:
            logger.debug(f"Cleaned up {len(expired_keys)} expired keys")
        return len(expired_keys)

    def get_stats(self) -> Dict[str, Any]:
        """Get backend statistics"""
        with self._lock:
            current_time = time.time()
            return {
                'total_keys': len(self._store),
                'expired_keys': sum(1 for entry in self._store.values() if self._is_expired(entry, current_time)),
                'total_size_bytes': sum(len(entry['value']) for entry in self._store.values()),
                'backend_type': self.backend_type
            }

    def close(self) -> None:
        """Stop the cleanup thread"""
        self._stop_event.set()
        if self._cleanup_thread is not None:
            self._cleanup_thread.join(timeout=1.0)
            self._cleanup_thread = None

    def _start_cleanup_thread(self):
        """Start background thread for TTL cleanup"""
        def cleanup():
            while not self._stop_event.wait(self.config.cleanup_interval):
                try:
                    self.purge_expired()
                except Exception as e:
                    logger.error(f"Error in cleanup thread: {e}")

        self._cleanup_thread = threading.Thread(target=cleanup, daemon=True)
        self._cleanup_thread.start()


class RedisStateBackend(StateBackend):
    """
    Redis-based state backend for multi-process hosts.
    Requires redis-py package.
    """

    backend_type = 'redis'

    def __init__(self, config: Optional[StateBackendConfig] = None,
                 redis_url: str = "redis://localhost:6379/0"):
        super().__init__(config)
        self.redis_url = redis_url
        self._client = None
        self._connect()

    def _connect(self):
        """Initialize Redis connection"""
        try:
            import redis
        except ImportError:
            raise ImportError("redis package required for RedisStateBackend")

        try:
            self._client = redis.from_url(self.redis_url, decode_responses=True)
            self._client.ping()
            logger.info(f"Connected to Redis at {self.redis_url}")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise PersistenceError(f"Failed to connect to Redis: {e}", backend=self.backend_type)

    def get(self, key: str) -> Optional[Any]:
        if not self._validate_key(key):
            return None

        try:
            value_str = self._client.get(key)
        except Exception as e:
            logger.error(f"Redis get error for key {key}: {e}")
            return None

        if value_str is None:
            return None
        return self._deserialize_value(value_str)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self._validate_key(key):
            return False

        try:
            value_str = self._serialize_value(value)
            if len(value_str) > self.config.max_value_size:
                logger.warning(f"Value too large for key {key}")
                return False

            ttl_seconds = self._effective_ttl(ttl)
            if ttl_seconds:
                return bool(self._client.setex(key, ttl_seconds, value_str))
            return bool(self._client.set(key, value_str))
        except Exception as e:
            logger.error(f"Redis set error for key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            return bool(self._client.delete(key))
        except Exception as e:
            logger.error(f"Redis delete error for key {key}: {e}")
            return False

    def exists(self, key: str) -> bool:
        try:
            return bool(self._client.exists(key))
        except Exception as e:
            logger.error(f"Redis exists error for key {key}: {e}")
            return False

    def clear(self) -> bool:
        """Clear all keys (use with caution)"""
        try:
            return bool(self._client.flushdb())
        except Exception as e:
            logger.error(f"Redis clear error: {e}")
            return False

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


class DatabaseStateBackend(StateBackend):
    """
    Database-based state backend using SQLite/PostgreSQL.
    For persistent, queryable state storage.
    """

    backend_type = 'database'

    def __init__(self, config: Optional[StateBackendConfig] = None,
                 db_url: str = "sqlite:///search_state.db"):
        super().__init__(config)
        self.db_url = db_url
        self._engine = None
        self._connect()

    def _connect(self):
        """Initialize database connection"""
        try:
            from sqlalchemy import create_engine, MetaData, Table, Column, String, Text, DateTime
        except ImportError:
            raise ImportError("sqlalchemy package required for DatabaseStateBackend")

        try:
            self._engine = create_engine(self.db_url)
            self._metadata = MetaData()

            self._state_table = Table('search_state_store', self._metadata,
                Column('key', String(1000), primary_key=True),
                Column('value', Text),
                Column('created_at', DateTime, default=_utcnow),
                Column('expires_at', DateTime, nullable=True)
            )

            # Create table if it doesn't exist
            self._metadata.create_all(self._engine)

            logger.info(f"Connected to database at {self.db_url}")
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise PersistenceError(f"Failed to connect to database: {e}", backend=self.backend_type)

    def _live_rows(self, stmt):
        """Restrict a select statement to rows that have not expired"""
        return stmt.where(
            (self._state_table.c.expires_at.is_(None)) |
            (self._state_table.c.expires_at > _utcnow())
        )

    def get(self, key: str) -> Optional[Any]:
        if not self._validate_key(key):
            return None

        try:
            from sqlalchemy import select

            stmt = self._live_rows(
                select(self._state_table.c.value).where(self._state_table.c.key == key)
            )
            with self._engine.connect() as conn:
                result = conn.execute(stmt).fetchone()
        except Exception as e:
            logger.error(f"Database get error for key {key}: {e}")
            return None

        if result:
            return self._deserialize_value(result[0])
        return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self._validate_key(key):
            return False

        try:
            from sqlalchemy.dialects.sqlite import insert as sqlite_insert
            from sqlalchemy.dialects.postgresql import insert as pg_insert

            value_str = self._serialize_value(value)
            if len(value_str) > self.config.max_value_size:
                logger.warning(f"Value too large for key {key}")
                return False

            ttl_seconds = self._effective_ttl(ttl)
            expires_at = None
            if ttl_seconds:
                expires_at = _utcnow() + datetime.timedelta(seconds=ttl_seconds)

            # Upsert for both SQLite and PostgreSQL
            insert = sqlite_insert if self._engine.dialect.name == 'sqlite' else pg_insert
            stmt = insert(self._state_table).values(
                key=key, value=value_str, expires_at=expires_at
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=['key'],
                set_=dict(value=stmt.excluded.value, expires_at=stmt.excluded.expires_at)
            )

            with self._engine.begin() as conn:
                conn.execute(stmt)
            return True
        except Exception as e:
            logger.error(f"Database set error for key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            from sqlalchemy import delete

            with self._engine.begin() as conn:
                result = conn.execute(delete(self._state_table).where(self._state_table.c.key == key))
            return result.rowcount > 0
        except Exception as e:
            logger.error(f"Database delete error for key {key}: {e}")
            return False

    def exists(self, key: str) -> bool:
        try:
            from sqlalchemy import select

            stmt = self._live_rows(
                select(self._state_table.c.key).where(self._state_table.c.key == key)
            )
            with self._engine.connect() as conn:
                return conn.execute(stmt).fetchone() is not None
        except Exception as e:
            logger.error(f"Database exists error for key {key}: {e}")
            return False

    def clear(self) -> bool:
        """Clear all state data (use with caution)"""
        try:
            from sqlalchemy import delete

            with self._engine.begin() as conn:
                conn.execute(delete(self._state_table))
            return True
        except Exception as e:
            logger.error(f"Database clear error: {e}")
            return False

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
