"""
PersistenceStore - keyed storage of table search snapshots.

Wraps a StateBackend with the ``get/put`` contract the search engine expects,
building namespaced keys per persistence id and, optionally, per user.
"""

import logging
from typing import Any, Dict, Optional
from dataclasses import dataclass

from core.config import PersistenceConfig
from core.exceptions import ConfigurationError, PersistenceError
from search_state.models import Snapshot
from state_backends import (
    StateBackend,
    MemoryStateBackend,
    RedisStateBackend,
    DatabaseStateBackend,
    StateBackendConfig
)

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class PersistenceStoreConfig:
    """Configuration for PersistenceStore"""
    backend_type: str = 'memory'  # 'memory', 'redis', 'database'
    enable_user_isolation: bool = False
    default_ttl: int = 0  # seconds, 0 keeps snapshots until replaced
    key_prefix: str = 'searchComponent'
    redis_url: str = 'redis://localhost:6379/0'
    database_url: str = 'sqlite:///search_state.db'
    max_value_size: int = 10 * 1024 * 1024  # 10MB

    @classmethod
    def from_persistence_config(cls, config: PersistenceConfig) -> 'PersistenceStoreConfig':
        return cls(
            backend_type=config.backend,
            enable_user_isolation=config.enable_user_isolation,
            default_ttl=config.ttl_default,
            key_prefix=config.key_prefix,
            redis_url=config.redis_url,
            database_url=config.database_url,
        )


class PersistenceStore:
    """
    Process-wide store of search snapshots keyed by persistence id.

    Writes are whole-snapshot overwrites, last writer wins.
    """

    def __init__(self, config: Optional[PersistenceStoreConfig] = None,
                 backend: Optional[StateBackend] = None):
        self.config = config or PersistenceStoreConfig()
        self.backend = backend or self._create_backend()
        self.user_context: Optional[str] = None

        logger.info(f"PersistenceStore initialized with {self.backend.backend_type} backend")

    def _create_backend(self) -> StateBackend:
        """Create appropriate backend based on configuration"""
        backend_config = StateBackendConfig(
            ttl_default=self.config.default_ttl,
            max_value_size=self.config.max_value_size
        )

        if self.config.backend_type == 'memory':
            return MemoryStateBackend(backend_config)
        elif self.config.backend_type == 'redis':
            return RedisStateBackend(backend_config, self.config.redis_url)
        elif self.config.backend_type == 'database':
            return DatabaseStateBackend(backend_config, self.config.database_url)
        raise ConfigurationError(f"Unknown backend type: {self.config.backend_type}", field='backend')

    def set_user_context(self, user_id: Optional[str]):
        """Set current user context for snapshot isolation"""
        self.user_context = user_id
        if user_id:
            logger.debug(f"Set user context: {user_id}")

    def _build_key(self, persistence_id: str, user_id: Optional[str] = None) -> str:
        """Build full key with prefix and user isolation"""
        key_parts = [self.config.key_prefix]

        if self.config.enable_user_isolation:
            key_parts.append(user_id or self.user_context or 'anonymous')

        key_parts.append(persistence_id)
        return ':'.join(key_parts)

    def get(self, persistence_id: str, user_id: Optional[str] = None) -> Optional[Snapshot]:
        """
        Get the snapshot saved for a persistence id.

        Args:
            persistence_id: The table's persistence identifier
            user_id: Optional user ID for isolation

        Returns:
            The stored snapshot, or None if none was saved
        """
        if not persistence_id:
            return None

        snapshot = self.backend.get(self._build_key(persistence_id, user_id))
        if snapshot is None:
            logger.debug(f"No snapshot stored for {persistence_id}")
        else:
            logger.debug(f"Retrieved snapshot for {persistence_id}")
        return snapshot

    def put(self, persistence_id: str, snapshot: Snapshot, ttl: Optional[int] = None,
            user_id: Optional[str] = None) -> None:
        """
        Save a snapshot, replacing whatever was stored for the id.

        Raises:
            PersistenceError: if the backend rejects the write
        """
        key = self._build_key(persistence_id, user_id)
        if not self.backend.set(key, snapshot, ttl):
            raise PersistenceError(
                f"Failed to store snapshot for {persistence_id}",
                backend=self.backend.backend_type,
                key=key
            )
        logger.debug(f"Stored snapshot for {persistence_id}")

    def delete(self, persistence_id: str, user_id: Optional[str] = None) -> bool:
        """Delete the snapshot for a persistence id"""
        result = self.backend.delete(self._build_key(persistence_id, user_id))
        if result:
            logger.debug(f"Deleted snapshot for {persistence_id}")
        return result

    def exists(self, persistence_id: str, user_id: Optional[str] = None) -> bool:
        """Check if a snapshot exists"""
        return self.backend.exists(self._build_key(persistence_id, user_id))

    def get_backend_stats(self) -> Dict[str, Any]:
        """Get backend statistics if available"""
        stats = {
            'backend_type': self.backend.backend_type,
            'user_isolation_enabled': self.config.enable_user_isolation,
        }
        if hasattr(self.backend, 'get_stats'):
            stats.update(self.backend.get_stats())
        else:
            stats['stats_available'] = False
        return stats

    def close(self) -> None:
        """Release the backend's resources"""
        self.backend.close()


def create_persistence_store(config: PersistenceConfig) -> PersistenceStore:
    """Build a PersistenceStore from the ``[persistence]`` config section."""
    return PersistenceStore(PersistenceStoreConfig.from_persistence_config(config))
