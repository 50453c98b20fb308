import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Set

from pydantic import ValidationError

from possync.core.storage import IntegrationStore
from possync.shared.exceptions import (
    ConfigurationError,
    IntegrationNotFoundError,
    IntegrationStateError,
    SyncInProgressError,
)

from .base.models import SyncResult, utc_now
from .migrations import SCHEMA_VERSION, migrate_document, schema_version
from .models import IntegrationConfig, IntegrationState, default_integrations

logger = logging.getLogger(__name__)


class IntegrationRegistry:
    """
    Persistent set of integration configurations, one per supported provider.

    Every mutation is a read-merge-write of the in-memory copy followed by a
    write of the whole document to the store. Mutations of one integration
    are serialised with a per-id lock; callers always receive copies.
    """

    def __init__(self, store: IntegrationStore):
        self.store = store
        self._configs: Dict[str, IntegrationConfig] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._connecting: Set[str] = set()
        self._syncing: Set[str] = set()
        self._connect_errors: Dict[str, str] = {}
        self._loaded = False

    def load(self) -> List[IntegrationConfig]:
        """
        Load configurations from the store.

        Legacy documents are migrated, invalid records are skipped and any
        supported provider missing from the document is seeded with defaults.
        The document is written back when any of that changed it.
        """
        document = self.store.load()
        migrated = migrate_document(document) if document is not None else None

        stored: Dict[str, IntegrationConfig] = {}
        for record in migrated["integrations"] if migrated else []:
            try:
                config = IntegrationConfig.model_validate(record)
            except ValidationError as e:
                logger.warning(
                    f"Skipping invalid stored integration {record.get('id')}: {e}"
                )
                continue
            stored[config.id] = config

        configs: Dict[str, IntegrationConfig] = {}
        seeded = []
        for default in default_integrations():
            if default.id in stored:
                configs[default.id] = stored[default.id]
            else:
                configs[default.id] = default
                seeded.append(default.id)

        self._configs = configs
        self._loaded = True

        if seeded:
            logger.info(f"Seeded default integrations: {', '.join(seeded)}")
        if seeded or schema_version(document) != SCHEMA_VERSION:
            self._persist()

        return self.list()

    def get(self, integration_id: str) -> IntegrationConfig:
        return self._require(integration_id).model_copy(deep=True)

    def list(self) -> List[IntegrationConfig]:
        self._ensure_loaded()
        return [config.model_copy(deep=True) for config in self._configs.values()]

    async def update(
        self, integration_id: str, partial: Dict[str, Any]
    ) -> IntegrationConfig:
        """
        Deep-merge ``partial`` into an integration and persist it.

        Raises:
            IntegrationNotFoundError: If the integration does not exist
            ConfigurationError: If the merged configuration is invalid
        """
        async with self._lock(integration_id):
            current = self._require(integration_id)
            return self._store(self._merge(current, partial))

    async def connect(
        self, integration_id: str, settings: Optional[Dict[str, Any]] = None
    ) -> IntegrationConfig:
        """Merge settings and mark the integration connected."""
        async with self._lock(integration_id):
            current = self._require(integration_id)
            candidate = self._merge(current, {"settings": settings or {}})

            missing = candidate.settings.missing_credentials()
            if missing:
                raise ConfigurationError(
                    f"{current.display_name} requires {', '.join(missing)}"
                )

            connected = candidate.model_copy(
                update={"connected": True, "connected_at": utc_now()}
            )
            self._connecting.discard(integration_id)
            self._connect_errors.pop(integration_id, None)
            self._log_transition(integration_id, IntegrationState.CONNECTED_IDLE)
            return self._store(connected)

    async def disconnect(self, integration_id: str) -> IntegrationConfig:
        """
        Clear every credential and disable the integration.

        Sync toggles and other preferences are kept so a later reconnect
        resumes with the same choices.
        """
        async with self._lock(integration_id):
            current = self._require(integration_id)
            if integration_id in self._syncing:
                raise IntegrationStateError(
                    f"Cannot disconnect {current.display_name} while a sync is running"
                )
            if integration_id in self._connecting:
                raise IntegrationStateError(
                    f"Cannot disconnect {current.display_name} while connecting"
                )

            disconnected = current.model_copy(
                update={
                    "connected": False,
                    "enabled": False,
                    "connected_at": None,
                    "settings": current.settings.without_credentials(),
                }
            )
            self._log_transition(integration_id, IntegrationState.DISCONNECTED)
            return self._store(disconnected)

    async def toggle(self, integration_id: str, enabled: bool) -> IntegrationConfig:
        async with self._lock(integration_id):
            current = self._require(integration_id)
            if enabled and not current.connected:
                raise IntegrationStateError(
                    f"{current.display_name} must be connected before it can be enabled"
                )
            return self._store(current.model_copy(update={"enabled": enabled}))

    async def record_sync(
        self, integration_id: str, result: SyncResult
    ) -> IntegrationConfig:
        """Record the completion time and outcome of a sync run."""
        async with self._lock(integration_id):
            current = self._require(integration_id)
            return self._store(
                current.model_copy(
                    update={"last_sync": result.timestamp, "last_sync_result": result}
                )
            )

    def reset(self) -> List[IntegrationConfig]:
        """Replace every integration with its defaults."""
        busy = self._syncing | self._connecting
        if busy:
            raise IntegrationStateError(
                f"Cannot reset integrations while {', '.join(sorted(busy))} "
                "are in progress"
            )

        self._configs = {config.id: config for config in default_integrations()}
        self._connect_errors.clear()
        self._loaded = True
        self._persist()
        logger.info("Integrations reset to defaults")
        return self.list()

    def state(self, integration_id: str) -> IntegrationState:
        config = self._require(integration_id)
        if integration_id in self._connecting:
            return IntegrationState.CONNECTING
        if integration_id in self._syncing:
            return IntegrationState.CONNECTED_SYNCING
        if config.connected:
            return IntegrationState.CONNECTED_IDLE
        return IntegrationState.DISCONNECTED

    def last_connect_error(self, integration_id: str) -> Optional[str]:
        self._require(integration_id)
        return self._connect_errors.get(integration_id)

    def mark_connecting(self, integration_id: str) -> None:
        """
        Mark a connect attempt as started.

        Raises:
            IntegrationStateError: If a connect attempt or a sync is in flight
        """
        config = self._require(integration_id)
        if integration_id in self._connecting:
            raise IntegrationStateError(
                f"{config.display_name} is already being connected"
            )
        if integration_id in self._syncing:
            raise IntegrationStateError(
                f"Cannot connect {config.display_name} while a sync is running"
            )

        self._connecting.add(integration_id)
        self._connect_errors.pop(integration_id, None)
        self._log_transition(integration_id, IntegrationState.CONNECTING)

    def mark_connect_failed(self, integration_id: str, message: str) -> None:
        """
        End a failed connect attempt.

        The failure is kept for ``last_connect_error`` and the integration
        falls back to the state its stored configuration describes.
        """
        self._require(integration_id)
        self._connecting.discard(integration_id)
        self._connect_errors[integration_id] = message
        self._log_transition(
            integration_id, IntegrationState.CONNECT_FAILED, detail=message
        )
        self._log_transition(integration_id, self.state(integration_id))

    @asynccontextmanager
    async def sync_guard(self, integration_id: str) -> AsyncIterator[IntegrationConfig]:
        """
        Hold the syncing state of an integration for the duration of a sync.

        Raises:
            SyncInProgressError: If a sync of the integration is already running
            IntegrationStateError: If the integration is not connected or a
                connect attempt is in flight
        """
        config = self._require(integration_id)
        if integration_id in self._syncing:
            raise SyncInProgressError(
                f"A sync is already running for {config.display_name}"
            )
        if integration_id in self._connecting:
            raise IntegrationStateError(
                f"Cannot sync {config.display_name} while it is being connected"
            )
        if not config.connected:
            raise IntegrationStateError(f"{config.display_name} is not connected")

        self._syncing.add(integration_id)
        self._log_transition(integration_id, IntegrationState.CONNECTED_SYNCING)
        try:
            yield config.model_copy(deep=True)
        finally:
            self._syncing.discard(integration_id)
            self._log_transition(integration_id, self.state(integration_id))

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _require(self, integration_id: str) -> IntegrationConfig:
        self._ensure_loaded()
        config = self._configs.get(integration_id)
        if config is None:
            raise IntegrationNotFoundError(f"Integration {integration_id} not found")
        return config

    def _lock(self, integration_id: str) -> asyncio.Lock:
        return self._locks.setdefault(integration_id, asyncio.Lock())

    def _merge(
        self, current: IntegrationConfig, partial: Dict[str, Any]
    ) -> IntegrationConfig:
        try:
            return current.merged(partial)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid settings for {current.display_name}: {e}"
            ) from e

    def _store(self, config: IntegrationConfig) -> IntegrationConfig:
        self._configs[config.id] = config
        self._persist()
        return config.model_copy(deep=True)

    def _persist(self) -> None:
        self.store.save(
            {
                "schemaVersion": SCHEMA_VERSION,
                "integrations": [
                    config.model_dump(mode="json", by_alias=True)
                    for config in self._configs.values()
                ],
            }
        )

    def _log_transition(
        self,
        integration_id: str,
        state: IntegrationState,
        detail: Optional[str] = None,
    ) -> None:
        message = f"Integration {integration_id} -> {state.value}"
        if detail:
            message += f": {detail}"
        logger.info(message)
