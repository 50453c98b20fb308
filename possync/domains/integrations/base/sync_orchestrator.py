import asyncio
import logging
import time
from typing import List, Optional

from possync.core.settings import settings
from possync.shared.exceptions import IntegrationError

from ..models import IntegrationConfig, SyncCategory
from .client import BaseProviderClient
from .models import SyncResult, utc_now

logger = logging.getLogger(__name__)

BUDGET_EXCEEDED = "sync budget exceeded"


class SyncOrchestrator:
    """Generic sync logic that works with any provider."""

    def __init__(self, budget_seconds: Optional[float] = None):
        self.budget_seconds = (
            settings.SYNC_BUDGET_SECONDS if budget_seconds is None else budget_seconds
        )

    async def sync_data(
        self,
        config: IntegrationConfig,
        client: BaseProviderClient,
        budget_seconds: Optional[float] = None,
    ) -> SyncResult:
        """
        Sync every enabled category of an integration, one after another.

        A failing category is recorded in ``errors`` and never stops the
        remaining categories. Categories share one overall time budget; a
        category that runs past it, or has not started when it runs out, is
        recorded as failed.

        Args:
            config: Integration whose enabled categories are synced
            client: Provider client used to fetch each category
            budget_seconds: Overall budget for the run; None uses the
                orchestrator default, 0 disables the budget

        Returns:
            SyncResult with the item total and one error per failed category
        """
        budget = self.budget_seconds if budget_seconds is None else budget_seconds
        start_time = time.monotonic()

        errors: List[str] = []
        synced_items = 0

        for category in config.settings.enabled_categories():
            remaining = budget - (time.monotonic() - start_time) if budget else None

            if remaining is not None and remaining <= 0:
                errors.append(self._failure(category, BUDGET_EXCEEDED))
                continue

            try:
                items = await asyncio.wait_for(
                    client.fetch_category(category), timeout=remaining
                )
            except asyncio.TimeoutError:
                logger.warning(f"{config.id} {category.value} sync hit the sync budget")
                errors.append(self._failure(category, BUDGET_EXCEEDED))
                continue
            except Exception as e:
                logger.warning(f"{config.id} {category.value} sync failed: {e}")
                errors.append(self._failure(category, self._error_message(e)))
                continue

            synced_items += len(items)
            logger.info(f"{config.id} {category.value} synced: {len(items)} items")

        duration = time.monotonic() - start_time
        if errors:
            logger.warning(
                f"Sync for {config.id} completed with {len(errors)} error(s): "
                f"{synced_items} items in {duration:.1f}s"
            )
        else:
            logger.info(
                f"Sync for {config.id} completed: "
                f"{synced_items} items in {duration:.1f}s"
            )

        return SyncResult(
            success=not errors,
            synced_items=synced_items,
            errors=errors,
            timestamp=utc_now(),
        )

    @staticmethod
    def _failure(category: SyncCategory, message: str) -> str:
        return f"{category.label} sync failed: {message}"

    @staticmethod
    def _error_message(error: Exception) -> str:
        if isinstance(error, IntegrationError):
            return error.message
        return str(error)
