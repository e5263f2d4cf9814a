"""
Token freshness checks and refresh orchestration for the assignments API.
"""

import logging
from typing import Callable, Optional

from assignment_sync.core.config import Settings, load_settings
from assignment_sync.core.credentials import CredentialValidator, TokenStatus
from assignment_sync.integrations.teams.refreshers import (
    CredentialRefresher, DisabledRefresher, select_refresher
)


logger = logging.getLogger(__name__)


class CredentialRefreshOrchestrator:
    """
    Keeps the run's credential valid.

    The current settings are held on the orchestrator and replaced wholesale
    after a successful refresh; callers read ``orchestrator.settings`` once
    ``ensure_valid`` returns True.
    """

    def __init__(
        self,
        settings: Settings,
        validator: Optional[CredentialValidator] = None,
        refresher: Optional[CredentialRefresher] = None,
        reload: Optional[Callable[[], Settings]] = None,
    ):
        self.settings = settings
        self.validator = validator or CredentialValidator()
        self.refresher = refresher or select_refresher(settings)
        self._reload = reload or (lambda: load_settings(settings.ENV_FILE, override=True))

    @property
    def refresh_allowed(self) -> bool:
        return not isinstance(self.refresher, DisabledRefresher)

    def check(self) -> TokenStatus:
        """Validate the current token and log its remaining lifetime."""
        status = self.validator.validate(self.settings.AUI_TOKEN)
        if status.valid:
            logger.info(
                f"Token expires in {status.minutes_remaining} minutes "
                f"({status.expires_at.isoformat()})"
            )
        else:
            logger.warning(f"Token is not usable: {status.reason}")
        return status

    async def ensure_valid(self, force_refresh: bool = False) -> bool:
        """
        Make sure the credential is valid, refreshing it when allowed.

        Args:
            force_refresh: Refresh even if the current token still validates

        Returns:
            True if a valid credential is available for the run
        """
        status = self.check()

        if not self.refresh_allowed:
            if force_refresh:
                logger.warning("Forced token refresh requested but refreshing is not allowed here")
            if not status.valid:
                await self.refresher.refresh()
            return status.valid

        if status.valid and not force_refresh:
            return True

        logger.info(f"Refreshing token via {self.refresher.name} refresher")
        if not await self.refresher.refresh():
            logger.error("Token refresh failed")
            return False

        self.settings = self._reload()

        status = self.check()
        if not status.valid:
            logger.error("Token refresh failed: token is still invalid after refresh")
            return False

        logger.info("Token refreshed successfully")
        return True
