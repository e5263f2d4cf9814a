"""
Credential refresh side-channels for the assignments API token.
"""

import asyncio
import logging
import sys
from pathlib import Path
from abc import ABC, abstractmethod
from typing import List, Optional

from dotenv import set_key

from assignment_sync.core.config import Settings


logger = logging.getLogger(__name__)


class CredentialRefresher(ABC):
    """A way of obtaining a fresh token and persisting it to the dotenv file."""

    name = "base"

    @abstractmethod
    async def refresh(self) -> bool:
        """Obtain and persist a fresh credential. Returns True on success."""
        pass


class BrowserExtractorRefresher(CredentialRefresher):
    """
    Runs the external browser token extractor and waits for it to exit.

    The extractor opens a browser, captures the bearer token from network
    traffic and writes it to the dotenv file. Its stdio is inherited so the
    operator can follow along and complete any sign-in prompts.
    """

    name = "browser"

    def __init__(self, command: List[str], cwd: Optional[str] = None):
        if not command:
            raise ValueError("Extractor command must not be empty")
        self.command = command
        self.cwd = cwd

    async def refresh(self) -> bool:
        logger.info(f"Launching token extractor: {' '.join(self.command)}")
        try:
            process = await asyncio.create_subprocess_exec(*self.command, cwd=self.cwd)
        except OSError as e:
            logger.error(f"Could not start token extractor: {e}")
            return False

        return_code = await process.wait()
        if return_code != 0:
            logger.error(f"Token extractor exited with code {return_code}")
            return False

        logger.info("Token extractor finished")
        return True


class ManualPromptRefresher(CredentialRefresher):
    """Asks the operator to paste a token and writes it to the dotenv file."""

    name = "manual"

    def __init__(self, env_file: str, input_func=input):
        self.env_file = env_file
        self.input_func = input_func

    async def refresh(self) -> bool:
        if not sys.stdin.isatty() and self.input_func is input:
            logger.error("Manual token refresh needs an interactive terminal")
            return False

        token = (await asyncio.to_thread(self.input_func, "Paste a fresh bearer token: ")).strip()
        if token.lower().startswith("bearer "):
            token = token[7:].strip()
        if not token:
            logger.error("No token entered")
            return False

        session_id = (await asyncio.to_thread(
            self.input_func, "Session id (leave empty to keep the current one): "
        )).strip()

        Path(self.env_file).touch(exist_ok=True)
        set_key(self.env_file, "AUI_TOKEN", token, quote_mode="never")
        if session_id:
            set_key(self.env_file, "AUI_SESSION_ID", session_id, quote_mode="never")

        logger.info(f"Saved token to {self.env_file}")
        return True


class DisabledRefresher(CredentialRefresher):
    """Used in CI or when auto-refresh is switched off; never prompts."""

    name = "none"

    def __init__(self, reason: str = "automatic token refresh is disabled"):
        self.reason = reason

    async def refresh(self) -> bool:
        logger.error(
            f"Cannot refresh token: {self.reason}. "
            "Set a valid AUI_TOKEN in the environment or .env file and re-run."
        )
        return False


def select_refresher(settings: Settings) -> CredentialRefresher:
    """Pick the refresh side-channel allowed by the environment policy."""
    if settings.is_ci:
        return DisabledRefresher("running in CI")
    if not settings.auto_refresh_enabled:
        return DisabledRefresher("AUI_AUTO_REFRESH is disabled")

    if settings.AUI_REFRESH_MODE == "manual":
        return ManualPromptRefresher(settings.ENV_FILE)
    if settings.AUI_REFRESH_MODE == "none":
        return DisabledRefresher("AUI_REFRESH_MODE is none")
    return BrowserExtractorRefresher(settings.extractor_argv)
