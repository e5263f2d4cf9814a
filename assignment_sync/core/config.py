from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, validator
from dotenv import dotenv_values
from typing import Optional
import logging
import shlex


logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"


class Credential(BaseModel):
    """Bearer token plus the upstream session identifier it was captured with."""
    token: Optional[str] = None
    session_id: Optional[str] = None


class Settings(BaseSettings):
    # Upstream assignments API
    AUI_TOKEN: Optional[str] = None
    AUI_SESSION_ID: Optional[str] = None
    AUI_URL: str = ""
    AUI_API_BASE: str = "https://assignments.onenote.com/api/v1.0"

    # Notion database (upsert target)
    NOTION_TOKEN: Optional[str] = None
    NOTION_DATABASE_ID: Optional[str] = None
    NOTION_API_BASE: str = "https://api.notion.com/v1"
    NOTION_VERSION: str = "2022-06-28"
    NOTION_MIN_INTERVAL_MS: int = 300
    NOTION_PAGE_SIZE: int = 100

    # Local outputs
    OUTPUT_DIR: str = "outputs"
    STATE_FILE: str = "state.json"

    HTTP_TIMEOUT: int = 30

    # Credential refresh policy
    AUI_AUTO_REFRESH: str = "1"
    AUI_REFRESH_MODE: str = "browser"
    EXTRACTOR_COMMAND: str = "node simple-edge-extractor.mjs"
    ENV_FILE: str = DEFAULT_ENV_FILE

    # CI detection
    CI: str = ""
    GITHUB_ACTIONS: str = ""

    model_config = SettingsConfigDict(
        env_file=DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @validator("AUI_URL", "AUI_API_BASE", "NOTION_API_BASE")
    def validate_url(cls, v):
        v = v.strip()
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    @validator("AUI_REFRESH_MODE")
    def validate_refresh_mode(cls, v):
        v = v.strip().lower()
        if v not in ("browser", "manual", "none"):
            raise ValueError("AUI_REFRESH_MODE must be one of: browser, manual, none")
        return v

    @validator("NOTION_MIN_INTERVAL_MS", "NOTION_PAGE_SIZE", "HTTP_TIMEOUT")
    def validate_positive(cls, v):
        if v < 0:
            raise ValueError("value must not be negative")
        return v

    @property
    def credential(self) -> Credential:
        return Credential(token=self.AUI_TOKEN or None, session_id=self.AUI_SESSION_ID or None)

    @property
    def is_ci(self) -> bool:
        return self.CI.lower() == "true" or self.GITHUB_ACTIONS.lower() == "true"

    @property
    def auto_refresh_enabled(self) -> bool:
        return self.AUI_AUTO_REFRESH.strip().lower() not in ("0", "false", "no", "off")

    @property
    def notion_configured(self) -> bool:
        return bool(self.NOTION_TOKEN and self.NOTION_DATABASE_ID)

    @property
    def extractor_argv(self):
        return shlex.split(self.EXTRACTOR_COMMAND)


def load_settings(env_file: str = DEFAULT_ENV_FILE, override: bool = False) -> Settings:
    """
    Load settings from the process environment and a dotenv file.

    With ``override`` the dotenv values are passed as init arguments, so a
    freshly written credential wins over a stale value already exported in
    the environment. Without it the environment is read first and the file
    only fills the gaps.
    """
    if not override:
        return Settings(_env_file=env_file, ENV_FILE=env_file)

    values = {
        key: value
        for key, value in dotenv_values(env_file).items()
        if key in Settings.model_fields and value is not None
    }
    logger.debug(f"Reloaded {len(values)} setting(s) from {env_file} with override")
    values["ENV_FILE"] = env_file
    return Settings(_env_file=env_file, **values)
