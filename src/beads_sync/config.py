"""Project configuration from .beads/sync.json with environment overrides"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import ValidationFailure

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(".beads")
CONFIG_FILE = CONFIG_DIR / "sync.json"

# Environment variable -> config field
ENV_OVERRIDES = {
    "BEADS_SYNC_API_URL": "api_url",
    "BEADS_SYNC_WS_URL": "ws_url",
    "BEADS_SYNC_JSONL": "jsonl_path",
    "BEADS_SYNC_RECONNECT_DELAY": "reconnect_delay",
    "BEADS_SYNC_ID_PREFIX": "id_prefix",
}


class SyncConfig(BaseModel):
    """Settings for the client and the reference Backend"""

    api_url: str = Field("http://localhost:3001/api", description="Base URL of the Backend HTTP API")
    ws_url: Optional[str] = Field(None, description="Push channel URL; derived from api_url when unset")
    jsonl_path: str = Field(str(CONFIG_DIR / "issues.jsonl"), description="Fallback snapshot file")
    reconnect_delay: float = Field(5.0, gt=0, description="Seconds before a push reconnect attempt")
    request_timeout: float = Field(10.0, gt=0)
    id_prefix: str = Field("BD-", description="Prefix for allocated issue ids")
    tentative_prefix: str = Field("tmp-", description="Prefix for optimistic placeholder ids")
    actor: str = Field("local", description="Recorded as created_by on new dependencies")
    host: str = "127.0.0.1"
    port: int = Field(3001, ge=1, le=65535)

    def push_url(self) -> str:
        """WebSocket URL for the push channel"""
        if self.ws_url:
            return self.ws_url
        base = self.api_url.rstrip("/")
        if base.endswith("/api"):
            base = base[: -len("/api")]
        return base.replace("http", "ws", 1) + "/ws"


def get_project_config(config_file: Path = CONFIG_FILE) -> SyncConfig:
    """Load configuration, falling back to defaults for anything missing"""
    data = {}
    if config_file.exists():
        try:
            with open(config_file, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read config %s: %s", config_file, e)

    for env_name, field in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data[field] = value

    try:
        return SyncConfig.model_validate(data)
    except ValidationError as e:
        raise ValidationFailure(f"Invalid configuration: {e}") from e


def save_project_config(config: SyncConfig, config_file: Path = CONFIG_FILE):
    """Save configuration to .beads/sync.json"""
    config_file.parent.mkdir(parents=True, exist_ok=True)

    with open(config_file, "w") as f:
        json.dump(config.model_dump(exclude_none=True), f, indent=2)
