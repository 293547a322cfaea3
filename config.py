"""Environment-driven configuration."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from models import (
    DUE_SOON_RATIO,
    LocalImageStore,
    MaintenanceTracker,
    NoHistoryPolicy,
    VisionOdometerReader,
    YamlEntityStore,
)

logger = logging.getLogger(__name__)


@dataclass
class Config:
    data_file: Path = Path("data/store.yaml")
    image_dir: Path = Path("data/images")
    image_base_url: str = "/images"
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    odo_model: str = "gpt-4o"
    due_soon_ratio: float = DUE_SOON_RATIO
    no_history: NoHistoryPolicy = NoHistoryPolicy.OMIT
    secret_key: str = "dev-secret-key-change-in-prod"
    log_level: str = "INFO"


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """
    Build a Config from environment variables.

    When environ is not given, a .env file is loaded into os.environ first.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    defaults = Config()
    ratio = float(environ.get("DUE_SOON_RATIO", defaults.due_soon_ratio))
    if not 0 <= ratio < 1:
        raise ValueError(f"DUE_SOON_RATIO must be in [0, 1), got {ratio}")

    return Config(
        data_file=Path(environ.get("MAINT_DATA_FILE", defaults.data_file)),
        image_dir=Path(environ.get("MAINT_IMAGE_DIR", defaults.image_dir)),
        image_base_url=environ.get("MAINT_IMAGE_BASE_URL", defaults.image_base_url),
        openai_api_key=environ.get("OPENAI_API_KEY") or None,
        openai_base_url=environ.get("OPENAI_BASE_URL", defaults.openai_base_url),
        odo_model=environ.get("ODO_MODEL", defaults.odo_model),
        due_soon_ratio=ratio,
        no_history=NoHistoryPolicy(environ.get("NO_HISTORY_POLICY", defaults.no_history.value).lower()),
        secret_key=environ.get("SECRET_KEY", defaults.secret_key),
        log_level=environ.get("LOG_LEVEL", defaults.log_level).upper(),
    )


def build_tracker(config: Config, data_file: Optional[Path] = None) -> MaintenanceTracker:
    """Wire the store, image store and (when an API key is set) the odometer reader."""
    reader = None
    if config.openai_api_key:
        reader = VisionOdometerReader(
            config.openai_api_key, config.openai_base_url, config.odo_model
        )
    else:
        logger.info("OPENAI_API_KEY not set; odometer detection disabled")
    return MaintenanceTracker(
        YamlEntityStore(data_file or config.data_file),
        LocalImageStore(config.image_dir, config.image_base_url),
        reader,
        soon_ratio=config.due_soon_ratio,
        no_history=config.no_history,
    )
