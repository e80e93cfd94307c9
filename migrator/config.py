import logging
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    signing_message: str = "insidor_dapp"
    output_dir: str = "migrated"
    output_format: Literal["fernet", "cryptojs"] = "fernet"
    kdf_iterations: int = 480000
    fail_fast: bool = False
    overwrite: bool = False
    log_level: str = "INFO"
    log_file: str = "data/migrator.log"
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    class Config:
        env_file = ".env"
        env_prefix = "MIGRATOR_"
        case_sensitive = False
        extra = "ignore"  # .env also carries MIGRATOR_API_KEY etc. read via os.getenv()


settings = Settings()


def configure_logging(config: Settings = None):
    """Console logging plus an optional log file. Call once from an entry point."""
    config = config or settings
    handlers = [logging.StreamHandler()]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=handlers,
    )
