"""Global configuration — loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class OsUtilsSettings(BaseSettings):
    temp_dir_prefix: str = "osutils"
    temp_root: Path | None = None  # None means tempfile.gettempdir()
    dir_mode: int = 0o755
    copy_chunk_size: int = 64 * 1024  # bytes per read when pumping in-memory streams

    model_config = {"env_prefix": "OSUTILS_"}


settings = OsUtilsSettings()
