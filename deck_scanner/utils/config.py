"""Configuration and settings management."""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator
from pathlib import Path
import shutil

class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"

    # Local store
    STORE_DB_PATH: str = "cache/deck_scanner.db"
    INITIAL_DATA_PATH: str = "data/initial_data.json"

    # Classifier assets
    MODEL_PATH: str = "models/model.pt"
    LABELS_PATH: str = "models/labels.json"

    # Capture
    CAMERA_INDEX: int = 0
    FRAME_INTERVAL_MS: int = 100

    # OCR
    TESSERACT_PATH: Optional[str] = None

    # Remote pricing/sync service
    SYNC_API_URL: Optional[str] = None
    SYNC_API_KEY: Optional[str] = None

    # Exports
    OUTPUT_DIR: str = "output"

    @field_validator('SYNC_API_URL', 'SYNC_API_KEY', 'TESSERACT_PATH', mode='before')
    @classmethod
    def validate_optional_str(cls, v):
        """Convert empty/whitespace strings to None."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('LOG_LEVEL', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        """Convert empty/whitespace strings to default."""
        if isinstance(v, str) and not v.strip():
            return "INFO"
        return v

    @field_validator('STORE_DB_PATH', mode='before')
    @classmethod
    def validate_store_path(cls, v):
        """Convert empty/whitespace strings to default."""
        if isinstance(v, str) and not v.strip():
            return "cache/deck_scanner.db"
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

# Global settings instance
settings = Settings()

def ensure_store_dir(db_path: Optional[str] = None) -> Path:
    """Ensure the directory holding the SQLite store exists."""
    path = Path(db_path or settings.STORE_DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path

def resolve_tesseract_path() -> str:
    """Get Tesseract path, with fallback to common locations."""
    if settings.TESSERACT_PATH and Path(settings.TESSERACT_PATH).exists():
        return settings.TESSERACT_PATH

    tesseract_path = shutil.which("tesseract")
    if tesseract_path:
        return tesseract_path

    common_paths = [
        "/opt/homebrew/bin/tesseract",  # Apple Silicon Homebrew
        "/usr/local/bin/tesseract",     # Intel Homebrew
        "/usr/bin/tesseract",           # System package
    ]

    for path in common_paths:
        if Path(path).exists():
            return path

    raise FileNotFoundError(
        "Tesseract not found. Please install it (e.g. brew install tesseract)"
    )
