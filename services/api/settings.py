# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
from typing import List
from pathlib import Path

API_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    # Letterhead
    # Relative paths are resolved against this folder (services/api)
    brand_mark_path: str = "assets/sanctuary_logo.svg"

    # Date printed on the letter and in its filename is taken in this zone
    letter_timezone: str = "UTC"

    # Storage ceiling for one assembled letter (bytes).
    # Exceeding it only adds a SizeExceeded warning unless
    # REJECT_OVERSIZED_LETTERS=true, which turns it into HTTP 413 at the API edge.
    letter_size_ceiling_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    reject_oversized_letters: bool = False

    # Upper bound on files accepted in one /letters/generate call
    max_attachments_per_letter: int = Field(default=25, ge=0)

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:8000"

    log_level: str = "INFO"

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(API_DIR / ".env"),
        extra="ignore",
    )

    def resolved_brand_mark_path(self) -> Path:
        path = Path(self.brand_mark_path)
        if not path.is_absolute():
            path = API_DIR / path
        return path

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
