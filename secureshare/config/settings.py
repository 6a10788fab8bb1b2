# secureshare/config/settings.py
import secrets

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SECURESHARE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(
        default="secureshare",
        description="Service name for FastAPI.",
    )
    log_level: str = Field(default="INFO", description="Root log level.")

    # Storage
    database_path: str = Field(
        default="data/secureshare.db",
        description="SQLite file holding slots, files and text records.",
    )
    uploads_dir: str = Field(
        default="uploads",
        description="Directory where uploaded blobs are kept under random names.",
    )

    # Slot policy
    slot_ttl_hours: int = Field(default=24, ge=1, description="Lifetime of a slot.")
    max_failed_attempts: int = Field(
        default=3,
        ge=1,
        description="Wrong passwords tolerated before the slot is deleted.",
    )
    min_password_length: int = Field(default=4, ge=1)
    max_files_per_upload: int = Field(default=50, ge=1)

    # Sweep
    sweep_enabled: bool = Field(default=True, description="Run the periodic expiry sweep.")
    sweep_interval_minutes: int = Field(default=60, ge=1)
    orphan_blob_grace_minutes: int = Field(
        default=60,
        ge=1,
        description=(
            "Unreferenced blobs younger than this are left alone by the sweep. "
            "Must exceed the time an upload takes to register a written blob."
        ),
    )

    # Argon2 cost parameters
    argon2_time_cost: int = Field(default=3, ge=1)
    argon2_memory_cost: int = Field(default=65536, ge=8, description="KiB.")
    argon2_parallelism: int = Field(default=4, ge=1)

    # Download tokens
    secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Signing key for download tokens. Random per process if unset.",
    )
    download_token_ttl_seconds: int = Field(default=600, ge=1)
