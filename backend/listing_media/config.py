# backend/listing_media/config.py
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import ImageFormat, LogLevel, StorageDriver
from .models.media_model import QualityTier


def default_quality_tiers() -> Dict[str, QualityTier]:
    """Default resize targets for listing photos"""
    return {
        "full": QualityTier(name="full", width=1200, height=800, quality=90),
        "large": QualityTier(name="large", width=800, height=533, quality=85),
        "medium": QualityTier(name="medium", width=600, height=400, quality=80),
        "thumbnail": QualityTier(
            name="thumbnail", width=400, height=300, quality=75, aspect="4:3"
        ),
        "small": QualityTier(name="small", width=300, height=200, quality=70),
    }


def default_bunny_region_hosts() -> Dict[str, str]:
    return {
        "de": "https://storage.bunnycdn.com",
        "ny": "https://ny.storage.bunnycdn.com",
        "la": "https://la.storage.bunnycdn.com",
        "sg": "https://sg.storage.bunnycdn.com",
        "syd": "https://syd.storage.bunnycdn.com",
        "uk": "https://uk.storage.bunnycdn.com",
    }


class Settings(BaseSettings):
    environment: str = "development"

    # API
    api_host: str = Field(default="0.0.0.0", description="API host to bind to")
    api_port: int = Field(
        default=8000, ge=1, le=65535, description="API port to bind to"
    )
    api_reload: bool = Field(
        default=False, description="Enable auto-reload for development"
    )
    app_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL of this service, used for local file URLs",
    )

    # CORS - comma-separated string or list
    cors_origins: Union[str, List[str]] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins. Can be comma-separated string.",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert cors_origins to a list of strings"""
        if isinstance(self.cors_origins, str):
            return [origin.strip() for origin in self.cors_origins.split(",")]
        return self.cors_origins

    # ============= PATH CONFIGURATION =============

    data_directory: str = "./data"
    public_url_prefix: str = Field(
        default="/storage", description="URL prefix local public files are served at"
    )
    media_root_path: str = Field(
        default="properties", description="Storage prefix for property media"
    )

    @property
    def data_path(self) -> Path:
        return Path(self.data_directory)

    @property
    def public_storage_path(self) -> Path:
        """Root directory of the local public disk"""
        return self.data_path / "public"

    @property
    def chunked_uploads_path(self) -> Path:
        """Private directory holding in-progress chunked upload sessions"""
        return self.data_path / "chunked-uploads"

    @property
    def logs_directory(self) -> str:
        return str(self.data_path / "logs")

    @property
    def public_base_url(self) -> str:
        return self.app_url.rstrip("/") + "/" + self.public_url_prefix.strip("/")

    def ensure_directories(self):
        """Create all required directories if they don't exist"""
        for directory in [
            self.data_path,
            self.public_storage_path,
            self.chunked_uploads_path,
            Path(self.logs_directory),
        ]:
            directory.mkdir(parents=True, exist_ok=True)

    # ============= STORAGE DRIVERS =============

    image_storage_driver: StorageDriver = Field(
        default=StorageDriver.LOCAL, description="Backend for image variants"
    )
    video_storage_driver: StorageDriver = Field(
        default=StorageDriver.LOCAL, description="Backend for videos"
    )

    # Bunny Storage
    bunny_storage_zone: str = Field(default="", description="Bunny storage zone")
    bunny_api_key: str = Field(default="", description="Bunny storage AccessKey")
    bunny_region: str = Field(default="de", description="Bunny storage region code")
    bunny_cdn_url: str = Field(default="", description="Pull zone base URL")
    bunny_region_hosts: Dict[str, str] = Field(
        default_factory=default_bunny_region_hosts,
        description="Region code to storage API host",
    )
    bunny_insecure_skip_verify: bool = Field(
        default=False,
        description="Disable TLS certificate verification for Bunny requests",
    )
    storage_request_timeout: float = Field(
        default=30.0, gt=0, le=600, description="Storage request timeout in seconds"
    )
    storage_connect_timeout: float = Field(
        default=10.0, gt=0, le=120, description="Storage connect timeout in seconds"
    )

    # ============= IMAGE LIMITS =============

    image_max_size_bytes: int = Field(
        default=5 * 1024 * 1024, ge=1, description="Maximum image upload size"
    )
    image_allowed_extensions: List[str] = Field(
        default=["jpeg", "jpg", "png", "webp"]
    )
    image_allowed_mime_types: List[str] = Field(
        default=["image/jpeg", "image/jpg", "image/png", "image/webp"]
    )
    image_max_width: int = Field(default=8000, ge=1)
    image_max_height: int = Field(default=6000, ge=1)
    max_images_per_request: int = Field(default=10, ge=1, le=100)
    max_images_per_property: int = Field(default=20, ge=1, le=500)
    dangerous_extensions: List[str] = Field(
        default=["php", "exe", "bat", "cmd", "com", "pif", "scr", "vbs", "js"]
    )

    # ============= VARIANT GENERATION =============

    image_quality_tiers: Dict[str, QualityTier] = Field(
        default_factory=default_quality_tiers
    )
    quality_preserve_threshold_bytes: int = Field(
        default=2 * 1024 * 1024,
        ge=0,
        description="Originals at or below this size get the quality boost",
    )
    quality_boost_delta: int = Field(default=3, ge=0, le=50)
    quality_boost_cap: int = Field(default=98, ge=1, le=100)
    quality_boost_tiers: List[str] = Field(default=["full"])
    progressive_threshold_bytes: int = Field(
        default=4 * 1024 * 1024,
        ge=0,
        description="Originals above this size are encoded progressive",
    )
    fallback_image_format: ImageFormat = Field(
        default=ImageFormat.JPEG,
        description="Format used when the tier format is unavailable",
    )

    # ============= VIDEO LIMITS =============

    video_max_size_bytes: int = Field(default=500 * 1024 * 1024, ge=1)
    video_allowed_extensions: List[str] = Field(
        default=["mp4", "avi", "mov", "wmv", "flv", "webm"]
    )
    video_allowed_mime_types: List[str] = Field(
        default=[
            "video/mp4",
            "video/x-msvideo",
            "video/quicktime",
            "video/x-ms-wmv",
            "video/x-flv",
            "video/webm",
        ]
    )
    max_videos_per_request: int = Field(default=1, ge=1, le=10)

    # ============= CHUNKED UPLOADS =============

    chunk_min_size_bytes: int = Field(
        default=1024, ge=1, description="Smallest chunk size a session may declare"
    )
    chunk_max_size_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Largest chunk size a session may declare",
    )
    chunked_session_ttl_seconds: int = Field(
        default=24 * 3600,
        ge=60,
        description="Abandoned sessions older than this are removed",
    )

    # ============= CACHE =============

    media_cache_ttl_seconds: int = Field(default=3600, ge=1)
    listing_cache_ttl_seconds: int = Field(default=1800, ge=1)

    # ============= RATE LIMITING =============

    upload_rate_limit: int = Field(
        default=10, ge=1, description="Uploads allowed per client per window"
    )
    upload_rate_window_seconds: int = Field(default=60, ge=1)

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file path (optional)"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v) -> LogLevel:
        """Validate log level is one of the allowed values"""
        if isinstance(v, LogLevel):
            return v
        allowed_levels = LogLevel.__members__.keys()
        v_upper = str(v).upper()
        if v_upper not in allowed_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(allowed_levels)}"
            )
        return LogLevel[v_upper]

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values"""
        allowed_envs = ["development", "testing", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed_envs:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {', '.join(allowed_envs)}"
            )
        return v_lower

    @field_validator("bunny_region")
    @classmethod
    def normalize_bunny_region(cls, v: str) -> str:
        # Unknown codes are resolved (with a warning) by the Bunny backend
        return v.strip().lower()

    @field_validator("bunny_region_hosts")
    @classmethod
    def validate_region_hosts(cls, v: Dict[str, str]) -> Dict[str, str]:
        """The 'de' host is the fallback for unknown regions"""
        normalized = {code.lower(): host for code, host in v.items()}
        if "de" not in normalized:
            raise ValueError("bunny_region_hosts must define the 'de' region")
        return normalized

    @field_validator(
        "image_allowed_extensions",
        "video_allowed_extensions",
        "dangerous_extensions",
    )
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [ext.lower().lstrip(".") for ext in v]

    @field_validator("image_allowed_mime_types", "video_allowed_mime_types")
    @classmethod
    def normalize_mime_types(cls, v: List[str]) -> List[str]:
        return [mime.lower() for mime in v]

    @field_validator("image_quality_tiers")
    @classmethod
    def validate_quality_tiers(
        cls, v: Dict[str, QualityTier]
    ) -> Dict[str, QualityTier]:
        """Every tier must be keyed by its own name"""
        if not v:
            raise ValueError("At least one image quality tier must be configured")
        for key, tier in v.items():
            if key != tier.name:
                raise ValueError(
                    f"Quality tier key '{key}' does not match tier name '{tier.name}'"
                )
        return v

    def get_quality_tiers(self) -> List[QualityTier]:
        return list(self.image_quality_tiers.values())

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


# Global settings instance
settings = Settings()
