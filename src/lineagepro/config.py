from functools import lru_cache
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(RuntimeError):
    """Configuration-related error."""
    pass


# ─────────────────────────────────────────────────────────────
# Section configs
# ─────────────────────────────────────────────────────────────


class LoggingSettings(BaseModel):
    level: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = "INFO"
    format: str = (
        "%(asctime)-20s %(name)-40s "
        "%(levelname)-8s: %(message)s"
    )


class StorageSettings(BaseModel):
    """
    Where the diagram state is persisted.

    In production, override via:
    - env var:     LINEAGEPRO_STORAGE__BACKEND, LINEAGEPRO_STORAGE__URL
    - dotenv:      .env / .env.local
    """
    backend: Literal["memory", "sql", "zookeeper"] = Field(
        "sql",
        description="Key-value backend holding the nodes/edges/legend values.",
    )
    url: str = Field(
        "sqlite:///lineagepro.db",
        description="SQLAlchemy-style database URL for the 'sql' backend.",
    )
    table: str = Field(
        "kv_store",
        description="Table holding the key-value rows for the 'sql' backend.",
    )
    namespace: str | None = Field(
        default=None,
        description="Optional namespace prefixed to every key, e.g. a diagram name.",
    )


class ZookeeperSettings(BaseModel):
    hosts: str = Field(
        "localhost:2181",
        description="Comma-separated host:port pairs for Zookeeper ensemble.",
    )
    chroot: str | None = Field(
        default=None,
        description="Optional chroot path, e.g. /lineagepro.",
    )
    connection_timeout_s: float = Field(
        5.0,
        description="Initial connection timeout in seconds.",
    )
    max_retries: int = Field(
        5,
        description="Maximum number of retry attempts for failed operations.",
    )
    retry_delay_s: float = Field(
        1.0,
        description="Delay between retries in seconds.",
    )


class CanvasSettings(BaseModel):
    default_x: float = Field(350.0, description="X position of newly created tables.")
    default_y: float = Field(150.0, description="Y position of newly created tables.")
    default_color: str = Field(
        "#1e293b",
        description="Header color for tables created without an explicit color.",
    )
    identity: Literal["opaque", "name"] = Field(
        "opaque",
        description="Node identity mode: assigned-once ids or ids equal to the table name.",
    )
    grammar: Literal["lines", "commas"] = Field(
        "lines",
        description="Column text grammar used by the table form.",
    )


class ExportSettings(BaseModel):
    """
    Export settings.

    Page sizes are in pixels at `dpi`; the defaults are A4 at 150 dpi.
    """
    max_workers: int = Field(2, description="Threads available for background exports.")
    basename: str = Field("lineage", description="Base filename for downloads.")
    page_width_px: int = Field(1240, description="PDF page width in pixels.")
    page_height_px: int = Field(1754, description="PDF page height in pixels.")
    dpi: float = Field(150.0, description="Resolution recorded in the PDF.")

    def validate_pages(self) -> None:
        if self.page_width_px <= 0 or self.page_height_px <= 0:
            raise ConfigError(
                f"PDF page size must be positive, got "
                f"{self.page_width_px}x{self.page_height_px}"
            )


# ─────────────────────────────────────────────────────────────
# Top-level settings
# ─────────────────────────────────────────────────────────────


class AppSettings(BaseSettings):
    """
    Canonical application configuration for the lineage editor.

    Precedence (highest → lowest):

    1. Init kwargs (tests/overrides)
    2. Environment variables
    3. .env and .env.local
    4. Defaults in this class
    """

    model_config = SettingsConfigDict(
        env_prefix="LINEAGEPRO_",  # LINEAGEPRO_LOGGING__LEVEL, LINEAGEPRO_STORAGE__URL, ...
        env_file=(".env", ".env.local"),  # .env.local overrides .env
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    app_name: str = "lineagepro"
    debug: bool = False

    logging: LoggingSettings = LoggingSettings()
    storage: StorageSettings = StorageSettings()  # type: ignore[call-arg]
    zookeeper: ZookeeperSettings = ZookeeperSettings()  # type: ignore[call-arg]
    canvas: CanvasSettings = CanvasSettings()  # type: ignore[call-arg]
    export: ExportSettings = ExportSettings()  # type: ignore[call-arg]


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """
    Cached accessor for process-wide settings.

    `overrides` are init kwargs → highest precedence (handy in tests).
    """
    settings = AppSettings(**overrides)
    settings.export.validate_pages()
    return settings
