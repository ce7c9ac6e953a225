"""Configuration management using pydantic-settings."""

import tomllib
from pathlib import Path
from typing import Self

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .adapters.webservice.b2b import DEFAULT_TIMEOUT, DEFAULT_URL
from .domain.errors import ConfigurationError
from .domain.models import AgeUnit, ErrorPolicy

DEFAULT_BASE = "~/ebill"
DEFAULT_DELAY = 24
CONFIG_PATH = Path("~/.config/ebill-downloader/config.toml").expanduser()


def _expand(v: str | Path | None) -> Path | None:
    return Path(v).expanduser() if v else None


class ServiceConfig(BaseSettings):
    """Webservice endpoint and credentials."""

    model_config = SettingsConfigDict(env_prefix="EBILL_SERVICE_")

    url: str = DEFAULT_URL
    account_id: str = ""
    username: str = ""
    password: SecretStr = SecretStr("")
    verify_tls: bool = True
    ca_cert: Path | None = None
    timeout: float = DEFAULT_TIMEOUT
    archive_data: bool = False

    @field_validator("ca_cert", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path | None) -> Path | None:
        return _expand(v)

    @field_validator("url")
    @classmethod
    def check_scheme(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"Invalid service url: {v}")
        return v

    def require_credentials(self) -> None:
        missing = [
            name
            for name, value in (
                ("account_id", self.account_id),
                ("username", self.username),
                ("password", self.password.get_secret_value()),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing service settings: {', '.join(missing)}")


class PathsConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EBILL_PATHS_")

    base: Path = Path(DEFAULT_BASE)
    downloads_dir: Path | None = None
    lists_dir: Path | None = None
    logs_dir: Path | None = None

    @field_validator("base", "downloads_dir", "lists_dir", "logs_dir", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path | None) -> Path | None:
        return _expand(v)

    @property
    def downloads(self) -> Path:
        return self.downloads_dir or self.base / "downloads"

    @property
    def lists(self) -> Path:
        return self.lists_dir or self.base / "lists"

    @property
    def logs(self) -> Path:
        return self.logs_dir or self.base / "logs"


class DownloadConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EBILL_DOWNLOAD_")

    enabled: bool = True
    archive: bool = False
    delay: int = DEFAULT_DELAY
    delay_unit: AgeUnit = AgeUnit.HOURS
    write_ws_response: bool = False
    timestamp_file_names: bool = False
    on_error: ErrorPolicy = ErrorPolicy.ABORT

    @field_validator("delay")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("delay must not be negative")
        return v


class BillersConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EBILL_BILLERS_")

    convert: bool = False
    mapping_path: Path | None = None

    @field_validator("mapping_path", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path | None) -> Path | None:
        return _expand(v)

    @model_validator(mode="after")
    def require_mapping(self) -> Self:
        if self.convert and self.mapping_path is None:
            raise ValueError("billers.mapping_path is required when convert is enabled")
        return self


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EBILL_")

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    billers: BillersConfig = Field(default_factory=BillersConfig)

    @model_validator(mode="after")
    def ensure_dirs(self) -> Self:
        self.paths.downloads.mkdir(parents=True, exist_ok=True)
        self.paths.lists.mkdir(parents=True, exist_ok=True)
        self.paths.logs.mkdir(parents=True, exist_ok=True)
        return self


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from TOML file, falling back to defaults."""
    path = config_path or CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)

        service = ServiceConfig(**data.get("service", {}))
        paths = PathsConfig(**data.get("paths", {}))
        download = DownloadConfig(**data.get("download", {}))
        billers = BillersConfig(**data.get("billers", {}))
        return Settings(service=service, paths=paths, download=download, billers=billers)

    return Settings()
