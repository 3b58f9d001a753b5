from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_ROOT = Path(__file__).resolve().parents[2]


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Use top level .env file (one level above ./backend/)
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "probehost"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    APP_VERSION: str = "0.1.0"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []
    SENTRY_DSN: str | None = None

    # Shared app data root; per-plugin data lives under APP_DATA_DIR/plugins_data/<id>
    APP_DATA_DIR: Path = Path("~/.local/share/probehost")
    PLUGINS_DIR: Path = BACKEND_ROOT / "plugins"
    # Relative paths resolve against APP_DATA_DIR
    PLUGIN_SETTINGS_FILE: Path = Path("settings.json")

    # Run-level deadline for one probe (ms)
    PROBE_TIMEOUT_MS: int = Field(default=10_000, gt=0)
    # Default request-level deadline for http.request when the script passes none (ms)
    PROBE_HTTP_TIMEOUT_MS: int = Field(default=5_000, gt=0)
    # Comma-separated host patterns (exact, *.example.com or *)
    PROBE_HTTP_ALLOWED_HOSTS: str = "*"
    PROBE_HTTP_BLOCK_PRIVATE_NETWORKS: bool = False
    PROBE_BATCH_MAX_WORKERS: int = Field(default=8, ge=1)

    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path | None = None
    LOG_MAX_BYTES: int = 10_000_000

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def app_data_path(self) -> Path:
        return self.APP_DATA_DIR.expanduser()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def plugin_settings_path(self) -> Path:
        path = self.PLUGIN_SETTINGS_FILE.expanduser()
        if path.is_absolute():
            return path
        return self.app_data_path / path

    @computed_field  # type: ignore[prop-decorator]
    @property
    def http_allowed_hosts(self) -> frozenset[str]:
        raw = (self.PROBE_HTTP_ALLOWED_HOSTS or "").strip()
        return frozenset(h.strip().lower() for h in raw.split(",") if h.strip())


settings = Settings()  # type: ignore
