from typing import Any, Dict, List, Optional

from pydantic import AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .search.models import SearchFieldConfig


class Settings(BaseSettings):
    cms_api_base_url: AnyHttpUrl = "http://localhost:8080/umbraco/api/searchsync/"
    cms_api_key: SecretStr = SecretStr("")

    search_service_url: AnyHttpUrl = "https://localhost.search.windows.net/"
    search_api_key: SecretStr = SecretStr("")
    search_api_version: str = "2020-06-30"
    index_name: str = "umbraco"

    # Session id lists live under {data_root_path}/sessions/{session_id}/
    data_root_path: str = "/app/data"

    reindex_batch_size: int = Field(default=999, gt=0, le=1000)
    schema_cache_ttl: int = 300  # seconds
    http_timeout: float = 30.0

    # JSON-encoded in the environment
    search_fields: List[SearchFieldConfig] = Field(default_factory=list)
    scoring_profiles: List[Dict[str, Any]] = Field(default_factory=list)
    analyzers: List[Dict[str, Any]] = Field(default_factory=list)

    # Modules imported at startup so their computed field parsers register
    parser_modules: List[str] = Field(default_factory=list)

    admin_api_key: Optional[SecretStr] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
