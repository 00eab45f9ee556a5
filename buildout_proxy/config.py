"""
Configuration settings for the Buildout listings proxy.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Buildout API
    buildout_base_url: str = "https://buildout.com/api/v1"
    buildout_api_key: str = ""
    request_timeout_seconds: float = 15.0
    properties_page_size: int = 200
    lease_spaces_page_size: int = 1000
    brokers_page_size: int = 1000

    # Manual refresh
    refresh_token: str = ""
    min_refresh_interval_seconds: int = 15 * 60
    refresh_on_startup: bool = True

    # Disk snapshot ("" = /data if mounted, else local data/ dir)
    data_dir: str = ""

    # CORS
    frontend_url: str = ""

    # Logging
    log_level: str = "INFO"

    # Consumer side (listings table)
    proxy_api_base: str = "http://localhost:3000/api"
    client_page_size: int = 30
    client_page_delay_seconds: float = 1.25
    client_timeout_seconds: float = 12.0
    debug_sizes: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def buildout_api_root(self) -> str:
        """Base URL including the account key segment."""
        base = self.buildout_base_url.rstrip("/")
        if self.buildout_api_key:
            return f"{base}/{self.buildout_api_key}"
        return base


@lru_cache()
def get_settings() -> Settings:
    return Settings()
