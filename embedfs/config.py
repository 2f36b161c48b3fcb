from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8')

    app_name: str = 'embedfs'
    app_host: str = '0.0.0.0'
    app_port: int = 8080
    log_level: str = 'info'
    fs_backend: str = Field(default='embedded', pattern='^(embedded|host)$')
    host_root: str = '/srv/www'
    index_name: str = 'index.html'
    chunk_size: int = Field(default=64 * 1024, ge=512, le=8 * 1024 * 1024)


settings = Settings()
