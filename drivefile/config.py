from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings

from drivefile.formatting import CHARACTER_LIMIT


class Settings(BaseSettings):
    google_client_id: str = ""
    google_client_secret: str = ""
    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 3000
    token_file: Path = Path(".tokens.json")
    character_limit: int = CHARACTER_LIMIT
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def is_http(self) -> bool:
        return self.transport == "http"

    @property
    def base_url(self) -> str:
        return f"http://localhost:{self.port}"

    @property
    def redirect_uri(self) -> str:
        """OAuth redirect: the local callback route in HTTP mode, bare localhost for copy/paste in stdio."""
        if self.is_http:
            return f"{self.base_url}/oauth/callback"
        return "http://localhost"


@lru_cache
def get_settings() -> Settings:
    return Settings()
