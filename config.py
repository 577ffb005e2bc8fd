"""Config management for spotify-oauth-relay."""
import os
from pathlib import Path

from dotenv import load_dotenv


PACKAGE_DIR = Path(__file__).parent

DEFAULT_SCOPE = "user-read-private user-read-email playlist-read-private"


class Settings:
    """Configuration container."""

    def __init__(self, data: dict = None):
        self.data = data or {}

    @property
    def client_id(self) -> str:
        return self.data.get("client_id", "")

    @property
    def client_secret(self) -> str:
        return self.data.get("client_secret", "")

    @property
    def redirect_uri(self) -> str:
        return self.data.get("redirect_uri", "http://localhost:8888/callback/")

    @property
    def app_redirect_uri(self) -> str:
        return self.data.get("app_redirect_uri", "http://localhost:1234/token")

    @property
    def allowed_origin(self) -> str:
        return self.data.get("allowed_origin", "http://localhost:1234")

    @property
    def host(self) -> str:
        return self.data.get("host", "0.0.0.0")

    @property
    def port(self) -> int:
        return int(self.data.get("port", 8888))

    @property
    def scope(self) -> str:
        return self.data.get("scope", DEFAULT_SCOPE)

    @property
    def accounts_url(self) -> str:
        return self.data.get("accounts_url", "https://accounts.spotify.com").rstrip("/")

    @property
    def api_url(self) -> str:
        return self.data.get("api_url", "https://api.spotify.com/v1").rstrip("/")

    @property
    def static_dir(self) -> Path:
        value = self.data.get("static_dir")
        return Path(value) if value else PACKAGE_DIR / "public"

    @property
    def http_timeout(self) -> float:
        return float(self.data.get("http_timeout", 10.0))

    @property
    def session_ttl(self) -> int:
        return int(self.data.get("session_ttl", 24 * 60 * 60))

    @property
    def log_level(self) -> str:
        return self.data.get("log_level", "INFO").upper()

    @property
    def log_format(self) -> str:
        return self.data.get("log_format", "plain").lower()

    def is_valid(self) -> bool:
        """Check if the Spotify client credentials are present."""
        return bool(self.client_id and self.client_secret)


# Environment variable -> settings key
ENV_KEYS = {
    "CLIENT_ID": "client_id",
    "CLIENT_SECRET": "client_secret",
    "REDIRECT_URI": "redirect_uri",
    "APP_REDIRECT_URI": "app_redirect_uri",
    "ALLOWED_ORIGIN": "allowed_origin",
    "HOST": "host",
    "PORT": "port",
    "SPOTIFY_SCOPE": "scope",
    "SPOTIFY_ACCOUNTS_URL": "accounts_url",
    "SPOTIFY_API_URL": "api_url",
    "STATIC_DIR": "static_dir",
    "HTTP_TIMEOUT": "http_timeout",
    "SESSION_TTL": "session_ttl",
    "LOG_LEVEL": "log_level",
    "LOG_FORMAT": "log_format",
}


def load_settings(env_file: Path = None) -> Settings:
    """Load settings from .env and the process environment.

    Variables already set in the environment win over the .env file.
    """
    env_file = env_file or Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    data = {}
    for env_name, key in ENV_KEYS.items():
        value = os.getenv(env_name)
        if value:
            data[key] = value
    return Settings(data)
