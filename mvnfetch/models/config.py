"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_REPOSITORY_URL = "https://repo.maven.apache.org/maven2"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

SOCKS_SCHEMES = ("socks4://", "socks5://", "socks5h://")
HTTP_PROXY_SCHEMES = ("http://", "https://")


class FetchConfig(BaseModel):
    """A validated configuration model for the application."""

    # Repository
    repository_url: str = DEFAULT_REPOSITORY_URL
    repository_path: str = "./repository"

    # Proxy
    use_proxy: bool = True
    socks_proxy: str = ""
    http_proxy: str = ""

    # Network & Concurrency
    max_workers: int = 8
    request_timeout: float = 60.0
    max_depth: int = 64
    user_agent: str = DEFAULT_USER_AGENT

    # Logging
    log_file: str = ""

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)
    manifest_path: str = Field("pom.xml", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("repository_url")
    @classmethod
    def validate_repository_url(cls, v: str) -> str:
        """Ensures the repository URL is an HTTP(S) URL without a trailing slash."""
        if not v.startswith(HTTP_PROXY_SCHEMES):
            raise ValueError("Repository URL must start with http:// or https://.")
        return v.rstrip("/")

    @field_validator("socks_proxy")
    @classmethod
    def validate_socks_proxy(cls, v: str) -> str:
        if v and not v.startswith(SOCKS_SCHEMES):
            raise ValueError(
                "SOCKS proxy must start with socks4://, socks5:// or socks5h://."
            )
        return v

    @field_validator("http_proxy")
    @classmethod
    def validate_http_proxy(cls, v: str) -> str:
        if v and not v.startswith(HTTP_PROXY_SCHEMES):
            raise ValueError("HTTP proxy must start with http:// or https://.")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of workers."""
        if v < 1 or v > 64:
            raise ValueError("Max workers must be between 1 and 64.")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Request timeout must be positive.")
        return v

    @field_validator("max_depth")
    @classmethod
    def validate_depth(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Max depth must be at least 1.")
        return v

    @model_validator(mode="after")
    def validate_repository_path(self) -> "FetchConfig":
        if not self.repository_path:
            raise ValueError("Repository path cannot be empty.")
        return self

    @property
    def active_proxy(self) -> tuple[str, str] | None:
        """
        Returns the proxy in effect as ``(kind, url)``. SOCKS wins over HTTP when
        both are configured.
        """
        if not self.use_proxy:
            return None
        if self.socks_proxy:
            return "socks", self.socks_proxy
        if self.http_proxy:
            return "http", self.http_proxy
        return None

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path", "manifest_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
