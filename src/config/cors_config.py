"""CORS configuration for the cookie-authenticated API.

The refresh token travels in a cookie, so every environment runs with
credentials enabled and therefore with an explicit origin list.
"""

import logging
import re
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_DEV_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
]
ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
ALLOWED_HEADERS = ["authorization", "content-type"]
# Silent refresh hands the new access token back in this header
EXPOSED_HEADERS = ["x-access-token"]


class CORSConfigurationError(Exception):
    """Raised when CORS configuration is invalid or insecure."""

    pass


def normalize_origin(origin: str) -> str:
    """Normalize an origin URL by stripping whitespace and trailing slashes.

    Raises:
        CORSConfigurationError: If origin is empty, a wildcard or not a URL.

    """
    origin = origin.strip()

    if not origin:
        raise CORSConfigurationError("Origin cannot be empty")

    if origin == "*":
        raise CORSConfigurationError(
            "Wildcard origins (*) cannot be combined with cookie credentials. Provide explicit allowed origins."
        )

    parsed = urlparse(origin)
    if not parsed.scheme or not parsed.netloc:
        raise CORSConfigurationError(f"Invalid origin URL: {origin}")

    return origin.rstrip("/")


def parse_comma_separated_list(value: str | list[str] | None) -> list[str]:
    """Parse a comma-separated string (or list) into a list of trimmed values."""
    if value is None:
        return []

    if isinstance(value, list):
        return [v.strip() for v in value if v.strip()]

    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]

    raise CORSConfigurationError(f"Invalid value type: {type(value)}")


def compile_regex_pattern(pattern: str) -> re.Pattern[str]:
    """Compile an origin regex, anchoring it at the start."""
    if not pattern.startswith("^"):
        pattern = "^" + pattern
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise CORSConfigurationError(f"Invalid regex pattern: {pattern}") from exc


class CORSConfiguration:
    """Validated CORS settings for one environment."""

    def __init__(
        self,
        allow_origins: list[str],
        allow_origin_regex: str | None = None,
        max_age: int = 600,
        environment: str = "development",
    ):
        self.environment = environment.lower()
        self.max_age = max_age
        self.allow_origins = [normalize_origin(o) for o in allow_origins]
        self.origin_regex = compile_regex_pattern(allow_origin_regex) if allow_origin_regex else None

        if not self.allow_origins and self.origin_regex is None:
            raise CORSConfigurationError(
                f"{self.environment.capitalize()} environment requires explicit allowed origins"
            )

    @classmethod
    def for_environment(
        cls,
        environment: str,
        allow_origins: str | list[str] | None = None,
        allow_origin_regex: str | None = None,
        max_age: int = 600,
    ) -> "CORSConfiguration":
        """Build the configuration for an environment.

        Development falls back to local frontend origins; staging and
        production must name their origins explicitly.
        """
        origins = parse_comma_separated_list(allow_origins)
        if not origins and environment == "development":
            origins = list(DEFAULT_DEV_ORIGINS)

        if environment == "production":
            max_age = max(max_age, 3600)

        return cls(
            allow_origins=origins,
            allow_origin_regex=allow_origin_regex,
            max_age=max_age,
            environment=environment,
        )

    def get_middleware_config(self) -> dict:
        """Get keyword arguments for Starlette's CORSMiddleware."""
        return {
            "allow_origins": self.allow_origins,
            "allow_origin_regex": self.origin_regex.pattern if self.origin_regex else None,
            "allow_credentials": True,
            "allow_methods": ALLOWED_METHODS,
            "allow_headers": ALLOWED_HEADERS,
            "expose_headers": EXPOSED_HEADERS,
            "max_age": self.max_age,
        }

    def log_configuration(self) -> None:
        """Log effective CORS configuration at startup."""
        regex_display = "Enabled" if self.origin_regex else "Disabled"
        logger.info(
            f"CORS configured for {self.environment}: origins={self.allow_origins}, "
            f"regex={regex_display}, max_age={self.max_age}s"
        )
