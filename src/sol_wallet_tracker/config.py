import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass
class Config:
    """Application configuration."""

    # API Keys
    api_key: str

    # API URLs
    base_url: str = "https://data.solanatracker.io"

    # Rate limiting
    min_request_interval: float = 2.0  # seconds between request starts
    max_throttle_retries: int = 3
    throttle_backoff: float = 5.0  # multiplied by the retry number
    max_transport_retries: int = 2
    max_upstream_retries: int = 1
    retry_delay: float = 2.0
    request_timeout: float = 30.0

    # Analysis settings
    deep_analysis_limit: int = 50
    empty_holders_retry_delay: float = 2.0

    # Output settings
    output_format: str = "table"  # table, csv, json

    def __post_init__(self):
        if not self.api_key or not self.api_key.strip():
            raise ValueError("An API key is required")

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        api_key = os.getenv("SOLANATRACKER_API_KEY")
        if not api_key:
            raise ValueError(
                "SOLANATRACKER_API_KEY environment variable is required")

        return cls(
            api_key=api_key,
            base_url=os.getenv("SOLANATRACKER_BASE_URL",
                               "https://data.solanatracker.io"),
            min_request_interval=float(
                os.getenv("MIN_REQUEST_INTERVAL", "2.0")),
            max_throttle_retries=int(os.getenv("MAX_THROTTLE_RETRIES", "3")),
            throttle_backoff=float(os.getenv("THROTTLE_BACKOFF", "5.0")),
            max_transport_retries=int(
                os.getenv("MAX_TRANSPORT_RETRIES", "2")),
            max_upstream_retries=int(os.getenv("MAX_UPSTREAM_RETRIES", "1")),
            retry_delay=float(os.getenv("RETRY_DELAY", "2.0")),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30.0")),
            deep_analysis_limit=int(os.getenv("DEEP_ANALYSIS_LIMIT", "50")),
            empty_holders_retry_delay=float(
                os.getenv("EMPTY_HOLDERS_RETRY_DELAY", "2.0")),
            output_format=os.getenv("OUTPUT_FORMAT", "table"),
        )
