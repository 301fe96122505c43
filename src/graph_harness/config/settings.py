"""
Harness configuration loaded from the environment
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


@dataclass
class HarnessConfig:
    """Remote graph API testing configuration"""

    # Remote API
    api_base_url: str = field(default_factory=lambda: os.getenv('TEST_API_BASE_URL', 'http://localhost:8080'))
    graphql_path: str = field(default_factory=lambda: os.getenv('GRAPHQL_PATH', '/graphql'))
    request_timeout: float = field(default_factory=lambda: _env_float('TEST_TIMEOUT_SECONDS', '30'))
    max_retries: int = field(default_factory=lambda: int(os.getenv('TEST_MAX_RETRIES', '3')))

    # Authentication: static token, OAuth client assertion, or none
    api_token: Optional[str] = field(default_factory=lambda: os.getenv('TEST_API_TOKEN') or None)
    oauth_service_id: str = field(default_factory=lambda: os.getenv('OAUTH_SERVICE_ID', 'qa_graph_harness'))
    oauth_private_key: str = field(default_factory=lambda: os.getenv('TEST_OAUTH_PRIVATE_KEY', '').replace('\\n', '\n'))
    oauth_audience: str = field(default_factory=lambda: os.getenv('OAUTH_AUDIENCE', 'graph-auth-server'))
    oauth_token_path: str = field(default_factory=lambda: os.getenv('OAUTH_TOKEN_PATH', '/oauth2/token'))

    # Polling and data generation
    poll_interval: float = field(default_factory=lambda: _env_float('HARNESS_POLL_INTERVAL', '0.5'))
    test_data_prefix: str = field(default_factory=lambda: os.getenv('TEST_DATA_PREFIX', 'QA'))

    # Cross-process reporting
    report_dir: Optional[str] = field(default_factory=lambda: os.getenv('HARNESS_REPORT_DIR') or None)

    @property
    def graphql_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}{self.graphql_path}"

    @property
    def uses_oauth(self) -> bool:
        return bool(self.oauth_private_key) and not self.api_token

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if not self.api_base_url:
            errors.append("TEST_API_BASE_URL is required")
        if not self.graphql_path.startswith('/'):
            errors.append("GRAPHQL_PATH must start with '/'")
        if self.request_timeout <= 0:
            errors.append("TEST_TIMEOUT_SECONDS must be positive")
        if self.max_retries < 1:
            errors.append("TEST_MAX_RETRIES must be at least 1")
        if self.poll_interval <= 0:
            errors.append("HARNESS_POLL_INTERVAL must be positive")

        return errors


def get_config(**overrides) -> HarnessConfig:
    """Get validated harness configuration"""
    config = HarnessConfig(**overrides)
    errors = config.validate()

    if errors:
        raise ValueError(f"Configuration errors: {', '.join(errors)}")

    logger.debug(f"Harness configured for {config.graphql_url}")
    return config
