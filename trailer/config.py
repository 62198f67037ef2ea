"""Configuration management using Pydantic BaseSettings.

This module provides centralized configuration management with validation,
type safety, and sensible defaults for trailer. Credentials for the source
(Docker) account use the ``TESTRAIL_`` prefix, credentials for the target
(Mirantis) account the ``MIRANTIS_TESTRAIL_`` prefix.
"""
from typing import Dict, List, Tuple
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
import json


# Closed vocabulary of status names found in exported reports.
STATUS_NAMES = (
    "Passed",
    "Blocked",
    "Untested",
    "Retest",
    "Failed",
    "WontTest",
    "MixedSuccess",
    "WontFix",
    "InProgress",
    "NotRelevant",
)

UNTESTED_STATUS = "Untested"

# Status IDs of the target account (GET get_statuses). IDs above 6 are custom
# statuses and differ between accounts.
DEFAULT_STATUS_CODES: Dict[str, int] = {
    "Passed": 1,
    "Blocked": 2,
    "Untested": 3,
    "Retest": 4,
    "Failed": 5,
    "WontTest": 12,
    "MixedSuccess": 11,
    "WontFix": 10,
    "InProgress": 7,
    "NotRelevant": 12,
}


class Config(BaseSettings):
    """Main configuration class combining all settings.

    Each field is read from the environment variable of the same name,
    upper-cased (``testrail_token`` ← ``TESTRAIL_TOKEN``).
    """

    # Source TestRail account
    testrail_url: str = Field("https://docker.testrail.com", description="Source TestRail base URL")
    testrail_username: str = Field("", description="Source TestRail user")
    testrail_token: str = Field("", description="Source TestRail API token")

    # Target TestRail account
    mirantis_testrail_url: str = Field("https://mirantis.testrail.com", description="Target TestRail base URL")
    mirantis_testrail_username: str = Field("", description="Target TestRail user")
    mirantis_testrail_token: str = Field("", description="Target TestRail API token")

    testrail_timeout: int = Field(30, ge=5, le=300, description="Request timeout in seconds")

    # Catalog scope for migrations
    source_project_id: int = Field(3, ge=1, description="Source project ID")
    source_suite_id: int = Field(33, ge=1, description="Source suite ID")
    target_project_id: int = Field(21, ge=1, description="Target project ID")
    target_suite_id: int = Field(10657, ge=1, description="Target suite ID")

    # Result translation
    status_codes_json: str = Field("", description="JSON mapping status name to target status ID")
    upload_retries: int = Field(1, ge=1, le=50, description="Submission attempts before giving up")

    # Logging Configuration
    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log format")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    @field_validator('status_codes_json')
    @classmethod
    def validate_status_codes(cls, v):
        if v.strip():
            try:
                codes = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f'Invalid JSON in status_codes_json: {e}')
            if not isinstance(codes, dict):
                raise ValueError('status_codes_json must be a JSON object')
            for name, code in codes.items():
                if name not in STATUS_NAMES:
                    raise ValueError(f'Unknown status "{name}". Valid options: {list(STATUS_NAMES)}')
                if not isinstance(code, int) or isinstance(code, bool):
                    raise ValueError(f'Status code for "{name}" must be an integer')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Invalid log level: {v}. Valid options: {valid_levels}')
        return v.upper()

    def get_status_codes(self) -> Dict[str, int]:
        """Return the status-name to status-ID table, overrides applied."""
        codes = dict(DEFAULT_STATUS_CODES)
        if self.status_codes_json.strip():
            codes.update(json.loads(self.status_codes_json))
        return codes

    def source_credentials(self) -> Tuple[str, str, str]:
        return self.testrail_url, self.testrail_username, self.testrail_token

    def target_credentials(self) -> Tuple[str, str, str]:
        return self.mirantis_testrail_url, self.mirantis_testrail_username, self.mirantis_testrail_token

    def validate_configuration(self, require_target: bool = False) -> List[str]:
        """Validate the complete configuration and return any issues."""
        issues = []

        if not self.testrail_username or not self.testrail_token:
            issues.append("Need to set TESTRAIL_USERNAME and TESTRAIL_TOKEN")
        if require_target and (not self.mirantis_testrail_username or not self.mirantis_testrail_token):
            issues.append("Need to set MIRANTIS_TESTRAIL_USERNAME and MIRANTIS_TESTRAIL_TOKEN")

        if not self.testrail_url.startswith(("http://", "https://")):
            issues.append("TESTRAIL_URL must be an http(s) URL")
        if require_target and not self.mirantis_testrail_url.startswith(("http://", "https://")):
            issues.append("MIRANTIS_TESTRAIL_URL must be an http(s) URL")

        return issues

    def log_configuration(self) -> None:
        """Log the current configuration (sanitized)."""
        from trailer.utils.logger import log_info

        log_info("Configuration loaded",
                 testrail_url=self.testrail_url,
                 mirantis_testrail_url=self.mirantis_testrail_url,
                 source_scope=f"{self.source_project_id}/{self.source_suite_id}",
                 target_scope=f"{self.target_project_id}/{self.target_suite_id}",
                 upload_retries=self.upload_retries,
                 log_level=self.log_level)


# Global configuration instance (lazy loading)
_config = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config(**overrides) -> Config:
    """Reload configuration from environment variables.

    Keyword arguments take precedence over the environment and .env.
    """
    global _config
    _config = Config(**overrides)
    return _config
