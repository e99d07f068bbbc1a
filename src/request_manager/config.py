"""
Configuration management for the Request Manager.

Supports configuration via environment variables and .env files.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RequestOptions(BaseModel):
    """
    Template for the options of every request in a run.

    Each target is merged into a copy of this template to form the
    per-item request. Unknown keys are kept and handed to the transport.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    method: str = Field(
        default="GET",
        description="HTTP method used for every request"
    )
    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Headers sent with every request"
    )
    params: Dict[str, Any] = Field(
        default_factory=dict,
        description="Query string parameters"
    )
    json_body: Optional[Any] = Field(
        default=None,
        alias="json",
        description="JSON payload sent as the request body"
    )
    data: Optional[Any] = Field(
        default=None,
        description="Form payload sent as the request body"
    )
    cookies: Optional[Dict[str, str]] = Field(
        default=None,
        description="Cookies sent with every request"
    )
    follow_redirects: Optional[bool] = Field(
        default=None,
        description="Override the transport's redirect policy"
    )
    timeout: Optional[float] = Field(
        default=None,
        description="Transport-level timeout in seconds, passed through untouched"
    )

    def for_target(self, target: str) -> Dict[str, Any]:
        """
        Build the options of a single request.

        The template itself is never mutated.
        """
        options = self.model_dump(by_alias=True, exclude_none=True)
        options["url"] = target
        return options


class ManagerConfig(BaseSettings):
    """
    Configuration settings for the Request Manager.

    All settings can be configured via environment variables with the
    REQUEST_MANAGER_ prefix. Range checks on the batching parameters are
    done by BatchState.validate() when a run starts, so that a bad value is
    reported through the error event instead of failing construction.
    """

    model_config = SettingsConfigDict(
        env_prefix="REQUEST_MANAGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Work list
    link_array: List[str] = Field(
        default_factory=list,
        description="Ordered list of targets to request"
    )

    # Batching parameters
    number_concurrent: int = Field(
        default=5,
        description="Number of requests dispatched together in one window"
    )
    wait_time: int = Field(
        default=0,
        description="Pause between windows in milliseconds"
    )

    # Request template
    request_options: RequestOptions = Field(
        default_factory=RequestOptions,
        description="Options merged with each target to form a request"
    )

    # Cancellation behaviour
    deliver_after_stop: bool = Field(
        default=False,
        description=(
            "Keep emitting results of in-flight requests after stop(). "
            "Off by default: once stopped, a run reports nothing further, "
            "although some callers expect requests already issued to still "
            "report their results; enable this for that behaviour"
        )
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )


# Default config instance for the CLI
_config: Optional[ManagerConfig] = None


def get_config() -> ManagerConfig:
    """Get or create the default configuration instance."""
    global _config
    if _config is None:
        _config = ManagerConfig()
    return _config


def set_config(config: ManagerConfig) -> None:
    """Set the default configuration instance."""
    global _config
    _config = config
