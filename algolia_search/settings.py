"""
Runtime settings for the Algolia search client.

**PURPOSE**: Provide defaults for client identity, timeouts and diagnostics via
environment variables, so applications can configure the client without code.

**CONFIGURATION SOURCE**: Environment variables with ALGOLIA_ prefix

**PRECEDENCE**: Arguments passed to `SearchClient` always win over settings.

Provides configuration management using Pydantic settings with support for:
- Environment variables with ALGOLIA_ prefix
- Runtime settings override
- Type validation and defaults
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


__all__ = [
    "ClientSettings",
    "client_settings",
]


class ClientSettings(BaseSettings):
    """
    Application settings for the search client.

    Settings can be configured via:
    - Environment variables (prefixed with ALGOLIA_)
    - Direct instantiation with parameters
    - Runtime override using the override() method

    Attributes:
        application_id: Default application ID when none is passed to the client
        api_key: Default API key when none is passed to the client
        connect_timeout_ms: Connection timeout applied to every request
        socket_timeout_ms: Read timeout for regular (non-search) requests
        search_timeout_ms: Read timeout for latency-sensitive search requests
        verbose: Log per-host soft failures at INFO instead of DEBUG
        batch_chunk_size: Number of actions per request in chunked batches
    """

    application_id: str | None = Field(
        None,
        description="Application ID from the dashboard",
    )

    api_key: str | None = Field(
        None,
        description="API key used to authenticate requests",
    )

    connect_timeout_ms: int = Field(
        2000,
        gt=0,
        description="Connection timeout in milliseconds",
    )

    socket_timeout_ms: int = Field(
        30000,
        gt=0,
        description="Socket (read) timeout in milliseconds for non-search requests",
    )

    search_timeout_ms: int = Field(
        5000,
        gt=0,
        description="Socket (read) timeout in milliseconds for search requests",
    )

    verbose: bool = Field(
        False,
        description="Log unreachable hosts at INFO level",
    )

    batch_chunk_size: int = Field(
        1000,
        gt=0,
        description="Number of actions sent per request by chunked batch operations",
    )

    model_config = SettingsConfigDict(
        env_prefix="ALGOLIA_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    def override(self, update=None):
        # type: (dict|None) -> ClientSettings
        """
        Returns an updated and validated deep copy of the current settings instance.

        :param update: Dictionary of field names and values to override.
        :return: New ClientSettings instance with updated and validated fields.
        """

        update = update or {}  # sets {} if update is None

        settings = self.model_copy(deep=True)
        # We need update fields individually so validation gets triggered
        for field, value in update.items():
            setattr(settings, field, value)
        return settings


client_settings = ClientSettings()
