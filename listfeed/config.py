"""Service settings using pydantic-settings."""

from datetime import timedelta
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ListFeedSettings(BaseSettings):
    """Settings for the firehose worker and identity resolution.

    All settings can be configured via environment variables with the
    LISTFEED_ prefix. For example:
    - LISTFEED_SUBSCRIPTION_ENDPOINT=wss://bsky.network
    - LISTFEED_SUBSCRIPTION_RECONNECT_DELAY=PT5S
    - LISTFEED_RETAIN_HISTORY_HOURS=24

    Durations are given as ISO 8601 strings (e.g. PT5H).

    Attributes:
        subscription_endpoint: Firehose service to subscribe to; also the
            key under which the cursor is checkpointed.
        subscription_reconnect_delay: Wait before reconnecting a failed
            subscription.
        max_reconnect_delay: When set, reconnect delays back off
            exponentially up to this cap instead of staying constant.
        retain_history_hours: Posts indexed longer ago are compacted away.
        checkpoint_interval: Handled commits between cursor checkpoints.
        handle_cache_max: Maximum entries in the handle cache.
        handle_cache_ttl: Maximum age of a handle cache entry.
        appview_url: XRPC endpoint used for handle and profile lookups.
        log_level: Root logging level for the worker.
    """

    subscription_endpoint: str = "wss://bsky.network"
    subscription_reconnect_delay: timedelta = timedelta(seconds=3)
    max_reconnect_delay: timedelta | None = None
    retain_history_hours: int = Field(default=48, ge=0)
    checkpoint_interval: int = Field(default=20, ge=1)

    handle_cache_max: int = Field(default=1000, ge=1)
    handle_cache_ttl: timedelta = timedelta(hours=5)
    appview_url: str = "https://public.api.bsky.app/xrpc"

    log_level: LogLevel = "INFO"

    model_config = {"env_prefix": "LISTFEED_"}

    @property
    def retain_history(self) -> timedelta:
        return timedelta(hours=self.retain_history_hours)
