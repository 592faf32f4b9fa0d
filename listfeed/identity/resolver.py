"""Handle and DID resolution against the network, optionally cached."""

from typing import TYPE_CHECKING

from atproto import AsyncClient
from atproto_core.exceptions import AtProtocolError

from ..exceptions import InvalidHandleError
from .cache import HandleCache

if TYPE_CHECKING:
    from ..config import ListFeedSettings


class IdentityResolver:
    """Resolves handles to DIDs and DIDs to handles.

    Lookups go through ``cache`` when one is given; the network is only
    consulted on a cache miss.

    Attributes:
        client: atproto client pointed at an AppView/PDS
        cache: Optional HandleCache shared by all request paths

    Example:
        >>> resolver = IdentityResolver(
        ...     AsyncClient(base_url="https://public.api.bsky.app/xrpc"),
        ...     cache=await HandleCache.create(max=1000, ttl=timedelta(hours=5)),
        ... )
        >>> await resolver.resolve_handle("alice.bsky.social")
        'did:plc:...'
    """

    def __init__(self, client: AsyncClient, cache: HandleCache | None = None) -> None:
        self.client = client
        self.cache = cache

    @classmethod
    async def from_settings(cls, settings: "ListFeedSettings") -> "IdentityResolver":
        """Build a cached resolver against the configured AppView."""
        cache = await HandleCache.create(
            max=settings.handle_cache_max, ttl=settings.handle_cache_ttl
        )
        return cls(AsyncClient(base_url=settings.appview_url), cache=cache)

    async def close(self) -> None:
        if self.cache is not None:
            await self.cache.close()

    async def resolve_handle(self, handle: str) -> str:
        """Resolve a handle to its DID.

        Raises:
            InvalidHandleError: If the network cannot resolve the handle
        """

        async def resolve() -> str:
            try:
                response = await self.client.com.atproto.identity.resolve_handle(
                    params={"handle": handle}
                )
            except AtProtocolError as err:
                raise InvalidHandleError(f'Unable to resolve handle "{handle}"') from err
            return response.did

        if self.cache is None:
            return await resolve()
        return await self.cache.fetch_did(handle, resolve)

    async def resolve_did(self, did: str) -> str:
        """Resolve a DID to its current handle.

        Raises:
            AtProtocolError: If the profile lookup fails
        """

        async def resolve() -> str:
            profile = await self.client.app.bsky.actor.get_profile(params={"actor": did})
            return profile.handle

        if self.cache is None:
            return await resolve()
        return await self.cache.fetch_handle(did, resolve)

    async def resolve_handles(self, handles: list[str]) -> list[str]:
        """Resolve several handles, preserving order.

        Raises:
            InvalidHandleError: For the first handle that cannot be resolved
        """
        return [await self.resolve_handle(handle) for handle in handles]
