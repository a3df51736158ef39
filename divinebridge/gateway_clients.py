"""HTTP clients the handle gateway uses to provision accounts and sync their state."""

from __future__ import annotations

from typing import Any

import httpx


class SyncError(Exception):
    """Raised when a downstream service cannot be reached or answers with an error."""


async def _post_json(
    client: httpx.AsyncClient | None,
    url: str,
    payload: dict[str, Any],
    bearer_token: str | None,
    request_failed: str,
    bad_status: str,
) -> httpx.Response:
    headers = {"Authorization": f"Bearer {bearer_token}"} if bearer_token is not None else {}
    try:
        if client is None:
            async with httpx.AsyncClient() as own_client:
                response = await own_client.post(url, json=payload, headers=headers)
        else:
            response = await client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        raise SyncError(request_failed) from exc
    if response.is_error:
        raise SyncError(bad_status)
    return response


class KeycastClient:
    """Reports account-link state changes to Keycast."""

    def __init__(
        self, sync_url: str, bearer_token: str, client: httpx.AsyncClient | None = None
    ) -> None:
        self.sync_url = sync_url
        self._bearer_token = bearer_token
        self._client = client

    async def sync_ready(self, nostr_pubkey: str, did: str) -> None:
        await self._sync(nostr_pubkey, True, "ready", did, None)

    async def sync_failed(self, nostr_pubkey: str, error: str) -> None:
        await self._sync(nostr_pubkey, True, "failed", None, error)

    async def sync_disabled(self, nostr_pubkey: str) -> None:
        await self._sync(nostr_pubkey, False, "disabled", None, None)

    async def _sync(
        self, nostr_pubkey: str, enabled: bool, state: str, did: str | None, error: str | None
    ) -> None:
        payload = {
            "nostr_pubkey": nostr_pubkey,
            "enabled": enabled,
            "state": state,
            "did": did,
            "error": error,
        }
        await _post_json(
            self._client,
            self.sync_url,
            payload,
            self._bearer_token,
            "keycast sync request failed",
            "keycast sync returned non-success status",
        )


class NameServerClient:
    """Reports the ATProto state of a handle's name to the name server."""

    def __init__(
        self, sync_url: str, bearer_token: str, client: httpx.AsyncClient | None = None
    ) -> None:
        self.sync_url = sync_url
        self._bearer_token = bearer_token
        self._client = client

    async def sync_state_for_handle(self, handle: str, did: str | None, state: str) -> None:
        """Sync ``state`` for the first label of ``handle``; an empty label raises ValueError."""
        name = handle.split(".", 1)[0]
        if not name:
            raise ValueError(f"invalid handle: {handle}")
        payload = {"name": name, "atproto_did": did, "atproto_state": state}
        await _post_json(
            self._client,
            self.sync_url,
            payload,
            self._bearer_token,
            "name server sync request failed",
            "name server sync returned non-success status",
        )


class ProvisioningClient:
    """Asks the provisioning service to create an ATProto account for a Nostr key."""

    def __init__(
        self,
        provision_url: str,
        bearer_token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.provision_url = provision_url
        self._bearer_token = bearer_token
        self._client = client

    async def provision_account(self, nostr_pubkey: str, handle: str) -> str:
        """Provision the account and return its DID."""
        response = await _post_json(
            self._client,
            self.provision_url,
            {"nostr_pubkey": nostr_pubkey, "handle": handle},
            self._bearer_token,
            "provisioning request failed",
            "provisioning request returned non-success status",
        )
        try:
            body = response.json()
        except ValueError as exc:
            raise SyncError("failed to decode provisioning response") from exc
        did = body.get("did") if isinstance(body, dict) else None
        if not isinstance(did, str):
            raise SyncError("failed to decode provisioning response")
        return did