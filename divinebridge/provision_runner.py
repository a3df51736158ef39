"""Background provisioning of ATProto accounts for opted-in Nostr keys."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from divinebridge.gateway_clients import (
    KeycastClient,
    NameServerClient,
    ProvisioningClient,
    SyncError,
)

logger = logging.getLogger(__name__)


class ProvisionRunner:
    """Provisions an account, records the outcome and syncs it to Keycast and the name server.

    ``store`` provides ``mark_ready(nostr_pubkey, did)`` and
    ``mark_failed(nostr_pubkey, did, error)``.
    """

    def __init__(
        self,
        store,
        provisioning_client: ProvisioningClient,
        name_server_client: NameServerClient,
        keycast_client: KeycastClient,
    ) -> None:
        self.store = store
        self.provisioning_client = provisioning_client
        self.name_server_client = name_server_client
        self.keycast_client = keycast_client
        self._tasks: set[asyncio.Task] = set()

    def enqueue(self, nostr_pubkey: str, handle: str) -> asyncio.Task:
        """Start provisioning in the background; failures are logged, not raised."""
        task = asyncio.get_running_loop().create_task(self._run_logged(nostr_pubkey, handle))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_logged(self, nostr_pubkey: str, handle: str) -> None:
        try:
            await self.run_once(nostr_pubkey, handle)
        except Exception as exc:
            logger.error(
                "provisioning runner failed for %s (%s): %s", nostr_pubkey, handle, exc
            )

    async def replay_pending(self, pending: Iterable[tuple[str, str]]) -> int:
        """Run provisioning for each pending ``(nostr_pubkey, handle)``; return how many."""
        count = 0
        for nostr_pubkey, handle in pending:
            count += 1
            try:
                await self.run_once(nostr_pubkey, handle)
            except Exception as exc:
                logger.error(
                    "startup replay failed for pending provisioning row %s (%s): %s",
                    nostr_pubkey,
                    handle,
                    exc,
                )
        return count

    async def run_once(self, nostr_pubkey: str, handle: str) -> None:
        """Provision one account and propagate the ready or failed state."""
        try:
            did = await self.provisioning_client.provision_account(nostr_pubkey, handle)
        except Exception as exc:
            await self._record_failure(nostr_pubkey, handle, str(exc))
        else:
            await self._record_ready(nostr_pubkey, handle, did)

    async def _record_ready(self, nostr_pubkey: str, handle: str, did: str) -> None:
        try:
            self.store.mark_ready(nostr_pubkey, did)
        except Exception as exc:
            raise RuntimeError("failed to mark account link ready") from exc
        try:
            await self.keycast_client.sync_ready(nostr_pubkey, did)
        except Exception as exc:
            raise SyncError("failed to sync ready state to keycast") from exc
        try:
            await self.name_server_client.sync_state_for_handle(handle, did, "ready")
        except Exception as exc:
            raise SyncError("failed to sync ready state to name server") from exc

    async def _record_failure(self, nostr_pubkey: str, handle: str, message: str) -> None:
        try:
            self.store.mark_failed(nostr_pubkey, None, message)
        except Exception as exc:
            raise RuntimeError("failed to mark account link failed") from exc
        try:
            await self.keycast_client.sync_failed(nostr_pubkey, message)
        except Exception as exc:
            raise SyncError("failed to sync failed state to keycast") from exc
        try:
            await self.name_server_client.sync_state_for_handle(handle, None, "failed")
        except Exception as exc:
            raise SyncError("failed to sync failed state to name server") from exc