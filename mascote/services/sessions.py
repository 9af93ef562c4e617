"""
Login and profile: the identity gate in front of the order services
"""

from typing import Optional, Tuple

import structlog

from mascote.core.auth import TokenIssuer, verify_secret
from mascote.core.errors import AuthError, ClientInactive, ClientNotFound
from mascote.core.storage import is_safe_segment
from mascote.models.client import Client
from mascote.schemas.client import ClientSummary
from mascote.services.client_store import ClientRecordStore
from mascote.services.quota import QuotaCycleManager

logger = structlog.get_logger(__name__)


def summarize(client_id: str, client: Client) -> ClientSummary:
    return ClientSummary(
        client_id=client_id,
        display_name=client.display_name,
        plan_quota=client.plan_quota,
        usage_count=client.usage_count,
        remaining=client.remaining(),
        active=client.active,
        cycle_key=client.cycle_key,
    )


class SessionGate:
    """Authenticates clients and resolves bearer tokens to client ids"""

    def __init__(self, clients: ClientRecordStore, cycles: QuotaCycleManager, tokens: TokenIssuer):
        self.clients = clients
        self.cycles = cycles
        self.tokens = tokens

    def login(self, client_id: str, secret: str) -> Tuple[str, ClientSummary]:
        """Verify credentials, reset a stale quota cycle and issue a token"""
        client_id = (client_id or "").strip()
        if not client_id or not secret or not is_safe_segment(client_id):
            raise AuthError("Client id and secret are required")

        client = self.clients.load().get(client_id)
        if client is None or not verify_secret(secret, client.credential_hash):
            logger.info("Login rejected", client_id=client_id)
            raise AuthError()
        if not client.active:
            logger.info("Login rejected, inactive client", client_id=client_id)
            raise ClientInactive()

        if client.cycle_key != self.cycles.current_cycle_key():
            client = self.clients.update(client_id, self._reconcile)
            logger.info("Quota cycle reset on login", client_id=client_id, cycle_key=client.cycle_key)

        token = self.tokens.create_access_token(client_id)
        logger.info(f"Client logged in: {client_id}")
        return token, summarize(client_id, client)

    def _reconcile(self, client: Client) -> None:
        # Runs on the record re-read under the client lock
        self.cycles.reconcile(client)

    def get_profile(self, client_id: str) -> ClientSummary:
        """Profile with usage as it reads in the current cycle"""
        if not is_safe_segment(client_id):
            raise ClientNotFound()
        client = self.clients.get(client_id)
        return summarize(client_id, self.cycles.reconciled_view(client))

    def authenticate(self, token: Optional[str]) -> str:
        """Client id carried by a bearer token"""
        if not token:
            raise AuthError("Missing bearer token")
        client_id = self.tokens.verify_token(token)
        if client_id is None:
            raise AuthError("Invalid or expired token")
        return client_id
