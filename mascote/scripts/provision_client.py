"""
Administrative provisioning of clients

Adds a client to the client table or updates an existing one. Usage counters
of existing clients are preserved.

    python -m mascote.scripts.provision_client 5511999990000 --name "EC Exemplo" --quota 4
"""

import argparse
import getpass
import sys
from typing import List, Optional

import structlog

from mascote.core.auth import hash_secret
from mascote.core.config import get_settings
from mascote.core.errors import MascoteError
from mascote.core.storage import is_safe_segment
from mascote.models.client import Client
from mascote.services.client_store import ClientRecordStore

logger = structlog.get_logger(__name__)


def provision_client(
    store: ClientRecordStore,
    client_id: str,
    secret: Optional[str] = None,
    display_name: Optional[str] = None,
    plan_quota: Optional[int] = None,
    active: Optional[bool] = None,
) -> Client:
    """Create or update a client record"""
    if not is_safe_segment(client_id):
        raise ValueError(f"Invalid client id: {client_id!r}")

    existing = store.load().get(client_id)
    if existing is None:
        if not secret:
            raise ValueError("A secret is required for a new client")
        client = Client(
            credential_hash=hash_secret(secret),
            display_name=display_name or "",
            plan_quota=plan_quota if plan_quota is not None else 1,
            active=True if active is None else active,
        )
        store.provision(client_id, client)
    else:
        credential_hash = hash_secret(secret) if secret else None

        def apply_changes(current: Client) -> Client:
            if credential_hash is not None:
                current.credential_hash = credential_hash
            if display_name is not None:
                current.display_name = display_name
            if plan_quota is not None:
                current.plan_quota = plan_quota
            if active is not None:
                current.active = active
            # A ValidationError here aborts the write
            return Client.model_validate(current.model_dump())

        client = store.update(client_id, apply_changes)

    logger.info(f"Provisioned client {client_id}", plan_quota=client.plan_quota, active=client.active)
    return client


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Add or update a mascote client")
    parser.add_argument("client_id", help="Client id (WhatsApp number)")
    parser.add_argument("--name", dest="display_name", help="Team display name")
    parser.add_argument("--quota", dest="plan_quota", type=int, help="Orders allowed per month")
    parser.add_argument("--secret", help="Login secret (prompted when omitted for new clients)")
    state = parser.add_mutually_exclusive_group()
    state.add_argument("--activate", dest="active", action="store_true", default=None)
    state.add_argument("--deactivate", dest="active", action="store_false")
    parser.set_defaults(active=None)
    args = parser.parse_args(argv)

    settings = get_settings()
    store = ClientRecordStore(settings.clients_file)
    store.initialize()

    try:
        secret = args.secret
        if secret is None and args.client_id not in store.load():
            secret = getpass.getpass("Secret: ")
        provision_client(
            store,
            args.client_id,
            secret=secret,
            display_name=args.display_name,
            plan_quota=args.plan_quota,
            active=args.active,
        )
    except (ValueError, MascoteError) as e:
        logger.error(f"Provisioning failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
