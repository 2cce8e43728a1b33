"""Session credentials and live-connection binding.

Invariant: at most one live connection is bound to a participant. A fresh
login ousts whatever connection the previous login had bound.
"""
import secrets
from typing import Optional, Tuple

from flask import current_app

from arena.exceptions import Forbidden, NotFound, StoreError, Unauthorized
from arena.models import Participant

TOKEN_BYTES = 32


class SessionAuthenticator:
    def __init__(self, ledger, broadcaster):
        self.ledger = ledger
        self.broadcaster = broadcaster

    def login(self, identity: str, password) -> Tuple[Participant, str]:
        participant = self.ledger.get(identity)
        if participant is None:
            raise NotFound(identity)
        if not isinstance(password, str) or not password or not participant.check_password(password):
            raise Unauthorized('Invalid credentials.')
        if not participant.is_admin and participant.is_eliminated:
            raise Forbidden('You have been eliminated.')

        previous = participant.connection_id
        if previous:
            current_app.logger.info(f"[login] {identity} ousting connection {previous}")
            self.broadcaster.force_disconnect(previous)

        token = secrets.token_hex(TOKEN_BYTES)
        self.ledger.rotate_session(participant, token)
        current_app.logger.info(f"[login] {identity} issued new session")
        return participant, token

    def authenticate(self, connection_id: str, identity: str, token: str) -> Optional[Participant]:
        """Bind ``connection_id`` to the participant owning ``token``.

        Returns None when identity and token do not both match the stored
        record; the caller must then drop the connection.
        """
        if not identity or not token:
            return None
        participant = self.ledger.get_with_token(identity, token)
        if participant is None:
            current_app.logger.info(f"[auth] rejected connection {connection_id} for {identity}")
            return None
        self.ledger.bind_connection(participant, connection_id)
        current_app.logger.info(f"[auth] bound connection {connection_id} to {identity}")
        return participant

    def unbind(self, connection_id: str) -> None:
        try:
            self.ledger.release_connection(connection_id)
        except StoreError as exc:
            # Next login's pre-emption check repairs a stale binding
            current_app.logger.warning(f"[auth] could not unbind {connection_id}: {exc}")

    def participant_for(self, connection_id: str) -> Optional[Participant]:
        return self.ledger.get_by_connection(connection_id)
