"""Error taxonomy shared by the HTTP routes, live-channel handlers and services.

HTTP routes map these to status codes; live-channel handlers log them and
drop the command.
"""


class ArenaError(Exception):
    """Base class for every error raised by the arena services."""
    status_code = 500


class NotFound(ArenaError):
    """Unknown participant identity."""
    status_code = 404

    def __init__(self, identity):
        self.identity = identity
        super().__init__(f"Participant {identity} not found")


class Unauthorized(ArenaError):
    """Password or session token did not match."""
    status_code = 401


class Forbidden(ArenaError):
    """Eliminated participants cannot log in; non-admins cannot run admin actions."""
    status_code = 403


class ValidationError(ArenaError):
    """Missing or malformed command fields."""
    status_code = 400


class StoreError(ArenaError):
    """The participant store could not complete the operation."""
    status_code = 500
