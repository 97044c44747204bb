"""Exceptions raised while reconciling and publishing a tournament."""


class UploadError(Exception):
    """Base class; every failure that aborts an upload attempt."""


class AmbiguousIdentityError(UploadError):
    """More than one registry player matches a local player."""

    def __init__(self, players: list[str]):
        self.players = players
        super().__init__(
            'The following players were ambiguous in the database: ' + ', '.join(players)
        )


class LicenseConflictError(UploadError):
    """Local and registry license numbers differ and no merge explains it."""

    def __init__(self, conflicts: list[str]):
        self.conflicts = conflicts
        super().__init__(
            'The following players have ambiguous itsf license numbers in the database: '
            + ', '.join(conflicts)
        )


class EnrichmentFailure(UploadError):
    """A player is still missing name data after the reference lookup."""


class RegistryMutationFailure(UploadError):
    """addPlayers/updatePlayers answered inconsistently with the request."""


class MissingMappingError(UploadError):
    """A player reference has no resolved registry id."""

    def __init__(self, player_id: int, detail: str = ''):
        self.player_id = player_id
        super().__init__(detail or f'Missing id {player_id}')


class PublishFailure(UploadError):
    """The asynchronous create-or-replace job did not succeed."""


class ApiError(UploadError):
    """Transport or validation failure of a single remote call."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class LoginError(ApiError):
    """Authentication was rejected."""
