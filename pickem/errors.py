"""
Typed failures raised by the pick'em services and repositories.

Every failure carries a stable ``reason`` string that clients can match on
and the HTTP status the API layer answers with. Routes never catch these
themselves; ``register_error_handlers`` in ``pickem/__init__.py`` turns them
into JSON responses.
"""


class PickemError(Exception):
    """Base class for every expected failure in the application"""

    status_code = 400
    reason = "bad_request"
    message = "Bad request"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {"error": self.message, "reason": self.reason}


# Validation errors (400)
class ValidationError(PickemError):
    reason = "validation_error"
    message = "Invalid request"


class GameAlreadyStarted(PickemError):
    reason = "game_already_started"
    message = "Cannot change picks after the game has started"


class TeamNotInGame(PickemError):
    reason = "team_not_in_game"
    message = "Selected team is not playing in this game"


class DuplicateSurvivorTeam(PickemError):
    reason = "duplicate_survivor_team"
    message = "You have already picked this team in survivor mode"


class CannotRemoveOwner(PickemError):
    reason = "cannot_remove_owner"
    message = "Cannot remove the pool owner"


class NoCurrentSeason(PickemError):
    reason = "no_current_season"
    message = "No current season set. Please contact an administrator."


# Authentication and authorization errors (401/403)
class InvalidCredentials(PickemError):
    status_code = 401
    reason = "invalid_credentials"
    message = "Invalid email or password"


class AccessDenied(PickemError):
    status_code = 403
    reason = "access_denied"
    message = "Access denied"


class NotParticipant(AccessDenied):
    reason = "not_participant"
    message = "You are not a participant in this pool"


class NotPoolOwner(AccessDenied):
    reason = "not_owner"
    message = "Only the pool owner can do that"


class AdminRequired(AccessDenied):
    reason = "admin_required"
    message = "Administrator access required"


# Not-found errors (404)
class NotFound(PickemError):
    status_code = 404
    reason = "not_found"
    message = "Resource not found"


class PoolNotFound(NotFound):
    reason = "pool_not_found"
    message = "Pool not found"


class PickNotFound(NotFound):
    reason = "pick_not_found"
    message = "Pick not found"


class GameNotFound(NotFound):
    reason = "game_not_found"
    message = "Scheduled game not found"


class SeasonNotFound(NotFound):
    reason = "season_not_found"
    message = "Season not found"


class TeamNotFound(NotFound):
    reason = "team_not_found"
    message = "Team not found"


class UserNotFound(NotFound):
    reason = "user_not_found"
    message = "User not found"


class ParticipantNotFound(NotFound):
    reason = "participant_not_found"
    message = "User is not in this pool"


class InvitationNotFound(NotFound):
    reason = "invitation_not_found"
    message = "Invitation not found"


# State conflicts (409)
class Conflict(PickemError):
    status_code = 409
    reason = "conflict"
    message = "Conflict"


class DuplicateParticipant(Conflict):
    reason = "duplicate_participant"
    message = "User is already in this pool"


class DuplicateInvitation(Conflict):
    reason = "duplicate_invitation"
    message = "Invitation already sent to this email"


class EmailAlreadyRegistered(Conflict):
    reason = "email_already_registered"
    message = "An account with this email already exists"


class DuplicateRecord(Conflict):
    reason = "duplicate_record"
    message = "Record already exists"


# Storage failures (500)
class RepositoryError(PickemError):
    status_code = 500
    reason = "storage_error"
    message = "Internal server error"


# Upstream failures (502)
class ScoreProviderError(PickemError):
    status_code = 502
    reason = "score_provider_error"
    message = "Score feed unavailable"
