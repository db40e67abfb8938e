class VotingError(Exception):
    """Base class for general-meeting voting errors."""

    status_code = 400


class ConfigurationError(VotingError):
    """Meeting or agenda settings make a computation impossible."""

    status_code = 422


class IntegrityViolation(VotingError):
    """A ballot would break channel exclusivity or the revote policy."""

    status_code = 409

    def __init__(self, message, kind, member_id=None, agenda_id=None):
        super().__init__(message)
        self.kind = kind
        self.member_id = member_id
        self.agenda_id = agenda_id


class WindowViolation(VotingError):
    """A ballot arrived while the meeting was not accepting votes."""

    status_code = 409


class InvalidBallotError(VotingError):
    status_code = 400


class MemberLockedError(VotingError):
    """A member that has voted can no longer be edited or deleted."""

    status_code = 409


class RosterError(VotingError):
    status_code = 400


class StateTransitionError(VotingError):
    status_code = 409
