from gmvote.services.voting.errors import ConfigurationError
from gmvote.services.voting.quorum import quorum_percentage
from gmvote.services.voting.resolver import effective_threshold, validate_agenda
from gmvote.services.voting.tally import eligible_members
from gmvote.services.voting.types import VOTE_MODES


def configuration_errors(snapshot):
    """Every reason the meeting cannot be tallied, as messages."""
    meeting = snapshot.meeting
    errors = []

    if meeting.vote_mode not in VOTE_MODES:
        errors.append(f"Unknown vote mode '{meeting.vote_mode}'.")
    if meeting.quorum_pct is None:
        errors.append("Meeting has no quorum percentage.")
    elif not 0 <= meeting.quorum_pct <= 100:
        errors.append(f"Quorum percentage {meeting.quorum_pct} is outside 0-100.")
    if (meeting.max_revote_count or 0) < 0:
        errors.append("Maximum revote count cannot be negative.")
    if (
        meeting.vote_start_at is not None
        and meeting.vote_end_at is not None
        and meeting.vote_start_at >= meeting.vote_end_at
    ):
        errors.append("Vote window must end after it starts.")

    try:
        quorum_percentage(0, len(eligible_members(snapshot.members, meeting.member_base_date)))
    except ConfigurationError as exc:
        errors.append(str(exc))

    if not snapshot.agendas:
        errors.append("Meeting has no agendas.")
    orders = [agenda.order for agenda in snapshot.agendas]
    if sorted(orders) != list(range(1, len(orders) + 1)):
        errors.append("Agenda order must run 1..N without gaps.")

    for agenda in snapshot.agendas:
        try:
            validate_agenda(agenda)
            effective_threshold(agenda, meeting.pass_threshold_pct)
        except ConfigurationError as exc:
            errors.append(str(exc))

    return errors


def ensure_configured(snapshot):
    errors = configuration_errors(snapshot)
    if errors:
        raise ConfigurationError("; ".join(errors))
