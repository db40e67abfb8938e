from datetime import datetime

from gmvote.services.voting.errors import StateTransitionError, WindowViolation

DRAFT = "draft"
ACTIVE = "active"
CLOSED = "closed"
COMPLETED = "completed"
STATUSES = (DRAFT, ACTIVE, CLOSED, COMPLETED)

NEXT_STATUS = {
    DRAFT: ACTIVE,
    ACTIVE: CLOSED,
    CLOSED: COMPLETED,
}


def current_status(meeting, now=None):
    """Stored status with the clock applied: an active meeting whose vote
    window has elapsed is closed."""
    now = now or datetime.now()
    status = meeting.status or DRAFT
    if status == ACTIVE and meeting.vote_end_at is not None and now >= meeting.vote_end_at:
        return CLOSED
    return status


def next_status(meeting, target, now=None):
    """Validate a single-step transition and return the new status."""
    if target not in STATUSES:
        raise StateTransitionError(f"Unknown meeting status '{target}'.")

    status = current_status(meeting, now)
    if target == CLOSED and status == CLOSED and meeting.status == ACTIVE:
        # window already elapsed; persist the close
        return CLOSED
    if NEXT_STATUS.get(status) != target:
        raise StateTransitionError(f"Cannot move meeting from '{status}' to '{target}'.")
    if (
        target == CLOSED
        and meeting.vote_end_at is not None
        and (now or datetime.now()) < meeting.vote_end_at
    ):
        raise StateTransitionError("Voting closes automatically at the end of the vote window.")
    return target


def ensure_accepting_ballots(meeting, now=None):
    now = now or datetime.now()
    status = current_status(meeting, now)
    if status != ACTIVE:
        raise WindowViolation(f"Voting window closed (meeting is {status}).")
    if meeting.vote_start_at is not None and now < meeting.vote_start_at:
        raise WindowViolation("Voting window has not opened yet.")


def is_editable(meeting, now=None):
    return current_status(meeting, now) == DRAFT
