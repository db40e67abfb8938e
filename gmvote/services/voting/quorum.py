from __future__ import annotations

import logging
import math
from datetime import date
from decimal import Decimal
from typing import Optional

from gmvote.services.voting.errors import ConfigurationError
from gmvote.services.voting.tally import TallyOutcome, eligible_members, tally_meeting
from gmvote.services.voting.types import (
    ELECTRONIC,
    PAPER,
    MeetingQuorumStatus,
    MeetingSnapshot,
)

logger = logging.getLogger(__name__)


def reference_date(meeting_date: Optional[date], today: Optional[date] = None) -> date:
    """The earlier of today and the meeting date ("기준 날짜")."""
    today = today or date.today()
    if meeting_date is not None and meeting_date < today:
        return meeting_date
    return today


def quorum_percentage(attendee_count, roster_size) -> float:
    if roster_size <= 0:
        raise ConfigurationError("Roster is empty; quorum cannot be computed.")
    return attendee_count * 100 / roster_size


def required_attendees(roster_size, threshold_pct) -> int:
    """Attendees needed to reach quorum ("성원수"), rounded up."""
    return math.ceil(Decimal(roster_size) * Decimal(str(threshold_pct)) / 100)


def _validate_threshold(threshold_pct):
    if threshold_pct is None:
        raise ConfigurationError("Meeting has no quorum percentage.")
    if not 0 <= float(threshold_pct) <= 100:
        raise ConfigurationError(f"Quorum percentage {threshold_pct} is outside 0-100.")
    return float(threshold_pct)


def compute_quorum(
    snapshot: MeetingSnapshot,
    today: Optional[date] = None,
    outcome: Optional[TallyOutcome] = None,
) -> MeetingQuorumStatus:
    """Meeting-level quorum from the live ballots in ``snapshot``.

    A member is present once they have a live ballot on any agenda. Nothing
    is cached or frozen here; callers decide when a status becomes official.
    """
    meeting = snapshot.meeting
    if outcome is None:
        outcome = tally_meeting(snapshot)

    as_of = reference_date(meeting.meeting_date, today)
    roster_ids = {
        member.member_id
        for member in eligible_members(snapshot.members, meeting.member_base_date)
    }
    channels = {
        member_id: channel
        for member_id, channel in outcome.member_channels().items()
        if member_id in roster_ids
    }
    attendee_count = len(channels)
    electronic_attendees = sum(1 for channel in channels.values() if channel == ELECTRONIC)
    paper_attendees = sum(1 for channel in channels.values() if channel == PAPER)

    try:
        threshold = _validate_threshold(meeting.quorum_pct)
        percentage = quorum_percentage(attendee_count, len(roster_ids))
    except ConfigurationError as exc:
        logger.warning("Meeting %s quorum not computed: %s", meeting.meeting_id, exc)
        return MeetingQuorumStatus(
            meeting_id=meeting.meeting_id,
            as_of=as_of,
            attendee_count=attendee_count,
            roster_size=len(roster_ids),
            quorum_pct=0.0,
            threshold_pct=meeting.quorum_pct,
            quorum_met=False,
            electronic_attendees=electronic_attendees,
            paper_attendees=paper_attendees,
            configuration_error=str(exc),
        )

    met = Decimal(attendee_count) * 100 >= Decimal(str(threshold)) * len(roster_ids)
    return MeetingQuorumStatus(
        meeting_id=meeting.meeting_id,
        as_of=as_of,
        attendee_count=attendee_count,
        roster_size=len(roster_ids),
        quorum_pct=percentage,
        threshold_pct=threshold,
        quorum_met=met,
        required_count=required_attendees(len(roster_ids), threshold),
        electronic_attendees=electronic_attendees,
        paper_attendees=paper_attendees,
    )
