from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from gmvote.services.voting.types import (
    ABSTAIN,
    AGREE,
    APPROVAL,
    CHANNEL_CONFLICT,
    CHANNELS,
    DISAGREE,
    ELECTRONIC,
    ELECTRONIC_ONLY,
    INELIGIBLE_MEMBER,
    INVALID_CHANNEL,
    INVALID_CHOICE,
    OPTION,
    OUTSIDE_VOTE_WINDOW,
    PAPER,
    PAPER_NOT_ALLOWED,
    REVOTE_LIMIT_EXCEEDED,
    UNKNOWN_AGENDA,
    UNKNOWN_MEMBER,
    AgendaTally,
    BallotRecord,
    MeetingSnapshot,
    Violation,
)

logger = logging.getLogger(__name__)

LiveBallots = Dict[Tuple[int, int], BallotRecord]


@dataclass(frozen=True)
class TallyOutcome:
    tallies: Dict[int, Dict[str, AgendaTally]]
    live_ballots: LiveBallots
    violations: Tuple[Violation, ...] = ()

    def tally_for(self, agenda_id, channel) -> AgendaTally:
        per_channel = self.tallies.get(agenda_id) or {}
        return per_channel.get(channel) or AgendaTally(agenda_id=agenda_id, channel=channel)

    def violations_for(self, agenda_id) -> Tuple[Violation, ...]:
        return tuple(
            violation for violation in self.violations if violation.agenda_id == agenda_id
        )

    def member_channels(self) -> Dict[int, str]:
        """Channel of each member's live ballots; a member never has two."""
        return {member_id: ballot.channel for (member_id, _), ballot in self.live_ballots.items()}


def eligible_members(members, base_date):
    """Members on the roster as of ``base_date``.

    Members without a registration date predate date tracking and are kept.
    """
    if base_date is None:
        return list(members)
    return [
        member
        for member in members
        if member.registered_on is None or member.registered_on <= base_date
    ]


def _ballot_order(ballot):
    return (ballot.submitted_at, ballot.ballot_id)


def _submission_key(ballot):
    if ballot.submission_no is not None:
        return ("no", ballot.submission_no)
    return ("at", ballot.submitted_at)


def _is_valid_choice(agenda, ballot):
    if ballot.choice == ABSTAIN:
        return True
    if agenda.vote_type == APPROVAL:
        return ballot.choice in (AGREE, DISAGREE)
    return ballot.choice == OPTION and ballot.option_id in agenda.decisive_keys()


def _outside_window(meeting, ballot):
    if meeting.vote_start_at is not None and ballot.submitted_at < meeting.vote_start_at:
        return True
    if meeting.vote_end_at is not None and ballot.submitted_at >= meeting.vote_end_at:
        return True
    return False


def _screen_ballots(snapshot: MeetingSnapshot):
    meeting = snapshot.meeting
    agendas_by_id = {agenda.agenda_id: agenda for agenda in snapshot.agendas}
    known_ids = {member.member_id for member in snapshot.members}
    eligible_ids = {
        member.member_id
        for member in eligible_members(snapshot.members, meeting.member_base_date)
    }

    accepted: List[BallotRecord] = []
    violations: List[Violation] = []
    for ballot in sorted(snapshot.ballots, key=_ballot_order):
        kind = None
        if ballot.member_id not in known_ids:
            kind = UNKNOWN_MEMBER
        elif ballot.member_id not in eligible_ids:
            kind = INELIGIBLE_MEMBER
        elif ballot.agenda_id not in agendas_by_id:
            kind = UNKNOWN_AGENDA
        elif ballot.channel not in CHANNELS:
            kind = INVALID_CHANNEL
        elif ballot.channel == PAPER and meeting.vote_mode == ELECTRONIC_ONLY:
            kind = PAPER_NOT_ALLOWED
        elif _outside_window(meeting, ballot):
            kind = OUTSIDE_VOTE_WINDOW
        elif not _is_valid_choice(agendas_by_id[ballot.agenda_id], ballot):
            kind = INVALID_CHOICE

        if kind is None:
            accepted.append(ballot)
            continue
        violations.append(
            Violation(
                kind=kind,
                member_id=ballot.member_id,
                agenda_id=ballot.agenda_id,
                ballot_ids=(ballot.ballot_id,),
            )
        )

    return accepted, violations


def _apply_revote_limit(member_id, ballots, max_revote_count) -> Tuple[list, List[Violation]]:
    """Keep the chronologically first ``max_revote_count + 1`` submissions.

    Dropped ballots are reported once per agenda they touch.
    """
    submissions: Dict[tuple, List[BallotRecord]] = {}
    for ballot in ballots:
        submissions.setdefault(_submission_key(ballot), []).append(ballot)

    allowed = max(max_revote_count or 0, 0) + 1
    if len(submissions) <= allowed:
        return ballots, []

    ordered = sorted(
        submissions.values(),
        key=lambda group: min(_ballot_order(ballot) for ballot in group),
    )
    kept = [ballot for group in ordered[:allowed] for ballot in group]
    dropped = [ballot for group in ordered[allowed:] for ballot in group]
    violations = [
        Violation(
            kind=REVOTE_LIMIT_EXCEEDED,
            member_id=member_id,
            agenda_id=agenda_id,
            ballot_ids=tuple(
                ballot.ballot_id for ballot in dropped if ballot.agenda_id == agenda_id
            ),
            detail=f"{len(submissions)} electronic submissions, {allowed} allowed",
        )
        for agenda_id in sorted({ballot.agenda_id for ballot in dropped})
    ]
    return kept, violations


def _latest_per_agenda(ballots) -> Dict[int, BallotRecord]:
    latest: Dict[int, BallotRecord] = {}
    for ballot in ballots:
        current = latest.get(ballot.agenda_id)
        if current is None or _ballot_order(ballot) > _ballot_order(current):
            latest[ballot.agenda_id] = ballot
    return latest


def resolve_live_ballots(snapshot: MeetingSnapshot) -> Tuple[LiveBallots, Tuple[Violation, ...]]:
    """Pick the single counted ballot per (member, agenda).

    Electronic revotes resolve to the latest allowed submission and paper
    re-registrations to the latest paper ballot. A member holding ballots on
    both channels is reported and left out of every agenda.
    """
    accepted, violations = _screen_ballots(snapshot)

    electronic_by_member: Dict[int, List[BallotRecord]] = {}
    paper_by_member: Dict[int, List[BallotRecord]] = {}
    for ballot in accepted:
        target = electronic_by_member if ballot.channel == ELECTRONIC else paper_by_member
        target.setdefault(ballot.member_id, []).append(ballot)

    paper_registered = {record.member_id for record in snapshot.paper_votes}

    live: LiveBallots = {}
    for member_id in sorted(set(electronic_by_member) | set(paper_by_member)):
        electronic = electronic_by_member.get(member_id, [])
        paper = paper_by_member.get(member_id, [])

        if electronic and (paper or member_id in paper_registered):
            both = electronic + paper
            for agenda_id in sorted({ballot.agenda_id for ballot in both}):
                violations.append(
                    Violation(
                        kind=CHANNEL_CONFLICT,
                        member_id=member_id,
                        agenda_id=agenda_id,
                        ballot_ids=tuple(
                            ballot.ballot_id for ballot in both if ballot.agenda_id == agenda_id
                        ),
                        detail="member has both electronic and paper ballots",
                    )
                )
            continue

        if electronic:
            electronic, dropped = _apply_revote_limit(
                member_id, electronic, snapshot.meeting.max_revote_count
            )
            violations.extend(dropped)
            chosen = _latest_per_agenda(electronic)
        else:
            chosen = _latest_per_agenda(paper)

        for agenda_id, ballot in chosen.items():
            live[(member_id, agenda_id)] = ballot

    if violations:
        logger.warning(
            "Meeting %s: %d ballot integrity violation(s) excluded from tally",
            snapshot.meeting.meeting_id,
            len(violations),
        )
    return live, tuple(violations)


def tally_meeting(snapshot: MeetingSnapshot) -> TallyOutcome:
    live, violations = resolve_live_ballots(snapshot)

    ballots_by_agenda: Dict[int, List[BallotRecord]] = {}
    for ballot in live.values():
        ballots_by_agenda.setdefault(ballot.agenda_id, []).append(ballot)

    tallies: Dict[int, Dict[str, AgendaTally]] = {}
    for agenda in snapshot.agendas:
        counts = {channel: {key: 0 for key in agenda.decisive_keys()} for channel in CHANNELS}
        abstains = {channel: 0 for channel in CHANNELS}

        for ballot in ballots_by_agenda.get(agenda.agenda_id, []):
            if ballot.is_abstain:
                abstains[ballot.channel] += 1
            else:
                counts[ballot.channel][ballot.key] += 1

        tallies[agenda.agenda_id] = {
            channel: AgendaTally(
                agenda_id=agenda.agenda_id,
                channel=channel,
                counts=counts[channel],
                abstain=abstains[channel],
            )
            for channel in CHANNELS
        }

    return TallyOutcome(tallies=tallies, live_ballots=live, violations=violations)
