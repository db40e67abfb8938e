from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple, Union

APPROVAL = "approval"
SELECTION = "selection"
VOTE_TYPES = (APPROVAL, SELECTION)

AGREE = "agree"
DISAGREE = "disagree"
ABSTAIN = "abstain"
OPTION = "option"
APPROVAL_CHOICES = (AGREE, DISAGREE, ABSTAIN)

ELECTRONIC = "electronic"
PAPER = "paper"
CHANNELS = (ELECTRONIC, PAPER)

ELECTRONIC_ONLY = "electronic_only"
ELECTRONIC_AND_PAPER = "electronic_and_paper"
VOTE_MODES = (ELECTRONIC_ONLY, ELECTRONIC_AND_PAPER)

PASSED = "passed"
REJECTED = "rejected"
UNDETERMINED = "undetermined"

PREVOTE_INTENTIONS = ("planned", "undecided", "impossible", "other")

# Violation kinds reported by the tally engine.
CHANNEL_CONFLICT = "channel_conflict"
REVOTE_LIMIT_EXCEEDED = "revote_limit_exceeded"
OUTSIDE_VOTE_WINDOW = "outside_vote_window"
UNKNOWN_MEMBER = "unknown_member"
INELIGIBLE_MEMBER = "ineligible_member"
UNKNOWN_AGENDA = "unknown_agenda"
INVALID_CHOICE = "invalid_choice"
INVALID_CHANNEL = "invalid_channel"
PAPER_NOT_ALLOWED = "paper_not_allowed"

ChoiceKey = Union[str, int]


@dataclass(frozen=True)
class OptionSpec:
    option_id: int
    label: str


@dataclass(frozen=True)
class ApprovalAgenda:
    agenda_id: int
    order: int
    title: str
    pass_threshold_pct: Optional[float] = None

    @property
    def vote_type(self) -> str:
        return APPROVAL

    def decisive_keys(self) -> Tuple[ChoiceKey, ...]:
        return (AGREE, DISAGREE)

    def label_for(self, key: ChoiceKey) -> str:
        return str(key)


@dataclass(frozen=True)
class SelectionAgenda:
    agenda_id: int
    order: int
    title: str
    options: Tuple[OptionSpec, ...] = ()
    pass_threshold_pct: Optional[float] = None

    @property
    def vote_type(self) -> str:
        return SELECTION

    def decisive_keys(self) -> Tuple[ChoiceKey, ...]:
        return tuple(option.option_id for option in self.options)

    def label_for(self, key: ChoiceKey) -> str:
        for option in self.options:
            if option.option_id == key:
                return option.label
        return str(key)


AgendaSpec = Union[ApprovalAgenda, SelectionAgenda]


@dataclass(frozen=True)
class MemberSpec:
    member_id: int
    name: str = ""
    registered_on: Optional[date] = None


@dataclass(frozen=True)
class BallotRecord:
    """
    One submitted ballot for one agenda.

    ``choice`` is agree/disagree/abstain for approval agendas and
    ``OPTION`` (with ``option_id``) or abstain for selection agendas.
    Electronic ballots written in the same submission share
    ``submission_no``; when it is missing the timestamp identifies the
    submission.
    """

    ballot_id: int
    member_id: int
    agenda_id: int
    channel: str
    choice: str
    submitted_at: datetime
    option_id: Optional[int] = None
    submission_no: Optional[int] = None

    @property
    def key(self) -> ChoiceKey:
        if self.choice == OPTION:
            return self.option_id
        return self.choice

    @property
    def is_abstain(self) -> bool:
        return self.choice == ABSTAIN


@dataclass(frozen=True)
class PaperVoteRecord:
    member_id: int
    vote_date: date
    attachments: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MeetingSpec:
    meeting_id: int
    title: str = ""
    meeting_date: Optional[date] = None
    vote_start_at: Optional[datetime] = None
    vote_end_at: Optional[datetime] = None
    vote_mode: str = ELECTRONIC_AND_PAPER
    member_base_date: Optional[date] = None
    quorum_pct: Optional[float] = None
    max_revote_count: int = 0
    pass_threshold_pct: Optional[float] = None
    status: str = "draft"


@dataclass(frozen=True)
class MeetingSnapshot:
    meeting: MeetingSpec
    agendas: Tuple[AgendaSpec, ...] = ()
    members: Tuple[MemberSpec, ...] = ()
    ballots: Tuple[BallotRecord, ...] = ()
    paper_votes: Tuple[PaperVoteRecord, ...] = ()


@dataclass(frozen=True)
class Violation:
    kind: str
    member_id: Optional[int] = None
    agenda_id: Optional[int] = None
    ballot_ids: Tuple[int, ...] = ()
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "member_id": self.member_id,
            "agenda_id": self.agenda_id,
            "ballot_ids": list(self.ballot_ids),
            "detail": self.detail,
        }


@dataclass(frozen=True)
class AgendaTally:
    """Counts for one agenda on one channel (or combined)."""

    agenda_id: int
    channel: str
    counts: Dict[ChoiceKey, int] = field(default_factory=dict)
    abstain: int = 0

    @property
    def decisive(self) -> int:
        return sum(self.counts.values())

    @property
    def total(self) -> int:
        return self.decisive + self.abstain

    def count(self, key: ChoiceKey) -> int:
        if key == ABSTAIN:
            return self.abstain
        return self.counts.get(key, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agenda_id": self.agenda_id,
            "channel": self.channel,
            "counts": {str(key): value for key, value in self.counts.items()},
            "abstain": self.abstain,
            "total": self.total,
        }


@dataclass(frozen=True)
class AgendaResult:
    agenda_id: int
    order: int
    title: str
    vote_type: str
    electronic: AgendaTally
    paper: AgendaTally
    combined: AgendaTally
    attendance_count: int
    decisive_votes: int
    verdict: Optional[str]
    pass_threshold_pct: Optional[float] = None
    ratio_pct: Optional[float] = None
    winning_option_id: Optional[int] = None
    tied_option_ids: Tuple[int, ...] = ()
    violations: Tuple[Violation, ...] = ()
    configuration_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agenda_id": self.agenda_id,
            "order": self.order,
            "title": self.title,
            "vote_type": self.vote_type,
            "electronic": self.electronic.to_dict(),
            "paper": self.paper.to_dict(),
            "combined": self.combined.to_dict(),
            "attendance_count": self.attendance_count,
            "decisive_votes": self.decisive_votes,
            "verdict": self.verdict,
            "pass_threshold_pct": self.pass_threshold_pct,
            "ratio_pct": self.ratio_pct,
            "winning_option_id": self.winning_option_id,
            "tied_option_ids": list(self.tied_option_ids),
            "violations": [violation.to_dict() for violation in self.violations],
            "configuration_error": self.configuration_error,
        }


@dataclass(frozen=True)
class MeetingQuorumStatus:
    meeting_id: int
    as_of: date
    attendee_count: int
    roster_size: int
    quorum_pct: float
    threshold_pct: Optional[float]
    quorum_met: bool
    required_count: Optional[int] = None
    electronic_attendees: int = 0
    paper_attendees: int = 0
    configuration_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "meeting_id": self.meeting_id,
            "as_of": self.as_of.isoformat(),
            "attendee_count": self.attendee_count,
            "roster_size": self.roster_size,
            "quorum_pct": self.quorum_pct,
            "threshold_pct": self.threshold_pct,
            "quorum_met": self.quorum_met,
            "required_count": self.required_count,
            "electronic_attendees": self.electronic_attendees,
            "paper_attendees": self.paper_attendees,
            "configuration_error": self.configuration_error,
        }
