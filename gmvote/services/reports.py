from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from gmvote.services.roster import search_members
from gmvote.services.voting.quorum import compute_quorum
from gmvote.services.voting.resolver import resolve_results
from gmvote.services.voting.tally import tally_meeting
from gmvote.services.voting.types import (
    ABSTAIN,
    ELECTRONIC,
    PAPER,
    PASSED,
    REJECTED,
    SELECTION,
    AgendaResult,
    BallotRecord,
    MeetingQuorumStatus,
    MeetingSnapshot,
    Violation,
)


@dataclass(frozen=True)
class MeetingReport:
    snapshot: MeetingSnapshot
    results: Tuple[AgendaResult, ...]
    quorum: MeetingQuorumStatus
    violations: Tuple[Violation, ...]
    live_ballots: Dict[Tuple[int, int], BallotRecord]

    def agenda(self, agenda_id):
        for agenda in self.snapshot.agendas:
            if agenda.agenda_id == agenda_id:
                return agenda
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "meeting_id": self.snapshot.meeting.meeting_id,
            "results": [result.to_dict() for result in self.results],
            "quorum": self.quorum.to_dict(),
            "violations": [violation.to_dict() for violation in self.violations],
        }


def build_meeting_report(snapshot: MeetingSnapshot, today: Optional[date] = None) -> MeetingReport:
    """Tally once and derive both agenda results and quorum from it."""
    outcome = tally_meeting(snapshot)
    return MeetingReport(
        snapshot=snapshot,
        results=tuple(resolve_results(snapshot, outcome)),
        quorum=compute_quorum(snapshot, today, outcome),
        violations=outcome.violations,
        live_ballots=outcome.live_ballots,
    )


def answer_labels(agenda):
    """(key, label) pairs in display order, abstain last."""
    return [(key, agenda.label_for(key)) for key in agenda.decisive_keys()] + [
        (ABSTAIN, ABSTAIN)
    ]


def final_result(result: AgendaResult, agenda) -> Optional[str]:
    if result.verdict == REJECTED:
        return REJECTED
    if result.verdict != PASSED:
        return None
    if agenda.vote_type == SELECTION:
        return agenda.label_for(result.winning_option_id)
    return PASSED


def agenda_status_payload(report: MeetingReport) -> Dict[str, Any]:
    agendas = []
    for result in report.results:
        agenda = report.agenda(result.agenda_id)
        labels = answer_labels(agenda)
        agendas.append(
            {
                "id": result.agenda_id,
                "order": result.order,
                "title": result.title,
                "vote_type": result.vote_type,
                "answers": [label for _, label in labels],
                "electronic_result": {
                    label: result.electronic.count(key) for key, label in labels
                },
                "paper_result": {label: result.paper.count(key) for key, label in labels},
                "attendance_count": result.attendance_count,
                "verdict": result.verdict,
                "final_result": final_result(result, agenda),
                "ratio_pct": result.ratio_pct,
                "pass_threshold_pct": result.pass_threshold_pct,
                "configuration_error": result.configuration_error,
                "violations": [violation.to_dict() for violation in result.violations],
            }
        )
    return {"base_date": report.quorum.as_of.isoformat(), "agendas": agendas}


def meeting_stats(report: MeetingReport) -> Dict[str, Any]:
    quorum = report.quorum
    return {
        "voter_count": quorum.roster_size,
        "voted_count": quorum.attendee_count,
        "online_count": quorum.electronic_attendees,
        "offline_count": quorum.paper_attendees,
        "vote_rate": quorum.quorum_pct,
        "quorum_rate": quorum.threshold_pct,
        "quorum_count": quorum.required_count,
        "quorum_met": quorum.quorum_met,
        "base_date": quorum.as_of.isoformat(),
        "configuration_error": quorum.configuration_error,
    }


def results_frame(report: MeetingReport) -> pd.DataFrame:
    """Result sheet: one row per agenda answer."""
    rows = []
    for result in report.results:
        agenda = report.agenda(result.agenda_id)
        for key, label in answer_labels(agenda):
            rows.append(
                {
                    "order": result.order,
                    "title": result.title,
                    "answer": label,
                    "electronic": result.electronic.count(key),
                    "paper": result.paper.count(key),
                    "total": result.combined.count(key),
                    "attendance": result.attendance_count,
                    "result": final_result(result, agenda) or result.verdict,
                }
            )
    return pd.DataFrame(
        rows,
        columns=[
            "order",
            "title",
            "answer",
            "electronic",
            "paper",
            "total",
            "attendance",
            "result",
        ],
    )


def quorum_frame(report: MeetingReport) -> pd.DataFrame:
    quorum = report.quorum
    return pd.DataFrame(
        [
            {
                "base_date": quorum.as_of.isoformat(),
                "roster_size": quorum.roster_size,
                "attendees": quorum.attendee_count,
                "electronic": quorum.electronic_attendees,
                "paper": quorum.paper_attendees,
                "attendance_pct": round(quorum.quorum_pct, 2),
                "quorum_pct": quorum.threshold_pct,
                "quorum_count": quorum.required_count,
                "quorum_met": quorum.quorum_met,
            }
        ]
    )


def _vote_record(member, agendas, report, paper_dates):
    record = {
        "member_id": member.id,
        "membership_no": member.membership_no,
        "dong": member.dong,
        "ho": member.ho,
        "unit_type": member.unit_type,
        "name": member.name,
        "phone": member.phone,
        "birthdate": member.birthdate.isoformat() if member.birthdate else None,
        "prevote_intention": member.prevote_intention,
        "vote_method": None,
        "vote_date": None,
        "attachments": [],
        "votes": [],
    }
    for agenda in agendas:
        ballot = report.live_ballots.get((member.id, agenda.agenda_id))
        if ballot is None:
            continue
        record["vote_method"] = ballot.channel
        vote_date = paper_dates.get(member.id) if ballot.channel == PAPER else None
        record["vote_date"] = (vote_date or ballot.submitted_at.date()).isoformat()
        record["votes"].append(
            {
                "agenda_id": agenda.agenda_id,
                "order": agenda.order,
                "answer": ABSTAIN if ballot.is_abstain else agenda.label_for(ballot.key),
            }
        )
    if record["vote_method"] == PAPER and member.paper_vote is not None:
        record["attachments"] = [
            attachment.file_ref for attachment in member.paper_vote.attachments
        ]
    return record


def vote_records(meeting, report: MeetingReport, keyword=None, dong=None, online=None):
    """Counted answers per member, filtered like the roster search.

    ``online`` narrows to electronic voters when true and paper voters when false.
    """
    paper_dates = {
        paper_vote.member_id: paper_vote.vote_date for paper_vote in report.snapshot.paper_votes
    }
    agendas = sorted(report.snapshot.agendas, key=lambda item: item.order)
    records = [
        _vote_record(member, agendas, report, paper_dates)
        for member in search_members(meeting, keyword=keyword, dong=dong)
    ]
    if online is not None:
        wanted = ELECTRONIC if online else PAPER
        records = [record for record in records if record["vote_method"] == wanted]
    return records


def vote_record(meeting, report: MeetingReport, member_id):
    member = next((member for member in meeting.members if member.id == member_id), None)
    if member is None:
        return None
    paper_dates = {
        paper_vote.member_id: paper_vote.vote_date for paper_vote in report.snapshot.paper_votes
    }
    agendas = sorted(report.snapshot.agendas, key=lambda item: item.order)
    return _vote_record(member, agendas, report, paper_dates)


def vote_records_frame(meeting, report: MeetingReport) -> pd.DataFrame:
    """Per-member vote record sheet with each member's counted answers."""
    agendas = sorted(report.snapshot.agendas, key=lambda item: item.order)
    rows = []
    for record in vote_records(meeting, report):
        row = {
            key: record[key]
            for key in ("membership_no", "dong", "ho", "name", "vote_method", "vote_date")
        }
        answers = {vote["agenda_id"]: vote["answer"] for vote in record["votes"]}
        for agenda in agendas:
            row[f"agenda_{agenda.order}"] = answers.get(agenda.agenda_id)
        rows.append(row)
    return pd.DataFrame(rows)


def to_csv_bytes(frame: pd.DataFrame) -> bytes:
    return frame.to_csv(index=False).encode("utf-8-sig")
