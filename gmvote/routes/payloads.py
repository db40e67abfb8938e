from datetime import date, datetime

from gmvote.services.voting.errors import VotingError
from gmvote.services.voting.options import format_options
from gmvote.services.voting.state import current_status


def _iso(value):
    return value.isoformat() if value is not None else None


def parse_date(value, label):
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise VotingError(f"{label} must be an ISO date (YYYY-MM-DD).") from None


def parse_datetime(value, label):
    if value in (None, ""):
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise VotingError(f"{label} must be an ISO date-time.") from None


def agenda_payload(agenda):
    return {
        "id": agenda.id,
        "order": agenda.order,
        "title": agenda.title,
        "vote_type": agenda.vote_type,
        "pass_threshold_pct": agenda.pass_threshold_pct,
        "options_text": format_options(option.label for option in agenda.options),
        "options": [
            {"id": option.id, "position": option.position, "label": option.label}
            for option in agenda.options
        ],
    }


def meeting_payload(meeting):
    return {
        "id": meeting.id,
        "title": meeting.title,
        "meeting_date": _iso(meeting.meeting_date),
        "vote_start_at": _iso(meeting.vote_start_at),
        "vote_end_at": _iso(meeting.vote_end_at),
        "vote_mode": meeting.vote_mode,
        "member_base_date": _iso(meeting.member_base_date),
        "quorum_pct": meeting.quorum_pct,
        "max_revote_count": meeting.max_revote_count,
        "pass_threshold_pct": meeting.pass_threshold_pct,
        "status": current_status(meeting),
        "completed_at": _iso(meeting.completed_at),
        "agendas": [agenda_payload(agenda) for agenda in meeting.agendas],
    }


def member_payload(member):
    return {
        "id": member.id,
        "membership_no": member.membership_no,
        "dong": member.dong,
        "ho": member.ho,
        "unit_type": member.unit_type,
        "name": member.name,
        "phone": member.phone,
        "birthdate": _iso(member.birthdate),
        "prevote_intention": member.prevote_intention,
        "registered_on": _iso(member.registered_on),
        "code": member.code,
        "vote_count": member.vote_count or 0,
        "has_voted": member.has_voted,
        "vote_method": _vote_method(member),
        "last_voted_at": _iso(member.last_voted_at),
    }


def _vote_method(member):
    if member.paper_vote is not None:
        return "paper"
    if member.has_voted:
        return "electronic"
    return None


def paper_vote_payload(paper_vote):
    return {
        "id": paper_vote.id,
        "member_id": paper_vote.member_id,
        "vote_date": _iso(paper_vote.vote_date),
        "registered_at": _iso(paper_vote.registered_at),
        "attachments": [attachment.file_ref for attachment in paper_vote.attachments],
        "ballots": [
            {
                "agenda_id": ballot.agenda_id,
                "choice": ballot.choice,
                "option_id": ballot.option_id,
            }
            for ballot in paper_vote.ballots
        ],
    }
