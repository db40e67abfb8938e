from datetime import datetime

from flask import current_app

from gmvote.extensions import db
from gmvote.models import Agenda, AgendaOption, Ballot, Meeting, PaperVote, VoteMember
from gmvote.services.agendas import write_agenda
from gmvote.services.fields import (
    ensure_date,
    ensure_datetime,
    ensure_window,
    parse_pct,
    parse_revote_count,
    require_title,
)
from gmvote.services.voting.errors import ConfigurationError, StateTransitionError
from gmvote.services.voting.snapshot import build_snapshot
from gmvote.services.voting.state import ACTIVE, COMPLETED, is_editable, next_status
from gmvote.services.voting.types import VOTE_MODES
from gmvote.services.voting.validation import ensure_configured

MEETING_FIELDS = (
    "title",
    "meeting_date",
    "vote_start_at",
    "vote_end_at",
    "vote_mode",
    "member_base_date",
    "quorum_pct",
    "max_revote_count",
    "pass_threshold_pct",
)

DATE_FIELDS = {"meeting_date": "Meeting date", "member_base_date": "Member base date"}
DATETIME_FIELDS = {"vote_start_at": "Vote start", "vote_end_at": "Vote end"}
PCT_FIELDS = {"quorum_pct": "Quorum percentage", "pass_threshold_pct": "Pass threshold"}

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def _clean_fields(fields):
    """Validate the meeting settings present in ``fields``."""
    values = {}
    for key in MEETING_FIELDS:
        if key not in fields:
            continue
        value = fields[key]
        if key == "title":
            value = require_title(value)
        elif key == "vote_mode":
            if value not in VOTE_MODES:
                raise ConfigurationError(f"Unknown vote mode '{value}'.")
        elif key == "max_revote_count":
            value = parse_revote_count(value)
        elif key in PCT_FIELDS:
            value = parse_pct(value, PCT_FIELDS[key])
        elif key in DATE_FIELDS:
            value = ensure_date(value, DATE_FIELDS[key])
        elif key in DATETIME_FIELDS:
            value = ensure_datetime(value, DATETIME_FIELDS[key])
        values[key] = value
    return values


def create_meeting(title, agendas=(), **fields):
    config = current_app.config
    fields = {key: value for key, value in fields.items() if value is not None and value != ""}
    fields["title"] = title
    fields.setdefault("vote_mode", "electronic_and_paper")
    fields.setdefault("max_revote_count", config["DEFAULT_MAX_REVOTE_COUNT"])
    values = _clean_fields(fields)
    ensure_window(values.get("vote_start_at"), values.get("vote_end_at"))

    values.setdefault("quorum_pct", config["DEFAULT_QUORUM_PCT"])
    values.setdefault("pass_threshold_pct", config["DEFAULT_PASS_THRESHOLD_PCT"])

    meeting = Meeting(status="draft", **values)
    try:
        db.session.add(meeting)
        db.session.flush()
        for order, payload in enumerate(agendas or (), start=1):
            write_agenda(meeting, order, payload)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Created meeting %s with %d agenda(s)", meeting.id, len(meeting.agendas))
    return meeting


def update_meeting(meeting, now=None, **fields):
    if not is_editable(meeting, now):
        raise StateTransitionError("Meetings can only be edited while in draft.")

    values = _clean_fields(fields)
    ensure_window(
        values.get("vote_start_at", meeting.vote_start_at),
        values.get("vote_end_at", meeting.vote_end_at),
    )

    try:
        for key, value in values.items():
            setattr(meeting, key, value)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return meeting


def search_meetings(keyword=None, page=1, per_page=DEFAULT_PER_PAGE):
    """Newest meetings first, optionally narrowed to titles containing ``keyword``."""
    query = Meeting.query
    keyword = (keyword or "").strip()
    if keyword:
        query = query.filter(Meeting.title.ilike(f"%{keyword}%"))

    page = max(page or 1, 1)
    per_page = min(max(per_page or DEFAULT_PER_PAGE, 1), MAX_PER_PAGE)
    return query.order_by(Meeting.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )


def _has_votes(meeting, agenda_ids):
    if PaperVote.query.filter_by(meeting_id=meeting.id).first() is not None:
        return True
    if not agenda_ids:
        return False
    return Ballot.query.filter(Ballot.agenda_id.in_(agenda_ids)).first() is not None


def delete_meeting(meeting):
    """Delete a meeting with its agendas and roster. Meetings holding votes are kept."""
    meeting_id = meeting.id
    rows = db.session.query(Agenda.id).filter(Agenda.meeting_id == meeting_id).all()
    agenda_ids = [row.id for row in rows]
    if _has_votes(meeting, agenda_ids):
        raise StateTransitionError("Meetings with recorded votes cannot be deleted.")

    try:
        if agenda_ids:
            AgendaOption.query.filter(AgendaOption.agenda_id.in_(agenda_ids)).delete(
                synchronize_session=False
            )
        Agenda.query.filter(Agenda.meeting_id == meeting_id).delete(synchronize_session=False)
        VoteMember.query.filter(VoteMember.meeting_id == meeting_id).delete(
            synchronize_session=False
        )
        Meeting.query.filter(Meeting.id == meeting_id).delete(synchronize_session=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Deleted meeting %s", meeting_id)


def advance_status(meeting, target, now=None):
    """Move a meeting one step along draft -> active -> closed -> completed."""
    now = now or datetime.now()
    new_status = next_status(meeting, target, now)
    if new_status == ACTIVE:
        ensure_configured(build_snapshot(meeting))
    if new_status == COMPLETED:
        meeting.completed_at = now

    meeting.status = new_status
    db.session.commit()
    current_app.logger.info("Meeting %s moved to %s", meeting.id, new_status)
    return meeting
