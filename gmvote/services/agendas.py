from flask import current_app

from gmvote.extensions import db
from gmvote.models import Agenda, AgendaOption
from gmvote.services.fields import parse_pct, require_title
from gmvote.services.voting.errors import ConfigurationError, StateTransitionError
from gmvote.services.voting.options import parse_options
from gmvote.services.voting.state import is_editable
from gmvote.services.voting.types import APPROVAL, SELECTION


def _ensure_draft(meeting, now=None):
    if not is_editable(meeting, now):
        raise StateTransitionError("Agendas can only be changed while the meeting is in draft.")


def _agenda_values(order, payload, agenda=None):
    title = payload["title"] if "title" in payload else getattr(agenda, "title", None)
    vote_type = payload.get("vote_type") or getattr(agenda, "vote_type", None) or APPROVAL
    if vote_type not in (APPROVAL, SELECTION):
        raise ConfigurationError(f"Agenda {order} has unknown vote type '{vote_type}'.")

    if "options" in payload:
        labels = parse_options(payload.get("options"))
    elif agenda is not None:
        labels = [option.label for option in agenda.options]
    else:
        labels = []
    if vote_type == APPROVAL:
        labels = []
    elif not labels:
        raise ConfigurationError(f"Selection agenda {order} needs at least one option.")

    if "pass_threshold_pct" in payload:
        threshold = parse_pct(payload.get("pass_threshold_pct"), f"Agenda {order} threshold")
    else:
        threshold = getattr(agenda, "pass_threshold_pct", None)

    return {
        "title": require_title(title, f"Agenda {order} title"),
        "vote_type": vote_type,
        "labels": labels,
        "pass_threshold_pct": threshold,
    }


def _write_options(agenda, labels):
    for option in list(agenda.options):
        db.session.delete(option)
    db.session.flush()
    for position, label in enumerate(labels, start=1):
        db.session.add(AgendaOption(agenda_id=agenda.id, position=position, label=label))


def write_agenda(meeting, order, payload):
    """Validate ``payload`` and stage a new agenda at ``order``; the caller commits."""
    values = _agenda_values(order, payload)
    agenda = Agenda(
        meeting_id=meeting.id,
        order=order,
        title=values["title"],
        vote_type=values["vote_type"],
        pass_threshold_pct=values["pass_threshold_pct"],
    )
    db.session.add(agenda)
    db.session.flush()
    for position, label in enumerate(values["labels"], start=1):
        db.session.add(AgendaOption(agenda_id=agenda.id, position=position, label=label))
    return agenda


def add_agenda(meeting, payload, now=None):
    _ensure_draft(meeting, now)
    order = len(meeting.agendas) + 1
    try:
        agenda = write_agenda(meeting, order, payload)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Added agenda %s to meeting %s", order, meeting.id)
    return agenda


def update_agenda(agenda, payload, now=None):
    _ensure_draft(agenda.meeting, now)
    values = _agenda_values(agenda.order, payload, agenda)
    try:
        agenda.title = values["title"]
        agenda.vote_type = values["vote_type"]
        agenda.pass_threshold_pct = values["pass_threshold_pct"]
        if [option.label for option in agenda.options] != values["labels"]:
            _write_options(agenda, values["labels"])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return agenda


def delete_agenda(agenda, now=None):
    """Remove a draft agenda and close the gap in the 1..N ordering."""
    meeting = agenda.meeting
    _ensure_draft(meeting, now)
    meeting_id, removed_order = meeting.id, agenda.order

    try:
        for option in list(agenda.options):
            db.session.delete(option)
        db.session.delete(agenda)
        db.session.flush()

        later = (
            Agenda.query.filter(Agenda.meeting_id == meeting_id, Agenda.order > removed_order)
            .order_by(Agenda.order)
            .all()
        )
        for following in later:
            following.order -= 1
            db.session.flush()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Removed agenda %s from meeting %s", removed_order, meeting_id)
