from datetime import datetime

from flask import current_app

from gmvote.extensions import db
from gmvote.models import Ballot, PaperVote, PaperVoteAttachment, VoteMember
from gmvote.services.voting.errors import IntegrityViolation, InvalidBallotError
from gmvote.services.voting.state import ensure_accepting_ballots
from gmvote.services.voting.tally import eligible_members
from gmvote.services.voting.types import (
    ABSTAIN,
    AGREE,
    APPROVAL,
    CHANNEL_CONFLICT,
    DISAGREE,
    ELECTRONIC,
    ELECTRONIC_AND_PAPER,
    INELIGIBLE_MEMBER,
    OPTION,
    PAPER,
    REVOTE_LIMIT_EXCEEDED,
)


def parse_choice(agenda, raw):
    """Map a submitted answer onto (choice, option_id) for ``agenda``.

    Selection answers may name an option by id or by label.
    """
    value = str(raw).strip() if raw is not None else ""
    if not value:
        raise InvalidBallotError(f"Agenda {agenda.order} has no answer.")
    if value.lower() == ABSTAIN:
        return ABSTAIN, None

    if agenda.vote_type == APPROVAL:
        if value.lower() in (AGREE, DISAGREE):
            return value.lower(), None
        raise InvalidBallotError(f"'{value}' is not a valid answer for agenda {agenda.order}.")

    for option in agenda.options:
        if value == str(option.id) or value == option.label:
            return OPTION, option.id
    raise InvalidBallotError(f"'{value}' is not an option of agenda {agenda.order}.")


def _parse_choices(meeting, choices):
    agendas_by_id = {agenda.id: agenda for agenda in meeting.agendas}
    parsed = []
    for agenda_id, raw in (choices or {}).items():
        try:
            agenda = agendas_by_id[int(agenda_id)]
        except (KeyError, TypeError, ValueError):
            raise InvalidBallotError(f"Agenda {agenda_id} does not belong to this meeting.") from None
        choice, option_id = parse_choice(agenda, raw)
        parsed.append((agenda, choice, option_id))

    if not parsed:
        raise InvalidBallotError("No agenda answers were submitted.")
    return parsed


def _lock_member(member):
    # One authoritative check-then-write per member.
    return (
        VoteMember.query.filter_by(id=member.id)
        .with_for_update()
        .populate_existing()
        .one()
    )


def _ensure_eligible(meeting, member):
    if not eligible_members([member], meeting.member_base_date):
        raise IntegrityViolation(
            "Member was not on the roster as of the base date.",
            kind=INELIGIBLE_MEMBER,
            member_id=member.id,
        )


def _has_electronic_ballots(member):
    return (
        Ballot.query.filter_by(member_id=member.id, channel=ELECTRONIC).count() > 0
    )


def submit_electronic_ballots(meeting, member, choices, now=None):
    now = now or datetime.now()
    if member.meeting_id != meeting.id:
        raise InvalidBallotError("Member does not belong to this meeting.")
    ensure_accepting_ballots(meeting, now)
    parsed = _parse_choices(meeting, choices)

    try:
        member = _lock_member(member)
        _ensure_eligible(meeting, member)
        if member.paper_vote is not None:
            raise IntegrityViolation(
                "A paper vote is already registered for this member.",
                kind=CHANNEL_CONFLICT,
                member_id=member.id,
            )

        allowed = (meeting.max_revote_count or 0) + 1
        if (member.vote_count or 0) >= allowed:
            raise IntegrityViolation(
                f"Revote limit reached ({allowed} submission(s) allowed).",
                kind=REVOTE_LIMIT_EXCEEDED,
                member_id=member.id,
            )

        submission_no = (member.vote_count or 0) + 1
        ballots = [
            Ballot(
                member_id=member.id,
                agenda_id=agenda.id,
                channel=ELECTRONIC,
                choice=choice,
                option_id=option_id,
                submission_no=submission_no,
                submitted_at=now,
            )
            for agenda, choice, option_id in parsed
        ]
        db.session.add_all(ballots)
        member.vote_count = submission_no
        member.last_voted_at = now
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Electronic submission %s accepted for member %s (meeting %s)",
        submission_no,
        member.id,
        meeting.id,
    )
    return ballots


def register_paper_vote(meeting, member, vote_date, choices, attachments=(), now=None):
    """Record (or overwrite) a member's paper ballot for the meeting."""
    now = now or datetime.now()
    if meeting.vote_mode != ELECTRONIC_AND_PAPER:
        raise InvalidBallotError("This meeting accepts electronic votes only.")
    if member.meeting_id != meeting.id:
        raise InvalidBallotError("Member does not belong to this meeting.")
    if vote_date is None:
        raise InvalidBallotError("Paper vote date is required.")
    ensure_accepting_ballots(meeting, now)
    parsed = _parse_choices(meeting, choices)

    try:
        member = _lock_member(member)
        _ensure_eligible(meeting, member)
        if _has_electronic_ballots(member):
            raise IntegrityViolation(
                "Member has already voted electronically.",
                kind=CHANNEL_CONFLICT,
                member_id=member.id,
            )

        paper_vote = member.paper_vote
        if paper_vote is None:
            paper_vote = PaperVote(
                meeting_id=meeting.id,
                member_id=member.id,
                vote_date=vote_date,
                registered_at=now,
            )
            db.session.add(paper_vote)
        else:
            for ballot in list(paper_vote.ballots):
                db.session.delete(ballot)
            for attachment in list(paper_vote.attachments):
                db.session.delete(attachment)
            paper_vote.vote_date = vote_date
            paper_vote.registered_at = now
        db.session.flush()

        db.session.add_all(
            Ballot(
                member_id=member.id,
                agenda_id=agenda.id,
                channel=PAPER,
                choice=choice,
                option_id=option_id,
                paper_vote_id=paper_vote.id,
                submitted_at=now,
            )
            for agenda, choice, option_id in parsed
        )
        db.session.add_all(
            PaperVoteAttachment(paper_vote_id=paper_vote.id, file_ref=str(file_ref))
            for file_ref in attachments or ()
            if str(file_ref).strip()
        )
        member.vote_count = max(member.vote_count or 0, 1)
        member.last_voted_at = now
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Paper vote registered for member %s (meeting %s)", member.id, meeting.id
    )
    return paper_vote
