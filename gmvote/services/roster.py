import io
from datetime import datetime

import pandas as pd
from flask import current_app
from sqlalchemy import or_

from gmvote.extensions import db
from gmvote.models import Ballot, VoteMember
from gmvote.services.security import generate_voter_code
from gmvote.services.voting.errors import MemberLockedError, RosterError
from gmvote.services.voting.state import CLOSED, COMPLETED, current_status
from gmvote.services.voting.types import PREVOTE_INTENTIONS

EDITABLE_FIELDS = (
    "membership_no",
    "dong",
    "ho",
    "unit_type",
    "name",
    "phone",
    "birthdate",
    "prevote_intention",
    "registered_on",
)

# Accepted spreadsheet headers per member field.
ROSTER_COLUMNS = {
    "membership_no": ("membership_no", "가입번호", "조합원번호"),
    "dong": ("dong", "동"),
    "ho": ("ho", "호"),
    "unit_type": ("unit_type", "타입", "평형"),
    "name": ("name", "이름", "성명"),
    "phone": ("phone", "연락처", "전화번호"),
    "birthdate": ("birthdate", "생년월일"),
    "prevote_intention": ("prevote_intention", "사전투표의향", "사전투표 의향"),
    "registered_on": ("registered_on", "등록일"),
}

INTENTION_LABELS = {"예정": "planned", "미정": "undecided", "불가": "impossible", "기타": "other"}


def _clean(fields):
    cleaned = {}
    for key in EDITABLE_FIELDS:
        if key not in fields:
            continue
        value = fields[key]
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value
    return cleaned


def _validate_identity(meeting, values, member_id=None):
    if not values.get("name"):
        raise RosterError("Member name is required.")

    membership_no = values.get("membership_no")
    dong, ho = values.get("dong"), values.get("ho")
    if (dong is None) != (ho is None):
        raise RosterError("Dong and ho must be given together.")
    if membership_no is None and dong is None:
        raise RosterError("A member needs a membership number or a dong/ho unit.")

    intention = values.get("prevote_intention")
    if intention is not None and intention not in PREVOTE_INTENTIONS:
        raise RosterError(f"Unknown pre-vote intention '{intention}'.")

    others = VoteMember.query.filter(VoteMember.meeting_id == meeting.id)
    if member_id is not None:
        others = others.filter(VoteMember.id != member_id)
    if membership_no is not None and others.filter(
        VoteMember.membership_no == membership_no
    ).first():
        raise RosterError(f"Membership number {membership_no} is already on the roster.")
    if dong is not None and others.filter(
        VoteMember.dong == dong, VoteMember.ho == ho
    ).first():
        raise RosterError(f"Unit {dong}-{ho} is already on the roster.")


def ensure_member_unlocked(member, now=None):
    if current_status(member.meeting, now) in (CLOSED, COMPLETED):
        raise MemberLockedError("The roster is frozen once voting has closed.")
    if member.has_voted or member.paper_vote is not None:
        raise MemberLockedError(f"Member {member.id} has voted and can no longer be changed.")


def _code_taken(code):
    return VoteMember.query.filter_by(code=code).first() is not None


def create_member(meeting, now=None, **fields):
    if current_status(meeting, now) in (CLOSED, COMPLETED):
        raise MemberLockedError("The roster is frozen once voting has closed.")

    values = _clean(fields)
    _validate_identity(meeting, values)
    values.setdefault("registered_on", None)
    if values["registered_on"] is None:
        values["registered_on"] = (now or datetime.now()).date()

    member = VoteMember(meeting_id=meeting.id, code=generate_voter_code(_code_taken), **values)
    try:
        db.session.add(member)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return member


def update_member(member, now=None, **fields):
    ensure_member_unlocked(member, now)

    changes = _clean(fields)
    values = {key: getattr(member, key) for key in EDITABLE_FIELDS}
    values.update(changes)
    _validate_identity(member.meeting, values, member_id=member.id)

    for key, value in changes.items():
        setattr(member, key, value)
    db.session.commit()
    return member


def delete_member(member, now=None):
    """Delete an unvoted member. Members with ballots are never deleted."""
    ensure_member_unlocked(member, now)
    if Ballot.query.filter_by(member_id=member.id).count() > 0:
        raise MemberLockedError(f"Member {member.id} has ballots and cannot be deleted.")

    member_id, meeting_id = member.id, member.meeting_id
    db.session.delete(member)
    db.session.commit()
    current_app.logger.info("Removed member %s from meeting %s", member_id, meeting_id)


def search_members(meeting, keyword=None, dong=None, has_voted=None):
    query = VoteMember.query.filter(VoteMember.meeting_id == meeting.id)

    keyword = (keyword or "").strip()
    if keyword:
        pattern = f"%{keyword}%"
        query = query.filter(
            or_(
                VoteMember.name.ilike(pattern),
                VoteMember.phone.ilike(pattern),
                VoteMember.membership_no.ilike(pattern),
            )
        )
    if dong is not None:
        query = query.filter(VoteMember.dong == dong)
    if has_voted is True:
        query = query.filter(VoteMember.vote_count > 0)
    elif has_voted is False:
        query = query.filter(VoteMember.vote_count == 0)

    return query.order_by(VoteMember.dong, VoteMember.ho, VoteMember.id).all()


def voter_dongs(meeting):
    rows = (
        db.session.query(VoteMember.dong)
        .filter(VoteMember.meeting_id == meeting.id, VoteMember.dong.isnot(None))
        .distinct()
        .all()
    )
    return sorted(row[0] for row in rows)


def read_roster_file(file_bytes, filename):
    """Load an uploaded CSV or Excel roster into a frame keyed by member field."""
    buffer = io.BytesIO(file_bytes)
    try:
        if (filename or "").lower().endswith(".csv"):
            try:
                frame = pd.read_csv(buffer, dtype=str, encoding="utf-8-sig")
            except UnicodeDecodeError:
                buffer.seek(0)
                frame = pd.read_csv(buffer, dtype=str, encoding="cp949")
        else:
            frame = pd.read_excel(buffer, dtype=str)
    except ValueError as exc:
        raise RosterError(f"Could not read roster file: {exc}") from None

    headers = {}
    for field, aliases in ROSTER_COLUMNS.items():
        for column in frame.columns:
            if str(column).strip() in aliases:
                headers[column] = field
                break
    if "name" not in headers.values():
        raise RosterError("Roster file needs a name column.")
    return frame[list(headers)].rename(columns=headers)


def _cell(value):
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _row_fields(row):
    fields = {}
    for field, value in row.items():
        value = _cell(value)
        if value is None:
            fields[field] = None
        elif field in ("dong", "ho"):
            try:
                fields[field] = int(float(value.rstrip("동호")))
            except ValueError:
                raise RosterError(f"{field} must be a number, got '{value}'.") from None
        elif field in ("birthdate", "registered_on"):
            try:
                fields[field] = pd.to_datetime(value).date()
            except ValueError:
                raise RosterError(f"{field} must be a date, got '{value}'.") from None
        elif field == "prevote_intention":
            fields[field] = INTENTION_LABELS.get(value, value)
        else:
            fields[field] = value
    return fields


def import_members(meeting, file_bytes, filename, now=None):
    """Add every valid roster row; invalid rows are reported and skipped."""
    if current_status(meeting, now) in (CLOSED, COMPLETED):
        raise MemberLockedError("The roster is frozen once voting has closed.")

    frame = read_roster_file(file_bytes, filename)
    default_registered_on = (now or datetime.now()).date()
    imported, errors = 0, []
    try:
        for index, row in enumerate(frame.to_dict("records"), start=2):
            try:
                values = _clean(_row_fields(row))
                _validate_identity(meeting, values)
            except RosterError as exc:
                errors.append({"row": index, "error": str(exc)})
                continue
            if values.get("registered_on") is None:
                values["registered_on"] = default_registered_on
            db.session.add(
                VoteMember(meeting_id=meeting.id, code=generate_voter_code(_code_taken), **values)
            )
            db.session.flush()
            imported += 1
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Imported %d member(s) into meeting %s (%d row(s) skipped)",
        imported,
        meeting.id,
        len(errors),
    )
    return {"imported": imported, "failed": len(errors), "errors": errors}


def roster_frame(meeting):
    rows = [
        {
            "membership_no": member.membership_no,
            "dong": member.dong,
            "ho": member.ho,
            "unit_type": member.unit_type,
            "name": member.name,
            "phone": member.phone,
            "birthdate": member.birthdate.isoformat() if member.birthdate else None,
            "prevote_intention": member.prevote_intention,
            "registered_on": member.registered_on.isoformat() if member.registered_on else None,
            "code": member.code,
            "vote_count": member.vote_count or 0,
        }
        for member in meeting.members
    ]
    return pd.DataFrame(rows, columns=list(ROSTER_COLUMNS) + ["code", "vote_count"])
