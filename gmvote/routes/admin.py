from flask import Response, jsonify, request

from gmvote.models import Agenda, Meeting, VoteMember
from gmvote.routes.payloads import (
    agenda_payload,
    meeting_payload,
    member_payload,
    paper_vote_payload,
    parse_date,
    parse_datetime,
)
from gmvote.services import agendas, ballots, meetings, reports, roster
from gmvote.services.voting import build_snapshot
from gmvote.services.voting.errors import InvalidBallotError, RosterError

MEETING_DATE_FIELDS = ("meeting_date", "member_base_date")
MEETING_DATETIME_FIELDS = ("vote_start_at", "vote_end_at")
MEMBER_DATE_FIELDS = ("birthdate", "registered_on")


def _meeting_fields(data):
    fields = {}
    for key in meetings.MEETING_FIELDS:
        if key not in data or key == "title":
            continue
        if key in MEETING_DATE_FIELDS:
            fields[key] = parse_date(data[key], key)
        elif key in MEETING_DATETIME_FIELDS:
            fields[key] = parse_datetime(data[key], key)
        else:
            fields[key] = data[key]
    return fields


def _member_fields(data):
    fields = {}
    for key in roster.EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key in MEMBER_DATE_FIELDS:
            value = parse_date(value, key)
        elif key in ("dong", "ho") and value not in (None, ""):
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise RosterError(f"{key} must be a number.") from None
        elif key in ("dong", "ho"):
            value = None
        fields[key] = value
    return fields


def _flag(raw):
    if raw is None or raw == "":
        return None
    return raw.lower() in ("1", "true", "yes", "y")


def _csv_response(frame, filename):
    return Response(
        reports.to_csv_bytes(frame),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def _report(meeting):
    return reports.build_meeting_report(build_snapshot(meeting))


def register_admin_routes(app):
    @app.route("/admin/meetings")
    def list_meetings():
        page = meetings.search_meetings(
            keyword=request.args.get("keyword"),
            page=request.args.get("page", 1, type=int),
            per_page=request.args.get("per_page", meetings.DEFAULT_PER_PAGE, type=int),
        )
        return jsonify(
            {
                "ok": True,
                "meetings": [meeting_payload(meeting) for meeting in page.items],
                "page": page.page,
                "per_page": page.per_page,
                "total": page.total,
                "pages": page.pages,
            }
        )

    @app.route("/admin/meetings", methods=["POST"])
    def create_meeting():
        data = request.get_json(silent=True) or {}
        meeting = meetings.create_meeting(
            data.get("title"),
            agendas=data.get("agendas") or (),
            **_meeting_fields(data),
        )
        return jsonify({"ok": True, "meeting": meeting_payload(meeting)}), 201

    @app.route("/admin/meetings/<int:meeting_id>")
    def meeting_detail(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        return jsonify({"ok": True, "meeting": meeting_payload(meeting)})

    @app.route("/admin/meetings/<int:meeting_id>", methods=["PUT"])
    def update_meeting(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        data = request.get_json(silent=True) or {}
        fields = _meeting_fields(data)
        if "title" in data:
            fields["title"] = data["title"]
        meetings.update_meeting(meeting, **fields)
        return jsonify({"ok": True, "meeting": meeting_payload(meeting)})

    @app.route("/admin/meetings/<int:meeting_id>", methods=["DELETE"])
    def delete_meeting(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        meetings.delete_meeting(meeting)
        return jsonify({"ok": True})

    @app.route("/admin/meetings/<int:meeting_id>/agendas", methods=["POST"])
    def add_agenda(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        data = request.get_json(silent=True) or {}
        agenda = agendas.add_agenda(meeting, data)
        return jsonify({"ok": True, "agenda": agenda_payload(agenda)}), 201

    @app.route("/admin/agendas/<int:agenda_id>", methods=["PUT"])
    def update_agenda(agenda_id):
        agenda = Agenda.query.get_or_404(agenda_id)
        data = request.get_json(silent=True) or {}
        agendas.update_agenda(agenda, data)
        return jsonify({"ok": True, "agenda": agenda_payload(agenda)})

    @app.route("/admin/agendas/<int:agenda_id>", methods=["DELETE"])
    def delete_agenda(agenda_id):
        agenda = Agenda.query.get_or_404(agenda_id)
        agendas.delete_agenda(agenda)
        return jsonify({"ok": True})

    @app.route("/admin/meetings/<int:meeting_id>/status", methods=["POST"])
    def update_meeting_status(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        data = request.get_json(silent=True) or {}
        target = (data.get("status") or "").strip().lower()
        meetings.advance_status(meeting, target)
        return jsonify({"ok": True, "status": meeting.status})

    @app.route("/admin/meetings/<int:meeting_id>/members")
    def list_members(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        members = roster.search_members(
            meeting,
            keyword=request.args.get("keyword"),
            dong=request.args.get("dong", type=int),
            has_voted=_flag(request.args.get("has_voted")),
        )
        return jsonify(
            {"ok": True, "members": [member_payload(member) for member in members]}
        )

    @app.route("/admin/meetings/<int:meeting_id>/members", methods=["POST"])
    def add_member(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        data = request.get_json(silent=True) or {}
        member = roster.create_member(meeting, **_member_fields(data))
        return jsonify({"ok": True, "member": member_payload(member)}), 201

    @app.route("/admin/meetings/<int:meeting_id>/members/import", methods=["POST"])
    def import_members(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            raise RosterError("Upload a CSV or Excel roster file.")
        summary = roster.import_members(meeting, upload.read(), upload.filename)
        return jsonify({"ok": True, **summary})

    @app.route("/admin/meetings/<int:meeting_id>/members.csv")
    def export_members(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        return _csv_response(roster.roster_frame(meeting), f"meeting_{meeting.id}_members.csv")

    @app.route("/admin/members/<int:member_id>", methods=["PUT"])
    def update_member(member_id):
        member = VoteMember.query.get_or_404(member_id)
        data = request.get_json(silent=True) or {}
        roster.update_member(member, **_member_fields(data))
        return jsonify({"ok": True, "member": member_payload(member)})

    @app.route("/admin/members/<int:member_id>", methods=["DELETE"])
    def delete_member(member_id):
        member = VoteMember.query.get_or_404(member_id)
        roster.delete_member(member)
        return jsonify({"ok": True})

    @app.route("/admin/meetings/<int:meeting_id>/voters/dongs")
    def meeting_dongs(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        return jsonify({"ok": True, "dongs": roster.voter_dongs(meeting)})

    @app.route("/admin/meetings/<int:meeting_id>/paper-votes", methods=["POST"])
    def register_paper_vote(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        data = request.get_json(silent=True) or {}
        try:
            member_id = int(data.get("member_id"))
        except (TypeError, ValueError):
            raise InvalidBallotError("member_id is required.") from None
        member = VoteMember.query.get_or_404(member_id)
        paper_vote = ballots.register_paper_vote(
            meeting,
            member,
            parse_date(data.get("vote_date"), "vote_date"),
            data.get("choices") or {},
            attachments=data.get("attachments") or (),
        )
        return jsonify({"ok": True, "paper_vote": paper_vote_payload(paper_vote)}), 201

    @app.route("/admin/meetings/<int:meeting_id>/agenda-status")
    def agenda_status(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        return jsonify(reports.agenda_status_payload(_report(meeting)))

    @app.route("/admin/meetings/<int:meeting_id>/stats")
    def meeting_stats(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        return jsonify(reports.meeting_stats(_report(meeting)))

    @app.route("/admin/meetings/<int:meeting_id>/results")
    def meeting_results(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        return jsonify(_report(meeting).to_dict())

    @app.route("/admin/meetings/<int:meeting_id>/results.csv")
    def export_results(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        frame = reports.results_frame(_report(meeting))
        return _csv_response(frame, f"meeting_{meeting.id}_results.csv")

    @app.route("/admin/meetings/<int:meeting_id>/quorum.csv")
    def export_quorum(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        frame = reports.quorum_frame(_report(meeting))
        return _csv_response(frame, f"meeting_{meeting.id}_quorum.csv")

    @app.route("/admin/meetings/<int:meeting_id>/vote-records.csv")
    def export_vote_records(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        frame = reports.vote_records_frame(meeting, _report(meeting))
        return _csv_response(frame, f"meeting_{meeting.id}_vote_records.csv")

    @app.route("/admin/meetings/<int:meeting_id>/vote-records")
    def list_vote_records(meeting_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        records = reports.vote_records(
            meeting,
            _report(meeting),
            keyword=request.args.get("keyword"),
            dong=request.args.get("dong", type=int),
            online=_flag(request.args.get("is_vote_online")),
        )
        offset = max(request.args.get("offset", 0, type=int), 0)
        limit = request.args.get("limit", type=int)
        window = records[offset:] if limit is None else records[offset:offset + max(limit, 0)]
        return jsonify({"ok": True, "total": len(records), "records": window})

    @app.route("/admin/meetings/<int:meeting_id>/vote-records/<int:member_id>")
    def vote_record_detail(meeting_id, member_id):
        meeting = Meeting.query.get_or_404(meeting_id)
        record = reports.vote_record(meeting, _report(meeting), member_id)
        if record is None:
            return jsonify({"ok": False, "error": "Member not found in this meeting."}), 404
        return jsonify({"ok": True, "record": record})
