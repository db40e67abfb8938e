from flask import jsonify, request

from gmvote.models import VoteMember
from gmvote.routes.payloads import agenda_payload
from gmvote.services.ballots import submit_electronic_ballots
from gmvote.services.voting.state import current_status


def _member_for_code(code):
    code = (code or "").strip().upper()
    return VoteMember.query.filter_by(code=code).first()


def register_public_routes(app):
    @app.route("/vote/<code>")
    def voter_ballot(code):
        member = _member_for_code(code)
        if not member:
            return jsonify({"ok": False, "error": "Invalid access code."}), 404

        meeting = member.meeting
        return jsonify(
            {
                "ok": True,
                "member": {"id": member.id, "name": member.name},
                "meeting": {
                    "id": meeting.id,
                    "title": meeting.title,
                    "status": current_status(meeting),
                    "vote_end_at": (
                        meeting.vote_end_at.isoformat() if meeting.vote_end_at else None
                    ),
                },
                "agendas": [agenda_payload(agenda) for agenda in meeting.agendas],
                "vote_count": member.vote_count or 0,
                "revotes_left": max(
                    (meeting.max_revote_count or 0) + 1 - (member.vote_count or 0), 0
                ),
            }
        )

    @app.route("/vote/<code>", methods=["POST"])
    def submit_vote(code):
        member = _member_for_code(code)
        if not member:
            return jsonify({"ok": False, "error": "Invalid access code."}), 404

        data = request.get_json(silent=True) or {}
        ballots = submit_electronic_ballots(member.meeting, member, data.get("choices") or {})
        return jsonify(
            {
                "ok": True,
                "submission_no": ballots[0].submission_no,
                "agenda_ids": [ballot.agenda_id for ballot in ballots],
            }
        ), 201
