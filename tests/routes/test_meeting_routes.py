from datetime import datetime, timedelta

import pytest


@pytest.fixture()
def open_meeting(client):
    now = datetime.now()
    response = client.post(
        "/admin/meetings",
        json={
            "title": "Resident General Meeting",
            "meeting_date": (now + timedelta(days=2)).date().isoformat(),
            "vote_start_at": (now - timedelta(days=1)).isoformat(timespec="seconds"),
            "vote_end_at": (now + timedelta(days=1)).isoformat(timespec="seconds"),
            "quorum_pct": 50,
            "max_revote_count": 0,
            "agendas": [
                {"title": "Approve budget"},
                {"title": "Choose contractor", "vote_type": "selection", "options": "Alpha/Beta"},
            ],
        },
    )
    assert response.status_code == 201
    meeting = response.get_json()["meeting"]
    assert meeting["status"] == "draft"
    assert meeting["agendas"][1]["options_text"] == "Alpha/Beta"

    members = []
    for number, (dong, ho) in enumerate([(101, 1001), (101, 1002), (102, 301)], start=1):
        response = client.post(
            f"/admin/meetings/{meeting['id']}/members",
            json={"name": f"Owner {number}", "dong": str(dong), "ho": ho},
        )
        assert response.status_code == 201
        members.append(response.get_json()["member"])

    response = client.post(f"/admin/meetings/{meeting['id']}/status", json={"status": "active"})
    assert response.status_code == 200
    return meeting, members


def _choices(meeting, budget="agree", contractor="Alpha"):
    first, second = meeting["agendas"]
    return {str(first["id"]): budget, str(second["id"]): contractor}


def test_invalid_meeting_returns_configuration_error(client):
    response = client.post(
        "/admin/meetings",
        json={"title": "Broken", "agendas": [{"title": "Pick", "vote_type": "selection"}]},
    )

    assert response.status_code == 422
    body = response.get_json()
    assert body["ok"] is False
    assert body["type"] == "ConfigurationError"


def test_meeting_detail_and_missing_meeting(client, open_meeting):
    meeting, _ = open_meeting

    response = client.get(f"/admin/meetings/{meeting['id']}")
    assert response.get_json()["meeting"]["status"] == "active"
    assert client.get("/admin/meetings/999").status_code == 404


def test_voting_flow_updates_stats(client, open_meeting):
    meeting, members = open_meeting
    first, second, _ = members

    ballot = client.get(f"/vote/{first['code'].lower()}")
    assert ballot.status_code == 200
    assert ballot.get_json()["revotes_left"] == 1

    response = client.post(f"/vote/{first['code']}", json={"choices": _choices(meeting)})
    assert response.status_code == 201
    assert response.get_json()["submission_no"] == 1

    response = client.post(
        f"/admin/meetings/{meeting['id']}/paper-votes",
        json={
            "member_id": second["id"],
            "vote_date": datetime.now().date().isoformat(),
            "choices": _choices(meeting, budget="disagree", contractor="Beta"),
            "attachments": ["paper/owner-2.pdf"],
        },
    )
    assert response.status_code == 201
    assert response.get_json()["paper_vote"]["attachments"] == ["paper/owner-2.pdf"]

    stats = client.get(f"/admin/meetings/{meeting['id']}/stats").get_json()
    assert stats["voted_count"] == 2
    assert stats["online_count"] == 1
    assert stats["offline_count"] == 1
    assert stats["quorum_met"] is True

    status = client.get(f"/admin/meetings/{meeting['id']}/agenda-status").get_json()
    assert status["agendas"][0]["attendance_count"] == 2
    assert status["agendas"][1]["verdict"] == "undetermined"


def test_revote_limit_and_channel_conflict_are_conflicts(client, open_meeting):
    meeting, members = open_meeting
    code = members[0]["code"]
    client.post(f"/vote/{code}", json={"choices": _choices(meeting)})

    response = client.post(f"/vote/{code}", json={"choices": _choices(meeting)})
    assert response.status_code == 409
    assert response.get_json()["kind"] == "revote_limit_exceeded"

    response = client.post(
        f"/admin/meetings/{meeting['id']}/paper-votes",
        json={
            "member_id": members[0]["id"],
            "vote_date": datetime.now().date().isoformat(),
            "choices": _choices(meeting),
        },
    )
    assert response.status_code == 409
    assert response.get_json()["kind"] == "channel_conflict"


def test_invalid_ballot_and_unknown_code(client, open_meeting):
    meeting, members = open_meeting

    response = client.post(
        f"/vote/{members[0]['code']}", json={"choices": _choices(meeting, budget="maybe")}
    )
    assert response.status_code == 400
    assert client.post("/vote/NOPE0000", json={"choices": {}}).status_code == 404


def test_member_management(client, open_meeting):
    meeting, members = open_meeting
    client.post(f"/vote/{members[0]['code']}", json={"choices": _choices(meeting)})

    response = client.delete(f"/admin/members/{members[0]['id']}")
    assert response.status_code == 409

    response = client.put(f"/admin/members/{members[1]['id']}", json={"phone": "010-0000-1111"})
    assert response.get_json()["member"]["phone"] == "010-0000-1111"

    response = client.delete(f"/admin/members/{members[2]['id']}")
    assert response.status_code == 200

    listing = client.get(f"/admin/meetings/{meeting['id']}/members?has_voted=true").get_json()
    assert [member["id"] for member in listing["members"]] == [members[0]["id"]]

    dongs = client.get(f"/admin/meetings/{meeting['id']}/voters/dongs").get_json()
    assert dongs["dongs"] == [101]


def test_csv_exports_are_downloadable(client, open_meeting):
    meeting, members = open_meeting
    client.post(f"/vote/{members[0]['code']}", json={"choices": _choices(meeting)})

    for name in ("results.csv", "quorum.csv", "vote-records.csv"):
        response = client.get(f"/admin/meetings/{meeting['id']}/{name}")
        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert "attachment" in response.headers["Content-Disposition"]
        assert response.data.startswith(b"\xef\xbb\xbf")
