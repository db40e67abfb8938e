from datetime import date, datetime

import pytest

from gmvote.services.ballots import register_paper_vote, submit_electronic_ballots
from gmvote.services.reports import (
    agenda_status_payload,
    build_meeting_report,
    meeting_stats,
    quorum_frame,
    results_frame,
    to_csv_bytes,
    vote_record,
    vote_records,
    vote_records_frame,
)
from gmvote.services.voting import build_snapshot

DURING_VOTE = datetime(2026, 3, 10, 12, 0)
TODAY = date(2026, 3, 10)


@pytest.fixture()
def voted_meeting(meeting, add_member):
    budget, contractor = meeting.agendas
    first, second, third, _ = [add_member(meeting) for _ in range(4)]

    submit_electronic_ballots(
        meeting, first, {budget.id: "agree", contractor.id: "Alpha Builders"}, now=DURING_VOTE
    )
    submit_electronic_ballots(
        meeting, second, {budget.id: "agree", contractor.id: "Alpha Builders"}, now=DURING_VOTE
    )
    submit_electronic_ballots(
        meeting,
        second,
        {budget.id: "disagree", contractor.id: "Alpha Builders"},
        now=datetime(2026, 3, 11, 8, 0),
    )
    register_paper_vote(
        meeting,
        third,
        date(2026, 3, 9),
        {budget.id: "agree", contractor.id: "Beta Construction"},
        now=DURING_VOTE,
    )
    return meeting


def test_report_combines_channels_and_revotes(voted_meeting):
    report = build_meeting_report(build_snapshot(voted_meeting), today=TODAY)
    budget, contractor = report.results

    assert budget.combined.count("agree") == 2
    assert budget.combined.count("disagree") == 1
    assert budget.paper.count("agree") == 1
    assert budget.verdict == "passed"
    assert contractor.verdict == "passed"
    assert report.agenda(contractor.agenda_id).label_for(contractor.winning_option_id) == (
        "Alpha Builders"
    )
    assert report.violations == ()


def test_agenda_status_payload_uses_labels(voted_meeting):
    payload = agenda_status_payload(build_meeting_report(build_snapshot(voted_meeting), TODAY))

    assert payload["base_date"] == "2026-03-10"
    budget, contractor = payload["agendas"]
    assert budget["answers"] == ["agree", "disagree", "abstain"]
    assert budget["electronic_result"] == {"agree": 1, "disagree": 1, "abstain": 0}
    assert budget["final_result"] == "passed"
    assert contractor["answers"] == ["Alpha Builders", "Beta Construction", "abstain"]
    assert contractor["paper_result"]["Beta Construction"] == 1
    assert contractor["final_result"] == "Alpha Builders"


def test_meeting_stats(voted_meeting):
    stats = meeting_stats(build_meeting_report(build_snapshot(voted_meeting), TODAY))

    assert stats["voter_count"] == 4
    assert stats["voted_count"] == 3
    assert stats["online_count"] == 2
    assert stats["offline_count"] == 1
    assert stats["vote_rate"] == 75.0
    assert stats["quorum_count"] == 2
    assert stats["quorum_met"] is True


def test_csv_exports(voted_meeting):
    report = build_meeting_report(build_snapshot(voted_meeting), TODAY)

    results_csv = to_csv_bytes(results_frame(report))
    assert results_csv.startswith(b"\xef\xbb\xbf")
    assert results_csv.decode("utf-8-sig").splitlines()[0] == (
        "order,title,answer,electronic,paper,total,attendance,result"
    )
    assert len(results_frame(report)) == 6

    quorum = quorum_frame(report).to_dict("records")[0]
    assert quorum["attendees"] == 3
    assert quorum["quorum_met"]

    records = vote_records_frame(voted_meeting, report).to_dict("records")
    assert [record["vote_method"] for record in records[:3]] == [
        "electronic",
        "electronic",
        "paper",
    ]
    assert records[1]["agenda_1"] == "disagree"
    assert records[2]["vote_date"] == "2026-03-09"
    assert records[2]["agenda_2"] == "Beta Construction"
    assert records[3]["vote_method"] is None


def test_vote_records_filter_by_channel_and_keyword(voted_meeting):
    report = build_meeting_report(build_snapshot(voted_meeting), TODAY)

    everyone = vote_records(voted_meeting, report)
    assert len(everyone) == 4
    assert everyone[1]["votes"] == [
        {"agenda_id": voted_meeting.agendas[0].id, "order": 1, "answer": "disagree"},
        {"agenda_id": voted_meeting.agendas[1].id, "order": 2, "answer": "Alpha Builders"},
    ]

    online = vote_records(voted_meeting, report, online=True)
    assert [record["name"] for record in online] == ["Member 1", "Member 2"]
    paper = vote_records(voted_meeting, report, online=False)
    assert [record["name"] for record in paper] == ["Member 3"]
    assert vote_records(voted_meeting, report, keyword="Member 4")[0]["vote_method"] is None
    assert vote_records(voted_meeting, report, dong=999) == []


def test_vote_record_detail_lists_paper_attachments(voted_meeting):
    budget, contractor = voted_meeting.agendas
    fourth = voted_meeting.members[3]
    register_paper_vote(
        voted_meeting,
        fourth,
        date(2026, 3, 10),
        {budget.id: "abstain", contractor.id: "Alpha Builders"},
        attachments=["scans/member-4.pdf"],
        now=DURING_VOTE,
    )
    report = build_meeting_report(build_snapshot(voted_meeting), TODAY)

    record = vote_record(voted_meeting, report, fourth.id)

    assert record["vote_method"] == "paper"
    assert record["vote_date"] == "2026-03-10"
    assert record["attachments"] == ["scans/member-4.pdf"]
    assert record["votes"][0]["answer"] == "abstain"
    assert vote_record(voted_meeting, report, 9999) is None
