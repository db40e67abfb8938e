from gmvote.services.voting.types import (
    SELECTION,
    ApprovalAgenda,
    BallotRecord,
    MeetingSnapshot,
    MeetingSpec,
    MemberSpec,
    OptionSpec,
    PaperVoteRecord,
    SelectionAgenda,
)


def meeting_spec(meeting):
    return MeetingSpec(
        meeting_id=meeting.id,
        title=meeting.title,
        meeting_date=meeting.meeting_date,
        vote_start_at=meeting.vote_start_at,
        vote_end_at=meeting.vote_end_at,
        vote_mode=meeting.vote_mode,
        member_base_date=meeting.member_base_date,
        quorum_pct=meeting.quorum_pct,
        max_revote_count=meeting.max_revote_count or 0,
        pass_threshold_pct=meeting.pass_threshold_pct,
        status=meeting.status,
    )


def agenda_spec(agenda):
    if agenda.vote_type == SELECTION:
        return SelectionAgenda(
            agenda_id=agenda.id,
            order=agenda.order,
            title=agenda.title,
            options=tuple(
                OptionSpec(option_id=option.id, label=option.label)
                for option in agenda.options
            ),
            pass_threshold_pct=agenda.pass_threshold_pct,
        )
    return ApprovalAgenda(
        agenda_id=agenda.id,
        order=agenda.order,
        title=agenda.title,
        pass_threshold_pct=agenda.pass_threshold_pct,
    )


def ballot_record(ballot):
    return BallotRecord(
        ballot_id=ballot.id,
        member_id=ballot.member_id,
        agenda_id=ballot.agenda_id,
        channel=ballot.channel,
        choice=ballot.choice,
        submitted_at=ballot.submitted_at,
        option_id=ballot.option_id,
        submission_no=ballot.submission_no,
    )


def build_snapshot(meeting):
    """Freeze a persisted meeting into the tally engine's input."""
    members = list(meeting.members)
    ballots = [ballot for member in members for ballot in member.ballots]
    ballots.sort(key=lambda ballot: ballot.id)

    return MeetingSnapshot(
        meeting=meeting_spec(meeting),
        agendas=tuple(agenda_spec(agenda) for agenda in meeting.agendas),
        members=tuple(
            MemberSpec(
                member_id=member.id,
                name=member.name,
                registered_on=member.registered_on,
            )
            for member in members
        ),
        ballots=tuple(ballot_record(ballot) for ballot in ballots),
        paper_votes=tuple(
            PaperVoteRecord(
                member_id=paper_vote.member_id,
                vote_date=paper_vote.vote_date,
                attachments=tuple(
                    attachment.file_ref for attachment in paper_vote.attachments
                ),
            )
            for paper_vote in sorted(meeting.paper_votes, key=lambda item: item.member_id)
        ),
    )
