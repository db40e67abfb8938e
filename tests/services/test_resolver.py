from datetime import date, datetime, timedelta

import pytest

from gmvote.services.voting import resolve_agenda, resolve_results
from gmvote.services.voting.errors import ConfigurationError
from gmvote.services.voting.resolver import effective_threshold, meets_threshold
from gmvote.services.voting.types import (
    ABSTAIN,
    AGREE,
    DISAGREE,
    ELECTRONIC,
    OPTION,
    PAPER,
    PASSED,
    REJECTED,
    UNDETERMINED,
    AgendaTally,
    ApprovalAgenda,
    BallotRecord,
    MeetingSnapshot,
    MeetingSpec,
    MemberSpec,
    OptionSpec,
    SelectionAgenda,
)


def _approval_tally(channel, agree=0, disagree=0, abstain=0):
    return AgendaTally(
        agenda_id=1,
        channel=channel,
        counts={AGREE: agree, DISAGREE: disagree},
        abstain=abstain,
    )


def _selection_tally(channel, counts, abstain=0):
    return AgendaTally(agenda_id=2, channel=channel, counts=dict(counts), abstain=abstain)


BUDGET = ApprovalAgenda(agenda_id=1, order=1, title="Budget")
CONTRACTOR = SelectionAgenda(
    agenda_id=2,
    order=2,
    title="Contractor",
    options=(OptionSpec(21, "Alpha"), OptionSpec(22, "Beta"), OptionSpec(23, "Gamma")),
)


def test_threshold_boundary_counts_as_passed():
    result = resolve_agenda(
        BUDGET,
        _approval_tally(ELECTRONIC, agree=50, disagree=50),
        _approval_tally(PAPER),
        default_threshold_pct=50,
    )

    assert result.verdict == PASSED
    assert result.ratio_pct == 50.0


def test_channels_combine_and_abstentions_stay_out_of_ratio():
    result = resolve_agenda(
        BUDGET,
        _approval_tally(ELECTRONIC, agree=30, disagree=10, abstain=5),
        _approval_tally(PAPER, agree=5, disagree=5),
        default_threshold_pct=60,
    )

    assert result.combined.count(AGREE) == 35
    assert result.combined.count(DISAGREE) == 15
    assert result.decisive_votes == 50
    assert result.attendance_count == 55
    assert result.ratio_pct == 70.0
    assert result.verdict == PASSED


def test_agenda_threshold_overrides_meeting_default():
    result = resolve_agenda(
        ApprovalAgenda(agenda_id=1, order=1, title="Bylaws", pass_threshold_pct=66.7),
        _approval_tally(ELECTRONIC, agree=6, disagree=4),
        _approval_tally(PAPER),
        default_threshold_pct=50,
    )

    assert result.pass_threshold_pct == 66.7
    assert result.verdict == REJECTED


def test_only_abstentions_is_undetermined():
    result = resolve_agenda(
        BUDGET,
        _approval_tally(ELECTRONIC, abstain=4),
        _approval_tally(PAPER, abstain=1),
        default_threshold_pct=50,
    )

    assert result.verdict == UNDETERMINED
    assert result.ratio_pct is None
    assert result.attendance_count == 5


def test_selection_tie_is_undetermined():
    result = resolve_agenda(
        CONTRACTOR,
        _selection_tally(ELECTRONIC, {21: 6, 22: 10, 23: 5}),
        _selection_tally(PAPER, {21: 4, 22: 0, 23: 0}),
    )

    assert result.verdict == UNDETERMINED
    assert set(result.tied_option_ids) == {21, 22}
    assert result.winning_option_id is None


def test_selection_plurality_without_threshold_passes():
    result = resolve_agenda(
        CONTRACTOR,
        _selection_tally(ELECTRONIC, {21: 4, 22: 3, 23: 3}),
        _selection_tally(PAPER, {21: 0, 22: 0, 23: 0}, abstain=2),
    )

    assert result.verdict == PASSED
    assert result.winning_option_id == 21
    assert result.ratio_pct == 40.0


def test_selection_winner_below_threshold_is_rejected():
    result = resolve_agenda(
        CONTRACTOR,
        _selection_tally(ELECTRONIC, {21: 4, 22: 3, 23: 3}),
        _selection_tally(PAPER, {21: 0, 22: 0, 23: 0}),
        default_threshold_pct=50,
    )

    assert result.verdict == REJECTED
    assert result.winning_option_id == 21


def test_approval_agenda_without_any_threshold_is_misconfigured():
    with pytest.raises(ConfigurationError):
        effective_threshold(BUDGET, None)
    assert effective_threshold(CONTRACTOR, None) is None


def test_meets_threshold_avoids_float_rounding():
    assert meets_threshold(1, 3, 33.333333333333336) is False
    assert meets_threshold(2, 3, 66.66) is True
    assert meets_threshold(7, 10, 70) is True


def _snapshot(agendas, pass_threshold_pct=50.0):
    start = datetime(2026, 3, 1, 9, 0)
    ballots = (
        BallotRecord(1, 1, 1, ELECTRONIC, AGREE, start + timedelta(hours=1)),
        BallotRecord(2, 1, 2, ELECTRONIC, OPTION, start + timedelta(hours=1), option_id=21),
        BallotRecord(3, 2, 1, PAPER, DISAGREE, start + timedelta(hours=2)),
        BallotRecord(4, 2, 2, PAPER, ABSTAIN, start + timedelta(hours=2)),
    )
    return MeetingSnapshot(
        meeting=MeetingSpec(
            meeting_id=7,
            vote_start_at=start,
            vote_end_at=start + timedelta(days=10),
            member_base_date=date(2026, 2, 1),
            quorum_pct=50.0,
            pass_threshold_pct=pass_threshold_pct,
        ),
        agendas=agendas,
        members=(MemberSpec(1), MemberSpec(2)),
        ballots=ballots,
    )


def test_misconfigured_agenda_does_not_block_the_others():
    broken = SelectionAgenda(agenda_id=2, order=2, title="Contractor", options=())
    results = resolve_results(_snapshot((broken, BUDGET)))

    assert [result.agenda_id for result in results] == [1, 2]
    budget, contractor = results
    assert budget.verdict == PASSED
    assert budget.configuration_error is None
    assert contractor.verdict is None
    assert "at least one option" in contractor.configuration_error


def test_resolving_twice_is_idempotent():
    snapshot = _snapshot((BUDGET, CONTRACTOR))

    first = [result.to_dict() for result in resolve_results(snapshot)]
    second = [result.to_dict() for result in resolve_results(snapshot)]

    assert first == second
