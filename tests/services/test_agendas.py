from datetime import date, datetime

import pytest

from gmvote.models import Agenda, AgendaOption
from gmvote.services.agendas import add_agenda, delete_agenda, update_agenda
from gmvote.services.meetings import create_meeting
from gmvote.services.voting.errors import ConfigurationError, StateTransitionError

START = datetime(2026, 5, 1, 9, 0)
END = datetime(2026, 5, 15, 18, 0)


@pytest.fixture()
def draft_meeting(db_session):
    return create_meeting(
        "Extraordinary General Meeting",
        agendas=[
            {"title": "Approve 2026 budget"},
            {"title": "Choose management company", "vote_type": "selection", "options": "Alpha/Beta"},
            {"title": "Amend bylaws"},
        ],
        meeting_date=date(2026, 5, 16),
        vote_start_at=START,
        vote_end_at=END,
    )


def test_add_agenda_appends_in_order(draft_meeting):
    agenda = add_agenda(
        draft_meeting,
        {"title": "Elect auditor", "vote_type": "selection", "options": ["Kim", "Park"]},
    )

    assert agenda.order == 4
    assert [option.label for option in agenda.options] == ["Kim", "Park"]
    assert [item.order for item in draft_meeting.agendas] == [1, 2, 3, 4]


def test_add_agenda_rejects_bad_payload(draft_meeting):
    with pytest.raises(ConfigurationError):
        add_agenda(draft_meeting, {"title": "Pick", "vote_type": "selection"})
    with pytest.raises(ConfigurationError):
        add_agenda(draft_meeting, {"title": "  "})

    assert Agenda.query.filter_by(meeting_id=draft_meeting.id).count() == 3


def test_update_agenda_replaces_options(draft_meeting):
    company = draft_meeting.agendas[1]

    update_agenda(company, {"options": "Gamma/Delta/Epsilon", "pass_threshold_pct": "40"})

    assert [option.label for option in company.options] == ["Gamma", "Delta", "Epsilon"]
    assert company.pass_threshold_pct == 40.0
    assert company.title == "Choose management company"
    assert AgendaOption.query.filter_by(agenda_id=company.id).count() == 3


def test_switching_to_approval_drops_options(draft_meeting):
    company = draft_meeting.agendas[1]

    update_agenda(company, {"vote_type": "approval"})

    assert company.vote_type == "approval"
    assert company.options == []


def test_delete_agenda_closes_the_order_gap(draft_meeting):
    budget = draft_meeting.agendas[0]

    delete_agenda(budget)

    remaining = Agenda.query.filter_by(meeting_id=draft_meeting.id).order_by(Agenda.order).all()
    assert [(agenda.order, agenda.title) for agenda in remaining] == [
        (1, "Choose management company"),
        (2, "Amend bylaws"),
    ]
    assert AgendaOption.query.count() == 2


def test_agendas_are_frozen_once_the_meeting_opens(meeting):
    budget = meeting.agendas[0]

    with pytest.raises(StateTransitionError):
        add_agenda(meeting, {"title": "Late addition"})
    with pytest.raises(StateTransitionError):
        update_agenda(budget, {"title": "Changed"})
    with pytest.raises(StateTransitionError):
        delete_agenda(budget)

    assert budget.title == "Approve budget"
