from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from gmvote.services.voting.errors import ConfigurationError
from gmvote.services.voting.tally import TallyOutcome, tally_meeting
from gmvote.services.voting.types import (
    AGREE,
    APPROVAL,
    ELECTRONIC,
    PAPER,
    PASSED,
    REJECTED,
    SELECTION,
    UNDETERMINED,
    AgendaResult,
    AgendaTally,
    ChoiceKey,
    MeetingSnapshot,
)

logger = logging.getLogger(__name__)

COMBINED = "combined"


def validate_agenda(agenda):
    if agenda.vote_type not in (APPROVAL, SELECTION):
        raise ConfigurationError(f"Agenda {agenda.agenda_id} has unknown vote type.")
    if agenda.vote_type != SELECTION:
        return

    if not agenda.options:
        raise ConfigurationError(
            f"Selection agenda {agenda.agenda_id} must have at least one option."
        )
    labels = [option.label.strip().lower() for option in agenda.options]
    if len(set(labels)) != len(labels):
        raise ConfigurationError(
            f"Selection agenda {agenda.agenda_id} has duplicate option labels."
        )
    option_ids = [option.option_id for option in agenda.options]
    if len(set(option_ids)) != len(option_ids):
        raise ConfigurationError(
            f"Selection agenda {agenda.agenda_id} has duplicate option ids."
        )


def effective_threshold(agenda, default_threshold_pct=None) -> Optional[float]:
    """The agenda's own threshold, falling back to the meeting default.

    Approval agendas cannot be decided without one; selection agendas
    without one are decided on plurality alone.
    """
    threshold = agenda.pass_threshold_pct
    if threshold is None:
        threshold = default_threshold_pct

    if threshold is None:
        if agenda.vote_type == APPROVAL:
            raise ConfigurationError(
                f"Approval agenda {agenda.agenda_id} has no pass threshold."
            )
        return None

    threshold = float(threshold)
    if not 0 <= threshold <= 100:
        raise ConfigurationError(
            f"Agenda {agenda.agenda_id} threshold {threshold} is outside 0-100."
        )
    return threshold


def combine_tallies(electronic: AgendaTally, paper: AgendaTally) -> AgendaTally:
    counts: Dict[ChoiceKey, int] = dict(electronic.counts)
    for key, value in paper.counts.items():
        counts[key] = counts.get(key, 0) + value
    return AgendaTally(
        agenda_id=electronic.agenda_id,
        channel=COMBINED,
        counts=counts,
        abstain=electronic.abstain + paper.abstain,
    )


def meets_threshold(votes, decisive_votes, threshold_pct) -> bool:
    # Exact decimal arithmetic keeps "== threshold" on the passing side.
    return Decimal(votes) * 100 >= Decimal(str(threshold_pct)) * decisive_votes


def _pct(votes, total):
    if not total:
        return None
    return votes * 100 / total


def resolve_agenda(
    agenda,
    electronic: AgendaTally,
    paper: AgendaTally,
    default_threshold_pct=None,
    violations=(),
) -> AgendaResult:
    validate_agenda(agenda)
    threshold = effective_threshold(agenda, default_threshold_pct)

    combined = combine_tallies(electronic, paper)
    decisive_votes = combined.decisive

    ratio_pct = None
    winning_option_id = None
    tied_option_ids = ()

    if agenda.vote_type == APPROVAL:
        agree_votes = combined.count(AGREE)
        ratio_pct = _pct(agree_votes, decisive_votes)
        if decisive_votes == 0:
            verdict = UNDETERMINED
        elif meets_threshold(agree_votes, decisive_votes, threshold):
            verdict = PASSED
        else:
            verdict = REJECTED
    else:
        top_votes = max(combined.counts.values(), default=0)
        leaders = [key for key, count in combined.counts.items() if count == top_votes]
        if decisive_votes == 0:
            verdict = UNDETERMINED
        elif len(leaders) > 1:
            verdict = UNDETERMINED
            tied_option_ids = tuple(leaders)
        else:
            winning_option_id = leaders[0]
            ratio_pct = _pct(top_votes, decisive_votes)
            if threshold is not None and not meets_threshold(
                top_votes, decisive_votes, threshold
            ):
                verdict = REJECTED
            else:
                verdict = PASSED

    return AgendaResult(
        agenda_id=agenda.agenda_id,
        order=agenda.order,
        title=agenda.title,
        vote_type=agenda.vote_type,
        electronic=electronic,
        paper=paper,
        combined=combined,
        attendance_count=combined.total,
        decisive_votes=decisive_votes,
        verdict=verdict,
        pass_threshold_pct=threshold,
        ratio_pct=ratio_pct,
        winning_option_id=winning_option_id,
        tied_option_ids=tied_option_ids,
        violations=tuple(violations),
    )


def _errored_result(agenda, electronic, paper, violations, message) -> AgendaResult:
    combined = combine_tallies(electronic, paper)
    return AgendaResult(
        agenda_id=agenda.agenda_id,
        order=agenda.order,
        title=agenda.title,
        vote_type=agenda.vote_type,
        electronic=electronic,
        paper=paper,
        combined=combined,
        attendance_count=combined.total,
        decisive_votes=combined.decisive,
        verdict=None,
        pass_threshold_pct=agenda.pass_threshold_pct,
        violations=tuple(violations),
        configuration_error=message,
    )


def resolve_results(
    snapshot: MeetingSnapshot, outcome: Optional[TallyOutcome] = None
) -> List[AgendaResult]:
    """Verdicts for every agenda, ordered by agenda order.

    A misconfigured agenda carries its error on its own result and does not
    stop the others from resolving.
    """
    if outcome is None:
        outcome = tally_meeting(snapshot)

    results = []
    for agenda in sorted(snapshot.agendas, key=lambda item: (item.order, item.agenda_id)):
        electronic = outcome.tally_for(agenda.agenda_id, ELECTRONIC)
        paper = outcome.tally_for(agenda.agenda_id, PAPER)
        violations = outcome.violations_for(agenda.agenda_id)
        try:
            result = resolve_agenda(
                agenda,
                electronic,
                paper,
                snapshot.meeting.pass_threshold_pct,
                violations,
            )
        except ConfigurationError as exc:
            logger.warning(
                "Meeting %s agenda %s not resolved: %s",
                snapshot.meeting.meeting_id,
                agenda.agenda_id,
                exc,
            )
            result = _errored_result(agenda, electronic, paper, violations, str(exc))
        results.append(result)
    return results

