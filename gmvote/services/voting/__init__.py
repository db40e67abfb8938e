from gmvote.services.voting.quorum import compute_quorum, reference_date
from gmvote.services.voting.resolver import resolve_agenda, resolve_results
from gmvote.services.voting.snapshot import build_snapshot
from gmvote.services.voting.tally import resolve_live_ballots, tally_meeting

__all__ = [
    "build_snapshot",
    "compute_quorum",
    "reference_date",
    "resolve_agenda",
    "resolve_live_ballots",
    "resolve_results",
    "tally_meeting",
]
