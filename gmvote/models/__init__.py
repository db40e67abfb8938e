from gmvote.models.agenda import Agenda
from gmvote.models.ballot import Ballot
from gmvote.models.meeting import Meeting
from gmvote.models.option import AgendaOption
from gmvote.models.paper_vote import PaperVote, PaperVoteAttachment
from gmvote.models.vote_member import VoteMember

__all__ = [
    "Meeting",
    "Agenda",
    "AgendaOption",
    "VoteMember",
    "Ballot",
    "PaperVote",
    "PaperVoteAttachment",
]
