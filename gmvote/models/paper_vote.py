from gmvote.extensions import db


class PaperVote(db.Model):
    __tablename__ = "paper_votes"

    id = db.Column(db.Integer, primary_key=True)
    meeting_id = db.Column(db.Integer, db.ForeignKey("meetings.id"), nullable=False)
    member_id = db.Column(
        db.Integer, db.ForeignKey("vote_members.id"), nullable=False, unique=True
    )
    vote_date = db.Column(db.Date, nullable=False)
    registered_at = db.Column(db.DateTime, nullable=False)

    ballots = db.relationship("Ballot", backref="paper_vote", lazy=True)
    attachments = db.relationship(
        "PaperVoteAttachment",
        backref="paper_vote",
        lazy=True,
        order_by="PaperVoteAttachment.id",
    )


class PaperVoteAttachment(db.Model):
    __tablename__ = "paper_vote_attachments"

    id = db.Column(db.Integer, primary_key=True)
    paper_vote_id = db.Column(db.Integer, db.ForeignKey("paper_votes.id"), nullable=False)
    file_ref = db.Column(db.String(500), nullable=False)
