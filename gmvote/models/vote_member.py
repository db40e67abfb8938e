from gmvote.extensions import db


class VoteMember(db.Model):
    __tablename__ = "vote_members"
    __table_args__ = (
        db.UniqueConstraint("meeting_id", "membership_no"),
        db.UniqueConstraint("meeting_id", "dong", "ho"),
    )

    id = db.Column(db.Integer, primary_key=True)
    meeting_id = db.Column(db.Integer, db.ForeignKey("meetings.id"), nullable=False)
    membership_no = db.Column(db.String(50), nullable=True)
    dong = db.Column(db.Integer, nullable=True)
    ho = db.Column(db.Integer, nullable=True)
    unit_type = db.Column(db.String(50), nullable=True)
    name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(50), nullable=True)
    birthdate = db.Column(db.Date, nullable=True)
    prevote_intention = db.Column(db.String(20), nullable=True)
    registered_on = db.Column(db.Date, nullable=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    vote_count = db.Column(db.Integer, nullable=False, default=0)
    last_voted_at = db.Column(db.DateTime, nullable=True)

    ballots = db.relationship("Ballot", backref="member", lazy=True)
    paper_vote = db.relationship(
        "PaperVote", backref="member", lazy=True, uselist=False
    )

    @property
    def has_voted(self):
        return (self.vote_count or 0) > 0
