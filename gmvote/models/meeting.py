from gmvote.extensions import db


class Meeting(db.Model):
    __tablename__ = "meetings"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    meeting_date = db.Column(db.Date, nullable=True)
    vote_start_at = db.Column(db.DateTime, nullable=True)
    vote_end_at = db.Column(db.DateTime, nullable=True)
    vote_mode = db.Column(db.String(30), nullable=False, default="electronic_and_paper")
    member_base_date = db.Column(db.Date, nullable=True)
    quorum_pct = db.Column(db.Float, nullable=True)
    max_revote_count = db.Column(db.Integer, nullable=False, default=0)
    pass_threshold_pct = db.Column(db.Float, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="draft")
    completed_at = db.Column(db.DateTime, nullable=True)

    agendas = db.relationship(
        "Agenda", backref="meeting", lazy=True, order_by="Agenda.order"
    )
    members = db.relationship(
        "VoteMember", backref="meeting", lazy=True, order_by="VoteMember.id"
    )
    paper_votes = db.relationship("PaperVote", backref="meeting", lazy=True)
