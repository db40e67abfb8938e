from gmvote.extensions import db


class Ballot(db.Model):
    __tablename__ = "ballots"
    __table_args__ = (db.Index("ix_ballots_member_agenda", "member_id", "agenda_id"),)

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey("vote_members.id"), nullable=False)
    agenda_id = db.Column(db.Integer, db.ForeignKey("agendas.id"), nullable=False)
    channel = db.Column(db.String(20), nullable=False)
    choice = db.Column(db.String(20), nullable=False)
    option_id = db.Column(db.Integer, db.ForeignKey("agenda_options.id"), nullable=True)
    submission_no = db.Column(db.Integer, nullable=True)
    paper_vote_id = db.Column(db.Integer, db.ForeignKey("paper_votes.id"), nullable=True)
    submitted_at = db.Column(db.DateTime, nullable=False)

    option = db.relationship("AgendaOption", lazy=True)
