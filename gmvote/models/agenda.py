from gmvote.extensions import db


class Agenda(db.Model):
    __tablename__ = "agendas"
    __table_args__ = (db.UniqueConstraint("meeting_id", "order"),)

    id = db.Column(db.Integer, primary_key=True)
    meeting_id = db.Column(db.Integer, db.ForeignKey("meetings.id"), nullable=False)
    order = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(500), nullable=False)
    vote_type = db.Column(db.String(20), nullable=False, default="approval")
    pass_threshold_pct = db.Column(db.Float, nullable=True)

    options = db.relationship(
        "AgendaOption", backref="agenda", lazy=True, order_by="AgendaOption.position"
    )
    ballots = db.relationship("Ballot", backref="agenda", lazy=True)
