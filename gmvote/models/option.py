from gmvote.extensions import db


class AgendaOption(db.Model):
    __tablename__ = "agenda_options"

    id = db.Column(db.Integer, primary_key=True)
    agenda_id = db.Column(db.Integer, db.ForeignKey("agendas.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False)
    label = db.Column(db.String(200), nullable=False)
