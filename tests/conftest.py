from datetime import date, datetime
from pathlib import Path
import sys
import os

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# Safety default for any app creation during test imports.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from gmvote import create_app
from gmvote.extensions import db
from gmvote.models import Agenda, AgendaOption, Meeting, VoteMember

VOTE_START = datetime(2026, 3, 1, 9, 0)
VOTE_END = datetime(2026, 3, 20, 18, 0)
DURING_VOTE = datetime(2026, 3, 10, 12, 0)


@pytest.fixture()
def app(tmp_path: Path):
    db_file = tmp_path / "test.sqlite3"
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_file}",
            "SQLALCHEMY_ENGINE_OPTIONS": {},
            "LOG_DIR": "",
        }
    )

    with app.app_context():
        driver = db.engine.url.drivername
        if driver != "sqlite":
            raise RuntimeError(
                f"Test database must be SQLite, got '{driver}'. Refusing to run destructive test setup."
            )
        db.drop_all()
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def db_session(app):
    with app.app_context():
        yield db.session


@pytest.fixture()
def meeting(db_session):
    """Active meeting with one approval and one selection agenda."""
    meeting = Meeting(
        title="2026 Regular General Meeting",
        meeting_date=date(2026, 3, 21),
        vote_start_at=VOTE_START,
        vote_end_at=VOTE_END,
        vote_mode="electronic_and_paper",
        member_base_date=date(2026, 2, 1),
        quorum_pct=50.0,
        max_revote_count=1,
        pass_threshold_pct=50.0,
        status="active",
    )
    db_session.add(meeting)
    db_session.flush()

    budget = Agenda(meeting_id=meeting.id, order=1, title="Approve budget", vote_type="approval")
    contractor = Agenda(
        meeting_id=meeting.id, order=2, title="Choose contractor", vote_type="selection"
    )
    db_session.add_all([budget, contractor])
    db_session.flush()

    db_session.add_all(
        [
            AgendaOption(agenda_id=contractor.id, position=1, label="Alpha Builders"),
            AgendaOption(agenda_id=contractor.id, position=2, label="Beta Construction"),
        ]
    )
    db_session.commit()
    return meeting


@pytest.fixture()
def add_member(db_session):
    counter = {"next": 1}

    def _add(meeting, name=None, registered_on=date(2026, 1, 15), **fields):
        number = counter["next"]
        counter["next"] += 1
        member = VoteMember(
            meeting_id=meeting.id,
            membership_no=fields.pop("membership_no", f"M-{number:03d}"),
            dong=fields.pop("dong", 101),
            ho=fields.pop("ho", 100 + number),
            name=name or f"Member {number}",
            registered_on=registered_on,
            code=fields.pop("code", f"CODE{number:04d}"),
            **fields,
        )
        db_session.add(member)
        db_session.commit()
        return member

    return _add
