"""create general meeting tables

Revision ID: 3a7d52c1e9b0
Revises: 
Create Date: 2026-10-19 10:12:44.118302

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3a7d52c1e9b0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('meetings',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('meeting_date', sa.Date(), nullable=True),
    sa.Column('vote_start_at', sa.DateTime(), nullable=True),
    sa.Column('vote_end_at', sa.DateTime(), nullable=True),
    sa.Column('vote_mode', sa.String(length=30), nullable=False),
    sa.Column('member_base_date', sa.Date(), nullable=True),
    sa.Column('quorum_pct', sa.Float(), nullable=True),
    sa.Column('max_revote_count', sa.Integer(), nullable=False),
    sa.Column('pass_threshold_pct', sa.Float(), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('completed_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_table('agendas',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('meeting_id', sa.Integer(), nullable=False),
    sa.Column('order', sa.Integer(), nullable=False),
    sa.Column('title', sa.String(length=500), nullable=False),
    sa.Column('vote_type', sa.String(length=20), nullable=False),
    sa.Column('pass_threshold_pct', sa.Float(), nullable=True),
    sa.ForeignKeyConstraint(['meeting_id'], ['meetings.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('meeting_id', 'order')
    )
    op.create_table('vote_members',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('meeting_id', sa.Integer(), nullable=False),
    sa.Column('membership_no', sa.String(length=50), nullable=True),
    sa.Column('dong', sa.Integer(), nullable=True),
    sa.Column('ho', sa.Integer(), nullable=True),
    sa.Column('unit_type', sa.String(length=50), nullable=True),
    sa.Column('name', sa.String(length=200), nullable=False),
    sa.Column('phone', sa.String(length=50), nullable=True),
    sa.Column('birthdate', sa.Date(), nullable=True),
    sa.Column('prevote_intention', sa.String(length=20), nullable=True),
    sa.Column('registered_on', sa.Date(), nullable=True),
    sa.Column('code', sa.String(length=50), nullable=False),
    sa.Column('vote_count', sa.Integer(), nullable=False),
    sa.Column('last_voted_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['meeting_id'], ['meetings.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('code'),
    sa.UniqueConstraint('meeting_id', 'dong', 'ho'),
    sa.UniqueConstraint('meeting_id', 'membership_no')
    )
    op.create_table('agenda_options',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('agenda_id', sa.Integer(), nullable=False),
    sa.Column('position', sa.Integer(), nullable=False),
    sa.Column('label', sa.String(length=200), nullable=False),
    sa.ForeignKeyConstraint(['agenda_id'], ['agendas.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_table('paper_votes',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('meeting_id', sa.Integer(), nullable=False),
    sa.Column('member_id', sa.Integer(), nullable=False),
    sa.Column('vote_date', sa.Date(), nullable=False),
    sa.Column('registered_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['meeting_id'], ['meetings.id'], ),
    sa.ForeignKeyConstraint(['member_id'], ['vote_members.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('member_id')
    )
    op.create_table('paper_vote_attachments',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('paper_vote_id', sa.Integer(), nullable=False),
    sa.Column('file_ref', sa.String(length=500), nullable=False),
    sa.ForeignKeyConstraint(['paper_vote_id'], ['paper_votes.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_table('ballots',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('member_id', sa.Integer(), nullable=False),
    sa.Column('agenda_id', sa.Integer(), nullable=False),
    sa.Column('channel', sa.String(length=20), nullable=False),
    sa.Column('choice', sa.String(length=20), nullable=False),
    sa.Column('option_id', sa.Integer(), nullable=True),
    sa.Column('submission_no', sa.Integer(), nullable=True),
    sa.Column('paper_vote_id', sa.Integer(), nullable=True),
    sa.Column('submitted_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['agenda_id'], ['agendas.id'], ),
    sa.ForeignKeyConstraint(['member_id'], ['vote_members.id'], ),
    sa.ForeignKeyConstraint(['option_id'], ['agenda_options.id'], ),
    sa.ForeignKeyConstraint(['paper_vote_id'], ['paper_votes.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('ballots', schema=None) as batch_op:
        batch_op.create_index('ix_ballots_member_agenda', ['member_id', 'agenda_id'], unique=False)


def downgrade():
    with op.batch_alter_table('ballots', schema=None) as batch_op:
        batch_op.drop_index('ix_ballots_member_agenda')

    op.drop_table('ballots')
    op.drop_table('paper_vote_attachments')
    op.drop_table('paper_votes')
    op.drop_table('agenda_options')
    op.drop_table('vote_members')
    op.drop_table('agendas')
    op.drop_table('meetings')
