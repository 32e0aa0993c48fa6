# sentinelvote/database/models.py

from datetime import datetime

from sentinelvote import db

# Relational state of one election deployment. The two singleton tables hold
# at most one row each: the PK is pinned to 1 by a CHECK constraint, so a
# second insert always violates uniqueness.


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), unique=True, nullable=False)
    email = db.Column(db.String(254), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=False, default='')
    last_name = db.Column(db.String(100), nullable=False, default='')
    constituency = db.Column(db.String(100), nullable=False, default='')
    password = db.Column(db.String(200), nullable=False)  # Argon2id hash
    is_central_authority = db.Column(db.Boolean, nullable=False, default=False)
    public_key = db.Column(db.Text, nullable=False, default='')
    private_key = db.Column(db.Text, nullable=True)  # simulation profiles only
    has_voted = db.Column(db.Boolean, nullable=False, default=False)
    is_default_password = db.Column(db.Boolean, nullable=False, default=True)

    def to_public_dict(self):
        return {
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'constituency': self.constituency,
            'publicKey': self.public_key,
            'hasVoted': self.has_voted,
            'isCentralAuthority': self.is_central_authority,
        }

    def to_dump_dict(self, include_private_key=False):
        row = self.to_public_dict()
        row['uuid'] = self.uuid
        row['isDefaultPassword'] = self.is_default_password
        if include_private_key:
            row['privateKey'] = self.private_key or ''
        return row

    def __repr__(self):
        return f'<User {self.email}>'


class FoldedPublicKeys(db.Model):
    __tablename__ = 'folded_public_keys'
    __table_args__ = (db.CheckConstraint('singleton = 1', name='ck_folded_public_keys_singleton'),)
    singleton = db.Column(db.Integer, primary_key=True, autoincrement=False)
    folded_public_keys = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class ElectionEnd(db.Model):
    __tablename__ = 'is_end_of_election'
    __table_args__ = (db.CheckConstraint('singleton = 1', name='ck_is_end_of_election_singleton'),)
    singleton = db.Column(db.Integer, primary_key=True, autoincrement=False)
    is_end_of_election = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
