from bingo import db
from flask_login import UserMixin
from datetime import datetime, timezone
import json
import string
import random
import uuid


GAME_STATUSES = ('waiting', 'playing', 'paused', 'finished')


def _utcnow():
    return datetime.now(timezone.utc)


def _new_id():
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class Player(UserMixin, db.Model):
    """A seat in a game. The id doubles as the client's capability token."""
    __tablename__ = 'player'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(64), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False, index=True)
    card_count = db.Column(db.Integer, default=1, nullable=False)
    is_developer = db.Column(db.Boolean, default=False, nullable=False)
    joined_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    game = db.relationship('Game', back_populates='players')
    cards = db.relationship('Card', back_populates='player', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'game_id': self.game_id,
            'card_count': self.card_count,
            'is_developer': self.is_developer,
            'joined_at': _iso(self.joined_at),
        }


def generate_game_code(length=6):
    """Generate a unique, short game code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Game.query.filter_by(game_code=code).first():
            return code


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(12), unique=True, index=True, nullable=False)
    host_id = db.Column(db.String(36), nullable=True)
    host_name = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), default='waiting', nullable=False)  # waiting, playing, paused, finished
    player_limit = db.Column(db.Integer, nullable=False)
    win_pattern = db.Column(db.String(16), default='line', nullable=False)
    called_numbers = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list, call order
    staged_number = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    # Bumped on every UPDATE; a stale writer gets StaleDataError instead of a lost update
    version = db.Column(db.Integer, nullable=False)
    players = db.relationship('Player', back_populates='game', cascade='all, delete-orphan',
                              order_by='Player.joined_at')
    cards = db.relationship('Card', back_populates='game', cascade='all')
    winners = db.relationship('Winner', backref='game', cascade='all, delete-orphan')
    messages = db.relationship('Message', backref='game', cascade='all, delete-orphan')

    __mapper_args__ = {'version_id_col': version}

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.game_code:
            self.game_code = generate_game_code()

    def get_called_numbers(self):
        try:
            return json.loads(self.called_numbers) if self.called_numbers else []
        except ValueError:
            return []

    def set_called_numbers(self, numbers):
        self.called_numbers = json.dumps([int(n) for n in numbers])

    def to_dict(self):
        called = self.get_called_numbers()
        return {
            'id': self.id,
            'game_code': self.game_code,
            'host_id': self.host_id,
            'host_name': self.host_name,
            'status': self.status,
            'player_limit': self.player_limit,
            'win_pattern': self.win_pattern,
            'called_numbers': called,
            'last_called': called[-1] if called else None,
            'staged_number': self.staged_number,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class Card(db.Model):
    __tablename__ = 'card'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    player_id = db.Column(db.String(36), db.ForeignKey('player.id', ondelete='CASCADE'), nullable=False, index=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False, index=True)
    numbers = db.Column(db.Text, nullable=False)  # JSON-encoded, 25 ints column-major
    marked = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded flat indices
    position = db.Column(db.Integer, nullable=False, default=1)  # dealing order within the player's hand
    player = db.relationship('Player', back_populates='cards')
    game = db.relationship('Game', back_populates='cards')

    def get_numbers(self):
        return json.loads(self.numbers)

    def get_marked(self):
        try:
            return json.loads(self.marked) if self.marked else []
        except ValueError:
            return []

    def set_marked(self, indices):
        self.marked = json.dumps(sorted({int(i) for i in indices}))

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'game_id': self.game_id,
            'numbers': self.get_numbers(),
            'marked': self.get_marked(),
        }


class Winner(db.Model):
    __tablename__ = 'winner'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False, index=True)
    player_id = db.Column(db.String(36), nullable=False)
    player_name = db.Column(db.String(64), nullable=False)
    card_id = db.Column(db.String(36), nullable=True)
    pattern = db.Column(db.String(16), nullable=False)
    # Missed winners: cards that satisfied the pattern but were never claimed
    missed = db.Column(db.Boolean, default=False, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    won_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self):
        data = {
            'id': self.id,
            'player_id': self.player_id,
            'name': self.player_name,
            'card_id': self.card_id,
            'pattern': self.pattern,
            'won_at': _iso(self.won_at),
        }
        if self.missed:
            data['reason'] = self.reason
        return data


class Message(db.Model):
    __tablename__ = 'message'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id', ondelete='CASCADE'), nullable=False, index=True)
    sender = db.Column(db.String(64), nullable=False)
    text = db.Column(db.Text, nullable=False)
    is_system = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'sender': self.sender,
            'text': self.text,
            'is_system': self.is_system,
            'timestamp': _iso(self.created_at),
        }
