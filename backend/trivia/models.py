from trivia import db
import json
import time


def now_ms() -> int:
    return int(time.time() * 1000)


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    organization = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.BigInteger, nullable=False, default=now_ms)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    prompt = db.Column(db.Text, nullable=False)
    options_json = db.Column('options', db.Text, nullable=False)  # JSON-encoded list of strings
    correct_index = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(64), nullable=False, default='General')
    difficulty = db.Column(db.String(32), nullable=True)
    admin_created = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.BigInteger, nullable=False, default=now_ms)

    @property
    def options(self):
        return json.loads(self.options_json) if self.options_json else []

    @options.setter
    def options(self, value):
        self.options_json = json.dumps(list(value))

    def to_public_dict(self):
        """Client payload; the correct index is withheld."""
        return {
            'id': str(self.id),
            'prompt': self.prompt,
            'options': self.options,
            'category': self.category,
            'difficulty': self.difficulty,
        }

    def to_admin_dict(self):
        payload = self.to_public_dict()
        payload['correctIndex'] = self.correct_index
        return payload


class QuizSession(db.Model):
    __tablename__ = 'quiz_session'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    question_ids_json = db.Column('question_ids', db.Text, nullable=False)  # ordered JSON list of question ids
    started_at = db.Column(db.BigInteger, nullable=False)
    expires_at = db.Column(db.BigInteger, nullable=False)
    duration_ms = db.Column(db.Integer, nullable=False)
    # Completion record; all three are set together by a single conditional update
    submitted_at = db.Column(db.BigInteger, nullable=True)
    score = db.Column(db.Integer, nullable=True)
    time_taken_ms = db.Column(db.Integer, nullable=True)
    player = db.relationship('Player')

    @property
    def question_ids(self):
        return [str(qid) for qid in json.loads(self.question_ids_json or '[]')]

    @question_ids.setter
    def question_ids(self, value):
        self.question_ids_json = json.dumps([int(qid) for qid in value])

    @property
    def is_submitted(self):
        return self.submitted_at is not None

    def is_expired(self, now):
        return not self.is_submitted and now > self.expires_at

    def timing_dict(self):
        return {
            'startedAt': self.started_at,
            'expiresAt': self.expires_at,
            'durationMs': self.duration_ms,
        }


class Submission(db.Model):
    __tablename__ = 'submission'
    __table_args__ = (
        db.Index('ix_submission_ranking', 'score', 'time_taken_ms', 'submitted_at'),
    )
    id = db.Column(db.Integer, primary_key=True)
    # Unique: a retried submit after a partial failure cannot score twice
    session_id = db.Column(db.String(64), db.ForeignKey('quiz_session.session_id'), unique=True, nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    answers_json = db.Column('answers', db.Text, nullable=False)
    score = db.Column(db.Integer, nullable=False)
    total_questions = db.Column(db.Integer, nullable=False)
    time_taken_ms = db.Column(db.Integer, nullable=False)
    submitted_at = db.Column(db.BigInteger, nullable=False)
    player = db.relationship('Player')

    @property
    def answers(self):
        return json.loads(self.answers_json) if self.answers_json else []

    @answers.setter
    def answers(self, value):
        self.answers_json = json.dumps(list(value))


class QuizSettings(db.Model):
    __tablename__ = 'quiz_settings'
    id = db.Column(db.Integer, primary_key=True)
    question_count = db.Column(db.Integer, nullable=False)
    duration_ms = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.BigInteger, nullable=False, default=now_ms, onupdate=now_ms)
