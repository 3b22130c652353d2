"""Store-facing collaborators for the quiz services.

The services never touch models for the question bank or settings directly;
they go through these small repositories so storage failures surface as
``StorageError`` in one place.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from trivia import db
from trivia.errors import NotFoundError, StorageError, ValidationError
from trivia.models import Question, QuizSettings

OPTION_COUNT = 4
MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 100
MIN_DURATION_MS = 30000
SETTINGS_ID = 1


def _text(value):
    if not isinstance(value, str):
        return None
    return value.strip() or None


@contextmanager
def storage_guard(action: str):
    """Roll back and re-raise store failures as StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError(f'Failed to {action}.') from exc


@dataclass(frozen=True)
class QuizConfig:
    question_count: int
    duration_ms: int

    def to_dict(self):
        return {'questionCount': self.question_count, 'durationMs': self.duration_ms}


class QuestionBank:
    def find_eligible(self) -> List[Question]:
        with storage_guard('load questions'):
            return Question.query.filter_by(admin_created=True).order_by(Question.id).all()

    def find_by_ids(self, ids: Iterable[str]) -> List[Question]:
        wanted = [int(qid) for qid in ids]
        if not wanted:
            return []
        with storage_guard('load questions'):
            return Question.query.filter(Question.id.in_(wanted)).all()

    def list_all(self) -> List[Question]:
        return self.find_eligible()

    def create(self, prompt, options, correct_index, category=None, difficulty=None) -> Question:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError('Invalid question data.')
        if not isinstance(options, list) or len(options) != OPTION_COUNT:
            raise ValidationError('Invalid question data.')
        if any(not isinstance(o, str) or not o.strip() for o in options):
            raise ValidationError('Invalid question data.')
        if isinstance(correct_index, bool) or not isinstance(correct_index, int) or not 0 <= correct_index < OPTION_COUNT:
            raise ValidationError('Invalid question data.')

        question = Question(
            prompt=prompt.strip(),
            options=[o.strip() for o in options],
            correct_index=correct_index,
            category=_text(category) or 'General',
            difficulty=_text(difficulty),
            admin_created=True,
        )
        with storage_guard('create question'):
            db.session.add(question)
            db.session.commit()
        current_app.logger.info(f"[question-create] id={question.id} category={question.category}")
        return question

    def delete(self, question_id) -> None:
        try:
            pk = int(question_id)
        except (TypeError, ValueError):
            raise NotFoundError('Question not found.')
        with storage_guard('delete question'):
            question = db.session.get(Question, pk)
            if question is None:
                raise NotFoundError('Question not found.')
            db.session.delete(question)
            db.session.commit()
        current_app.logger.info(f"[question-delete] id={pk}")


class SettingsStore:
    """Singleton quiz settings row, created lazily from config defaults."""

    def _load_or_create(self) -> QuizSettings:
        settings = db.session.get(QuizSettings, SETTINGS_ID)
        if settings is not None:
            return settings
        cfg = current_app.config
        settings = QuizSettings(
            id=SETTINGS_ID,
            question_count=int(cfg.get('DEFAULT_QUESTION_COUNT', 10)),
            duration_ms=int(cfg.get('DEFAULT_DURATION_MS', 300000)),
        )
        try:
            db.session.add(settings)
            db.session.commit()
        except IntegrityError:
            # Another request created the row first
            db.session.rollback()
            settings = db.session.get(QuizSettings, SETTINGS_ID)
        return settings

    def get_or_create_default(self) -> QuizConfig:
        with storage_guard('load quiz settings'):
            settings = self._load_or_create()
            return QuizConfig(settings.question_count, settings.duration_ms)

    def update(self, question_count: Optional[int] = None, duration_ms: Optional[int] = None) -> QuizConfig:
        if question_count is not None:
            if isinstance(question_count, bool) or not isinstance(question_count, int) \
                    or not MIN_QUESTION_COUNT <= question_count <= MAX_QUESTION_COUNT:
                raise ValidationError(f'Question count must be between {MIN_QUESTION_COUNT} and {MAX_QUESTION_COUNT}.')
        if duration_ms is not None:
            if isinstance(duration_ms, bool) or not isinstance(duration_ms, int) or duration_ms < MIN_DURATION_MS:
                raise ValidationError('Duration must be at least 30 seconds.')

        with storage_guard('update quiz settings'):
            settings = self._load_or_create()
            if question_count is not None:
                settings.question_count = question_count
            if duration_ms is not None:
                settings.duration_ms = duration_ms
            db.session.add(settings)
            db.session.commit()
            current_app.logger.info(
                f"[settings-update] question_count={settings.question_count} duration_ms={settings.duration_ms}"
            )
            return QuizConfig(settings.question_count, settings.duration_ms)
