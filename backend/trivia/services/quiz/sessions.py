"""Quiz session lifecycle: start, fetch and submit.

A session moves active -> submitted on a successful submit, or becomes
expired once the clock passes ``expires_at``. Submitted is terminal. Exactly
one submit per session can score: the Submission insert is unique on
session_id and the completion record is written with a conditional update
that only matches while ``submitted_at`` is still NULL.
"""

import uuid
from typing import Callable, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from trivia import db
from trivia.errors import (
    AlreadySubmittedError,
    ExpiredError,
    InsufficientDataError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from trivia.models import Player, QuizSession, Submission, now_ms
from trivia.repositories import QuestionBank, SettingsStore, storage_guard
from .leaderboard import DEFAULT_LIMIT, LeaderboardBroadcaster, list_entries
from .scoring import score_answers
from .shuffle import secure_shuffle


def _clean(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


class SessionManager:
    def __init__(
        self,
        questions: Optional[QuestionBank] = None,
        settings: Optional[SettingsStore] = None,
        broadcaster: Optional[LeaderboardBroadcaster] = None,
        clock: Callable[[], int] = now_ms,
        grace_ms: int = 0,
        accept_late: bool = False,
        leaderboard_limit: int = DEFAULT_LIMIT,
    ):
        self.questions = questions or QuestionBank()
        self.settings = settings or SettingsStore()
        self.broadcaster = broadcaster or LeaderboardBroadcaster()
        self.clock = clock
        self.grace_ms = max(0, int(grace_ms))
        self.accept_late = accept_late
        self.leaderboard_limit = leaderboard_limit

    def _load(self, session_id) -> QuizSession:
        with storage_guard('load session'):
            session = QuizSession.query.filter_by(session_id=session_id).first()
        if session is None:
            raise NotFoundError('Session not found.')
        return session

    def _ordered_questions(self, session: QuizSession):
        by_id = {str(q.id): q for q in self.questions.find_by_ids(session.question_ids)}
        # Questions deleted from the bank since the start are skipped
        return [by_id[qid] for qid in session.question_ids if qid in by_id]

    def start(self, name, email=None, organization=None) -> dict:
        name = _clean(name)
        if not name:
            raise ValidationError('Name is required.')

        config = self.settings.get_or_create_default()
        eligible = self.questions.find_eligible()
        if len(eligible) < config.question_count:
            current_app.logger.warning(
                f"[quiz-start] insufficient questions available={len(eligible)} needed={config.question_count}"
            )
            raise InsufficientDataError('Not enough questions available.')

        selected = secure_shuffle(eligible)[:config.question_count]
        started_at = self.clock()
        session_id = str(uuid.uuid4())

        with storage_guard('start quiz session'):
            player = Player(name=name, email=_clean(email), organization=_clean(organization))
            db.session.add(player)
            db.session.flush()
            session = QuizSession(
                session_id=session_id,
                player_id=player.id,
                started_at=started_at,
                expires_at=started_at + config.duration_ms,
                duration_ms=config.duration_ms,
            )
            session.question_ids = [q.id for q in selected]
            db.session.add(session)
            db.session.commit()

        current_app.logger.info(
            f"[quiz-start] session={session_id} player={player.id} questions={len(selected)} duration_ms={config.duration_ms}"
        )
        payload = {
            'sessionId': session_id,
            'player': player.to_dict(),
            'questions': [q.to_public_dict() for q in selected],
        }
        payload.update(session.timing_dict())
        payload['serverTime'] = self.clock()
        return payload

    def get(self, session_id) -> dict:
        session = self._load(session_id)
        if session.is_submitted:
            raise AlreadySubmittedError('Session already submitted.')
        if session.is_expired(self.clock()):
            raise ExpiredError('Session expired.')

        payload = {
            'sessionId': session.session_id,
            'questions': [q.to_public_dict() for q in self._ordered_questions(session)],
        }
        payload.update(session.timing_dict())
        payload['serverTime'] = self.clock()
        return payload

    def _past_deadline(self, session: QuizSession, now: int) -> bool:
        if self.accept_late:
            return False
        return now > session.expires_at + self.grace_ms

    def submit(self, session_id, answers=None) -> dict:
        if not session_id or not isinstance(session_id, str):
            raise ValidationError('Session ID is required.')
        if answers is None:
            answers = []
        if not isinstance(answers, list):
            raise ValidationError('Answers must be a list.')

        session = self._load(session_id)
        if session.is_submitted:
            raise AlreadySubmittedError('Session already submitted.')
        now = self.clock()
        if self._past_deadline(session, now):
            current_app.logger.info(f"[quiz-submit] session={session_id} rejected: expired at {session.expires_at}")
            raise ExpiredError('Session expired.')

        answer_key = {str(q.id): q.correct_index for q in self._ordered_questions(session)}
        result = score_answers(answer_key, answers)
        time_taken_ms = max(0, min(now - session.started_at, session.duration_ms))
        total_questions = len(session.question_ids)

        submission = Submission(
            session_id=session.session_id,
            player_id=session.player_id,
            answers=result.details,
            score=result.score,
            total_questions=total_questions,
            time_taken_ms=time_taken_ms,
            submitted_at=now,
        )
        try:
            db.session.add(submission)
            db.session.flush()
            marked = (
                QuizSession.query
                .filter(QuizSession.id == session.id, QuizSession.submitted_at.is_(None))
                .update(
                    {'submitted_at': now, 'score': result.score, 'time_taken_ms': time_taken_ms},
                    synchronize_session=False,
                )
            )
            if marked != 1:
                db.session.rollback()
                current_app.logger.info(f"[quiz-submit-conflict] session={session_id} completion already recorded")
                raise AlreadySubmittedError('Session already submitted.')
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.info(f"[quiz-submit-conflict] session={session_id} submission already exists")
            raise AlreadySubmittedError('Session already submitted.')
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError('Failed to submit quiz.') from exc

        current_app.logger.info(
            f"[quiz-submit] session={session_id} score={result.score}/{total_questions} time_taken_ms={time_taken_ms}"
        )
        entries = self.publish_leaderboard()
        return {
            'sessionId': session_id,
            'submissionId': submission.id,
            'score': result.score,
            'totalQuestions': total_questions,
            'timeTakenMs': time_taken_ms,
            'leaderboard': entries,
        }

    def publish_leaderboard(self):
        """Recompute the top entries and fan them out to live subscribers."""
        try:
            entries = list_entries(self.leaderboard_limit)
        except StorageError:
            # The attempt is already scored durably; a stale board is acceptable
            current_app.logger.exception("[leaderboard-push] failed to recompute leaderboard")
            return []
        delivered = self.broadcaster.publish(entries)
        current_app.logger.info(f"[leaderboard-push] entries={len(entries)} subscribers={delivered}")
        return entries
