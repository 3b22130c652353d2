from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping


@dataclass(frozen=True)
class ScoreResult:
    details: List[Dict[str, Any]] = field(default_factory=list)
    score: int = 0


def _option_index(value):
    # bool is an int subclass; True must not match index 1
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def score_answers(answer_key: Mapping[str, int], answers: Iterable[Any]) -> ScoreResult:
    """Score submitted answers against the session's answer key.

    - Items that are not objects or name a question outside the key are dropped
    - Only the first answer per question counts
    - Correct iff the chosen index equals the stored correct index
    """
    details = []
    seen = set()
    score = 0
    for answer in answers or []:
        if not isinstance(answer, Mapping):
            continue
        raw_id = answer.get('questionId')
        if raw_id is None:
            continue
        question_id = str(raw_id)
        if question_id not in answer_key or question_id in seen:
            continue
        seen.add(question_id)
        option_index = _option_index(answer.get('optionIndex'))
        correct = option_index is not None and option_index == answer_key[question_id]
        if correct:
            score += 1
        details.append({
            'questionId': question_id,
            'optionIndex': option_index,
            'correct': correct,
        })
    return ScoreResult(details=details, score=score)
