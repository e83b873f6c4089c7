"""
Answer Key Index

Builds the ``question_id -> correct_option_id`` lookup for one quiz.
Pure read, no side effects.
"""
import logging
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizeval.orm.quiz import Question, QuestionOption

logger = logging.getLogger(__name__)


async def build_answer_key(quiz_id: int, db: AsyncSession) -> Dict[int, int]:
    """
    Map every question of the quiz to the id of its correct option.

    Questions with no option marked correct are absent from the map; every
    attempt on them grades as incorrect downstream. Should legacy data carry
    more than one correct option for a question, the lowest option id wins.
    """
    result = await db.execute(
        select(QuestionOption.question_id, QuestionOption.id)
        .join(Question, Question.id == QuestionOption.question_id)
        .where(Question.quiz_id == quiz_id)
        .where(QuestionOption.is_correct.is_(True))
        .order_by(QuestionOption.question_id.asc(), QuestionOption.id.asc())
    )

    answer_key: Dict[int, int] = {}
    for question_id, option_id in result.all():
        if question_id in answer_key:
            logger.warning(
                f"[ANSWER KEY] quiz={quiz_id} question={question_id} has multiple correct options, "
                f"keeping option={answer_key[question_id]}"
            )
            continue
        answer_key[question_id] = option_id

    return answer_key
