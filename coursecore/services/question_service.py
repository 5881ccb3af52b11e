"""
coursecore/services/question_service.py
Question sub-CRUD inside a quiz

Questions live embedded in Quiz.questions. Every change is
read whole array -> locate by id -> append / replace / splice -> write whole array,
inside one transaction. The quiz's version_id makes the final UPDATE conditional;
a concurrent writer turns it into StaleDataError and the executor replays the
whole read-modify-write from a fresh read.
"""
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from coursecore.core.item_reference import ContentTier
from coursecore.errors import ErrorCode, NotFoundError
from coursecore.orm.base import new_document_id
from coursecore.orm.content import QUIZ_MODELS
from coursecore.schemas.content import QuestionPayload, QuestionRead
from coursecore.services.resilient_executor import ResilientExecutor

logger = logging.getLogger(__name__)


class QuestionService:

    def __init__(
        self,
        session_factory: async_sessionmaker,
        executor: ResilientExecutor,
        tier: ContentTier = ContentTier.GLOBAL,
        brand_id: Optional[str] = None,
    ):
        if tier == ContentTier.BRAND and not brand_id:
            raise ValueError("Brand question service needs a brand_id")
        self.session_factory = session_factory
        self.executor = executor
        self.tier = tier
        self.brand_id = brand_id
        self.quiz_model = QUIZ_MODELS[tier]

    async def _load_quiz(self, session, quiz_id: str):
        quiz = await session.get(self.quiz_model, quiz_id)
        if quiz is None or quiz.is_deleted or (
            self.tier == ContentTier.BRAND and quiz.brand_id != self.brand_id
        ):
            raise NotFoundError("Quiz", quiz_id, code=ErrorCode.QUIZ_NOT_FOUND)
        return quiz

    async def _rewrite(self, quiz_id: str, label: str, splice):
        """
        Run splice(questions) -> (new_questions, result) against the current array.
        """
        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    quiz = await self._load_quiz(session, quiz_id)
                    questions, result = splice(list(quiz.questions or []))
                    quiz.questions = questions
                return result

        return await self.executor.run(op, label=label)

    async def list_questions(self, quiz_id: str) -> List[QuestionRead]:
        async def op():
            async with self.session_factory() as session:
                quiz = await self._load_quiz(session, quiz_id)
                return [QuestionRead.model_validate(q) for q in quiz.questions or []]

        return await self.executor.run(op, label=f"list questions of quiz {quiz_id}")

    async def add_question(self, quiz_id: str, payload: QuestionPayload) -> QuestionRead:
        question = QuestionRead(id=new_document_id(), **payload.model_dump())

        def splice(questions):
            return questions + [question.to_document()], question

        result = await self._rewrite(quiz_id, f"add question to quiz {quiz_id}", splice)
        logger.info(f"Added question {question.id} to quiz {quiz_id}")
        return result

    async def update_question(self, quiz_id: str, question_id: str, payload: QuestionPayload) -> QuestionRead:
        """Replace the whole question body; the id is kept."""
        question = QuestionRead(id=question_id, **payload.model_dump())

        def splice(questions):
            index = _index_of(questions, question_id)
            questions[index] = question.to_document()
            return questions, question

        result = await self._rewrite(quiz_id, f"update question {question_id} of quiz {quiz_id}", splice)
        logger.info(f"Updated question {question_id} of quiz {quiz_id}")
        return result

    async def delete_question(self, quiz_id: str, question_id: str) -> None:
        def splice(questions):
            index = _index_of(questions, question_id)
            return questions[:index] + questions[index + 1:], None

        await self._rewrite(quiz_id, f"delete question {question_id} of quiz {quiz_id}", splice)
        logger.info(f"Deleted question {question_id} from quiz {quiz_id}")


def _index_of(questions: list, question_id: str) -> int:
    for index, question in enumerate(questions):
        if question.get("id") == question_id:
            return index
    raise NotFoundError("Question", question_id, code=ErrorCode.QUESTION_NOT_FOUND)
