"""
coursecore/services/registry.py
Wires every service to one session factory and one executor
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from coursecore.config.settings import Settings
from coursecore.core.item_reference import ContentTier
from coursecore.services.content_repository import ContentRepository
from coursecore.services.curriculum_composer import CurriculumComposer
from coursecore.services.program_service import ProgramRepository
from coursecore.services.progress_aggregation import ProgressAggregation
from coursecore.services.progress_ledger import ProgressLedger
from coursecore.services.question_service import QuestionService
from coursecore.services.reference_cleanup import ReferenceCleanupService
from coursecore.services.resilient_executor import ResilientExecutor, RetryPolicy
from coursecore.services.user_service import UserService


@dataclass
class CoreServices:
    session_factory: async_sessionmaker
    executor: ResilientExecutor
    content: ContentRepository
    programs: ProgramRepository
    questions: QuestionService
    composer: CurriculumComposer
    cleanup: ReferenceCleanupService
    users: UserService
    ledger: ProgressLedger
    aggregation: ProgressAggregation

    def brand_content(self, brand_id: str) -> ContentRepository:
        return self.content.for_brand(brand_id)

    def brand_questions(self, brand_id: str) -> QuestionService:
        return QuestionService(self.session_factory, self.executor, ContentTier.BRAND, brand_id)


def build_services(
    session_factory: async_sessionmaker,
    executor: Optional[ResilientExecutor] = None,
    settings: Optional[Settings] = None,
) -> CoreServices:
    if executor is None:
        policy = RetryPolicy.from_settings(settings) if settings is not None else RetryPolicy()
        executor = ResilientExecutor(policy)
    return CoreServices(
        session_factory=session_factory,
        executor=executor,
        content=ContentRepository(session_factory, executor),
        programs=ProgramRepository(session_factory, executor),
        questions=QuestionService(session_factory, executor),
        composer=CurriculumComposer(session_factory, executor),
        cleanup=ReferenceCleanupService(session_factory, executor),
        users=UserService(session_factory, executor),
        ledger=ProgressLedger(session_factory, executor),
        aggregation=ProgressAggregation(session_factory, executor),
    )
