"""
coursecore/services/program_service.py
Programs: purchasable bundles of global courses (global tier only)
"""
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from coursecore.errors import BadRequestError, ErrorCode, NotFoundError
from coursecore.orm.content import Program
from coursecore.schemas.content import ProgramCreate, ProgramUpdate
from coursecore.services.resilient_executor import ResilientExecutor

logger = logging.getLogger(__name__)


class ProgramRepository:

    def __init__(self, session_factory: async_sessionmaker, executor: ResilientExecutor):
        self.session_factory = session_factory
        self.executor = executor

    async def create_program(self, data: ProgramCreate) -> Program:
        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    program = Program(**data.model_dump(), course_ids=[])
                    session.add(program)
                return program

        program = await self.executor.run(op, label="create program")
        logger.info(f"Created program {program.id}")
        return program

    async def get_program(self, program_id: str):
        async def op():
            async with self.session_factory() as session:
                program = await session.get(Program, program_id)
                if program is None or program.is_deleted:
                    return None
                return program

        return await self.executor.run(op, label=f"get program {program_id}")

    async def list_programs(self) -> List[Program]:
        async def op():
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Program)
                    .where(Program.is_deleted.is_(False))
                    .order_by(Program.created_at, Program.id)
                )
                return list(result.scalars().all())

        return await self.executor.run(op, label="list programs")

    async def _mutate(self, program_id: str, label: str, apply, destructive: bool = False) -> Program:
        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    program = await session.get(Program, program_id)
                    if program is None or program.is_deleted:
                        raise NotFoundError("Program", program_id, code=ErrorCode.PROGRAM_NOT_FOUND)
                    apply(program)
                return program

        return await self.executor.run(op, label=label, destructive=destructive)

    async def update_program(self, program_id: str, patch: ProgramUpdate) -> Program:
        changes = patch.changes()

        def apply(program):
            for field, value in changes.items():
                setattr(program, field, value)

        program = await self._mutate(program_id, f"update program {program_id}", apply)
        logger.info(f"Updated program {program_id}: {sorted(changes)}")
        return program

    async def update_course_assignments(self, program_id: str, course_ids: List[str]) -> Program:
        """
        Replace the ordered course list. Ids must be unique; they are not checked
        against the course tables, a deleted course simply contributes nothing.
        """
        course_ids = [course_id.strip() for course_id in course_ids]
        if any(not course_id for course_id in course_ids):
            raise BadRequestError("Course ids cannot be blank")
        if len(set(course_ids)) != len(course_ids):
            raise BadRequestError("Course ids must be unique", details={"course_ids": course_ids})

        def apply(program):
            program.course_ids = list(course_ids)

        program = await self._mutate(program_id, f"assign courses to program {program_id}", apply)
        logger.info(f"Program {program_id} now bundles {len(course_ids)} courses")
        return program

    async def delete_program(self, program_id: str) -> None:
        await self._mutate(
            program_id,
            f"soft-delete program {program_id}",
            lambda program: program.mark_deleted(),
            destructive=True,
        )
        logger.info(f"Soft-deleted program {program_id}")
