"""
coursecore/routes/content.py
Programs, courses, lessons, quizzes and questions

`brandId` as a query parameter selects the brand library; without it the
global library is used. Lessons and quizzes are deleted through
DELETE /curriculum-items/{ref} so their references are cleaned up first.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from coursecore.errors import ErrorCode, NotFoundError
from coursecore.schemas.common import StandardResponse
from coursecore.schemas.content import (
    CourseCreate,
    CourseRead,
    CourseUpdate,
    LessonCreate,
    LessonRead,
    LessonUpdate,
    ProgramCreate,
    ProgramRead,
    ProgramUpdate,
    QuestionPayload,
    QuizCreate,
    QuizRead,
    QuizUpdate,
)
from coursecore.routes import get_services
from coursecore.services.content_repository import ContentRepository
from coursecore.services.question_service import QuestionService
from coursecore.services.registry import CoreServices

router = APIRouter(tags=["Content"])


def get_repository(
    brand_id: Optional[str] = Query(None, alias="brandId"),
    services: CoreServices = Depends(get_services),
) -> ContentRepository:
    return services.brand_content(brand_id) if brand_id else services.content


def get_questions(
    brand_id: Optional[str] = Query(None, alias="brandId"),
    services: CoreServices = Depends(get_services),
) -> QuestionService:
    return services.brand_questions(brand_id) if brand_id else services.questions


def _found(entity, resource: str, identifier: str, code: str):
    if entity is None:
        raise NotFoundError(resource, identifier, code=code)
    return entity


# ================= PROGRAMS =================

@router.post("/programs", response_model=StandardResponse, status_code=201)
async def create_program(request: ProgramCreate, services: CoreServices = Depends(get_services)):
    program = await services.programs.create_program(request)
    return StandardResponse(message="Program created", data=ProgramRead.model_validate(program).to_wire())


@router.get("/programs", response_model=StandardResponse)
async def list_programs(services: CoreServices = Depends(get_services)):
    programs = await services.programs.list_programs()
    return StandardResponse(
        message=f"{len(programs)} program(s)",
        data=[ProgramRead.model_validate(p).to_wire() for p in programs],
    )


@router.get("/programs/{program_id}", response_model=StandardResponse)
async def get_program(program_id: str, services: CoreServices = Depends(get_services)):
    program = _found(
        await services.programs.get_program(program_id), "Program", program_id, ErrorCode.PROGRAM_NOT_FOUND
    )
    return StandardResponse(message="Program loaded", data=ProgramRead.model_validate(program).to_wire())


@router.patch("/programs/{program_id}", response_model=StandardResponse)
async def update_program(program_id: str, request: ProgramUpdate, services: CoreServices = Depends(get_services)):
    program = await services.programs.update_program(program_id, request)
    return StandardResponse(message="Program updated", data=ProgramRead.model_validate(program).to_wire())


@router.put("/programs/{program_id}/courses", response_model=StandardResponse)
async def set_program_courses(
    program_id: str,
    course_ids: List[str],
    services: CoreServices = Depends(get_services),
):
    program = await services.programs.update_course_assignments(program_id, course_ids)
    return StandardResponse(message="Program courses updated", data=ProgramRead.model_validate(program).to_wire())


@router.delete("/programs/{program_id}", response_model=StandardResponse)
async def delete_program(program_id: str, services: CoreServices = Depends(get_services)):
    await services.programs.delete_program(program_id)
    return StandardResponse(message="Program deleted")


# ================= COURSES =================

@router.post("/courses", response_model=StandardResponse, status_code=201)
async def create_course(request: CourseCreate, repo: ContentRepository = Depends(get_repository)):
    course = await repo.create_course(request)
    return StandardResponse(message="Course created", data=CourseRead.model_validate(course).to_wire())


@router.get("/courses", response_model=StandardResponse)
async def list_courses(repo: ContentRepository = Depends(get_repository)):
    courses = await repo.list_courses()
    return StandardResponse(
        message=f"{len(courses)} course(s)",
        data=[CourseRead.model_validate(c).to_wire() for c in courses],
    )


@router.get("/courses/{course_id}", response_model=StandardResponse)
async def get_course(course_id: str, repo: ContentRepository = Depends(get_repository)):
    course = _found(await repo.get_course(course_id), "Course", course_id, ErrorCode.COURSE_NOT_FOUND)
    return StandardResponse(message="Course loaded", data=CourseRead.model_validate(course).to_wire())


@router.patch("/courses/{course_id}", response_model=StandardResponse)
async def update_course(course_id: str, request: CourseUpdate, repo: ContentRepository = Depends(get_repository)):
    course = await repo.update_course(course_id, request)
    return StandardResponse(message="Course updated", data=CourseRead.model_validate(course).to_wire())


@router.delete("/courses/{course_id}", response_model=StandardResponse)
async def delete_course(course_id: str, repo: ContentRepository = Depends(get_repository)):
    await repo.delete_course(course_id)
    return StandardResponse(message="Course deleted")


# ================= LESSONS =================

@router.post("/lessons", response_model=StandardResponse, status_code=201)
async def create_lesson(request: LessonCreate, repo: ContentRepository = Depends(get_repository)):
    lesson = await repo.create_lesson(request)
    data = LessonRead.model_validate(lesson).to_wire()
    data["reference"] = str(repo.reference_for(lesson))
    return StandardResponse(message="Lesson created", data=data)


@router.get("/lessons", response_model=StandardResponse)
async def list_lessons(repo: ContentRepository = Depends(get_repository)):
    lessons = await repo.list_lessons()
    return StandardResponse(
        message=f"{len(lessons)} lesson(s)",
        data=[LessonRead.model_validate(lesson).to_wire() for lesson in lessons],
    )


@router.get("/lessons/{lesson_id}", response_model=StandardResponse)
async def get_lesson(lesson_id: str, repo: ContentRepository = Depends(get_repository)):
    lesson = _found(await repo.get_lesson(lesson_id), "Lesson", lesson_id, ErrorCode.LESSON_NOT_FOUND)
    return StandardResponse(message="Lesson loaded", data=LessonRead.model_validate(lesson).to_wire())


@router.patch("/lessons/{lesson_id}", response_model=StandardResponse)
async def update_lesson(lesson_id: str, request: LessonUpdate, repo: ContentRepository = Depends(get_repository)):
    lesson = await repo.update_lesson(lesson_id, request)
    return StandardResponse(message="Lesson updated", data=LessonRead.model_validate(lesson).to_wire())


# ================= QUIZZES =================

@router.post("/quizzes", response_model=StandardResponse, status_code=201)
async def create_quiz(request: QuizCreate, repo: ContentRepository = Depends(get_repository)):
    quiz = await repo.create_quiz(request)
    data = QuizRead.model_validate(quiz).to_wire()
    data["reference"] = str(repo.reference_for(quiz))
    return StandardResponse(message="Quiz created", data=data)


@router.get("/quizzes", response_model=StandardResponse)
async def list_quizzes(repo: ContentRepository = Depends(get_repository)):
    quizzes = await repo.list_quizzes()
    return StandardResponse(
        message=f"{len(quizzes)} quiz(zes)",
        data=[QuizRead.model_validate(quiz).to_wire() for quiz in quizzes],
    )


@router.get("/quizzes/{quiz_id}", response_model=StandardResponse)
async def get_quiz(quiz_id: str, repo: ContentRepository = Depends(get_repository)):
    quiz = _found(await repo.get_quiz(quiz_id), "Quiz", quiz_id, ErrorCode.QUIZ_NOT_FOUND)
    return StandardResponse(message="Quiz loaded", data=QuizRead.model_validate(quiz).to_wire())


@router.patch("/quizzes/{quiz_id}", response_model=StandardResponse)
async def update_quiz(quiz_id: str, request: QuizUpdate, repo: ContentRepository = Depends(get_repository)):
    quiz = await repo.update_quiz(quiz_id, request)
    return StandardResponse(message="Quiz updated", data=QuizRead.model_validate(quiz).to_wire())


@router.post("/quizzes/{quiz_id}/questions", response_model=StandardResponse, status_code=201)
async def add_question(quiz_id: str, request: QuestionPayload, questions: QuestionService = Depends(get_questions)):
    question = await questions.add_question(quiz_id, request)
    return StandardResponse(message="Question added", data=question.to_wire())


@router.put("/quizzes/{quiz_id}/questions/{question_id}", response_model=StandardResponse)
async def replace_question(
    quiz_id: str,
    question_id: str,
    request: QuestionPayload,
    questions: QuestionService = Depends(get_questions),
):
    question = await questions.update_question(quiz_id, question_id, request)
    return StandardResponse(message="Question updated", data=question.to_wire())


@router.delete("/quizzes/{quiz_id}/questions/{question_id}", response_model=StandardResponse)
async def delete_question(quiz_id: str, question_id: str, questions: QuestionService = Depends(get_questions)):
    await questions.delete_question(quiz_id, question_id)
    return StandardResponse(message="Question deleted")
