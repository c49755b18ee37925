"""FastAPI server that exposes the quiz manager as a JSON API."""

from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from typing import Iterator

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel
import uvicorn

from skillquest.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from skillquest.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from skillquest.constants.quiz_constants import DEFAULT_QUESTION_COUNT, RECENT_SESSION_LIMIT
from skillquest.core.models import Question, QuizSession, User
from skillquest.core.quiz_manager import NotSignedInError, QuizManager
from skillquest.core.services.question_catalog import QuestionFilters
from skillquest.core.services.stats_aggregator import DashboardStats
from skillquest.core.services.task_scope import TaskScope
from skillquest.storage.errors import PersistenceReadError
from skillquest.storage.identity import AuthenticationError

_HIDDEN_QUESTION_FIELDS = ("correct_answer", "explanation")


class SignUpPayload(BaseModel):
    """Payload schema for email sign-up."""

    email: str
    password: str
    display_name: str


class SignInPayload(BaseModel):
    """Payload schema for sign-in; ``use_popup`` selects the federated flow."""

    email: str | None = None
    password: str | None = None
    use_popup: bool = False


class StartQuizPayload(BaseModel):
    category: str | None = None
    count: int = DEFAULT_QUESTION_COUNT
    difficulty: str | None = None
    tags: list[str] | None = None


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers: one option index or a set of them."""

    user_answer: int | list[int]
    time_spent: float = 0.0


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except (NotSignedInError, AuthenticationError) as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except PersistenceReadError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


def _question_to_payload(question: Question) -> dict[str, object]:
    payload = question.to_dict()
    for field_name in _HIDDEN_QUESTION_FIELDS:
        payload.pop(field_name, None)
    payload["has_multiple_answers"] = question.has_multiple_answers
    return payload


def _session_to_payload(session: QuizSession) -> dict[str, object]:
    payload = session.to_dict()
    payload.update(
        {
            "is_completed": session.is_completed(),
            "progress": session.get_progress(),
            "accuracy": session.get_accuracy(),
            "score_percentage": session.get_score_percentage(),
            "duration_seconds": session.get_duration(),
        }
    )
    return payload


def _user_to_payload(user: User, sync_status: str) -> dict[str, object]:
    payload = user.to_dict()
    payload.update(
        {
            "rank": user.get_rank(),
            "xp_for_next_level": user.get_xp_for_next_level(),
            "progress_percentage": user.get_progress_percentage(),
            "sync_status": sync_status,
        }
    )
    return payload


def _dashboard_to_payload(stats: DashboardStats) -> dict[str, object]:
    challenge = stats.weekly_challenge
    return {
        "skill_matrix": [
            {"category": skill.category, "score": skill.score, "full_mark": skill.full_mark}
            for skill in stats.skill_matrix
        ],
        "activity": [{"day": point.day, "score": point.score} for point in stats.activity],
        "weekly_challenge": {
            "category": challenge.category,
            "completed_count": challenge.completed_count,
            "target": challenge.target,
            "xp_bonus": challenge.xp_bonus,
            "is_complete": challenge.is_complete,
            "progress_percentage": challenge.progress_percentage,
        },
        "accuracy": {
            "accuracy": stats.accuracy.accuracy,
            "correct_count": stats.accuracy.correct_count,
            "wrong_count": stats.accuracy.wrong_count,
        },
        "session_count": stats.session_count,
    }


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        quiz_manager.start()
        yield
        await quiz_manager.wait_for_background_tasks()
        quiz_manager.close()

    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
        lifespan=lifespan,
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    def current_user_payload(manager: QuizManager) -> dict[str, object]:
        state = manager.get_auth_state()
        with _http_errors():
            user = manager.require_current_user()
        return _user_to_payload(user, state.sync_status.value)

    @app.get("/health")
    def health() -> dict[str, object]:
        return {"status": "ok", "name": APP_NAME, "version": APP_VERSION}

    @app.get("/categories")
    def get_categories(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        return {"categories": manager.get_categories()}

    @app.get("/questions")
    def get_questions(
        category: str | None = None,
        difficulty: str | None = None,
        tag: list[str] | None = Query(default=None),
        limit: int | None = Query(default=None, ge=1),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        filters = QuestionFilters(
            category=category,
            difficulty=difficulty,
            tags=tuple(tag) if tag else None,
            limit=limit,
        )
        with _http_errors():
            questions = manager.get_questions(filters)
        return {"questions": [_question_to_payload(question) for question in questions]}

    @app.post("/auth/sign-up", status_code=201)
    async def sign_up(
        payload: SignUpPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            await manager.auth.sign_up(payload.email, payload.password, payload.display_name.strip())
        return current_user_payload(manager)

    @app.post("/auth/sign-in")
    async def sign_in(
        payload: SignInPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            if payload.use_popup:
                user = await manager.auth.sign_in_with_popup()
                if user is None:
                    return {"cancelled": True, "user": None}
            else:
                if not payload.email or not payload.password:
                    raise ValueError("Email and password are required.")
                await manager.auth.sign_in_with_password(payload.email, payload.password)
        return {"cancelled": False, "user": current_user_payload(manager)}

    @app.post("/auth/sign-out", status_code=204)
    async def sign_out(manager: QuizManager = Depends(quiz_manager_dep)) -> None:
        with _http_errors():
            await manager.auth.sign_out()
        manager.reset_quiz()

    @app.get("/me")
    def get_me(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        return current_user_payload(manager)

    @app.post("/quiz/start", status_code=201)
    def start_quiz(
        payload: StartQuizPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            user = manager.require_current_user()
            session = manager.start_quiz(
                user.id,
                category=payload.category,
                count=payload.count,
                difficulty=payload.difficulty,
                tags=payload.tags,
            )
        state = manager.get_quiz_state()
        return {
            "session": _session_to_payload(session),
            "current_question": _question_to_payload(state.current_question) if state.current_question else None,
        }

    @app.post("/quiz/answer", status_code=201)
    async def submit_answer(
        payload: AnswerPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            manager.require_current_user()
            outcome = await manager.submit_answer(payload.user_answer, payload.time_spent)

        state = manager.get_quiz_state()
        response: dict[str, object] = {
            "answer": outcome.answer.to_dict(),
            "current_question": _question_to_payload(state.current_question) if state.current_question else None,
            "completed": outcome.completion is not None,
        }
        if outcome.completion is not None:
            completion = outcome.completion
            response["result"] = {
                "session": _session_to_payload(completion.session),
                "session_saved": completion.session_saved,
                "xp_reward": completion.xp_reward,
                "leveled_up": completion.leveled_up,
            }
        return response

    @app.get("/quiz")
    def get_quiz(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        state = manager.get_quiz_state()
        session = state.current_session
        return {
            "session": _session_to_payload(session) if session else None,
            "current_question": _question_to_payload(state.current_question) if state.current_question else None,
            "current_question_index": state.current_question_index,
            "saving_session": state.saving_session,
            "error": state.error,
        }

    @app.post("/quiz/reset", status_code=204)
    def reset_quiz(manager: QuizManager = Depends(quiz_manager_dep)) -> None:
        manager.reset_quiz()

    @app.get("/dashboard")
    async def get_dashboard(
        limit: int = Query(default=RECENT_SESSION_LIMIT, ge=1),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        scope = TaskScope("dashboard-view")
        try:
            with _http_errors():
                user = manager.require_current_user()
                stats = await manager.load_dashboard(user.id, scope, limit=limit)
        finally:
            scope.close()
        if stats is None:
            raise HTTPException(status_code=409, detail="Dashboard view closed.")
        return _dashboard_to_payload(stats)

    @app.get("/history")
    async def get_history(
        category: str | None = None,
        limit: int | None = Query(default=None, ge=1),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        scope = TaskScope("history-view")
        try:
            with _http_errors():
                user = manager.require_current_user()
                sessions = await manager.load_history(user.id, scope, category=category, limit=limit)
        finally:
            scope.close()
        if sessions is None:
            raise HTTPException(status_code=409, detail="History view closed.")
        return {"sessions": [_session_to_payload(session) for session in sessions]}

    return app


def run_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API with uvicorn until interrupted."""
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    server.run()
