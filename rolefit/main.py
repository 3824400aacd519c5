# rolefit/main.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import uuid
from typing import Dict, Any, Optional, Tuple
import logging

from rolefit.errors import (
    AssessmentError,
    GenerationFailed,
    InvalidTransition,
    SessionNotFound,
)
from rolefit.models import AssessmentConfig, PrimaryCategory, SECOND_TIER_COMPETENCIES
from rolefit.question_generator import QuestionGenerator
from rolefit.state_manager import SessionStateMachine
from rolefit.suggestion_generator import SuggestionGenerator

# Configure logging
logging.basicConfig(level=logging.WARNING)  # Set default level to WARNING to hide INFO logs
# Create a specific logger for LLM interactions
llm_logger = logging.getLogger("llm_interactions")
llm_logger.setLevel(logging.INFO)

# Configure a handler for the LLM logger to ensure its messages are visible
handler = logging.StreamHandler()
handler.setLevel(logging.INFO)
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
handler.setFormatter(formatter)
llm_logger.addHandler(handler)
llm_logger.propagate = False # Prevent llm_interactions from propagating to the root logger

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO) # Keep main app logger at INFO

SESSION_COOKIE = "session_id"


def generate_session_id() -> str:
    """Generate a unique session identifier"""
    return str(uuid.uuid4())


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def status_for(error: AssessmentError) -> int:
    """HTTP status used when an assessment error reaches a session endpoint"""
    if isinstance(error, SessionNotFound):
        return 404
    if isinstance(error, InvalidTransition):
        return 409
    if isinstance(error, GenerationFailed):
        return 502
    return 400


def set_session_cookie(response: JSONResponse, session_id: str):
    """Set session cookie on response"""
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        httponly=True,
        secure=False,  # Set to True in production with HTTPS
        samesite="lax",
        max_age=3600 * 24  # 24 hours
    )


async def read_body(request: Request) -> Optional[Dict[str, Any]]:
    """Parse a JSON object body, or None if the body isn't one"""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def create_app(
    config: Optional[AssessmentConfig] = None,
    question_generator=None,
    suggestion_generator=None,
) -> FastAPI:
    """
    Build the API application.

    Generators passed in are used as-is; missing ones are built from the
    config during startup, so importing this module never needs an API key.
    """
    config = config or AssessmentConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize generators on startup and drop sessions on shutdown"""
        logger.info("Initializing RoleFit assessment service...")
        if config.configure_tracing():
            logger.info(f"LangSmith tracing enabled for project {config.langsmith_project}")
        if app.state.question_generator is None:
            app.state.question_generator = QuestionGenerator(config)
        if app.state.suggestion_generator is None:
            app.state.suggestion_generator = SuggestionGenerator(config)
        logger.info(f"Generators ready (question model {config.question_model})")

        yield

        # Cleanup on shutdown
        for machine in app.state.sessions.values():
            machine.reset()
        app.state.sessions.clear()
        logger.info("Application shutting down...")

    app = FastAPI(lifespan=lifespan)
    app.state.config = config
    app.state.question_generator = question_generator
    app.state.suggestion_generator = suggestion_generator
    # Key: session_id (str), Value: SessionStateMachine
    app.state.sessions = {}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AssessmentError)
    async def assessment_error_handler(request: Request, exc: AssessmentError):
        return JSONResponse(status_code=status_for(exc), content=exc.to_dict())

    def get_machine(request: Request) -> Tuple[str, SessionStateMachine]:
        session_id = request.cookies.get(SESSION_COOKIE)
        if not session_id or session_id not in app.state.sessions:
            raise SessionNotFound(session_id)
        return session_id, app.state.sessions[session_id]

    def session_response(session_id: str, machine: SessionStateMachine, **extra) -> JSONResponse:
        content = machine.to_dict()
        content.update(extra)
        response = JSONResponse(content=content)
        set_session_cookie(response, session_id)
        return response

    # --- generation endpoints ----------------------------------------------

    @app.post("/api/generate-question")
    async def generate_question(request: Request):
        """Generate one question from the selection and the answers so far"""
        body = await read_body(request)
        if body is None:
            return error_response(400, "Request body must be a JSON object")

        selected_categories = body.get("selectedCategories")
        if not selected_categories or not isinstance(selected_categories, list):
            return error_response(400, "Selected categories are required")

        try:
            question_number = int(body.get("questionNumber") or 1)
        except (TypeError, ValueError):
            return error_response(400, "questionNumber must be an integer")

        try:
            question = await app.state.question_generator.generate_question(
                selected_categories,
                body.get("previousQuestions") or [],
                body.get("previousAnswers") or {},
                question_number
            )
        except GenerationFailed as e:
            logger.debug(f"Question request failed: {e.message}")
            return error_response(500, e.message or "Failed to generate question")

        return JSONResponse(content={"question": question.to_dict()})

    @app.post("/api/generate-suggestions")
    async def generate_suggestions(request: Request):
        """Suggest completions for a free-text answer; degrades to an empty list"""
        body = await read_body(request)
        if body is None:
            return error_response(400, "Request body must be a JSON object")

        question_text = body.get("questionText")
        user_input = body.get("userInput")
        if not question_text or not user_input or not isinstance(question_text, str) or not isinstance(user_input, str):
            return error_response(400, "Question text and user input are required")

        suggestions = await app.state.suggestion_generator.generate_suggestions(question_text, user_input)
        return JSONResponse(content={"suggestions": suggestions[:config.max_suggestions]})

    @app.get("/api/categories")
    async def list_categories():
        return {
            "categories": PrimaryCategory.labels(),
            "secondTierCompetencies": list(SECOND_TIER_COMPETENCIES),
        }

    # --- session endpoints -------------------------------------------------

    @app.post("/api/session/start")
    async def start_session(request: Request):
        """Start a new assessment session held in memory, replacing the caller's previous one"""
        previous = app.state.sessions.pop(request.cookies.get(SESSION_COOKIE, ""), None)
        if previous is not None:
            previous.reset()
            logger.info("Dropped previous session")
        session_id = generate_session_id()
        app.state.sessions[session_id] = SessionStateMachine(
            app.state.question_generator,
            app.state.suggestion_generator,
            config
        )
        logger.info(f"Started new session {session_id}")
        return session_response(session_id, app.state.sessions[session_id])

    @app.get("/api/session")
    async def get_session(request: Request):
        session_id, machine = get_machine(request)
        return session_response(session_id, machine)

    @app.post("/api/session/categories/toggle")
    async def toggle_category(request: Request):
        session_id, machine = get_machine(request)
        body = await read_body(request) or {}
        category = body.get("category")
        if not isinstance(category, str):
            return error_response(400, "category is required")
        machine.toggle_category(category)
        return session_response(session_id, machine)

    @app.post("/api/session/continue")
    async def continue_to_questions(request: Request):
        session_id, machine = get_machine(request)
        await machine.continue_to_questions()
        return session_response(session_id, machine)

    @app.post("/api/session/options/toggle")
    async def toggle_option(request: Request):
        session_id, machine = get_machine(request)
        body = await read_body(request) or {}
        option = body.get("option")
        if not isinstance(option, str):
            return error_response(400, "option is required")
        machine.toggle_option(option)
        return session_response(session_id, machine)

    @app.post("/api/session/other")
    async def set_other_text(request: Request):
        session_id, machine = get_machine(request)
        body = await read_body(request) or {}
        value = body.get("value")
        if not isinstance(value, str):
            return error_response(400, "value is required")
        scheduled = machine.set_other_text(value)
        return session_response(session_id, machine, suggestions_scheduled=scheduled)

    @app.get("/api/session/suggestions")
    async def get_suggestions(request: Request):
        session_id, machine = get_machine(request)
        response = JSONResponse(content={
            "suggestions": machine.suggestions,
            "is_loading": machine.debouncer.is_loading,
        })
        set_session_cookie(response, session_id)
        return response

    @app.post("/api/session/suggestions/select")
    async def select_suggestion(request: Request):
        session_id, machine = get_machine(request)
        body = await read_body(request) or {}
        suggestion = body.get("suggestion")
        if not isinstance(suggestion, str):
            return error_response(400, "suggestion is required")
        machine.select_suggestion(suggestion)
        return session_response(session_id, machine)

    @app.post("/api/session/suggestions/dismiss")
    async def dismiss_suggestions(request: Request):
        session_id, machine = get_machine(request)
        machine.dismiss_suggestions()
        return session_response(session_id, machine)

    @app.post("/api/session/next")
    async def next_question(request: Request):
        session_id, machine = get_machine(request)
        await machine.advance()
        return session_response(session_id, machine)

    @app.post("/api/session/previous")
    async def previous_question(request: Request):
        session_id, machine = get_machine(request)
        machine.retreat()
        return session_response(session_id, machine)

    @app.post("/api/session/restart")
    async def restart_session(request: Request):
        session_id, machine = get_machine(request)
        machine.reset()
        logger.info(f"Restarted session {session_id}")
        return session_response(session_id, machine)

    @app.get("/health")
    async def health():
        return {"status": "ok", "sessions": len(app.state.sessions)}

    return app


app = create_app()


def main():
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
