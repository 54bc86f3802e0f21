# backend/ocs_ai/app.py

import json, logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from openai import AsyncOpenAI
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from ocs_ai.core.config import AppConfig
from ocs_ai.core.errors import QueryValidationError, QuizProxyError
from ocs_ai.core.openai_qa import QuizAnswerer, build_query_response
from ocs_ai.core.schemas import ErrorResponse, QueryRequest

logger = logging.getLogger("ocs_ai")

SERVICE_NAME = "AI答题本地服务"
QUERY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


# Middleware to log requests
class LogRequestMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            body = await request.body()
            logger.info(
                f"Incoming {request.method} {request.url.path} "
                f"query={request.url.query} body={body.decode('utf-8', errors='replace')}"
            )
        except Exception:
            logger.warning("Could not read request body")
        return await call_next(request)


# ------------------------------------------------------------
# Request parsing
# ------------------------------------------------------------
async def parse_query_request(request: Request) -> QueryRequest:
    """GET reads the query string; every other verb reads a JSON body."""
    if request.method == "GET":
        params = request.query_params
        return QueryRequest(
            token=params.get("token", ""),
            title=params.get("title", ""),
            options=params.get("options", ""),
            type=params.get("type", ""),
            more=params.get("more"),
        )

    raw = await request.body()
    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.error(f"解析请求失败: {e}")
        raise QueryValidationError(f"解析请求失败: {e}") from e
    if not isinstance(data, dict):
        raise QueryValidationError("解析请求失败: 请求体必须是JSON对象")
    try:
        return QueryRequest.model_validate(data)
    except ValidationError as e:
        logger.error(f"解析请求失败: {e}")
        raise QueryValidationError(f"解析请求失败: {e}") from e


# ------------------------------------------------------------
# App factory
# ------------------------------------------------------------
def create_app(config: AppConfig, client: Optional[AsyncOpenAI] = None) -> FastAPI:
    """
    Build the FastAPI app around an already loaded config.

    `client` replaces the outbound OpenAI client, mainly for tests.
    """
    answerer = QuizAnswerer(config.ai, client=client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await answerer.close()

    app = FastAPI(title="OCS AI Answer Proxy", lifespan=lifespan)
    app.state.config = config
    app.state.answerer = answerer

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LogRequestMiddleware)

    # --------------------------------------------------------
    # Exception handlers
    # --------------------------------------------------------
    @app.exception_handler(QuizProxyError)
    async def quiz_proxy_exception_handler(request: Request, exc: QuizProxyError):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(message=exc.message).model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(message=str(exc)).model_dump(),
        )

    # --------------------------------------------------------
    # Routes
    # --------------------------------------------------------
    def ai_info() -> dict:
        return {
            "model": config.ai.model.strip(),
            "endpoint": config.ai.base_url.strip(),
        }

    @app.api_route("/query", methods=QUERY_METHODS)
    async def query(request: Request):
        req = await parse_query_request(request)
        answer = await answerer.answer(req)
        return build_query_response(req, answer).model_dump(exclude_none=True)

    @app.get("/info")
    def info():
        return {"code": 1, "message": "AI模式", "data": ai_info()}

    @app.get("/health")
    def health():
        return {"status": "ok", "mode": "ai", "ai": ai_info()}

    @app.get("/")
    def index():
        return {"status": "running", "name": SERVICE_NAME}

    return app
