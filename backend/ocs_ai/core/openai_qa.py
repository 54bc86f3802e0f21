# backend/ocs_ai/core/openai_qa.py

import json, logging
from dataclasses import dataclass
from typing import Optional

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, Omit
from pydantic import ValidationError

from .config import AIConfig, DEFAULT_BASE_URL, DEFAULT_MODEL
from .errors import (
    EmptyAnswerError,
    PayloadBuildError,
    QueryValidationError,
    ReplyParseError,
    TransportError,
    UpstreamLogicalError,
    UpstreamStatusError,
)
from .formatter import format_answer
from .prompt import DEFAULT_PROMPT_TEMPLATE, DEFAULT_SYSTEM_PROMPT, render_prompt
from .schemas import (
    ChatMessage,
    ChatPayload,
    ChatReply,
    QueryRequest,
    QueryResponse,
    QueryResponseData,
    QueryResult,
)

logger = logging.getLogger("ocs_ai.qa")

SUCCESS_MESSAGE = "AI回答成功"


# ------------------------------------------------------------
# Effective settings
# ------------------------------------------------------------
@dataclass(frozen=True)
class EffectiveSettings:
    base_url: str
    model: str
    system_prompt: str
    prompt_template: str


def resolve_settings(ai: AIConfig) -> EffectiveSettings:
    """Blank configured values fall back to the built-in defaults."""
    return EffectiveSettings(
        base_url=ai.base_url.strip() or DEFAULT_BASE_URL,
        model=ai.model.strip() or DEFAULT_MODEL,
        system_prompt=ai.system_prompt.strip() or DEFAULT_SYSTEM_PROMPT,
        prompt_template=ai.prompt_template.strip() or DEFAULT_PROMPT_TEMPLATE,
    )


def build_payload(ai: AIConfig, settings: EffectiveSettings, req: QueryRequest) -> ChatPayload:
    prompt = render_prompt(settings.prompt_template, req.title, req.options, req.type)

    messages = []
    if settings.system_prompt:
        messages.append(ChatMessage(role="system", content=settings.system_prompt))
    messages.append(ChatMessage(role="user", content=prompt))

    try:
        return ChatPayload(
            model=settings.model,
            messages=messages,
            temperature=ai.temperature if ai.temperature > 0 else None,
            top_p=ai.top_p if ai.top_p > 0 else None,
            max_tokens=ai.max_tokens if ai.max_tokens > 0 else None,
        )
    except ValidationError as e:
        raise PayloadBuildError(f"构建AI请求失败: {e}") from e


def build_client(ai: AIConfig, http_client: Optional[httpx.AsyncClient] = None) -> AsyncOpenAI:
    """One client per process; never retries."""
    return AsyncOpenAI(
        api_key=ai.api_key.strip(),
        timeout=float(ai.timeout),
        max_retries=0,
        http_client=http_client,
    )


def check_endpoint(url: str) -> None:
    """
    The SDK joins relative URLs onto its own base, so anything that is not
    an absolute http(s) URL is refused before a request is built.
    """
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        logger.error(f"创建AI请求失败: {e}")
        raise PayloadBuildError(f"创建AI请求失败: {e}") from e
    if not parsed.is_absolute_url or parsed.scheme not in ("http", "https"):
        logger.error(f"创建AI请求失败: 接口地址必须是完整的 http(s) URL: {url}")
        raise PayloadBuildError(f"创建AI请求失败: 接口地址必须是完整的 http(s) URL: {url}")


def parse_reply(body: str) -> ChatReply:
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ReplyParseError(f"解析AI响应失败: {e}") from e
    if not isinstance(data, dict):
        raise ReplyParseError(f"解析AI响应失败: 响应不是JSON对象: {body[:200]}")
    try:
        return ChatReply.model_validate(data)
    except ValidationError as e:
        raise ReplyParseError(f"解析AI响应失败: {e}") from e


def build_query_response(req: QueryRequest, answer: str) -> QueryResponse:
    if req.wants_results:
        data = QueryResponseData(results=[QueryResult(question=req.title, answer=answer)])
    else:
        data = QueryResponseData(question=req.title, answer=answer)
    return QueryResponse(code=1, message=SUCCESS_MESSAGE, times=-1, data=data)


# ------------------------------------------------------------
# Orchestration
# ------------------------------------------------------------
class QuizAnswerer:
    """Forwards quiz questions to an OpenAI-compatible chat endpoint."""

    def __init__(self, ai: AIConfig, client: Optional[AsyncOpenAI] = None):
        self.ai = ai
        self.client = client or build_client(ai)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        api_key = self.ai.api_key.strip()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        else:
            headers["Authorization"] = Omit()
        return headers

    async def _send(self, url: str, payload: ChatPayload) -> str:
        check_endpoint(url)
        try:
            resp = await self.client.post(
                url,
                cast_to=httpx.Response,
                body=payload.to_body(),
                options={"headers": self._headers()},
            )
        except httpx.InvalidURL as e:
            logger.error(f"创建AI请求失败: {e}")
            raise PayloadBuildError(f"创建AI请求失败: {e}") from e
        except APIStatusError as e:
            body = e.response.text.strip()
            logger.error(f"AI接口返回错误状态码: {e.status_code}, 响应: {body}")
            raise UpstreamStatusError(f"AI接口返回错误: {body}", status_code=e.status_code) from e
        except APIConnectionError as e:
            logger.error(f"请求AI接口失败: {e}")
            raise TransportError(f"请求AI接口失败: {e}") from e

        try:
            return resp.text
        except (httpx.HTTPError, UnicodeDecodeError) as e:
            logger.error(f"读取AI响应失败: {e}")
            raise TransportError(f"读取AI响应失败: {e}") from e

    async def answer(self, req: QueryRequest) -> str:
        """Return the cleaned answer for `req` or raise a QuizProxyError."""
        if not req.title.strip():
            raise QueryValidationError("缺少必要参数: title")

        logger.info(
            f"收到查询请求: 题目={req.title}, 选项={req.options}, 类型={req.type}, More={req.wants_results}"
        )

        settings = resolve_settings(self.ai)
        payload = build_payload(self.ai, settings, req)

        logger.info(f"转发请求到AI模型: {settings.base_url}, 模型={settings.model}")
        body = await self._send(settings.base_url, payload)

        try:
            reply = parse_reply(body)
        except ReplyParseError as e:
            logger.error(e.message)
            raise

        if reply.error is not None:
            logger.error(f"AI接口返回错误: {reply.error.message}")
            raise UpstreamLogicalError(f"AI接口错误: {reply.error.message}")

        raw_answer = reply.first_content()
        if not raw_answer:
            logger.error("AI接口未返回有效答案")
            raise EmptyAnswerError("AI接口未返回有效答案")

        answer = format_answer(raw_answer)
        logger.info(f"AI回答成功: 题目={req.title}, 答案={answer}")
        return answer

    async def close(self) -> None:
        await self.client.close()
