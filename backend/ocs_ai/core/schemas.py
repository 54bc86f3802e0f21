from typing import Any, List, Optional

from pydantic import BaseModel, field_validator

# Go strconv.ParseBool spellings, which quiz userscripts already send
_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(value: Any) -> Optional[bool]:
    """Lenient bool parsing: anything unrecognised becomes None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
    return None


# ------------------------------------------------------------
# Inbound /query
# ------------------------------------------------------------
class QueryRequest(BaseModel):
    token: str = ""                # carried through, never checked
    title: str = ""
    options: str = ""              # free text describing the choices
    type: str = ""                 # e.g. "single", "multiple", "judgement"
    more: Optional[bool] = None    # True -> results array response

    @field_validator("token", "title", "options", "type", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("more", mode="before")
    @classmethod
    def _lenient_more(cls, v):
        return parse_bool(v)

    @property
    def wants_results(self) -> bool:
        return bool(self.more)


class QueryResult(BaseModel):
    question: str
    answer: str


class QueryResponseData(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    results: Optional[List[QueryResult]] = None


class QueryResponse(BaseModel):
    code: int = 1
    message: str
    times: int = -1                # usage is not tracked
    data: QueryResponseData


class ErrorResponse(BaseModel):
    code: int = 0
    message: str


# ------------------------------------------------------------
# Outbound chat completion
# ------------------------------------------------------------
class ChatMessage(BaseModel):
    role: str = ""
    content: Optional[str] = ""


class ChatPayload(BaseModel):
    model: str
    messages: List[ChatMessage]
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None

    def to_body(self) -> dict:
        """JSON body for the endpoint; unset sampling fields are left out."""
        return self.model_dump(exclude_none=True)


class ChatChoice(BaseModel):
    message: ChatMessage = ChatMessage()


class ChatError(BaseModel):
    message: str = ""
    type: Optional[str] = None
    code: Any = None

    @field_validator("message", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v


class ChatReply(BaseModel):
    choices: List[ChatChoice] = []
    error: Optional[ChatError] = None

    def first_content(self) -> str:
        if not self.choices:
            return ""
        return (self.choices[0].message.content or "").strip()
