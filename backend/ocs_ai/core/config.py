# backend/ocs_ai/core/config.py

import os, sys, logging
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigMissingError, ConfigParseError

load_dotenv()
logger = logging.getLogger("ocs_ai.config")

CONFIG_FILENAME = "config.yaml"
DEFAULT_BASE_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT = 30

# Written on first run when no config file exists
DEFAULT_CONFIG_YAML = """\
# ocs-ai配置

# 本地服务端配置
server:
  port: 8080  # 本地服务端口
  host: "127.0.0.1"  # 本地服务主机

# AI回答配置
ai:
  base_url: "https://api.openai.com/v1/chat/completions"  # AI接口地址
  api_key: ""  # AI接口密钥
  model: "gpt-4o-mini"  # 使用的模型名称
  system_prompt: "你是一名专业的答题助手，请根据题目和选项给出最可能的正确答案，并简要解释理由。"
  prompt_template: |
    题目：{{title}}
    选项：{{options}}
    类型：{{type}}

    请根据题目信息给出最可能的正确答案，并在必要时提供简要推理。
  temperature: 0.2  # 随机性
  top_p: 1.0  # nucleus sampling
  max_tokens: 512  # 最大输出token
  timeout: 30  # 请求超时时间（秒）
"""


# ------------------------------------------------------------
# Schema
# ------------------------------------------------------------
class ServerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = Field(default="127.0.0.1", description="监听地址")
    port: int = Field(default=8080, description="监听端口")

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class AIConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default=DEFAULT_BASE_URL, description="chat completions 接口完整地址")
    api_key: str = Field(default="", description="Bearer 密钥，留空则不发送")
    model: str = Field(default="", description="模型名称")
    system_prompt: str = ""
    prompt_template: str = ""
    temperature: float = 0.0       # only sent when > 0
    top_p: float = 0.0             # only sent when > 0
    max_tokens: int = 0            # only sent when > 0
    timeout: int = Field(default=DEFAULT_TIMEOUT, description="请求超时（秒）")

    @field_validator("base_url", "api_key", "model", "system_prompt", "prompt_template", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("temperature", "top_p", "max_tokens", mode="before")
    @classmethod
    def _none_to_zero(cls, v):
        return 0 if v is None else v

    @field_validator("timeout", mode="before")
    @classmethod
    def _timeout_none(cls, v):
        return DEFAULT_TIMEOUT if v is None else v

    @field_validator("timeout")
    @classmethod
    def _timeout_positive(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_TIMEOUT

    @field_validator("base_url")
    @classmethod
    def _base_url_default(cls, v: str) -> str:
        return v if v.strip() else DEFAULT_BASE_URL


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    server: ServerConfig = ServerConfig()
    ai: AIConfig = AIConfig()

    @field_validator("server", "ai", mode="before")
    @classmethod
    def _empty_section(cls, v):
        return {} if v is None else v


# ------------------------------------------------------------
# Loading
# ------------------------------------------------------------
def get_config_path() -> Path:
    """config.yaml next to the entry script, unless OCS_AI_CONFIG says otherwise."""
    env_path = os.getenv("OCS_AI_CONFIG")
    if env_path:
        return Path(env_path).expanduser().resolve()
    try:
        base_dir = Path(sys.argv[0]).resolve().parent
    except (OSError, RuntimeError):
        return Path(CONFIG_FILENAME)
    return base_dir / CONFIG_FILENAME


def ensure_default_config(path: Path) -> bool:
    """Write DEFAULT_CONFIG_YAML if `path` does not exist. Returns True if written."""
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_YAML, encoding="utf-8")
    logger.info(f"已创建默认配置文件: {path}")
    return True


def load_config(path: Path) -> AppConfig:
    """
    Read and validate the YAML config at `path`.

    Raises ConfigMissingError if the file is absent and ConfigParseError if
    it is not valid YAML or does not match the schema. Timeout <= 0 and a
    blank base_url are backfilled with defaults; a blank api_key falls back
    to OPENAI_API_KEY from the environment.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigMissingError(f"配置文件不存在: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigParseError(f"读取配置文件失败: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigParseError(f"解析配置文件失败: 顶层必须是映射, 实际为 {type(raw).__name__}")

    try:
        config = AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigParseError(f"解析配置文件失败: {e}") from e

    if not config.ai.api_key.strip():
        env_key = os.getenv("OPENAI_API_KEY", "")
        if env_key:
            logger.info("配置中未设置 api_key, 使用环境变量 OPENAI_API_KEY")
            config = config.model_copy(
                update={"ai": config.ai.model_copy(update={"api_key": env_key})}
            )

    logger.debug(f"配置加载完成: server={config.server.address}, model={config.ai.model}")
    return config
