# backend/ocs_ai/core/prompt.py

# ------------------------------------------------------------
# Built-in prompts, used when the configured ones are blank
# ------------------------------------------------------------
DEFAULT_SYSTEM_PROMPT = (
    "你是一名专业的答题助手，请根据题目内容和选项快速给出最可能的正确答案，并提供必要的推理。"
)

DEFAULT_PROMPT_TEMPLATE = (
    "题目：{{title}}\n"
    "选项：{{options}}\n"
    "类型：{{type}}\n"
    "\n"
    "请给出最可能的正确答案，并在必要时给出简要解释。"
)

# Rendered in place of an empty field
NONE_MARKER = "无"


def render_prompt(template: str, title: str, options: str, qtype: str) -> str:
    """
    Substitute {{title}}, {{options}} and {{type}} in `template`.

    Plain substring replacement: every occurrence is replaced, values are
    trimmed, empty values become NONE_MARKER and unknown placeholders stay
    as they are.
    """
    replacements = {
        "{{title}}": title,
        "{{options}}": options,
        "{{type}}": qtype,
    }

    prompt = template
    for placeholder, value in replacements.items():
        value = (value or "").strip() or NONE_MARKER
        prompt = prompt.replace(placeholder, value)
    return prompt
