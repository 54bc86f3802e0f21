# backend/ocs_ai/core/formatter.py

from typing import Tuple

# Checked in order; the first marker present splits the reply
ANALYSIS_MARKERS = [
    "解析：", "解析:",
    "理由：", "理由:",
    "原因：", "原因:",
    "说明：", "说明:",
    "推理：", "推理:",
]

ANSWER_PREFIXES = ["正确答案：", "正确答案:", "答案：", "答案:"]


def split_answer(raw: str) -> Tuple[str, str]:
    """Split a model reply into (answer, analysis)."""
    normalized = (raw or "").replace("\r\n", "\n").strip()
    if not normalized:
        return "", ""

    answer_part, analysis = normalized, ""
    for marker in ANALYSIS_MARKERS:
        idx = normalized.find(marker)
        if idx != -1:
            analysis = normalized[idx + len(marker):].strip()
            answer_part = normalized[:idx].strip()
            break

    # reply was nothing but analysis; keep it so a non-blank reply never
    # yields an empty answer
    if not answer_part:
        answer_part = normalized

    answer = answer_part
    for prefix in ANSWER_PREFIXES:
        if answer.startswith(prefix):
            answer = answer[len(prefix):].strip()
            break

    if not answer:
        answer = answer_part
    return answer, analysis


def format_answer(raw: str) -> str:
    """Strip the trailing analysis and any "答案：" prefix from a reply."""
    answer, _ = split_answer(raw)
    return answer
