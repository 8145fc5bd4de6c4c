"""Question/answer Markdown: clipboard prompts and the bulk export."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .projector import document_to_text

EVENT_TITLE_ENV = "MODU_EDITOR_EVENT_TITLE"
DEFAULT_EVENT_TITLE = "2025 AI 결산"
UNKNOWN_EVENT_TITLE = "알 수 없음"
NO_ANSWER_PLACEHOLDER = "(아직 답변이 등록되지 않았습니다.)"

TOPIC_TAGS = [
    "none",
    "getting_started",
    "workflow_automation",
    "prompting",
    "tools_models",
    "accuracy_verification",
    "security_privacy",
    "copyright_ethics",
    "cost_roi",
    "trends_learning_career",
]
INTENT_TAGS = ["howto", "recommend", "troubleshoot", "explain", "strategy", "other"]
ROUTE_TARGETS = ["ops", "expert", "ignore"]

_COMPOUND_TAGS = {
    "trends_learning_career": ["트랜드", "러닝", "커리어"],
    "getting_started": ["시작", "입문"],
    "workflow_automation": ["워크플로", "자동화"],
    "accuracy_verification": ["정확도", "검증"],
    "security_privacy": ["보안", "개인정보"],
    "copyright_ethics": ["저작권", "윤리"],
    "cost_roi": ["비용", "ROI"],
    "tools_models": ["툴", "모델"],
    "explain": ["설명", "이해"],
    "howto": ["방법", "가이드"],
    "recommend": ["추천", "비교"],
    "troubleshoot": ["문제", "해결"],
    "strategy": ["전략", "전망"],
}
_TAG_WORDS = {
    "trends": "트랜드",
    "learning": "러닝",
    "career": "커리어",
    "getting": "시작",
    "started": "입문",
    "workflow": "워크플로",
    "automation": "자동화",
    "prompting": "프롬프트",
    "tools": "툴",
    "models": "모델",
    "accuracy": "정확도",
    "verification": "검증",
    "security": "보안",
    "privacy": "개인정보",
    "copyright": "저작권",
    "ethics": "윤리",
    "cost": "비용",
    "roi": "ROI",
}

LLM_PROMPT_TEMPLATE_DEFAULT = (
    """
당신은 기업 실무 효율화와 AI 자동화 분야의 최고 전문가입니다.
현업 실무자가 겪고 있는 아래의 구체적인 고민에 대해 솔루션을 제시해주세요.

[답변 가이드라인]
1. 원론적이거나 추상적인 이야기는 배제하고, "당장 내일 출근해서 시도해볼 수 있는" 구체적인 방법 3~4가지를 제안하세요.
2. 답변의 길이는 너무 길어지지 않게(500자 내외), 가독성 좋은 리스트 형태로 작성하세요.
3. 질문자의 상황(제한된 권한, 비개발자 등)을 충분히 고려하여 현실적인 도구(무료 툴, 노코드 등)를 추천하세요.

---
[실무자의 질문]
{question}
---

위 질문에 대해 전문가로서 통찰력 있고 실현 가능한 답변을 작성해주세요.
"""
)


def split_compound_tag(tag: str) -> List[str]:
    """Split a tag such as ``security_privacy`` into display words."""
    if tag in _COMPOUND_TAGS:
        return list(_COMPOUND_TAGS[tag])
    if "_" in tag:
        return [_TAG_WORDS.get(part.lower(), part) for part in tag.split("_")]
    return [tag]


@dataclass
class QuestionRecord:
    id: str
    title: str
    content: Any = None
    answer: Any = None
    answer_gemini: Any = None
    answer_gpt: Any = None
    category: Optional[str] = None
    primary_topic: Optional[str] = None
    secondary_topics: Optional[List[str]] = None
    intent: Optional[str] = None
    like_count: int = 0
    gemini_like_count: int = 0
    gpt_like_count: int = 0
    created_at: Optional[str] = None
    event_title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionRecord":
        if not isinstance(data, dict):
            raise ValueError(f"Question record must be an object, got {type(data).__name__}")
        event = data.get("event")
        event_title = event.get("title") if isinstance(event, dict) else None
        secondary = data.get("secondary_topics")
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            content=data.get("content"),
            answer=data.get("answer"),
            answer_gemini=data.get("answer_gemini"),
            answer_gpt=data.get("answer_gpt"),
            category=data.get("category"),
            primary_topic=data.get("primary_topic"),
            secondary_topics=[str(t) for t in secondary] if isinstance(secondary, list) else None,
            intent=data.get("intent"),
            like_count=int(data.get("like_count") or 0),
            gemini_like_count=int(data.get("gemini_like_count") or 0),
            gpt_like_count=int(data.get("gpt_like_count") or 0),
            created_at=data.get("created_at"),
            event_title=event_title,
        )

    @property
    def has_answer(self) -> bool:
        return bool(self.answer or self.answer_gemini or self.answer_gpt)

    def tag_labels(self) -> List[str]:
        tags: List[str] = []
        if self.primary_topic and self.primary_topic != "none":
            tags.append(f"주제: {self.primary_topic}")
        secondary = [t for t in (self.secondary_topics or []) if t != "none" and t != self.primary_topic]
        if secondary:
            tags.append(f"부주제: {', '.join(secondary)}")
        if self.intent and self.intent != "other":
            tags.append(f"의도: {self.intent}")
        return tags


@dataclass
class ExportConfig:
    document_title: str = "질문과 답변 모음"
    default_event_title: str = DEFAULT_EVENT_TITLE
    expert_label: str = "💬 Expert Answer (전문가 답변)"
    gemini_label: str = "✨ Gemini (gemini 3.0 pro)"
    gpt_label: str = "🤖 ChatGPT (gpt-5.2-thinking)"
    include_llm_prompt: bool = False
    llm_prompt_template: str = LLM_PROMPT_TEMPLATE_DEFAULT.strip()


_CONFIG_STR_KEYS = (
    "document_title",
    "default_event_title",
    "expert_label",
    "gemini_label",
    "gpt_label",
    "llm_prompt_template",
)


def default_event_title() -> str:
    override = os.environ.get(EVENT_TITLE_ENV)
    if override is not None and override.strip():
        return override.strip()
    return DEFAULT_EVENT_TITLE


def load_export_config(path: Path) -> ExportConfig:
    try:
        data_raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise ValueError(f"Unable to read export config {path}: {exc}") from exc
    if not isinstance(data_raw, dict):
        raise ValueError(f"Export config {path} must contain a JSON object")

    known = set(_CONFIG_STR_KEYS) | {"include_llm_prompt"}
    unknown = sorted(set(data_raw) - known)
    if unknown:
        raise ValueError(f"Export config {path} has unknown keys: {', '.join(unknown)}")

    config = ExportConfig(default_event_title=default_event_title())
    for key in _CONFIG_STR_KEYS:
        if key not in data_raw:
            continue
        value = data_raw[key]
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Export config {path} key {key} must be a non-empty string")
        setattr(config, key, value.strip())
    if "include_llm_prompt" in data_raw:
        value = data_raw["include_llm_prompt"]
        if not isinstance(value, bool):
            raise ValueError(f"Export config {path} key include_llm_prompt must be true or false")
        config.include_llm_prompt = value
    if "{question}" not in config.llm_prompt_template:
        raise ValueError(f"Export config {path} llm_prompt_template must contain {{question}}")
    return config


def write_default_export_config(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(ExportConfig()), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_korean_datetime(value: datetime) -> str:
    """``2025. 12. 27. 오후 3:04:05`` (ko-KR locale string)."""
    meridiem = "오전" if value.hour < 12 else "오후"
    hour = value.hour % 12 or 12
    return f"{value.year}. {value.month}. {value.day}. {meridiem} {hour}:{value.minute:02d}:{value.second:02d}"


def build_llm_prompt(question_text: str, template: str = LLM_PROMPT_TEMPLATE_DEFAULT) -> str:
    return template.strip().replace("{question}", question_text)


def generate_prompt_markdown(question: QuestionRecord, default_event: Optional[str] = None) -> str:
    """Clipboard text for one question: topic, body, expert answer and source line."""
    event_title = question.event_title or default_event or default_event_title()
    answer = document_to_text(question.answer) if question.answer else NO_ANSWER_PLACEHOLDER
    text = (
        f"# 주제: {question.title}\n\n"
        f"## ❓ 질문 내용\n{document_to_text(question.content)}\n\n"
        f"## 💡 전문가 답변\n{answer}\n\n"
        f"---\n*출처: 모두의특강 {event_title}*\n"
    )
    return text.strip()


def select_answered(questions: Iterable[QuestionRecord]) -> List[QuestionRecord]:
    """Questions with at least one answer, oldest first."""
    answered = [q for q in questions if q.has_answer]

    def _key(q: QuestionRecord):
        ts = parse_timestamp(q.created_at)
        return (ts is None, ts.timestamp() if ts is not None else 0.0)

    return sorted(answered, key=_key)


def render_questions_markdown(
    questions: Iterable[QuestionRecord],
    config: Optional[ExportConfig] = None,
    now: Optional[datetime] = None,
) -> str:
    config = config or ExportConfig()
    selected = select_answered(questions)
    if not selected:
        raise ValueError("No answered questions to export")
    now = now or datetime.now()

    parts: List[str] = [
        f"# {config.document_title}\n\n",
        f"생성일: {format_korean_datetime(now)}\n",
        f"총 질문 수: {len(selected)}개\n\n",
        "---\n\n",
    ]
    for index, question in enumerate(selected, start=1):
        parts.append(_render_question(index, question, config))
    return "".join(parts)


def _render_question(index: int, question: QuestionRecord, config: ExportConfig) -> str:
    out: List[str] = [
        f"## 질문 {index}: {question.title}\n\n",
        f"**이벤트:** {question.event_title or UNKNOWN_EVENT_TITLE}\n\n",
    ]
    if question.primary_topic or question.secondary_topics is not None or question.intent:
        out.append("**태그:** " + " | ".join(question.tag_labels()) + "\n\n")

    likes = f"**좋아요:** {question.like_count}개"
    if question.gemini_like_count or question.gpt_like_count:
        likes += f" (Gemini: {question.gemini_like_count}, GPT: {question.gpt_like_count})"
    out.append(likes + "\n\n")

    created = parse_timestamp(question.created_at)
    created_label = format_korean_datetime(created) if created is not None else (question.created_at or "")
    out.append(f"**작성일:** {created_label}\n\n")

    body = document_to_text(question.content)
    if config.include_llm_prompt:
        out.append("### 📝 LLM 프롬프트\n\n")
        out.append("*아래 프롬프트를 ChatGPT와 Gemini에 각각 입력하여 답변을 생성했습니다.*\n\n")
        out.append(f"```\n{build_llm_prompt(body, config.llm_prompt_template)}\n```\n\n")
        out.append("---\n\n")

    out.append("### 질문 내용\n\n")
    out.append(body + "\n\n")
    out.append("---\n\n")

    if question.answer:
        out.append(f"### {config.expert_label}\n\n")
        out.append(document_to_text(question.answer) + "\n\n")
        out.append("---\n\n")
    if question.answer_gemini:
        out.append(f"### {config.gemini_label}\n\n")
        if question.gemini_like_count:
            out.append(f"**좋아요:** {question.gemini_like_count}개\n\n")
        out.append(document_to_text(question.answer_gemini) + "\n\n")
        out.append("---\n\n")
    if question.answer_gpt:
        out.append(f"### {config.gpt_label}\n\n")
        if question.gpt_like_count:
            out.append(f"**좋아요:** {question.gpt_like_count}개\n\n")
        out.append(document_to_text(question.answer_gpt) + "\n\n")
        out.append("---\n\n")
    if not question.has_answer:
        out.append("*답변이 없습니다.*\n\n")
        out.append("---\n\n")

    out.append("\n\n")
    return "".join(out)


def load_questions_file(path: Path) -> List[QuestionRecord]:
    try:
        data_raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise ValueError(f"Unable to read questions file {path}: {exc}") from exc
    if isinstance(data_raw, dict) and isinstance(data_raw.get("questions"), list):
        data_raw = data_raw["questions"]
    if not isinstance(data_raw, list):
        raise ValueError(f"Questions file {path} must contain a list of questions")
    return [QuestionRecord.from_dict(item) for item in data_raw]
