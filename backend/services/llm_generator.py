"""Generative text backends for the contextual fallback suggestion."""

import logging
from typing import List, Optional, Protocol

from pydantic import BaseModel, Field

from errors import CapabilityUnavailableError
from models import Question, QuestionType, RiskLevel
from services.text_utils import detect_topic
import config

logger = logging.getLogger(__name__)

# System prompt for the LLM
SYSTEM_PROMPT = """You are a compliance questionnaire assistant. You draft answers to security questionnaire questions on behalf of an organization.

RULES:
1) Answer in the first person plural ("We ...") as the organization's security team.
2) Address the topic of the question directly in two or three sentences.
3) Do not invent certifications, vendors, dates or figures.
4) Prefer conservative wording that a reviewer can tighten, never overstate.
5) For yes/no questions, start with "Yes" or "No" followed by a short justification.
6) Respond with the answer text only, no preamble or markdown."""

TOPIC_TEMPLATES = {
    "access_control": ("We implement comprehensive access controls including user authentication, "
                       "authorization, and regular access reviews. Access is granted based on the "
                       "principle of least privilege."),
    "encryption": ("We use industry-standard encryption for data at rest and in transit. Our encryption "
                   "implementation follows best practices and is regularly reviewed."),
    "monitoring": ("We maintain comprehensive logging and monitoring systems to track security events and "
                   "detect potential threats. Logs are regularly reviewed and analyzed."),
    "backup": ("We maintain regular backups of critical data and systems. Our backup and recovery "
               "procedures are tested regularly to ensure business continuity."),
}
DEFAULT_TEMPLATE = ("We have implemented appropriate security controls and procedures to address this "
                    "requirement. Our security program is regularly reviewed and updated.")


class PromptContext(BaseModel):
    """What a text backend gets to see about the question."""
    question_text: str
    question_type: QuestionType = QuestionType.FREE_TEXT
    keywords: List[str] = Field(default_factory=list)
    risk_level: Optional[RiskLevel] = None

    @classmethod
    def from_question(cls, question: Question) -> "PromptContext":
        return cls(
            question_text=question.text,
            question_type=question.type,
            keywords=sorted(question.extracted_keywords),
            risk_level=question.risk_level,
        )


def create_user_prompt(context: PromptContext) -> str:
    """Create the user prompt for a question."""
    keyword_line = f"Keywords: {', '.join(context.keywords)}" if context.keywords else ""
    risk_line = f"Risk level: {context.risk_level.value}" if context.risk_level else ""

    return f"""Question: {context.question_text}
Question type: {context.question_type.value}
{keyword_line}
{risk_line}

Draft the organization's answer."""


class GenerativeTextCapability(Protocol):
    def is_available(self) -> bool:
        ...

    async def complete(self, context: PromptContext) -> str:
        ...


class TemplateTextCapability:
    """Deterministic topic templates, always available."""

    def is_available(self) -> bool:
        return True

    async def complete(self, context: PromptContext) -> str:
        topic = detect_topic(context.question_text)
        return TOPIC_TEMPLATES.get(topic, DEFAULT_TEMPLATE)


class OpenAITextCapability:
    """Drafts answers with the OpenAI chat completions API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = config.OPENAI_API_KEY if api_key is None else api_key
        self.model = model or config.LLM_MODEL
        self.max_tokens = config.LLM_MAX_TOKENS
        self.temperature = config.LLM_TEMPERATURE
        self._client = None

    @property
    def client(self):
        """Lazy initialization of the async OpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def is_available(self) -> bool:
        """Check if LLM is configured."""
        return bool(self.api_key)

    async def complete(self, context: PromptContext) -> str:
        if not self.is_available():
            raise CapabilityUnavailableError("OPENAI_API_KEY is not configured")

        from openai import APIConnectionError, APITimeoutError, AuthenticationError

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": create_user_prompt(context)}
                ]
            )
        except (APIConnectionError, APITimeoutError, AuthenticationError) as e:
            raise CapabilityUnavailableError(f"LLM API unreachable: {e}") from e

        content = response.choices[0].message.content or ""
        return content.strip()


def build_text_capability(backend: Optional[str] = None) -> Optional[GenerativeTextCapability]:
    """Select the configured text backend, or None when disabled."""
    backend = (backend or config.GENERATIVE_BACKEND).lower()

    if backend == "openai":
        capability = OpenAITextCapability()
        if not capability.is_available():
            logger.warning("GENERATIVE_BACKEND=openai but no OPENAI_API_KEY is set")
        return capability
    if backend == "template":
        return TemplateTextCapability()
    if backend == "none":
        return None

    raise ValueError(f"Unknown GENERATIVE_BACKEND: {backend}")
