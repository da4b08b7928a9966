# recetai/services/llm_openai.py
# 레시피 생성용 LLM 어댑터 (OpenAI Chat Completions)
# - 시도마다 새 세션(대화 이력) 생성, 시도 간 세션 재사용 없음
# - 자유 형식 응답에서 JSON 추출은 최대한 관대하게, 실패는 LLMCommunicationError

from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

try:
    from openai import AsyncOpenAI  # v1 SDK
except Exception:
    AsyncOpenAI = None  # type: ignore

from recetai.core.config import settings
from recetai.services.recipe.errors import ErrorMessages, LLMCommunicationError, LLMNotReady
from recetai.services.recipe.ports import LLMSession

log = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a professional chef and nutritionist. "
    "You only answer with a single JSON code block that follows the requested format."
)

# ```json ... ``` 또는 ``` ... ```
FENCE_RE = re.compile(r"```(?:json)?\n([\s\S]*?)\n```")
# 텍스트 중간에 박힌 첫 { ... } / [ ... ]
INLINE_JSON_RE = re.compile(r"[{\[].*[}\]]", re.S)


class ChatSession:
    # 한 번의 생성 시도 동안만 유지되는 대화
    def __init__(self, client: "AsyncOpenAI", model: str, **params: Any):
        self._client = client
        self._model = model
        self._params = params
        self.messages: List[Dict[str, str]] = [{"role": "system", "content": SYSTEM_PROMPT}]

    async def send(self, prompt: str) -> str:
        self.messages.append({"role": "user", "content": prompt})
        chat = await self._client.chat.completions.create(
            model=self._model,
            messages=self.messages,
            **self._params,
        )
        text = chat.choices[0].message.content if chat and chat.choices else ""
        text = text or ""
        if not text:
            log.warning("Chat Completions returned empty text")
        self.messages.append({"role": "assistant", "content": text})
        return text


class OpenAIChatClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_CHAT_MODEL
        self.temperature = settings.OPENAI_TEMPERATURE if temperature is None else temperature
        self.top_p = settings.OPENAI_TOP_P if top_p is None else top_p
        self.max_tokens = max_tokens or settings.OPENAI_MAX_TOKENS
        self.timeout = timeout or settings.OPENAI_TIMEOUT_SECONDS
        self._client: Optional["AsyncOpenAI"] = None

    def _get_client(self) -> "AsyncOpenAI":
        if AsyncOpenAI is None:
            raise LLMNotReady("openai SDK not installed")
        if not self.api_key:
            raise LLMNotReady("OPENAI_API_KEY not set")
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def open(self) -> ChatSession:
        return ChatSession(
            self._get_client(),
            self.model,
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
        )


def start_session(client) -> LLMSession:
    return client.open()


def extract_json_response(response_text: str) -> Any:
    """모델 응답 텍스트 → JSON 값.

    우선순위: (1) 코드펜스 블록 (2) 선행 텍스트가 있으면 본문 중 첫 {...}/[...] (3) 전체 텍스트.
    배열이 오면 첫 원소만 사용. 파싱 실패 시 원문을 담아 LLMCommunicationError.
    """
    try:
        m = FENCE_RE.search(response_text)
        json_string = (m.group(1) if m else response_text).strip()

        if not json_string.startswith("{") and not json_string.startswith("["):
            inline = INLINE_JSON_RE.search(json_string)
            if inline:
                json_string = inline.group(0)

        parsed = json.loads(json_string)
    except (TypeError, ValueError) as e:
        raise LLMCommunicationError(ErrorMessages.json_parse_failed(e), response_text) from e

    if isinstance(parsed, list) and parsed:
        return parsed[0]
    return parsed


async def send_and_extract_json(session: LLMSession, prompt: str) -> Tuple[str, Any]:
    # (원문, 파싱된 JSON) 반환. 원문은 교정 프롬프트에 다시 쓰인다.
    raw = await session.send(prompt)
    return raw, extract_json_response(raw)
