from typing import Iterable, List, Optional

from app.llm.entity.completion import ChatMessage, GenerationParams

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000
DEFAULT_TOP_P = 1.0
DEFAULT_FREQUENCY_PENALTY = 0.0
DEFAULT_PRESENCE_PENALTY = 0.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def normalize_params(
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    top_p: Optional[float] = None,
    frequency_penalty: Optional[float] = None,
    presence_penalty: Optional[float] = None,
) -> GenerationParams:
    """Fill defaults and saturate every value into its valid range. Never raises on range."""
    temperature = DEFAULT_TEMPERATURE if temperature is None else temperature
    max_tokens = DEFAULT_MAX_TOKENS if max_tokens is None else max_tokens
    top_p = DEFAULT_TOP_P if top_p is None else top_p
    frequency_penalty = DEFAULT_FREQUENCY_PENALTY if frequency_penalty is None else frequency_penalty
    presence_penalty = DEFAULT_PRESENCE_PENALTY if presence_penalty is None else presence_penalty

    return GenerationParams(
        temperature=_clamp(float(temperature), 0.0, 2.0),
        max_tokens=int(_clamp(int(max_tokens), 1, 4096)),
        top_p=_clamp(float(top_p), 0.0, 1.0),
        frequency_penalty=_clamp(float(frequency_penalty), -2.0, 2.0),
        presence_penalty=_clamp(float(presence_penalty), -2.0, 2.0),
    )


def build_messages(messages: Iterable[ChatMessage], system_message: Optional[str] = None) -> List[ChatMessage]:
    """Prepend the system override, if any, as a synthetic leading message."""
    conversation = list(messages)
    if system_message:
        return [ChatMessage(role="system", content=system_message), *conversation]
    return conversation
