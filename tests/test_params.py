import pytest

from app.llm.entity.completion import ChatMessage
from app.llm.service.params import build_messages, normalize_params


def test_defaults_when_absent():
    params = normalize_params()
    assert params.temperature == 0.7
    assert params.max_tokens == 2000
    assert params.top_p == 1.0
    assert params.frequency_penalty == 0.0
    assert params.presence_penalty == 0.0


@pytest.mark.parametrize("raw, expected", [(5, 2.0), (-1, 0.0), (2.5, 2.0), (0, 0.0), (1.3, 1.3)])
def test_temperature_saturates_to_nearest_boundary(raw, expected):
    assert normalize_params(temperature=raw).temperature == expected


def test_other_parameters_are_clamped():
    params = normalize_params(max_tokens=100000, top_p=3, frequency_penalty=-9, presence_penalty=7)
    assert params.max_tokens == 4096
    assert params.top_p == 1.0
    assert params.frequency_penalty == -2.0
    assert params.presence_penalty == 2.0

    assert normalize_params(max_tokens=0).max_tokens == 1
    assert normalize_params(top_p=-0.5).top_p == 0.0


def test_normalization_is_idempotent():
    once = normalize_params(temperature=9, max_tokens=-4, top_p=2, frequency_penalty=3, presence_penalty=-3)
    twice = normalize_params(**once.model_dump())
    assert once == twice


def test_system_override_is_prepended():
    messages = [ChatMessage(role="user", content="hello")]
    built = build_messages(messages, "be terse")
    assert [m.role for m in built] == ["system", "user"]
    assert built[0].content == "be terse"


def test_empty_system_override_is_ignored():
    messages = [ChatMessage(role="user", content="hello")]
    assert build_messages(messages, "") == messages
    assert build_messages(messages, None) == messages
