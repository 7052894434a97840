import json
from types import SimpleNamespace

import httpx
import openai
import pytest
import requests

from tool_chat.core.errors import ConfigError, TransportError
from tool_chat.core.messages import FinalAnswer, Message, ToolCallRequest
from tool_chat.providers.llm_ollama import OllamaLLM, OllamaLLMConfig
from tool_chat.providers.llm_openai import OpenAILLM, OpenAILLMConfig
from tool_chat.tools import WEATHER_TOOL

_CALL = ToolCallRequest(id="call_1", name="get_weather", raw_arguments='{"location": "Tokyo"}')
_TRANSCRIPT = [
    Message.system("You are helpful."),
    Message.user("Weather in Tokyo?"),
    Message.tool_request(_CALL),
    Message.tool_result(_CALL, "The weather in Tokyo is sunny."),
]


class FakeCompletions:
    def __init__(self, result):
        self._result = result
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if isinstance(self._result, BaseException):
            raise self._result
        return self._result


def fake_openai_client(result):
    completions = FakeCompletions(result)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def openai_response(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def openai_tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def make_openai(result):
    client, completions = fake_openai_client(result)
    llm = OpenAILLM(OpenAILLMConfig(api_key="sk-test", model="gpt-test"), client=client)
    return llm, completions


def test_openai_request_encodes_transcript_and_tools():
    llm, completions = make_openai(openai_response(content="Sunny!"))

    response = llm.generate(_TRANSCRIPT, [WEATHER_TOOL], tool_choice="auto")

    assert response == FinalAnswer(text="Sunny!")
    request = completions.requests[0]
    assert request["model"] == "gpt-test"
    assert request["tool_choice"] == "auto"
    assert request["parallel_tool_calls"] is False
    assert request["tools"][0]["function"]["name"] == "get_weather"
    assert request["tools"][0]["function"]["parameters"] == WEATHER_TOOL.parameters

    system, user, assistant, tool = request["messages"]
    assert system == {"role": "system", "content": "You are helpful."}
    assert user == {"role": "user", "content": "Weather in Tokyo?"}
    assert assistant["tool_calls"][0]["id"] == "call_1"
    assert assistant["tool_calls"][0]["function"]["arguments"] == '{"location": "Tokyo"}'
    assert tool == {"role": "tool", "tool_call_id": "call_1", "content": "The weather in Tokyo is sunny."}


def test_openai_without_tools_sends_no_tool_fields():
    llm, completions = make_openai(openai_response(content="Hi"))
    llm.generate([Message.user("hi")], [], tool_choice="none")
    assert "tools" not in completions.requests[0]
    assert "tool_choice" not in completions.requests[0]


def test_openai_tool_call_response():
    calls = [
        openai_tool_call("call_9", "get_weather", '{"location": "Paris"}'),
        openai_tool_call("call_10", "get_joke", '{"weather": "rain"}'),
    ]
    llm, _ = make_openai(openai_response(tool_calls=calls))

    response = llm.generate([Message.user("Paris?")], [WEATHER_TOOL])

    assert response == ToolCallRequest(id="call_9", name="get_weather", raw_arguments='{"location": "Paris"}')


def test_openai_empty_text_is_an_error():
    llm, _ = make_openai(openai_response(content="   "))
    with pytest.raises(TransportError) as exc:
        llm.generate([Message.user("hi")])
    assert exc.value.retryable is False


def _status_error(cls, status):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status, request=request)
    return cls("boom", response=response, body=None)


@pytest.mark.parametrize(
    "error,retryable",
    [
        (lambda: _status_error(openai.RateLimitError, 429), True),
        (lambda: _status_error(openai.InternalServerError, 503), True),
        (lambda: _status_error(openai.AuthenticationError, 401), False),
        (lambda: _status_error(openai.BadRequestError, 400), False),
        (
            lambda: openai.APIConnectionError(
                request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
            ),
            True,
        ),
    ],
)
def test_openai_errors_become_transport_errors(error, retryable):
    llm, _ = make_openai(error())
    with pytest.raises(TransportError) as exc:
        llm.generate([Message.user("hi")])
    assert exc.value.retryable is retryable
    assert exc.value.provider == "openai"


def test_openai_config_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ConfigError):
        OpenAILLMConfig.from_env()


def test_openai_config_from_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", " sk-abc ")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
    monkeypatch.setenv("OPENAI_TEMPERATURE", "0.2")
    cfg = OpenAILLMConfig.from_env()
    assert cfg == OpenAILLMConfig(api_key="sk-abc", model="gpt-4o", temperature=0.2)


def test_openai_config_rejects_bad_temperature(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-abc")
    monkeypatch.setenv("OPENAI_TEMPERATURE", "warm")
    with pytest.raises(ConfigError):
        OpenAILLMConfig.from_env()


class FakeResponse:
    def __init__(self, status_code=200, data=None, text=""):
        self.status_code = status_code
        self._data = data
        self.text = text or json.dumps(data)

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


def patch_ollama(monkeypatch, result):
    sent = []

    def fake_post(url, json=None, timeout=None):
        sent.append({"url": url, "json": json})
        if isinstance(result, BaseException):
            raise result
        return result

    monkeypatch.setattr("tool_chat.providers.llm_ollama.requests.post", fake_post)
    return sent


def make_ollama():
    return OllamaLLM(OllamaLLMConfig(base_url="http://ollama:11434/", model="llama-test"))


def test_ollama_request_encodes_transcript_and_tools(monkeypatch):
    sent = patch_ollama(monkeypatch, FakeResponse(data={"message": {"content": "Sunny!"}}))

    response = make_ollama().generate(_TRANSCRIPT, [WEATHER_TOOL])

    assert response == FinalAnswer(text="Sunny!")
    assert sent[0]["url"] == "http://ollama:11434/api/chat"
    payload = sent[0]["json"]
    assert payload["model"] == "llama-test"
    assert payload["stream"] is False
    assert payload["tools"][0]["function"]["name"] == "get_weather"
    assistant, tool = payload["messages"][2:]
    assert assistant["tool_calls"][0]["function"]["arguments"] == {"location": "Tokyo"}
    assert tool == {"role": "tool", "tool_name": "get_weather", "content": "The weather in Tokyo is sunny."}


def test_ollama_tool_call_arguments_are_serialized(monkeypatch):
    data = {
        "message": {
            "content": "",
            "tool_calls": [{"function": {"name": "get_weather", "arguments": {"location": "Oslo"}}}],
        }
    }
    patch_ollama(monkeypatch, FakeResponse(data=data))

    response = make_ollama().generate([Message.user("Oslo?")], [WEATHER_TOOL])

    assert isinstance(response, ToolCallRequest)
    assert response.name == "get_weather"
    assert json.loads(response.raw_arguments) == {"location": "Oslo"}
    assert response.id


def test_ollama_unreachable_is_retryable(monkeypatch):
    patch_ollama(monkeypatch, requests.ConnectionError("refused"))
    with pytest.raises(TransportError) as exc:
        make_ollama().generate([Message.user("hi")])
    assert exc.value.retryable is True
    assert exc.value.provider == "ollama"


@pytest.mark.parametrize("status,retryable", [(500, True), (404, False)])
def test_ollama_http_errors(monkeypatch, status, retryable):
    patch_ollama(monkeypatch, FakeResponse(status_code=status, data={}, text="nope"))
    with pytest.raises(TransportError) as exc:
        make_ollama().generate([Message.user("hi")])
    assert exc.value.retryable is retryable
    assert exc.value.status_code == status


def test_openai_keeps_assistant_text_with_tool_call():
    calls = [openai_tool_call("call_3", "get_weather", '{"location": "Rome"}')]
    llm, completions = make_openai(openai_response(content="Let me check.", tool_calls=calls))

    response = llm.generate([Message.user("Rome?")], [WEATHER_TOOL])

    assert response.content == "Let me check."
    llm.generate([Message.user("Rome?"), Message.tool_request(response)], [WEATHER_TOOL])
    assert completions.requests[1]["messages"][1]["content"] == "Let me check."


def test_ollama_keeps_assistant_text_with_tool_call(monkeypatch):
    data = {
        "message": {
            "content": "Let me check.",
            "tool_calls": [{"function": {"name": "get_weather", "arguments": {"location": "Rome"}}}],
        }
    }
    sent = patch_ollama(monkeypatch, FakeResponse(data=data))

    response = make_ollama().generate([Message.user("Rome?")], [WEATHER_TOOL])

    assert response.content == "Let me check."
    make_ollama().generate([Message.user("Rome?"), Message.tool_request(response)], [WEATHER_TOOL])
    assert sent[1]["json"]["messages"][1]["content"] == "Let me check."


def test_ollama_replays_malformed_arguments_under_raw(monkeypatch):
    sent = patch_ollama(monkeypatch, FakeResponse(data={"message": {"content": "Sorry."}}))
    call = ToolCallRequest(id="call_1", name="get_weather", raw_arguments='{"location": ')

    make_ollama().generate([Message.user("Tokyo?"), Message.tool_request(call)], [WEATHER_TOOL])

    assistant = sent[0]["json"]["messages"][1]
    assert assistant["tool_calls"][0]["function"]["arguments"] == {"_raw": '{"location": '}
