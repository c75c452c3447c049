from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.services.llm import StreamDelta


class FakeAsyncStream:
    """Stands in for openai's AsyncStream: async-iterable chunks plus close()."""

    def __init__(self, chunks, error=None):
        self._chunks = list(chunks)
        self._error = error
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error


def make_completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_chunk(reasoning=None, content=None):
    delta = SimpleNamespace(reasoning_content=reasoning, content=content)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


# Fixture factory building an OpenAI-like client with canned responses
@pytest.fixture
def make_openai_client():
    def _make_openai_client(completion=None, chunks=(), stream_error=None, create_error=None):
        stream = FakeAsyncStream(chunks, error=stream_error)

        async def _create(**kwargs):
            if create_error is not None:
                raise create_error
            if kwargs.get("stream"):
                return stream
            return completion

        client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(side_effect=_create))))
        client.stream = stream
        return client

    return _make_openai_client


@pytest.fixture
def make_chunk_factory():
    return make_chunk


@pytest.fixture
def make_completion_factory():
    return make_completion


class FakeUpstream:
    """In-memory UpstreamService replacement recording every stage call."""

    def __init__(self, brief="REFINED BRIEF", deltas=(), refine_error=None, stream_error=None):
        self.brief = brief
        self.deltas = list(deltas)
        self.refine_error = refine_error
        self.stream_error = stream_error
        self.complete_calls = []
        self.stream_calls = []
        self.stream_closed = False
        self.deltas_sent = 0

    async def complete(self, request_id, model, system_prompt, user_prompt, max_tokens=None):
        self.complete_calls.append({"model": model, "system_prompt": system_prompt, "user_prompt": user_prompt})
        if self.refine_error is not None:
            raise self.refine_error
        return self.brief

    def stream(self, request_id, model, system_prompt, user_prompt):
        self.stream_calls.append({"model": model, "system_prompt": system_prompt, "user_prompt": user_prompt})
        return self._stream()

    async def _stream(self):
        try:
            for delta in self.deltas:
                self.deltas_sent += 1
                yield delta
            if self.stream_error is not None:
                raise self.stream_error
        finally:
            self.stream_closed = True


@pytest.fixture
def make_fake_upstream():
    def _make_fake_upstream(**kwargs):
        return FakeUpstream(**kwargs)

    return _make_fake_upstream


@pytest.fixture
def coffee_deltas():
    return [
        StreamDelta("reasoning", "Thinking"),
        StreamDelta("reasoning", " about coffee"),
        StreamDelta("content", "```html\n<!DOCTYPE html"),
        StreamDelta("content", "><html></html>```"),
    ]
