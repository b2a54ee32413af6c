"""Replicate generator tests: error classification and output handling."""

import asyncio
import time
from types import SimpleNamespace

import pytest

from stylegen.services.exceptions import FailureKind, GenerationError
from stylegen.services.image_generation import replicate_client
from stylegen.services.image_generation.replicate_client import (
    ReplicateGenerator,
    classify_error,
    extract_output_url,
)


class TestClassifyError:
    """Provider errors map onto the closed failure taxonomy."""

    @pytest.mark.parametrize(
        "exception, expected",
        [
            (asyncio.TimeoutError(), FailureKind.TIMEOUT),
            (Exception("Request timeout while waiting for prediction"), FailureKind.TIMEOUT),
            (Exception("429 Too Many Requests"), FailureKind.RATE_LIMITED),
            (Exception("503 Service Unavailable"), FailureKind.PROVIDER_ERROR),
            (Exception("401 Unauthorized"), FailureKind.PROVIDER_ERROR),
            (Exception("403 Forbidden"), FailureKind.PROVIDER_ERROR),
            (Exception("Output flagged as sensitive (NSFW)"), FailureKind.INVALID_INPUT),
            (Exception("422 Unprocessable Entity: invalid input"), FailureKind.INVALID_INPUT),
            (ConnectionError("connection reset by peer"), FailureKind.PROVIDER_ERROR),
            (Exception("prediction failed"), FailureKind.PROVIDER_ERROR),
        ],
    )
    def test_classification(self, exception, expected):
        error = classify_error(exception)

        assert isinstance(error, GenerationError)
        assert error.kind == expected

    def test_only_invalid_input_is_not_retryable(self):
        assert classify_error(Exception("content policy violation")).retryable is False
        assert classify_error(Exception("429")).retryable is True


class TestExtractOutputUrl:
    def test_plain_string(self):
        assert extract_output_url("https://replicate.delivery/a.jpg") == (
            "https://replicate.delivery/a.jpg"
        )

    def test_list_of_file_outputs(self):
        output = [SimpleNamespace(url="https://replicate.delivery/b.jpg")]
        assert extract_output_url(output) == "https://replicate.delivery/b.jpg"

    def test_empty_list_is_provider_error(self):
        with pytest.raises(GenerationError) as exc_info:
            extract_output_url([])
        assert exc_info.value.kind == FailureKind.PROVIDER_ERROR


class FakeReplicateClient:
    """Stands in for replicate.Client; behavior set per test."""

    behavior = None
    last_call = None

    def __init__(self, api_token):
        self.api_token = api_token

    def run(self, model, input):
        FakeReplicateClient.last_call = (model, input)
        return FakeReplicateClient.behavior()


@pytest.fixture
def fake_client(monkeypatch):
    monkeypatch.setattr(replicate_client.replicate, "Client", FakeReplicateClient)
    FakeReplicateClient.last_call = None
    return FakeReplicateClient


@pytest.mark.asyncio
async def test_generate_sends_source_and_reference_images(fake_client):
    fake_client.behavior = staticmethod(lambda: ["https://replicate.delivery/out.jpg"])
    generator = ReplicateGenerator(api_token="r8_test", model_version="google/nano-banana")

    url = await generator.generate(
        "https://cdn.example.com/source.jpg",
        "Short layered bob",
        reference_sample_ref="https://cdn.example.com/sample.jpg",
    )

    assert url == "https://replicate.delivery/out.jpg"
    model, payload = fake_client.last_call
    assert model == "google/nano-banana"
    assert payload["image_input"] == [
        "https://cdn.example.com/source.jpg",
        "https://cdn.example.com/sample.jpg",
    ]
    assert payload["prompt"].endswith("Short layered bob")
    assert payload["output_format"] == "jpg"


@pytest.mark.asyncio
async def test_generate_classifies_connection_errors(fake_client):
    def fail():
        raise ConnectionError("connection reset by peer")

    fake_client.behavior = staticmethod(fail)
    generator = ReplicateGenerator(api_token="r8_test")

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("https://cdn.example.com/source.jpg", "Buzz cut")

    assert exc_info.value.kind == FailureKind.PROVIDER_ERROR


@pytest.mark.asyncio
async def test_generate_times_out(fake_client):
    def slow():
        time.sleep(0.2)
        return "https://replicate.delivery/late.jpg"

    fake_client.behavior = staticmethod(slow)
    generator = ReplicateGenerator(api_token="r8_test", timeout_seconds=0.01)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("https://cdn.example.com/source.jpg", "Buzz cut")

    assert exc_info.value.kind == FailureKind.TIMEOUT


@pytest.mark.asyncio
async def test_missing_token_is_retryable_provider_error():
    generator = ReplicateGenerator(api_token="")

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate("https://cdn.example.com/source.jpg", "Buzz cut")

    assert exc_info.value.kind == FailureKind.PROVIDER_ERROR
    assert exc_info.value.retryable is True
