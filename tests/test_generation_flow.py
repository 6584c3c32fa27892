"""GenerationOrchestrator state machine tests."""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx
import pytest

from config.settings import AppConfig
from modules.api.proxy import create_proxy_app
from modules.errors import NetworkError, PersistenceError, ServerError
from modules.pipelines.generation import (
    CANCELLED_MESSAGE,
    MISSING_IMAGE_MESSAGE,
    READ_FAILURE_MESSAGE,
    GenerationOrchestrator,
    GenerationStatus,
)
from modules.optimization.instructions import InstructionTemplate
from modules.services.generation_client import GenerationClient, GenerationResult
from modules.services.history_service import HistoryEntry, HistoryStore
from modules.services.storage_service import MemoryStorage
from modules.utils.image_utils import ImageResource

PHOTO = ImageResource(name="photo.jpg", mime_type="image/jpeg", data=b"jpeg-bytes")


class DummyClient:
    """Stub generation client returning a canned result."""

    def __init__(self, result: Optional[GenerationResult] = None) -> None:
        self.result = result or GenerationResult.success("A golden-hour portrait...")
        self.payloads = []
        self.gate: Optional[asyncio.Event] = None

    async def generate(self, payload):
        self.payloads.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        return self.result


class BrokenStorage(MemoryStorage):
    def set_item(self, key, value):
        raise PersistenceError("quota exceeded")

    def remove_item(self, key):
        raise PersistenceError("remove denied")


def build_orchestrator(client=None, storage=None):
    history = HistoryStore(storage or MemoryStorage())
    history.load()
    ticks = iter(range(1000, 2000))
    return GenerationOrchestrator(client or DummyClient(), history, clock=lambda: next(ticks))


def test_initial_state_is_idle():
    state = build_orchestrator().state

    assert state.status is GenerationStatus.IDLE
    assert state.prompt == ""
    assert state.error is None
    assert not state.can_generate


def test_successful_generation_appends_history():
    client = DummyClient()
    orchestrator = build_orchestrator(client)

    orchestrator.select_image(PHOTO)
    state = asyncio.run(orchestrator.generate())

    assert state.status is GenerationStatus.SUCCESS
    assert state.prompt == "A golden-hour portrait..."
    assert len(state.history) == 1
    assert state.history[0] == HistoryEntry(prompt="A golden-hour portrait...", timestamp=1000)
    assert client.payloads[0].mime_type == "image/jpeg"


def test_generate_without_image_never_calls_client():
    client = DummyClient()
    orchestrator = build_orchestrator(client)

    state = asyncio.run(orchestrator.generate())

    assert state.status is GenerationStatus.ERROR
    assert state.error == MISSING_IMAGE_MESSAGE
    assert client.payloads == []


def test_invalid_media_type_is_rejected_before_codec():
    encoded = []

    async def spy_encoder(resource):  # pragma: no cover - must not run
        encoded.append(resource)
        raise AssertionError("codec should not run")

    orchestrator = build_orchestrator()
    orchestrator.encoder = spy_encoder

    state = orchestrator.select_image(ImageResource(name="doc.png", mime_type="application/pdf", data=b"%PDF"))

    assert state.status is GenerationStatus.ERROR
    assert "Invalid file type" in state.error
    assert state.image_name is None
    assert state.history == ()

    state = asyncio.run(orchestrator.generate())
    assert state.error == MISSING_IMAGE_MESSAGE
    assert encoded == []


def test_selecting_valid_image_resets_prompt_and_error():
    orchestrator = build_orchestrator()
    asyncio.run(orchestrator.generate())

    state = orchestrator.select_image(PHOTO)

    assert state.status is GenerationStatus.IDLE
    assert state.error is None
    assert state.image_name == "photo.jpg"
    assert state.can_generate


def test_server_failure_reaches_error_without_history():
    error = ServerError("API_KEY environment variable is not set on the server.", status_code=500)
    orchestrator = build_orchestrator(DummyClient(GenerationResult.failure(error)))
    orchestrator.select_image(PHOTO)

    state = asyncio.run(orchestrator.generate())

    assert state.status is GenerationStatus.ERROR
    assert "API_KEY environment variable is not set" in state.error
    assert state.error.startswith("Failed to generate prompt:")
    assert state.history == ()
    assert state.image_name == "photo.jpg"


def test_network_failure_reaches_error():
    orchestrator = build_orchestrator(DummyClient(GenerationResult.failure(NetworkError("unreachable"))))
    orchestrator.select_image(PHOTO)

    state = asyncio.run(orchestrator.generate())

    assert state.status is GenerationStatus.ERROR
    assert "unreachable" in state.error


def test_read_failure_discards_image(tmp_path):
    client = DummyClient()
    orchestrator = build_orchestrator(client)
    orchestrator.select_image(ImageResource.from_path(tmp_path / "missing.png"))

    state = asyncio.run(orchestrator.generate())

    assert state.status is GenerationStatus.ERROR
    assert state.error == READ_FAILURE_MESSAGE
    assert state.image_name is None
    assert client.payloads == []


def test_second_trigger_while_loading_is_noop():
    client = DummyClient()
    orchestrator = build_orchestrator(client)
    orchestrator.select_image(PHOTO)

    async def scenario():
        client.gate = asyncio.Event()
        first = asyncio.create_task(orchestrator.generate())
        while not client.payloads:
            await asyncio.sleep(0)
        assert orchestrator.state.status is GenerationStatus.LOADING
        assert not orchestrator.state.can_generate

        second = await orchestrator.generate()
        assert second.status is GenerationStatus.LOADING

        client.gate.set()
        return await first

    state = asyncio.run(scenario())

    assert len(client.payloads) == 1
    assert len(state.history) == 1
    assert state.status is GenerationStatus.SUCCESS


def test_selection_and_clear_are_ignored_while_loading():
    client = DummyClient()
    orchestrator = build_orchestrator(client)
    orchestrator.history.append(HistoryEntry(prompt="older", timestamp=1))
    orchestrator.select_image(PHOTO)

    async def scenario():
        client.gate = asyncio.Event()
        task = asyncio.create_task(orchestrator.generate())
        while not client.payloads:
            await asyncio.sleep(0)
        assert orchestrator.clear_image().status is GenerationStatus.LOADING
        assert orchestrator.select_history_entry(0).status is GenerationStatus.LOADING
        client.gate.set()
        return await task

    state = asyncio.run(scenario())

    assert state.status is GenerationStatus.SUCCESS
    assert state.prompt == "A golden-hour portrait..."


def test_success_survives_history_persistence_failure():
    orchestrator = build_orchestrator(storage=BrokenStorage())
    orchestrator.select_image(PHOTO)

    state = asyncio.run(orchestrator.generate())

    assert state.status is GenerationStatus.SUCCESS
    assert len(state.history) == 1


def test_clear_image_returns_to_idle_and_keeps_history():
    orchestrator = build_orchestrator()
    orchestrator.select_image(PHOTO)
    asyncio.run(orchestrator.generate())

    state = orchestrator.clear_image()

    assert state.status is GenerationStatus.IDLE
    assert state.prompt == ""
    assert state.image_name is None
    assert len(state.history) == 1


def test_select_history_entry_shows_prompt_without_pipeline():
    client = DummyClient()
    orchestrator = build_orchestrator(client)
    orchestrator.history.append(HistoryEntry(prompt="first", timestamp=1))
    orchestrator.history.append(HistoryEntry(prompt="second", timestamp=2))
    before = orchestrator.state.history

    state = orchestrator.select_history_entry(1)

    assert state.status is GenerationStatus.SUCCESS
    assert state.prompt == "first"
    assert state.history == before
    assert client.payloads == []


def test_select_history_entry_out_of_range():
    orchestrator = build_orchestrator()

    with pytest.raises(IndexError):
        orchestrator.select_history_entry(3)


def test_clear_history_with_failing_storage():
    orchestrator = build_orchestrator(storage=BrokenStorage())
    orchestrator.select_image(PHOTO)
    asyncio.run(orchestrator.generate())

    state = orchestrator.clear_history()

    assert state.history == ()


def test_unexpected_client_exception_sets_error_and_propagates():
    class ExplodingClient:
        async def generate(self, payload):
            raise RuntimeError("bug")

    orchestrator = build_orchestrator(ExplodingClient())
    orchestrator.select_image(PHOTO)

    with pytest.raises(RuntimeError):
        asyncio.run(orchestrator.generate())
    assert orchestrator.state.status is GenerationStatus.ERROR


def _proxy_backed_orchestrator(credential, reply="  A golden-hour portrait...  "):
    def factory(api_key):
        async def _backend(request):
            return reply

        return _backend

    app = create_proxy_app(
        AppConfig(),
        template=InstructionTemplate(version="test", system_instruction="S", user_instruction="U"),
        backend_factory=factory,
        credential_loader=lambda: credential,
    )
    client = GenerationClient("http://proxy.test", transport=httpx.ASGITransport(app=app))
    return build_orchestrator(client)


def test_end_to_end_through_proxy():
    orchestrator = _proxy_backed_orchestrator("secret")
    orchestrator.select_image(PHOTO)

    state = asyncio.run(orchestrator.generate())

    assert state.status is GenerationStatus.SUCCESS
    assert state.prompt == "A golden-hour portrait..."
    assert state.history[0].prompt == state.prompt


def test_end_to_end_missing_credential():
    orchestrator = _proxy_backed_orchestrator(None)
    orchestrator.select_image(PHOTO)

    state = asyncio.run(orchestrator.generate())

    assert state.status is GenerationStatus.ERROR
    assert "API_KEY environment variable is not set on the server." in state.error
    assert state.history == ()


def test_cancelled_generation_does_not_stay_loading():
    client = DummyClient()
    orchestrator = build_orchestrator(client)
    orchestrator.select_image(PHOTO)

    async def scenario():
        client.gate = asyncio.Event()
        task = asyncio.create_task(orchestrator.generate())
        while not client.payloads:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    state = orchestrator.state
    assert state.status is GenerationStatus.ERROR
    assert state.error == CANCELLED_MESSAGE
    assert state.history == ()
    assert state.can_generate
    assert orchestrator.clear_image().status is GenerationStatus.IDLE


def test_generation_can_rerun_after_cancellation():
    client = DummyClient()
    orchestrator = build_orchestrator(client)
    orchestrator.select_image(PHOTO)

    async def cancel_first_attempt():
        client.gate = asyncio.Event()
        task = asyncio.create_task(orchestrator.generate())
        while not client.payloads:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(cancel_first_attempt())
    client.gate = None
    state = asyncio.run(orchestrator.generate())

    assert state.status is GenerationStatus.SUCCESS
    assert len(client.payloads) == 2
    assert len(state.history) == 1
