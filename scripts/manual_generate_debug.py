"""One-off script for debugging a single generation against a running proxy."""

import asyncio
import sys
from pathlib import Path

from config.settings import load_config
from modules.pipelines.generation import GenerationOrchestrator
from modules.services.generation_client import GenerationClient
from modules.services.history_service import HistoryStore
from modules.services.storage_service import MemoryStorage
from modules.utils.image_utils import ImageResource
from modules.utils.logging import setup_logging


async def run(image_path: Path) -> None:
    config = load_config()
    setup_logging(config)

    # History stays in memory so debugging runs do not touch the real log.
    history = HistoryStore(MemoryStorage())
    client = GenerationClient(config.resolved_proxy_url(), timeout=config.request_timeout)
    orchestrator = GenerationOrchestrator(client, history)

    state = orchestrator.select_image(ImageResource.from_path(image_path))
    print("After select:", state.status.value, state.error or "")

    state = await orchestrator.generate()
    print("Status:", state.status.value)
    if state.error:
        print("Error:", state.error)
    else:
        print("Prompt:\n", state.prompt)


def main() -> None:
    if len(sys.argv) != 2:
        print("usage: python -m scripts.manual_generate_debug <image-path>")
        raise SystemExit(2)
    asyncio.run(run(Path(sys.argv[1])))


if __name__ == "__main__":
    main()
