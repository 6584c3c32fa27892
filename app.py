"""Application entry point for the ProVision Prompt Crafter."""

from __future__ import annotations

from typing import Optional

import gradio as gr
import uvicorn

from config.settings import load_config
from modules.api.proxy import create_proxy_app
from modules.ui.layout import build_app
from modules.utils.logging import setup_logging


def main(config_path: Optional[str] = None) -> None:
    """Serve the inference proxy and the Gradio interface on one server."""
    config = load_config(config_path)
    logger = setup_logging(config)

    server = create_proxy_app(config)
    demo = build_app(config)
    demo.queue()
    server = gr.mount_gradio_app(server, demo, path="/")

    logger.info("Serving on http://%s:%s (model=%s)", config.host, config.port, config.gemini_model_id)
    uvicorn.run(server, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
