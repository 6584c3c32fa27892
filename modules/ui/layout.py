"""Gradio layout for the prompt crafter."""

from __future__ import annotations

from typing import Any

import gradio as gr

from config.settings import AppConfig
from modules.pipelines.generation import GenerationOrchestrator
from modules.services.generation_client import GenerationClient
from modules.services.history_service import HistoryStore
from modules.services.storage_service import FileStorage
from modules.ui.callbacks import build_callbacks


def build_orchestrator(config: AppConfig) -> GenerationOrchestrator:
    """Wire client and history store; history is loaded once here."""
    storage = FileStorage(config.storage_dir, quota_bytes=config.storage_quota_bytes)
    history = HistoryStore(storage, key=config.history_key)
    history.load()
    client = GenerationClient(config.resolved_proxy_url(), timeout=config.request_timeout)
    return GenerationOrchestrator(client, history)


def build_app(config: AppConfig, orchestrator: GenerationOrchestrator | None = None) -> Any:
    """Compose and return the Gradio application."""
    orchestrator = orchestrator or build_orchestrator(config)
    callbacks_map = build_callbacks(orchestrator)
    prompt_value, status_value, history_value = callbacks_map["render"]()

    with gr.Blocks(title="ProVision Prompt Crafter") as demo:
        gr.Markdown("## ProVision Prompt Crafter")
        gr.Markdown("Upload an image to generate a master-level photographic prompt.")

        with gr.Row():
            with gr.Column():
                image_file = gr.File(
                    label="Image (PNG, JPG, or WEBP)",
                    file_types=[".png", ".jpg", ".jpeg", ".webp"],
                    type="filepath",
                )
                preview = gr.Image(label="Preview", interactive=False)
                with gr.Row():
                    generate_btn = gr.Button(
                        "Generate Master Prompt",
                        variant="primary",
                        interactive=callbacks_map["can_generate"](),
                    )
                    clear_btn = gr.Button("Clear")

            with gr.Column():
                status = gr.Markdown(status_value)
                prompt = gr.Textbox(
                    label="Generated prompt",
                    value=prompt_value,
                    lines=10,
                    interactive=False,
                    show_copy_button=True,
                )
                history = gr.Dataframe(
                    headers=["Prompt", "Created"],
                    value=history_value,
                    label="Prompt History",
                    interactive=False,
                )
                clear_history_btn = gr.Button("Clear history", size="sm")

        outputs = [prompt, status, history]

        def _button_states():
            enabled = callbacks_map["can_generate"]()
            return gr.Button(interactive=enabled), gr.Button(interactive=True)

        def _lock_buttons():
            return gr.Button(value="Crafting Prompt...", interactive=False), gr.Button(interactive=False)

        def _unlock_buttons():
            enabled = callbacks_map["can_generate"]()
            return gr.Button(value="Generate Master Prompt", interactive=enabled), gr.Button(interactive=True)

        def _on_file(file_path):
            rendered = callbacks_map["on_select_image"](file_path)
            return (*rendered, callbacks_map["preview_path"]())

        def _on_history_select(evt: gr.SelectData):
            row = evt.index[0] if isinstance(evt.index, (list, tuple)) else evt.index
            return callbacks_map["on_select_history"](row)

        image_file.change(
            fn=_on_file,
            inputs=[image_file],
            outputs=[*outputs, preview],
        ).then(fn=_button_states, outputs=[generate_btn, clear_btn])

        generate_btn.click(
            fn=_lock_buttons,
            outputs=[generate_btn, clear_btn],
            queue=False,
        ).then(
            fn=callbacks_map["on_generate"],
            outputs=outputs,
            concurrency_limit=1,
        ).then(fn=_unlock_buttons, outputs=[generate_btn, clear_btn])

        clear_btn.click(
            fn=callbacks_map["on_clear_image"],
            outputs=outputs,
        ).then(
            fn=lambda: (None, None),
            outputs=[image_file, preview],
        ).then(fn=_button_states, outputs=[generate_btn, clear_btn])

        history.select(fn=_on_history_select, outputs=outputs)
        clear_history_btn.click(fn=callbacks_map["on_clear_history"], outputs=outputs)

    return demo
