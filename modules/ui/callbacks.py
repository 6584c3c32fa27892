"""Callback implementations for the Gradio interface."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from modules.pipelines.generation import GenerationOrchestrator, GenerationState, GenerationStatus
from modules.services.history_service import HistoryEntry
from modules.utils.image_utils import ImageResource

PREVIEW_LENGTH = 80

RenderResult = tuple[str, str, List[List[str]]]


def format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")


def history_rows(entries: tuple[HistoryEntry, ...]) -> List[List[str]]:
    """Truncated prompt plus local time for each history entry."""
    rows: List[List[str]] = []
    for entry in entries:
        preview = entry.prompt
        if len(preview) > PREVIEW_LENGTH:
            preview = preview[: PREVIEW_LENGTH - 1].rstrip() + "…"
        rows.append([preview, format_timestamp(entry.timestamp)])
    return rows


def describe_status(state: GenerationState) -> str:
    if state.status is GenerationStatus.LOADING:
        return "Crafting prompt..."
    if state.status is GenerationStatus.ERROR:
        return f"**Error:** {state.error}"
    if state.status is GenerationStatus.SUCCESS:
        return "Prompt ready."
    if state.image_name:
        return f"Ready to generate from `{state.image_name}`."
    return "Upload a PNG, JPG, or WEBP image to begin."


def render(state: GenerationState) -> RenderResult:
    """Project orchestrator state onto (prompt, status, history) outputs."""
    return state.prompt, describe_status(state), history_rows(state.history)


def build_callbacks(orchestrator: GenerationOrchestrator) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions."""

    def on_select_image(file_path: Optional[str]) -> RenderResult:
        if not file_path:
            return render(orchestrator.clear_image())
        return render(orchestrator.select_image(ImageResource.from_path(file_path)))

    async def on_generate() -> RenderResult:
        return render(await orchestrator.generate())

    def on_clear_image() -> RenderResult:
        return render(orchestrator.clear_image())

    def on_select_history(index: Optional[int]) -> RenderResult:
        if index is None or not 0 <= index < len(orchestrator.history.entries):
            return render(orchestrator.state)
        return render(orchestrator.select_history_entry(index))

    def on_clear_history() -> RenderResult:
        return render(orchestrator.clear_history())

    def can_generate() -> bool:
        return orchestrator.state.can_generate

    def preview_path() -> Optional[str]:
        """Path of the image a generate would send; a rejected upload keeps the previous one."""
        image = orchestrator.image
        if image is None or image.path is None:
            return None
        return str(image.path)

    return {
        "on_select_image": on_select_image,
        "on_generate": on_generate,
        "on_clear_image": on_clear_image,
        "on_select_history": on_select_history,
        "on_clear_history": on_clear_history,
        "can_generate": can_generate,
        "preview_path": preview_path,
        "render": lambda: render(orchestrator.state),
    }
