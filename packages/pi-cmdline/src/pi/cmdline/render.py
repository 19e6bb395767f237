"""The rendering collaborator's interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pi.cmdline.completions import RenderProjection


@runtime_checkable
class Renderer(Protocol):
    """Receives every fresh projection; returns nothing to the core.

    Layout, styling and scrolling are the renderer's business. The session
    only promises that each projection it hands over is current.
    """

    def render(self, projection: RenderProjection) -> None: ...
