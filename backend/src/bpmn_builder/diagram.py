"""Diagram surface contract and the panel that drives it.

The surface itself (a BPMN modeler widget) is external. The panel owns one
surface instance at a time, recreating it whenever a new document is loaded,
and turns toolbar actions into surface calls plus user notifications.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from bpmn_builder.notifications import Notifier

logger = logging.getLogger(__name__)

ZOOM_STEP = 1.2
DOWNLOAD_FILENAME = "workflow.bpmn"


class DiagramMode(str, Enum):
    """Interaction mode of the surface."""

    VIEW = "view"
    EDIT = "edit"


class DiagramSurface(Protocol):
    """Capabilities the core needs from a diagram widget."""

    def import_xml(self, xml: str) -> None: ...

    def save_xml(self, format: bool = True) -> str: ...

    def get_zoom(self) -> float: ...

    def set_zoom(self, level: float) -> None: ...

    def fit_viewport(self) -> None: ...

    def undo(self) -> None: ...

    def redo(self) -> None: ...

    def can_undo(self) -> bool: ...

    def can_redo(self) -> bool: ...

    def set_mode(self, mode: DiagramMode) -> None: ...

    def destroy(self) -> None: ...


SurfaceFactory = Callable[[], DiagramSurface]
ChangeCallback = Callable[[str], None]


class DiagramPanel:
    """Toolbar logic around a diagram surface."""

    def __init__(
        self,
        surface_factory: SurfaceFactory,
        notifier: Notifier | None = None,
        on_change: ChangeCallback | None = None,
    ):
        """Initialize the panel.

        Args:
            surface_factory: Creates a fresh surface for each loaded document
            notifier: Receives success and error notifications
            on_change: Called with the edited XML when edits are saved

        """
        self.surface_factory = surface_factory
        self.notifier = notifier or Notifier()
        self.on_change = on_change
        self.surface: DiagramSurface | None = None
        self.xml: str | None = None
        self.mode = DiagramMode.VIEW

    def load(self, xml: str) -> bool:
        """Show a document on a newly created surface.

        Returns:
            True if the document was imported

        """
        if not xml:
            self.destroy()
            self.xml = None
            return False

        self.destroy()
        self.xml = xml
        try:
            self.surface = self.surface_factory()
            self.surface.import_xml(xml)
            self.surface.set_mode(self.mode)
            self.surface.fit_viewport()
            return True
        except Exception as e:
            logger.error(f"Failed to load BPMN: {e}")
            self.notifier.error("Failed to render BPMN diagram")
            return False

    def destroy(self) -> None:
        """Tear down the current surface, if any."""
        if self.surface is not None:
            surface, self.surface = self.surface, None
            surface.destroy()

    def zoom_in(self) -> None:
        if self.surface:
            self.surface.set_zoom(self.surface.get_zoom() * ZOOM_STEP)

    def zoom_out(self) -> None:
        if self.surface:
            self.surface.set_zoom(self.surface.get_zoom() / ZOOM_STEP)

    def fit_viewport(self) -> None:
        if self.surface:
            self.surface.fit_viewport()

    def can_undo(self) -> bool:
        return bool(self.surface and self.surface.can_undo())

    def can_redo(self) -> bool:
        return bool(self.surface and self.surface.can_redo())

    def undo(self) -> None:
        if self.can_undo():
            self.surface.undo()

    def redo(self) -> None:
        if self.can_redo():
            self.surface.redo()

    @property
    def is_editing(self) -> bool:
        return self.mode == DiagramMode.EDIT

    def toggle_edit_mode(self) -> DiagramMode:
        """Switch between view and edit mode, saving edits when leaving edit mode."""
        if self.is_editing and self.surface and self.on_change:
            try:
                updated_xml = self.surface.save_xml(format=True)
                self.on_change(updated_xml)
                self.notifier.success("Changes saved")
            except Exception as e:
                logger.error(f"Failed to save changes: {e}")
                self.notifier.error("Failed to save changes")

        self.mode = DiagramMode.VIEW if self.is_editing else DiagramMode.EDIT
        if self.surface:
            self.surface.set_mode(self.mode)
        return self.mode

    def download(self, directory: Path) -> Path | None:
        """Export the current diagram as `workflow.bpmn` in a directory.

        Returns:
            Path of the written file, or None if nothing was exported

        """
        if not self.surface:
            return None

        try:
            exported_xml = self.surface.save_xml(format=True)
            directory = Path(directory)
            directory.mkdir(parents=True, exist_ok=True)
            path = directory / DOWNLOAD_FILENAME
            path.write_text(exported_xml, encoding="utf-8")
        except Exception as e:
            logger.error(f"Failed to export BPMN: {e}")
            self.notifier.error("Failed to export BPMN file")
            return None

        self.notifier.success("BPMN file downloaded")
        return path
