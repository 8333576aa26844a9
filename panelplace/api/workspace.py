"""
Workspace Context

Everything one workspace needs, wired together: configuration, layout
store, drag history, commit throttle, the two session controllers and
the multi-panel resizer. Build one per workspace and close() it when
the workspace goes away; independent workspaces share nothing.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..config import LayoutConfig, load_config
from ..io.serializer import ImportResult, export_layout, import_layout
from ..layout.abstraction import Panel, Size
from ..placement.bounds import constrain_position, constrain_size
from ..placement.optimizer import optimize_layout
from ..validation.layout_check import validate_layout
from .drag import DragController
from .group_resize import GroupResizer
from .history import DragHistory, HistoryEntry
from .resize import ResizeController
from .store import CommitResult, LayoutStore
from .throttle import Clock, CommitThrottle

logger = logging.getLogger(__name__)


class Workspace:
    """
    Per-workspace context passed to every controller.

    Usage:
        ws = Workspace(Size(1200, 800))
        ws.store.add_panel(Panel("notes", position=Position(0, 0)))
        ws.drag.start("notes")
        ws.drag.move(Position(40, 0))
        ws.drag.end()
        ws.undo_last_drag()
    """

    def __init__(
        self,
        container_size: Optional[Size] = None,
        config: Optional[LayoutConfig] = None,
        clock: Clock = time.monotonic,
    ):
        self.config = config or LayoutConfig()
        self.clock = clock
        self.store = LayoutStore(container_size or self.config.container_size, self.config)
        self.history = DragHistory(self.config.history_depth)
        self.commit_throttle = CommitThrottle(self.store, self.config.commit_throttle_ms, clock)
        self.drag = DragController(self)
        self.resize = ResizeController(self)
        self.group_resize = GroupResizer(self)

    @classmethod
    def from_config_file(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        container_size: Optional[Size] = None,
        clock: Clock = time.monotonic,
    ) -> "Workspace":
        return cls(container_size, load_config(config_path), clock)

    @property
    def container_size(self) -> Size:
        return self.store.container_size

    def poll(self) -> Optional[CommitResult]:
        """
        Deliver a held-back drag preview and write deferred commits whose
        throttle interval has passed.
        """
        self.drag.poll_preview()
        return self.commit_throttle.poll()

    def flush(self) -> Optional[CommitResult]:
        return self.commit_throttle.flush()

    def undo_last_drag(self) -> Optional[HistoryEntry]:
        return self.drag.undo()

    def cancel_sessions(self) -> bool:
        """Cancel any drag or resize in progress. True if something was cancelled."""
        cancelled_drag = self.drag.cancel()
        cancelled_resize = self.resize.cancel()
        return cancelled_drag or cancelled_resize

    def end_sessions(self) -> Optional[CommitResult]:
        """Commit any drag or resize in progress, then write deferred commits."""
        if self.drag.is_active:
            self.drag.end()
        if self.resize.is_active:
            self.resize.end()
        return self.flush()

    def export_layout(self, name: str = "", description: str = "") -> Dict[str, Any]:
        """Snapshot of the committed layout (deferred commits are written first)."""
        self.flush()
        return export_layout(self.store.panels, name, description)

    def import_layout(self, data: Union[str, Dict[str, Any]]) -> ImportResult:
        """
        Replace the layout with a snapshot.

        Nothing changes unless the whole snapshot is valid. Imported panels
        are fitted to their size limits and the container, panels that
        overlap are moved apart, and the result must pass validate_layout
        before it reaches the store. History is cleared.
        """
        result = import_layout(data)
        if not result.success:
            logger.warning("Import rejected: %s", "; ".join(result.errors))
            return result

        panels = optimize_layout(
            [self._fit_to_container(p) for p in result.panels],
            grid_size=self.config.grid_size,
            minimize_overlaps=True,
            container_size=self.container_size,
            gap=self.config.min_gap,
        )
        check = validate_layout(panels, self.container_size, gap=self.config.min_gap)
        if not check.valid:
            logger.warning("Import rejected: %s", "; ".join(check.errors))
            return ImportResult(errors=list(check.errors), version=result.version)

        self.cancel_sessions()
        self.commit_throttle.discard()
        self.store.replace_all(panels)
        self.history.clear()
        result.panels = self.store.panels
        return result

    def _fit_to_container(self, panel: Panel) -> Panel:
        fitted = panel.copy()
        limits = fitted.constraints
        fitted.size = constrain_size(fitted.size, limits.min_size, limits.max_size,
                                     self.container_size)
        fitted.position = constrain_position(fitted.position, fitted.size, self.container_size)
        if fitted.size != panel.size or fitted.position != panel.position:
            logger.info("Import: fitted %s to %gx%g at (%g, %g)", panel.id,
                        fitted.size.width, fitted.size.height,
                        fitted.position.x, fitted.position.y)
        return fitted

    def close(self):
        """Tear down: cancel sessions, write deferred commits, drop subscribers."""
        self.cancel_sessions()
        self.group_resize.clear()
        self.flush()
        self.store.clear_subscribers()
