"""
Atomic Layout Actions

One-shot layout operations for keyboard shortcuts, menus and scripts. Every
action writes through the store's validated commits and reports what it
did as an ActionResult instead of raising.

Usage:
    from panelplace.api.actions import LayoutActions
    actions = LayoutActions(workspace)
    actions.align_panels(["notes", "calendar"], axis="x", anchor="first")
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional

from ..errors import PanelNotFoundError, PlacementError
from ..layout.abstraction import Modifiers, Panel, Position, Size
from ..layout.grid import align_to_grid
from ..placement.bounds import constrain_position, find_optimal_position
from ..placement.constraints import enforce_constraints
from .workspace import Workspace

logger = logging.getLogger(__name__)

# Keyboard nudge distances
MOVEMENT_STEP = {"small": 1.0, "medium": 10.0, "large": 50.0}
RESIZE_STEP = {"small": 5.0, "medium": 20.0, "large": 100.0}

ARROW_DELTAS = {
    "left": (-1, 0),
    "right": (1, 0),
    "up": (0, -1),
    "down": (0, 1),
}


@dataclass
class ActionResult:
    """Result of an atomic action."""
    success: bool
    message: str
    modified_ids: List[str]


class LayoutActions:
    """Keyboard and scripted operations on a workspace."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        self.store = workspace.store

    def _commit_moves(self, updates: Dict[str, Position], done: str) -> ActionResult:
        if not updates:
            return ActionResult(True, "No panels needed to move", [])
        result = self.store.commit_positions(updates)
        if result.rejected:
            message = f"{done} {len(result.accepted)} panels, rejected {len(result.rejected)}"
            return ActionResult(bool(result.accepted), message, result.accepted)
        return ActionResult(True, f"{done} {len(result.accepted)} panels", result.accepted)

    def nudge_selected(self, dx: float, dy: float) -> ActionResult:
        """Move every selected panel by a delta, clamped to the workspace."""
        selected = self.store.selected_ids
        if not selected:
            return ActionResult(False, "No panels selected", [])

        updates = {}
        for pid in selected:
            panel = self.store.get_panel(pid)
            target = constrain_position(panel.position.offset(dx, dy), panel.size,
                                        self.store.container)
            if target != panel.position:
                updates[pid] = target
        return self._commit_moves(updates, "Nudged")

    def resize_selected(self, dw: float, dh: float) -> ActionResult:
        """Grow or shrink every selected panel, keeping its top-left corner."""
        selected = self.store.selected_ids
        if not selected:
            return ActionResult(False, "No panels selected", [])

        modified = []
        rejected = []
        for pid in selected:
            panel = self.store.get_panel(pid)
            requested = Size(panel.size.width + dw, panel.size.height + dh)
            size = enforce_constraints(requested, panel.constraints,
                                       original_size=panel.size).size
            if size == panel.size:
                continue
            result = self.store.commit_geometry(pid, panel.position, size)
            if result.success:
                modified.append(pid)
            else:
                rejected.append(pid)

        if rejected:
            return ActionResult(bool(modified),
                                f"Resized {len(modified)} panels, rejected {len(rejected)}",
                                modified)
        return ActionResult(True, f"Resized {len(modified)} panels", modified)

    def align_all_to_grid(self) -> ActionResult:
        """Snap every panel to the grid. Panels that cannot snap stay put."""
        container = self.store.container
        panels = {p.id: p for p in self.store.panels}
        updates = {}
        for pid, target in align_to_grid(panels.values(), self.workspace.config.grid_size).items():
            target = constrain_position(target, panels[pid].size, container)
            if target != panels[pid].position:
                updates[pid] = target
        return self._commit_moves(updates, "Aligned")

    def align_panels(
        self,
        panel_ids: List[str],
        axis: Literal["x", "y"] = "x",
        anchor: Literal["first", "last", "center"] = "first",
    ) -> ActionResult:
        """
        Line panels up along an axis.

        axis="x" gives the panels a common left edge, axis="y" a common top
        edge. The reference is the first or last panel listed, or (for
        "center") the panels' common center line.
        """
        if len(panel_ids) < 2:
            return ActionResult(False, "Need at least 2 panels to align", [])
        try:
            panels = [self.store.get_panel(pid) for pid in panel_ids]
        except PanelNotFoundError as e:
            return ActionResult(False, str(e), [])

        updates = {}
        if anchor == "center":
            if axis == "x":
                center = sum(p.get_bounds().center.x for p in panels) / len(panels)
                targets = {p.id: Position(center - p.size.width / 2, p.position.y) for p in panels}
            else:
                center = sum(p.get_bounds().center.y for p in panels) / len(panels)
                targets = {p.id: Position(p.position.x, center - p.size.height / 2) for p in panels}
        else:
            reference = panels[0] if anchor == "first" else panels[-1]
            if axis == "x":
                targets = {p.id: Position(reference.position.x, p.position.y) for p in panels}
            else:
                targets = {p.id: Position(p.position.x, reference.position.y) for p in panels}

        for panel in panels:
            target = targets[panel.id]
            if target != panel.position:
                updates[panel.id] = target
        return self._commit_moves(updates, "Aligned")

    def center_panel(self, panel_id: str) -> ActionResult:
        """Move a panel to the middle of the workspace."""
        try:
            panel = self.store.get_panel(panel_id)
        except PanelNotFoundError as e:
            return ActionResult(False, str(e), [])
        container = self.store.container
        target = constrain_position(
            Position(container.x + (container.width - panel.size.width) / 2,
                     container.y + (container.height - panel.size.height) / 2),
            panel.size, container,
        )
        result = self.store.commit_positions({panel_id: target})
        if not result.success:
            return ActionResult(False, f"Cannot center {panel_id}: {'; '.join(result.messages)}", [])
        return ActionResult(True, f"Centered {panel_id}", [panel_id])

    def _unique_id(self, base: str) -> str:
        candidate = f"{base}-copy"
        counter = 2
        while candidate in self.store:
            candidate = f"{base}-copy-{counter}"
            counter += 1
        return candidate

    def duplicate_panel(self, panel_id: str, new_id: Optional[str] = None) -> ActionResult:
        """Copy a panel next to the original."""
        try:
            original = self.store.get_panel(panel_id)
        except PanelNotFoundError as e:
            return ActionResult(False, str(e), [])

        offset = self.workspace.config.stack_offset
        copy = original.copy()
        copy.id = new_id or self._unique_id(panel_id)
        if copy.id in self.store:
            return ActionResult(False, f"Panel {copy.id} already exists", [])
        copy.selected = False
        copy.position = original.position.offset(offset, offset)
        try:
            stored = self.store.add_panel(copy)
        except PlacementError as e:
            return ActionResult(False, str(e), [])
        return ActionResult(True, f"Duplicated {panel_id} as {stored.id}", [stored.id])

    def remove_selected(self) -> ActionResult:
        selected = self.store.selected_ids
        if not selected:
            return ActionResult(False, "No panels selected", [])
        for pid in selected:
            self.store.remove_panel(pid)
        return ActionResult(True, f"Removed {len(selected)} panels", selected)

    def auto_place(self, panel: Panel) -> ActionResult:
        """Add a panel at the first free slot of the workspace."""
        if panel.id in self.store:
            return ActionResult(False, f"Panel {panel.id} already exists", [])
        config = self.workspace.config
        placed = panel.copy()
        placed.position = find_optimal_position(
            placed.size,
            self.store.panels,
            self.store.container,
            step=config.grid_size,
            gap=config.min_gap,
            stack_offset=config.stack_offset,
        )
        try:
            stored = self.store.add_panel(placed)
        except PlacementError as e:
            return ActionResult(False, str(e), [])
        return ActionResult(True, f"Placed {stored.id} at ({stored.position.x:g}, "
                                  f"{stored.position.y:g})", [stored.id])

    def bring_to_front(self, panel_id: str) -> ActionResult:
        try:
            z = self.store.bring_to_front(panel_id)
        except PanelNotFoundError as e:
            return ActionResult(False, str(e), [])
        return ActionResult(True, f"{panel_id} brought to front (z={z})", [panel_id])

    def undo_last_drag(self) -> ActionResult:
        entry = self.workspace.undo_last_drag()
        if entry is None:
            return ActionResult(False, "Nothing to undo", [])
        return ActionResult(True, f"Moved {entry.panel_id} back to "
                                  f"({entry.from_position.x:g}, {entry.from_position.y:g})",
                            [entry.panel_id])

    def handle_key(self, key: str, modifiers: Optional[Modifiers] = None) -> ActionResult:
        """
        Dispatch a keyboard shortcut.

        Arrow keys nudge the selection: 1 unit plain or with ctrl+shift,
        10 with ctrl, 50 with ctrl+alt. ctrl+shift+alt+arrow resizes by 20.
        Escape cancels the active drag or resize, Delete removes the
        selection, ctrl+z undoes the last drag, ctrl+d duplicates the
        primary selection and ctrl+a selects everything.
        """
        mods = modifiers or Modifiers()
        name = key.lower()
        if name.startswith("arrow"):
            name = name[len("arrow"):]
        ctrl = mods.ctrl or mods.meta

        if name in ("escape", "esc"):
            if self.workspace.cancel_sessions():
                return ActionResult(True, "Cancelled", [])
            return ActionResult(False, "No active session", [])

        if name in ARROW_DELTAS:
            ux, uy = ARROW_DELTAS[name]
            if ctrl and mods.shift and mods.alt:
                step = RESIZE_STEP["medium"]
                return self.resize_selected(ux * step, uy * step)
            if ctrl and mods.alt:
                step = MOVEMENT_STEP["large"]
            elif ctrl and not mods.shift:
                step = MOVEMENT_STEP["medium"]
            else:
                step = MOVEMENT_STEP["small"]
            return self.nudge_selected(ux * step, uy * step)

        if name in ("delete", "backspace"):
            return self.remove_selected()

        if ctrl and name == "z":
            return self.undo_last_drag()

        if ctrl and name == "d":
            selected = self.store.selected_ids
            if not selected:
                return ActionResult(False, "No panels selected", [])
            return self.duplicate_panel(selected[0])

        if ctrl and name == "a":
            self.store.select_all()
            return ActionResult(True, "Selected all panels", self.store.selected_ids)

        logger.debug("Unhandled key %s (ctrl=%s shift=%s alt=%s)",
                     key, ctrl, mods.shift, mods.alt)
        return ActionResult(False, f"Unhandled key: {key}", [])
