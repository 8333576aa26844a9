"""
Layout Snapshot Export / Import

Versioned snapshot of a workspace layout, written as JSON (or YAML for
.yaml/.yml files).

Format:
```json
{
  "version": "1.0.0",
  "name": "Morning dashboard",
  "description": "Calendar left, notes right",
  "panels": [
    {
      "id": "calendar",
      "component": "calendar",
      "position": {"x": 0, "y": 0},
      "size": {"width": 400, "height": 300},
      "zIndex": 1,
      "visible": true,
      "constraints": {"minSize": {"width": 100, "height": 100}},
      "metadata": {"title": "Calendar"}
    }
  ]
}
```

Import checks the whole snapshot before building anything: one malformed
panel rejects the snapshot, and every problem found is reported.
"""

import json
import logging
import math
import numbers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

import yaml

from ..layout.abstraction import Panel, PanelConstraints, Position, Size

logger = logging.getLogger(__name__)

# Snapshot format version; imports accept any version with the same major
LAYOUT_VERSION = "1.0.0"

YAML_SUFFIXES = {".yaml", ".yml"}


@dataclass
class ImportResult:
    """Outcome of importing a snapshot."""
    success: bool = False
    panels: List[Panel] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    name: str = ""
    description: str = ""
    version: str = ""


def panel_to_dict(panel: Panel) -> Dict[str, Any]:
    """Snapshot entry for one panel. Interaction flags are not persisted."""
    return {
        "id": panel.id,
        "component": panel.component,
        "position": panel.position.to_dict(),
        "size": panel.size.to_dict(),
        "zIndex": panel.z_index,
        "visible": panel.visible,
        "constraints": panel.constraints.to_dict(),
        "metadata": dict(panel.metadata),
    }


def export_layout(
    panels: Sequence[Panel],
    name: str = "",
    description: str = "",
) -> Dict[str, Any]:
    """Build a snapshot dictionary from panels, keeping their order."""
    return {
        "version": LAYOUT_VERSION,
        "name": name,
        "description": description,
        "panels": [panel_to_dict(p) for p in panels],
    }


def export_layout_json(
    panels: Sequence[Panel],
    name: str = "",
    description: str = "",
    indent: int = 2,
) -> str:
    return json.dumps(export_layout(panels, name, description), indent=indent)


def _is_number(value: Any) -> bool:
    """Finite real number. NaN and infinities are rejected, as are bools."""
    return (isinstance(value, numbers.Real) and not isinstance(value, bool)
            and math.isfinite(value))


def _check_pair(data: Any, keys, label: str, where: str, errors: List[str],
                positive: bool = False):
    if not isinstance(data, dict):
        errors.append(f"{where}: {label} must be an object")
        return
    for key in keys:
        if key not in data:
            errors.append(f"{where}: {label} missing '{key}'")
        elif not _is_number(data[key]):
            errors.append(f"{where}: {label}.{key} must be a number")
        elif positive and data[key] <= 0:
            errors.append(f"{where}: {label}.{key} must be positive")


def _check_constraints(data: Any, where: str, errors: List[str]):
    if not isinstance(data, dict):
        errors.append(f"{where}: constraints must be an object")
        return
    if "minSize" not in data:
        errors.append(f"{where}: constraints missing 'minSize'")
    else:
        _check_pair(data["minSize"], ("width", "height"), "constraints.minSize", where, errors)
    if data.get("maxSize") is not None:
        _check_pair(data["maxSize"], ("width", "height"), "constraints.maxSize", where, errors)
    aspect = data.get("aspectRatio")
    if aspect is not None:
        if not isinstance(aspect, dict) or not _is_number(aspect.get("ratio")):
            errors.append(f"{where}: constraints.aspectRatio.ratio must be a number")
        elif "tolerance" in aspect and not _is_number(aspect["tolerance"]):
            errors.append(f"{where}: constraints.aspectRatio.tolerance must be a number")
    snap = data.get("snapConstraints")
    if snap is not None:
        if not isinstance(snap, dict):
            errors.append(f"{where}: constraints.snapConstraints must be an object")
        else:
            for key in ("gridSize", "snapDistance"):
                if key in snap and not _is_number(snap[key]):
                    errors.append(f"{where}: constraints.snapConstraints.{key} must be a number")
            if not isinstance(snap.get("commonSizes", []), list):
                errors.append(f"{where}: constraints.snapConstraints.commonSizes must be a list")
                return
            for entry in snap.get("commonSizes", []):
                _check_pair(entry, ("width", "height"),
                            "constraints.snapConstraints.commonSizes[]", where, errors,
                            positive=True)


def _check_panel(index: int, data: Any, seen_ids: set, errors: List[str]):
    where = f"panels[{index}]"
    if not isinstance(data, dict):
        errors.append(f"{where}: must be an object")
        return

    panel_id = data.get("id")
    if not isinstance(panel_id, str) or not panel_id:
        errors.append(f"{where}: 'id' must be a non-empty string")
    else:
        where = f"panels[{index}] ({panel_id})"
        if panel_id in seen_ids:
            errors.append(f"{where}: duplicate id")
        seen_ids.add(panel_id)

    if "component" in data and not isinstance(data["component"], str):
        errors.append(f"{where}: 'component' must be a string")

    if "position" not in data:
        errors.append(f"{where}: missing 'position'")
    else:
        _check_pair(data["position"], ("x", "y"), "position", where, errors)

    if "size" not in data:
        errors.append(f"{where}: missing 'size'")
    else:
        _check_pair(data["size"], ("width", "height"), "size", where, errors, positive=True)

    if "zIndex" in data and (not isinstance(data["zIndex"], int) or isinstance(data["zIndex"], bool)):
        errors.append(f"{where}: 'zIndex' must be an integer")
    if "visible" in data and not isinstance(data["visible"], bool):
        errors.append(f"{where}: 'visible' must be a boolean")
    if data.get("constraints") is not None:
        _check_constraints(data["constraints"], where, errors)
    if data.get("metadata") is not None and not isinstance(data["metadata"], dict):
        errors.append(f"{where}: 'metadata' must be an object")


def _check_version(version: Any, errors: List[str]):
    if not isinstance(version, str) or not version:
        errors.append("Missing layout version")
        return
    expected_major = LAYOUT_VERSION.split(".")[0]
    if version.split(".")[0] != expected_major:
        errors.append(f"Unsupported layout version {version} (expected {expected_major}.x)")


def _build_panel(data: Dict[str, Any]) -> Panel:
    constraints = data.get("constraints")
    return Panel(
        id=data["id"],
        component=data.get("component", ""),
        position=Position.from_dict(data["position"]),
        size=Size.from_dict(data["size"]),
        z_index=data.get("zIndex", 0),
        visible=data.get("visible", True),
        constraints=(PanelConstraints.from_dict(constraints)
                     if constraints is not None else PanelConstraints()),
        metadata=dict(data.get("metadata") or {}),
    )


def import_layout(data: Union[str, Dict[str, Any]]) -> ImportResult:
    """
    Parse and validate a snapshot.

    Args:
        data: Snapshot dictionary or its JSON text

    Returns:
        ImportResult; on failure success is False, panels is empty and
        errors lists every problem found. Never raises for bad input.
    """
    result = ImportResult()

    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            result.errors.append(f"Failed to parse layout: {e}")
            return result

    if not isinstance(data, dict):
        result.errors.append("Invalid layout format: expected an object")
        return result

    _check_version(data.get("version"), result.errors)

    panels = data.get("panels")
    if not isinstance(panels, list):
        result.errors.append("Invalid layout format: missing panels array")
        return result

    seen_ids: set = set()
    for index, entry in enumerate(panels):
        _check_panel(index, entry, seen_ids, result.errors)

    if result.errors:
        logger.debug("import_layout rejected snapshot: %d errors", len(result.errors))
        return result

    result.panels = [_build_panel(entry) for entry in panels]
    result.version = data["version"]
    result.name = str(data.get("name") or "")
    result.description = str(data.get("description") or "")
    result.success = True
    return result


def save_layout_to_file(
    panels: Sequence[Panel],
    path: Path,
    name: str = "",
    description: str = "",
) -> Path:
    """Write a snapshot file; YAML for .yaml/.yml, JSON otherwise."""
    path = Path(path)
    snapshot = export_layout(panels, name, description)
    with open(path, "w", encoding="utf-8") as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            yaml.safe_dump(snapshot, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(snapshot, f, indent=2)
            f.write("\n")
    logger.info("Saved layout with %d panels to %s", len(panels), path)
    return path


def load_layout_from_file(path: Path) -> ImportResult:
    """
    Read and import a snapshot file.

    Missing files and parse errors are reported on the result.
    """
    path = Path(path)
    if not path.exists():
        return ImportResult(errors=[f"Layout file not found: {path}"])

    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, UnicodeDecodeError) as e:
        return ImportResult(errors=[f"Failed to read {path}: {e}"])
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        return ImportResult(errors=[f"Failed to parse layout: {e}"])

    return import_layout(data)
