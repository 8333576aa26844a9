"""Layout snapshot export and import."""

from .serializer import (
    LAYOUT_VERSION,
    ImportResult,
    export_layout,
    export_layout_json,
    import_layout,
    load_layout_from_file,
    save_layout_to_file,
)

__all__ = [
    "LAYOUT_VERSION",
    "ImportResult",
    "export_layout",
    "export_layout_json",
    "import_layout",
    "load_layout_from_file",
    "save_layout_to_file",
]
