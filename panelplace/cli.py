#!/usr/bin/env python3
"""
PanelPlace CLI

Command-line interface for checking and tidying saved workspace layouts.

Usage:
    panelplace validate <layout.json> [options]
    panelplace optimize <layout.json> [options]
    panelplace report <layout.json>
    panelplace place <layout.json> --id <panel> --size WxH [options]
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import LayoutConfig, load_config
from .errors import ConfigError, PanelPlaceError
from .io.serializer import ImportResult, load_layout_from_file, save_layout_to_file
from .layout.abstraction import Panel, Size

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "PANELPLACE_LOG_LEVEL"


def _configure_logging(verbose: bool = False):
    """Configure logging once. -v wins over the environment variable."""
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = "DEBUG" if verbose else os.environ.get(LOG_LEVEL_ENV, "WARNING")
    level = getattr(logging, level_name.upper(), logging.WARNING)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S"
    ))
    root.addHandler(handler)
    root.setLevel(level)


def parse_size(text: str) -> Size:
    """Parse 'WIDTHxHEIGHT' (e.g. 1200x800)."""
    try:
        width, height = text.lower().split("x")
        size = Size(float(width), float(height))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got '{text}'")
    if size.width <= 0 or size.height <= 0:
        raise argparse.ArgumentTypeError(f"Size must be positive, got '{text}'")
    return size


def load_settings(args) -> LayoutConfig:
    """Configuration file plus command-line overrides."""
    config = load_config(args.config)
    if getattr(args, "grid", None) is not None:
        config.grid_size = args.grid
    if args.container is not None:
        config.container_width = args.container.width
        config.container_height = args.container.height
    return config


def load_layout(path: str) -> Optional[ImportResult]:
    result = load_layout_from_file(Path(path))
    if not result.success:
        print(f"Error: cannot load {path}")
        for error in result.errors:
            print(f"  - {error}")
        return None
    return result


def cmd_validate(args):
    """Validate a saved layout."""
    from .validation.layout_check import LayoutValidator, validate_layout

    config = load_settings(args)
    layout = load_layout(args.layout)
    if layout is None:
        return 1

    validator = LayoutValidator(config.container_size, config.min_gap)
    validator.run_checks(layout.panels)
    print(validator.get_summary())

    result = validate_layout(layout.panels, config.container_size, config.min_gap)
    for suggestion in result.suggestions:
        print(f"[HINT] {suggestion}")

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(json.dumps({
            "valid": result.valid,
            "errors": result.errors,
            "warnings": result.warnings,
            "suggestions": result.suggestions,
        }, indent=2))
        print(f"\nReport saved to: {output_path}")

    return 0 if result.valid else 1


def cmd_optimize(args):
    """Remove overlaps and optionally compact a saved layout."""
    from .placement.optimizer import LayoutOptimizer, OptimizerConfig

    config = load_settings(args)
    layout = load_layout(args.layout)
    if layout is None:
        return 1

    optimizer = LayoutOptimizer(layout.panels, OptimizerConfig(
        grid_size=config.grid_size,
        minimize_overlaps=not args.keep_overlaps,
        compact_layout=args.compact,
        gap=config.min_gap,
        container_size=config.container_size,
    ))
    result = optimizer.optimize()

    print(f"Panels:             {len(result.panels)}")
    print(f"Snapped to grid:    {result.grid_snapped}")
    print(f"Overlaps resolved:  {result.overlaps_resolved}")
    print(f"Compacted:          {result.compacted}")
    print(f"Remaining overlaps: {result.final_overlaps}")

    if args.dry_run:
        print("\nDry run: layout not saved")
        return 0

    output_path = Path(args.output) if args.output else Path(args.layout)
    save_layout_to_file(result.panels, output_path, layout.name, layout.description)
    print(f"\nLayout saved to: {output_path}")
    return 0 if result.final_overlaps == 0 else 1


def cmd_report(args):
    """Print layout metrics and free space."""
    from .placement.bounds import calculate_available_space
    from .validation.layout_check import calculate_layout_metrics

    config = load_settings(args)
    layout = load_layout(args.layout)
    if layout is None:
        return 1

    metrics = calculate_layout_metrics(layout.panels, config.container_size)
    space = calculate_available_space(layout.panels, config.container_size)

    title = layout.name or Path(args.layout).name
    print(f"# Layout report: {title}")
    print("")
    print(f"- Panels: {metrics.total_panels}")
    print(f"- Utilization: {metrics.utilization:.1f}%")
    print(f"- Overlapping pairs: {metrics.overlapping_pairs}")
    if metrics.bounding_box is not None:
        box = metrics.bounding_box
        print(f"- Bounding box: {box.width:g}x{box.height:g} at ({box.x:g}, {box.y:g})")
    print(f"- Free area: {space.total_area:g}")
    if space.largest_region is not None:
        region = space.largest_region
        print(f"- Largest free region: {region.width:g}x{region.height:g} "
              f"at ({region.x:g}, {region.y:g})")
    return 0


def cmd_place(args):
    """Add a panel to a saved layout at the first free slot."""
    from .api.actions import LayoutActions
    from .api.workspace import Workspace

    config = load_settings(args)
    layout = load_layout(args.layout)
    if layout is None:
        return 1

    workspace = Workspace(config=config)
    workspace.store.replace_all(layout.panels)
    actions = LayoutActions(workspace)

    panel = Panel(id=args.id, component=args.component or args.id, size=args.size)
    result = actions.auto_place(panel)
    print(result.message)
    if not result.success:
        return 1

    output_path = Path(args.output) if args.output else Path(args.layout)
    save_layout_to_file(workspace.store.panels, output_path, layout.name, layout.description)
    print(f"Layout saved to: {output_path}")
    return 0


def main(argv: Optional[Sequence[str]] = None):
    """Main entry point."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--config', help='Layout settings YAML (default: bundled defaults)')
    common.add_argument('--container', type=parse_size,
                        help='Workspace size as WIDTHxHEIGHT (default from config)')
    common.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    parser = argparse.ArgumentParser(
        description="PanelPlace - Panel layout engine tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  panelplace validate layout.json --container 1200x800
  panelplace optimize layout.json --compact -o tidy.json
  panelplace report layout.yaml
  panelplace place layout.json --id notes --size 400x300
        """,
    )

    parser.add_argument('--version', action='version', version='panelplace 0.1.0')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Validate command
    validate_parser = subparsers.add_parser('validate', parents=[common],
                                            help='Check a layout for rule violations')
    validate_parser.add_argument('layout', help='Path to layout file (.json, .yaml)')
    validate_parser.add_argument('-o', '--output', help='Save JSON report to file')

    # Optimize command
    optimize_parser = subparsers.add_parser('optimize', parents=[common],
                                            help='Resolve overlaps and compact a layout')
    optimize_parser.add_argument('layout', help='Path to layout file (.json, .yaml)')
    optimize_parser.add_argument('-o', '--output', help='Output file path (default: overwrite)')
    optimize_parser.add_argument('--grid', type=float, help='Grid size for snapping')
    optimize_parser.add_argument('--compact', action='store_true',
                                 help='Snap to grid and pack panels toward the origin')
    optimize_parser.add_argument('--keep-overlaps', action='store_true',
                                 help='Skip overlap removal')
    optimize_parser.add_argument('--dry-run', action='store_true', help="Don't save changes")

    # Report command
    report_parser = subparsers.add_parser('report', parents=[common],
                                          help='Print layout metrics')
    report_parser.add_argument('layout', help='Path to layout file (.json, .yaml)')

    # Place command
    place_parser = subparsers.add_parser('place', parents=[common],
                                         help='Add a panel at the first free slot')
    place_parser.add_argument('layout', help='Path to layout file (.json, .yaml)')
    place_parser.add_argument('--id', required=True, help='New panel id')
    place_parser.add_argument('--size', type=parse_size, required=True,
                              help='Panel size as WIDTHxHEIGHT')
    place_parser.add_argument('--component', help='Widget kind (default: the id)')
    place_parser.add_argument('--grid', type=float, help='Grid size for the slot search')
    place_parser.add_argument('-o', '--output', help='Output file path (default: overwrite)')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    _configure_logging(args.verbose)

    # Dispatch command
    commands = {
        'validate': cmd_validate,
        'optimize': cmd_optimize,
        'report': cmd_report,
        'place': cmd_place,
    }

    try:
        return commands[args.command](args)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1
    except PanelPlaceError as e:
        print(f"Error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
