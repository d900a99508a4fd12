#!/usr/bin/env python3
"""Render one of the built-in worlds.

Settings come from an optional TOML config file; command-line options
override individual settings.

Usage:
    python -m examples.render_scene [options]

Options:
    --config PATH       TOML render configuration
    --world NAME        static, random, cornell or perlin
    --width WIDTH       Image width in pixels
    --height HEIGHT     Image height in pixels
    --samples SAMPLES   Number of samples per pixel
    --max-depth DEPTH   Maximum path length
    --seed SEED         Root seed for a reproducible render
    --output OUTPUT     Output file path (.ppm or .png)
    --batch-size SIZE   Samples per progress update (default: 10)
    --arch ARCH         Taichi backend (default: gpu, falls back to cpu)
    --quiet             Suppress progress output
    --verbose           Log debug messages

Example:
    python -m examples.render_scene --world random --width 400 --height 200 --samples 50
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import time
from pathlib import Path

from src.lumen.config import KNOWN_WORLDS, RenderConfig, load_config
from src.lumen.core.runtime import ARCHITECTURES, init_taichi


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render one of the built-in worlds.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="TOML render configuration")
    parser.add_argument("--world", choices=KNOWN_WORLDS, help="World to render")
    parser.add_argument("--width", type=int, help="Image width in pixels")
    parser.add_argument("--height", type=int, help="Image height in pixels")
    parser.add_argument("--samples", type=int, help="Number of samples per pixel")
    parser.add_argument("--max-depth", type=int, help="Maximum path length")
    parser.add_argument("--seed", type=int, help="Root seed for a reproducible render")
    parser.add_argument("--output", type=str, help="Output file path (.ppm or .png)")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--arch",
        choices=sorted(ARCHITECTURES),
        default="gpu",
        help="Taichi backend (default: gpu)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug messages",
    )
    return parser.parse_args()


def build_config(args: argparse.Namespace) -> RenderConfig:
    """Merge the config file (if any) with command-line overrides."""
    config = load_config(args.config) if args.config else RenderConfig()
    overrides = {
        "world": args.world,
        "screen_width": args.width,
        "screen_height": args.height,
        "antialias_iterations": args.samples,
        "max_depth": args.max_depth,
        "seed": args.seed,
        "output_path": args.output,
    }
    config = dataclasses.replace(
        config, **{key: value for key, value in overrides.items() if value is not None}
    )
    config.validate()
    return config


def render(config: RenderConfig, batch_size: int = 10, quiet: bool = False) -> Path:
    """Render the configured world and save it.

    Args:
        config: The render configuration.
        batch_size: Number of samples to render between progress updates.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.lumen.core.renderer import render_scene, scene_from_config

    if not quiet:
        print(
            f"Creating {config.world_name} world "
            f"({config.screen_width}x{config.screen_height})..."
        )

    scene, camera = scene_from_config(config)

    if not quiet:
        print(f"Rendering {config.antialias_iterations} samples per pixel...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    render_scene(scene, camera, config, callback=progress_callback, batch_size=batch_size)

    output_file = Path(config.output_path)
    if not quiet:
        print()  # Newline after progress
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    backend = init_taichi(args.arch)
    if not args.quiet:
        print(f"Using {backend} backend")

    try:
        render(config, batch_size=args.batch_size, quiet=args.quiet)
        return 0
    except (RuntimeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
