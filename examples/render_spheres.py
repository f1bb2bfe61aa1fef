#!/usr/bin/env python3
"""Render the reference sphere scene (or a scene loaded from JSON).

Usage:
    python examples/render_spheres.py [options]

Options:
    --width WIDTH         Image width in pixels (default: 1920)
    --height HEIGHT       Image height in pixels (default: 1080)
    --samples SAMPLES     Samples per pixel (default: 256)
    --max-depth DEPTH     Maximum path depth (default: 20)
    --seed SEED           Random seed (default: fresh entropy)
    --scene PATH          JSON scene file (default: the reference scene)
    --output OUTPUT       Output file path, .ppm or .png (default: out.ppm)
    --backend BACKEND     "taichi" or "python" (default: taichi)
    --arch ARCH           Taichi arch, "cpu" or "gpu" (default: gpu, falls back to cpu)
    --workers N           Processes for the python backend (default: 1)
    --batch-size SIZE     Samples per progress update (default: 16)
    --tone-map METHOD     "none", "reinhard" or "exposure" (default: none)
    --gamma GAMMA         Gamma applied when saving (default: 1.0)
    --quiet               Suppress progress output
    --verbose             Enable debug logging

Example:
    python examples/render_spheres.py --width 320 --height 180 --samples 64
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import numpy as np
import numpy.typing as npt


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    from pathtracer.core.integrator import MAX_DEPTH, SAMPLES_PER_PIXEL
    from pathtracer.preview.display import TONE_MAP_METHODS

    parser = argparse.ArgumentParser(
        description="Render a sphere scene with the Monte Carlo path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=1920, help="Image width in pixels")
    parser.add_argument("--height", type=int, default=1080, help="Image height in pixels")
    parser.add_argument(
        "--samples",
        type=int,
        default=SAMPLES_PER_PIXEL,
        help=f"Samples per pixel (default: {SAMPLES_PER_PIXEL})",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=MAX_DEPTH,
        help=f"Maximum path depth (default: {MAX_DEPTH})",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--scene", type=Path, default=None, help="JSON scene file")
    parser.add_argument("--output", type=str, default="out.ppm", help="Output .ppm or .png file")
    parser.add_argument("--backend", choices=("taichi", "python"), default="taichi")
    parser.add_argument("--arch", choices=("cpu", "gpu"), default="gpu")
    parser.add_argument("--workers", type=int, default=1, help="Processes for the python backend")
    parser.add_argument("--batch-size", type=int, default=16, help="Samples per progress update")
    parser.add_argument("--tone-map", choices=TONE_MAP_METHODS, default="none")
    parser.add_argument("--gamma", type=float, default=1.0, help="Gamma applied when saving")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _init_taichi(arch: str, seed: int, quiet: bool) -> None:
    """Initialize Taichi, falling back to the CPU when no GPU is usable."""
    from pathtracer import kernels

    try:
        kernels.init(arch=arch, random_seed=seed)
        if not quiet:
            print(f"Using {arch.upper()} backend")
    except Exception:
        if arch == "cpu":
            raise
        kernels.init(arch="cpu", random_seed=seed)
        if not quiet:
            print("Using CPU backend")


def render(args: argparse.Namespace) -> Path:
    """Render the scene described by args and save it.

    Returns:
        Path to the saved image file.
    """
    from pathtracer.camera.lens import LensCamera
    from pathtracer.core.integrator import RenderSettings
    from pathtracer.preview.export import save_image
    from pathtracer.scene.reference import create_reference_scene
    from pathtracer.scene.scene import load_scene

    scene = load_scene(args.scene) if args.scene else create_reference_scene()
    settings = RenderSettings(
        width=args.width,
        height=args.height,
        samples=args.samples,
        max_depth=args.max_depth,
        seed=args.seed,
    )
    camera = LensCamera()

    if not args.quiet:
        print(
            f"Rendering {len(scene)} spheres at {settings.width}x{settings.height}, "
            f"{settings.samples} samples per pixel..."
        )

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not args.quiet:
            progress_pct = (current / target) * 100 if target > 0 else 0
            print(f"\r  Progress: {current}/{target} ({progress_pct:.1f}%)", end="", flush=True)

    image: npt.NDArray[np.float64]
    if args.backend == "taichi":
        seed = args.seed if args.seed is not None else int(np.random.SeedSequence().entropy % 2**31)
        _init_taichi(args.arch, seed, args.quiet)

        from pathtracer.kernels.integrator import render_image

        image = render_image(
            scene, settings, camera, batch_size=args.batch_size, callback=progress_callback
        )
    else:
        from pathtracer.core.integrator import render_image

        image = render_image(
            scene, settings, camera, workers=args.workers, callback=progress_callback
        )

    if not args.quiet:
        print()  # Newline after progress

    output_file = save_image(image, args.output, tone_map=args.tone_map, gamma=args.gamma)

    if not args.quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        render(args)
        return 0
    except (OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
