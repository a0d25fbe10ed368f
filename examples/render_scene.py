#!/usr/bin/env python3
"""Render one of the built-in scenes.

Renders the Cornell box or the random spheres scene at a named quality
preset, optionally denoises the result and writes it to a file. Without an
output path the image is written to stdout as plain-text PPM, so progress
goes to stderr.

Usage:
    python examples/render_scene.py [scene] [quality] [output] [options]

Arguments:
    scene               cornell or spheres (default: cornell)
    quality             draft, low, medium, high or ultra (default: medium)
    output              Output file (.png, .ppm, ...); PPM to stdout if omitted

Options:
    --denoise MODE      off, bilateral, median or fast (default: off)
    --width WIDTH       Override the preset image width
    --samples SAMPLES   Override the preset samples per pixel
    --depth DEPTH       Override the preset recursion depth
    --cpu               Force the Taichi CPU backend
    --seed SEED         Seed for the Taichi RNG and the scene layout (default: 42)
    --quiet             Suppress progress output

Example:
    python examples/render_scene.py cornell draft cornell.png --denoise bilateral
    python examples/render_scene.py spheres draft > spheres.ppm
"""

import argparse
import logging
import sys
import time

import taichi as ti

SCENES = ("cornell", "spheres")
QUALITIES = ("draft", "low", "medium", "high", "ultra")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a built-in scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "scene",
        nargs="?",
        choices=SCENES,
        default="cornell",
        help="Scene to render (default: cornell)",
    )
    parser.add_argument(
        "quality",
        nargs="?",
        default="medium",
        help=f"Quality preset: {', '.join(QUALITIES)} (default: medium)",
    )
    parser.add_argument(
        "output",
        nargs="?",
        default=None,
        help="Output file path; writes PPM to stdout if omitted",
    )
    parser.add_argument(
        "--denoise",
        type=str,
        default="off",
        help="Denoise mode: off, bilateral, median or fast (default: off)",
    )
    parser.add_argument("--width", type=int, default=None, help="Override the image width")
    parser.add_argument(
        "--samples", type=int, default=None, help="Override the samples per pixel"
    )
    parser.add_argument("--depth", type=int, default=None, help="Override the max depth")
    parser.add_argument(
        "--cpu",
        action="store_true",
        help="Force the CPU backend",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed (default: 42)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_scene(args: argparse.Namespace) -> int:
    """Render the scene selected by ``args`` and write the result.

    Returns:
        Process exit code: 0 on success, 1 if the output could not be written.
    """
    # Lazy imports to allow Taichi initialization first
    from mistrace.config import get_quality_preset
    from mistrace.core.renderer import render_image
    from mistrace.preview.export import save_image, write_ppm
    from mistrace.scene import cornell_box, random_spheres

    quiet = args.quiet

    if args.scene == "cornell":
        scene, camera, background = cornell_box.create_cornell_box_scene()
        aspect_ratio = cornell_box.ASPECT_RATIO
    else:
        scene, camera, background = random_spheres.create_random_spheres_scene(seed=args.seed)
        aspect_ratio = random_spheres.ASPECT_RATIO

    overrides = {}
    if args.width is not None:
        overrides["image_width"] = args.width
    if args.samples is not None:
        overrides["samples_per_pixel"] = args.samples
    if args.depth is not None:
        overrides["max_depth"] = args.depth

    preset = get_quality_preset(args.quality)
    settings = preset.to_settings(
        aspect_ratio=aspect_ratio,
        background=background,
        denoise_mode=args.denoise,
        **overrides,
    )

    if not quiet:
        print(
            f"Scene {args.scene} [{preset.name}] "
            f"({settings.image_width}x{settings.image_height}, "
            f"{settings.sqrt_spp ** 2} samples, depth {settings.max_depth}), "
            f"{scene.get_primitive_count()} primitives",
            file=sys.stderr,
        )

    start_time = time.time()

    def progress_callback(rows_done: int, total_rows: int) -> None:
        if not quiet:
            print(
                f"\r  Scanlines remaining: {total_rows - rows_done} ",
                end="",
                file=sys.stderr,
                flush=True,
            )

    # Denoising, if any, is reported through the library log
    image = render_image(settings, camera, callback=progress_callback)

    if not quiet:
        print(f"\nRender time: {time.time() - start_time:.2f}s", file=sys.stderr)

    if args.output is None:
        write_ppm(image, sys.stdout)
        return 0

    if not save_image(image, args.output):
        print(f"Error: could not write {args.output}", file=sys.stderr)
        return 1

    if not quiet:
        print(f"Saved to: {args.output}", file=sys.stderr)
        print(f"Total time: {time.time() - start_time:.2f}s", file=sys.stderr)
    return 0


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.cpu:
        ti.init(arch=ti.cpu, random_seed=args.seed)
    else:
        # Falls back to CPU when no GPU backend is available
        ti.init(arch=ti.gpu, random_seed=args.seed)

    return render_scene(args)


if __name__ == "__main__":
    sys.exit(main())
