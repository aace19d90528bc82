#!/usr/bin/env python3
"""
Image-to-Video - Main Entry Point

Animates a still image from a text description.

Usage:
    # Generate a video
    python main.py generate --prompt "make the person wave" --image portrait.jpg

    # Check configuration
    python main.py check
"""

import argparse
import asyncio
import base64
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("image2video")

# Shown while the job is running; generation usually takes a few minutes
LOADING_MESSAGES = [
    "Warming up the camera...",
    "Studying the picture...",
    "Choreographing the motion...",
    "Rendering frames...",
    "Adding the finishing touches...",
]


def read_image(path: Path) -> tuple[str, str]:
    """Return (base64 text, mime type) for an image file."""
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise ValueError(f"Not an image file: {path}")
    with open(path, "rb") as f:
        data = f.read()
    return base64.b64encode(data).decode("ascii"), mime_type


async def generate_video(prompt: str, image_path: str, output: Optional[str] = None) -> Optional[str]:
    """
    Generate a video and save it to ``output``.

    Returns:
        Path of the saved video, or None on failure
    """
    from services.video_generation import VideoGenerationClient, VideoGenerationError

    path = Path(image_path)
    try:
        image_data, mime_type = read_image(path)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return None

    logger.info(f"Prompt: {prompt}")
    logger.info(f"Image: {path} ({mime_type})")

    def print_progress(request_id: str, percent: int, message: str):
        hint = LOADING_MESSAGES[(percent // 10) % len(LOADING_MESSAGES)]
        print(f"[{percent:3d}%] {message} - {hint}")

    try:
        async with VideoGenerationClient(on_progress=print_progress) as client:
            asset = await client.generate_video(prompt, image_data, mime_type)
    except VideoGenerationError as e:
        print(f"Error [{e.error_code}]: {e.message}")
        return None

    destination = Path(output) if output else Path("output") / f"{path.stem}{asset.path.suffix}"
    with asset:
        try:
            saved = asset.save(destination)
        except OSError as e:
            print(f"Error: could not save the video to {destination}: {e}")
            return None

    logger.info(f"Video ready: {saved}")
    return str(saved)


def check_config() -> int:
    """Print configuration issues; return an exit code."""
    from core.config import get_config

    try:
        issues = get_config().validate()
    except ValueError as e:
        issues = [f"Invalid configuration: {e}"]
    if not issues:
        print("Configuration OK")
        return 0
    for issue in issues:
        print(f"  - {issue}")
    return 1


def main():
    parser = argparse.ArgumentParser(
        description="Image-to-Video - animate a picture from a description",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Generate a video
    python main.py generate --prompt "make the person wave" --image portrait.jpg

    # Choose where the video is written
    python main.py generate -p "slow zoom on the lighthouse" -i coast.png -o clips/coast.mp4

    # Check configuration
    python main.py check
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate a video")
    gen_parser.add_argument("--prompt", "-p", required=True, help="How the image should move")
    gen_parser.add_argument("--image", "-i", required=True, help="Source image file")
    gen_parser.add_argument("--output", "-o", help="Output video path")

    # Check command
    subparsers.add_parser("check", help="Validate configuration")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "generate":
        result = asyncio.run(generate_video(args.prompt, args.image, args.output))
        sys.exit(0 if result else 1)

    elif args.command == "check":
        sys.exit(check_config())


if __name__ == "__main__":
    main()
