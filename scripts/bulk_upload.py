#!/usr/bin/env python3
"""
Upload every image in a directory to the gallery bucket.

Each file becomes one upload task; tasks run concurrently and report
progress as they go. Files finish in whatever order the store answers.

Usage:
    python scripts/bulk_upload.py ./photos
    python scripts/bulk_upload.py ./photos --recursive --concurrency 8
    python scripts/bulk_upload.py ./photos --dry-run

Requires:
    - .env file with AWS credentials and bucket name
      (or STORAGE_MOCK_MODE=true to try it against the in-memory store)
"""

import asyncio
import mimetypes
import os
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg"}


def find_images(directory: Path, recursive: bool = False) -> list[Path]:
    """Collect image files by extension, sorted by path."""
    pattern = "**/*" if recursive else "*"
    return sorted(
        path for path in directory.glob(pattern)
        if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS
    )


def load_upload(path: Path):
    """Read a file into a PendingUpload, guessing its MIME type."""
    from cloud_gallery.core.gallery.uploads import PendingUpload

    content_type, _ = mimetypes.guess_type(path.name)
    return PendingUpload(
        name=path.name,
        data=path.read_bytes(),
        content_type=content_type or "application/octet-stream",
    )


def print_event(event) -> None:
    """Console listener for upload events."""
    from cloud_gallery.core.gallery.uploads import UploadEventType

    name = event.name

    if event.type is UploadEventType.PROGRESS:
        print(f"[..] {name}: {event.percent}%")
    elif event.type is UploadEventType.SUCCEEDED:
        print(f"[OK] {name} -> {event.result.url}")
    elif event.type is UploadEventType.FAILED:
        print(f"[ERR] {name}: {event.error}")
    elif event.type is UploadEventType.CANCELLED:
        print(f"[--] {name}: cancelled")


async def upload_directory(files: list[Path], concurrency: int) -> bool:
    """Upload files through the gallery service. Returns True if all succeeded."""
    from cloud_gallery.api.dependencies import build_storage_client
    from cloud_gallery.config.settings import get_settings
    from cloud_gallery.core.gallery.service import GalleryService
    from cloud_gallery.core.gallery.uploads import UploadState, upload_many

    settings = get_settings()
    missing = settings.validate_required_fields()
    if missing:
        print(f"ERROR: Missing configuration: {', '.join(missing)}")
        return False

    service = GalleryService(
        store=build_storage_client(settings),
        bucket=settings.aws_s3_bucket_name,
        region=settings.aws_region,
        prefix=settings.image_prefix,
        max_upload_bytes=settings.max_upload_bytes,
    )

    tasks = await upload_many(
        service,
        (load_upload(path) for path in files),
        concurrency=concurrency,
        listener=print_event,
    )

    succeeded = sum(1 for task in tasks if task.state is UploadState.SUCCEEDED)
    failed = len(tasks) - succeeded

    print(f"\n=== Upload Complete ===")
    print(f"Uploaded: {succeeded}")
    print(f"Failed: {failed}")

    return failed == 0


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Upload a directory of images to the gallery')
    parser.add_argument('directory', help='Directory containing images')
    parser.add_argument('--recursive', action='store_true', help='Include subdirectories')
    parser.add_argument('--concurrency', type=int, default=4, help='Simultaneous uploads')
    parser.add_argument('--dry-run', action='store_true', help='List files only, don\'t upload')
    args = parser.parse_args()

    directory = Path(args.directory)
    if not directory.is_dir():
        print(f"ERROR: Not a directory: {directory}")
        sys.exit(1)

    if args.concurrency < 1:
        print("ERROR: --concurrency must be at least 1")
        sys.exit(1)

    files = find_images(directory, recursive=args.recursive)
    print(f"Found {len(files)} image(s) in {directory}")

    if not files:
        sys.exit(1)

    if args.dry_run:
        for path in files:
            print(f"  {os.path.relpath(path, directory)}")
        sys.exit(0)

    success = asyncio.run(upload_directory(files, args.concurrency))

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
