"""
Command Line Interface for preview generation and batch uploads.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

import urllib3

from .config import LocalConfig, PreviewConfig, S3Config
from .local_client import LocalClient
from .preview_generator import PreviewGenerator
from .s3_client import S3Client
from .upload_progress import UploadProgress
from .uploader import MAX_FILE_SIZE, UploadFile, Uploader
from .watermark import get_watermark_tile


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)

    return logging.getLogger('previewgen')


def get_preview_config(args: argparse.Namespace) -> PreviewConfig:
    """Build preview configuration from CLI overrides."""
    config = PreviewConfig()

    if getattr(args, 'max_width', None):
        config.max_width = args.max_width
    if getattr(args, 'max_kb', None):
        config.max_bytes = args.max_kb * 1024

    return config


def get_s3_config(args: argparse.Namespace) -> S3Config:
    """Get S3 configuration from environment and CLI overrides."""
    config = S3Config.from_env()

    if getattr(args, 's3_endpoint', None):
        config.endpoint = args.s3_endpoint
    if getattr(args, 's3_bucket', None):
        config.bucket = args.s3_bucket
    if getattr(args, 's3_prefix', None):
        config.prefix = args.s3_prefix
    if getattr(args, 's3_access_key', None):
        config.access_key = args.s3_access_key
    if getattr(args, 's3_secret_key', None):
        config.secret_key = args.s3_secret_key

    return config


def get_storage_client(args: argparse.Namespace, logger: logging.Logger):
    """
    Get the storage client selected by the arguments.

    Raises:
        ValueError: If the selected configuration is invalid
    """
    local_root = getattr(args, 'local_root', None)

    if local_root:
        config = LocalConfig(root_path=local_root, prefix=args.local_prefix or '')
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(error)
            raise ValueError("Local configuration invalid")
        logger.info(f"Storage: Local filesystem ({config.base_path})")
        return LocalClient(config, logger)

    config = get_s3_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        raise ValueError("S3 configuration invalid")
    logger.info(f"Storage: S3 {config.endpoint or 'AWS'} {config.bucket}/{config.prefix}")
    return S3Client(config, logger)


def add_preview_arguments(parser: argparse.ArgumentParser) -> None:
    """Add preview tuning arguments to a parser."""
    group = parser.add_argument_group('Preview')
    group.add_argument('--no-watermark', action='store_true',
                       help='Produce clean previews without the watermark')
    group.add_argument('--max-width', type=int, metavar='PX',
                       help=f'Maximum preview width (default: {PreviewConfig.max_width})')
    group.add_argument('--max-kb', type=int, metavar='KB',
                       help=f'Preview byte budget in KB (default: {PreviewConfig.max_bytes // 1024})')


def add_storage_arguments(parser: argparse.ArgumentParser) -> None:
    """Add storage configuration arguments to a parser."""
    local_group = parser.add_argument_group('Local Storage')
    local_group.add_argument('--local-root', metavar='PATH',
                             help='Use local filesystem instead of S3')
    local_group.add_argument('--local-prefix', default='uploads',
                             help='Prefix within local root (default: uploads)')

    s3_group = parser.add_argument_group('S3 Storage')
    s3_group.add_argument('--s3-endpoint', help='Override S3_ENDPOINT')
    s3_group.add_argument('--s3-bucket', help='Override S3_BUCKET')
    s3_group.add_argument('--s3-prefix', help='Override S3_PREFIX')
    s3_group.add_argument('--s3-access-key', help='Override S3_ACCESS_KEY')
    s3_group.add_argument('--s3-secret-key', help='Override S3_SECRET_KEY')


def cmd_preview(args: argparse.Namespace) -> int:
    """Execute preview command for a single file."""
    logger = setup_logging(args.verbose)

    config = get_preview_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    try:
        with open(args.input, 'rb') as f:
            image_data = f.read()
    except OSError as e:
        logger.error(f"Cannot read {args.input}: {e}")
        return 1

    try:
        result = PreviewGenerator(config, logger).generate(
            image_data, apply_watermark=not args.no_watermark
        )
    except Exception as e:
        logger.exception(f"Preview failed: {e}")
        return 1

    if result is None:
        logger.error(f"Preview unavailable for {args.input}")
        return 1

    output = args.output or f"{os.path.splitext(args.input)[0]}-preview{result.extension}"
    with open(output, 'wb') as f:
        f.write(result.data)

    logger.info(
        f"Wrote {output}: {result.format.value} {result.width}x{result.height}, "
        f"{result.size:,} bytes (budget {config.max_bytes:,})"
    )
    return 0


def cmd_upload(args: argparse.Namespace) -> int:
    """Execute upload command for a batch of files."""
    logger = setup_logging(args.verbose)
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    config = get_preview_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    try:
        storage = get_storage_client(args, logger)
    except ValueError:
        return 1

    files = []
    for path in collect_paths(args.paths):
        try:
            files.append(UploadFile.from_path(path))
        except OSError as e:
            logger.error(f"Cannot read {path}: {e}")

    if not files:
        logger.error("No files to upload")
        return 1

    try:
        uploader = Uploader(
            storage=storage,
            preview_generator=PreviewGenerator(config, logger),
            folder=args.folder,
            apply_watermark=not args.no_watermark,
            max_file_size=args.max_file_mb * 1024 * 1024,
            workers=args.workers,
            dry_run=args.dry_run,
            logger=logger
        )

        progress = None
        if not args.quiet:
            progress = UploadProgress(show_files=args.show_files, logger=logger)

        stats = uploader.process_batch(files, progress=progress)

        if not args.quiet:
            print()
            print(f"Uploaded: {stats.processed}")
            print(f"Skipped: {stats.skipped}")
            print(f"Errors: {stats.errors}")
            print(f"Preview bytes: {stats.bytes_preview:,} "
                  f"({stats.compression_ratio:.1%} of originals)")
            print(f"Time: {stats.elapsed_seconds:.1f}s")

        return 0 if stats.errors == 0 and stats.skipped == 0 else 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Upload failed: {e}")
        return 1


def cmd_tile(args: argparse.Namespace) -> int:
    """Write the watermark tile to a PNG file."""
    logger = setup_logging(args.verbose)
    defaults = PreviewConfig()

    try:
        data = get_watermark_tile(args.size, defaults.watermark_text, defaults.watermark_opacity)
    except Exception as e:
        logger.exception(f"Tile rendering failed: {e}")
        return 1

    with open(args.output, 'wb') as f:
        f.write(data)
    logger.info(f"Wrote {args.output} ({args.size}x{args.size}, {len(data):,} bytes)")
    return 0


def collect_paths(paths: List[str]) -> List[str]:
    """Expand directories into the files they contain (non-recursive)."""
    collected = []
    for path in paths:
        if os.path.isdir(path):
            for name in sorted(os.listdir(path)):
                full = os.path.join(path, name)
                if os.path.isfile(full) and not name.startswith('.'):
                    collected.append(full)
        else:
            collected.append(path)
    return collected


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='previewgen',
        description='Watermarked, size-bounded image previews',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  Preview: python -m previewgen preview photo.jpg -o photo-preview.jpg
  Upload:  python -m previewgen upload ./incoming --folder contributors/42
  Tile:    python -m previewgen tile -o tile.png

Storage options:
  Use --local-root for local filesystem, or S3 environment variables for S3.
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Preview command
    preview_parser = subparsers.add_parser('preview', help='Generate a preview for one image')
    preview_parser.add_argument('input', help='Source image file')
    preview_parser.add_argument('-o', '--output', help='Output file (default: <input>-preview.<ext>)')
    preview_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_preview_arguments(preview_parser)

    # Upload command
    upload_parser = subparsers.add_parser('upload', help='Upload images with their previews')
    upload_parser.add_argument('paths', nargs='+', help='Image files or directories')
    upload_parser.add_argument('--folder', required=True, help='Storage folder for this batch')
    upload_parser.add_argument('-w', '--workers', type=int, default=1,
                               help='Files processed concurrently (default: 1)')
    upload_parser.add_argument('--max-file-mb', type=int, default=MAX_FILE_SIZE // (1024 * 1024),
                               help='Largest accepted original in MB (default: 50)')
    upload_parser.add_argument('-n', '--dry-run', action='store_true', help='Show what would be done')
    upload_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    upload_parser.add_argument('--show-files', action='store_true',
                               help='Print each file as processed with result')
    upload_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_preview_arguments(upload_parser)
    add_storage_arguments(upload_parser)

    # Tile command
    tile_parser = subparsers.add_parser('tile', help='Write the watermark tile as PNG')
    tile_parser.add_argument('-o', '--output', default='watermark-tile.png', help='Output file')
    tile_parser.add_argument('-s', '--size', type=int, default=PreviewConfig.tile_size,
                             help=f'Tile side length (default: {PreviewConfig.tile_size})')
    tile_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'preview':
        return cmd_preview(parsed_args)
    elif parsed_args.command == 'upload':
        return cmd_upload(parsed_args)
    elif parsed_args.command == 'tile':
        return cmd_tile(parsed_args)

    return 1


if __name__ == '__main__':
    sys.exit(main())
