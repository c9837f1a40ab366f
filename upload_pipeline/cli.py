"""
Command-line interface for the upload pipeline.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import uvicorn

from .api import create_app
from .config import ClientConfig, ServiceConfig, load_config
from .models import FilePayload, UploadSummary
from .scanner import FileScanner
from .tracker import UploadTracker
from .upload_queue import UploadQueue

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: Whether to enable debug logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_client_config(args: argparse.Namespace) -> ClientConfig:
    """Merge the config file's ``client`` section with command line flags."""
    values = dict(load_config(args.config).get('client', {}))
    overrides = {
        'base_url': args.base_url,
        'endpoint': args.endpoint,
        'max_file_size_mb': args.max_size,
        'accepted_types': args.accept,
        'max_concurrency': args.concurrency,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ClientConfig.from_dict(values)


def build_service_config(args: argparse.Namespace) -> ServiceConfig:
    """Merge the config file's ``service`` section with command line flags."""
    values = dict(load_config(args.config).get('service', {}))
    if args.bucket:
        values['bucket'] = args.bucket
    return ServiceConfig.from_dict(values)


def print_summary(summary: UploadSummary) -> None:
    for result in summary.results:
        if result.success:
            url = result.stored.url if result.stored else ''
            print(f"OK    {result.file_name} {url}".rstrip())
        else:
            print(f"FAIL  {result.file_name}: {result.error}")
    print(f"\n{summary.successful_uploads}/{summary.total_files} files uploaded successfully")


async def run_upload(config: ClientConfig, files: list,
                     log_dir: Optional[Path] = None) -> UploadSummary:
    """Queue local files and upload them in one batch.

    Args:
        config: Client configuration
        files: Paths of the files to upload
        log_dir: Directory for summary journals

    Returns:
        UploadSummary of the batch
    """
    tracker = UploadTracker(log_dir=log_dir)
    async with UploadQueue(config, tracker=tracker) as queue:
        queue.add(FilePayload.from_path(path) for path in files)
        return await queue.start_upload()


def handle_upload(args: argparse.Namespace) -> int:
    """Handle the upload command.

    Args:
        args: Command line arguments

    Returns:
        Process exit code
    """
    files = FileScanner().scan_paths([Path(p) for p in args.paths], args.pattern)
    if not files:
        logger.error("No files to upload")
        return 1

    config = build_client_config(args)
    log_dir = Path(args.log_dir) if args.log_dir else None
    summary = asyncio.run(run_upload(config, files, log_dir))
    print_summary(summary)
    return 0 if summary.failed_uploads == 0 else 1


def handle_serve(args: argparse.Namespace) -> int:
    """Handle the serve command.

    Args:
        args: Command line arguments

    Returns:
        Process exit code
    """
    app = create_app(build_service_config(args))
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="File upload pipeline CLI")
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="Enable verbose logging")
    parser.add_argument('-c', '--config', type=Path,
                        help="Path to config file")

    subparsers = parser.add_subparsers(dest='command', required=True)

    # Serve command
    serve_parser = subparsers.add_parser('serve',
                                         help="Run the ingestion service")
    serve_parser.add_argument('--host', type=str, default="127.0.0.1",
                              help="Interface to bind")
    serve_parser.add_argument('--port', type=int, default=8000,
                              help="Port to listen on")
    serve_parser.add_argument('-b', '--bucket', type=str,
                              help="Destination bucket")

    # Upload command
    upload_parser = subparsers.add_parser('upload',
                                          help="Upload files to the ingestion service")
    upload_parser.add_argument('paths', nargs='+',
                               help="Files or folders to upload")
    upload_parser.add_argument('-p', '--pattern', type=str, default="*",
                               help="File pattern to match inside folders")
    upload_parser.add_argument('--base-url', type=str,
                               help="Ingestion service base URL")
    upload_parser.add_argument('--endpoint', type=str,
                               help="Ingestion endpoint path")
    upload_parser.add_argument('--max-size', type=float,
                               help="Maximum file size in MB")
    upload_parser.add_argument('--accept', nargs='+',
                               help="Accepted MIME patterns or extensions")
    upload_parser.add_argument('--concurrency', type=int,
                               help="Maximum concurrent uploads")
    upload_parser.add_argument('--log-dir', type=str,
                               help="Directory for upload summary files")
    return parser


def main(argv: Optional[list] = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.command == 'serve':
            code = handle_serve(args)
        else:
            code = handle_upload(args)
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    sys.exit(code)


if __name__ == '__main__':
    main()
