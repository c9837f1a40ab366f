"""
HTTP surface of the ingestion service.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from .config import ServiceConfig
from .errors import IngestionError
from .ingestion import IngestionHandler
from .storage import ObjectStore, S3ObjectStore

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': 'authorization, x-client-info, apikey, content-type',
}


def _json(status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


def get_handler(request: Request) -> IngestionHandler:
    """Fetch the ingestion handler from app state."""
    handler = getattr(request.app.state, 'ingestion_handler', None)
    if handler is None:
        raise RuntimeError("Ingestion handler not configured")
    return handler


async def preflight(request: Request) -> Response:
    return Response(status_code=204, headers=CORS_HEADERS)


async def upload(request: Request) -> JSONResponse:
    """Accept one multipart file and commit it to the object store."""
    logger.info("Upload request received")
    try:
        handler = get_handler(request)
        form = await request.form()
        file: Optional[UploadFile] = form.get('file')
        if not isinstance(file, UploadFile):
            file = None

        if file is not None and file.size is not None:
            handler.check_size(file.size)
        content = await file.read() if file is not None else None
        stored = await run_in_threadpool(
            handler.ingest,
            file.filename if file is not None else None,
            content,
            file.content_type if file is not None else None,
            file.size if file is not None else None,
        )
    except IngestionError as e:
        return _json(e.status_code, {'error': e.message})
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return _json(500, {'error': str(e) or 'An unexpected error occurred'})

    logger.info("Upload complete, returning response")
    return _json(200, {
        'success': True,
        'message': 'File uploaded successfully',
        'file': stored.to_response(),
    })


async def health(request: Request) -> JSONResponse:
    return _json(200, {'status': 'ok'})


def create_app(config: Optional[ServiceConfig] = None,
               store: Optional[ObjectStore] = None) -> FastAPI:
    """Build the ingestion service application.

    Args:
        config: Service configuration, defaults are used when omitted
        store: Object store to write to, an S3 store is built from config otherwise

    Returns:
        Configured FastAPI application
    """
    config = config or ServiceConfig()
    if store is None:
        store = S3ObjectStore(
            bucket=config.bucket,
            region=config.region,
            endpoint_url=config.endpoint_url,
            public_base_url=config.public_base_url
        )

    app = FastAPI(
        title="Upload Pipeline Ingestion",
        description="Receives single-file uploads and commits them to object storage",
    )
    app.state.ingestion_handler = IngestionHandler(store, max_file_size=config.max_file_size)
    app.state.config = config

    app.add_api_route(config.route, preflight, methods=['OPTIONS'])
    app.add_api_route(config.route, upload, methods=['POST'])
    app.add_api_route('/health', health, methods=['GET'])

    logger.info(f"Ingestion service configured for bucket {config.bucket} at {config.route}")
    return app
