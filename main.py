import uvicorn
from fastapi import FastAPI, File, UploadFile, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import os
import re
import traceback
import logging
from pathlib import Path
from typing import Optional, Tuple
import base64
from io import BytesIO
from PIL import Image
import asyncio
from functools import partial
from contextlib import asynccontextmanager

from doc_rectifier.exceptions import ConfigurationError, UnsupportedInputError, RectificationError
from doc_rectifier.raster_io import decode_grayscale, orient_portrait
from rectifier import DocumentRectifier, configure_logging

# Configure logging first
configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: one rectifier shared by all requests; rectify() keeps no per-call state on it
    logger.info("Starting up: Initializing DocumentRectifier...")
    app.state.rectifier = DocumentRectifier(debug=False)
    yield
    logger.info("Shutting down")

# FastAPI App
app = FastAPI(lifespan=lifespan)

# CORS Configuration - can be overridden via environment variables
ALLOWED_ORIGINS = os.getenv('ALLOWED_ORIGINS', 'http://localhost:5173').split(',')

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

# Security Configuration
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB max file size
ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.tif'}
RESPONSE_FORMATS = ('png', 'json')


def sanitize_filename(filename: str) -> str:
    """Strip directories and anything outside [A-Za-z0-9._-] from an uploaded name."""
    name = os.path.basename(filename).replace('..', '')
    return re.sub(r'[^a-zA-Z0-9._-]', '_', name)


def validate_file_upload(filename: str, file_size: int) -> Tuple[bool, Optional[str]]:
    """
    Check an upload before it is decoded.

    Returns (True, None) for a non-empty raster image under MAX_FILE_SIZE,
    otherwise (False, reason).
    """
    if file_size == 0:
        return False, "Uploaded file is empty"
    if file_size > MAX_FILE_SIZE:
        return False, f"File size exceeds maximum limit of {MAX_FILE_SIZE / (1024*1024):.0f}MB"

    sanitized_name = sanitize_filename(filename)
    if not sanitized_name:
        return False, "Invalid filename"

    ext = Path(sanitized_name).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        return False, f"File type {ext} not allowed. Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"

    return True, None


def encode_png(document) -> bytes:
    """PNG bytes of a grayscale document."""
    buffer = BytesIO()
    Image.fromarray(document).save(buffer, format='PNG')
    return buffer.getvalue()


def run_rectification(rectifier, content: bytes, img_name: str):
    gray = orient_portrait(decode_grayscale(content))
    return rectifier.rectify(gray, img_name=img_name)


@app.get('/api/health')
async def health_check(request: Request):
    rectifier = getattr(request.app.state, 'rectifier', None)
    status = {
        "status": "healthy",
        "rectifier_ready": rectifier is not None,
        "workers": rectifier.num_workers if rectifier else None,
        "aspect_tolerance": rectifier.aspect_tolerance if rectifier else None,
    }
    logger.info(f"Health check: {status}")
    return status


@app.post('/api/rectify')
async def rectify_document(request: Request,
                           file: UploadFile = File(...),
                           response_format: str = Query('png')):
    if not file.filename:
        return JSONResponse(content={"success": False, "error": "No file selected"}, status_code=400)
    if response_format not in RESPONSE_FORMATS:
        return JSONResponse(
            content={"success": False, "error": f"response_format must be one of {', '.join(RESPONSE_FORMATS)}"},
            status_code=400)

    file_content = await file.read()
    is_valid, error_msg = validate_file_upload(file.filename, len(file_content))
    if not is_valid:
        return JSONResponse(content={"success": False, "error": error_msg}, status_code=400)

    sanitized_name = sanitize_filename(file.filename)
    rectifier = request.app.state.rectifier

    # Run rectification in executor (CPU-bound)
    loop = asyncio.get_running_loop()
    try:
        result = await loop.run_in_executor(
            None,
            partial(run_rectification, rectifier, file_content, Path(sanitized_name).stem)
        )
    except ConfigurationError as e:
        logger.warning(f"Rectification rejected for {sanitized_name}: {e}")
        return JSONResponse(content={"success": False, "error": str(e)}, status_code=422)
    except UnsupportedInputError as e:
        logger.warning(f"Unsupported upload {sanitized_name}: {e}")
        return JSONResponse(content={"success": False, "error": str(e)}, status_code=415)
    except RectificationError as e:
        logger.error(f"Rectification error for {sanitized_name}: {e}")
        return JSONResponse(content={"success": False, "error": str(e)}, status_code=500)

    png_bytes = encode_png(result['document'])
    if response_format == 'png':
        return Response(content=png_bytes, media_type='image/png')

    return {
        'success': True,
        'filename': sanitized_name,
        'corners': result['corners'],
        'target_corners': result['target_corners'],
        'document_size': list(result['document_size']),
        'output_size': list(result['output_size']),
        'tilt_degrees': result['tilt_degrees'],
        'timing': result['timing'],
        'image': base64.b64encode(png_bytes).decode('utf-8'),
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}")
    logger.error(traceback.format_exc())
    return JSONResponse(content={"success": False, "error": "Internal server error"}, status_code=500)

if __name__ == '__main__':
    uvicorn.run(app, host="0.0.0.0", port=5002)
