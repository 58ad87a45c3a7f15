import mimetypes
from typing import BinaryIO, Iterator

from fastapi import APIRouter, File, Header, Request, UploadFile
from fastapi.responses import Response, StreamingResponse

from core.errors import MediaError, media_error_to_http, upload_invalid
from core.media import MediaManager
from core.response_envelope import document_response
from services.file_service import upload_file

router = APIRouter(prefix="/v0/file", tags=["Files"])

CHUNK_SIZE = 64 * 1024


def _iter_stream(stream: BinaryIO) -> Iterator[bytes]:
    with stream:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


@router.api_route("/s/{file_name}", methods=["GET", "HEAD", "OPTIONS"], include_in_schema=False)
async def serve_file(file_name: str, request: Request):
    handler = MediaManager.get_instance().handler
    url = str(request.url)
    try:
        result = await handler.headers(request.method, url, request.headers, serve=True)
        if result.status:
            return Response(status_code=result.status, headers=result.headers)
        download = await handler.download(url)
    except MediaError as err:
        raise media_error_to_http(err) from err

    headers = dict(result.headers)
    if request.method == "HEAD":
        download.stream.close()
        headers["Content-Length"] = str(download.record.size)
        return Response(status_code=200, headers=headers, media_type=download.record.mime_type)

    return StreamingResponse(
        _iter_stream(download.stream),
        media_type=download.record.mime_type,
        headers=headers,
    )


@router.post("/u/")
@document_response(message="File uploaded", status_code=201)
async def upload_file_route(
    request: Request,
    file: UploadFile = File(...),
    x_user_id: str | None = Header(default=None),
):
    mime_type = file.content_type
    if not mime_type or mime_type == "application/octet-stream":
        mime_type = mimetypes.guess_type(file.filename or "")[0] or mime_type
    if file.size == 0:
        raise upload_invalid("Empty upload", {"file_name": file.filename})

    try:
        return await upload_file(stream=file.file, mime_type=mime_type, user=x_user_id)
    except MediaError as err:
        raise media_error_to_http(err) from err
