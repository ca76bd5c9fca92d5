"""
FastAPI Endpoints for URL Shortener Service

Endpoints only handle:
- Request validation
- Rate limiting
- Mapping service results and exceptions to HTTP responses

All business logic lives in URLShorteningService.
"""

from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response

from shortener.api.dependencies import get_url_service, get_user_id, require_trusted_subnet
from shortener.api.schemas import (
    BatchRequestItem,
    BatchResponseItem,
    ShortenRequest,
    ShortenResponse,
    StatsResponse,
    UserURLResponse,
)
from shortener.core.exceptions import (
    ConflictError,
    EmptyInputError,
    InvalidURLError,
    NotFoundError,
    URLShortenerException,
)
from shortener.core.rate_limit import RATE_LIMITS, limiter
from shortener.core.validators import sanitize_short_code, validate_original_url
from shortener.services.url_service import BatchItem, URLShorteningService


router = APIRouter()


def _server_error(error: BaseException) -> HTTPException:
    if isinstance(error, TimeoutError):
        detail = "Storage operation timed out"
    else:
        detail = str(error)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    response_class=PlainTextResponse,
    summary="Create a short URL from a text body",
)
@limiter.limit(RATE_LIMITS["shorten"])
async def create_short_url_text(
    request: Request,  # Required for rate limiting and the raw body
    user_id: str = Depends(get_user_id),
    service: URLShorteningService = Depends(get_url_service),
) -> PlainTextResponse:
    """
    Shorten the URL sent as the plain-text request body.

    Returns:
        201 with the short URL, or 409 with the existing short URL
    """
    body = (await request.body()).decode("utf-8", errors="replace")
    try:
        original_url = validate_original_url(body)
        result = await service.create_short_url(original_url, user_id)
    except (InvalidURLError, EmptyInputError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (URLShortenerException, TimeoutError) as e:
        raise _server_error(e)

    status_code = status.HTTP_409_CONFLICT if result.conflict else status.HTTP_201_CREATED
    return PlainTextResponse(result.short_url, status_code=status_code)


@router.post(
    "/api/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a short URL",
    responses={409: {"model": ShortenResponse, "description": "URL already shortened"}},
)
@limiter.limit(RATE_LIMITS["shorten"])
async def create_short_url(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    body: ShortenRequest,
    user_id: str = Depends(get_user_id),
    service: URLShorteningService = Depends(get_url_service),
):
    try:
        original_url = validate_original_url(body.url)
        result = await service.create_short_url(original_url, user_id)
    except (InvalidURLError, EmptyInputError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (URLShortenerException, TimeoutError) as e:
        raise _server_error(e)

    response = ShortenResponse(result=result.short_url)
    if result.conflict:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=response.model_dump())
    return response


@router.post(
    "/api/shorten/batch",
    response_model=List[BatchResponseItem],
    status_code=status.HTTP_201_CREATED,
    summary="Create short URLs in one atomic batch",
)
@limiter.limit(RATE_LIMITS["batch"])
async def create_batch(
    request: Request,
    items: List[BatchRequestItem],
    user_id: str = Depends(get_user_id),
    service: URLShorteningService = Depends(get_url_service),
) -> List[BatchResponseItem]:
    """
    Shorten a batch of URLs. Either every item is stored or none is.

    Raises:
        HTTPException 400: If the batch is empty or holds an invalid URL
        HTTPException 409: If any code already exists
    """
    try:
        batch = [
            BatchItem(
                correlation_id=item.correlation_id,
                original_url=validate_original_url(item.original_url),
            )
            for item in items
        ]
        results = await service.create_batch(batch, user_id)
    except (InvalidURLError, EmptyInputError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (URLShortenerException, TimeoutError) as e:
        raise _server_error(e)

    return [
        BatchResponseItem(correlation_id=result.correlation_id, short_url=result.short_url)
        for result in results
    ]


@router.get(
    "/api/user/urls",
    response_model=List[UserURLResponse],
    summary="List the caller's short URLs",
    responses={204: {"description": "The caller owns no URLs"}},
)
@limiter.limit(RATE_LIMITS["user"])
async def list_user_urls(
    request: Request,
    user_id: str = Depends(get_user_id),
    service: URLShorteningService = Depends(get_url_service),
):
    try:
        urls = await service.list_owned_urls(user_id)
    except (URLShortenerException, TimeoutError) as e:
        raise _server_error(e)

    if not urls:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [UserURLResponse(short_url=url.short_url, original_url=url.original_url) for url in urls]


@router.delete(
    "/api/user/urls",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Delete the caller's short URLs",
)
@limiter.limit(RATE_LIMITS["user"])
async def delete_user_urls(
    request: Request,
    codes: List[str] = Body(...),
    user_id: str = Depends(get_user_id),
    service: URLShorteningService = Depends(get_url_service),
) -> Response:
    """
    Tombstone the given codes. Codes the caller does not own are ignored.

    Responds once the deletion has been committed.
    """
    try:
        await service.delete_owned_urls(user_id, codes)
    except (URLShortenerException, TimeoutError) as e:
        raise _server_error(e)

    return Response(status_code=status.HTTP_202_ACCEPTED)


@router.get(
    "/api/internal/stats",
    response_model=StatsResponse,
    summary="Service-wide statistics",
    dependencies=[Depends(require_trusted_subnet)],
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_stats(
    request: Request,
    service: URLShorteningService = Depends(get_url_service),
) -> StatsResponse:
    try:
        stats = await service.get_stats()
    except (URLShortenerException, TimeoutError) as e:
        raise _server_error(e)

    return StatsResponse(urls=stats.urls, users=stats.users)


@router.get(
    "/{short_code}",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Redirect to original URL",
)
@limiter.limit(RATE_LIMITS["redirect"])
async def redirect_to_url(
    short_code: str,
    request: Request,
    service: URLShorteningService = Depends(get_url_service),
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    Raises:
        HTTPException 400: If short code format is invalid
        HTTPException 404: If short code not found
        HTTPException 410: If the short URL was deleted
    """
    sanitized_code = sanitize_short_code(short_code)
    if not sanitized_code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid short code format: '{short_code}'"
        )

    try:
        record = await service.expand(sanitized_code)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (URLShortenerException, TimeoutError) as e:
        raise _server_error(e)

    if record.deleted:
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail=f"Short code '{sanitized_code}' was deleted"
        )

    return RedirectResponse(url=record.original_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
