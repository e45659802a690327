import time

from loguru import logger


async def logging_middleware(request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)"
    )
    return response


async def debug_middleware(request, call_next):
    logger.debug(f"Request URL: {request.url}, Query params: {request.query_params}")
    response = await call_next(request)
    logger.debug(f"Response status: {response.status_code}")
    return response
