"""请求日志中间件"""
import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# 不记录的路径（健康检查等高频请求）
SKIP_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}


def should_log(path: str) -> bool:
    return path not in SKIP_PATHS


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    请求日志中间件

    记录每个 API 请求的方法、路径、状态码与耗时；
    未处理的异常记录后继续抛出。
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.exception(
                f"{request.method} {request.url.path} 处理失败 ({duration_ms}ms)"
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        if should_log(request.url.path):
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)"
            )
        return response
