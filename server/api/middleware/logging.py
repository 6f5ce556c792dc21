# 请求日志中间件

import time
import uuid
import logging
from fastapi import FastAPI, Request
from typing import Dict, Any

logger = logging.getLogger(__name__)


def setup_logging_middleware(app: FastAPI, config: Dict[str, Any]):
    """
    记录每个请求的方法、路径、状态码和耗时，并通过 X-Request-ID 返回请求ID

    Args:
        app: FastAPI应用实例
        config: 配置字典
    """
    slow_request_seconds = config.get('logging', {}).get('slow_request_seconds', 1.0)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()
        client = request.client.host if request.client else 'unknown'

        logger.info(f"[{request_id}] {request.method} {request.url.path} - Client: {client}")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] {request.method} {request.url.path} 异常: {e} - "
                f"Time: {time.perf_counter() - start_time:.3f}s"
            )
            raise

        process_time = time.perf_counter() - start_time
        log = logger.warning if process_time > slow_request_seconds else logger.info
        log(f"[{request_id}] {response.status_code} - Time: {process_time:.3f}s")

        response.headers["X-Request-ID"] = request_id
        return response
