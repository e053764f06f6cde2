# app/services/external_service.py
import asyncio
from typing import Any, Dict, Optional

import httpx
from pointcloud_sys.app.utils.logging import logger


class ExternalServiceError(Exception):
    """外部服务调用最终失败（重试用尽或 4xx）。"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


async def _post_with_retry(
    url: str,
    timeout: float,
    retries: int,
    backoff: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **request_kwargs: Any,
) -> Dict[str, Any]:
    attempts = 1 + max(0, retries)
    last_error: Optional[Exception] = None

    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        for attempt in range(1, attempts + 1):
            try:
                resp = await client.post(url, **request_kwargs)
                if resp.status_code >= 500:
                    raise httpx.HTTPStatusError(
                        f"server error {resp.status_code}", request=resp.request, response=resp
                    )
                resp.raise_for_status()
                return resp.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status < 500:
                    # 4xx 重试也没用，直接抛
                    raise ExternalServiceError(f"{url} returned {status}", status_code=status) from e
                last_error = e
            except (httpx.TransportError, ValueError) as e:
                last_error = e

            logger.warning(f"Call to {url} failed (attempt {attempt}/{attempts}): {last_error}")
            if attempt < attempts and backoff > 0:
                await asyncio.sleep(backoff * attempt)

    raise ExternalServiceError(f"{url} unavailable after {attempts} attempts: {last_error}")


async def call_external_http(
    url: str,
    payload: dict,
    timeout: float = 3.0,
    retries: int = 2,
    backoff: float = 0.5,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    """
    统一封装外部 HTTP 调用（JSON POST），带重试 / 超时控制：
    - 网络错误、5xx、响应不是 JSON：按 backoff 线性退避后重试，最多再试 retries 次
    - 4xx：直接抛 ExternalServiceError
    """
    logger.debug(f"Calling external service: {url}")
    data = await _post_with_retry(url, timeout, retries, backoff, transport, json=payload)
    logger.debug(f"External service response keys: {list(data)}")
    return data


async def call_external_upload(
    url: str,
    files: dict,
    timeout: float = 30.0,
    retries: int = 2,
    backoff: float = 0.5,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    """multipart 上传（比如图片），其余行为同 call_external_http。"""
    logger.debug(f"Uploading to external service: {url}")
    return await _post_with_retry(url, timeout, retries, backoff, transport, files=files)
