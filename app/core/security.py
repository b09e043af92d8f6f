import hmac
import threading
import time
from typing import Callable, Optional

from app.core.config import settings
from app.core.errors import UnauthorizedError
from app.core.logger import logger


def env_secret_loader() -> Optional[str]:
    """
    默认密钥来源：GATEWAY_SECRET_FILE 优先 (挂载文件可在运行时轮换)，否则 GATEWAY_SECRET
    """
    if settings.GATEWAY_SECRET_FILE:
        with open(settings.GATEWAY_SECRET_FILE, "r", encoding="utf-8") as f:
            return f.read().strip() or None
    return settings.GATEWAY_SECRET or None


class SecretProvider:
    """
    持有共享 Bearer 密钥。

    - 缓存超过 refresh_seconds 后重新拉取
    - 校验失败时再拉取一次 (最多每 retry_seconds 一次)，用于捕获密钥轮换
    """

    def __init__(
        self,
        loader: Callable[[], Optional[str]],
        refresh_seconds: float = 300.0,
        retry_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._refresh_seconds = refresh_seconds
        self._retry_seconds = retry_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._secret: Optional[str] = None
        self._fetched_at: Optional[float] = None

    def _fetch(self) -> Optional[str]:
        try:
            secret = self._loader()
        except Exception as e:
            # 拉取失败保留旧值，下次再试
            logger.error(f"Secret fetch failed: {e}")
            secret = self._secret
        if not secret:
            logger.warning("Gateway secret is not configured, all requests will be rejected.")
        self._secret = secret
        self._fetched_at = self._clock()
        return secret

    def get(self) -> Optional[str]:
        with self._lock:
            if self._fetched_at is None or self._clock() - self._fetched_at >= self._refresh_seconds:
                return self._fetch()
            return self._secret

    def refresh(self, force: bool = False) -> Optional[str]:
        with self._lock:
            if force or self._fetched_at is None or self._clock() - self._fetched_at >= self._retry_seconds:
                return self._fetch()
            return self._secret

    def verify(self, token: Optional[str]) -> bool:
        if not token:
            return False
        if _matches(token, self.get()):
            return True
        # 可能刚轮换过，重拉一次再比
        return _matches(token, self.refresh())


def _matches(token: str, secret: Optional[str]) -> bool:
    if not secret:
        return False
    return hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    if not auth_header:
        return None
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):]
    return auth_header


def check_authorization(provider: SecretProvider, auth_header: Optional[str]):
    if not provider.verify(extract_bearer_token(auth_header)):
        raise UnauthorizedError()


def build_secret_provider() -> SecretProvider:
    return SecretProvider(
        env_secret_loader,
        refresh_seconds=settings.SECRET_REFRESH_SECONDS,
        retry_seconds=settings.SECRET_RETRY_SECONDS,
    )
