"""
Bloqueo por IP tras intentos fallidos de login y límites simples por ventana.
Estado en memoria del proceso (igual que el rate limiting de middlewares).
"""
from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request

MAX_ATTEMPTS = 3
LOCKOUT_SECONDS = 5 * 60
# Un fallo aislado deja de contar pasada una hora
ATTEMPT_TTL = 60 * 60


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


@dataclass
class _FailedAttempt:
    count: int = 0
    lockout_until: Optional[float] = None
    last_failure: float = 0.0


class IpLockout:
    """3 fallos seguidos desde la misma IP bloquean el login durante 5 minutos."""

    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS,
        lockout_seconds: int = LOCKOUT_SECONDS,
        attempt_ttl: int = ATTEMPT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.attempt_ttl = attempt_ttl
        self._clock = clock
        self._attempts: Dict[str, _FailedAttempt] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._attempts)

    def _prune(self, now: float) -> None:
        # Fallos sueltos que ya no cuentan y bloqueos vencidos
        stale = [
            ip for ip, attempt in self._attempts.items()
            if (attempt.lockout_until is None and now - attempt.last_failure > self.attempt_ttl)
            or (attempt.lockout_until is not None and attempt.lockout_until <= now)
        ]
        for ip in stale:
            del self._attempts[ip]

    def check(self, ip: str) -> Tuple[bool, float]:
        """(bloqueada, segundos_restantes)"""
        with self._lock:
            attempt = self._attempts.get(ip)
            if not attempt or attempt.lockout_until is None:
                return False, 0.0
            remaining = attempt.lockout_until - self._clock()
            if remaining > 0:
                return True, remaining
            del self._attempts[ip]
            return False, 0.0

    def record_failure(self, ip: str) -> Tuple[bool, float]:
        with self._lock:
            now = self._clock()
            self._prune(now)
            attempt = self._attempts.setdefault(ip, _FailedAttempt())
            if attempt.lockout_until and attempt.lockout_until > now:
                return True, attempt.lockout_until - now
            attempt.count += 1
            attempt.last_failure = now
            if attempt.count >= self.max_attempts:
                attempt.lockout_until = now + self.lockout_seconds
                attempt.count = 0
                return True, float(self.lockout_seconds)
            return False, 0.0

    def reset(self, ip: str) -> None:
        with self._lock:
            self._attempts.pop(ip, None)

    def clear(self) -> None:
        with self._lock:
            self._attempts.clear()


class WindowLimiter:
    """N intentos por IP dentro de una ventana fija (registro, reenvío de email)."""

    def __init__(self, max_attempts: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._hits)

    def check(self, ip: str) -> Tuple[bool, int]:
        """(permitido, minutos_restantes)"""
        with self._lock:
            entry = self._hits.get(ip)
            if not entry:
                return True, 0
            count, reset_at = entry
            now = self._clock()
            if now > reset_at:
                del self._hits[ip]
                return True, 0
            if count >= self.max_attempts:
                return False, math.ceil((reset_at - now) / 60)
            return True, 0

    def record(self, ip: str) -> None:
        with self._lock:
            now = self._clock()
            for key in [k for k, (_, reset_at) in self._hits.items() if now > reset_at]:
                del self._hits[key]
            entry = self._hits.get(ip)
            if not entry:
                self._hits[ip] = (1, now + self.window_seconds)
            else:
                self._hits[ip] = (entry[0] + 1, entry[1])

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


def remaining_minutes(seconds: float) -> int:
    return max(1, math.ceil(seconds / 60))


login_lockout = IpLockout()
registration_limiter = WindowLimiter(max_attempts=5, window_seconds=24 * 60 * 60)
resend_verification_limiter = WindowLimiter(max_attempts=3, window_seconds=60 * 60)


def reset_all() -> None:
    login_lockout.clear()
    registration_limiter.clear()
    resend_verification_limiter.clear()
