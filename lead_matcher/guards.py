"""Timeout and availability guards around registry and store backends."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Optional, Type

from .errors import BackendUnavailable, MatchingTimeout, RegistryUnavailable, StoreUnavailable

LOGGER = logging.getLogger(__name__)

DEFAULT_CALL_TIMEOUT_SECONDS = 3.0
DEFAULT_PIPELINE_TIMEOUT_SECONDS = 5.0

# Caller mistakes, not outages: these propagate untouched.
_PASSTHROUGH = (ValueError, KeyError, TypeError)


@dataclass
class TimeoutPolicy:
    """Per-call time budget applied by a guard; ``None`` disables the bound."""

    call_timeout_seconds: Optional[float] = DEFAULT_CALL_TIMEOUT_SECONDS


class _GuardedBackend:
    component = "backend"
    unavailable: Type[BackendUnavailable] = BackendUnavailable

    def __init__(
        self,
        backend,
        *,
        display_name: Optional[str] = None,
        timeout_policy: Optional[TimeoutPolicy] = None,
        max_workers: int = 4,
    ) -> None:
        self._backend = backend
        self._display_name = display_name
        self._timeout_policy = timeout_policy or TimeoutPolicy()
        self._executor: Optional[ThreadPoolExecutor] = None
        if self._timeout_policy.call_timeout_seconds:
            self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"{self.component}-guard")

    @property
    def name(self) -> str:
        if self._display_name:
            return self._display_name
        return getattr(self._backend, "name", self._backend.__class__.__name__)

    @property
    def backend(self):
        return self._backend

    def close(self) -> None:
        if self._executor is not None:
            # Hung calls are abandoned rather than awaited.
            self._executor.shutdown(wait=False)
            self._executor = None

    def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        func: Callable[..., Any] = getattr(self._backend, method)
        timeout = self._timeout_policy.call_timeout_seconds
        try:
            if not timeout or self._executor is None:
                return func(*args, **kwargs)
            future = self._executor.submit(func, *args, **kwargs)
            try:
                return future.result(timeout=timeout)
            except FutureTimeout:
                future.cancel()
                raise MatchingTimeout(
                    f"{self.name}.{method} exceeded {timeout:g}s", component=self.component
                ) from None
        except (BackendUnavailable, *_PASSTHROUGH):
            raise
        except Exception as exc:
            LOGGER.exception("%s.%s failed", self.name, method)
            raise self.unavailable(f"{self.name}.{method} failed: {exc}") from exc

    def __getattr__(self, item):  # pragma: no cover - simple delegation
        return getattr(self._backend, item)


class GuardedRegistry(_GuardedBackend):
    """Registry wrapper bounding each call and reporting outages as :class:`RegistryUnavailable`."""

    component = "registry"
    unavailable = RegistryUnavailable

    def register(self, profile):
        return self._call("register", profile)

    def upsert(self, profile):
        return self._call("upsert", profile)

    def get(self, professional_id):
        return self._call("get", professional_id)

    def get_by_email(self, email):
        return self._call("get_by_email", email)

    def find_candidates(self, role, ranges, category):
        return self._call("find_candidates", role, ranges, category)

    def update(self, professional_id, changes):
        return self._call("update", professional_id, changes)


class GuardedStore(_GuardedBackend):
    """Store wrapper bounding each call and reporting outages as :class:`StoreUnavailable`."""

    component = "store"
    unavailable = StoreUnavailable

    def save(self, lead, result, *, status=None):
        return self._call("save", lead, result, status=status)

    def get_lead(self, lead_id):
        return self._call("get_lead", lead_id)

    def get_matches_for_professional(self, professional_id):
        return self._call("get_matches_for_professional", professional_id)

    def get_leads_by_customer(self, identifier):
        return self._call("get_leads_by_customer", identifier)

    def rebuild_index(self):
        return self._call("rebuild_index")


__all__ = [
    "DEFAULT_CALL_TIMEOUT_SECONDS",
    "DEFAULT_PIPELINE_TIMEOUT_SECONDS",
    "GuardedRegistry",
    "GuardedStore",
    "TimeoutPolicy",
]
