from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional, Sequence, Tuple

from ..core.settings import IdentityMappingConfig
from ..database.unit_of_work import UnitOfWork
from .factory import MappingStrategyFactory
from .model import BatchValidationResult, CacheStats, InvalidEmployee, ValidEmployee, ValidationResult
from .strategies.base import MappingStrategy

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Maps terminal user ids to employees through the configured strategy.

    Both hits and misses are cached per terminal id for ``cache_ttl_minutes``;
    expired entries are dropped when next read. Lookup errors are reported
    as invalid results and are not cached.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        config: IdentityMappingConfig,
        *,
        strategy: Optional[MappingStrategy] = None,
        factory: Optional[MappingStrategyFactory] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._uow = uow
        self._config = config
        self._strategy = strategy or (factory or MappingStrategyFactory()).create(config)
        self._clock = clock
        self._cache: Dict[str, Tuple[ValidationResult, float]] = {}

    @property
    def strategy_name(self) -> str:
        return self._strategy.name

    def _ttl_seconds(self) -> float:
        return self._config.cache_ttl_minutes * 60.0

    def _cached(self, terminal_user_id: str) -> Optional[ValidationResult]:
        entry = self._cache.get(terminal_user_id)
        if entry is None:
            return None
        result, stored_at = entry
        if self._clock() - stored_at > self._ttl_seconds():
            self._cache.pop(terminal_user_id, None)
            logger.debug("Evicted expired identity cache entry for %s", terminal_user_id)
            return None
        return result

    def resolve(self, terminal_user_id: str) -> ValidationResult:
        if not terminal_user_id or not str(terminal_user_id).strip():
            return ValidationResult.invalid("Terminal user id is required")

        if self._config.cache_results:
            cached = self._cached(terminal_user_id)
            if cached is not None:
                return cached

        try:
            result = self._uow.run(lambda tx: self._strategy.lookup(tx.employees, terminal_user_id))
        except Exception as exc:
            logger.warning("Employee lookup for %s failed: %s", terminal_user_id, exc)
            return ValidationResult.invalid(f"Database lookup failed: {exc}")

        if self._config.cache_results:
            self._cache[terminal_user_id] = (result, self._clock())
        return result

    def resolve_batch(self, terminal_user_ids: Sequence[str]) -> BatchValidationResult:
        batch = BatchValidationResult(total_processed=len(terminal_user_ids))
        size = max(1, self._config.batch_size)

        with ThreadPoolExecutor(max_workers=size, thread_name_prefix="identity") as pool:
            for start in range(0, len(terminal_user_ids), size):
                chunk = list(terminal_user_ids[start : start + size])
                for terminal_user_id, result in zip(chunk, pool.map(self.resolve, chunk)):
                    if result.is_valid and result.employee_id:
                        batch.valid_employees.append(
                            ValidEmployee(
                                terminal_user_id=terminal_user_id,
                                employee_id=result.employee_id,
                                name=result.employee_name or "",
                                email=result.employee_email or "",
                            )
                        )
                    else:
                        batch.invalid_employees.append(
                            InvalidEmployee(
                                terminal_user_id=terminal_user_id,
                                error_message=result.error_message or "Unknown validation error",
                            )
                        )

        logger.info(
            "Validated %d terminal user id(s): %d valid, %d invalid",
            batch.total_processed,
            batch.valid_count,
            batch.invalid_count,
        )
        return batch

    def clear_cache(self) -> None:
        self._cache = {}

    def get_cache_stats(self) -> CacheStats:
        entries = list(self._cache.values())
        if not entries:
            return CacheStats(size=0)
        oldest = min(stored_at for _, stored_at in entries)
        return CacheStats(size=len(entries), oldest_entry_age_seconds=self._clock() - oldest)
