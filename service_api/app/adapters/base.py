"""
Common plumbing for boto3-backed adapters.
"""

import asyncio
import functools
from typing import Any, Optional, TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError

from shared.errors import StoreUnavailable
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class AwsAdapter:
    """Runs blocking boto3 calls off the event loop and maps their errors."""

    backend: str = "aws"

    def __init__(self, client: Any, *, metrics: Optional["MetricsCollector"] = None):
        self.client = client
        self.metrics = metrics
        self.logger = get_logger(f"api.{self.backend}")

    async def _call(self, operation: str, **params) -> Any:
        """Invoke ``client.<operation>(**params)`` in the default executor.

        Raises:
            StoreUnavailable: on any botocore client or transport error
        """
        method = getattr(self.client, operation)
        loop = asyncio.get_running_loop()

        try:
            if self.metrics:
                with self.metrics.time_operation(
                    "backend_operation_duration_seconds",
                    backend=self.backend,
                    operation=operation,
                ):
                    return await loop.run_in_executor(None, functools.partial(method, **params))
            return await loop.run_in_executor(None, functools.partial(method, **params))
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"{self.backend} {operation} error", error=str(e))
            raise StoreUnavailable(
                self.backend,
                f"{operation} failed",
                {"operation": operation, "error": str(e)},
            )
