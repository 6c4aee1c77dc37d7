import logging
import time

from medcrm.errors import AuthExpiredError

logger = logging.getLogger(__name__)

MAX_RETRIES_LIMIT = 2
REAUTH_MESSAGE = "Session expired, please sign in again"


class ResilientCaller:
    """Runs one remote operation, recovering once (or twice) from an expired token.

    Only ``AuthExpiredError`` is retried. Callers must make retried writes safe
    to repeat; CRMDatabase does so by upserting on client-generated ids.
    """

    def __init__(self, keeper, max_retries=1, backoff=0.5, sleep=time.sleep):
        self.keeper = keeper
        self.max_retries = max_retries
        self.backoff = backoff
        self._sleep = sleep

    @classmethod
    def from_settings(cls, keeper, settings):
        return cls(keeper, max_retries=settings.max_retries, backoff=settings.retry_backoff)

    def call(self, operation, max_retries=None, label=None):
        if max_retries is None:
            max_retries = self.max_retries
        max_retries = max(0, min(int(max_retries), MAX_RETRIES_LIMIT))
        label = label or getattr(operation, "__name__", "remote call")

        attempts = max_retries + 1
        for attempt in range(1, attempts + 1):
            final = attempt == attempts
            if not self.keeper.ensure_fresh() and final:
                logger.error("%s: no valid session, not calling the backend", label)
                raise AuthExpiredError(REAUTH_MESSAGE)
            try:
                return operation()
            except AuthExpiredError as e:
                if final:
                    logger.error("%s: auth error after %d attempt(s): %s", label, attempt, e)
                    raise
                logger.warning("%s: auth error, refreshing session and retrying (%d/%d)", label, attempt, max_retries)
                self.keeper.force_refresh()
                self._sleep(self.backoff * attempt)
            except Exception as e:
                logger.error("%s failed: %s", label, e)
                raise
