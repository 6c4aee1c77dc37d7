import logging
import time

from medcrm.errors import is_auth_failure
from medcrm.models import Session

logger = logging.getLogger(__name__)


class SessionKeeper:
    """
    Keeps the Supabase access token usable with as few auth round-trips as possible.

    A check queries ``auth.get_session()`` and refreshes when the token expires
    within ``refresh_threshold`` seconds. Checks inside ``check_interval`` of the
    previous one return the cached answer. ``tick`` (periodic), the visibility
    and the online triggers all run the same check; none of them forces a refresh.

    Args:
        client: A Supabase client (only ``client.auth`` is used).
        preferences: PreferenceStore wiped together with the session on sign-out.
        clock: Monotonic clock for throttling.
        wall_clock: Epoch-seconds clock compared against ``expires_at``.
    """

    def __init__(self, client, preferences=None, check_interval=60.0, refresh_threshold=120.0,
                 keepalive_interval=600.0, clock=time.monotonic, wall_clock=time.time):
        self._auth = client.auth
        self._preferences = preferences
        self.check_interval = check_interval
        self.refresh_threshold = refresh_threshold
        self.keepalive_interval = keepalive_interval
        self._clock = clock
        self._wall_clock = wall_clock
        self._subscription = None
        self.session = None
        self._last_check = None
        self._last_valid = False
        self._last_tick = None

    @classmethod
    def from_settings(cls, client, settings, preferences=None):
        return cls(
            client,
            preferences=preferences,
            check_interval=settings.session_check_interval,
            refresh_threshold=settings.refresh_threshold,
            keepalive_interval=settings.keepalive_interval,
        )

    @property
    def user_id(self):
        return self.session.subject_id if self.session else None

    def ensure_fresh(self):
        now = self._clock()
        if self._last_check is not None and now - self._last_check < self.check_interval:
            return self._last_valid
        return self._check(now)

    def force_refresh(self):
        return self._refresh(self._clock())

    # ---------------------------
    # TRIGGERS
    # ---------------------------
    def tick(self):
        """Periodic keepalive. Returns None when the interval has not elapsed yet."""
        now = self._clock()
        if self._last_tick is not None and now - self._last_tick < self.keepalive_interval:
            return None
        self._last_tick = now
        return self.ensure_fresh()

    def on_visibility_regained(self):
        return self.ensure_fresh()

    def on_network_restored(self):
        # the cached answer predates the outage, so skip the throttle
        return self._check(self._clock())

    # ---------------------------
    # SESSION LIFECYCLE
    # ---------------------------
    def adopt(self, raw_session):
        """Takes over a session obtained by sign-in or an auth-state event."""
        session = Session.from_auth(raw_session)
        self._remember(session, session is not None, self._clock())
        return session

    def restore(self, refresh_token):
        """Re-establishes a session from a persisted refresh token (login cookie)."""
        if not refresh_token:
            return False
        now = self._clock()
        try:
            response = self._auth.refresh_session(refresh_token)
        except Exception as e:
            logger.warning("Could not restore session: %s", e)
            self._remember(None, False, now)
            return False
        session = Session.from_auth(getattr(response, "session", None))
        self._remember(session, session is not None, now)
        return session is not None

    def listen(self):
        """Mirrors backend auth-state events (token refreshed, signed out) into the keeper."""
        if self._subscription is None:
            self._subscription = self._auth.on_auth_state_change(self._on_auth_event)
        return self._subscription

    def sign_out(self):
        try:
            self._auth.sign_out()
        except Exception as e:
            logger.error("Backend sign-out failed: %s", e)
        finally:
            self._clear_local()
        logger.info("Signed out")

    # ---------------------------
    # INTERNALS
    # ---------------------------
    def _on_auth_event(self, event, raw_session):
        if str(event).upper().endswith("SIGNED_OUT"):
            logger.info("Signed out by the backend")
            self._clear_local()
            return
        if raw_session is not None:
            self.adopt(raw_session)

    def _clear_local(self):
        self.session = None
        self._last_check = None
        self._last_valid = False
        self._last_tick = None
        if self._preferences is not None:
            self._preferences.clear()

    def _remember(self, session, valid, now):
        self.session = session
        self._last_valid = valid
        self._last_check = now

    def _check(self, now):
        self._last_check = now
        try:
            raw = self._auth.get_session()
        except Exception as e:
            if is_auth_failure(e):
                logger.error("Session error: %s", e)
                self._remember(None, False, now)
                return False
            # Not an auth answer; let the call go out and fail on its own terms.
            logger.error("Error checking session: %s", e)
            self._last_valid = True
            return True

        session = Session.from_auth(raw)
        if session is None:
            logger.warning("No active session")
            self._remember(None, False, now)
            return False

        left = session.seconds_left(self._wall_clock())
        if left is not None and left < self.refresh_threshold:
            logger.info("Token expires in %ss, refreshing", int(left))
            return self._refresh(now)

        self._remember(session, True, now)
        return True

    def _refresh(self, now):
        try:
            response = self._auth.refresh_session()
        except Exception as e:
            logger.error("Failed to refresh session: %s", e)
            self._remember(self.session, False, now)
            return False
        session = Session.from_auth(getattr(response, "session", None))
        if session is None:
            logger.error("Refresh returned no session")
            self._remember(None, False, now)
            return False
        logger.info("Session refreshed")
        self._remember(session, True, now)
        return True
