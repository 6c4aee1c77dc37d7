import logging

from medcrm.errors import AccessDeniedError, CRMError, ValidationError, error_message
from medcrm.models import RoleType, parse_enum

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthService:
    """Sign-in, sign-up and profile handling on top of Supabase auth.

    sign_in/sign_up return an error message or None, so forms can show it
    directly.
    """

    def __init__(self, client, keeper, db):
        self._auth = client.auth
        self.keeper = keeper
        self.db = db
        self.profile = None

    @property
    def user_id(self):
        return self.keeper.user_id

    @property
    def is_authenticated(self):
        return self.keeper.session is not None

    @property
    def is_manager_or_admin(self):
        return self.profile is not None and self.profile.is_manager_or_admin

    @property
    def is_admin(self):
        return self.profile is not None and self.profile.is_admin

    def sign_in(self, email, password):
        if not email or not password:
            return "Email and password are required"
        try:
            response = self._auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.warning("Sign-in failed for %s: %s", email, e)
            return error_message(e)
        session = self.keeper.adopt(getattr(response, "session", None))
        if session is None:
            return "Sign-in did not return a session"
        self.load_profile()
        logger.info("Signed in %s", email)
        return None

    def sign_up(self, email, password, full_name, role_type=RoleType.SALES):
        """Creates a user; the profile row comes from a database trigger, the role is set afterwards."""
        if not email or not password or not full_name:
            return "Email, password and full name are required"
        if len(password) < MIN_PASSWORD_LENGTH:
            return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        role_type = parse_enum(RoleType, role_type, "role")
        try:
            response = self._auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"full_name": full_name}},
            })
        except Exception as e:
            logger.warning("Sign-up failed for %s: %s", email, e)
            return error_message(e)

        user = getattr(response, "user", None)
        if user is not None and role_type != RoleType.SALES:
            try:
                self.db.update_profile(user.id, {"role_type": role_type})
            except CRMError as e:
                logger.error("Created %s but could not set role %s: %s", email, role_type.value, e)
                return f"User created, but the role could not be set: {e}"
        return None

    def sign_out(self):
        self.keeper.sign_out()
        self.profile = None

    def load_profile(self):
        if self.user_id is None:
            self.profile = None
            return None
        try:
            self.profile = self.db.fetch_profile(self.user_id)
        except CRMError as e:
            logger.error("Error loading profile: %s", e)
            self.profile = None
        return self.profile

    def update_profile(self, **changes):
        if self.user_id is None:
            return False
        self.db.update_profile(self.user_id, changes)
        self.load_profile()
        return True

    # ---------------------------
    # USER MANAGEMENT (admins only)
    # ---------------------------
    def _require_admin(self, action):
        if not self.is_admin:
            raise AccessDeniedError(f"Only admins can {action}")

    def list_users(self):
        self._require_admin("list users")
        return self.db.fetch_profiles()

    def update_user(self, user_id, full_name=None, role_type=None, role=None, region=None):
        """
        Edits another user's profile.

        Args:
            user_id: Profile to change.
            full_name, role, region: New values; None leaves a field as it is.
            role_type: "sales", "manager" or "admin" (or the RoleType member).

        Returns:
            bool: True once the backend accepted the change.
        """
        self._require_admin("edit users")
        changes = {}
        if full_name is not None:
            if not full_name.strip():
                raise ValidationError("full name is required")
            changes["full_name"] = full_name.strip()
        if role_type is not None:
            changes["role_type"] = parse_enum(RoleType, role_type, "role")
        if role is not None:
            changes["role"] = role
        if region is not None:
            changes["region"] = region or None
        if not changes:
            return True
        self.db.update_profile(user_id, changes)
        logger.info("Updated user %s: %s", user_id, ", ".join(sorted(changes)))
        if user_id == self.user_id:
            self.load_profile()
        return True

    def delete_user(self, user_id):
        self._require_admin("delete users")
        if user_id == self.user_id:
            raise ValidationError("You cannot delete your own account")
        self.db.delete_profile(user_id)
        logger.info("Deleted profile %s", user_id)
        return True
