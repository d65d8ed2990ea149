import logging
from typing import Any, Dict, List, Optional

from numberdesk.api.admin import AdminAPI
from numberdesk.errors import GatewayError
from numberdesk.notify import Notifier
from numberdesk.outcome import Outcome

from .models import LoginResult, Profile, ProfileOutcome, ProfileOutcomeStatus

logger = logging.getLogger(__name__)


def _profile_id_from(result: Any) -> Optional[int]:
    if not isinstance(result, dict):
        return None
    if isinstance(result.get("profile"), dict):
        return result["profile"].get("id")
    return result.get("id")


def _parse_profiles(items: Any) -> List[Profile]:
    if not isinstance(items, list):
        logger.warning("expected a list of profiles, got %s", type(items).__name__)
        return []
    profiles = []
    for item in items:
        try:
            profiles.append(Profile.model_validate(item))
        except ValueError as e:
            ident = item.get("id") if isinstance(item, dict) else type(item).__name__
            logger.warning("skipping malformed profile %s: %s", ident, e)
    return profiles


def _parse_login_result(data: Any) -> Optional[LoginResult]:
    if not isinstance(data, dict):
        return None
    try:
        return LoginResult.model_validate(data)
    except ValueError as e:
        logger.warning("unreadable login result %r: %s", data, e)
        return None


def _login_result_from(result: Any) -> Optional[LoginResult]:
    if not isinstance(result, dict):
        return None
    return _parse_login_result(result.get("login_result"))


class ProfileRegistry:
    """
    Upstream credential profiles. The backend is authoritative: every
    mutation is followed by a full re-read, never a local merge. That
    includes the active flag, which the backend keeps exclusive.
    """

    def __init__(self, api: AdminAPI, notifier: Notifier):
        self.api = api
        self.notifier = notifier
        self.profiles: List[Profile] = []

    @property
    def active_profile(self) -> Optional[Profile]:
        return next((p for p in self.profiles if p.is_active), None)

    def get(self, profile_id: int) -> Optional[Profile]:
        return next((p for p in self.profiles if p.id == profile_id), None)

    async def refresh(self) -> bool:
        try:
            data = await self.api.get_profiles()
        except GatewayError as e:
            logger.info("profile refresh failed: %s", e.message)
            return False
        self.profiles = _parse_profiles(data if data is not None else [])
        self._check_exclusive_active()
        return True

    async def list(self) -> List[Profile]:
        await self.refresh()
        return list(self.profiles)

    async def fetch_active(self) -> Optional[Profile]:
        try:
            data = await self.api.get_active_profile()
        except GatewayError:
            return None
        if not isinstance(data, dict) or "id" not in data:
            return None
        parsed = _parse_profiles([data])
        return parsed[0] if parsed else None

    async def create(self, name: str, auth_token: str) -> ProfileOutcome:
        if not name.strip() or not auth_token.strip():
            return self._rejected("Please fill in all fields")

        try:
            # The token is sent exactly as entered.
            result = await self.api.create_profile({"name": name, "auth_token": auth_token})
        except GatewayError as e:
            return self._failed("Failed to create profile", e)

        await self.refresh()
        return self._saved(result, verb="created", login_expected=True)

    async def update(self, profile_id: int, name: Optional[str] = None, auth_token: Optional[str] = None) -> ProfileOutcome:
        data: Dict[str, str] = {}
        if name is not None:
            if not name.strip():
                return self._rejected("Profile name cannot be empty")
            data["name"] = name
        if auth_token is not None:
            if not auth_token.strip():
                return self._rejected("Auth token cannot be empty")
            data["auth_token"] = auth_token
        if not data:
            return self._rejected("Nothing to update")

        try:
            result = await self.api.update_profile(profile_id, data)
        except GatewayError as e:
            return self._failed("Failed to update profile", e)

        await self.refresh()
        return self._saved(result, verb="updated", login_expected=False)

    async def remove(self, profile_id: int) -> Outcome:
        # Whether the active profile may be deleted is the backend's call.
        try:
            await self.api.delete_profile(profile_id)
        except GatewayError as e:
            return Outcome.failure(f"Failed to delete profile: {e.message}")

        await self.refresh()
        self.notifier.success("Profile deleted successfully")
        return Outcome.success("Profile deleted successfully")

    async def activate(self, profile_id: int) -> Outcome:
        try:
            await self.api.activate_profile(profile_id)
        except GatewayError as e:
            return Outcome.failure(f"Failed to activate profile: {e.message}")

        # The previously active profile flips server-side; only a re-read shows it.
        await self.refresh()
        self.notifier.success("Profile activated successfully")
        return Outcome.success("Profile activated successfully", data=self.active_profile)

    async def login(self, profile_id: int) -> Outcome:
        """Retry the upstream login for a profile. Does not change which profile is active."""
        try:
            result = await self.api.login_profile(profile_id)
        except GatewayError as e:
            return Outcome.failure(f"Login failed: {e.message}")

        login = _parse_login_result(result) or LoginResult()
        if not login.success:
            message = login.message or "Login failed"
            self.notifier.error(message)
            await self.refresh()
            return Outcome.failure(message)

        await self.refresh()
        self.notifier.success("Login successful!")
        return Outcome.success(login.message or "Login successful!", data=self.get(profile_id))

    def _rejected(self, message: str) -> ProfileOutcome:
        self.notifier.error(message)
        return ProfileOutcome(status=ProfileOutcomeStatus.FAILED, message=message)

    @staticmethod
    def _failed(prefix: str, error: GatewayError) -> ProfileOutcome:
        # The gateway has already surfaced the backend's reason.
        return ProfileOutcome(status=ProfileOutcomeStatus.FAILED, message=f"{prefix}: {error.message}")

    def _saved(self, result: Any, verb: str, login_expected: bool) -> ProfileOutcome:
        login = _login_result_from(result)
        profile_id = _profile_id_from(result)
        profile = self.get(profile_id) if profile_id is not None else None

        if login is None and not login_expected:
            status = ProfileOutcomeStatus.SAVED
            message = f"Profile {verb} successfully"
        elif login is not None and login.success:
            status = ProfileOutcomeStatus.LOGGED_IN
            message = f"Profile {verb} and logged in successfully!"
        else:
            status = ProfileOutcomeStatus.LOGIN_FAILED
            reason = login.message if login is not None and login.message else "Unknown error"
            message = f"Profile {verb} but login failed: {reason}"

        # Saving worked either way, so this is reported as a success.
        self.notifier.success(message)
        return ProfileOutcome(status=status, message=message, profile=profile, login_result=login)

    def _check_exclusive_active(self) -> None:
        active = [p.id for p in self.profiles if p.is_active]
        if len(active) > 1:
            logger.warning("backend reports %d active profiles: %s", len(active), active)
