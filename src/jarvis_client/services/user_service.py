"""User profile service."""

import logging
from typing import Any, Dict

from ..core.errors import ValidationError
from ..models.user import TokenUsage, UserProfile
from .base import BaseService

logger = logging.getLogger(__name__)

USER_PROFILE_PATH = "/api/v1/auth/me"
CHANGE_PASSWORD_PATH = "/api/v1/user/change-password"
USAGE_PATH = "/api/v1/tokens/usage"

METADATA_KINDS = ("client", "server", "client_read_only")


class UserService(BaseService):
    """Read and update the signed-in user's profile."""

    async def get_current_user(self) -> UserProfile:
        logger.info("Getting current user profile")
        data = await self.executor.get(
            self.session.api_url(USER_PROFILE_PATH),
            operation="get user profile",
        )
        data = self.expect_object(data, "get user profile")
        with self.parsing("get user profile"):
            return UserProfile.model_validate(data)

    async def update_profile(self, data: Dict[str, Any]) -> None:
        if not data:
            raise ValidationError("Nothing to update", field="profile")
        logger.info(f"Updating user profile fields: {sorted(data)}")
        await self.executor.patch(
            self.session.api_url(USER_PROFILE_PATH),
            json=data,
            operation="update user profile",
        )

    async def change_password(self, current_password: str, new_password: str) -> None:
        if not new_password:
            raise ValidationError("new_password must not be empty", field="new_password")
        logger.info("Changing user password")
        await self.executor.post(
            self.session.api_url(CHANGE_PASSWORD_PATH),
            json={"current_password": current_password, "new_password": new_password},
            operation="change password",
        )

    async def update_metadata(self, kind: str, metadata: Dict[str, Any]) -> None:
        """Update one of the user's metadata blocks."""
        if kind not in METADATA_KINDS:
            raise ValidationError(
                f"Invalid metadata kind '{kind}'. Valid kinds: {', '.join(METADATA_KINDS)}",
                field="kind",
            )
        logger.info(f"Updating user {kind} metadata")
        await self.update_profile({f"{kind}_metadata": metadata})

    async def get_usage(self) -> TokenUsage:
        data = await self.executor.get(
            self.session.api_url(USAGE_PATH),
            operation="get token usage",
        )
        data = self.expect_object(data or {}, "get token usage")
        with self.parsing("get token usage"):
            return TokenUsage.model_validate(data)
