"""Contracts for the profile store and the auth session collaborators."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional

ProfileRecord = Mapping[str, Any]
UpdateCallback = Callable[[ProfileRecord], None]


class Subscription(ABC):
    """Handle for a profile update feed."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivery. Calling cancel() twice is allowed."""
        pass


class ProfileStore(ABC):
    """Persists one profile record per account."""

    @abstractmethod
    async def fetch_profile(self, account_id: str) -> Optional[ProfileRecord]:
        """
        Look up a profile record by account id.

        Returns:
            The full record, or None when the account has no profile

        Raises:
            ProfileStoreError: If the lookup fails
        """
        pass

    @abstractmethod
    async def update_profile(self, account_id: str, fields: Mapping[str, Any]) -> None:
        """
        Apply a partial update to a profile.

        Raises:
            ProfileStoreError: If the update fails or the profile is unknown
        """
        pass

    @abstractmethod
    def subscribe_to_profile_updates(
        self,
        account_id: str,
        on_update: UpdateCallback
    ) -> Subscription:
        """Deliver every committed full record for account_id, in commit order."""
        pass


class AuthSession(ABC):
    """The authentication collaborator, seen from the lifecycle gate."""

    @abstractmethod
    def current_account_id(self) -> Optional[str]:
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass

    @abstractmethod
    async def wait_until_ready(self) -> None:
        """Resolve once auth bootstrap has finished loading."""
        pass
