"""Profile registry service."""

import logging
from datetime import UTC, datetime

from restaurant_ordering_service.auth.row_policies import (
    Caller,
    Operation,
    Table,
    is_allowed,
    is_update_allowed,
)
from restaurant_ordering_service.auth.session_tokens import SessionIdentity
from restaurant_ordering_service.models.catalog_models import Profile, ProfileCreate, ProfileUpdate
from restaurant_ordering_service.observability import traced
from restaurant_ordering_service.observability.metrics import record_authorization_denial
from restaurant_ordering_service.repositories.base_repository import ConditionalWriteError
from restaurant_ordering_service.repositories.catalog_repositories import (
    ProfileRepository,
    RestaurantRepository,
)
from restaurant_ordering_service.services.errors import (
    IntegrityConflictError,
    RowNotFoundError,
    StorageUnavailableError,
    WriteRejectedError,
)
from restaurant_ordering_service.services.policy_lookup import RepositoryParentLookup

logger = logging.getLogger(__name__)

PROFILE_EXISTS = "Profile already exists"
EMAIL_TAKEN = "Email address is already registered"


class ProfileService:
    """Service for the caller's own profile.

    A profile is created on first authentication with a role that can never
    change afterwards. Nobody can see or edit another identity's profile.
    """

    def __init__(
        self,
        profile_repository: ProfileRepository,
        restaurant_repository: RestaurantRepository,
    ) -> None:
        """Initialize the ProfileService.

        Args:
            profile_repository: Repository for profile records
            restaurant_repository: Repository used to resolve parent rows for policies
        """
        self.profile_repository = profile_repository
        self.restaurant_repository = restaurant_repository

    def resolve_caller(self, identity: SessionIdentity) -> Caller:
        """Build the caller for a verified identity, attaching its profile role.

        Args:
            identity: Identity from the session token

        Returns:
            Caller with role set when a profile exists
        """
        profile = self.profile_repository.get_profile(identity.user_id)
        return Caller(
            user_id=identity.user_id,
            role=profile.role if profile else None,
            email=identity.email,
        )

    @traced("get_profile", service_name="ordering-svc")
    async def get_profile(self, caller: Caller) -> Profile:
        """Get the caller's own profile.

        Raises:
            RowNotFoundError: If the caller has no profile yet
        """
        profile = self.profile_repository.get_profile(caller.user_id)
        if profile is None or not is_allowed(
            Table.PROFILES, Operation.SELECT, caller, profile, self._lookup()
        ):
            raise RowNotFoundError(Table.PROFILES.value)
        return profile

    @traced("create_profile", service_name="ordering-svc")
    async def create_profile(
        self, caller: Caller, request: ProfileCreate, email: str | None = None
    ) -> Profile:
        """Create the caller's profile on first authentication.

        Args:
            caller: Authenticated caller
            request: Name and role for the new profile
            email: Email to register, defaulting to the session token's email claim

        Returns:
            The stored profile

        Raises:
            IntegrityConflictError: If the profile exists, the email is taken or missing
            WriteRejectedError: If the insert policy denies the row
            StorageUnavailableError: If the store rejects the write
        """
        email = email or caller.email
        if not email:
            raise IntegrityConflictError("An email address is required to create a profile")

        if self.profile_repository.get_profile(caller.user_id) is not None:
            raise IntegrityConflictError(PROFILE_EXISTS)

        now = datetime.now(UTC)
        profile = Profile(
            id=caller.user_id,
            email=email,
            full_name=request.full_name,
            role=request.role,
            created_at=now,
            updated_at=now,
        )

        if not is_allowed(Table.PROFILES, Operation.INSERT, caller, profile, self._lookup()):
            record_authorization_denial(Table.PROFILES.value, Operation.INSERT.value)
            raise WriteRejectedError()

        if self.profile_repository.find_by_email(profile.email) is not None:
            raise IntegrityConflictError(EMAIL_TAKEN)

        try:
            created = self.profile_repository.create_profile(profile)
        except ConditionalWriteError as e:
            raise IntegrityConflictError(
                PROFILE_EXISTS if 0 in e.failed_actions else EMAIL_TAKEN
            ) from e
        if not created:
            raise StorageUnavailableError("Failed to save profile")

        logger.info(f"Created {profile.role.value} profile {profile.id}")
        return profile

    @traced("update_profile", service_name="ordering-svc")
    async def update_profile(self, caller: Caller, changes: ProfileUpdate) -> Profile:
        """Update the caller's name or email. Role and id never change.

        Raises:
            RowNotFoundError: If the caller has no profile
            IntegrityConflictError: If the new email belongs to another profile
            StorageUnavailableError: If the store rejects the write
        """
        current = await self.get_profile(caller)
        updates = changes.model_dump(exclude_unset=True, exclude_none=True)

        proposed = Profile.model_validate(
            {**current.model_dump(), **updates, "updated_at": datetime.now(UTC)}
        )

        if not is_update_allowed(Table.PROFILES, caller, current, proposed, self._lookup()):
            record_authorization_denial(Table.PROFILES.value, Operation.UPDATE.value)
            raise WriteRejectedError()

        if proposed.email != current.email:
            owner = self.profile_repository.find_by_email(proposed.email)
            if owner is not None and owner.id != current.id:
                raise IntegrityConflictError(EMAIL_TAKEN)

        try:
            saved = self.profile_repository.update_profile(proposed, current)
        except ConditionalWriteError as e:
            if 0 in e.failed_actions:
                raise RowNotFoundError(Table.PROFILES.value) from e
            raise IntegrityConflictError(EMAIL_TAKEN) from e
        if not saved:
            raise StorageUnavailableError("Failed to save profile")

        return proposed

    def _lookup(self) -> RepositoryParentLookup:
        return RepositoryParentLookup(self.restaurant_repository)
