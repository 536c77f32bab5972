"""
Provisioning service.

Creates exactly one Account and Profile per external identity. The pair
is inserted in a single transaction; the unique constraint on
external_ref decides concurrent duplicate registrations and the losing
caller returns the winner's account.
"""

import secrets
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.config.business_constants import (
    DISPLAY_HANDLE_MAX_ATTEMPTS,
    DISPLAY_HANDLE_MAX_LENGTH,
    REFERRAL_CODE_ALPHABET,
)
from earnhub.config.settings import settings
from earnhub.models.account import Account
from earnhub.repositories.account_repository import AccountRepository
from earnhub.repositories.profile_repository import ProfileRepository
from earnhub.services.base_service import BaseService, log_operation, transaction
from earnhub.services.plan_catalog_service import PlanCatalogService
from earnhub.utils.datetime_utils import operative_day
from earnhub.utils.exceptions import ConflictError
from earnhub.validators import normalize_display_handle, validate_external_ref


class ProvisioningService(BaseService):
    """Account provisioning for new external identities."""

    def __init__(
        self,
        session: AsyncSession,
        trial_duration_days: int | None = None,
        trial_plan_code: str | None = None,
        referral_code_length: int | None = None,
        max_attempts: int | None = None,
        **kwargs,
    ) -> None:
        """
        Initialize provisioning service.

        Args:
            session: Database session
            trial_duration_days: Override for settings.trial_duration_days
            trial_plan_code: Override for settings.trial_plan_code
            referral_code_length: Override for settings.referral_code_length
            max_attempts: Override for settings.referral_code_max_attempts
        """
        super().__init__(session, **kwargs)
        self.account_repo = AccountRepository(session)
        self.profile_repo = ProfileRepository(session)
        self.catalog = PlanCatalogService(
            session, trial_plan_code=trial_plan_code, **kwargs
        )
        self.trial_duration_days = (
            settings.trial_duration_days
            if trial_duration_days is None
            else trial_duration_days
        )
        self.referral_code_length = referral_code_length or settings.referral_code_length
        self.max_attempts = max(
            max_attempts or settings.referral_code_max_attempts,
            DISPLAY_HANDLE_MAX_ATTEMPTS,
        )

    @log_operation
    async def provision(
        self,
        external_ref: str,
        display_name_hint: str | None = None,
        referral_code: str | None = None,
    ) -> Account:
        """
        Get or create the account of an external identity.

        Args:
            external_ref: External identity reference
            display_name_hint: Source for the display handle
            referral_code: Referral code of the inviting account

        Returns:
            The identity's Account (new or existing)

        Raises:
            ValueError: If external_ref is invalid
            ConflictError: If the existing account does not match the request
        """
        is_valid, external_ref, error = validate_external_ref(external_ref)
        if not is_valid:
            raise ValueError(error)

        existing = await self.account_repo.get_by_external_ref(external_ref)
        if existing:
            return await self._check_existing(existing, referral_code)

        referrer_id = await self._resolve_referrer(referral_code)
        base_handle = normalize_display_handle(display_name_hint)

        for attempt in range(self.max_attempts):
            handle = await self._pick_handle(base_handle, attempt)
            code = self.generate_referral_code()

            try:
                account = await self._create_account(
                    external_ref, handle, code, referrer_id
                )
            except IntegrityError:
                # Rolled back: either a concurrent registration won or a
                # handle/code collided
                existing = await self.account_repo.get_by_external_ref(external_ref)
                if existing:
                    self.logger.info(
                        f"Concurrent registration for {external_ref}, "
                        f"returning account {existing.id}"
                    )
                    return await self._check_existing(existing, referral_code)

                self.logger.debug(
                    f"Handle or referral code collision on attempt "
                    f"{attempt + 1}/{self.max_attempts}",
                    extra={"handle": handle},
                )
                continue

            self.logger.info(
                "Account provisioned",
                extra={
                    "account_id": account.id,
                    "external_ref": external_ref,
                    "plan_id": account.plan_id,
                    "has_referrer": referrer_id is not None,
                },
            )
            return account

        raise ConflictError(
            f"Could not allocate a unique handle and referral code for {external_ref}",
            external_ref=external_ref,
        )

    def generate_referral_code(self) -> str:
        """Generate a random uppercase referral code."""
        return "".join(
            secrets.choice(REFERRAL_CODE_ALPHABET)
            for _ in range(self.referral_code_length)
        )

    @transaction
    async def _create_account(
        self,
        external_ref: str,
        display_handle: str,
        referral_code: str,
        referrer_id: int | None,
    ) -> Account:
        """Insert Account and Profile as one unit of work."""
        plan = await self.catalog.get_default_plan()
        today = operative_day(self.clock())

        account = await self.account_repo.create(
            external_ref=external_ref,
            display_handle=display_handle,
            plan_id=plan.id,
            daily_task_quota=plan.daily_task_quota,
            referral_code=referral_code,
            referred_by_id=referrer_id,
            is_active=True,
        )

        trial_fields = {}
        if plan.is_trial:
            trial_fields = {
                "trial_active": True,
                "trial_start_date": today,
                "trial_end_date": today + timedelta(days=self.trial_duration_days),
            }

        await self.profile_repo.create(
            account_id=account.id,
            tasks_completed_today=0,
            last_reset_date=today,
            **trial_fields,
        )
        return account

    async def _check_existing(
        self, account: Account, referral_code: str | None
    ) -> Account:
        """
        Verify an existing account matches the registration request.

        Raises:
            ConflictError: If the profile is missing or the request names
                a different referrer
        """
        profile = await self.profile_repo.get_by_account_id(account.id)
        if not profile:
            raise ConflictError(
                f"Account {account.id} for {account.external_ref} has no profile",
                account_id=account.id,
            )

        if referral_code:
            referrer = await self.account_repo.get_by_referral_code(referral_code)
            if referrer and referrer.id != account.referred_by_id:
                raise ConflictError(
                    f"Account {account.id} is already linked to referrer "
                    f"{account.referred_by_id}, request names {referrer.id}",
                    account_id=account.id,
                )

        return account

    async def _resolve_referrer(self, referral_code: str | None) -> int | None:
        """Resolve a referral code; unknown codes are ignored."""
        if not referral_code:
            return None

        referrer = await self.account_repo.get_by_referral_code(referral_code.strip())
        if not referrer:
            self.logger.warning(
                f"Unknown referral code {referral_code!r}, registering without referrer"
            )
            return None
        return referrer.id

    async def _pick_handle(self, base_handle: str, attempt: int) -> str:
        """Use the base handle when free, otherwise add a numeric suffix."""
        if attempt == 0 and not await self.account_repo.handle_exists(base_handle):
            return base_handle

        suffix = f"{secrets.randbelow(10_000):04d}"
        prefix = base_handle[: DISPLAY_HANDLE_MAX_LENGTH - len(suffix) - 1]
        return f"{prefix}_{suffix}"
