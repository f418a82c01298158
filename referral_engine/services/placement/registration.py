"""
Member registration.

Writes new members into the binary tree, retrying placement when a
concurrent registration wins the same slot.
"""

import secrets
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.business_constants import (
    REFERRAL_CODE_BYTES,
    REFERRAL_CODE_MAX_LENGTH,
)
from referral_engine.config.settings import settings
from referral_engine.models.enums import Position
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.services.base_service import BaseService
from referral_engine.services.placement.resolver import (
    BinaryPlacementResolver,
    Placement,
)
from referral_engine.utils.exceptions import (
    InvalidInputError,
    SlotConflictError,
    is_slot_collision,
)
from referral_engine.validators import normalize_referral_code


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a successful registration."""

    member_id: int
    referral_code: str
    parent_id: int | None
    position: Position | None
    sponsor_id: int | None
    attempts: int

    def to_dict(self) -> dict:
        """Serializable representation."""
        return {
            "member_id": self.member_id,
            "referral_code": self.referral_code,
            "parent_id": self.parent_id,
            "position": self.position.value if self.position else None,
            "sponsor_id": self.sponsor_id,
            "attempts": self.attempts,
        }


class MemberRegistrationService(BaseService):
    """Registers members as roots or under a sponsor's subtree."""

    def __init__(
        self,
        session: AsyncSession,
        resolver: BinaryPlacementResolver | None = None,
        max_attempts: int | None = None,
    ) -> None:
        """
        Initialize registration service.

        Args:
            session: Async database session
            resolver: Placement resolver (built from session if omitted)
            max_attempts: Placement attempts before SlotConflictError
        """
        super().__init__(session)
        self.member_repo = MemberRepository(session)
        self.resolver = resolver or BinaryPlacementResolver(session)
        self.max_attempts = max_attempts or settings.placement_max_attempts

    async def generate_referral_code(self) -> str:
        """
        Generate a referral code nobody owns yet.

        Returns:
            Unique referral code
        """
        while True:
            code = secrets.token_urlsafe(REFERRAL_CODE_BYTES)[:REFERRAL_CODE_MAX_LENGTH]
            # Unlikely collision but safe to check
            if not await self.member_repo.get_by_referral_code(code):
                return code

    async def register_member(
        self,
        sponsor_referral_code: str | None = None,
        display_name: str = "",
    ) -> RegistrationResult:
        """
        Register a member.

        Without a sponsor code the member becomes a root. With one, the
        member is written into the first open slot of the sponsor's subtree.
        Losing a slot race rolls back, re-runs the search against the
        updated tree and tries again.

        Args:
            sponsor_referral_code: Code of the inviting member (optional)
            display_name: Label shown in tree views

        Returns:
            RegistrationResult

        Raises:
            InvalidInputError: Malformed referral code
            NotFoundError: Unknown sponsor code
            SlotConflictError: Every attempt lost its slot race
            SearchExhaustedError: Placement search bound exceeded
        """
        is_valid, code, error = normalize_referral_code(sponsor_referral_code)
        if not is_valid:
            raise InvalidInputError(error or "Invalid referral code")

        sponsor_id = None
        if code is not None:
            sponsor_id = await self.resolver.resolve_sponsor(code)

        for attempt in range(1, self.max_attempts + 1):
            placement: Placement | None = None
            if sponsor_id is not None:
                placement = await self.resolver.place(sponsor_id)

            referral_code = await self.generate_referral_code()

            try:
                member = await self.member_repo.create(
                    referral_code=referral_code,
                    display_name=display_name.strip(),
                    parent_id=placement.parent_id if placement else None,
                    position=placement.position if placement else None,
                )
                result = RegistrationResult(
                    member_id=member.id,
                    referral_code=member.referral_code,
                    parent_id=member.parent_id,
                    position=placement.position if placement else None,
                    sponsor_id=sponsor_id,
                    attempts=attempt,
                )
                await self.commit()
            except IntegrityError as e:
                await self.rollback()
                if placement is None or not (
                    is_slot_collision(e)
                    or await self.member_repo.slot_taken(
                        placement.parent_id, placement.position
                    )
                ):
                    raise

                self.logger.warning(
                    "Placement race lost, retrying",
                    extra={
                        "sponsor_id": sponsor_id,
                        "parent_id": placement.parent_id,
                        "position": placement.position.value,
                        "attempt": attempt,
                    },
                )
                continue
            except BaseException:
                await self.rollback()
                raise

            self.logger.info("Member registered", extra=result.to_dict())
            return result

        self.logger.error(
            "Placement retries exhausted",
            extra={"sponsor_id": sponsor_id, "attempts": self.max_attempts},
        )
        raise SlotConflictError(
            "Could not reserve a tree slot, retry registration",
            sponsor_id=sponsor_id,
            attempts=self.max_attempts,
        )
