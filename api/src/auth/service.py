"""Authentication service layer.

Business logic for:
- Principal registration with per-kind email uniqueness
- Authentication and token issuing
- Admin directory queries and soft deactivation
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import status

from src.auth.models import Principal
from src.auth.permissions import PrincipalKind
from src.auth.schemas import RegisterRequest
from src.auth.security import create_access_token, hash_password, verify_password
from src.auth.validators import normalize_email
from src.config.settings import get_settings
from src.core.exceptions import AuthError, ConflictError, NotFoundError
from src.core.logging import get_logger
from src.core.store import execute, was_applied


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password (deliberately indistinguishable)."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, "invalid_credentials")


class AccountInactiveError(AuthError):
    """Principal matched but has been deactivated."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Account is inactive"):
        super().__init__(message, "account_inactive")


class DuplicateEmailError(ConflictError):
    """Email already registered for this kind."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, "duplicate_email")


class PrincipalNotFoundError(NotFoundError):
    """Principal id does not exist."""

    def __init__(self, message: str = "Principal not found"):
        super().__init__(message, "principal_not_found")


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Credential store: principals, password checks and tokens."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra driver session (with ``aexecute``)
            keyspace: Keyspace name for queries
        """
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._get_principal = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.principals WHERE id = ?"
        )
        self._insert_principal = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.principals
            (id, kind, email, name, password_hash, phone, department, is_active,
             created_at, updated_at, last_login_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_password = self.session.prepare(f"""
            UPDATE {self.keyspace}.principals
            SET password_hash = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_last_login = self.session.prepare(f"""
            UPDATE {self.keyspace}.principals
            SET last_login_at = ?
            WHERE id = ?
        """)
        self._set_principal_active = self.session.prepare(f"""
            UPDATE {self.keyspace}.principals
            SET is_active = ?, updated_at = ?
            WHERE id = ?
        """)

        # Directory (email uniqueness per kind)
        self._claim_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.principals_by_kind
            (kind, email, principal_id, name, department, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._release_email = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.principals_by_kind
            WHERE kind = ? AND email = ?
            IF principal_id = ?
        """)
        self._get_directory_entry = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.principals_by_kind
            WHERE kind = ? AND email = ?
        """)
        self._list_directory = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.principals_by_kind WHERE kind = ?"
        )
        self._set_directory_active = self.session.prepare(f"""
            UPDATE {self.keyspace}.principals_by_kind
            SET is_active = ?
            WHERE kind = ? AND email = ?
        """)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_principal(self, principal_id: UUID) -> Principal | None:
        """Find principal by ID."""
        result = await execute(self.session, self._get_principal, [principal_id])
        row = result.one()
        return Principal.from_row(row) if row else None

    async def get_principal_or_raise(self, principal_id: UUID) -> Principal:
        """Find principal by ID or raise PrincipalNotFoundError."""
        principal = await self.get_principal(principal_id)
        if principal is None:
            raise PrincipalNotFoundError
        return principal

    async def list_principals(self, kind: PrincipalKind) -> list[Principal]:
        """List all principals of a kind, ordered by email."""
        result = await execute(self.session, self._list_directory, [kind.value])
        return [Principal.from_directory_row(row) for row in result]

    async def count_principals(self, kind: PrincipalKind, active_only: bool = True) -> int:
        """Count principals of a kind (single-partition scan)."""
        principals = await self.list_principals(kind)
        if active_only:
            return sum(1 for p in principals if p.is_active)
        return len(principals)

    # ==========================================================================
    # Registration and Login
    # ==========================================================================

    async def register(self, data: RegisterRequest) -> Principal:
        """Register a new principal.

        The conditional insert into ``principals_by_kind`` is the uniqueness
        arbiter: of two concurrent registrations for the same (kind, email)
        exactly one is applied.

        Raises:
            DuplicateEmailError: If the email exists for this kind
        """
        principal = Principal(
            kind=data.kind.value,
            email=normalize_email(data.email),
            name=data.name,
            password_hash=hash_password(data.password),
            phone=data.phone,
            department=data.department if data.kind == PrincipalKind.INSTRUCTOR else None,
            is_active=True,
        )

        claim = await execute(
            self.session,
            self._claim_email,
            [
                principal.kind,
                principal.email,
                principal.id,
                principal.name,
                principal.department,
                True,
                principal.created_at,
            ],
        )
        if not was_applied(claim):
            logger.info("registration_duplicate_email", kind=principal.kind)
            raise DuplicateEmailError

        try:
            await execute(
                self.session,
                self._insert_principal,
                [
                    principal.id,
                    principal.kind,
                    principal.email,
                    principal.name,
                    principal.password_hash,
                    principal.phone,
                    principal.department,
                    principal.is_active,
                    principal.created_at,
                    principal.updated_at,
                    principal.last_login_at,
                ],
            )
        except Exception:
            await execute(
                self.session,
                self._release_email,
                [principal.kind, principal.email, principal.id],
            )
            logger.warning("registration_rolled_back", principal_id=str(principal.id))
            raise

        logger.info(
            "principal_registered",
            principal_id=str(principal.id),
            kind=principal.kind,
        )
        return principal

    async def authenticate(
        self, kind: PrincipalKind, email: str, password: str
    ) -> Principal:
        """Authenticate a principal of the given kind.

        Stamps ``last_login_at`` and transparently upgrades the stored hash
        when needed (new Argon2 parameters, or legacy plaintext when the
        migration flag is enabled).

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AccountInactiveError: Credentials match a deactivated account
        """
        settings = get_settings()

        entry = (
            await execute(
                self.session,
                self._get_directory_entry,
                [kind.value, normalize_email(email)],
            )
        ).one()
        if entry is None:
            raise InvalidCredentialsError

        principal = await self.get_principal(entry.principal_id)
        if principal is None:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(
            password,
            principal.password_hash,
            allow_legacy_plaintext=settings.auth_allow_legacy_plaintext,
        )
        if not is_valid:
            logger.info("login_failed", principal_id=str(principal.id))
            raise InvalidCredentialsError

        if not principal.is_active:
            raise AccountInactiveError

        now = datetime.now(UTC)
        if new_hash:
            await execute(self.session, self._update_password, [new_hash, now, principal.id])
            principal.password_hash = new_hash
            logger.info("password_rehashed", principal_id=str(principal.id))

        await execute(self.session, self._update_last_login, [now, principal.id])
        principal.last_login_at = now

        logger.info("login_succeeded", principal_id=str(principal.id), kind=principal.kind)
        return principal

    def issue_token(self, principal: Principal) -> str:
        """Create an access token for an authenticated principal."""
        return create_access_token(str(principal.id), principal.kind, principal.email)

    # ==========================================================================
    # Admin Operations
    # ==========================================================================

    async def deactivate(self, principal_id: UUID) -> Principal:
        """Soft-deactivate a principal. Records are never deleted.

        Raises:
            PrincipalNotFoundError: If the principal does not exist
        """
        principal = await self.get_principal_or_raise(principal_id)
        now = datetime.now(UTC)

        await execute(self.session, self._set_principal_active, [False, now, principal.id])
        await execute(
            self.session,
            self._set_directory_active,
            [False, principal.kind, principal.email],
        )

        principal.is_active = False
        principal.updated_at = now
        logger.info("principal_deactivated", principal_id=str(principal.id))
        return principal
