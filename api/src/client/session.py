"""The acting user's academy session, resolved once per login."""

from dataclasses import dataclass

import structlog

from .api_client import AcademyClient


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AcademySession:
    """Who is using the academy and whether they administer it."""

    user_id: str
    email: str
    employee_id: int
    employee_name: str
    is_admin: bool

    @classmethod
    async def resolve(cls, client: AcademyClient) -> "AcademySession":
        """Resolve the employee behind the client's access token.

        Raises:
            QueryFailedError: If the user has no employee record.
        """
        data = await client.get_session()
        session = cls(
            user_id=data.user_id,
            email=data.email,
            employee_id=data.employee.id,
            employee_name=f"{data.employee.first_name} {data.employee.last_name}".strip(),
            is_admin=data.is_academy_admin,
        )
        logger.info(
            "academy_session_resolved",
            employee_id=session.employee_id,
            is_admin=session.is_admin,
        )
        return session
