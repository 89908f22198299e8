"""Copy registration details onto an existing member profile."""
import logging
from datetime import UTC, datetime

from sqlmodel import Session, select

from attendance.models import GradeLevel, UserProfile, normalize_email

logger = logging.getLogger(__name__)

# Years left before graduation for each undergraduate standing
YEARS_REMAINING = {
    GradeLevel.Freshman: 3,
    GradeLevel.Sophomore: 2,
    GradeLevel.Junior: 1,
    GradeLevel.Senior: 0,
}


def estimate_graduation_year(grade_level: GradeLevel | None, today: datetime | None = None) -> int | None:
    """Guess a graduation year from class standing.

    Returns None for graduate students and when no standing was given.
    """
    if grade_level not in YEARS_REMAINING:
        return None
    year = (today or datetime.now(UTC)).year
    return year + YEARS_REMAINING[grade_level]


def update_profile_from_registration(
    session: Session,
    contact_email: str,
    name: str | None = None,
    major: str | None = None,
    grade_level: GradeLevel | None = None,
    phone: str | None = None,
) -> bool:
    """
    Fill in a member's profile from their registration form.

    Only fields the attendee actually supplied are written, and only when a
    profile already exists for the email. Returns True if a profile changed.
    """
    graduation_year = estimate_graduation_year(grade_level)
    if not any([name, major, graduation_year, phone]):
        return False

    profile = session.exec(
        select(UserProfile).where(UserProfile.email == normalize_email(contact_email))
    ).first()
    if profile is None:
        return False

    if name:
        profile.name = name
    if major:
        profile.major = major
    if graduation_year:
        profile.graduation_year = graduation_year
    if phone:
        profile.phone = phone
    profile.updated_at = datetime.now(UTC)

    session.add(profile)
    session.commit()
    logger.debug(f"Updated profile for {profile.email} from registration")
    return True
