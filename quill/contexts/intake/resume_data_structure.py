"""
Résumé Data Structures

Immutable, self-validating value objects for résumé content, shaped after the
JSON Resume schema (https://jsonresume.org/schema). Every record validates its own
fields in ``__post_init__`` and raises ``RecordValidationError`` listing every
problem it found, keyed by the JSON field name so the parser can report dotted
paths such as ``work[1].endDate``.

List sections are tuples and keep the order they were given in. Nothing here
sorts; rendering relies on that.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from quill.exceptions import FieldError

# Field length limits
MAX_FULL_NAME_LENGTH = 100
MAX_LABEL_LENGTH = 100
MAX_SUMMARY_LENGTH = 600
MAX_POSITION_LENGTH = 200
MAX_ORGANIZATION_LENGTH = 100
MAX_SHORT_TEXT_LENGTH = 100
MAX_ADDRESS_LENGTH = 200
MAX_HIGHLIGHT_LENGTH = 500
MAX_KEYWORD_LENGTH = 50
MAX_EMAIL_LENGTH = 254
MAX_PHONE_LENGTH = 40
MAX_URL_LENGTH = 2048

# Collection limits keep compile time bounded
MAX_SECTION_ITEMS = 50
MAX_LIST_ITEMS = 30

EMAIL_REGEX = re.compile(r"^[A-Za-z0-9._%+\-']+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$")
PHONE_REGEX = re.compile(r"^[0-9+().\-/ x]*[0-9][0-9+().\-/ x]*$")
DATE_REGEX = re.compile(r"^(?P<year>\d{4})(?:-(?P<month>\d{2})(?:-(?P<day>\d{2}))?)?$")
URL_FORBIDDEN_CHARS = set(' \t\r\n\\{}^`<>"')
URL_SCHEMES = ("http", "https")


class RecordValidationError(ValueError):
    """
    Raised by a record's ``__post_init__`` when one or more fields are invalid.

    Attributes:
        errors: FieldErrors relative to the record (field names as in JSON)
    """

    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__("; ".join(str(e) for e in errors))


@dataclass(frozen=True, order=True)
class PartialDate:
    """
    ISO date with optional month and day ('2020', '2020-03', '2020-03-15').

    Ordering compares (year, month, day) with missing parts treated as 0,
    which is enough to check that an end date does not precede its start.
    """

    year: int
    month: int = 0
    day: int = 0

    @classmethod
    def parse(cls, raw: str) -> "PartialDate":
        """Parse an ISO partial date, raising ValueError on malformed input."""
        match = DATE_REGEX.match(raw.strip())
        if not match:
            raise ValueError(f"Invalid date '{raw}', expected YYYY, YYYY-MM or YYYY-MM-DD")

        year = int(match.group("year"))
        month = int(match.group("month") or 0)
        day = int(match.group("day") or 0)

        if match.group("month") and not 1 <= month <= 12:
            raise ValueError(f"Invalid month in date '{raw}'")
        if match.group("day") and not 1 <= day <= 31:
            raise ValueError(f"Invalid day in date '{raw}'")

        return cls(year=year, month=month, day=day)

    @property
    def has_month(self) -> bool:
        return self.month != 0


class FieldChecks:
    """Accumulates field errors for one record so all problems are reported at once."""

    def __init__(self):
        self.errors: List[FieldError] = []

    def fail(self, name: str, message: str) -> None:
        self.errors.append(FieldError(name, message))

    def text(self, name: str, value: Optional[str], max_length: int, required: bool = False):
        if value is None or not value.strip():
            if required:
                self.fail(name, "must not be blank")
            return
        if len(value) > max_length:
            self.fail(name, f"cannot exceed {max_length} characters")

    def email(self, name: str, value: Optional[str]):
        if not value:
            return
        if len(value) > MAX_EMAIL_LENGTH or not EMAIL_REGEX.match(value):
            self.fail(name, "is not a valid email address")

    def phone(self, name: str, value: Optional[str]):
        if not value:
            return
        if len(value) > MAX_PHONE_LENGTH or not PHONE_REGEX.match(value):
            self.fail(name, "is not a valid phone number")

    def url(self, name: str, value: Optional[str]):
        if not value:
            return
        if len(value) > MAX_URL_LENGTH:
            self.fail(name, f"cannot exceed {MAX_URL_LENGTH} characters")
            return
        if any(ch in URL_FORBIDDEN_CHARS for ch in value):
            self.fail(name, "contains characters not allowed in a URL")
            return
        parsed = urlparse(value)
        if parsed.scheme.lower() not in URL_SCHEMES:
            self.fail(name, "URL scheme must be http or https")
        elif not parsed.netloc:
            self.fail(name, "URL must contain a valid host")

    def date(self, name: str, value: Optional[str]) -> Optional[PartialDate]:
        if not value:
            return None
        try:
            return PartialDate.parse(value)
        except ValueError as e:
            self.fail(name, str(e))
            return None

    def date_range(self, start: Optional[str], end: Optional[str], start_name="startDate", end_name="endDate"):
        start_date = self.date(start_name, start)
        end_date = self.date(end_name, end)
        if start_date and end_date and end_date < start_date:
            self.fail(end_name, f"cannot be before {start_name}")

    def items(self, name: str, values: Tuple[str, ...], max_length: int, max_items: int = MAX_LIST_ITEMS):
        if len(values) > max_items:
            self.fail(name, f"cannot contain more than {max_items} entries")
        for i, value in enumerate(values):
            self.text(f"{name}[{i}]", value, max_length, required=True)

    def section(self, name: str, values: tuple):
        if len(values) > MAX_SECTION_ITEMS:
            self.fail(name, f"cannot contain more than {MAX_SECTION_ITEMS} entries")

    def raise_if_any(self):
        if self.errors:
            raise RecordValidationError(self.errors)


@dataclass(frozen=True)
class Location:
    """Postal location of the candidate. All parts optional."""

    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    country_code: Optional[str] = None
    region: Optional[str] = None

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("address", self.address, MAX_ADDRESS_LENGTH)
        checks.text("postalCode", self.postal_code, MAX_SHORT_TEXT_LENGTH)
        checks.text("city", self.city, MAX_SHORT_TEXT_LENGTH)
        checks.text("countryCode", self.country_code, MAX_SHORT_TEXT_LENGTH)
        checks.text("region", self.region, MAX_SHORT_TEXT_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Profile:
    """Social profile link (network + username, optional URL)."""

    network: str
    username: Optional[str] = None
    url: Optional[str] = None

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("network", self.network, MAX_SHORT_TEXT_LENGTH, required=True)
        checks.text("username", self.username, MAX_SHORT_TEXT_LENGTH)
        checks.url("url", self.url)
        checks.raise_if_any()


@dataclass(frozen=True)
class Basics:
    """
    Personal information heading the résumé.

    Attributes:
        name: Full name, 1-100 characters
        label: Professional title (e.g. 'Software Engineer')
        email: Contact email
        phone: Contact phone
        url: Personal website
        summary: Professional summary, at most 600 characters
        location: Postal location
        profiles: Social profiles in the order given
    """

    name: str
    label: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    url: Optional[str] = None
    summary: Optional[str] = None
    location: Optional[Location] = None
    profiles: Tuple[Profile, ...] = ()

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("name", self.name, MAX_FULL_NAME_LENGTH, required=True)
        checks.text("label", self.label, MAX_LABEL_LENGTH)
        checks.email("email", self.email)
        checks.phone("phone", self.phone)
        checks.url("url", self.url)
        checks.text("summary", self.summary, MAX_SUMMARY_LENGTH)
        checks.section("profiles", self.profiles)
        checks.raise_if_any()


@dataclass(frozen=True)
class WorkExperience:
    """
    One employment record. An empty end date means the role is ongoing.

    Attributes:
        name: Company name, 1-100 characters (JSON key "name" or "company")
        position: Job title, at most 200 characters
        start_date: ISO partial date
        end_date: ISO partial date, not before start_date
        highlights: Achievements in the order given
    """

    name: str
    position: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    url: Optional[str] = None
    location: Optional[str] = None
    summary: Optional[str] = None
    highlights: Tuple[str, ...] = ()

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("name", self.name, MAX_ORGANIZATION_LENGTH, required=True)
        checks.text("position", self.position, MAX_POSITION_LENGTH)
        checks.date_range(self.start_date, self.end_date)
        checks.url("url", self.url)
        checks.text("location", self.location, MAX_SHORT_TEXT_LENGTH)
        checks.text("summary", self.summary, MAX_SUMMARY_LENGTH)
        checks.items("highlights", self.highlights, MAX_HIGHLIGHT_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Volunteer:
    """One volunteering record."""

    organization: str
    position: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    url: Optional[str] = None
    summary: Optional[str] = None
    highlights: Tuple[str, ...] = ()

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("organization", self.organization, MAX_ORGANIZATION_LENGTH, required=True)
        checks.text("position", self.position, MAX_POSITION_LENGTH)
        checks.date_range(self.start_date, self.end_date)
        checks.url("url", self.url)
        checks.text("summary", self.summary, MAX_SUMMARY_LENGTH)
        checks.items("highlights", self.highlights, MAX_HIGHLIGHT_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Education:
    """One education record (institution, area of study, degree type)."""

    institution: str
    area: Optional[str] = None
    study_type: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    score: Optional[str] = None
    url: Optional[str] = None
    courses: Tuple[str, ...] = ()

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("institution", self.institution, MAX_ORGANIZATION_LENGTH, required=True)
        checks.text("area", self.area, MAX_SHORT_TEXT_LENGTH)
        checks.text("studyType", self.study_type, MAX_SHORT_TEXT_LENGTH)
        checks.date_range(self.start_date, self.end_date)
        checks.text("score", self.score, MAX_KEYWORD_LENGTH)
        checks.url("url", self.url)
        checks.items("courses", self.courses, MAX_SHORT_TEXT_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Award:
    title: str
    date: Optional[str] = None
    awarder: Optional[str] = None
    summary: Optional[str] = None

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("title", self.title, MAX_POSITION_LENGTH, required=True)
        checks.date("date", self.date)
        checks.text("awarder", self.awarder, MAX_ORGANIZATION_LENGTH)
        checks.text("summary", self.summary, MAX_SUMMARY_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Certificate:
    name: str
    date: Optional[str] = None
    issuer: Optional[str] = None
    url: Optional[str] = None

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("name", self.name, MAX_POSITION_LENGTH, required=True)
        checks.date("date", self.date)
        checks.text("issuer", self.issuer, MAX_ORGANIZATION_LENGTH)
        checks.url("url", self.url)
        checks.raise_if_any()


@dataclass(frozen=True)
class Publication:
    name: str
    publisher: Optional[str] = None
    release_date: Optional[str] = None
    url: Optional[str] = None
    summary: Optional[str] = None

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("name", self.name, MAX_POSITION_LENGTH, required=True)
        checks.text("publisher", self.publisher, MAX_ORGANIZATION_LENGTH)
        checks.date("releaseDate", self.release_date)
        checks.url("url", self.url)
        checks.text("summary", self.summary, MAX_SUMMARY_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Skill:
    """Skill category with keywords, e.g. 'Backend' -> ('Python', 'Go')."""

    name: str
    level: Optional[str] = None
    keywords: Tuple[str, ...] = ()

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("name", self.name, MAX_SHORT_TEXT_LENGTH, required=True)
        checks.text("level", self.level, MAX_KEYWORD_LENGTH)
        checks.items("keywords", self.keywords, MAX_KEYWORD_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Language:
    language: str
    fluency: Optional[str] = None

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("language", self.language, MAX_KEYWORD_LENGTH, required=True)
        checks.text("fluency", self.fluency, MAX_KEYWORD_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Interest:
    name: str
    keywords: Tuple[str, ...] = ()

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("name", self.name, MAX_SHORT_TEXT_LENGTH, required=True)
        checks.items("keywords", self.keywords, MAX_KEYWORD_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Reference:
    name: str
    reference: Optional[str] = None

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("name", self.name, MAX_SHORT_TEXT_LENGTH, required=True)
        checks.text("reference", self.reference, MAX_SUMMARY_LENGTH)
        checks.raise_if_any()


@dataclass(frozen=True)
class Project:
    name: str
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    url: Optional[str] = None
    highlights: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    roles: Tuple[str, ...] = ()

    def __post_init__(self):
        checks = FieldChecks()
        checks.text("name", self.name, MAX_POSITION_LENGTH, required=True)
        checks.text("description", self.description, MAX_SUMMARY_LENGTH)
        checks.date_range(self.start_date, self.end_date)
        checks.url("url", self.url)
        checks.items("highlights", self.highlights, MAX_HIGHLIGHT_LENGTH)
        checks.items("keywords", self.keywords, MAX_KEYWORD_LENGTH)
        checks.items("roles", self.roles, MAX_SHORT_TEXT_LENGTH)
        checks.raise_if_any()


# Section name (JSON key) -> record type, in document order
SECTION_TYPES = {
    "work": WorkExperience,
    "volunteer": Volunteer,
    "education": Education,
    "awards": Award,
    "certificates": Certificate,
    "publications": Publication,
    "skills": Skill,
    "languages": Language,
    "interests": Interest,
    "references": Reference,
    "projects": Project,
}


@dataclass(frozen=True)
class ResumeData:
    """
    Complete résumé aggregate.

    Only ``basics`` is required. Every list section is a tuple in source order.
    """

    basics: Basics
    work: Tuple[WorkExperience, ...] = ()
    volunteer: Tuple[Volunteer, ...] = ()
    education: Tuple[Education, ...] = ()
    awards: Tuple[Award, ...] = ()
    certificates: Tuple[Certificate, ...] = ()
    publications: Tuple[Publication, ...] = ()
    skills: Tuple[Skill, ...] = ()
    languages: Tuple[Language, ...] = ()
    interests: Tuple[Interest, ...] = ()
    references: Tuple[Reference, ...] = ()
    projects: Tuple[Project, ...] = ()

    def __post_init__(self):
        checks = FieldChecks()
        for section_name in SECTION_TYPES:
            checks.section(section_name, getattr(self, section_name))
        checks.raise_if_any()

    def section_counts(self) -> dict:
        """Number of entries per list section (no content, safe to log)."""
        return {name: len(getattr(self, name)) for name in SECTION_TYPES}
