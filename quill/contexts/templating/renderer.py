"""
Template Renderer

Binds validated résumé data into a resolved template and returns LaTeX source.

Every free-text value on its way into the template context is scanned for
forbidden control sequences and then escaped (see injection_guard.guard).
List sections become lists of field maps in source order; nothing is sorted.

Binding rules per record field:
- str          -> guard(value)                   (None becomes "")
- url          -> guard(value) plus ``url_href`` for \\href targets
- start/end    -> raw values guarded, plus a localized ``dates`` range
- date fields  -> localized ('Mar 2020' / 'mar. 2020')
- tuple[str]   -> list of guard(item)
- nested record / tuple of records -> bound recursively
"""

from dataclasses import fields, is_dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from jinja2.exceptions import TemplateError as JinjaTemplateError

from quill.contexts.intake.resume_data_structure import (
    SECTION_TYPES,
    PartialDate,
    ResumeData,
)
from quill.contexts.templating.injection_guard import guard, guard_url
from quill.contexts.templating.logger import log_render_result
from quill.contexts.templating.registries import ResolvedTemplate
from quill.exceptions import TemplateError
from quill.utils.timestamp import utcnow

URL_FIELDS = ("url",)
SINGLE_DATE_FIELDS = ("date", "release_date")
DATE_RANGE_SEPARATOR = " -- "


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def format_date(raw: Optional[str], messages: Mapping[str, Any]) -> str:
    """
    Localize an ISO partial date: '2020-03' -> 'Mar 2020', '2020' -> '2020'.

    Days are dropped; résumés show month precision at most.
    """
    if not raw:
        return ""
    date = PartialDate.parse(raw)
    if not date.has_month:
        return str(date.year)
    return f"{messages['months'][date.month - 1]} {date.year}"


def format_date_range(
    start: Optional[str], end: Optional[str], messages: Mapping[str, Any]
) -> str:
    """
    Localize a start/end pair. A start without an end is ongoing.

    Example:
        ('2020-03', None) -> 'Mar 2020 -- Present'
    """
    if not start and not end:
        return ""
    if not start:
        return format_date(end, messages)
    end_text = format_date(end, messages) if end else messages["labels"]["present"]
    return f"{format_date(start, messages)}{DATE_RANGE_SEPARATOR}{end_text}"


def format_month_year(moment: datetime, messages: Mapping[str, Any]) -> str:
    """'October 2026' / 'octubre 2026'"""
    return f"{messages['month_names'][moment.month - 1]} {moment.year}"


def bind_record(record: Any, path: str, messages: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Turn one résumé record into a template field map, guarding every text value.

    Args:
        record: Frozen dataclass from resume_data_structure
        path: Dotted path of the record, used in SecurityViolation (e.g. 'work[0]')
        messages: Locale messages used for date formatting

    Raises:
        SecurityViolation: If any value contains a forbidden control sequence
    """
    bound: Dict[str, Any] = {}

    for f in fields(record):
        value = getattr(record, f.name)
        field_path = f"{path}.{_camel(f.name)}"

        if is_dataclass(value):
            bound[f.name] = bind_record(value, field_path, messages)
        elif isinstance(value, tuple):
            if value and is_dataclass(value[0]):
                bound[f.name] = [
                    bind_record(item, f"{field_path}[{i}]", messages) for i, item in enumerate(value)
                ]
            else:
                bound[f.name] = [guard(item, f"{field_path}[{i}]") for i, item in enumerate(value)]
        elif f.name in SINGLE_DATE_FIELDS:
            guard(value, field_path)
            bound[f.name] = format_date(value, messages)
        else:
            bound[f.name] = guard(value, field_path)
            if f.name in URL_FIELDS:
                bound["url_href"] = guard_url(value, field_path)

    if hasattr(record, "start_date"):
        bound["dates"] = format_date_range(record.start_date, record.end_date, messages)

    return bound


def build_contact(basics: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Header contact line entries ({text, href}) from already bound basics.

    Order: email, phone, website, location, profiles.
    """
    contact = []
    if basics["email"]:
        contact.append({"text": basics["email"], "href": f"mailto:{basics['email_href']}"})
    if basics["phone"]:
        contact.append({"text": basics["phone"], "href": ""})
    if basics["url"]:
        contact.append({"text": basics["url"], "href": basics["url_href"]})

    location = basics["location"]
    if location:
        parts = [location["city"], location["region"], location["country_code"]]
        place = ", ".join(part for part in parts if part)
        if place:
            contact.append({"text": place, "href": ""})

    for profile in basics["profiles"]:
        text = f"{profile['network']}: {profile['username']}" if profile["username"] else profile["network"]
        contact.append({"text": text, "href": profile["url_href"]})

    return contact


def build_context(
    resume: ResumeData,
    messages: Mapping[str, Any],
    locale: str,
    clock: Callable[[], datetime] = utcnow,
) -> Dict[str, Any]:
    """
    Assemble the full template context for one résumé.

    Returns:
        Dict with ``basics``, one list per section, ``contact``, ``i18n``,
        ``locale`` and ``last_updated``
    """
    basics = bind_record(resume.basics, "basics", messages)
    basics["email_href"] = guard_url(resume.basics.email, "basics.email")
    if resume.basics.location is None:
        basics["location"] = {}

    context: Dict[str, Any] = {"basics": basics}
    for section_name in SECTION_TYPES:
        records = getattr(resume, section_name)
        context[section_name] = [
            bind_record(record, f"{section_name}[{i}]", messages) for i, record in enumerate(records)
        ]

    context["contact"] = build_contact(basics)
    context["i18n"] = messages
    context["locale"] = locale
    context["last_updated"] = format_month_year(clock(), messages)
    return context


class TemplateRenderer:
    """
    Renders ResumeData into LaTeX source with a resolved template.

    Example:
        renderer = TemplateRenderer()
        source = renderer.render(resume, registry.resolve("engineering", "en"))
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        """
        Args:
            clock: Returns the current time for the 'last updated' line (injectable for tests)
        """
        self.clock = clock

    def render(self, resume: ResumeData, resolved: ResolvedTemplate) -> str:
        """
        Render a résumé.

        Returns:
            LaTeX document source

        Raises:
            SecurityViolation: If any free-text value contains a forbidden sequence
                               (propagated unchanged)
            TemplateError: If the template fails to render or references a missing binding
        """
        template_id = resolved.metadata.id
        context = build_context(resume, resolved.messages, resolved.locale, self.clock)

        try:
            source = resolved.template.render(**context)
        except JinjaTemplateError as e:
            log_render_result(template_id, resolved.locale, None, error=e)
            raise TemplateError(
                f"Failed to render template '{template_id}'",
                template_id=template_id,
                locale=resolved.locale,
                original_error=e,
            ) from e

        log_render_result(template_id, resolved.locale, len(source))
        return source
