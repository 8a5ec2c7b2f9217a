"""
Résumé parsing.

Converts a JSON-compatible mapping (JSON Resume layout, camelCase keys) into a
validated ``ResumeData``. Parsing does not stop at the first problem: every
malformed or invalid field is collected and reported together in a single
``ValidationError`` with dotted field paths (e.g. ``work[1].endDate``).

snake_case keys are accepted as well, so YAML written by hand can use either.
"""

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple, Union

from omegaconf import OmegaConf

from quill.contexts.intake.logger import _log_debug
from quill.contexts.intake.resume_data_structure import (
    SECTION_TYPES,
    Basics,
    Location,
    Profile,
    Project,
    RecordValidationError,
    ResumeData,
    Volunteer,
    WorkExperience,
)
from quill.exceptions import FieldError, ValidationError

# Older JSON Resume keys still seen in the wild: (record type, field) -> legacy key
LEGACY_KEYS = {
    (WorkExperience, "name"): "company",
    (WorkExperience, "url"): "website",
    (Volunteer, "url"): "website",
    (Project, "url"): "website",
}


def _camel(name: str) -> str:
    """'start_date' -> 'startDate'"""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _scalar(value: Any, path: str, errors: List[FieldError]) -> Optional[str]:
    """Coerce a JSON scalar to an optional string. Blank strings become None."""
    if value is None:
        return None
    if isinstance(value, bool):
        errors.append(FieldError(path, "must be a string"))
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        errors.append(FieldError(path, "must be a string"))
        return None
    return value if value.strip() else None


def _string_list(value: Any, path: str, errors: List[FieldError]) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        errors.append(FieldError(path, "must be a list"))
        return ()

    items = []
    for i, item in enumerate(value):
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            errors.append(FieldError(f"{path}[{i}]", "must be a string"))
            continue
        items.append(str(item))
    return tuple(items)


def _build_record(cls, raw: Any, path: str, errors: List[FieldError], **prebuilt):
    """
    Build one record of type ``cls`` from a mapping.

    Fields passed in ``prebuilt`` are used as-is (nested records built by the caller).
    Type problems and the record's own validation errors are appended to ``errors``
    with ``path`` prefixed.

    Returns:
        The record, or None if it could not be built
    """
    if not isinstance(raw, Mapping):
        errors.append(FieldError(path, "must be an object"))
        return None

    local_errors: List[FieldError] = []
    kwargs = dict(prebuilt)
    for f in fields(cls):
        if f.name in prebuilt:
            continue
        key = _camel(f.name)
        value = raw.get(key, raw.get(f.name))
        if value is None and (cls, f.name) in LEGACY_KEYS:
            value = raw.get(LEGACY_KEYS[(cls, f.name)])
        if f.default == ():
            kwargs[f.name] = _string_list(value, f"{path}.{key}", local_errors)
        else:
            kwargs[f.name] = _scalar(value, f"{path}.{key}", local_errors)

    if local_errors:
        errors.extend(local_errors)
        return None

    try:
        return cls(**kwargs)
    except RecordValidationError as e:
        errors.extend(FieldError(f"{path}.{fe.field}", fe.message) for fe in e.errors)
        return None


def _build_basics(raw: Any, errors: List[FieldError]) -> Optional[Basics]:
    if raw is None:
        errors.append(FieldError("basics", "is required"))
        return None
    if not isinstance(raw, Mapping):
        errors.append(FieldError("basics", "must be an object"))
        return None

    location = None
    if raw.get("location") is not None:
        location = _build_record(Location, raw["location"], "basics.location", errors)

    profiles = []
    raw_profiles = raw.get("profiles")
    if raw_profiles is not None and not isinstance(raw_profiles, (list, tuple)):
        errors.append(FieldError("basics.profiles", "must be a list"))
    else:
        for i, raw_profile in enumerate(raw_profiles or []):
            profile = _build_record(Profile, raw_profile, f"basics.profiles[{i}]", errors)
            if profile is not None:
                profiles.append(profile)

    return _build_record(Basics, raw, "basics", errors, location=location, profiles=tuple(profiles))


def parse_resume(data: Mapping[str, Any]) -> ResumeData:
    """
    Parse and validate résumé data.

    Args:
        data: JSON-compatible mapping with a required ``basics`` object and optional
              list sections (work, education, skills, ...)

    Returns:
        Validated, immutable ResumeData

    Raises:
        ValidationError: With one FieldError per problem found anywhere in the data

    Example:
        >>> resume = parse_resume({"basics": {"name": "Ada Lovelace"}})
        >>> resume.basics.name
        'Ada Lovelace'
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Resume data must be a JSON object")

    errors: List[FieldError] = []
    basics = _build_basics(data.get("basics"), errors)

    sections = {}
    for section_name, record_type in SECTION_TYPES.items():
        raw_section = data.get(section_name)
        if raw_section is None:
            sections[section_name] = ()
            continue
        if not isinstance(raw_section, (list, tuple)):
            errors.append(FieldError(section_name, "must be a list"))
            continue

        records = []
        for i, raw_record in enumerate(raw_section):
            record = _build_record(record_type, raw_record, f"{section_name}[{i}]", errors)
            if record is not None:
                records.append(record)
        sections[section_name] = tuple(records)

    if errors:
        raise ValidationError("Invalid resume data", errors)

    try:
        resume = ResumeData(basics=basics, **sections)
    except RecordValidationError as e:
        raise ValidationError("Invalid resume data", e.errors) from e

    _log_debug(f"Parsed resume: {resume.section_counts()}")
    return resume


def load_resume_file(path: Union[str, Path]) -> dict:
    """
    Load raw résumé data from a JSON or YAML file.

    YAML is loaded through OmegaConf without resolving interpolations, so text such
    as '${...}' stays literal.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the file is not valid JSON/YAML or not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Resume file not found: {path}")

    if path.suffix.lower() == ".json":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (ValueError, RecursionError) as e:
            raise ValidationError(f"Malformed JSON in {path.name}: {e}") from e
    else:
        data = OmegaConf.to_container(OmegaConf.load(path), resolve=False)

    if not isinstance(data, dict):
        raise ValidationError(f"Resume file {path.name} must contain an object at top level")
    return data
