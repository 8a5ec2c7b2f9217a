"""
Generation request intake.

A GenerationRequest exists for exactly one pipeline invocation and is never
persisted. ``request_id`` doubles as the correlation id returned to callers on
failure and written to the audit log.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from quill.contexts.intake.resume_data_structure import ResumeData
from quill.exceptions import FieldError, ValidationError
from quill.utils.timestamp import utcnow

DEFAULT_LOCALE = "en"

# Top-level payload keys that are not part of the résumé itself
REQUEST_KEYS = ("templateId", "template_id", "locale", "resume")


def new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class GenerationRequest:
    """
    One résumé generation call.

    Attributes:
        template_id: Registered template to render with
        resume: Validated ResumeData, or the raw mapping still to be validated
        locale: Requested locale tag as received (e.g. 'en-US'); the registry
                reduces it to its primary subtag
        caller_id: Identity supplied by the authentication layer (hashed before logging)
        received_at: UTC time the request entered the system
        request_id: Correlation id
    """

    template_id: str
    resume: Union[ResumeData, Mapping[str, Any]]
    locale: str = DEFAULT_LOCALE
    caller_id: Optional[str] = None
    received_at: datetime = field(default_factory=utcnow)
    request_id: str = field(default_factory=new_request_id)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        locale: Optional[str] = None,
        caller_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> "GenerationRequest":
        """
        Build a request from a decoded HTTP/CLI payload.

        Two layouts are accepted: ``{"templateId": ..., "resume": {...}}`` and the flat
        JSON Resume layout where ``basics``, ``work``, ... sit next to ``templateId``.
        A ``locale`` key in the payload takes precedence over the ``locale`` argument
        (usually derived from Accept-Language).

        Raises:
            ValidationError: If templateId is missing or the résumé is not an object
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("Request body must be a JSON object")

        template_id = payload.get("templateId", payload.get("template_id"))
        if not isinstance(template_id, str) or not template_id.strip():
            raise ValidationError("Invalid request", [FieldError("templateId", "must not be blank")])

        if "resume" in payload:
            resume = payload["resume"]
        else:
            resume = {k: v for k, v in payload.items() if k not in REQUEST_KEYS}
        if not isinstance(resume, Mapping):
            raise ValidationError("Invalid request", [FieldError("resume", "must be an object")])

        body_locale = payload.get("locale")
        if body_locale is not None and not isinstance(body_locale, str):
            raise ValidationError("Invalid request", [FieldError("locale", "must be a string")])

        return cls(
            template_id=template_id.strip(),
            resume=resume,
            locale=body_locale or locale or DEFAULT_LOCALE,
            caller_id=caller_id,
            request_id=request_id or new_request_id(),
        )
