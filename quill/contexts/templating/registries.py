"""
Template Registry

Loads every packaged résumé template once, at construction, and serves them
read-only afterwards. Templates live under QUILL_TEMPLATES_PATH (default: the
``templates`` directory next to this module):

    templates/
        <template_id>/
            metadata.yaml               id, name, version, description, supportedLocales
            base.tex.jinja              shared layout (optional)
            <locale>/resume.tex.jinja   locale entry point
            <locale>/messages.yaml      section titles, month names, labels

Lookups are keyed by (template_id, primary language subtag). There is no locale
fallback: a missing combination is a TemplateError naming what is missing.

Templates use LaTeX-safe delimiters so LaTeX braces never clash with Jinja2:
- Variable: <<< var >>>
- Block: <%% block %%>
- Comment: <# comment #>
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv
from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template
from jinja2.exceptions import TemplateError as JinjaTemplateError
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from quill.contexts.templating.logger import _log_debug, log_registry_loaded
from quill.exceptions import TemplateError

load_dotenv()
_templates_path = os.getenv("QUILL_TEMPLATES_PATH")
TEMPLATES_PATH = Path(_templates_path) if _templates_path else Path(__file__).parent / "templates"

DEFAULT_LOCALE = "en"
ENTRY_TEMPLATE = "resume.tex.jinja"
MESSAGES_FILE = "messages.yaml"
METADATA_FILE = "metadata.yaml"

# Keys every messages.yaml must provide for the renderer
REQUIRED_MESSAGE_KEYS = ("sections", "labels", "months", "month_names")
# Labels read while building the render context, before the template runs
REQUIRED_LABEL_KEYS = ("present", "last_updated")

_LOCALE_SPLIT_REGEX = re.compile(r"[-_]")


def normalize_locale(locale: Optional[str]) -> str:
    """
    Reduce a locale tag to its lowercase primary language subtag.

    Example:
        >>> normalize_locale("en-US")
        'en'
        >>> normalize_locale("es_MX")
        'es'
    """
    if not locale or not locale.strip():
        return DEFAULT_LOCALE
    return _LOCALE_SPLIT_REGEX.split(locale.strip(), maxsplit=1)[0].lower()


def create_environment(templates_path: Path) -> Environment:
    """Jinja2 environment for LaTeX output. Autoescaping is off; callers escape."""
    return Environment(
        loader=FileSystemLoader(str(templates_path)),
        # Catches silent failures
        undefined=StrictUndefined,
        autoescape=False,
        # Custom delimiters to avoid LaTeX brace conflicts
        variable_start_string="<<<",
        variable_end_string=">>>",
        block_start_string="<%%",
        block_end_string="%%>",
        comment_start_string="<#",
        comment_end_string="#>",
        # Preserve whitespace (important for LaTeX)
        trim_blocks=False,
        lstrip_blocks=False,
        keep_trailing_newline=True,
    )


@dataclass(frozen=True)
class TemplateMetadata:
    """
    Descriptive metadata for one template.

    Attributes:
        id: Template identifier used in requests (directory name)
        name: Display name
        version: Template version string
        supported_locales: Primary language subtags with a locale entry point
        description: One-line description for listings
    """

    id: str
    name: str
    version: str
    supported_locales: Tuple[str, ...]
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "supportedLocales": list(self.supported_locales),
            "description": self.description,
        }


@dataclass(frozen=True)
class ResolvedTemplate:
    """A compiled template bound to one locale, plus that locale's messages."""

    metadata: TemplateMetadata
    locale: str
    template: Template
    messages: Mapping[str, Any]


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        data = OmegaConf.to_container(OmegaConf.load(path), resolve=True)
    except (OSError, OmegaConfBaseException) as e:
        raise TemplateError(f"Cannot read {path.name}", original_error=e) from e
    if not isinstance(data, dict):
        raise TemplateError(f"{path} must contain a mapping at top level")
    return data


def _load_metadata(template_dir: Path) -> TemplateMetadata:
    raw = _load_yaml(template_dir / METADATA_FILE)

    missing = [key for key in ("id", "name", "version", "supportedLocales") if key not in raw]
    if missing:
        raise TemplateError(
            f"Template metadata missing keys: {missing}", template_id=template_dir.name
        )
    if raw["id"] != template_dir.name:
        raise TemplateError(
            f"Template id '{raw['id']}' does not match directory '{template_dir.name}'",
            template_id=template_dir.name,
        )

    return TemplateMetadata(
        id=str(raw["id"]),
        name=str(raw["name"]),
        version=str(raw["version"]),
        supported_locales=tuple(normalize_locale(loc) for loc in raw["supportedLocales"]),
        description=str(raw.get("description", "")),
    )


def _load_messages(template_dir: Path, template_id: str, locale: str) -> Dict[str, Any]:
    messages_path = template_dir / locale / MESSAGES_FILE
    if not messages_path.exists():
        raise TemplateError(
            f"Messages file missing: {template_id}/{locale}/{MESSAGES_FILE}",
            template_id=template_id,
            locale=locale,
        )

    messages = _load_yaml(messages_path)
    missing = [key for key in REQUIRED_MESSAGE_KEYS if key not in messages]
    if missing:
        raise TemplateError(
            f"Messages for {template_id}/{locale} missing keys: {missing}",
            template_id=template_id,
            locale=locale,
        )
    labels = messages["labels"]
    missing_labels = [
        key for key in REQUIRED_LABEL_KEYS if not isinstance(labels, dict) or key not in labels
    ]
    if missing_labels:
        raise TemplateError(
            f"Messages for {template_id}/{locale} missing labels: {missing_labels}",
            template_id=template_id,
            locale=locale,
        )
    for key in ("months", "month_names"):
        if len(messages[key]) != 12:
            raise TemplateError(
                f"Messages for {template_id}/{locale}: '{key}' must list 12 months",
                template_id=template_id,
                locale=locale,
            )
    return messages


class TemplateRegistry:
    """
    Immutable registry of résumé templates keyed by (template_id, locale).

    Everything is loaded and compiled in ``__init__``; a broken template fails at
    startup rather than on the first request. After construction the registry is
    only read, so it is safe to share across threads without locking.

    Example:
        registry = TemplateRegistry()
        resolved = registry.resolve("engineering", "en-US")
        resolved.template.render(**context)
    """

    def __init__(self, templates_path: Optional[Path] = None):
        """
        Load all templates.

        Args:
            templates_path: Root directory of templates. Defaults to QUILL_TEMPLATES_PATH
                            or the packaged templates directory.

        Raises:
            TemplateError: If the directory, any metadata, messages or template is invalid
        """
        self.templates_path = Path(templates_path) if templates_path else TEMPLATES_PATH
        if not self.templates_path.is_dir():
            raise TemplateError(f"Templates directory not found: {self.templates_path}")

        self.env = create_environment(self.templates_path)

        metadata: Dict[str, TemplateMetadata] = {}
        templates: Dict[Tuple[str, str], ResolvedTemplate] = {}

        for template_dir in sorted(p for p in self.templates_path.iterdir() if p.is_dir()):
            if not (template_dir / METADATA_FILE).exists():
                _log_debug(f"Skipping {template_dir.name}: no {METADATA_FILE}")
                continue

            meta = _load_metadata(template_dir)
            metadata[meta.id] = meta

            for locale in meta.supported_locales:
                entry = f"{meta.id}/{locale}/{ENTRY_TEMPLATE}"
                try:
                    template = self.env.get_template(entry)
                except JinjaTemplateError as e:
                    raise TemplateError(
                        f"Cannot load template {entry}",
                        template_id=meta.id,
                        locale=locale,
                        original_error=e,
                    ) from e

                messages = _load_messages(template_dir, meta.id, locale)
                templates[(meta.id, locale)] = ResolvedTemplate(
                    metadata=meta,
                    locale=locale,
                    template=template,
                    messages=MappingProxyType(messages),
                )

        self._metadata = MappingProxyType(metadata)
        self._templates = MappingProxyType(templates)

        log_registry_loaded(len(self._metadata), len(self._templates), self.templates_path)

    def resolve(self, template_id: str, locale: Optional[str]) -> ResolvedTemplate:
        """
        Look up a template for a locale.

        Args:
            template_id: Registered template id
            locale: Locale tag; reduced to its primary subtag ('en-US' -> 'en')

        Returns:
            The ResolvedTemplate for exactly that (template_id, locale)

        Raises:
            TemplateError: Naming the template if it is unknown, or naming the
                           locale if the template does not support it
        """
        meta = self._metadata.get(template_id)
        if meta is None:
            raise TemplateError(f"Template '{template_id}' not found", template_id=template_id)

        primary = normalize_locale(locale)
        resolved = self._templates.get((template_id, primary))
        if resolved is None:
            raise TemplateError(
                f"Locale '{primary}' not supported by template '{template_id}' "
                f"(supported: {', '.join(meta.supported_locales)})",
                template_id=template_id,
                locale=primary,
            )
        return resolved

    def list_templates(self) -> List[TemplateMetadata]:
        """Metadata of every registered template, sorted by id."""
        return [self._metadata[template_id] for template_id in sorted(self._metadata)]

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._metadata

    def __len__(self) -> int:
        return len(self._metadata)
