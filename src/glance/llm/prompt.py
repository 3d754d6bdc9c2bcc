"""Prompt templates for directory summaries.

Templates are Jinja2 with three fields: ``directory``, ``sub_glances`` and
``file_contents``. Referencing anything else is an error.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Mapping, Optional

from jinja2 import Environment, StrictUndefined, TemplateError

from glance.config.defaults import DEFAULT_PROMPT_TEMPLATE, PROMPT_FILENAME
from glance.errors import ConfigurationError, PromptRenderError

logger = logging.getLogger(__name__)

_env = Environment(undefined=StrictUndefined, keep_trailing_newline=True, autoescape=False)

# Older prompt files use {{.Directory}}-style placeholders.
_LEGACY_FIELDS = {
    "Directory": "directory",
    "SubGlances": "sub_glances",
    "FileContents": "file_contents",
}
_LEGACY_PATTERN = re.compile(r"\{\{\s*\.(Directory|SubGlances|FileContents)\s*\}\}")


@dataclass
class PromptData:
    """Values substituted into the prompt template."""

    directory: str
    sub_glances: str
    file_contents: str


def format_file_contents(files: Mapping[str, str]) -> str:
    """Render ``files`` as ``=== file: name ===`` sections, sorted by name."""
    return "".join(
        f"=== file: {name} ===\n{files[name]}\n\n" for name in sorted(files)
    )


def build_prompt_data(directory: str, sub_glances: str, files: Mapping[str, str]) -> PromptData:
    return PromptData(
        directory=str(directory),
        sub_glances=sub_glances,
        file_contents=format_file_contents(files),
    )


def translate_legacy_placeholders(template: str) -> str:
    return _LEGACY_PATTERN.sub(lambda m: "{{ " + _LEGACY_FIELDS[m.group(1)] + " }}", template)


def render_prompt(data: PromptData, template: str) -> str:
    """Fill ``template`` with ``data``.

    Raises:
        PromptRenderError: The template does not parse or uses an unknown field.
    """
    try:
        compiled = _env.from_string(translate_legacy_placeholders(template))
    except TemplateError as e:
        raise PromptRenderError("failed to parse prompt template", code="PROMPT-001", cause=e)
    try:
        return compiled.render(**asdict(data))
    except TemplateError as e:
        raise PromptRenderError("failed to render prompt template", code="PROMPT-002", cause=e)


def load_prompt_template(path: Optional[str] = None) -> str:
    """Return the prompt template to use.

    An explicit ``path`` may point anywhere but must be a readable file.
    Without one, ``prompt.txt`` in the working directory is used if it
    exists, otherwise the built-in default.

    Raises:
        ConfigurationError: ``path`` is missing, a directory, or unreadable.
    """
    if path:
        abs_path = Path(os.path.abspath(os.path.normpath(path)))
        if not abs_path.exists():
            raise ConfigurationError(
                f"failed to access prompt template at {path!r}", code="CFG-006"
            )
        if abs_path.is_dir():
            raise ConfigurationError(
                f"prompt template path {path!r} is a directory, not a file", code="CFG-006"
            )
        try:
            return abs_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"failed to read custom prompt template from {str(abs_path)!r}",
                code="CFG-006",
                cause=e,
            )

    default_path = Path.cwd() / PROMPT_FILENAME
    if default_path.is_file():
        try:
            template = default_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(
                "Cannot read prompt.txt, using default template",
                extra={"path": str(default_path), "error": str(e)},
            )
        else:
            logger.debug("Using prompt template from working directory", extra={"path": str(default_path)})
            return template

    return DEFAULT_PROMPT_TEMPLATE
