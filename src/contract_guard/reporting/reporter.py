"""Rendering of ChangeSets as JSON, Markdown or plain text."""

import json
from pathlib import Path
from typing import Optional, Union
import logging

from jinja2 import Environment, FileSystemLoader

from ..diffing.change_classifier import ChangeSet

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


class ChangeSetReporter:
    """Renders a ChangeSet into one of the supported output formats."""

    FORMATS = ("json", "markdown", "text")
    ALIASES = {"md": "markdown", "txt": "text"}
    TEMPLATES = {"markdown": "diff.md.j2", "text": "diff.txt.j2"}

    def __init__(self, templates_dir: Optional[Union[str, Path]] = None):
        """Initialize the reporter.

        Args:
            templates_dir: Directory holding ``diff.md.j2`` and ``diff.txt.j2``;
                defaults to the templates shipped with the package.
        """
        self.templates_dir = Path(templates_dir) if templates_dir else DEFAULT_TEMPLATES_DIR
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def normalize_format(self, output_format: str) -> str:
        name = self.ALIASES.get(output_format.lower(), output_format.lower())
        if name not in self.FORMATS:
            raise ValueError(f"Unsupported output format: {output_format} (supported: {', '.join(self.FORMATS)})")
        return name

    def render(self, change_set: ChangeSet, output_format: str = "json") -> str:
        """Render ``change_set`` in ``output_format`` (json, markdown or text)."""
        output_format = self.normalize_format(output_format)

        if output_format == "json":
            return json.dumps(change_set.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + "\n"

        template = self.jinja_env.get_template(self.TEMPLATES[output_format])
        rendered = template.render(
            package_name=change_set.package_name or "unknown",
            old_version=change_set.old_version,
            new_version=change_set.new_version,
            summary=change_set.summary(),
            breaking=change_set.breaking,
            additions=change_set.additions,
            modifications=change_set.modifications,
        )
        logger.debug(f"Rendered {len(change_set)} changes as {output_format}")
        return rendered
