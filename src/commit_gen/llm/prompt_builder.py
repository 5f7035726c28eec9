"""
Prompt construction for the two model calls.

Templates come from the ``prompts`` configuration group and may use the
placeholders ``{changes_summary}``, ``{changes_text}``, ``{indent}``,
``{indent_size}``, ``{min_files}``, ``{max_files}`` and
``{max_message_length}``. Substitution is a single pass, so text coming
from diffs is never expanded again even if it contains a placeholder.
Other brace expressions are left untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from commit_gen.config.settings import Config


PLACEHOLDERS: Tuple[str, ...] = (
    "changes_summary",
    "changes_text",
    "indent",
    "indent_size",
    "min_files",
    "max_files",
    "max_message_length",
)

FILE_SELECTION_REQUIRED: Tuple[str, ...] = ("changes_summary",)
COMMIT_REQUIRED: Tuple[str, ...] = ("changes_summary", "changes_text")

_PLACEHOLDER_PATTERN = re.compile(r"\{(" + "|".join(PLACEHOLDERS) + r")\}")


class TemplateError(Exception):
    """Raised when a prompt template lacks a required placeholder."""

    pass


@dataclass(frozen=True)
class Prompt:
    """A fully rendered request: system text, prompt text and stop sequences."""

    system: str
    text: str
    stop: Tuple[str, ...] = ()


def render_template(
    template: str,
    values: Dict[str, str],
    required: Iterable[str] = (),
    name: str = "template",
) -> str:
    """Substitute known placeholders in ``template``.

    Raises
    ------
    TemplateError
        If any placeholder in ``required`` does not occur in the template.
    """
    missing: List[str] = [key for key in required if "{" + key + "}" not in template]
    if missing:
        raise TemplateError(
            f"Prompt {name} is missing required placeholder(s): "
            + ", ".join("{" + key + "}" for key in missing)
        )

    def _replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        return values[key] if key in values else match.group(0)

    return _PLACEHOLDER_PATTERN.sub(_replace, template)


class PromptBuilder:
    """Build the file-selection and commit prompts from configuration."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def _common_values(self) -> Dict[str, str]:
        formatting = self.config.formatting
        selection = self.config.selection
        return {
            "indent": formatting.indent,
            "indent_size": str(formatting.indent_size),
            "min_files": str(selection.min_files),
            "max_files": str(selection.max_files),
            "max_message_length": str(self.config.commit.max_message_length),
        }

    def file_selection(self, changes_summary: str) -> Prompt:
        values = self._common_values()
        values["changes_summary"] = changes_summary
        text = render_template(
            self.config.prompts.file_selection_context,
            values,
            required=FILE_SELECTION_REQUIRED,
            name="prompts.file_selection_context",
        )
        return Prompt(
            system=self.config.prompts.file_selection_system,
            text=text,
            stop=("</files>",),
        )

    def commit(self, changes_summary: str, changes_text: str) -> Prompt:
        values = self._common_values()
        values["changes_summary"] = changes_summary
        values["changes_text"] = changes_text
        text = render_template(
            self.config.prompts.commit_context,
            values,
            required=COMMIT_REQUIRED,
            name="prompts.commit_context",
        )
        return Prompt(
            system=self.config.prompts.commit_system,
            text=text,
            stop=("</commit>",),
        )
