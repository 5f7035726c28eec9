"""
Lenient parsing of tag-structured model responses.

Model output is untrusted free text: the model may wrap the requested
markup in prose or code fences, forget closing tags, or be cut off by a
stop sequence. :func:`parse_response` extracts the fields described by
a :class:`ResponseSchema` and reports the outcome as a
:class:`ParseResult` whose ``status`` is one of

* ``SUCCESS``: the first well-formed root element satisfied the schema;
* ``REPAIRED``: the markup had to be repaired first;
* ``FAILURE``: no schema-valid result could be produced.

Callers branch on the status; :meth:`ParseResult.unwrap` turns a
failure into a :class:`MalformedResponseError`.
"""

from __future__ import annotations

import enum
import html
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from commit_gen.llm.ollama_client import strip_thinking_tags


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class ParseStatus(str, enum.Enum):
    SUCCESS = "success"
    REPAIRED = "repaired"
    FAILURE = "failure"


class FailureReason(str, enum.Enum):
    MISSING_ROOT = "missing_root"
    MISSING_FIELD = "missing_field"
    TOO_MANY = "too_many"
    REPAIR_EXHAUSTED = "repair_exhausted"


class MalformedResponseError(Exception):
    """Raised when a model response cannot be parsed into its schema.

    Attributes
    ----------
    raw : str
        The response text as received.
    reason : FailureReason
        Which rule could not be satisfied.
    detail : str
        Human readable explanation.
    """

    def __init__(self, raw: str, reason: FailureReason, detail: str) -> None:
        super().__init__(f"{detail} ({reason.value})")
        self.raw = raw
        self.reason = reason
        self.detail = detail


@dataclass(frozen=True)
class FieldSpec:
    """One child element of a schema.

    ``repeatable`` fields may occur several times; singular fields must
    occur exactly once. ``bullets`` fields are split into one value per
    bullet item.
    """

    name: str
    repeatable: bool = False
    min_count: int = 1
    bullets: bool = False


@dataclass(frozen=True)
class ResponseSchema:
    root: str
    fields: Tuple[FieldSpec, ...]

    @property
    def tag_names(self) -> Tuple[str, ...]:
        return (self.root,) + tuple(spec.name for spec in self.fields)


FILE_SELECTION_SCHEMA = ResponseSchema(
    root="files",
    fields=(FieldSpec("file", repeatable=True),),
)

COMMIT_SCHEMA = ResponseSchema(
    root="commit",
    fields=(FieldSpec("message"), FieldSpec("description", bullets=True)),
)


@dataclass(frozen=True)
class ParseResult:
    status: ParseStatus
    raw: str
    fields: Dict[str, List[str]] = field(default_factory=dict)
    reason: Optional[FailureReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not ParseStatus.FAILURE

    def values(self, name: str) -> List[str]:
        return list(self.fields.get(name, []))

    def first(self, name: str) -> Optional[str]:
        values = self.fields.get(name)
        return values[0] if values else None

    def unwrap(self) -> "ParseResult":
        """Return ``self`` or raise :class:`MalformedResponseError` on failure."""
        if self.status is ParseStatus.FAILURE:
            raise MalformedResponseError(
                self.raw, self.reason or FailureReason.MISSING_ROOT, self.detail
            )
        return self


@dataclass(frozen=True)
class _Problem:
    reason: FailureReason
    detail: str


# ---------------------------------------------------------------------------
# Value cleanup
# ---------------------------------------------------------------------------
_BLANK_RUNS = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")
_BULLET_MARKER = re.compile(r"^(?:[-*+•]\s+|[-•](?=[A-Za-z])|\d+[.)]\s+)")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9])")
# dotted abbreviations such as "e.g." never end a sentence
_ABBREVIATION = re.compile(r"(?:(?<![\w.])(?:[A-Za-z]\.){2,3}|\b(?:etc|vs|approx|cf)\.)$", re.IGNORECASE)


def clean_value(value: str) -> str:
    """Unescape entities, trim, and collapse runs of blank lines."""
    text = html.unescape(value).strip()
    return _BLANK_RUNS.sub("\n\n", text)


def split_sentences(text: str) -> List[str]:
    """Split a paragraph after ``.``, ``!`` or ``?`` unless an abbreviation ends there."""
    sentences: List[str] = []
    start = 0
    for match in _SENTENCE_BREAK.finditer(text):
        if _ABBREVIATION.search(text[start:match.start()]):
            continue
        sentences.append(text[start:match.start()])
        start = match.end()
    sentences.append(text[start:])
    return sentences


def split_bullets(text: str) -> List[str]:
    """Split a description into bullet items.

    Every non-empty line becomes an item with its marker removed. When
    some lines carry markers, an unmarked line that is indented deeper
    than the last marked one or starts in lowercase continues that
    item. A single unmarked paragraph is split into sentences.
    """
    raw_lines = [line for line in text.splitlines() if line.strip()]
    marked = any(_BULLET_MARKER.match(line.strip()) for line in raw_lines)
    items: List[str] = []
    item_indent = 0
    for raw_line in raw_lines:
        line = raw_line.strip()
        indent = len(raw_line) - len(raw_line.lstrip())
        match = _BULLET_MARKER.match(line)
        if match:
            items.append(line[match.end():].strip())
            item_indent = indent
        elif marked and items and (indent > item_indent or line[0].islower()):
            items[-1] = f"{items[-1]} {line}"
        else:
            items.append(line)
    if len(items) == 1 and not marked:
        items = split_sentences(items[0])
    return [item.strip() for item in items if item.strip()]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------
def _element_pattern(name: str) -> "re.Pattern[str]":
    escaped = re.escape(name)
    return re.compile(
        rf"<{escaped}(?:\s[^>]*)?>(.*?)</{escaped}\s*>",
        re.DOTALL | re.IGNORECASE,
    )


def _starts_line(text: str, index: int) -> bool:
    line_start = text.rfind("\n", 0, index) + 1
    return not text[line_start:index].strip()


def _has_stray_markup(value: str, name: str, schema: ResponseSchema) -> bool:
    """True when ``value`` holds its own tag or a known tag opening a line.

    Other known tags in running text, such as "escape <message> tags",
    are kept as part of the value.
    """
    names = "|".join(re.escape(tag) for tag in schema.tag_names)
    for token in re.finditer(rf"</?({names})\b", value, re.IGNORECASE):
        if token.group(1).lower() == name.lower():
            return True
        if "\n" in value[: token.start()] and _starts_line(value, token.start()):
            return True
    return False


def _extract(text: str, schema: ResponseSchema) -> Tuple[Dict[str, List[str]], Optional[_Problem]]:
    root = _element_pattern(schema.root).search(text)
    if root is None:
        return {}, _Problem(
            FailureReason.MISSING_ROOT, f"no well-formed <{schema.root}> element found"
        )
    body = root.group(1)
    child_names = "|".join(re.escape(spec.name) for spec in schema.fields)
    children = re.compile(
        rf"<({child_names})(?:\s[^>]*)?>(.*?)</\1\s*>", re.DOTALL | re.IGNORECASE
    )

    # children never nest, so scanning left to right pairs each element
    # with its own closing tag even when a value mentions another tag
    found: Dict[str, List[str]] = {spec.name.lower(): [] for spec in schema.fields}
    for match in children.finditer(body):
        found[match.group(1).lower()].append(match.group(2))

    unclosed = re.search(rf"<({child_names})(?:\s[^>]*)?>", children.sub("", body), re.IGNORECASE)
    if unclosed:
        return {}, _Problem(
            FailureReason.MISSING_FIELD, f"<{unclosed.group(1)}> element is not closed"
        )

    fields: Dict[str, List[str]] = {}
    for spec in schema.fields:
        raw_values = found[spec.name.lower()]
        if any(_has_stray_markup(v, spec.name, schema) for v in raw_values):
            return fields, _Problem(
                FailureReason.MISSING_FIELD,
                f"<{spec.name}> contains unbalanced markup",
            )
        elements = [clean_value(v) for v in raw_values]
        elements = [v for v in elements if v]
        if not spec.repeatable and len(elements) > 1:
            return fields, _Problem(
                FailureReason.TOO_MANY,
                f"<{spec.name}> must appear exactly once, found {len(elements)}",
            )
        values: List[str] = []
        for element in elements:
            values.extend(split_bullets(element) if spec.bullets else [element])
        if len(values) < spec.min_count:
            return fields, _Problem(
                FailureReason.MISSING_FIELD,
                f"required <{spec.name}> is missing or empty",
            )
        fields[spec.name] = values
    return fields, None


# ---------------------------------------------------------------------------
# Repair
# ---------------------------------------------------------------------------
def repair_markup(text: str, schema: ResponseSchema) -> Optional[str]:
    """Rebuild balanced markup from whatever known tags ``text`` contains.

    Closing tags that lost their ``>`` are fixed, text outside the known
    tags is dropped, a missing root open tag is inserted, and unclosed
    children and root are closed (children never nest). Inside an open
    child, another child's tag in running text stays text. Returns ``None``
    when the text contains no known tag at all.
    """
    root = schema.root.lower()
    names = "|".join(re.escape(name) for name in schema.tag_names)
    text = re.sub(
        rf"</({names})[ \t]*(?=$|\n|<)",
        r"</\1>",
        text,
        flags=re.IGNORECASE | re.MULTILINE,
    )
    tokens = list(re.finditer(rf"<(/?)({names})(?:\s[^>]*)?>", text, re.IGNORECASE))
    if not tokens:
        return None

    out: List[str] = []
    child: Optional[str] = None
    root_open = False
    root_closed = False
    pos = tokens[0].start()
    for token in tokens:
        closing = token.group(1) == "/"
        name = token.group(2).lower()
        if child is not None:
            # another child's tag in running text belongs to the open value
            if name not in (child, root) and not _starts_line(text, token.start()):
                continue
            out.append(text[pos:token.start()])
        pos = token.end()

        if name == root:
            if not closing:
                if not root_open:
                    out.append(f"<{root}>")
                    root_open = True
                continue
            if child is not None:
                out.append(f"</{child}>")
                child = None
            if not root_open:
                out.append(f"<{root}>")
                root_open = True
            out.append(f"</{root}>")
            root_closed = True
            break

        if not root_open:
            out.append(f"<{root}>")
            root_open = True
        if closing:
            if child is not None:
                out.append(f"</{child}>")
                child = None
            continue
        if child is not None:
            out.append(f"</{child}>")
        out.append(f"<{name}>")
        child = name

    if not root_closed:
        if child is not None:
            out.append(text[pos:])
            out.append(f"</{child}>")
        out.append(f"</{root}>")
    return "".join(out)


def parse_response(raw: str, schema: ResponseSchema) -> ParseResult:
    """Parse a model response against ``schema``.

    The first well-formed root element is tried as-is; if that does not
    satisfy the schema, the markup is repaired once and parsed again.
    """
    raw = raw or ""
    text = strip_thinking_tags(raw)
    fields, problem = _extract(text, schema)
    if problem is None:
        return ParseResult(status=ParseStatus.SUCCESS, raw=raw, fields=fields)

    logger.debug("Response for <%s> needs repair: %s", schema.root, problem.detail)
    repaired = repair_markup(text, schema)
    if repaired is None:
        return ParseResult(
            status=ParseStatus.FAILURE,
            raw=raw,
            reason=FailureReason.MISSING_ROOT,
            detail=f"no <{schema.root}> element or known child tags in response",
        )

    logger.debug("Repaired response:\n%s", repaired)
    fields, problem = _extract(repaired, schema)
    if problem is None:
        return ParseResult(status=ParseStatus.REPAIRED, raw=raw, fields=fields)

    reason = problem.reason
    if reason is FailureReason.MISSING_ROOT:
        reason = FailureReason.REPAIR_EXHAUSTED
    return ParseResult(status=ParseStatus.FAILURE, raw=raw, reason=reason, detail=problem.detail)


def parse_or_raise(raw: str, schema: ResponseSchema) -> ParseResult:
    """Like :func:`parse_response` but raise on failure."""
    return parse_response(raw, schema).unwrap()
