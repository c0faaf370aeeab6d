from __future__ import annotations

from enum import Enum
from typing import Annotated, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class SectionCategory(str, Enum):
    INTRODUCTION = "introduction"
    DEFINITION = "definition"
    THEOREM = "theorem"
    FORMULA = "formula"
    EXAMPLE = "example"
    EXERCISE = "exercise"
    SUMMARY = "summary"
    ALERT = "alert"
    GENERIC = "generic"


# ---------------------------------------------------------------------------
# Document tree
# ---------------------------------------------------------------------------

class Text(BaseModel):
    kind: Literal["text"] = "text"
    value: str = ""


class LineBreak(BaseModel):
    kind: Literal["line_break"] = "line_break"


class Html(BaseModel):
    kind: Literal["html"] = "html"
    value: str = ""
    block: bool = False


class Code(BaseModel):
    kind: Literal["code"] = "code"
    value: str = ""
    block: bool = False
    info: str = ""


class Rule(BaseModel):
    kind: Literal["rule"] = "rule"


class MathInline(BaseModel):
    kind: Literal["math_inline"] = "math_inline"
    source: str
    mathml: Optional[str] = None


class MathDisplay(BaseModel):
    kind: Literal["math_display"] = "math_display"
    source: str
    mathml: Optional[str] = None


class Image(BaseModel):
    kind: Literal["image"] = "image"
    path: str
    width: Optional[str] = None
    height: Optional[str] = None
    alt: str = ""
    # Always present so an image never overflows its container.
    max_width: str = "100%"
    keep_aspect: bool = True


class Emphasis(BaseModel):
    kind: Literal["emphasis"] = "emphasis"
    style: Literal["strong", "em"] = "em"
    children: list[DocumentNode] = Field(default_factory=list)


class Link(BaseModel):
    kind: Literal["link"] = "link"
    href: str = ""
    children: list[DocumentNode] = Field(default_factory=list)


class Heading(BaseModel):
    kind: Literal["heading"] = "heading"
    level: int
    children: list[DocumentNode] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return plain_text(self)


class Paragraph(BaseModel):
    kind: Literal["paragraph"] = "paragraph"
    children: list[DocumentNode] = Field(default_factory=list)


class ListItem(BaseModel):
    kind: Literal["list_item"] = "list_item"
    children: list[DocumentNode] = Field(default_factory=list)


class ListBlock(BaseModel):
    kind: Literal["list"] = "list"
    ordered: bool = False
    start: int = 1
    items: list[ListItem] = Field(default_factory=list)


class Blockquote(BaseModel):
    kind: Literal["blockquote"] = "blockquote"
    children: list[DocumentNode] = Field(default_factory=list)


class TableCell(BaseModel):
    kind: Literal["table_cell"] = "table_cell"
    header: bool = False
    align: Optional[str] = None
    children: list[DocumentNode] = Field(default_factory=list)


class TableRow(BaseModel):
    kind: Literal["table_row"] = "table_row"
    cells: list[TableCell] = Field(default_factory=list)


class Table(BaseModel):
    kind: Literal["table"] = "table"
    rows: list[TableRow] = Field(default_factory=list)


class Section(BaseModel):
    kind: Literal["section"] = "section"
    category: SectionCategory = SectionCategory.GENERIC
    children: list[DocumentNode] = Field(default_factory=list)


DocumentNode = Annotated[
    Union[
        Text,
        LineBreak,
        Html,
        Code,
        Rule,
        MathInline,
        MathDisplay,
        Image,
        Emphasis,
        Link,
        Heading,
        Paragraph,
        ListItem,
        ListBlock,
        Blockquote,
        TableCell,
        TableRow,
        Table,
        Section,
    ],
    Field(discriminator="kind"),
]


class Document(BaseModel):
    kind: Literal["document"] = "document"
    children: list[DocumentNode] = Field(default_factory=list)


for _model in (Emphasis, Link, Heading, Paragraph, ListItem, ListBlock, Blockquote, TableCell, TableRow, Table, Section, Document):
    _model.model_rebuild()


def child_lists(node) -> list[list]:
    """Return the child lists a node owns (a list item owns `items`, a row owns `cells`...)."""
    out: list[list] = []
    for attr in ("children", "items", "rows", "cells"):
        seq = getattr(node, attr, None)
        if isinstance(seq, list):
            out.append(seq)
    return out


def iter_nodes(node) -> Iterator:
    """Depth-first walk over `node` and every descendant."""
    yield node
    for seq in child_lists(node):
        for child in seq:
            yield from iter_nodes(child)


def count_nodes(nodes: list, *, skip_sections: bool = False) -> int:
    total = 0
    for n in nodes:
        for sub in iter_nodes(n):
            if skip_sections and getattr(sub, "kind", None) == "section":
                continue
            total += 1
    return total


def plain_text(node) -> str:
    parts: list[str] = []
    for sub in iter_nodes(node):
        kind = getattr(sub, "kind", None)
        if kind == "text":
            parts.append(sub.value)
        elif kind in ("math_inline", "math_display"):
            parts.append(sub.source)
        elif kind == "code" and not sub.block:
            parts.append(sub.value)
        elif kind == "line_break":
            parts.append(" ")
    return "".join(parts).strip()


# ---------------------------------------------------------------------------
# Transient / result records
# ---------------------------------------------------------------------------

class ImageMacroSpec(BaseModel):
    path: str
    width_spec: Optional[str] = None
    height_spec: Optional[str] = None
    start: int = 0
    end: int = 0


class FindingKind(str, Enum):
    CORRUPTED_TOKEN = "corrupted-token"
    FALSE_IDENTITY = "false-identity"
    REPEATED_SENTENCE = "repeated-sentence"
    MALFORMED_MATH = "malformed-math"


_FATAL_KINDS = {FindingKind.CORRUPTED_TOKEN, FindingKind.FALSE_IDENTITY}


class ValidationFinding(BaseModel):
    kind: FindingKind
    detail: str


class ValidationReport(BaseModel):
    findings: list[ValidationFinding] = Field(default_factory=list)
    malformed_math_threshold: int = 5

    @computed_field
    @property
    def should_reject(self) -> bool:
        if any(f.kind in _FATAL_KINDS for f in self.findings):
            return True
        malformed = sum(1 for f in self.findings if f.kind == FindingKind.MALFORMED_MATH)
        return malformed > self.malformed_math_threshold

    @property
    def is_valid(self) -> bool:
        return not self.findings

    def by_kind(self, kind: FindingKind) -> list[ValidationFinding]:
        return [f for f in self.findings if f.kind == kind]


class SanitizeResult(BaseModel):
    text: str
    was_modified: bool = False


# ---------------------------------------------------------------------------
# Structured authoring records (generator JSON / form input)
# ---------------------------------------------------------------------------

class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_default(cls, v, info):
        # Generators emit null for missing optional fields.
        if v is None:
            field = cls.model_fields.get(info.field_name)
            if field is not None and not field.is_required():
                return field.get_default(call_default_factory=True)
        return v


class Definition(_Record):
    term: str = ""
    definition: str = ""
    example: str = ""


class Theorem(_Record):
    name: str = ""
    statement: str = ""
    proof: str = ""
    application: str = ""


class Formula(_Record):
    formula: str = ""
    explanation: str = ""
    variables: str = ""


class WorkedExample(_Record):
    title: str = ""
    problem: str = ""
    solution: str = ""
    explanation: str = ""


class LessonExercise(_Record):
    question: str = ""
    hints: list[str] = Field(default_factory=list)
    solution: str = ""
    answer: str = ""


class LessonRecord(_Record):
    title: str = Field(default="", alias="titleFr")
    introduction: str = ""
    definitions: list[Definition] = Field(default_factory=list)
    theorems: list[Theorem] = Field(default_factory=list)
    formulas: list[Formula] = Field(default_factory=list)
    examples: list[WorkedExample] = Field(default_factory=list)
    exercises: list[LessonExercise] = Field(default_factory=list)
    summary: str = ""
    common_mistakes: list[str] = Field(default_factory=list, alias="commonMistakes")


class ExerciseRecord(_Record):
    problem_text: str = Field(default="", alias="problemText")
    hints: list[str] = Field(default_factory=list)
    solution: str = ""
    answer: str = ""
    explanation: str = ""


AuthoredDocument = Union[str, LessonRecord, ExerciseRecord, dict]
