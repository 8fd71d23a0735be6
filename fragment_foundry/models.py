"""Data models for items, directive blocks and engine results."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class Item(BaseModel):
    kind: str = Field(description="User-defined category, e.g. 'rule' or 'workflow'")
    name: str = Field(description="Identifier within the kind; '/' only organises files")
    description: str = Field(default="", description="Optional human-readable summary")
    body: str = Field(description="Opaque fragment text")
    source_path: str | None = Field(default=None, description="Backing file, if any")

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind, self.name)

    @property
    def ref(self) -> str:
        return f"{self.kind}:{self.name}"


class _Block(BaseModel):
    start_line: int = Field(description="1-based line of the opener")
    end_line: int = Field(description="1-based line of the closer (opener for includes)")
    raw: str = Field(description="Exact source text of the block, closer line ending included")


class Include(_Block):
    directive: Literal["include"] = "include"
    kind: str
    name: str


class ListDirective(_Block):
    directive: Literal["list"] = "list"
    kind: str
    members: list[str] = Field(default_factory=list)


class NewItem(_Block):
    directive: Literal["new"] = "new"
    kind: str
    name: str
    raw_body: str = Field(default="", description="Body lines captured verbatim")

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind, self.name)


DirectiveBlock = Annotated[
    Union[Include, ListDirective, NewItem], Field(discriminator="directive")
]


class LiteralSegment(BaseModel):
    segment: Literal["literal"] = "literal"
    text: str

    @property
    def source(self) -> str:
        return self.text


class DirectiveSegment(BaseModel):
    segment: Literal["directive"] = "directive"
    block: DirectiveBlock

    @property
    def source(self) -> str:
        return self.block.raw


Segment = Annotated[
    Union[LiteralSegment, DirectiveSegment], Field(discriminator="segment")
]


class TemplateSection(BaseModel):
    """A ``##`` section of a directive document and the items it declares."""

    header_text: str
    header_line: int
    item_kind: str | None = None
    item_names: list[str] = Field(default_factory=list)


class AlignmentWarning(BaseModel):
    section: str | None = None
    message: str

    def __str__(self) -> str:
        return self.message


class AlignmentResult(BaseModel):
    items: dict[str, list[Item]] = Field(default_factory=dict)
    warnings: list[AlignmentWarning] = Field(default_factory=list)

    def all_items(self) -> list[Item]:
        return [item for items in self.items.values() for item in items]


class PromotionResult(BaseModel):
    text: str
    item: Item


class PromotionFailure(BaseModel):
    kind: str
    name: str
    reason: str

    @property
    def ref(self) -> str:
        return f"{self.kind}:{self.name}"


class PromotionReport(BaseModel):
    text: str
    created: list[Item] = Field(default_factory=list)
    skipped: list[PromotionFailure] = Field(default_factory=list)


class BackfillReport(BaseModel):
    imported: list[Item] = Field(default_factory=list)
    overwritten: list[Item] = Field(default_factory=list)
    skipped: list[Item] = Field(default_factory=list)


class Reference(BaseModel):
    kind: str
    name: str
    line: int

    @property
    def ref(self) -> str:
        return f"{self.kind}:{self.name}"
