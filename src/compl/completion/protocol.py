"""
Completion data model.

Provider replies come in several LSP shapes (null, a bare item array, or a
CompletionList with item defaults). They are parsed once, at ingestion, into
a single ProviderResponse so nothing downstream branches on the shape again.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

from compl.completion.errors import ProviderError
from compl.lsp.protocol import Position, Range


class CompletionItemKind(IntEnum):
    """LSP CompletionItemKind ordinals."""

    Text = 1
    Method = 2
    Function = 3
    Constructor = 4
    Field = 5
    Variable = 6
    Class = 7
    Interface = 8
    Module = 9
    Property = 10
    Unit = 11
    Value = 12
    Enum = 13
    Keyword = 14
    Snippet = 15
    Color = 16
    File = 17
    Reference = 18
    Folder = 19
    EnumMember = 20
    Constant = 21
    Struct = 22
    Event = 23
    Operator = 24
    TypeParameter = 25

    @classmethod
    def name_of(cls, kind: Optional[int]) -> str:
        """Display name for a kind ordinal, 'Unknown' when absent or unrecognised."""
        try:
            return cls(kind).name
        except ValueError:
            return "Unknown"


class InsertTextFormat(IntEnum):
    PlainText = 1
    Snippet = 2


@dataclass
class MarkupContent:
    kind: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "value": self.value}


@dataclass
class TextEdit:
    """Replace `range` with `new_text`."""

    range: Range
    new_text: str

    def to_dict(self) -> Dict:
        return {"range": self.range.to_dict(), "newText": self.new_text}

    @classmethod
    def from_dict(cls, data: Dict) -> "TextEdit":
        return cls(range=Range.from_dict(data["range"]), new_text=data.get("newText", ""))


@dataclass
class InsertReplaceEdit:
    """An edit whose range depends on whether the client inserts or replaces."""

    insert: Range
    replace: Range
    new_text: str

    @property
    def range(self) -> Range:
        return self.insert

    def to_dict(self) -> Dict:
        return {
            "insert": self.insert.to_dict(),
            "replace": self.replace.to_dict(),
            "newText": self.new_text,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "InsertReplaceEdit":
        return cls(
            insert=Range.from_dict(data["insert"]),
            replace=Range.from_dict(data["replace"]),
            new_text=data.get("newText", ""),
        )


AnyTextEdit = Union[TextEdit, InsertReplaceEdit]


def first_present(*values: Optional[str]) -> Optional[str]:
    """First value that is set; an empty string counts as set."""
    for value in values:
        if value is not None:
            return value
    return None


def _parse_text_edit(data: Optional[Dict]) -> Optional[AnyTextEdit]:
    if not isinstance(data, dict):
        return None
    if "range" in data:
        return TextEdit.from_dict(data)
    if "insert" in data and "replace" in data:
        return InsertReplaceEdit.from_dict(data)
    return None


def _parse_documentation(data: Any) -> Union[str, MarkupContent, None]:
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        return MarkupContent(kind=data.get("kind", "plaintext"), value=data.get("value", ""))
    return None


@dataclass
class CompletionItem:
    """A single completion item, field names following LSP in snake_case."""

    label: str
    kind: Optional[int] = None
    detail: Optional[str] = None
    documentation: Union[str, MarkupContent, None] = None
    sort_text: Optional[str] = None
    filter_text: Optional[str] = None
    insert_text: Optional[str] = None
    insert_text_format: Optional[int] = None
    insert_text_mode: Optional[int] = None
    text_edit: Optional[AnyTextEdit] = None
    text_edit_text: Optional[str] = None
    additional_text_edits: List[TextEdit] = field(default_factory=list)
    data: Any = None

    @property
    def is_snippet_body(self) -> bool:
        """Accepting this item expands its body through the snippet expander."""
        return self.kind == CompletionItemKind.Snippet

    @property
    def edit_text(self) -> Optional[str]:
        """Replacement text of the item's edit, if it has one."""
        return self.text_edit.new_text if self.text_edit is not None else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompletionItem":
        return cls(
            label=data.get("label", ""),
            kind=data.get("kind"),
            detail=data.get("detail"),
            documentation=_parse_documentation(data.get("documentation")),
            sort_text=data.get("sortText"),
            filter_text=data.get("filterText"),
            insert_text=data.get("insertText"),
            insert_text_format=data.get("insertTextFormat"),
            insert_text_mode=data.get("insertTextMode"),
            text_edit=_parse_text_edit(data.get("textEdit")),
            text_edit_text=data.get("textEditText"),
            additional_text_edits=[
                TextEdit.from_dict(edit) for edit in data.get("additionalTextEdits") or []
            ],
            data=data.get("data"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the LSP wire shape (absent fields omitted)."""
        result: Dict[str, Any] = {"label": self.label}
        optional = {
            "kind": self.kind,
            "detail": self.detail,
            "sortText": self.sort_text,
            "filterText": self.filter_text,
            "insertText": self.insert_text,
            "insertTextFormat": self.insert_text_format,
            "insertTextMode": self.insert_text_mode,
            "textEditText": self.text_edit_text,
            "data": self.data,
        }
        result.update({k: v for k, v in optional.items() if v is not None})
        if isinstance(self.documentation, MarkupContent):
            result["documentation"] = self.documentation.to_dict()
        elif self.documentation is not None:
            result["documentation"] = self.documentation
        if self.text_edit is not None:
            result["textEdit"] = self.text_edit.to_dict()
        if self.additional_text_edits:
            result["additionalTextEdits"] = [e.to_dict() for e in self.additional_text_edits]
        return result


@dataclass
class InsertReplaceRange:
    insert: Range
    replace: Range


@dataclass
class ItemDefaults:
    """List-level defaults applied to items that do not set the field."""

    edit_range: Union[Range, InsertReplaceRange, None] = None
    insert_text_format: Optional[int] = None
    insert_text_mode: Optional[int] = None
    data: Any = None
    commit_characters: Optional[List[str]] = None

    def is_empty(self) -> bool:
        return (
            self.edit_range is None
            and self.insert_text_format is None
            and self.insert_text_mode is None
            and self.data is None
            and self.commit_characters is None
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItemDefaults":
        edit_range: Union[Range, InsertReplaceRange, None] = None
        raw_range = data.get("editRange")
        if isinstance(raw_range, dict):
            if "start" in raw_range:
                edit_range = Range.from_dict(raw_range)
            elif "insert" in raw_range:
                edit_range = InsertReplaceRange(
                    insert=Range.from_dict(raw_range["insert"]),
                    replace=Range.from_dict(raw_range["replace"]),
                )
        return cls(
            edit_range=edit_range,
            insert_text_format=data.get("insertTextFormat"),
            insert_text_mode=data.get("insertTextMode"),
            data=data.get("data"),
            commit_characters=data.get("commitCharacters"),
        )


@dataclass
class ProviderResponse:
    """One provider's reply for one request generation."""

    error: Optional[ProviderError] = None
    items: Optional[List[CompletionItem]] = None
    item_defaults: Optional[ItemDefaults] = None
    is_incomplete: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.items is not None

    def iter_items(self) -> List[CompletionItem]:
        """Items of a successful reply; empty for errors."""
        if self.error is not None or self.items is None:
            return []
        return self.items

    @classmethod
    def from_result(cls, result: Any) -> "ProviderResponse":
        """
        Build a response from a raw textDocument/completion result.

        Args:
            result: None, a list of item dicts, or a CompletionList dict

        Returns:
            ProviderResponse with parsed items and defaults
        """
        if result is None:
            return cls(items=[])

        if isinstance(result, list):
            return cls(items=[CompletionItem.from_dict(item) for item in result])

        if isinstance(result, dict):
            defaults = result.get("itemDefaults")
            return cls(
                items=[CompletionItem.from_dict(item) for item in result.get("items") or []],
                item_defaults=ItemDefaults.from_dict(defaults) if isinstance(defaults, dict) else None,
                is_incomplete=bool(result.get("isIncomplete", False)),
            )

        return cls(error=ProviderError(f"Unexpected completion result: {type(result).__name__}"))

    @classmethod
    def failure(cls, error: ProviderError) -> "ProviderResponse":
        return cls(error=error)


__all__ = [
    "AnyTextEdit",
    "CompletionItem",
    "CompletionItemKind",
    "InsertReplaceEdit",
    "InsertReplaceRange",
    "InsertTextFormat",
    "ItemDefaults",
    "MarkupContent",
    "Position",
    "ProviderResponse",
    "Range",
    "TextEdit",
    "first_present",
]
