"""
Data models for the normalized, paginated quiz documents.
"""
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import SchemaDocumentError


class PaginatedCollection(BaseModel):
    """A ``{total, offset, limit, data}`` page of list-like content."""
    total: int = Field(ge=0)
    offset: int = Field(default=0, ge=0)
    limit: int = Field(ge=0)
    data: List[Any] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """True when every entry announced by ``total`` is present."""
        return self.offset + len(self.data) >= self.total

    @classmethod
    def of(cls, entries: List[Any]):
        """Build a single complete page holding ``entries``."""
        return cls(total=len(entries), offset=0, limit=len(entries), data=list(entries))

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class _Entry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class QuestionEntry(_Entry):
    """Questions document: one question and its selection bounds."""
    id: str = Field(alias="questions")
    max_selections: Optional[int] = Field(default=None, alias="max-selections")
    min_selections: Optional[int] = Field(default=None, alias="min-selections")


class OptionLinkEntry(_Entry):
    """Questions document: one option of a question and where it leads."""
    id: str = Field(alias="options")
    next: Optional[str] = None


class QuestionStringsEntry(_Entry):
    """Strings document: display text of a question."""
    id: str = Field(alias="q")
    heading: Optional[str] = None
    sub_head: Optional[str] = Field(default=None, alias="sub-head")
    btn: Optional[str] = None
    background: Optional[str] = None
    footer_fragment: Optional[str] = Field(default=None, alias="footerFragment")


class OptionStringsEntry(_Entry):
    """Strings document: display text of an option."""
    id: str = Field(alias="options")
    title: Optional[str] = None
    text: Optional[str] = None
    icon: Optional[str] = None
    image: Optional[str] = None


class QuestionCollection(PaginatedCollection):
    data: List[QuestionEntry] = Field(default_factory=list)


class OptionLinkCollection(PaginatedCollection):
    data: List[OptionLinkEntry] = Field(default_factory=list)


class QuestionStringsCollection(PaginatedCollection):
    data: List[QuestionStringsEntry] = Field(default_factory=list)


class OptionStringsCollection(PaginatedCollection):
    data: List[OptionStringsEntry] = Field(default_factory=list)


def _validate(model, payload: Any, where: str):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise SchemaDocumentError(f"{where}: {e}") from e


def _split(payload: Any, document: str):
    if not isinstance(payload, dict):
        raise SchemaDocumentError(f"{document}: expected a JSON object, got {type(payload).__name__}")
    if "questions" not in payload:
        raise SchemaDocumentError(f"{document}: missing top-level 'questions' collection")
    keyed = {key: value for key, value in payload.items() if key != "questions"}
    return payload["questions"], keyed


class QuestionsDocument(BaseModel):
    """Question list plus, per question id, the options it offers."""
    questions: QuestionCollection
    options: Dict[str, OptionLinkCollection] = Field(default_factory=dict)

    @classmethod
    def from_json(cls, payload: Any) -> "QuestionsDocument":
        top, keyed = _split(payload, "questions.json")
        return cls(
            questions=_validate(QuestionCollection, top, "questions.json/questions"),
            options={
                key: _validate(OptionLinkCollection, value, f"questions.json/{key}")
                for key, value in keyed.items()
            },
        )

    def to_json(self) -> Dict[str, Any]:
        document = {"questions": self.questions.to_json()}
        for question_id, collection in self.options.items():
            document[question_id] = collection.to_json()
        return document


class StringsDocument(BaseModel):
    """Question display text plus, per option id, the option display text."""
    questions: QuestionStringsCollection
    options: Dict[str, OptionStringsCollection] = Field(default_factory=dict)

    @classmethod
    def from_json(cls, payload: Any) -> "StringsDocument":
        top, keyed = _split(payload, "strings.json")
        return cls(
            questions=_validate(QuestionStringsCollection, top, "strings.json/questions"),
            options={
                key: _validate(OptionStringsCollection, value, f"strings.json/{key}")
                for key, value in keyed.items()
            },
        )

    def to_json(self) -> Dict[str, Any]:
        document = {"questions": self.questions.to_json()}
        for option_id, collection in self.options.items():
            document[option_id] = collection.to_json()
        return document


class ResultsDocument(BaseModel):
    """Result pages, read on import and carried through untouched."""
    collections: Dict[str, PaginatedCollection] = Field(default_factory=dict)

    @classmethod
    def from_json(cls, payload: Any) -> "ResultsDocument":
        if not isinstance(payload, dict):
            raise SchemaDocumentError(f"results.json: expected a JSON object, got {type(payload).__name__}")
        return cls(
            collections={
                key: _validate(PaginatedCollection, value, f"results.json/{key}")
                for key, value in payload.items()
            }
        )

    def to_json(self) -> Dict[str, Any]:
        return {key: collection.to_json() for key, collection in self.collections.items()}
