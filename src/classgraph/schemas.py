from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """
    Base for every model that crosses the wire. Attributes are snake_case in
    Python and camelCase in JSON.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Mixin(str, Enum):
    """
    Reusable capabilities a class can opt into by listing them as bases.
    """
    DISPOSABLE = "Disposable"
    RESOLVER = "Resolver"
    STATE_MACHINE = "StateMachine"
    UI = "UI"


InjectorKind = Literal["inject", "injectFactory"]


class Injector(WireModel):
    """
    A dependency edge from the owning class onto another class, declared as
    an attribute assigned from inject()/inject_factory().
    """
    model_config = ConfigDict(frozen=True)

    class_id: str
    property_name: str
    kind: InjectorKind = "inject"


class NamedMember(WireModel):
    """
    An observable, computed or action member, identified by name.
    """
    model_config = ConfigDict(frozen=True)

    name: str


class ExtractedClass(WireModel):
    """
    Structural projection of one class source file.
    Replaced wholesale on every re-extraction.
    """
    model_config = ConfigDict(frozen=True)

    class_id: str
    mixins: List[Mixin] = Field(default_factory=list)
    injectors: List[Injector] = Field(default_factory=list)
    observables: List[NamedMember] = Field(default_factory=list)
    computed: List[NamedMember] = Field(default_factory=list)
    actions: List[NamedMember] = Field(default_factory=list)


class ClassMetadata(WireModel):
    """
    Visual position of a class node, persisted in metadata.json.
    """
    x: float = 0
    y: float = 0


class PlacedClass(ExtractedClass):
    """
    An extracted class together with its canvas position. This is the unit
    the backend sends to the editor.
    """
    x: float = 0
    y: float = 0

    @classmethod
    def place(cls, extracted: ExtractedClass, metadata: Optional[ClassMetadata] = None) -> "PlacedClass":
        metadata = metadata or ClassMetadata()
        return cls(**extracted.model_dump(), x=metadata.x, y=metadata.y)


class BackendStatus(WireModel):
    """
    State of the editor backend, reported with the init event.
    """
    status: Literal["pending", "no-project", "missing-dependencies", "ready"]
    path: Optional[str] = None
