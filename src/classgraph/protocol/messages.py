"""
Wire messages exchanged between the editor, the backend and instrumented
programs.

Every message is a JSON object `{"type": ..., "data": ...}`. Three families:

- Command: editor -> backend
- Event: backend -> editor
- AppMessage: instrumented program -> backend (wrapped in an `app` event)
"""

from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import Field, TypeAdapter

from classgraph.schemas import (
    BackendStatus,
    ExtractedClass,
    InjectorKind,
    Mixin,
    PlacedClass,
    WireModel,
)


# ============================================================================
# Command payloads
# ============================================================================

class ClassPosition(WireModel):
    class_id: str
    x: float = 0
    y: float = 0


class InjectionEdge(WireModel):
    from_class_id: str
    to_class_id: str


class InjectorReplacement(WireModel):
    class_id: str
    inject_class_id: str
    property_name: str
    kind: InjectorKind = "inject"


class ClassReference(WireModel):
    class_id: str


class ActionRequest(WireModel):
    instance_id: int
    name: str


class MixinToggle(WireModel):
    class_id: str
    mixin: Mixin


class ClassRename(WireModel):
    class_id: str
    to_class_id: str


# ============================================================================
# Commands
# ============================================================================

class InitCommand(WireModel):
    type: Literal["init"] = "init"


class ClassNewCommand(WireModel):
    type: Literal["class-new"] = "class-new"
    data: ClassPosition


class ClassUpdateCommand(WireModel):
    type: Literal["class-update"] = "class-update"
    data: ClassPosition


class InjectCommand(WireModel):
    type: Literal["inject"] = "inject"
    data: InjectionEdge


class InjectReplaceCommand(WireModel):
    type: Literal["inject-replace"] = "inject-replace"
    data: InjectorReplacement


class InjectRemoveCommand(WireModel):
    type: Literal["inject-remove"] = "inject-remove"
    data: InjectionEdge


class ClassOpenCommand(WireModel):
    type: Literal["class-open"] = "class-open"
    data: ClassReference


class RunActionCommand(WireModel):
    type: Literal["run-action"] = "run-action"
    data: ActionRequest


class ToggleMixinCommand(WireModel):
    type: Literal["toggle-mixin"] = "toggle-mixin"
    data: MixinToggle


class ClassDeleteCommand(WireModel):
    type: Literal["class-delete"] = "class-delete"
    data: ClassReference


class ClassRenameCommand(WireModel):
    type: Literal["class-rename"] = "class-rename"
    data: ClassRename


Command = Annotated[
    Union[
        InitCommand,
        ClassNewCommand,
        ClassUpdateCommand,
        InjectCommand,
        InjectReplaceCommand,
        InjectRemoveCommand,
        ClassOpenCommand,
        RunActionCommand,
        ToggleMixinCommand,
        ClassDeleteCommand,
        ClassRenameCommand,
    ],
    Field(discriminator="type"),
]


# ============================================================================
# App messages (runtime instrumentation)
# ============================================================================

class InstanceData(WireModel):
    class_id: str
    instance_id: int


class InjectionData(InstanceData):
    property_name: str
    inject_class_id: str
    inject_instance_id: int


class UpdateData(InstanceData):
    path: List[str]
    value: Any = None


class SpliceData(InstanceData):
    path: List[str]
    index: int
    delete_count: int
    items: List[Any] = Field(default_factory=list)


class ActionData(InstanceData):
    name: str
    args: List[Any] = Field(default_factory=list)


class InstanceMessage(WireModel):
    type: Literal["instance"] = "instance"
    data: InstanceData


class InjectionMessage(WireModel):
    type: Literal["injection"] = "injection"
    data: InjectionData


class UpdateMessage(WireModel):
    type: Literal["update"] = "update"
    data: UpdateData


class SpliceMessage(WireModel):
    type: Literal["splice"] = "splice"
    data: SpliceData


class ActionMessage(WireModel):
    type: Literal["action"] = "action"
    data: ActionData


AppMessage = Annotated[
    Union[InstanceMessage, InjectionMessage, UpdateMessage, SpliceMessage, ActionMessage],
    Field(discriminator="type"),
]


# ============================================================================
# Events
# ============================================================================

class InitEvent(WireModel):
    type: Literal["init"] = "init"
    data: BackendStatus


class DisconnectEvent(WireModel):
    type: Literal["disconnect"] = "disconnect"


class ClassesEvent(WireModel):
    type: Literal["classes"] = "classes"
    data: Dict[str, PlacedClass]


class ClassNewEvent(WireModel):
    type: Literal["class-new"] = "class-new"
    data: ExtractedClass


class ClassUpdateEvent(WireModel):
    type: Literal["class-update"] = "class-update"
    data: PlacedClass


class ClassDeleteEvent(WireModel):
    type: Literal["class-delete"] = "class-delete"
    data: str


class AppEvent(WireModel):
    type: Literal["app"] = "app"
    data: AppMessage


Event = Annotated[
    Union[
        InitEvent,
        DisconnectEvent,
        ClassesEvent,
        ClassNewEvent,
        ClassUpdateEvent,
        ClassDeleteEvent,
        AppEvent,
    ],
    Field(discriminator="type"),
]


_COMMANDS: TypeAdapter = TypeAdapter(Command)
_EVENTS: TypeAdapter = TypeAdapter(Event)
_APP_MESSAGES: TypeAdapter = TypeAdapter(AppMessage)


def parse_command(raw: Union[str, bytes]) -> Command:
    """
    Validate one editor command.

    Raises:
        pydantic.ValidationError: If the text is not a known command
    """
    return _COMMANDS.validate_json(raw)


def parse_event(raw: Union[str, bytes]) -> Event:
    return _EVENTS.validate_json(raw)


def parse_app_message(raw: Union[str, bytes]) -> AppMessage:
    return _APP_MESSAGES.validate_json(raw)


def dump_message(message: WireModel) -> str:
    """Serialize any message to its camelCase JSON text."""
    return message.model_dump_json(by_alias=True)
