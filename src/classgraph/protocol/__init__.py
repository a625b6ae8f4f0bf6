"""
Protocol package: commands, events and app messages on the wire.
"""

from .messages import (
    ActionData,
    ActionMessage,
    ActionRequest,
    AppEvent,
    AppMessage,
    ClassDeleteCommand,
    ClassDeleteEvent,
    ClassesEvent,
    ClassNewCommand,
    ClassNewEvent,
    ClassOpenCommand,
    ClassPosition,
    ClassReference,
    ClassRename,
    ClassRenameCommand,
    ClassUpdateCommand,
    ClassUpdateEvent,
    Command,
    DisconnectEvent,
    Event,
    InitCommand,
    InitEvent,
    InjectCommand,
    InjectionData,
    InjectionEdge,
    InjectionMessage,
    InjectorReplacement,
    InjectRemoveCommand,
    InjectReplaceCommand,
    InstanceData,
    InstanceMessage,
    MixinToggle,
    RunActionCommand,
    SpliceData,
    SpliceMessage,
    ToggleMixinCommand,
    UpdateData,
    UpdateMessage,
    dump_message,
    parse_app_message,
    parse_command,
    parse_event,
)

__all__ = [
    # Commands
    "Command",
    "InitCommand",
    "ClassNewCommand",
    "ClassUpdateCommand",
    "InjectCommand",
    "InjectReplaceCommand",
    "InjectRemoveCommand",
    "ClassOpenCommand",
    "RunActionCommand",
    "ToggleMixinCommand",
    "ClassDeleteCommand",
    "ClassRenameCommand",
    # Command payloads
    "ClassPosition",
    "InjectionEdge",
    "InjectorReplacement",
    "ClassReference",
    "ActionRequest",
    "MixinToggle",
    "ClassRename",
    # App messages
    "AppMessage",
    "InstanceMessage",
    "InjectionMessage",
    "UpdateMessage",
    "SpliceMessage",
    "ActionMessage",
    "InstanceData",
    "InjectionData",
    "UpdateData",
    "SpliceData",
    "ActionData",
    # Events
    "Event",
    "InitEvent",
    "DisconnectEvent",
    "ClassesEvent",
    "ClassNewEvent",
    "ClassUpdateEvent",
    "ClassDeleteEvent",
    "AppEvent",
    # Codec
    "parse_command",
    "parse_event",
    "parse_app_message",
    "dump_message",
]
