"""
Tests for wire message parsing and serialization.
"""

import json

import pytest
from pydantic import ValidationError

from classgraph.protocol import (
    AppEvent,
    ClassDeleteEvent,
    ClassesEvent,
    ClassNewCommand,
    ClassPosition,
    DisconnectEvent,
    InitCommand,
    InjectCommand,
    InjectReplaceCommand,
    SpliceData,
    SpliceMessage,
    ToggleMixinCommand,
    dump_message,
    parse_app_message,
    parse_command,
    parse_event,
)
from classgraph.schemas import ExtractedClass, Injector, Mixin, PlacedClass

pytestmark = pytest.mark.fast


class TestCommands:
    """Test parsing of editor commands."""

    def test_init_has_no_data(self):
        assert isinstance(parse_command('{"type": "init"}'), InitCommand)
        assert json.loads(dump_message(InitCommand())) == {"type": "init"}

    def test_class_new(self):
        command = parse_command('{"type": "class-new", "data": {"classId": "Foo", "x": 10, "y": 20}}')
        assert isinstance(command, ClassNewCommand)
        assert command.data == ClassPosition(class_id="Foo", x=10, y=20)

    def test_inject(self):
        command = parse_command('{"type": "inject", "data": {"fromClassId": "A", "toClassId": "B"}}')
        assert isinstance(command, InjectCommand)
        assert (command.data.from_class_id, command.data.to_class_id) == ("A", "B")

    def test_inject_replace_kind(self):
        command = parse_command(json.dumps({
            "type": "inject-replace",
            "data": {"classId": "B", "injectClassId": "A", "propertyName": "a", "kind": "injectFactory"},
        }))
        assert isinstance(command, InjectReplaceCommand)
        assert command.data.kind == "injectFactory"

    def test_toggle_mixin(self):
        command = parse_command('{"type": "toggle-mixin", "data": {"classId": "A", "mixin": "StateMachine"}}')
        assert isinstance(command, ToggleMixinCommand)
        assert command.data.mixin is Mixin.STATE_MACHINE

    @pytest.mark.parametrize("raw", [
        '{"type": "explode"}',
        '{"type": "class-new", "data": {}}',
        '{"type": "toggle-mixin", "data": {"classId": "A", "mixin": "Teleport"}}',
        'not json',
    ])
    def test_invalid_commands(self, raw):
        with pytest.raises(ValidationError):
            parse_command(raw)

    def test_commands_serialize_camel_case(self):
        command = ClassNewCommand(data=ClassPosition(class_id="Foo", x=1, y=2))
        assert json.loads(dump_message(command)) == {
            "type": "class-new",
            "data": {"classId": "Foo", "x": 1.0, "y": 2.0},
        }


class TestEvents:
    """Test backend events and app messages."""

    def test_classes_event(self):
        placed = PlacedClass(
            class_id="B",
            injectors=[Injector(class_id="A", property_name="a")],
            x=3,
        )
        wire = json.loads(dump_message(ClassesEvent(data={"B": placed})))
        assert wire["data"]["B"]["injectors"] == [{"classId": "A", "propertyName": "a", "kind": "inject"}]
        assert wire["data"]["B"]["x"] == 3

        event = parse_event(json.dumps(wire))
        assert event.data["B"] == placed

    def test_class_delete_and_disconnect(self):
        assert parse_event('{"type": "class-delete", "data": "A"}') == ClassDeleteEvent(data="A")
        assert isinstance(parse_event('{"type": "disconnect"}'), DisconnectEvent)

    def test_class_new_event_has_no_position(self):
        event = parse_event(json.dumps({"type": "class-new", "data": ExtractedClass(class_id="A").to_wire()}))
        assert event.data == ExtractedClass(class_id="A")

    def test_app_message_wrapped_in_event(self):
        raw = json.dumps({
            "type": "splice",
            "data": {"classId": "A", "instanceId": 1, "path": ["items"], "index": 1, "deleteCount": 0, "items": [9]},
        })
        message = parse_app_message(raw)
        assert isinstance(message, SpliceMessage)

        event = parse_event(dump_message(AppEvent(data=message)))
        assert event.data.data == SpliceData(
            class_id="A", instance_id=1, path=["items"], index=1, delete_count=0, items=[9]
        )

    def test_update_keeps_null_value(self):
        raw = '{"type": "update", "data": {"classId": "A", "instanceId": 1, "path": ["x"], "value": null}}'
        assert json.loads(dump_message(parse_app_message(raw)))["data"]["value"] is None
