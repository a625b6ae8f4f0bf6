"""
Configuration for source mutations.

Contains formatter settings and the code templates the mutator writes.
"""

from classgraph.parser.config import MIXINS_MODULE, RUNTIME_MODULE

MUTATION_CONFIG = {
    "auto_format_enabled": True,
    "black_line_length": 88,
    "syntax_check_required": True,
    "formatter_timeout": 30,
}

FORMATTERS = {
    "python": {
        "command": "black",
        "args": ["--quiet", "-"],
        "extensions": [".py"],
    },
}

INDENT_DETECTION = {
    "default_indent": "    ",  # 4 spaces
}

CLASS_TEMPLATE = "class {class_id}:\n    pass\n"

ENTRY_TEMPLATE = '''import os

from classgraph.runtime import Container

container = Container({{}}, devtool=os.environ.get("{devtool_env}"))
'''

# Name of the call whose first argument is the registration literal
CONTAINER_CALL = "Container"

STATE_MACHINE = {
    "alias_name": "TState",
    "alias": 'TState = Literal["FOO", "BAR"]',
    "transitions_name": "transitions",
    "transitions": (
        'transitions: StateMachineTransitions[TState] = '
        '{"FOO": {"BAR": True}, "BAR": {"FOO": True}}'
    ),
    "state_name": "state",
    "state": 'state: TState = observable("FOO")',
    "base": "StateMachine[TState]",
    "imports": [
        ("typing", "Literal"),
        (MIXINS_MODULE, "StateMachine"),
        (MIXINS_MODULE, "StateMachineTransitions"),
        (RUNTIME_MODULE, "observable"),
    ],
}

# Marker names that injector edits may leave unused
INJECTOR_IMPORTS = ["inject", "inject_factory", "Factory"]
