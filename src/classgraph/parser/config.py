from classgraph.schemas import Mixin

# Marker call name -> injector kind on the wire
INJECTOR_MARKERS = {
    "inject": "inject",
    "inject_factory": "injectFactory",
}

OBSERVABLE_MARKER = "observable"
COMPUTED_MARKER = "computed"
ACTION_MARKER = "action"

MIXIN_NAMES = {mixin.value: mixin for mixin in Mixin}

# Modules that generated class files import markers and mixins from
RUNTIME_MODULE = "classgraph.runtime"
MIXINS_MODULE = "classgraph.mixins"
