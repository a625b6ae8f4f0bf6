# Custom exceptions for classgraph

class ClassgraphError(Exception):
    """Base exception for all application-specific errors."""
    pass

class ParserError(ClassgraphError):
    """Raised when a class file cannot be read or parsed by tree-sitter."""
    def __init__(self, file_path: str, message: str):
        self.file_path = file_path
        self.message = message
        super().__init__(f"Failed to parse {file_path}: {message}")

class ClassNotFound(ClassgraphError):
    """Raised when the named class statement is missing from its source."""
    def __init__(self, class_id: str):
        self.class_id = class_id
        super().__init__(f"Could not find a class statement for '{class_id}'")

class UnregisteredIdentifier(ClassgraphError):
    """Raised when a container is asked for an identifier it does not know."""
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"The identifier {identifier} is not registered")

class InjectionOutsideContainer(ClassgraphError):
    """Raised when an injected attribute is read on an object not built by a container."""
    def __init__(self, owner: str, property_name: str):
        self.owner = owner
        self.property_name = property_name
        super().__init__(
            f"You are using inject on a non injectable class: {owner}.{property_name}"
        )

class ConfigParseFailure(ClassgraphError):
    """Raised when the metadata file exists but cannot be decoded."""
    def __init__(self, file_path: str, message: str):
        self.file_path = file_path
        self.message = message
        super().__init__(f"Could not parse {file_path}: {message}")

class MutationError(ClassgraphError):
    """Raised when a source mutation cannot be planned, validated or written."""

    def __init__(self, message: str, file_path: str = "", errors: list = None):
        self.file_path = file_path
        self.errors = errors or []
        super().__init__(message)

class InvalidClassId(MutationError):
    """Raised when a class id is not a usable Python identifier."""
    def __init__(self, class_id: str):
        self.class_id = class_id
        super().__init__(f"'{class_id}' is not a valid class name")

class DuplicateClassError(MutationError):
    """Raised when creating a class whose id already exists."""
    def __init__(self, class_id: str, file_path: str = ""):
        self.class_id = class_id
        super().__init__(f"The class {class_id} already exists", file_path=file_path)
