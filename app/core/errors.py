from __future__ import annotations


class DataManagerError(Exception):
    """Base class for errors raised by the data manager core."""


class ConfigurationError(DataManagerError):
    """Wiring problem detected at startup or first use; not a user error."""


class FilterHandlerNotRegistered(ConfigurationError):
    def __init__(self, model: type, filter_type: type):
        self.model = model
        self.filter_type = filter_type
        super().__init__(
            f"No filter handler registered for {filter_type.__name__} on {model.__name__}"
        )


class OperationCancelled(DataManagerError):
    """The caller cancelled a terminal query before it completed."""


class EntityNotFound(DataManagerError):
    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with id {entity_id} not found")


class ValidationFailed(DataManagerError):
    """A command payload is structurally valid but semantically rejected."""
