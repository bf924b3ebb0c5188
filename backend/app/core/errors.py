"""Exceptions raised by the pipeline and automation services."""


class AutomationError(Exception):
    """Base class for automation engine failures."""


class ConfigurationError(AutomationError):
    """An automation or action references missing or invalid configuration."""


class ResolutionError(AutomationError):
    """A related entity (conversation, contact, connection) could not be resolved."""


class MessageDispatchError(AutomationError):
    """The message sink rejected a dispatch or could not be reached."""


class CardNotFoundError(LookupError):
    pass


class ColumnNotFoundError(LookupError):
    pass


class ColumnNotEmptyError(Exception):
    def __init__(self, column_id: int, card_count: int):
        super().__init__(f"Column {column_id} still has {card_count} card(s)")
        self.column_id = column_id
        self.card_count = card_count


class DuplicateOpenCardError(Exception):
    """An open card already exists for the contact in the pipeline."""

    def __init__(self, card_id: int, contact_id: int, pipeline_id: int):
        super().__init__(f"Contact {contact_id} already has open card {card_id} in pipeline {pipeline_id}")
        self.card_id = card_id
        self.contact_id = contact_id
        self.pipeline_id = pipeline_id


class PipelineNotFoundError(LookupError):
    pass


class ColumnPipelineMismatchError(ValueError):
    """The target column does not belong to the target pipeline."""
