# crudwizard/wizard_engine/errors.py

class WizardError(Exception):
    """Base class for errors raised by the wizard engine."""


class NotFoundError(WizardError):
    """A stored configuration (or entity) does not exist."""


class SourceUnavailableError(WizardError):
    """The schema source or the manifest source could not be used."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class ConfigDeserializationError(WizardError):
    """A stored configuration record is empty or corrupt."""
