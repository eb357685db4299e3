"""Error kinds raised by the compositing core.

Per-slot photo failures are not errors: the compositor turns them into
placeholders and reports the slot ids as diagnostics.
"""


class GridComposeError(Exception):
    """Base class for all gridcompose errors."""


class InvalidTemplate(GridComposeError, ValueError):
    """A template (or catalog file) is internally inconsistent."""


class NotFound(GridComposeError, LookupError):
    """No template with the requested identifier exists."""

    def __init__(self, template_id: str):
        super().__init__(f"Unknown template: '{template_id}'")
        self.template_id = template_id


class InvalidTarget(GridComposeError, ValueError):
    """Non-positive target dimensions or an unrecognized target profile."""


class CompositionFailed(GridComposeError):
    """A required element (background image or logo) could not be decoded."""

    def __init__(self, asset: str, message: str):
        super().__init__(f"{asset}: {message}")
        self.asset = asset
