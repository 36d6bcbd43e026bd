"""Form builder library for the questionnaire admin console."""

from .document import FormDocument  # noqa: F401
from .field_types import FieldKind  # noqa: F401
from .session import FormEditSession, FormValidationError  # noqa: F401
