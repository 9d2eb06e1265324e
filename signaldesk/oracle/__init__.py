"""Oráculo IA: adquisición y normalización de respuestas del backend generativo.

Expone un singleton `get_oracle()` para reutilizar una misma fachada en toda la API.
"""

from .errors import ClassifiedError, ErrorCategory
from .service import Oracle, get_oracle

__all__ = ["ClassifiedError", "ErrorCategory", "Oracle", "get_oracle"]
