"""Base Pydantic model with strict defaults for gbabuild configs.

All gbabuild schemas inherit from this base to ensure consistent
validation behavior across parameter, CLI, internal and descriptor models.
"""

from pydantic import BaseModel, ConfigDict


class GbaBuildBaseModel(BaseModel):
    """Base model for all gbabuild configuration schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Uses Python mode (not JSON mode)
    - Strips surrounding whitespace from strings
    """

    model_config = ConfigDict(
        extra='forbid',           # Reject unknown fields
        validate_assignment=True, # Validate on field mutation
        use_enum_values=False,    # Keep enum members (GroupMode dispatch)
        str_strip_whitespace=True,# Strip whitespace from strings
    )
